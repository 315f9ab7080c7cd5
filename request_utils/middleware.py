"""Starlette middleware attaching request helpers to every inbound request."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from request_utils.classifier import RequestKind
from request_utils.context import RequestContext
from request_utils.request import Request

logger = structlog.get_logger()

STATE_ATTR = "request_utils"


class RequestUtilsMiddleware(BaseHTTPMiddleware):
    """Build a RequestContext and a Request helper for each request.

    - Stores the helper on ``request.state.request_utils``
    - Binds request_id and client_ip to structlog contextvars
    - ``context_overrides`` lets the host supply flags it knows better,
      e.g. ``user_is_authenticated``
    """

    def __init__(
        self,
        app: Any,
        context_overrides: Callable[[StarletteRequest], dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(app)
        self._context_overrides = context_overrides

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        overrides = self._context_overrides(request) if self._context_overrides else {}
        context = await RequestContext.from_request(request, **overrides)
        helper = Request(context)
        setattr(request.state, STATE_ATTR, helper)

        client_ip = helper.get_client_ip()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=context.request_id,
            client_ip=client_ip,
        )

        logger.debug(
            "request_classified",
            kinds=[kind.value for kind in RequestKind if helper.is_(kind)],
            method=helper.get_method(),
        )

        response = await call_next(request)
        response.headers["x-request-id"] = context.request_id
        return response


def get_request_helper(request: StarletteRequest) -> Request | None:
    """Return the helper attached by RequestUtilsMiddleware, if any."""
    return getattr(request.state, STATE_ATTR, None)
