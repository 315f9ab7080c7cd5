"""Request classification: what kind of request is this?"""

from __future__ import annotations

import enum
import json
import os
from collections.abc import Callable, Iterable

import structlog

from request_utils.config.loader import RequestUtilsSettings, get_header_policy, get_settings
from request_utils.context import RequestContext
from request_utils.headers import HeaderAccessor

logger = structlog.get_logger()

# Marker fragment of block editor server-side render routes
_BLOCK_RENDERER_ROUTE = "/block-renderer/"


class RequestKind(str, enum.Enum):
    """Closed vocabulary accepted by ``RequestClassifier.is_``."""

    ADMIN = "admin"
    AJAX = "ajax"
    CRON = "cron"
    REST = "rest"
    API = "api"
    FRONTEND = "frontend"
    JSON = "json"
    CLI = "cli"
    EDITOR = "editor"


class RequestClassifier:
    """Read-only predicates over a RequestContext.

    Every predicate is recomputed on each call; nothing is cached, so derived
    kinds such as ``frontend`` always reflect the current flags.
    """

    def __init__(
        self,
        context: RequestContext,
        headers: HeaderAccessor | None = None,
        settings: RequestUtilsSettings | None = None,
    ) -> None:
        self.context = context
        self.headers = headers or HeaderAccessor(context)
        self._settings = settings
        self._dispatch: dict[RequestKind, Callable[[], bool]] = {
            RequestKind.ADMIN: self.is_admin,
            RequestKind.AJAX: self.is_ajax,
            RequestKind.CRON: self.is_cron,
            RequestKind.REST: self.is_rest,
            RequestKind.FRONTEND: self.is_frontend,
            RequestKind.JSON: self.is_json,
            RequestKind.EDITOR: self.is_editor,
            RequestKind.CLI: self.is_cli,
            RequestKind.API: self.is_api,
        }

    @property
    def settings(self) -> RequestUtilsSettings:
        return self._settings or get_settings()

    def is_(self, type_or_types: str | RequestKind | Iterable[str | RequestKind]) -> bool:
        """True if the request matches any of the given kinds.

        Unknown kind names are simply "not this kind"; they never raise.
        """
        if isinstance(type_or_types, str):
            return self.is_type(type_or_types)
        if isinstance(type_or_types, Iterable):
            return any(self.is_type(kind) for kind in type_or_types)
        return False

    def is_type(self, kind: str | RequestKind) -> bool:
        try:
            resolved = RequestKind(kind)
        except ValueError:
            return False
        return self._dispatch[resolved]()

    def is_admin(self) -> bool:
        return self.context.is_admin_area

    def is_ajax(self) -> bool:
        return self.context.doing_ajax

    def is_cron(self) -> bool:
        return self.context.doing_cron

    def is_rest(self) -> bool:
        return self.context.is_rest_request

    def is_json(self) -> bool:
        return self.context.is_json_request

    def is_cli(self) -> bool:
        return self.context.is_cli_process or self.settings.cli_marker_env in os.environ

    def is_frontend(self) -> bool:
        """Anything that is not admin, ajax, cron, rest, api or cli.

        A JSON request can still be a frontend request.
        """
        return not self.is_(
            [
                RequestKind.ADMIN,
                RequestKind.AJAX,
                RequestKind.CRON,
                RequestKind.REST,
                RequestKind.API,
                RequestKind.CLI,
            ]
        )

    def is_editor(self) -> bool:
        """Admin screens, or an authenticated block-renderer REST call."""
        if self.is_admin():
            return True
        if not self.context.is_rest_request or not self.context.user_is_authenticated:
            return False
        route = self.context.current_route
        if not route:
            return False
        return _BLOCK_RENDERER_ROUTE in route

    def is_api(self) -> bool:
        """REST requests, or any request carrying an API credential header."""
        if self.is_rest():
            return True
        return any(self.headers.has_header(name) for name in get_header_policy()["api_headers"])

    def is_mobile(self) -> bool:
        return self.context.is_mobile_client

    def is_desktop(self) -> bool:
        return not self.is_mobile()

    def is_ssl(self) -> bool:
        """Secure transport, or Cloudflare reporting an https visitor."""
        if self.context.is_secure_transport:
            return True

        cf_visitor = self.headers.get_header("cf-visitor")
        if not cf_visitor:
            return False
        try:
            visitor = json.loads(cf_visitor)
        except (TypeError, ValueError, RecursionError):
            logger.debug("cf_visitor_unparsable", value=cf_visitor[:64])
            return False
        return isinstance(visitor, dict) and visitor.get("scheme") == "https"

    def is_cloudflare(self) -> bool:
        return self.headers.is_cloudflare()

    def get_method(self) -> str:
        return self.headers.get_method()

    def is_method(self, method_or_methods: str | Iterable[str]) -> bool:
        """Case-insensitive match of the request method against one or more names."""
        current = self.get_method()
        if isinstance(method_or_methods, str):
            return current == method_or_methods.upper()
        if isinstance(method_or_methods, Iterable):
            return current in [m.upper() for m in method_or_methods if isinstance(m, str)]
        return False
