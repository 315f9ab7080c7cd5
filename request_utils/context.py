"""Request context: the facts about one inbound request that the helpers read."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog
from starlette.datastructures import UploadFile
from starlette.requests import Request

from request_utils.config.loader import RequestUtilsSettings, get_settings

logger = structlog.get_logger()

# PHP-style bracketed keys: "tags[]" and "meta[color]"
_BRACKET_KEY_RE = re.compile(r"^([^\[\]]+)\[([^\[\]]*)\]$")

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# User-Agent fragments that mark a mobile client, in the order they are checked
_MOBILE_UA_MARKERS = (
    "Mobile",
    "Android",
    "Silk/",
    "Kindle",
    "BlackBerry",
    "Opera Mini",
    "Opera Mobi",
)


@dataclass
class RequestContext:
    """Request-scoped facts passed explicitly to the classifier and store.

    ``server`` is an environment-style mapping (``HTTP_*``, ``CONTENT_TYPE``,
    ``REQUEST_METHOD`` ...). ``headers`` is the full header enumeration, or
    None when the host cannot enumerate headers.
    """

    request_id: str = ""
    method: str = "GET"
    server: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] | None = None
    query: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    remote_addr: str = ""

    is_admin_area: bool = False
    doing_ajax: bool = False
    doing_cron: bool = False
    is_rest_request: bool = False
    is_json_request: bool = False
    is_mobile_client: bool = False
    is_secure_transport: bool = False
    is_cli_process: bool = False
    user_is_authenticated: bool = False
    current_route: str | None = None

    def __post_init__(self):
        if not self.request_id:
            self.request_id = uuid4().hex[:8]

    @classmethod
    def for_cli(cls, **overrides: Any) -> RequestContext:
        """Context for a command-line run: no transport, no parameters."""
        overrides.setdefault("is_cli_process", True)
        return cls(**overrides)

    @classmethod
    async def from_request(
        cls,
        request: Request,
        *,
        parse_body: bool = True,
        settings: RequestUtilsSettings | None = None,
        **overrides: Any,
    ) -> RequestContext:
        """Build a context from a Starlette request.

        Flags are derived from the WordPress URL layout in settings; any field
        passed in ``overrides`` replaces the derived value. Authentication is
        never derived: the host passes ``user_is_authenticated`` itself.
        """
        settings = settings or get_settings()

        # Repeated header lines fold into one comma-separated value
        headers = {name: ", ".join(request.headers.getlist(name)) for name in request.headers.keys()}
        method = request.method.upper()
        remote_addr = request.client.host if request.client else ""
        is_secure = request.url.scheme in ("https", "wss")

        server = build_server_vars(headers, method=method, remote_addr=remote_addr, is_secure=is_secure)

        query = collect_params(request.query_params.multi_items())
        body: dict[str, Any] = {}
        content_type = headers.get("content-type", "").lower()
        if parse_body and content_type.startswith(_FORM_CONTENT_TYPES):
            body = await _read_form(request)
        params = {**query, **body}

        path = request.url.path
        rest_route = query.get("rest_route")
        if isinstance(rest_route, str) and rest_route:
            current_route: str | None = rest_route
        elif path.startswith(settings.rest_prefix):
            current_route = "/" + path[len(settings.rest_prefix):]
        else:
            current_route = None

        fields: dict[str, Any] = {
            "method": method,
            "server": server,
            "headers": headers,
            "query": query,
            "body": body,
            "params": params,
            "remote_addr": remote_addr,
            "is_admin_area": path.startswith(settings.admin_path),
            "doing_ajax": path == settings.ajax_path,
            "doing_cron": path == settings.cron_path,
            "is_rest_request": current_route is not None,
            "is_json_request": _wants_json(headers),
            "is_mobile_client": is_mobile_user_agent(
                headers.get("user-agent", ""), headers.get("sec-ch-ua-mobile")
            ),
            "is_secure_transport": is_secure,
            "current_route": current_route,
        }
        fields.update(overrides)
        return cls(**fields)


def build_server_vars(
    headers: Mapping[str, str],
    *,
    method: str = "GET",
    remote_addr: str = "",
    is_secure: bool = False,
) -> dict[str, str]:
    """Lay headers out the way a CGI-style server environment does."""
    server: dict[str, str] = {"REQUEST_METHOD": method}
    for name, value in headers.items():
        key = name.upper().replace("-", "_")
        if key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
            server[key] = value
        else:
            server[f"HTTP_{key}"] = value
    if remote_addr:
        server["REMOTE_ADDR"] = remote_addr
    if is_secure:
        server["HTTPS"] = "on"
    return server


def collect_params(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Fold (key, value) pairs into a superglobal-style mapping.

    ``a[]=1&a[]=2`` builds a list, ``a[k]=1`` builds a mapping, and a repeated
    plain key keeps its last value.
    """
    params: dict[str, Any] = {}
    for key, value in items:
        match = _BRACKET_KEY_RE.match(key)
        if match is None:
            params[key] = value
            continue
        base, sub = match.groups()
        if sub == "":
            current = params.get(base)
            if not isinstance(current, list):
                current = []
                params[base] = current
            current.append(value)
        else:
            current = params.get(base)
            if not isinstance(current, dict):
                current = {}
                params[base] = current
            current[sub] = value
    return params


def is_mobile_user_agent(user_agent: str, ch_ua_mobile: str | None = None) -> bool:
    """Device sniffing: the client hint wins, then User-Agent markers."""
    if ch_ua_mobile is not None:
        return ch_ua_mobile.strip() == "?1"
    return any(marker in user_agent for marker in _MOBILE_UA_MARKERS)


def _wants_json(headers: Mapping[str, str]) -> bool:
    accept = headers.get("accept", "").lower()
    content_type = headers.get("content-type", "").lower()
    return "application/json" in accept or content_type.startswith("application/json")


async def _read_form(request: Request) -> dict[str, Any]:
    """Read form fields; uploaded files are not request variables."""
    try:
        form = await request.form()
    except Exception as exc:
        logger.debug("request_body_unreadable", error=str(exc))
        return {}
    return collect_params(
        (key, value) for key, value in form.multi_items() if not isinstance(value, UploadFile)
    )
