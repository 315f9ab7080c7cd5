"""HTTP header lookup and client IP resolution."""

from __future__ import annotations

from typing import Any

import structlog

from request_utils.config.loader import get_header_policy
from request_utils.context import RequestContext
from request_utils.ip import is_public_ip
from request_utils.sanitize import sanitize_text_field

logger = structlog.get_logger()


class HeaderAccessor:
    """Read headers from a RequestContext through an ordered fallback chain.

    Lookup order for a header name (case-, dash- and underscore-insensitive):
    1. ``HTTP_<NAME>`` in the server environment
    2. the alias table for headers stored without the prefix
    3. the full header enumeration, when the host provides one

    Found values are sanitized; the caller's default is returned untouched.
    """

    def __init__(self, context: RequestContext) -> None:
        self.context = context

    def get_header(self, name: str, default: Any = None) -> Any:
        header = name.replace("-", "_").lower()
        server = self.context.server

        server_key = f"HTTP_{header.upper()}"
        if server_key in server:
            return sanitize_text_field(server[server_key])

        special = get_header_policy()["special_headers"]
        if header in special and special[header] in server:
            return sanitize_text_field(server[special[header]])

        if self.context.headers is not None:
            dashed = header.replace("_", "-")
            for key, value in self.context.headers.items():
                lower = key.lower()
                if lower == dashed or lower == header:
                    return sanitize_text_field(value)

        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def get_method(self) -> str:
        """Uppercased request method, GET when unknown."""
        method = self.context.server.get("REQUEST_METHOD") or self.context.method or "GET"
        return method.upper()

    def is_cloudflare(self) -> bool:
        return any(self.has_header(name) for name in get_header_policy()["cloudflare_headers"])

    def get_client_ip(self) -> str:
        """Resolve the client IP, most trusted source first.

        1. Cloudflare's CF-Connecting-IP, when the request came through Cloudflare
        2. the first proxy header whose (leftmost) address is a public IP
        3. the transport peer address, as reported
        """
        if self.is_cloudflare() and self.has_header("cf-connecting-ip"):
            logger.debug("client_ip_resolved", source="cf-connecting-ip")
            return self.get_header("cf-connecting-ip")

        for header in get_header_policy()["proxy_headers"]:
            ip = self.get_header(header)
            if not ip:
                continue
            # X-Forwarded-For: client, proxy1, proxy2
            if "," in ip:
                ip = ip.split(",")[0].strip()
            if is_public_ip(ip):
                logger.debug("client_ip_resolved", source=header)
                return ip

        # Peer address comes from the transport, not the client
        return self.context.remote_addr or self.context.server.get("REMOTE_ADDR", "")
