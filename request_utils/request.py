"""One-stop helper bundling classification, headers and variables for a request."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from request_utils.classifier import RequestClassifier, RequestKind
from request_utils.config.loader import RequestUtilsSettings
from request_utils.context import RequestContext
from request_utils.headers import HeaderAccessor
from request_utils.store import SanitizedVariableStore, VariableSource


class Request:
    """Request helpers bound to a single RequestContext.

    Create one per request; the variable cache lives and dies with it.
    """

    def __init__(self, context: RequestContext, settings: RequestUtilsSettings | None = None) -> None:
        self.context = context
        self.headers = HeaderAccessor(context)
        self.classifier = RequestClassifier(context, self.headers, settings)
        self.store = SanitizedVariableStore(context, settings)

    # Request type detection

    def is_(self, type_or_types: str | RequestKind | Iterable[str | RequestKind]) -> bool:
        return self.classifier.is_(type_or_types)

    def is_admin(self) -> bool:
        return self.classifier.is_admin()

    def is_ajax(self) -> bool:
        return self.classifier.is_ajax()

    def is_cron(self) -> bool:
        return self.classifier.is_cron()

    def is_rest(self) -> bool:
        return self.classifier.is_rest()

    def is_json(self) -> bool:
        return self.classifier.is_json()

    def is_cli(self) -> bool:
        return self.classifier.is_cli()

    def is_frontend(self) -> bool:
        return self.classifier.is_frontend()

    def is_editor(self) -> bool:
        return self.classifier.is_editor()

    def is_api(self) -> bool:
        return self.classifier.is_api()

    def is_mobile(self) -> bool:
        return self.classifier.is_mobile()

    def is_desktop(self) -> bool:
        return self.classifier.is_desktop()

    def is_ssl(self) -> bool:
        return self.classifier.is_ssl()

    def is_cloudflare(self) -> bool:
        return self.classifier.is_cloudflare()

    # HTTP method

    def get_method(self) -> str:
        return self.headers.get_method()

    def is_method(self, method_or_methods: str | Iterable[str]) -> bool:
        return self.classifier.is_method(method_or_methods)

    # Headers

    def get_header(self, name: str, default: Any = None) -> Any:
        return self.headers.get_header(name, default)

    def has_header(self, name: str) -> bool:
        return self.headers.has_header(name)

    def get_client_ip(self) -> str:
        return self.headers.get_client_ip()

    # Request data

    def get_var(self, key: str, default: Any = None, method: str | VariableSource = VariableSource.REQUEST) -> Any:
        return self.store.get_var(key, default, method)

    def has_var(self, key: str, method: str | VariableSource = VariableSource.REQUEST) -> bool:
        return self.store.has_var(key, method)

    def get_current_page(self, param: str | None = None) -> int:
        return self.store.get_current_page(param)

    def get_request_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.store.get_request_vars(refresh)

    def get_post_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.store.get_post_vars(refresh)

    def get_get_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.store.get_get_vars(refresh)
