"""Cached, sanitized access to request variables."""

from __future__ import annotations

import enum
import re
from typing import Any

import structlog

from request_utils.config.loader import RequestUtilsSettings, get_settings
from request_utils.context import RequestContext
from request_utils.sanitize import sanitize_key, sanitize_value

logger = structlog.get_logger()

_LEADING_DIGITS_RE = re.compile(r"^\s*([0-9]+)")

# Pages saturate at the largest 64-bit integer, as PHP intval() does
_MAX_PAGE = 2**63 - 1
_MAX_PAGE_DIGITS = len(str(_MAX_PAGE))

_MISSING = object()


def _copy_value(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


class VariableSource(str, enum.Enum):
    """Parameter sources: query string, form body, or both combined."""

    GET = "get"
    POST = "post"
    REQUEST = "request"

    @classmethod
    def resolve(cls, method: str | VariableSource) -> VariableSource:
        """Map a method name to a source; unknown names mean REQUEST."""
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).lower())
        except ValueError:
            return cls.REQUEST


class SanitizedVariableStore:
    """Per-context snapshots of sanitized request variables.

    Each source is sanitized on first access and cached until a caller asks
    for a refresh. The cache is a snapshot: later changes to the context's
    raw sources are invisible until ``refresh=True``. When two raw keys
    sanitize to the same key, the later one wins.

    One store per request context; the cache is not shared across requests.
    """

    def __init__(self, context: RequestContext, settings: RequestUtilsSettings | None = None) -> None:
        self.context = context
        self._settings = settings
        self._cache: dict[VariableSource, dict[str, Any]] = {}

    @property
    def settings(self) -> RequestUtilsSettings:
        return self._settings or get_settings()

    def _raw_source(self, source: VariableSource) -> dict[str, Any]:
        if source is VariableSource.GET:
            return self.context.query
        if source is VariableSource.POST:
            return self.context.body
        return self.context.params

    def _snapshot(self, source: VariableSource, refresh: bool = False) -> dict[str, Any]:
        cached = self._cache.get(source)
        if cached and not refresh:
            return cached

        sanitized: dict[str, Any] = {}
        for key, value in self._raw_source(source).items():
            sanitized[sanitize_key(key)] = sanitize_value(value)

        self._cache[source] = sanitized
        logger.debug("request_vars_built", source=source.value, count=len(sanitized), refresh=refresh)
        return sanitized

    def get_vars(self, source: str | VariableSource = VariableSource.REQUEST, refresh: bool = False) -> dict[str, Any]:
        """Return the sanitized mapping for a source, building it if needed.

        Callers get a copy; changing it never touches the cached snapshot.
        """
        snapshot = self._snapshot(VariableSource.resolve(source), refresh)
        return {key: _copy_value(value) for key, value in snapshot.items()}

    def get_get_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.get_vars(VariableSource.GET, refresh)

    def get_post_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.get_vars(VariableSource.POST, refresh)

    def get_request_vars(self, refresh: bool = False) -> dict[str, Any]:
        return self.get_vars(VariableSource.REQUEST, refresh)

    def get_var(self, key: str, default: Any = None, method: str | VariableSource = VariableSource.REQUEST) -> Any:
        """Sanitized value for key, or default (returned as given) when absent."""
        value = self._snapshot(VariableSource.resolve(method)).get(sanitize_key(key), _MISSING)
        if value is _MISSING:
            return default
        return _copy_value(value)

    def has_var(self, key: str, method: str | VariableSource = VariableSource.REQUEST) -> bool:
        return sanitize_key(key) in self._snapshot(VariableSource.resolve(method))

    def get_current_page(self, param: str | None = None) -> int:
        """Page number from the query string, never below 1.

        Only leading decimal digits count, so signed or non-numeric values
        read as 0 and clamp to the first page.
        """
        param = param or self.settings.page_param
        raw = self.context.query.get(param)
        if not isinstance(raw, (str, int)) or isinstance(raw, bool):
            return 1
        if isinstance(raw, int):
            return max(1, min(raw, _MAX_PAGE))
        match = _LEADING_DIGITS_RE.match(raw)
        digits = match.group(1).lstrip("0") if match else ""
        if len(digits) > _MAX_PAGE_DIGITS:
            page = _MAX_PAGE
        else:
            page = min(abs(int(digits or "0")), _MAX_PAGE)
        return max(1, page)
