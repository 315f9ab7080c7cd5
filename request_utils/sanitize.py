"""Key and text sanitizers applied to request variables and header values."""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from typing import Any

# Comprehensive control character pattern covering:
# C0 controls (\x00-\x1f), DEL (\x7f), C1 controls (\x80-\x9f),
# Unicode line/paragraph separators (\u2028-\u2029),
# bidi overrides (\u200b-\u200f, \u202a-\u202e, \u2066-\u2069),
# zero-width no-break space / BOM (\ufeff).
CONTROL_CHARS_RE = re.compile(
    r"[\x00-\x1f\x7f-\x9f\u2028\u2029\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff]"
)

_KEY_WHITESPACE_RE = re.compile(r"\s")
_KEY_UNSAFE_RE = re.compile(r"[^a-z0-9_\-]")

# A "<" whose run ends at the next "<", a ">" or end of string
_LESS_THAN_RE = re.compile(r"<[^>]*?((?=<)|>|$)", re.DOTALL)
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>", re.DOTALL)
_WHITESPACE_RUN_RE = re.compile(r"[\r\n\t ]+")
_PERCENT_OCTET_RE = re.compile(r"%[a-f0-9]{2}", re.IGNORECASE)
_SPACE_RUN_RE = re.compile(r" +")


def strip_control_chars(value: str) -> str:
    """Strip all control characters from a string."""
    return CONTROL_CHARS_RE.sub("", value)


def sanitize_key(key: Any) -> str:
    """Reduce a raw key to lowercase ``[a-z0-9_-]``.

    Inner whitespace becomes ``_`` first, the way PHP names superglobal keys,
    so ``"Search Term"`` maps to ``"search_term"``. Anything else outside the
    charset is dropped, not escaped.
    """
    key = _KEY_WHITESPACE_RE.sub("_", str(key).strip())
    return _KEY_UNSAFE_RE.sub("", key.lower())


def _escape_lone_less_than(match: re.Match[str]) -> str:
    text = match.group(0)
    if ">" in text:
        return text
    return html.escape(text)


def _strip_all_tags(value: str) -> str:
    value = _SCRIPT_STYLE_RE.sub("", value)
    return _TAG_RE.sub("", value).strip()


def sanitize_text_field(value: Any) -> str:
    """Sanitize a single scalar for safe display or storage.

    - Stringifies non-strings (``None`` becomes ``""``); composites become ``""``
    - Drops invalid UTF-8 (lone surrogates)
    - Removes script/style blocks and tags, keeping a stray ``<`` as ``&lt;``
    - Collapses line breaks, tabs and space runs, strips control characters
    - Removes percent-encoded octets
    - Trims
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set, Mapping)):
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", "ignore")

    filtered = str(value).encode("utf-8", "ignore").decode("utf-8")

    if "<" in filtered:
        filtered = _LESS_THAN_RE.sub(_escape_lone_less_than, filtered)
        filtered = _strip_all_tags(filtered)
        filtered = filtered.replace("<\n", "&lt;\n")

    filtered = _WHITESPACE_RUN_RE.sub(" ", filtered)
    filtered = strip_control_chars(filtered).strip()

    found = False
    while True:
        match = _PERCENT_OCTET_RE.search(filtered)
        if match is None:
            break
        filtered = filtered.replace(match.group(0), "")
        found = True
    if found:
        filtered = _SPACE_RUN_RE.sub(" ", filtered).strip()

    return filtered


def sanitize_value(value: Any) -> str | list[str] | dict[Any, str]:
    """Sanitize a raw request value.

    Lists are sanitized element-wise (order and arity preserved) and mappings
    value-wise (keys preserved). Anything nested deeper collapses to ``""``.
    """
    if isinstance(value, (list, tuple)):
        return [sanitize_text_field(item) for item in value]
    if isinstance(value, Mapping):
        return {k: sanitize_text_field(v) for k, v in value.items()}
    return sanitize_text_field(value)
