"""Request classification and sanitized request data helpers."""

from request_utils.classifier import RequestClassifier, RequestKind
from request_utils.context import RequestContext
from request_utils.headers import HeaderAccessor
from request_utils.request import Request
from request_utils.store import SanitizedVariableStore, VariableSource

__all__ = [
    "HeaderAccessor",
    "Request",
    "RequestClassifier",
    "RequestContext",
    "RequestKind",
    "SanitizedVariableStore",
    "VariableSource",
]
