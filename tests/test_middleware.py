"""Request helper middleware tests."""

from __future__ import annotations

import re

import structlog
from starlette.applications import Starlette
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from request_utils.middleware import RequestUtilsMiddleware, get_request_helper
from request_utils.request import Request


async def _describe(request: StarletteRequest) -> JSONResponse:
    helper = get_request_helper(request)
    return JSONResponse(
        {
            "is_helper": isinstance(helper, Request),
            "frontend": helper.is_frontend(),
            "admin": helper.is_admin(),
            "api": helper.is_api(),
            "editor": helper.is_editor(),
            "ssl": helper.is_ssl(),
            "client_ip": helper.get_client_ip(),
            "method": helper.get_method(),
            "vars": helper.get_request_vars(),
            "page": helper.get_current_page(),
            "log_context": structlog.contextvars.get_contextvars(),
        }
    )


def _make_client(context_overrides=None) -> TestClient:
    routes = [
        Route("/{path:path}", _describe, methods=["GET", "POST"]),
    ]
    app = Starlette(routes=routes)
    app.add_middleware(RequestUtilsMiddleware, context_overrides=context_overrides)
    return TestClient(app)


def test_helper_attached_for_frontend_request():
    """A plain page view is classified frontend."""
    with _make_client() as client:
        resp = client.get("/sample-page/?paged=3&Search%20Term=%3Cb%3Ehi%3C/b%3E")

    data = resp.json()
    assert resp.status_code == 200
    assert data["is_helper"] is True
    assert data["frontend"] is True
    assert data["method"] == "GET"
    assert data["page"] == 3
    assert data["vars"]["search_term"] == "hi"


def test_response_carries_request_id():
    """The context request ID is echoed and bound to log context."""
    with _make_client() as client:
        resp = client.get("/")

    request_id = resp.headers["x-request-id"]
    assert re.match(r"^[0-9a-f]{8}$", request_id)
    assert resp.json()["log_context"]["request_id"] == request_id


def test_client_ip_from_forwarded_for():
    """Proxy headers are honoured for the client IP."""
    with _make_client() as client:
        resp = client.get("/", headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})

    data = resp.json()
    assert data["client_ip"] == "203.0.113.5"
    assert data["log_context"]["client_ip"] == "203.0.113.5"


def test_api_header_makes_request_non_frontend():
    with _make_client() as client:
        resp = client.get("/", headers={"Authorization": "Bearer abc"})

    data = resp.json()
    assert data["api"] is True
    assert data["frontend"] is False


def test_admin_path():
    with _make_client() as client:
        resp = client.get("/wp-admin/index.php")

    data = resp.json()
    assert data["admin"] is True
    assert data["editor"] is True
    assert data["frontend"] is False


def test_cloudflare_https_visitor():
    with _make_client() as client:
        resp = client.get("/", headers={"CF-Visitor": '{"scheme":"https"}'})

    assert resp.json()["ssl"] is True


def test_form_post_variables():
    """Form fields reach the sanitized request variables."""
    with _make_client() as client:
        resp = client.post("/", data={"Title": "  <em>Draft</em> ", "paged": "2"})

    data = resp.json()
    assert data["method"] == "POST"
    assert data["vars"]["title"] == "Draft"


def test_context_overrides_supply_authentication():
    """Hosts provide authentication, enabling editor detection on REST routes."""
    with _make_client(lambda request: {"user_is_authenticated": True}) as client:
        resp = client.get("/wp-json/wp/v2/block-renderer/core/archives")

    assert resp.json()["editor"] is True


def test_block_renderer_requires_authentication():
    with _make_client() as client:
        resp = client.get("/wp-json/wp/v2/block-renderer/core/archives")

    assert resp.json()["editor"] is False


def test_get_request_helper_without_middleware():
    """Requests that never passed the middleware have no helper."""

    async def endpoint(request):
        return JSONResponse({"helper": get_request_helper(request) is None})

    app = Starlette(routes=[Route("/", endpoint)])
    with TestClient(app) as client:
        assert client.get("/").json() == {"helper": True}
