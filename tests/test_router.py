"""Tests for Router dispatch."""

import pytest

from hellosrv import HttpResponse, Router

pytestmark = pytest.mark.anyio


async def ok(_req):
    return HttpResponse.text("ok\n")


async def created(_req):
    return HttpResponse.text("created\n", status=201)


async def boom(_req):
    raise RuntimeError("kaboom")


class TestRouter:
    """Test Router functionality."""

    async def test_exact_match(self, make_request):
        router = Router({("GET", "/a"): ok})
        resp = await router.dispatch(make_request("/a"))
        assert resp.status == 200
        assert resp.body == b"ok\n"

    async def test_method_is_case_insensitive(self, make_request):
        router = Router()
        router.add("get", "/a", ok)
        resp = await router.dispatch(make_request("/a", method="GET"))
        assert resp.status == 200

    async def test_not_found(self, make_request):
        router = Router({("GET", "/a"): ok})
        resp = await router.dispatch(make_request("/missing"))
        assert resp.status == 404
        assert resp.body == b"404 page not found\n"

    async def test_method_not_allowed(self, make_request):
        router = Router({("GET", "/a"): ok, ("POST", "/a"): created})
        resp = await router.dispatch(make_request("/a", method="DELETE"))
        assert resp.status == 405
        assert resp.headers["allow"] == "GET, OPTIONS, POST"

    async def test_options_lists_methods(self, make_request):
        router = Router({("GET", "/a"): ok})
        resp = await router.dispatch(make_request("/a", method="OPTIONS"))
        assert resp.status == 200
        assert resp.headers["allow"] == "GET, OPTIONS"
        assert resp.body == b""

    async def test_trailing_slash_redirect_get(self, make_request):
        router = Router({("GET", "/health"): ok})
        resp = await router.dispatch(make_request("/health/"))
        assert resp.status == 301
        assert resp.headers["location"] == "/health"

    async def test_trailing_slash_redirect_other_methods(self, make_request):
        router = Router({("POST", "/items/"): created})
        resp = await router.dispatch(make_request("/items", method="POST"))
        assert resp.status == 308
        assert resp.headers["location"] == "/items/"

    async def test_root_is_not_redirected(self, make_request):
        router = Router({("GET", "/health"): ok})
        resp = await router.dispatch(make_request("/"))
        assert resp.status == 404

    async def test_handler_error_becomes_500(self, make_request, caplog):
        router = Router({("GET", "/boom"): boom})
        resp = await router.dispatch(make_request("/boom"))
        assert resp.status == 500
        assert b"kaboom" in resp.body
        assert "handler for GET /boom failed" in caplog.text

    def test_duplicate_route_rejected(self):
        router = Router({("GET", "/a"): ok})
        with pytest.raises(ValueError, match="already registered"):
            router.get("/a", created)

    def test_routes_is_a_copy(self):
        router = Router({("GET", "/a"): ok})
        router.routes[("GET", "/b")] = ok
        assert ("GET", "/b") not in router.routes
