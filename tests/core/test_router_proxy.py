import pytest
import httpx
from httpx import ASGITransport
from asgi_lifespan import LifespanManager
from route_proxy.core.gateway_router import GatewayRouter
from route_proxy.core.path_router import PathRouter
from route_proxy.core.routing_table import RouteTable
from tests.fixtures.mock_backends import RecordingUpstream, echo_request_backend, fake_users_backend


@pytest.mark.anyio
async def test_proxy_users_route_returns_mocked_response():
    backend_url = "http://fake-users"
    path_router = PathRouter(RouteTable({"/users/*": f"{backend_url}/*"}))

    transport = ASGITransport(app=fake_users_backend)
    fake_client = httpx.AsyncClient(transport=transport, base_url=backend_url)

    app = GatewayRouter(path_router=path_router, client=fake_client)

    async with LifespanManager(app):
        test_client = httpx.AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test")
        res = await test_client.get("/users/")
        assert res.status_code == 200
        assert res.json() == {"status": "ok", "source": "users"}


@pytest.mark.anyio
async def test_get_with_query_is_rewritten_onto_backend():
    upstream = RecordingUpstream(body=b'{"id": 5}', headers=[("content-type", "application/json")])
    app = GatewayRouter({"/api/*": "https://backend.example/*"}, client=upstream.client())

    async with LifespanManager(app):
        async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            res = await client.get("/api/users?id=5")

    assert len(upstream.requests) == 1
    assert upstream.last.method == "GET"
    assert str(upstream.last.url) == "https://backend.example/users?id=5"
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/json"
    assert res.json() == {"id": 5}


@pytest.mark.anyio
async def test_remainder_splice_is_exact_end_to_end():
    upstream = RecordingUpstream()
    app = GatewayRouter({"/api/*": "https://up.example/svc*"}, client=upstream.client())

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/api/v1/users?x=1")

    assert str(upstream.last.url) == "https://up.example/svcv1/users?x=1"


@pytest.mark.anyio
async def test_longer_prefix_routes_to_its_own_upstream():
    upstream = RecordingUpstream()
    app = GatewayRouter({"/a/*": "http://x/", "/a/b/*": "http://y/"}, client=upstream.client())

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/a/b/c")
        await client.get("/a/z")

    assert [str(r.url) for r in upstream.requests] == ["http://y/c", "http://x/z"]


@pytest.mark.anyio
async def test_encoded_path_is_forwarded_without_decoding():
    upstream = RecordingUpstream()
    app = GatewayRouter({"/files/*": "http://store/*"}, client=upstream.client())

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/files/a%20b%2Fc")

    assert upstream.last.url.raw_path == b"/a%20b%2Fc"


@pytest.mark.anyio
async def test_non_standard_method_is_forwarded_unchanged():
    backend_url = "http://echo"
    app = GatewayRouter(
        {"/dav/*": f"{backend_url}/*"},
        client=httpx.AsyncClient(transport=ASGITransport(app=echo_request_backend)),
    )

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        res = await client.request("PROPFIND", "/dav/docs", content=b"<propfind/>")

    assert res.json()["method"] == "PROPFIND"
    assert res.json()["path"] == "/docs"
    assert res.json()["body"] == "<propfind/>"
