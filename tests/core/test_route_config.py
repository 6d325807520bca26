import json
import logging
import pytest
import fakeredis
from route_proxy.config.settings import Settings, fetch_routes, load_routes, load_settings, parse_routes
from route_proxy.core.errors import RouteConfigInvalid
from route_proxy.core.routing_table import RouteTable


def test_parse_routes_keeps_declared_order():
    raw = '{"/b/*": "http://b/*", "/a/*": "http://a/*", "/c": "http://c/"}'
    table = parse_routes(raw)
    assert [entry.pattern for entry in table] == ["/b/*", "/a/*", "/c"]


def test_parse_routes_accepts_decoded_mapping():
    assert parse_routes({"/api/*": "http://api/*"}) == RouteTable({"/api/*": "http://api/*"})


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    '["/api", "http://api/"]',
    '{"/api/*": 42}',
    '{"/api/*": {"backend": "http://api/"}}',
])
def test_parse_routes_rejects_bad_documents(raw):
    with pytest.raises(RouteConfigInvalid):
        parse_routes(raw)


def test_invalid_routes_degrade_to_empty_table(caplog):
    caplog.set_level(logging.ERROR)
    table = load_routes("{broken")
    assert len(table) == 0
    assert "Failed to parse ROUTES" in caplog.text


def test_missing_routes_is_an_empty_table():
    assert len(load_routes(None)) == 0
    assert len(load_routes("")) == 0


def test_load_settings_from_environment_mapping():
    settings = load_settings({
        "ROUTES": json.dumps({"/api/*": "https://backend.example/*"}),
        "REDIS_URL": "redis://localhost:6379/0",
        "ROUTES_REDIS_KEY": "routes:v2",
        "UPSTREAM_TIMEOUT": "2.5",
        "RELOAD_MIN_INTERVAL": "0",
        "PORT": "9000",
        "LOG_LEVEL": "debug",
    })

    assert settings.routes.as_dict() == {"/api/*": "https://backend.example/*"}
    assert settings.redis_url == "redis://localhost:6379/0"
    assert settings.redis_key == "routes:v2"
    assert settings.upstream_timeout == 2.5
    assert settings.reload_min_interval == 0.0
    assert settings.port == 9000
    assert settings.log_level == "debug"


def test_load_settings_defaults():
    settings = load_settings({})
    assert settings == Settings(routes=RouteTable())
    assert settings.upstream_timeout is None
    assert settings.reload_min_interval == 10.0
    assert (settings.host, settings.port) == ("0.0.0.0", 8080)


def test_non_numeric_timeout_is_ignored():
    assert load_settings({"UPSTREAM_TIMEOUT": "soon"}).upstream_timeout is None


@pytest.mark.anyio
async def test_fetch_routes_reads_kv_store():
    redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    await redis.set("route_config", json.dumps({"/api/*": "http://api/*"}))

    table = await fetch_routes(redis)
    assert table.as_dict() == {"/api/*": "http://api/*"}


@pytest.mark.anyio
async def test_fetch_routes_missing_key_is_invalid():
    redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    with pytest.raises(RouteConfigInvalid):
        await fetch_routes(redis, "absent")
