"""Runtime configuration for the proxy.

Everything is read from the environment (optionally seeded from a ``.env``
file). The route table itself is a JSON object mapping route patterns to
upstream targets, e.g.::

    ROUTES='{"/api/*": "https://backend.example/*", "/static/*": "https://cdn.example/*"}'

A document that fails to parse never stops the gateway: it is logged and an
empty table is used, so every request answers 404 until it is fixed.
"""
import os
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from dotenv import load_dotenv
from redis.asyncio import Redis
from route_proxy.core.errors import RouteConfigInvalid
from route_proxy.core.routing_table import RouteTable

logger = logging.getLogger(__name__)

DEFAULT_REDIS_KEY = "route_config"


@dataclass(frozen=True)
class Settings:
    routes: RouteTable
    redis_url: Optional[str] = None
    redis_key: str = DEFAULT_REDIS_KEY
    upstream_timeout: Optional[float] = None
    reload_min_interval: float = 10.0
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"


def parse_routes(raw: Any) -> RouteTable:
    """Validate an already-decoded or JSON-encoded route document.

    Raises ``RouteConfigInvalid`` when the document is not an object of
    string patterns to string targets.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise RouteConfigInvalid(f"Route config is not valid JSON: {e}") from e

    if not isinstance(raw, Mapping):
        raise RouteConfigInvalid(f"Route config must be a JSON object, got {type(raw).__name__}")

    for pattern, target in raw.items():
        if not isinstance(pattern, str) or not isinstance(target, str):
            raise RouteConfigInvalid(f"Route {pattern!r} must map a string to a string")
    return RouteTable(raw)


def load_routes(raw: Optional[str]) -> RouteTable:
    if not raw:
        return RouteTable()
    try:
        return parse_routes(raw)
    except RouteConfigInvalid as e:
        logger.error(f"Failed to parse ROUTES, starting with no routes: {e.message}")
        return RouteTable()


async def fetch_routes(redis: Redis, key: str = DEFAULT_REDIS_KEY) -> RouteTable:
    """Read the route document stored under ``key``; raises ``RouteConfigInvalid``."""
    raw = await redis.get(key)
    if raw is None:
        raise RouteConfigInvalid(f"No route config stored under {key!r}")
    return parse_routes(raw)


def _optional_float(name: str, env: Mapping[str, str]) -> Optional[float]:
    value = env.get(name)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}")
        return None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    if env is None:
        load_dotenv()
        env = os.environ

    reload_min_interval = _optional_float("RELOAD_MIN_INTERVAL", env)
    port = env.get("PORT") or "8080"
    return Settings(
        routes=load_routes(env.get("ROUTES")),
        redis_url=env.get("REDIS_URL") or None,
        redis_key=env.get("ROUTES_REDIS_KEY") or DEFAULT_REDIS_KEY,
        upstream_timeout=_optional_float("UPSTREAM_TIMEOUT", env),
        reload_min_interval=10.0 if reload_min_interval is None else reload_min_interval,
        host=env.get("HOST") or "0.0.0.0",
        port=int(port),
        log_level=env.get("LOG_LEVEL") or "INFO",
    )
