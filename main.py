import uvicorn
from redis import asyncio as redis
from route_proxy.config.settings import load_settings
from route_proxy.core.gateway_router import GatewayRouter
from route_proxy.core.trace import TraceMiddleware
from route_proxy.core.logging_setup import configure_logging
from route_proxy.core.admin_router import AdminRouter
from route_proxy.core.mount_admin_first import MountAdminFirst

# Reads .env, then the process environment
settings = load_settings()
configure_logging(settings.log_level)

redis_client = redis.from_url(settings.redis_url, decode_responses=True) if settings.redis_url else None

# Base gateway app
core_gateway = GatewayRouter(settings.routes, timeout=settings.upstream_timeout)
if redis_client is not None:
    core_gateway.add_cleanup_callback(redis_client.aclose)

gateway_app = TraceMiddleware(core_gateway)

# Admin gets direct access to the unwrapped GatewayRouter instance
admin_app = AdminRouter(
    core_gateway,
    redis=redis_client,
    redis_key=settings.redis_key,
    reload_min_interval=settings.reload_min_interval,
)

# Mount admin + gateway stack
app = MountAdminFirst(admin_app, gateway_app)

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
