import time
import logging
from typing import Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.types import Scope, Receive, Send
from starlette.responses import PlainTextResponse, JSONResponse
from route_proxy.config.settings import DEFAULT_REDIS_KEY, fetch_routes
from route_proxy.core.errors import RouteConfigInvalid
from route_proxy.core.gateway_router import GatewayRouter

logger = logging.getLogger(__name__)


class AdminRouter:
    def __init__(
        self,
        router: GatewayRouter,
        redis: Optional[Redis] = None,
        redis_key: str = DEFAULT_REDIS_KEY,
        reload_min_interval: float = 10.0,
    ) -> None:
        self.router = router
        self.redis = redis
        self.redis_key = redis_key
        self.reload_min_interval = reload_min_interval

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        if path == "/__health":
            await self.health(scope, receive, send)
        elif path == "/__routes":
            await self.routes(scope, receive, send)
        elif path == "/__reload" and scope.get("method", "") == "POST":
            await self.reload_config(scope, receive, send)
        else:
            await PlainTextResponse("Not Found", status_code=404)(scope, receive, send)

    async def health(self, scope: Scope, receive: Receive, send: Send) -> None:
        await PlainTextResponse("OK")(scope, receive, send)

    async def routes(self, scope: Scope, receive: Receive, send: Send) -> None:
        await JSONResponse(self.router.path_router.route_table.as_dict())(scope, receive, send)

    async def reload_config(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self.redis is None:
            return await JSONResponse({"error": "No route store configured"},
                                      status_code=503)(scope, receive, send)

        path_router = self.router.path_router
        if time.time() - path_router.last_reload < self.reload_min_interval:
            return await JSONResponse({"error": "Reload too frequent"},
                                      status_code=429)(scope, receive, send)

        try:
            new_table = await fetch_routes(self.redis, self.redis_key)
        except RouteConfigInvalid as e:
            logger.error(f"Reload failed, keeping current routes: {e.message}")
            return await JSONResponse({"error": "Reload failed"},
                                      status_code=500)(scope, receive, send)
        except RedisError as e:
            logger.error(f"Reload failed, route store unavailable: {e}")
            return await JSONResponse({"error": "Reload failed"},
                                      status_code=500)(scope, receive, send)

        await path_router.update_route_table(new_table)
        return await JSONResponse({"status": "Reloaded", "routes":
                                   [entry.pattern for entry in new_table]})(scope, receive, send)
