import time
import logging
from asyncio import Lock
from typing import Optional
from .routing_table import MatchResult, RouteTable, longest_prefix_match

logger = logging.getLogger(__name__)


class PathRouter:
    def __init__(self, route_table: Optional[RouteTable] = None):
        self.route_table = route_table if route_table is not None else RouteTable()
        self.last_reload = 0.0
        self.lock = Lock()

    def match(self, path: str) -> Optional[MatchResult]:
        # a reload swaps the reference, so read it once per request
        table = self.route_table
        return longest_prefix_match(table, path)

    async def update_route_table(self, new_routes: RouteTable) -> None:
        async with self.lock:
            self.route_table = new_routes
            self.last_reload = time.time()
        logger.info(f"Route table replaced ({len(new_routes)} routes)")
