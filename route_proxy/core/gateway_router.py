import asyncio
import httpx
import logging
from starlette.types import Scope, Receive, Send
from starlette.responses import PlainTextResponse, Response
from typing import Callable, Mapping, Optional, Union
from .errors import ClientDisconnected, RouteProxyError, NoRouteMatched, UpstreamUnreachable
from .header_rewrite import HeaderRewriter, relay_headers
from .path_router import PathRouter
from .routing_table import RouteTable
from .trace import trace_id_var
from .url_rewrite import build_upstream_url

logger = logging.getLogger(__name__)

BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class GatewayRouter:
    """ASGI app forwarding each request to the upstream of its longest matching route."""

    def __init__(
        self,
        route_table: Union[RouteTable, Mapping[str, str], None] = None,
        path_router: Optional[PathRouter] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        header_rewriter: Optional[HeaderRewriter] = None,
    ):
        if path_router is None:
            if route_table is not None and not isinstance(route_table, RouteTable):
                route_table = RouteTable(route_table)
            path_router = PathRouter(route_table)
        self.path_router = path_router
        self.timeout = httpx.Timeout(timeout)
        self.client = client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=False)
        self.header_rewriter = header_rewriter or HeaderRewriter()

        self.cleanup_callbacks: list[Callable] = []
        self.add_cleanup_callback(self.client.aclose)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        if scope["type"] != "http":
            await PlainTextResponse("Unsupported", status_code=400)(scope, receive, send)
            return

        await self._handle_http(scope, receive, send)

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send):
        path = self._request_path(scope)
        method = scope["method"]
        query = scope.get("query_string", b"").decode("latin-1")
        logger.info(f"Incoming request: {method} {path}" + (f"?{query}" if query else ""))

        try:
            response = await self._forward(scope, receive, method, path, query)
        except ClientDisconnected:
            logger.info(f"Client disconnected before the request body was read: {path}")
            return
        except NoRouteMatched as e:
            logger.warning(f"No route match for {e.path}")
            response = PlainTextResponse(e.message, status_code=e.status_code)
        except RouteProxyError as e:
            logger.error(f"{e.message} [{getattr(e, 'url', path)}]")
            response = PlainTextResponse(e.message, status_code=e.status_code)

        await response(scope, receive, send)

    async def _forward(self, scope: Scope, receive: Receive, method: str,
                       path: str, query: str) -> Response:
        match = self.path_router.match(path)
        if match is None:
            raise NoRouteMatched(path)

        url = build_upstream_url(match, query)
        logger.info(f"Proxying request to: {url} (route prefix {match.prefix!r})")

        headers = self.header_rewriter.rewrite(scope.get("headers", []), url, trace_id_var.get())
        body = None
        if method.upper() not in BODYLESS_METHODS:
            body = await self._read_body(receive)

        request = httpx.Request(
            method,
            url,
            headers=headers,
            content=body,
            extensions={"timeout": self.timeout.as_dict()},
        )
        status_code, raw_headers, content = await self._send(request)
        logger.info(f"Response from backend: {url} ({status_code})")
        return self._relay_response(status_code, raw_headers, content)

    def _request_path(self, scope: Scope) -> str:
        # match on the undecoded path so the remainder is forwarded as received
        raw_path = scope.get("raw_path")
        if raw_path:
            return raw_path.split(b"?", 1)[0].decode("latin-1")
        return scope["path"]

    async def _read_body(self, receive: Receive) -> bytes:
        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnected()
            body += message.get("body", b"")
            more_body = message.get("more_body", False)
        return body

    async def _send(self, request: httpx.Request) -> tuple[int, list[tuple[bytes, bytes]], bytes]:
        url = str(request.url)
        try:
            upstream = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            raise UpstreamUnreachable(url, str(e) or type(e).__name__) from e

        try:
            content = b"".join([chunk async for chunk in upstream.aiter_raw()])
        except httpx.TransportError as e:
            raise UpstreamUnreachable(url, str(e) or type(e).__name__) from e
        finally:
            await upstream.aclose()

        return upstream.status_code, list(upstream.headers.raw), content

    def _relay_response(self, status_code: int, raw_headers: list[tuple[bytes, bytes]],
                        content: bytes) -> Response:
        headers = relay_headers(raw_headers)
        if content and not any(k.lower() == b"content-length" for k, _ in headers):
            headers.append((b"content-length", str(len(content)).encode("latin-1")))

        response = Response(content=content, status_code=status_code)
        response.raw_headers = headers
        return response

    def add_cleanup_callback(self, cb: Callable) -> None:
        self.cleanup_callbacks.append(cb)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info(f"[gateway] Started with {len(self.path_router.route_table)} routes.")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                for cb in self.cleanup_callbacks:
                    result = cb()
                    if asyncio.iscoroutine(result): await result
                logger.info("[gateway] Shutdown complete. All resources closed.")
                await send({"type": "lifespan.shutdown.complete"})
                return
