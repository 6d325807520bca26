class RouteProxyError(Exception):
    """Base class for failures that end a proxied request.

    ``status_code`` is what the gateway answers with when the error reaches
    the request boundary.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RouteConfigInvalid(RouteProxyError):
    """The route table document could not be parsed."""


class NoRouteMatched(RouteProxyError):
    status_code = 404

    def __init__(self, path: str) -> None:
        super().__init__("No matching route found")
        self.path = path


class UpstreamURLInvalid(RouteProxyError):
    """TargetBase + remainder did not form an absolute http(s) URL."""

    status_code = 500

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Invalid Target URL: {reason}")
        self.url = url


class UpstreamUnreachable(RouteProxyError):
    status_code = 502

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Upstream unreachable: {reason}")
        self.url = url


class ClientDisconnected(Exception):
    """The caller went away before its request body was fully received."""
