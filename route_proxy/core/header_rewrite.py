from typing import Iterable, Optional
import httpx

RawHeaders = list[tuple[bytes, bytes]]

# regenerated by httpx from the body that is actually forwarded
FRAMING_HEADERS = frozenset({b"content-length", b"transfer-encoding"})

# RFC 9110 hop-by-hop headers, never relayed back to the caller
HOP_BY_HOP_HEADERS = frozenset({
    b"connection", b"keep-alive", b"proxy-authenticate", b"proxy-authorization",
    b"te", b"trailer", b"trailers", b"transfer-encoding", b"upgrade",
})


def host_header_value(url: httpx.URL) -> bytes:
    """Host component of ``url`` only; any port is left out of the header."""
    host = url.raw_host
    if b":" in host:
        return b"[" + host + b"]"
    return host


class HeaderRewriter:
    """Copies inbound headers for the upstream request.

    Order and repeated headers are preserved. ``Host`` is always replaced by
    the host of the upstream URL.
    """

    def __init__(self, drop: Optional[Iterable[bytes]] = None) -> None:
        self.drop = frozenset(h.lower() for h in (drop if drop is not None else FRAMING_HEADERS))

    def rewrite(self, headers: Iterable[tuple[bytes, bytes]], url: httpx.URL,
                trace_id: Optional[str] = None) -> RawHeaders:
        host = host_header_value(url)
        rewritten: RawHeaders = []
        host_written = False
        for key, value in headers:
            name = key.lower()
            if name in self.drop:
                continue
            if name == b"host":
                if not host_written:
                    rewritten.append((b"host", host))
                    host_written = True
                continue
            if trace_id and name == b"x-trace-id":
                continue
            rewritten.append((key, value))

        if not host_written:
            rewritten.insert(0, (b"host", host))
        if trace_id:
            rewritten.append((b"x-trace-id", trace_id.encode("latin-1")))
        return rewritten


def relay_headers(headers: Iterable[tuple[bytes, bytes]]) -> RawHeaders:
    return [(k, v) for k, v in headers if k.lower() not in HOP_BY_HOP_HEADERS]
