import httpx
from .errors import UpstreamURLInvalid
from .routing_table import MatchResult

ALLOWED_SCHEMES = ("http", "https")


def build_upstream_url(match: MatchResult, query: str = "") -> httpx.URL:
    """Splice the matched remainder onto the target base.

    The remainder is appended verbatim: no slash is inserted and nothing is
    decoded or re-encoded. An empty query string adds no ``?``.
    """
    raw = f"{match.target_base}{match.remainder}"
    if query:
        raw = f"{raw}?{query}"

    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as e:
        raise UpstreamURLInvalid(raw, str(e)) from e

    if url.scheme not in ALLOWED_SCHEMES:
        raise UpstreamURLInvalid(raw, f"unsupported scheme {url.scheme!r}")
    if not url.host:
        raise UpstreamURLInvalid(raw, "missing host")
    return url
