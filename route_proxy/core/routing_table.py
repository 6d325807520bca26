from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Union

WILDCARD = "*"


@dataclass(frozen=True)
class RouteEntry:
    pattern: str
    target: str

    @property
    def prefix(self) -> str:
        return self.pattern.rstrip(WILDCARD)

    @property
    def target_base(self) -> str:
        return self.target.rstrip(WILDCARD)


@dataclass(frozen=True)
class MatchResult:
    prefix: str
    target_base: str
    remainder: str


class RouteTable:
    """Ordered, read-only collection of route entries.

    Declared order matters only when two matching prefixes have the same
    length: the one declared first wins. A pattern declared twice keeps its
    first position and its last target.
    """

    __slots__ = ("_entries",)

    def __init__(self, routes: Union[Mapping[str, str], Iterable[tuple[str, str]], None] = None):
        if routes is None:
            routes = ()
        items = routes.items() if isinstance(routes, Mapping) else routes
        merged: dict[str, str] = {}
        for pattern, target in items:
            merged[pattern] = target
        self._entries = tuple(RouteEntry(p, t) for p, t in merged.items())

    @property
    def entries(self) -> tuple[RouteEntry, ...]:
        return self._entries

    def as_dict(self) -> dict[str, str]:
        return {entry.pattern: entry.target for entry in self._entries}

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RouteTable):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"RouteTable({self.as_dict()!r})"


def longest_prefix_match(table: RouteTable, path: str) -> Optional[MatchResult]:
    best: Optional[RouteEntry] = None
    best_len = -1
    for entry in table:
        prefix = entry.prefix
        # strict '>' keeps the earliest declared entry on equal lengths
        if path.startswith(prefix) and len(prefix) > best_len:
            best = entry
            best_len = len(prefix)

    if best is None:
        return None
    return MatchResult(
        prefix=best.prefix,
        target_base=best.target_base,
        remainder=path[best_len:],
    )
