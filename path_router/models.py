from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple

WILDCARD_SUFFIX = "/*"


class RouteMode(Enum):
    """How a matched request is served."""

    PROXY = "proxy"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class RouteEntry:
    """A route pattern with its target spec already parsed."""

    pattern: str
    mode: RouteMode
    target: str

    @property
    def is_prefix(self) -> bool:
        return self.pattern.endswith(WILDCARD_SUFFIX)

    @property
    def prefix(self) -> str:
        """The pattern without its trailing ``/*``."""
        if self.is_prefix:
            return self.pattern[: -len(WILDCARD_SUFFIX)]
        return self.pattern


@dataclass(frozen=True)
class RouteTable:
    """Ordered route entries. Declaration order is match priority."""

    entries: Tuple[RouteEntry, ...] = ()

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Match:
    target_url: str
    mode: RouteMode
    entry: RouteEntry


@dataclass(frozen=True)
class RewriteContext:
    """What the HTML rewriter needs to map upstream URLs back under the proxy.

    ``target_base`` is the upstream origin followed by the base path the route
    points at (no trailing slash), e.g. ``https://u.example/base``.
    """

    source_path_prefix: str
    source_origin: str
    target_base: str
