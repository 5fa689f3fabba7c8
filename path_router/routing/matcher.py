import logging
from typing import Optional, Union
from urllib.parse import urlsplit

from starlette.datastructures import URL

from path_router.models import Match, RouteEntry, RouteTable
from path_router.routing.resolver import resolve_target

logger = logging.getLogger("uvicorn.error")


def pattern_matches(entry: RouteEntry, path: str) -> bool:
    """
    ``P/*`` matches ``P``, ``P/`` and anything under ``P/``; a pattern without
    the wildcard matches only the exact path.
    """
    if entry.is_prefix:
        prefix = entry.prefix
        return path == prefix or path == f"{prefix}/" or path.startswith(f"{prefix}/")
    return path == entry.pattern


def find_route(path: str, route_table: RouteTable) -> Optional[RouteEntry]:
    """First entry in declaration order whose pattern matches ``path``."""
    for entry in route_table:
        if pattern_matches(entry, path):
            return entry
    return None


def match_route(url: Union[str, URL], route_table: RouteTable) -> Optional[Match]:
    """
    Match a request URL against the route table.

    Returns None when no route applies, so the caller can fall through to its
    own 404 or to another handler.
    """
    path = urlsplit(str(url)).path or "/"
    entry = find_route(path, route_table)
    if entry is None:
        logger.debug(f"[Router] No route for {path}")
        return None

    return Match(
        target_url=resolve_target(entry, url),
        mode=entry.mode,
        entry=entry,
    )
