"""
Loading of route tables.

A route table is declared as an ordered mapping of route patterns to target
specs, e.g.::

    {
        "/docs/*": "proxy:https://docs.example.com/*",
        "/old": "302:https://example.com/new",
    }

Target specs are parsed once here so matching never has to look at the
``proxy:`` / ``302:`` prefixes again.
"""

import logging
import os
from typing import Dict, Iterable, Mapping, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from path_router.models import RouteEntry, RouteMode, RouteTable

logger = logging.getLogger("uvicorn.error")

PROXY_PREFIX = "proxy:"
REDIRECT_PREFIX = "302:"

_ROUTES_ADAPTER = TypeAdapter(Dict[str, str])

RouteSource = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


class RouteConfigError(ValueError):
    """Raised when a route declaration cannot be turned into a RouteTable."""


def parse_target_spec(target_spec: str) -> Tuple[RouteMode, str]:
    """
    Split a target spec into its mode and target URL.

    Specs without a recognised prefix are redirects, with the spec used as-is.
    """
    if target_spec.startswith(PROXY_PREFIX):
        return RouteMode.PROXY, target_spec[len(PROXY_PREFIX):]
    if target_spec.startswith(REDIRECT_PREFIX):
        return RouteMode.REDIRECT, target_spec[len(REDIRECT_PREFIX):]
    return RouteMode.REDIRECT, target_spec


def parse_route_entry(pattern: str, target_spec: str) -> RouteEntry:
    if not isinstance(pattern, str) or not pattern.startswith("/"):
        raise RouteConfigError(f"Route pattern must be a path: {pattern!r}")
    if not isinstance(target_spec, str) or not target_spec:
        raise RouteConfigError(f"Route {pattern!r} has an empty target")

    mode, target = parse_target_spec(target_spec)
    if not target:
        raise RouteConfigError(f"Route {pattern!r} has an empty target")
    return RouteEntry(pattern=pattern, mode=mode, target=target)


def load_route_table(routes: RouteSource) -> RouteTable:
    """Build a RouteTable from a mapping or a sequence of (pattern, spec) pairs."""
    items = routes.items() if isinstance(routes, Mapping) else routes
    entries = tuple(parse_route_entry(pattern, spec) for pattern, spec in items)
    return RouteTable(entries=entries)


def load_route_table_from_json(raw: Union[str, bytes]) -> RouteTable:
    try:
        routes = _ROUTES_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise RouteConfigError(f"Invalid route configuration: {e}") from e
    return load_route_table(routes)


def load_route_table_from_env(routes_json: str, routes_file: str) -> RouteTable:
    """
    Load the route table from the ``ROUTES`` JSON value, falling back to the
    JSON file named by ``ROUTES_FILE``. Returns an empty table if neither is set.
    """
    if routes_json:
        table = load_route_table_from_json(routes_json)
        logger.info(f"[Router] Loaded {len(table)} routes from ROUTES")
        return table

    if routes_file:
        if not os.path.exists(routes_file):
            raise RouteConfigError(f"Route file not found: {routes_file}")
        with open(routes_file, "r", encoding="utf-8") as fh:
            table = load_route_table_from_json(fh.read())
        logger.info(f"[Router] Loaded {len(table)} routes from {routes_file}")
        return table

    logger.warning("[Router] No routes configured, every request will be a 404")
    return RouteTable()
