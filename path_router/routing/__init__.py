from path_router.routing.config import (
    RouteConfigError,
    load_route_table,
    load_route_table_from_env,
    load_route_table_from_json,
)
from path_router.routing.matcher import match_route
from path_router.routing.resolver import (
    URLResolutionError,
    resolve_target,
    resolve_target_base,
)

__all__ = [
    "RouteConfigError",
    "URLResolutionError",
    "load_route_table",
    "load_route_table_from_env",
    "load_route_table_from_json",
    "match_route",
    "resolve_target",
    "resolve_target_base",
]
