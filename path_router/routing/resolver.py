import logging
from typing import Union
from urllib.parse import SplitResult, urlsplit, urlunsplit

from starlette.datastructures import URL

from path_router.models import WILDCARD_SUFFIX, RouteEntry

logger = logging.getLogger("uvicorn.error")


class URLResolutionError(ValueError):
    """Raised when a route resolves to something that is not an absolute URL."""


def parse_absolute_url(value: str) -> SplitResult:
    """Parse ``value`` and require a scheme and a host. Raises URLResolutionError."""
    try:
        parts = urlsplit(value)
        # .port validates the authority; it raises ValueError on garbage
        parts.port
    except ValueError as e:
        raise URLResolutionError(f"Invalid URL: {value}") from e

    if not parts.scheme or not parts.netloc or not parts.hostname:
        raise URLResolutionError(f"Invalid URL: {value}")

    if not parts.path:
        parts = parts._replace(path="/")
    return parts


def remaining_path(prefix: str, path: str) -> str:
    """The part of ``path`` past the route prefix, always starting with ``/``."""
    if path == prefix or path == f"{prefix}/":
        return "/"
    return path[len(prefix):]


def resolve_target(entry: RouteEntry, url: Union[str, URL]) -> str:
    """
    Compute the absolute target URL for a request that matched ``entry``.

    A ``/*`` in the target marks where the rest of the request path goes.
    Without it the target is used verbatim. The request's query string always
    replaces whatever query the target carries.
    """
    request_parts = urlsplit(str(url))
    path = request_parts.path or "/"

    if WILDCARD_SUFFIX in entry.target:
        base = parse_absolute_url(entry.target.replace(WILDCARD_SUFFIX, "", 1))
        rest = remaining_path(entry.prefix, path)
        final_path = rest if base.path == "/" else base.path + rest
        # Replace the path rather than resolving it as a reference so a
        # request path like //other-host can never change the target host.
        target = base._replace(path=final_path, fragment="")
    else:
        target = parse_absolute_url(entry.target)

    target = target._replace(query=request_parts.query)
    resolved = urlunsplit(target)
    logger.debug(f"[Router] {path} -> {resolved} ({entry.pattern})")
    return resolved


def resolve_target_base(entry: RouteEntry) -> str:
    """
    The upstream URL that the route prefix maps onto, without a trailing slash.

    For ``https://u.example/base/*`` this is ``https://u.example/base``; targets
    without a wildcard (or with a base path of ``/``) map onto the origin.
    """
    if WILDCARD_SUFFIX in entry.target:
        base = parse_absolute_url(entry.target.replace(WILDCARD_SUFFIX, "", 1))
        base_path = base.path.rstrip("/")
    else:
        base = parse_absolute_url(entry.target)
        base_path = ""
    return f"{base.scheme}://{base.netloc}{base_path}"
