import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from starlette.datastructures import URL

from path_router.models import RouteMode, RouteTable
from path_router.app_proxy.executor import ProxyExecutor
from path_router.routing import match_route
from path_router.utils import format_exception_message, log_exception_with_details

logger = logging.getLogger("uvicorn.error")

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def error_response(exception: Exception) -> PlainTextResponse:
    return PlainTextResponse(
        f"Error: {format_exception_message(exception)}", status_code=500
    )


def raw_request_url(request: Request) -> URL:
    """
    The request URL with its path exactly as the client sent it.

    ``request.url`` is built from the percent-decoded path, where ``%3F`` or
    ``%23`` would turn into a query or fragment separator.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url
    # Some servers include the query string in raw_path
    path = raw_path.split(b"?", 1)[0].decode("latin-1")
    query = request.scope.get("query_string", b"").decode("latin-1")
    return request.url.replace(path=path, query=query, fragment="")


async def handle_request(
    request: Request,
    route_table: RouteTable,
    executor: Optional[ProxyExecutor] = None,
) -> Optional[Response]:
    """
    Route a request through ``route_table``.

    Returns None when no route matches. Any failure while matching, resolving
    or fetching becomes a 500 response carrying the error message.
    """
    try:
        match = match_route(raw_request_url(request), route_table)
        if match is None:
            return None

        if match.mode == RouteMode.REDIRECT:
            logger.debug(f"[Router] Redirecting {request.url.path} -> {match.target_url}")
            return RedirectResponse(match.target_url, status_code=302)

        executor = executor or ProxyExecutor()
        return await executor.execute(request, match, match.entry.prefix)
    except Exception as e:
        log_exception_with_details(
            logger, f"[Router] {request.method} {request.url.path} failed:", e
        )
        return error_response(e)


def create_router(
    route_table: RouteTable, executor: Optional[ProxyExecutor] = None
) -> APIRouter:
    """Catch-all router serving ``route_table``, with a 404 for unmatched paths."""
    router = APIRouter()

    @router.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy_all(request: Request, path: str):
        """Catch-all route that redirects or proxies according to the route table."""
        response = await handle_request(request, route_table, executor)
        if response is None:
            return PlainTextResponse("Not found", status_code=404)
        return response

    return router
