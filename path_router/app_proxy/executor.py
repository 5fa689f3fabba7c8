import logging
from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse
from opentelemetry import trace
from starlette.background import BackgroundTask

from path_router.models import Match, RewriteContext
from path_router.rewriter import rewrite_html_stream
from path_router.routing import resolve_target_base
from path_router.utils import log_exception_with_details
from path_router.utils.traced_requests import traced_request
from path_router.vars import PROXY_TIMEOUT

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
HTML_CACHE_CONTROL = "no-cache"
STATIC_CACHE_CONTROL = "public, max-age=31536000"  # one year

Headers = List[Tuple[str, str]]


def is_html_response(content_type: str, path: str) -> bool:
    content_type = (content_type or "").lower()
    return any(t in content_type for t in HTML_CONTENT_TYPES) or path.lower().endswith(
        ".html"
    )


def prepare_headers(request: Request) -> Headers:
    """
    Copy the inbound headers for the upstream request. ``host`` is dropped so
    the client derives it from the target URL; hop-by-hop headers only
    describe the inbound connection.
    """
    return [
        (name, value)
        for name, value in request.headers.items()
        if name.lower() != "host" and name.lower() not in HOP_BY_HOP_HEADERS
    ]


def request_body(request: Request) -> Optional[AsyncIterator[bytes]]:
    """
    The inbound body as a stream, forwarded as it arrives. Requests that
    declare no body send none upstream. A sized body keeps its forwarded
    ``content-length``; a chunked one is re-chunked by httpx.
    """
    if "content-length" not in request.headers and "transfer-encoding" not in request.headers:
        return None
    return request.stream()


def prepare_response_headers(upstream: httpx.Response, html: bool) -> Headers:
    """
    Upstream headers plus a cache-control default. Rewritten HTML is decoded
    and re-encoded, so its length and content-encoding no longer apply.
    """
    dropped = set(HOP_BY_HOP_HEADERS)
    if html:
        dropped.update({"content-length", "content-encoding"})

    headers = [
        (name, value)
        for name, value in upstream.headers.multi_items()
        if name.lower() not in dropped
    ]
    if "cache-control" not in upstream.headers:
        headers.append(
            ("cache-control", HTML_CACHE_CONTROL if html else STATIC_CACHE_CONTROL)
        )
    return headers


def build_rewrite_context(request: Request, match: Match, route_prefix: str) -> RewriteContext:
    return RewriteContext(
        source_path_prefix=route_prefix,
        source_origin=f"{request.url.scheme}://{request.url.netloc}",
        target_base=resolve_target_base(match.entry),
    )


async def _close(upstream: httpx.Response, client: httpx.AsyncClient) -> None:
    await upstream.aclose()
    await client.aclose()


class ProxyExecutor:
    """Fetch a matched target and stream the upstream response back."""

    def __init__(
        self,
        timeout: float = PROXY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=False,  # Upstream redirects go back to the client
            transport=self.transport,
        )

    async def execute(
        self, request: Request, match: Match, route_prefix: str
    ) -> StreamingResponse:
        """
        Proxy ``request`` to ``match.target_url``.

        Transport errors propagate; the caller turns them into an error response.
        """
        target_url = match.target_url
        with traced_request(
            tracer,
            "proxy_request",
            f"[Proxy] {request.method} {request.url.path} -> {target_url}",
            {"proxy.target_url": target_url, "proxy.method": request.method},
        ) as span:
            client = self._client()
            try:
                outbound = client.build_request(
                    request.method,
                    target_url,
                    headers=prepare_headers(request),
                    content=request_body(request),
                )
                upstream = await client.send(outbound, stream=True)
            except httpx.HTTPError as e:
                span.set_attribute("proxy.error", str(e))
                await client.aclose()
                raise
            except BaseException:
                await client.aclose()
                raise

            span.set_attribute("proxy.status_code", upstream.status_code)
            try:
                return self._build_response(request, match, route_prefix, upstream, client)
            except BaseException:
                await _close(upstream, client)
                raise

    def _build_response(
        self,
        request: Request,
        match: Match,
        route_prefix: str,
        upstream: httpx.Response,
        client: httpx.AsyncClient,
    ) -> StreamingResponse:
        content_type = upstream.headers.get("content-type", "")
        html = is_html_response(content_type, request.url.path)

        if html:
            context = build_rewrite_context(request, match, route_prefix)
            body = self._stream_html(upstream, client, context)
        else:
            body = self._stream_raw(upstream, client)

        response = StreamingResponse(
            body,
            status_code=upstream.status_code,
            # Closes the upstream even when the body is never iterated
            background=BackgroundTask(_close, upstream, client),
        )
        for name, value in prepare_response_headers(upstream, html):
            response.headers.append(name, value)
        return response

    async def _stream_raw(
        self, upstream: httpx.Response, client: httpx.AsyncClient
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        except Exception as e:
            # Status and headers are already out; abort the body
            log_exception_with_details(logger, "[Proxy] Upstream stream failed:", e)
            raise
        finally:
            await _close(upstream, client)

    async def _stream_html(
        self,
        upstream: httpx.Response,
        client: httpx.AsyncClient,
        context: RewriteContext,
    ) -> AsyncIterator[bytes]:
        encoding = upstream.encoding or "utf-8"
        try:
            async for text in rewrite_html_stream(upstream.aiter_text(), context):
                yield text.encode(encoding, errors="xmlcharrefreplace")
        except Exception as e:
            log_exception_with_details(logger, "[Proxy] HTML stream failed:", e)
            raise
        finally:
            await _close(upstream, client)
