from typing import Dict, List, Optional, Union
from urllib.parse import unquote

from starlette.requests import Request


def make_request(
    path: str = "/",
    method: str = "GET",
    query: str = "",
    headers: Optional[Dict[str, str]] = None,
    body: Union[bytes, List[bytes]] = b"",
    host: str = "original.example",
    scheme: str = "https",
) -> Request:
    """
    Build a real Starlette request without going through an ASGI server.

    ``path`` is the path as sent on the wire; the scope carries its decoded
    form the way ASGI servers do. A list ``body`` is delivered as separate
    ``http.request`` messages, like a chunked upload.
    """
    headers = {name.lower(): value for name, value in (headers or {}).items()}
    if isinstance(body, bytes):
        if body and "transfer-encoding" not in headers:
            headers.setdefault("content-length", str(len(body)))
        chunks = [body]
    else:
        chunks = list(body) or [b""]

    raw_headers = [(b"host", host.encode("latin-1"))]
    for name, value in headers.items():
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": scheme,
        "server": (host, 443 if scheme == "https" else 80),
        "client": ("192.168.1.100", 54321),
        "root_path": "",
        "path": unquote(path),
        "raw_path": path.encode("latin-1"),
        "query_string": query.encode("latin-1"),
        "headers": raw_headers,
    }

    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)
