"""Build a request from ambient process state (CGI-style environment and stdin)."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from typing import BinaryIO

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

_UNPREFIXED_HEADERS = {
    "CONTENT_TYPE": b"content-type",
    "CONTENT_LENGTH": b"content-length",
}


def _headers_from_environ(environ: Mapping[str, str]) -> list[tuple[bytes, bytes]]:
    headers = []
    for key, value in environ.items():
        if key in _UNPREFIXED_HEADERS:
            if value:
                headers.append((_UNPREFIXED_HEADERS[key], value.encode("latin-1")))
        elif key.startswith("HTTP_"):
            name = key[len("HTTP_"):].replace("_", "-").lower()
            headers.append((name.encode("latin-1"), value.encode("latin-1")))
    return headers


def _read_body(environ: Mapping[str, str], stream: BinaryIO | None) -> bytes:
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    if length <= 0:
        return b""
    if stream is None:
        stream = sys.stdin.buffer
    return stream.read(length)


def request_from_environ(
    environ: Mapping[str, str] | None = None,
    body: BinaryIO | bytes | None = None,
) -> Request:
    """Return a request describing the current process's inbound call.

    ``environ`` defaults to ``os.environ`` and the body to standard input,
    read up to ``CONTENT_LENGTH`` bytes. The body is read on the threadpool
    the first time the request is received.
    """
    if environ is None:
        environ = os.environ

    protocol = environ.get("SERVER_PROTOCOL", "HTTP/1.1")
    https = environ.get("HTTPS", "").lower() in {"on", "1", "true"}
    try:
        port = int(environ.get("SERVER_PORT") or (443 if https else 80))
    except ValueError:
        port = 443 if https else 80

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": protocol.split("/", 1)[-1],
        "method": environ.get("REQUEST_METHOD", "GET").upper(),
        "scheme": "https" if https else "http",
        "path": environ.get("PATH_INFO") or "/",
        "raw_path": (environ.get("PATH_INFO") or "/").encode("latin-1"),
        "query_string": environ.get("QUERY_STRING", "").encode("latin-1"),
        "root_path": environ.get("SCRIPT_NAME", ""),
        "headers": _headers_from_environ(environ),
        "server": (environ.get("SERVER_NAME", "localhost"), port),
        "client": (environ["REMOTE_ADDR"], 0) if environ.get("REMOTE_ADDR") else None,
    }

    sent = False

    async def receive() -> dict:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        if isinstance(body, bytes):
            payload = body
        else:
            payload = await run_in_threadpool(_read_body, environ, body)
        return {"type": "http.request", "body": payload, "more_body": False}

    return Request(scope, receive)
