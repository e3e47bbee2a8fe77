"""Middleware that records per-request metadata in the request context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fluidkit.context import RequestContext, get_context, new_context
from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

REQUEST_ID_MIDDLEWARE_ID = "request_metadata"

_METADATA_KEY = object()


@dataclass
class RequestMetadata:
    """Facts about a request, for logging and tracing."""

    time_start: datetime
    request_id: str
    remote_address: str
    protocol: str
    http_method: str
    url: str


def request_ip_address(environ: dict) -> str:
    """Return the client address of the request, without any port."""
    address = environ.get("REMOTE_ADDR", "")
    if address.startswith("["):
        end = address.find("]")
        return address[1:end] if end != -1 else address
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address


def request_id_middleware(request_id_fn: Callable[[], str]) -> Middleware:
    """Return a middleware that stores a RequestMetadata for each request."""
    if request_id_fn is None:
        raise ValueError("request_id_fn cannot be None")

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ, start_response):
            host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME", "")
            path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
            metadata = RequestMetadata(
                time_start=datetime.now(timezone.utc),
                request_id=request_id_fn(),
                remote_address=request_ip_address(environ),
                protocol=environ.get("SERVER_PROTOCOL", ""),
                http_method=environ.get("REQUEST_METHOD", ""),
                url=f"{host}{path}",
            )
            ctx = get_context(environ)
            if ctx is None:
                ctx = new_context(environ)
            ctx.set(_METADATA_KEY, metadata)
            return app(environ, start_response)

        return wrapped

    return middleware


def request_id_middleware_wrapper(request_id_fn: Callable[[], str]) -> MiddlewareWrapper:
    """Return the request id middleware under its standard id."""
    return MiddlewareWrapper(
        id=REQUEST_ID_MIDDLEWARE_ID, middleware=request_id_middleware(request_id_fn)
    )


def get_request_metadata(ctx: Optional[RequestContext]) -> Optional[RequestMetadata]:
    """Return the metadata stored in ``ctx``, or None."""
    if ctx is None:
        return None
    return ctx.get(_METADATA_KEY)