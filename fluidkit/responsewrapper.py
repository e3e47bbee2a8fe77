"""Middleware that buffers the request body and records the response."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional

from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

RESPONSE_WRAPPER_MIDDLEWARE_ID = "response_wrapper"

_RESPONSE_KEY = "fluidkit.response_wrapper"
_REQUEST_KEY = "fluidkit.request_wrapper"


class RequestWrapper:
    """A request whose body is read into memory and can be read again."""

    def __init__(self, environ: dict) -> None:
        self.environ = environ
        stream = environ.get("wsgi.input")
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        self.body: bytes = stream.read(length) if stream is not None and length > 0 else b""
        environ["wsgi.input"] = io.BytesIO(self.body)


@dataclass(eq=False)
class ResponseWrapper:
    """Records the status, headers and body passed to a WSGI server."""

    wrapped: Callable[..., Any]
    status: str = "200 OK"
    headers: list = field(default_factory=list)
    body: bytes = b""

    @property
    def status_code(self) -> int:
        """The numeric part of the recorded status."""
        return int(self.status.split(" ", 1)[0])

    def start_response(self, status: str, headers: list, exc_info: Any = None):
        """Record the response start and pass it on."""
        self.status = status
        self.headers = list(headers)
        write = self.wrapped(status, headers, exc_info)

        def recording_write(data: bytes) -> None:
            self.body += data
            if write is not None:
                write(data)

        return recording_write


def _internal_server_error(start_response: Callable[..., Any]) -> list[bytes]:
    start_response(
        "500 Internal Server Error",
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
        ],
    )
    return [b"Internal Server Error\n"]


def _recorded(response: ResponseWrapper, chunks: Iterable[bytes]) -> Iterator[bytes]:
    try:
        for chunk in chunks:
            response.body += chunk
            yield chunk
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()


def response_wrapper_middleware(
    request_wrapper_fn: Callable[[dict], RequestWrapper],
    response_wrapper_fn: Callable[[Callable[..., Any]], ResponseWrapper],
) -> Middleware:
    """Return a middleware that wraps the request and response of each call.

    If the request cannot be wrapped, the client gets a 500 response.
    """

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ, start_response):
            response = response_wrapper_fn(start_response)
            try:
                request = request_wrapper_fn(environ)
            except Exception:
                return _internal_server_error(start_response)
            set_request_wrapper(environ, request)
            set_response_wrapper(environ, response)
            return _recorded(response, app(request.environ, response.start_response))

        return wrapped

    return middleware


def response_wrapper_middleware_wrapper() -> MiddlewareWrapper:
    """Return the response wrapper middleware under its standard id."""
    return MiddlewareWrapper(
        id=RESPONSE_WRAPPER_MIDDLEWARE_ID,
        middleware=response_wrapper_middleware(RequestWrapper, ResponseWrapper),
    )


def get_response_wrapper(environ: dict) -> Optional[ResponseWrapper]:
    """Return the response wrapper stored for the request, or None."""
    return environ.get(_RESPONSE_KEY)


def get_request_wrapper(environ: dict) -> Optional[RequestWrapper]:
    """Return the request wrapper stored for the request, or None."""
    return environ.get(_REQUEST_KEY)


def set_response_wrapper(environ: dict, wrapper: ResponseWrapper) -> None:
    """Store the response wrapper for the request."""
    environ[_RESPONSE_KEY] = wrapper


def set_request_wrapper(environ: dict, wrapper: RequestWrapper) -> None:
    """Store the request wrapper for the request."""
    environ[_REQUEST_KEY] = wrapper