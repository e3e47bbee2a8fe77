"""Middleware that logs the start and the completion of each request."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Optional

from fluidkit.context import RequestContext, get_context
from fluidkit.requestid import RequestMetadata, get_request_metadata
from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

REQUEST_LOG_MIDDLEWARE_ID = "request_log"

LogFn = Callable[..., None]
RequestLoggerFn = Callable[[dict], LogFn]
GetMetadataFn = Callable[[Optional[RequestContext]], Optional[RequestMetadata]]


@dataclass
class RequestLog:
    """What is logged when a request starts."""

    start_time: datetime
    remote_address: str
    protocol: str
    http_method: str
    url: str


def log_request(
    environ: dict,
    get_metadata_fn: GetMetadataFn,
    request_logger_fn: RequestLoggerFn,
) -> None:
    """Log the start of a request, with its metadata when there is any."""
    metadata = get_metadata_fn(get_context(environ))
    log = request_logger_fn(environ)
    if metadata is None:
        log("Request started", "Request metadata not found")
        return
    log(
        "Request started",
        RequestLog(
            start_time=datetime.now(timezone.utc),
            remote_address=metadata.remote_address,
            protocol=metadata.protocol,
            http_method=metadata.http_method,
            url=metadata.url,
        ),
    )


def _then(chunks: Iterable[bytes], on_done: Callable[[], None]) -> Iterator[bytes]:
    try:
        yield from chunks
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()
    on_done()


def request_log_middleware(
    get_metadata_fn: GetMetadataFn,
    request_logger_fn: RequestLoggerFn,
) -> Middleware:
    """Return a middleware that logs each request's start and completion.

    Completion is logged once the response body has been fully produced.
    """
    if request_logger_fn is None:
        raise ValueError("request_logger_fn cannot be None")

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict, start_response: Any) -> Iterable[bytes]:
            log_request(environ, get_metadata_fn, request_logger_fn)
            chunks = app(environ, start_response)
            return _then(
                chunks, lambda: request_logger_fn(environ)("Request completed")
            )

        return wrapped

    return middleware


def request_log_middleware_wrapper(
    request_logger_fn: RequestLoggerFn,
) -> MiddlewareWrapper:
    """Return the request log middleware under its standard id."""
    return MiddlewareWrapper(
        id=REQUEST_LOG_MIDDLEWARE_ID,
        middleware=request_log_middleware(get_request_metadata, request_logger_fn),
    )