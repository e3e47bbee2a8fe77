"""Middleware that turns unhandled exceptions into logged 500 responses."""

from __future__ import annotations

import io
import sys
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional
from urllib.parse import quote

from fluidkit.responsewrapper import get_response_wrapper
from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

PANIC_HANDLER_MIDDLEWARE_ID = "panic_handler"
MAX_DUMP_SIZE = 1024 * 1024

_TRUNCATED = "... (truncated)"
_BODY_READ_ERROR = "Error reading request body"

LogFn = Callable[..., None]
LoggerFn = Callable[[dict], LogFn]


@dataclass
class ResponseData:
    """The response as it stood when the failure happened."""

    status_code: int = 0
    headers: dict[str, list[str]] = field(default_factory=dict)
    body: str = ""


@dataclass
class RequestDump:
    """The request and response of a failed call, with sizes limited."""

    status_code: int = 0
    url: str = ""
    params: str = ""
    request_headers: dict[str, list[str]] = field(default_factory=dict)
    request_body: str = ""
    response_headers: dict[str, list[str]] = field(default_factory=dict)
    response_body: str = ""


@dataclass
class PanicData:
    """Everything logged about an unhandled failure."""

    err: Any
    request_dump: RequestDump
    stack_trace: list[str]


def panic_handler_middleware(logger_fn: LoggerFn) -> Middleware:
    """Return a middleware that logs unhandled exceptions and answers 500.

    The response body is collected before it is returned, so failures while
    producing it are handled as well.
    """
    if logger_fn is None:
        raise ValueError("logger_fn cannot be None")

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict, start_response: Any) -> Iterable[bytes]:
            try:
                result = app(environ, start_response)
                try:
                    chunks = list(result)
                finally:
                    close = getattr(result, "close", None)
                    if close is not None:
                        close()
            except Exception as err:
                return handle_panic(environ, start_response, err, logger_fn)
            return chunks

        return wrapped

    return middleware


def panic_handler_middleware_wrapper(logger_fn: LoggerFn) -> MiddlewareWrapper:
    """Return the panic handler middleware under its standard id."""
    return MiddlewareWrapper(
        id=PANIC_HANDLER_MIDDLEWARE_ID, middleware=panic_handler_middleware(logger_fn)
    )


def handle_panic(
    environ: dict, start_response: Any, err: Any, logger_fn: LoggerFn
) -> list[bytes]:
    """Log ``err`` with a dump of the request and start a 500 response."""
    response = get_response_wrapper(environ)
    if response is not None:
        response_data = ResponseData(
            status_code=response.status_code,
            headers=limit_headers(_header_map(response.headers), MAX_DUMP_SIZE),
            body=response.body.decode("utf-8", errors="replace"),
        )
    else:
        response_data = ResponseData()

    logger_fn(environ)(
        "Panic",
        PanicData(
            err=err,
            request_dump=create_request_dump(response_data, environ),
            stack_trace=_exception_frames(err) + stack_trace(),
        ),
    )

    exc_info = (type(err), err, err.__traceback__) if isinstance(err, BaseException) else None
    start_response(
        "500 Internal Server Error",
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
        ],
        exc_info,
    )
    return [b"Internal Server Error\n"]


def _format_frame(frame: traceback.FrameSummary) -> str:
    return f"{frame.filename}:{frame.lineno} {frame.name}"


def _exception_frames(err: Any) -> list[str]:
    if not isinstance(err, BaseException) or err.__traceback__ is None:
        return []
    return [_format_frame(f) for f in reversed(traceback.extract_tb(err.__traceback__))]


def stack_trace() -> list[str]:
    """Return the call stack as ``file:line function`` entries, innermost first."""
    return [_format_frame(f) for f in reversed(traceback.extract_stack())]


def _bounded_input(environ: dict) -> Optional[io.BytesIO]:
    stream = environ.get("wsgi.input")
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    if stream is None or length <= 0:
        return None
    return io.BytesIO(stream.read(min(length, MAX_DUMP_SIZE)))


def _request_url(environ: dict) -> str:
    path = quote(
        environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", ""),
        safe="/:@!$&'()*+,;=",
    )
    query = environ.get("QUERY_STRING", "")
    return f"{path}?{query}" if query else path


def _canonical_name(name: str) -> str:
    return "-".join(part.capitalize() for part in name.split("_"))


def _request_headers(environ: dict) -> dict[str, list[str]]:
    headers: dict[str, list[str]] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            name = key[5:]
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            name = key
        else:
            continue
        headers.setdefault(_canonical_name(name), []).append(str(value))
    return headers


def _header_map(pairs: Iterable[tuple[str, str]]) -> dict[str, list[str]]:
    headers: dict[str, list[str]] = {}
    for name, value in pairs:
        headers.setdefault(name, []).append(value)
    return headers


def create_request_dump(response_data: ResponseData, environ: dict) -> RequestDump:
    """Return a size-limited dump of the request and of ``response_data``."""
    try:
        request_body = read_body_with_limit(_bounded_input(environ), MAX_DUMP_SIZE)
    except Exception:
        request_body = _BODY_READ_ERROR

    return RequestDump(
        status_code=response_data.status_code,
        url=_request_url(environ),
        params=limit_query_parameters(environ.get("QUERY_STRING", ""), MAX_DUMP_SIZE),
        request_headers=limit_headers(_request_headers(environ), MAX_DUMP_SIZE),
        request_body=request_body,
        response_headers=limit_headers(response_data.headers, MAX_DUMP_SIZE),
        response_body=response_data.body,
    )


def read_body_with_limit(body: Any, max_size: int) -> str:
    """Read at most ``max_size`` units from ``body`` and close it.

    A result that fills the limit is marked as truncated. Read errors
    propagate.
    """
    if body is None:
        return ""
    try:
        data = body.read(max_size)
    finally:
        close = getattr(body, "close", None)
        if close is not None:
            close()
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    if len(data) == max_size:
        return text + _TRUNCATED
    return text


def limit_headers(
    headers: Optional[dict[str, list[str]]], max_size: int
) -> dict[str, list[str]]:
    """Return a copy of ``headers`` with over-long values truncated."""
    return {
        key: [
            value[:max_size] + _TRUNCATED if len(value) > max_size else value
            for value in values
        ]
        for key, values in (headers or {}).items()
    }


def limit_query_parameters(params: str, max_size: int) -> str:
    """Return ``params`` truncated to ``max_size`` characters if longer."""
    if len(params) > max_size:
        return params[:max_size] + _TRUNCATED
    return params