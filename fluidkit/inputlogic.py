"""Middleware that picks, validates and processes typed request input."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Iterable, Iterator, Optional, Protocol

from fluidkit.errorhandler import APIError, ExpectedError, handle_error
from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

MIDDLEWARE_ID = "inputlogic"


@dataclass
class FieldError:
    """A validation failure of one input field."""

    field: str
    message: str


@dataclass
class ValidationErrorData:
    """The field errors that made an input invalid."""

    errors: list[FieldError] = field(default_factory=list)


VALIDATION_ERROR = APIError("VALIDATION_ERROR")

_INTERNAL_EXPECTED_ERRORS = (
    ExpectedError(
        id=VALIDATION_ERROR.id,
        status=HTTPStatus.BAD_REQUEST,
        public_data=True,
    ),
)


class _ValidatedInput(Protocol):
    def validate(self) -> list[FieldError]: ...


class _ObjectPicker(Protocol):
    def pick_object(self, environ: dict, obj: Any) -> Any: ...


class _OutputHandler(Protocol):
    def process_output(
        self,
        environ: dict,
        start_response: Callable[..., Any],
        output: Any,
        output_error: Optional[BaseException],
        status_code: int,
    ) -> Optional[Iterable[bytes]]: ...


class _Logger(Protocol):
    def trace(self, *messages: Any) -> None: ...

    def error(self, *messages: Any) -> None: ...


LoggerFn = Callable[[dict], _Logger]
Callback = Callable[[dict, Callable[..., Any], Any], Any]


@dataclass
class Options:
    """Collaborators of the input logic middleware."""

    object_picker: Optional[_ObjectPicker] = None
    output_handler: Optional[_OutputHandler] = None
    logger_fn: Optional[LoggerFn] = None


def _status_line(code: int) -> str:
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = ""
    return f"{code} {phrase}".rstrip()


class _FirstStart:
    """Passes on only the first start_response call; later ones are ignored."""

    def __init__(self, start_response: Callable[..., Any]) -> None:
        self._start_response = start_response
        self._write: Any = None
        self.started = False

    def __call__(self, status: str, headers: list, exc_info: Any = None) -> Any:
        if not self.started:
            self.started = True
            self._write = self._start_response(status, headers, exc_info)
        return self._write


def handle_input(
    environ: dict,
    input_object: Any,
    object_picker: _ObjectPicker,
    logger_fn: Optional[LoggerFn],
) -> Any:
    """Pick the input from the request and validate it.

    Raises the picker's error, or a VALIDATION_ERROR carrying the field errors.
    """
    picked = object_picker.pick_object(environ, input_object)
    if logger_fn is not None:
        logger_fn(environ).trace("Picked object", picked)

    errors = picked.validate()
    if errors:
        raise VALIDATION_ERROR.with_data(ValidationErrorData(errors=list(errors)))
    return picked


def handle_output(
    environ: dict,
    start_response: Callable[..., Any],
    output: Any,
    output_error: Optional[BaseException],
    status_code: int,
    output_handler: _OutputHandler,
    logger_fn: Optional[LoggerFn],
) -> list[bytes]:
    """Let the output handler answer; on failure log it and answer 500."""
    try:
        body = output_handler.process_output(
            environ, start_response, output, output_error, status_code
        )
    except Exception as exc:
        if logger_fn is not None:
            logger_fn(environ).error(f"Error processing output: {exc}")
        start_response(_status_line(HTTPStatus.INTERNAL_SERVER_ERROR), [])
        return []
    return list(body) if body is not None else []


def report_error(
    environ: dict,
    start_response: Callable[..., Any],
    error: BaseException,
    output_handler: _OutputHandler,
    expected_errors: Optional[Iterable[ExpectedError]],
    logger_fn: Optional[LoggerFn],
) -> list[bytes]:
    """Map ``error`` to a client-facing error and send it as the output."""
    status, out_error = handle_error(error, expected_errors)
    status_code = int(status)
    if logger_fn is not None:
        logger_fn(environ).trace(
            f"Error handler, status code: {status_code}, "
            f"callback error: {error}, output error: {out_error}"
        )
    return handle_output(
        environ, start_response, None, out_error, status_code, output_handler, logger_fn
    )


def _concat(first: list[bytes], rest: Iterable[bytes]) -> Iterator[bytes]:
    try:
        yield from first
        yield from rest
    finally:
        close = getattr(rest, "close", None)
        if close is not None:
            close()


def middleware(
    callback: Callback,
    input_factory: Callable[[], Any],
    expected_errors: Optional[Iterable[ExpectedError]],
    object_picker: Optional[_ObjectPicker],
    output_handler: Optional[_OutputHandler],
    logger_fn: Optional[LoggerFn],
) -> Middleware:
    """Return a middleware that picks and validates input, runs ``callback``
    and hands its output or error to the output handler.

    On success the wrapped application runs afterwards; the first response
    start wins, as later ones are ignored.
    """
    if object_picker is None:
        raise ValueError("object picker cannot be None")
    if output_handler is None:
        raise ValueError("output handler cannot be None")

    all_errors = [*_INTERNAL_EXPECTED_ERRORS, *(expected_errors or ())]

    def wrap(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
            guarded = _FirstStart(start_response)
            try:
                picked = handle_input(environ, input_factory(), object_picker, logger_fn)
                output = callback(environ, guarded, picked)
            except Exception as err:
                return report_error(
                    environ, guarded, err, output_handler, all_errors, logger_fn
                )

            body = handle_output(
                environ, guarded, output, None, HTTPStatus.OK.value, output_handler, logger_fn
            )
            return _concat(body, app(environ, guarded))

        return wrapped

    return wrap


def middleware_wrapper(
    callback: Callback,
    input_factory: Callable[[], Any],
    expected_errors: Optional[Iterable[ExpectedError]],
    options: Options,
) -> MiddlewareWrapper:
    """Return the input logic middleware under its standard id."""
    return MiddlewareWrapper(
        id=MIDDLEWARE_ID,
        middleware=middleware(
            callback,
            input_factory,
            expected_errors,
            options.object_picker,
            options.output_handler,
            options.logger_fn,
        ),
        inputs=[input_factory()],
    )