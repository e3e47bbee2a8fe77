"""API errors and their mapping to HTTP status codes and public errors."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Iterable, Optional


class APIError(Exception):
    """An error with a stable identifier and optional data for clients."""

    def __init__(self, id: str, data: Any = None) -> None:
        super().__init__(id)
        self.id = id
        self.data = data

    def with_data(self, data: Any) -> "APIError":
        """Return a copy of this error carrying ``data``."""
        return type(self)(self.id, data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, APIError):
            return NotImplemented
        return self.id == other.id and self.data == other.data

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, data={self.data!r})"


INTERNAL_SERVER_ERROR = APIError("INTERNAL_SERVER_ERROR")


@dataclass
class ExpectedError:
    """How an anticipated error is reported to the client."""

    id: str
    masked_id: Optional[str] = None
    status: int = HTTPStatus.INTERNAL_SERVER_ERROR
    public_data: bool = False

    def mask(self, error: APIError) -> tuple[int, APIError]:
        """Return the status and the client-facing form of ``error``."""
        error_id = self.masked_id if self.masked_id is not None else self.id
        data = error.data if self.public_data else None
        return self.status, APIError(error_id, data)


def find_expected_error(
    error: APIError, expected_errors: Optional[Iterable[ExpectedError]]
) -> Optional[ExpectedError]:
    """Return the first expected error with the same id as ``error``, or None."""
    return next((e for e in expected_errors or () if e.id == error.id), None)


def handle_error(
    error: BaseException, expected_errors: Optional[Iterable[ExpectedError]]
) -> tuple[int, APIError]:
    """Map ``error`` to a status code and a client-facing API error.

    Anything that is not an expected API error becomes a 500 with
    INTERNAL_SERVER_ERROR.
    """
    if not isinstance(error, APIError):
        return HTTPStatus.INTERNAL_SERVER_ERROR, INTERNAL_SERVER_ERROR
    expected = find_expected_error(error, expected_errors)
    if expected is None:
        return HTTPStatus.INTERNAL_SERVER_ERROR, INTERNAL_SERVER_ERROR
    return expected.mask(error)