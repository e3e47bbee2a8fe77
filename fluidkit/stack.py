"""Named WSGI middlewares and ordered stacks of them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

WSGIApp = Callable[..., Iterable[bytes]]
Middleware = Callable[[WSGIApp], WSGIApp]


@dataclass
class MiddlewareWrapper:
    """A middleware together with its identifier and declared inputs."""

    id: str = ""
    middleware: Optional[Middleware] = None
    inputs: list[Any] = field(default_factory=list)


class Stack(list):
    """An ordered list of middleware wrappers; the first one runs first."""

    def middlewares(self) -> list[Optional[Middleware]]:
        """Return the middlewares in stack order."""
        return [wrapper.middleware for wrapper in self]

    def insert_after_id(self, id: str, wrapper: MiddlewareWrapper) -> bool:
        """Insert ``wrapper`` after the first entry with ``id``.

        Returns False and leaves the stack unchanged if no entry has that id.
        """
        for position, existing in enumerate(self):
            if existing.id == id:
                self.insert(position + 1, wrapper)
                return True
        return False

    def apply(self, app: WSGIApp) -> WSGIApp:
        """Wrap ``app`` so that the stack's first middleware is outermost."""
        for middleware in reversed(self.middlewares()):
            if middleware is not None:
                app = middleware(app)
        return app