"""A mutable per-request value store kept in the WSGI environ."""

from __future__ import annotations

from typing import Any, Hashable, Optional

from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

CONTEXT_MIDDLEWARE_ID = "context"
_ENVIRON_KEY = "fluidkit.context"


class RequestContext:
    """Holds values shared by the middlewares handling one request."""

    def __init__(self) -> None:
        self._values: dict[Hashable, Any] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``."""
        return self._values.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        """Store ``value`` under ``key``."""
        self._values[key] = value


def new_context(environ: dict) -> RequestContext:
    """Attach a fresh context to ``environ`` and return it."""
    ctx = RequestContext()
    environ[_ENVIRON_KEY] = ctx
    return ctx


def get_context(environ: dict) -> Optional[RequestContext]:
    """Return the context attached to ``environ``, or None."""
    return environ.get(_ENVIRON_KEY)


def context_middleware() -> Middleware:
    """Return a middleware that gives each request a fresh context."""

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ, start_response):
            new_context(environ)
            return app(environ, start_response)

        return wrapped

    return middleware


def context_middleware_wrapper() -> MiddlewareWrapper:
    """Return the context middleware under its standard id."""
    return MiddlewareWrapper(id=CONTEXT_MIDDLEWARE_ID, middleware=context_middleware())