"""Middleware that adds CORS response headers."""

from __future__ import annotations

from typing import Iterable

from fluidkit.stack import Middleware, MiddlewareWrapper, WSGIApp

CORS_MIDDLEWARE_ID = "cors"

HEADER_ALLOW_ORIGIN = "Access-Control-Allow-Origin"
HEADER_ALLOW_METHODS = "Access-Control-Allow-Methods"
HEADER_ALLOW_HEADERS = "Access-Control-Allow-Headers"
HEADER_ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"

_BASE_ALLOW_HEADERS = ("Content-Type",)


def cors_middleware(
    allowed_origins: Iterable[str],
    allowed_methods: Iterable[str],
    allowed_headers: Iterable[str],
) -> Middleware:
    """Return a middleware that sets CORS headers on every response.

    Headers set by the wrapped application take precedence.
    """
    origins = list(allowed_origins)
    wildcard = "*" in origins
    methods = ",".join(allowed_methods)
    headers = ",".join([*_BASE_ALLOW_HEADERS, *allowed_headers])

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ, start_response):
            origin = environ.get("HTTP_ORIGIN", "")
            cors_headers = []
            if wildcard:
                cors_headers.append((HEADER_ALLOW_ORIGIN, "*"))
            elif origin in origins:
                cors_headers.append((HEADER_ALLOW_ORIGIN, origin))
            cors_headers += [
                (HEADER_ALLOW_METHODS, methods),
                (HEADER_ALLOW_HEADERS, headers),
                (HEADER_ALLOW_CREDENTIALS, "true"),
            ]

            def cors_start_response(status, response_headers, exc_info=None):
                own = {name.lower() for name, _ in response_headers}
                merged = [h for h in cors_headers if h[0].lower() not in own]
                merged.extend(response_headers)
                return start_response(status, merged, exc_info)

            return app(environ, cors_start_response)

        return wrapped

    return middleware


def cors_middleware_wrapper(
    allowed_origins: Iterable[str],
    allowed_methods: Iterable[str],
    allowed_headers: Iterable[str],
) -> MiddlewareWrapper:
    """Return the CORS middleware under its standard id."""
    return MiddlewareWrapper(
        id=CORS_MIDDLEWARE_ID,
        middleware=cors_middleware(allowed_origins, allowed_methods, allowed_headers),
    )