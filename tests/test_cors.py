from wsgiref.util import setup_testing_defaults

from fluidkit.cors import (
    CORS_MIDDLEWARE_ID,
    HEADER_ALLOW_CREDENTIALS,
    HEADER_ALLOW_HEADERS,
    HEADER_ALLOW_METHODS,
    HEADER_ALLOW_ORIGIN,
    cors_middleware,
    cors_middleware_wrapper,
)

ORIGINS = ["http://example.com"]
METHODS = ["GET", "POST"]
HEADERS = ["Authorization"]


def ok_app(environ, start_response):
    start_response("200 OK", [])
    return [b""]


def run(app, origin=None):
    environ = {"REQUEST_METHOD": "GET", "PATH_INFO": "/test"}
    if origin is not None:
        environ["HTTP_ORIGIN"] = origin
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    b"".join(app(environ, start_response))
    return captured["status"], captured["headers"]


def test_cors_middleware_wrapper():
    wrapper = cors_middleware_wrapper(ORIGINS, METHODS, HEADERS)
    assert wrapper.id == CORS_MIDDLEWARE_ID
    status, headers = run(wrapper.middleware(ok_app), "http://example.com")
    assert headers[HEADER_ALLOW_ORIGIN] == "http://example.com"
    assert headers[HEADER_ALLOW_METHODS] == "GET,POST"
    assert headers[HEADER_ALLOW_HEADERS] == "Content-Type,Authorization"
    assert headers[HEADER_ALLOW_CREDENTIALS] == "true"
    assert status == "200 OK"


def test_cors_middleware():
    app = cors_middleware(ORIGINS, METHODS, HEADERS)(ok_app)
    status, headers = run(app, "http://example.com")
    assert headers[HEADER_ALLOW_ORIGIN] == "http://example.com"
    assert headers[HEADER_ALLOW_METHODS] == "GET,POST"
    assert headers[HEADER_ALLOW_HEADERS] == "Content-Type,Authorization"
    assert headers[HEADER_ALLOW_CREDENTIALS] == "true"
    assert status == "200 OK"


def test_cors_middleware_not_allowed_origin():
    app = cors_middleware(ORIGINS, METHODS, HEADERS)(ok_app)
    status, headers = run(app, "http://notallowed.com")
    assert HEADER_ALLOW_ORIGIN not in headers
    assert headers[HEADER_ALLOW_METHODS] == "GET,POST"
    assert headers[HEADER_ALLOW_HEADERS] == "Content-Type,Authorization"
    assert headers[HEADER_ALLOW_CREDENTIALS] == "true"
    assert status == "200 OK"


def test_cors_middleware_wildcard_origin():
    app = cors_middleware(["*"], METHODS, HEADERS)(ok_app)
    _, headers = run(app, "http://anything.example.com")
    assert headers[HEADER_ALLOW_ORIGIN] == "*"


def test_application_headers_take_precedence():
    def app(environ, start_response):
        start_response("200 OK", [(HEADER_ALLOW_METHODS, "PUT")])
        return [b""]

    _, headers = run(cors_middleware(ORIGINS, METHODS, HEADERS)(app), "http://example.com")
    assert headers[HEADER_ALLOW_METHODS] == "PUT"