import io

import pytest

from fluidkit.panichandler import (
    PANIC_HANDLER_MIDDLEWARE_ID,
    PanicData,
    ResponseData,
    create_request_dump,
    handle_panic,
    limit_headers,
    limit_query_parameters,
    panic_handler_middleware,
    panic_handler_middleware_wrapper,
    read_body_with_limit,
    stack_trace,
)
from fluidkit.responsewrapper import ResponseWrapper, set_response_wrapper


class StartResponse:
    def __init__(self):
        self.status = None
        self.headers = []
        self.exc_info = None

    def __call__(self, status, headers, exc_info=None):
        self.status = status
        self.headers = list(headers)
        self.exc_info = exc_info
        return lambda data: None


class FailingReader:
    def read(self, size=-1):
        raise OSError("read error")

    def close(self):
        pass


def make_environ(method="GET", path="/panic", body=b"", query="", **extra):
    environ = {
        "REQUEST_METHOD": method,
        "SCRIPT_NAME": "",
        "PATH_INFO": path,
        "QUERY_STRING": query,
        "SERVER_PROTOCOL": "HTTP/1.1",
        "HTTP_HOST": "example.com",
        "REMOTE_ADDR": "192.0.2.1",
        "wsgi.input": io.BytesIO(body),
        "CONTENT_LENGTH": str(len(body)) if body else "",
    }
    environ.update(extra)
    return environ


def recording_logger():
    messages = []

    def logger_fn(environ):
        def log(*items):
            messages.extend(items)

        return log

    return messages, logger_fn


def panicking_app(environ, start_response):
    raise RuntimeError("test panic")


def ok_app(environ, start_response):
    start_response("200 OK", [])
    return [b"ok"]


def streaming_app(environ, start_response):
    start_response("200 OK", [])
    yield b"partial"
    raise ValueError("late failure")


def test_wrapper():
    messages, logger_fn = recording_logger()
    wrapper = panic_handler_middleware_wrapper(logger_fn)
    assert wrapper.id == PANIC_HANDLER_MIDDLEWARE_ID
    start = StartResponse()
    body = wrapper.middleware(panicking_app)(make_environ(), start)
    assert start.status.startswith("500")
    assert b"".join(body) == b"Internal Server Error\n"
    assert len(messages) == 2


def test_middleware_logs_panic():
    messages, logger_fn = recording_logger()
    start = StartResponse()
    panic_handler_middleware(logger_fn)(panicking_app)(make_environ(), start)
    assert start.status == "500 Internal Server Error"
    assert len(messages) == 2
    assert messages[0] == "Panic"
    assert isinstance(messages[1], PanicData)
    assert str(messages[1].err) == "test panic"
    assert messages[1].stack_trace
    assert any("panicking_app" in entry for entry in messages[1].stack_trace)


def test_middleware_handles_failure_during_iteration():
    messages, logger_fn = recording_logger()
    start = StartResponse()
    body = panic_handler_middleware(logger_fn)(streaming_app)(make_environ(), start)
    assert start.status.startswith("500")
    assert start.exc_info[0] is ValueError
    assert body == [b"Internal Server Error\n"]
    assert str(messages[1].err) == "late failure"


def test_middleware_no_panic():
    messages, logger_fn = recording_logger()
    start = StartResponse()
    body = panic_handler_middleware(logger_fn)(ok_app)(make_environ(), start)
    assert start.status == "200 OK"
    assert body == [b"ok"]
    assert messages == []


def test_middleware_nil_logger():
    with pytest.raises(ValueError):
        panic_handler_middleware(None)


def test_handle_panic():
    messages, logger_fn = recording_logger()
    start = StartResponse()
    body = handle_panic(make_environ(), start, "test panic", logger_fn)
    assert start.status.startswith("500")
    assert body == [b"Internal Server Error\n"]
    assert len(messages) == 2
    assert messages[0] == "Panic"
    data = messages[1]
    assert data.err == "test panic"
    assert data.request_dump.url == "/panic"
    assert data.stack_trace


def test_handle_panic_with_response_data():
    messages, logger_fn = recording_logger()
    start = StartResponse()
    environ = make_environ()
    response = ResponseWrapper(start)
    response.body = b"test body"
    set_response_wrapper(environ, response)
    body = handle_panic(environ, start, "test panic", logger_fn)
    assert body == [b"Internal Server Error\n"]
    data = messages[1]
    assert data.request_dump.url == "/panic"
    assert data.request_dump.response_body == "test body"
    assert data.request_dump.status_code == 200
    assert data.stack_trace


def test_stack_trace():
    entries = stack_trace()
    assert entries
    for entry in entries:
        assert ":" in entry
        assert " " in entry
    assert "test_stack_trace" in entries[1]


def test_create_request_dump_valid_request():
    body = "test body content"
    environ = make_environ(
        method="POST", path="/test", body=body.encode(), CONTENT_TYPE="text/plain"
    )
    rd = ResponseData(
        status_code=200,
        headers={"Content-Type": ["application/json"]},
        body="response body content",
    )
    dump = create_request_dump(rd, environ)
    assert dump.url == "/test"
    assert dump.request_body == body
    assert dump.params == ""
    assert dump.request_headers["Host"] == ["example.com"]
    assert dump.request_headers["Content-Type"] == ["text/plain"]
    assert dump.status_code == 200
    assert dump.response_body == "response body content"
    assert dump.response_headers == {"Content-Type": ["application/json"]}


def test_create_request_dump_query():
    dump = create_request_dump(ResponseData(), make_environ(path="/test", query="a=1"))
    assert dump.url == "/test?a=1"
    assert dump.params == "a=1"


def test_create_request_dump_error_reading_body():
    environ = make_environ(method="POST", path="/test")
    environ["wsgi.input"] = FailingReader()
    environ["CONTENT_LENGTH"] = "10"
    dump = create_request_dump(ResponseData(), environ)
    assert dump.request_body == "Error reading request body"


def test_read_body_valid():
    content = "test body content"
    assert read_body_with_limit(io.StringIO(content), len(content) + 10) == content


def test_read_body_exceeds_limit():
    result = read_body_with_limit(io.BytesIO(b"this content is too long"), 10)
    assert result == "this conte... (truncated)"


def test_read_body_none():
    assert read_body_with_limit(None, 10) == ""


def test_read_body_zero_limit():
    result = read_body_with_limit(io.BytesIO(b"this content should not be read"), 0)
    assert result == "... (truncated)"


def test_read_body_error():
    with pytest.raises(OSError, match="read error"):
        read_body_with_limit(FailingReader(), 10)


def test_limit_headers_no_truncation():
    headers = {"X-Test-Header": ["TestValue"], "X-Other-Header": ["ShortValue"]}
    assert limit_headers(headers, 100) == headers


def test_limit_headers_with_truncation():
    headers = {"X-Test-Header": ["Too long value"], "X-Other-Header": ["ShortValue"]}
    assert limit_headers(headers, 10) == {
        "X-Test-Header": ["Too long v... (truncated)"],
        "X-Other-Header": ["ShortValue"],
    }


def test_limit_headers_multiple_values():
    headers = {"X-Test-Header": ["Value1", "Value2", "Too long value"]}
    assert limit_headers(headers, 10) == {
        "X-Test-Header": ["Value1", "Value2", "Too long v... (truncated)"]
    }


def test_limit_headers_empty():
    assert limit_headers({}, 10) == {}


def test_limit_headers_no_values():
    assert limit_headers({"X-Test-Header": []}, 10) == {"X-Test-Header": []}


def test_limit_query_no_truncation():
    assert limit_query_parameters("name=alice&age=30", 100) == "name=alice&age=30"


def test_limit_query_with_truncation():
    params = "name=alice&age=30&location=someverylonglocationstring"
    assert limit_query_parameters(params, 20) == "name=alice&age=30&lo... (truncated)"


def test_limit_query_exact_size():
    params = "name=alice&age=30"
    assert limit_query_parameters(params, len(params)) == params


def test_limit_query_empty():
    assert limit_query_parameters("", 10) == ""


def test_limit_query_zero_limit():
    assert limit_query_parameters("name=alice", 0) == "... (truncated)"