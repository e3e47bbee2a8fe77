# fluidkit

Building blocks for small WSGI API services: composable middleware, typed
input validation with error mapping, helpers for building SQL `WHERE`
clauses, and helpers for running code inside database transactions.

The package has no dependencies outside the standard library.

## Install

```
pip install .
pip install ".[test]"   # with pytest, to run the tests
```

## Middleware and stacks

A middleware is a function that takes a WSGI application and returns a new
one. `fluidkit.stack.MiddlewareWrapper` pairs a middleware with an `id` (and
an optional list of declared `inputs`); `fluidkit.stack.Stack` is a list of
wrappers.

- `Stack.middlewares()` returns the middlewares in order.
- `Stack.insert_after_id(id, wrapper)` inserts after the first wrapper with
  that id and returns `True`, or returns `False` and leaves the stack alone.
- `Stack.apply(app)` wraps `app` so that the first wrapper in the stack runs
  first (outermost).

```python
import uuid

from fluidkit.stack import Stack
from fluidkit.context import context_middleware_wrapper
from fluidkit.cors import cors_middleware_wrapper
from fluidkit.requestid import request_id_middleware_wrapper
from fluidkit.responsewrapper import response_wrapper_middleware_wrapper

stack = Stack([
    context_middleware_wrapper(),
    request_id_middleware_wrapper(lambda: str(uuid.uuid4())),
    response_wrapper_middleware_wrapper(),
])
stack.insert_after_id(
    "context",
    cors_middleware_wrapper(["https://app.example.com"], ["GET", "POST"], ["Authorization"]),
)

app = stack.apply(my_wsgi_app)
```

### Available middleware

Each module offers a `..._middleware(...)` factory and a
`..._middleware_wrapper(...)` that returns it under a standard id.

- **`fluidkit.context`** (id `"context"`): attaches a fresh
  `RequestContext` to the environ. `get_context(environ)` returns it;
  `RequestContext.get(key, default)` and `RequestContext.set(key, value)`
  store per-request values.
- **`fluidkit.cors`** (id `"cors"`): sets `Access-Control-Allow-Origin`
  (`*` when `"*"` is allowed, otherwise the request's `Origin` if listed),
  `Access-Control-Allow-Methods`, `Access-Control-Allow-Headers` (always
  starting with `Content-Type`) and `Access-Control-Allow-Credentials: true`.
  Headers the application sets itself take precedence.
- **`fluidkit.requestid`** (id `"request_metadata"`): stores a
  `RequestMetadata` (start time, request id, client address, protocol,
  method, host and path) in the request context, creating the context if
  needed. Read it with `get_request_metadata(get_context(environ))`.
- **`fluidkit.responsewrapper`** (id `"response_wrapper"`): reads the request
  body into a `RequestWrapper` (the body stays readable for the application)
  and records status, headers and body in a `ResponseWrapper`. Retrieve them
  with `get_request_wrapper(environ)` and `get_response_wrapper(environ)`. If
  the request cannot be wrapped, the client gets a 500.
- **`fluidkit.requestlog`** (id `"request_log"`): calls
  `logger_fn(environ)(...)` with `"Request started"` and a `RequestLog` (or a
  note that no metadata was found), and with `"Request completed"` once the
  response body has been fully produced.
- **`fluidkit.panichandler`** (id `"panic_handler"`): collects the response
  body before returning it; any exception raised meanwhile is logged as
  `logger_fn(environ)("Panic", PanicData(...))`, with a size-limited
  `RequestDump` and a stack trace, and the client gets
  `500 Internal Server Error`.

`request_id_middleware`, `request_log_middleware` and
`panic_handler_middleware` raise `ValueError` when given `None` for their
function argument.

## Input validation

`fluidkit.inputlogic.middleware_wrapper(callback, input_factory,
expected_errors, options)` (id `"inputlogic"`) handles a typed request:

1. `options.object_picker.pick_object(environ, input_factory())` builds the
   input object;
2. its `validate()` returns a list of `FieldError`; if any, a
   `VALIDATION_ERROR` carrying `ValidationErrorData` is raised and reported
   with status 400;
3. `callback(environ, start_response, input)` produces the output;
4. `options.output_handler.process_output(environ, start_response, output,
   error, status_code)` writes the response and may return body chunks.

Errors are mapped through `fluidkit.errorhandler` and handed to the output
handler. If the output handler raises, the error is logged through
`options.logger_fn(environ).error(...)` and the client gets a 500. On
success the wrapped application runs afterwards; only the first
`start_response` call reaches the server. `Options.logger_fn` is optional;
the object picker and output handler are required (`ValueError` otherwise).

## Error mapping

`fluidkit.errorhandler.APIError(id, data)` is an exception with a stable
identifier; `with_data(data)` returns a copy carrying data.

`handle_error(error, expected_errors)` returns `(status, APIError)`. An
error that is not an `APIError`, or whose id is not listed, becomes
`INTERNAL_SERVER_ERROR` with status 500. A listed `ExpectedError` gives its
`status`, replaces the id with `masked_id` when set, and keeps the data only
when `public_data` is true.

## Endpoint definitions

```python
from fluidkit.definition import (
    EndpointDefinition, clone_endpoint_definition, with_method, to_api_endpoints,
)

base = EndpointDefinition(url="/users", method="GET", middleware_stack=stack)
create = clone_endpoint_definition(base, with_method("POST"))
endpoints = to_api_endpoints([base, create])  # list of Endpoint(url, method, middlewares)
```

Other options: `with_url(url)`, `with_middleware_stack(stack)` and
`with_middleware_stack_func(func)`, which builds the stack from the
definition being cloned.

## Query helpers

`fluidkit.query` defines `Predicate`, `OrderDirection`, `Order`, `JoinType`,
`Join`, `ColumnSelector`, `Projection`, `Selector`, `Selectors` and
`DBField`. `str(ColumnSelector(...))` and `str(Projection(...))` give quoted
SQL (`` `t`.`c` ``, `` `c` AS `a` ``). `Selectors.get_by_field(name)` and
`Selectors.get_by_fields(*names)` look selectors up by field.

```python
from fluidkit.query import Selector, Predicate
from fluidkit.selectors import process_selectors

columns, values = process_selectors([
    Selector(table="user", field="id", predicate=Predicate.IN, value=[1, 2, 3]),
    Selector(table="user", field="deleted_at", predicate=Predicate.EQUAL, value=None),
])
# columns == ["`user`.`id` IN (?,?,?)", "`user`.`deleted_at` IS NULL"]
# values  == [1, 2, 3]
```

A `None` value with `=` or `!=` becomes `IS NULL` / `IS NOT NULL`; with any
other predicate it yields an empty clause.

## Transactions

```python
from fluidkit.transaction import execute_transaction, execute_managed_transaction

result = execute_transaction(tx, lambda tx: do_work(tx))
```

The transaction is committed when the function returns and rolled back when
it raises; a failing commit or rollback raises `TransactionError`.
`execute_managed_transaction(ctx, get_tx, fn)` reuses the transaction stored
in a `RequestContext` (see `set_transaction`, `get_transaction`,
`clear_transaction`), otherwise starts one with `get_tx(ctx)`. Only the call
that started it commits or rolls back, and then clears it from the context.

`fluidkit.dbapi.SQLDB` wraps any DB-API 2.0 connection:

```python
import sqlite3
from fluidkit.dbapi import SQLDB

with SQLDB(sqlite3.connect(":memory:")) as db:
    db.execute("CREATE TABLE t (x INTEGER)")
    with db.begin() as tx:  # commits on success, rolls back on error
        tx.prepare("INSERT INTO t VALUES (?)").execute(1)
    rows = db.query("SELECT x FROM t")
```

`Statement.query_row(...)` raises `LookupError` when there are no rows.

## What it does not do

fluidkit has no HTTP server, router or command-line tool: `to_api_endpoints`
only produces `Endpoint` objects, and serving them is left to whatever WSGI
server and dispatch you use. It does not parse request bodies or encode
responses itself; the input logic middleware relies on the object picker and
output handler you supply. It opens no database connections of its own.