"""Uniform access to a DB-API 2.0 connection: statements, transactions, results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

NO_ROWS_MESSAGE = "no rows in result set"
_TX_DONE_MESSAGE = "transaction has already been committed or rolled back"
_STMT_CLOSED_MESSAGE = "statement is closed"


@dataclass(frozen=True)
class Result:
    """Outcome of a statement that does not return rows."""

    lastrowid: Optional[int]
    rowcount: int

    def last_insert_id(self) -> Optional[int]:
        """Return the id of the last inserted row."""
        return self.lastrowid

    def rows_affected(self) -> int:
        """Return the number of rows the statement changed."""
        return self.rowcount


class Statement:
    """A query bound to a connection, run with different parameters."""

    def __init__(self, connection: Any, query: str, autocommit: bool = True) -> None:
        self.query_text = query
        self._connection = connection
        self._autocommit = autocommit
        self._closed = False

    def _cursor(self, args: tuple) -> Any:
        if self._closed:
            raise RuntimeError(_STMT_CLOSED_MESSAGE)
        cursor = self._connection.cursor()
        cursor.execute(self.query_text, args)
        return cursor

    def execute(self, *args: Any) -> Result:
        """Run the statement and return its result."""
        was_open = getattr(self._connection, "in_transaction", False)
        cursor = self._cursor(args)
        try:
            result = Result(cursor.lastrowid, cursor.rowcount)
        finally:
            cursor.close()
        if self._autocommit and not was_open:
            self._connection.commit()
        return result

    def query(self, *args: Any) -> list[tuple]:
        """Run the statement and return all rows."""
        cursor = self._cursor(args)
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    def query_row(self, *args: Any) -> tuple:
        """Run the statement and return its first row.

        Raises LookupError if the statement returns no rows.
        """
        cursor = self._cursor(args)
        try:
            row = cursor.fetchone()
        finally:
            cursor.close()
        if row is None:
            raise LookupError(NO_ROWS_MESSAGE)
        return row

    def close(self) -> None:
        """Close the statement; further use raises RuntimeError."""
        self._closed = True

    def __enter__(self) -> "Statement":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class Transaction:
    """A unit of work that is either committed or rolled back once."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._done = False

    def _check_open(self) -> None:
        if self._done:
            raise RuntimeError(_TX_DONE_MESSAGE)

    def prepare(self, query: str) -> Statement:
        """Return a statement that runs inside this transaction."""
        self._check_open()
        return Statement(self._connection, query, autocommit=False)

    def commit(self) -> None:
        """Make the transaction's changes permanent."""
        self._check_open()
        self._done = True
        self._connection.commit()

    def rollback(self) -> None:
        """Discard the transaction's changes."""
        self._check_open()
        self._done = True
        self._connection.rollback()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if not self._done:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        return False


class SQLDB:
    """A database reached through a DB-API 2.0 connection."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def ping(self) -> None:
        """Check that the database answers a trivial query."""
        cursor = self._connection.cursor()
        try:
            cursor.execute("SELECT 1")
            cursor.fetchall()
        finally:
            cursor.close()

    def prepare(self, query: str) -> Statement:
        """Return a statement whose changes are committed as it runs."""
        return Statement(self._connection, query, autocommit=True)

    def begin(self) -> Transaction:
        """Start a transaction."""
        return Transaction(self._connection)

    def execute(self, query: str, *args: Any) -> Result:
        """Run a statement that returns no rows and commit it."""
        with self.prepare(query) as statement:
            return statement.execute(*args)

    def query(self, query: str, *args: Any) -> list[tuple]:
        """Run a query and return all rows."""
        with self.prepare(query) as statement:
            return statement.query(*args)

    def close(self) -> None:
        """Close the connection."""
        self._connection.close()

    def __enter__(self) -> "SQLDB":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()