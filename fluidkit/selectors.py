"""Turning selectors into SQL where-clause fragments and parameters."""

from __future__ import annotations

from typing import Any, Iterable

from fluidkit.query import Selector

_PREDICATE_IN = "IN"
_IS_CLAUSE = "IS"
_IS_NOT_CLAUSE = "IS NOT"
_SQL_NULL = "NULL"


def process_selectors(selectors: Iterable[Selector]) -> tuple[list[str], list[Any]]:
    """Return the where clauses and the flat list of their parameters."""
    columns: list[str] = []
    values: list[Any] = []
    for selector in selectors:
        column, params = process_selector(selector)
        columns.append(column)
        values.extend(params)
    return columns, values


def process_selector(selector: Selector) -> tuple[str, list[Any]]:
    """Return the where clause and parameters for one selector."""
    if str(selector.predicate) == _PREDICATE_IN:
        return _process_in_selector(selector)
    return _process_default_selector(selector)


def _process_in_selector(selector: Selector) -> tuple[str, list[Any]]:
    value = selector.value
    if isinstance(value, (list, tuple)):
        values = list(value)
        placeholders = create_placeholders(len(values))
    else:
        values = [value]
        placeholders = "?"
    column = f"`{selector.table}`.`{selector.field}` {_PREDICATE_IN} ({placeholders})"
    return column, values


def _process_default_selector(selector: Selector) -> tuple[str, list[Any]]:
    if selector.value is None:
        return _process_null_selector(selector)
    predicate = str(selector.predicate)
    if not selector.table:
        return f"`{selector.field}` {predicate} ?", [selector.value]
    return f"`{selector.table}`.`{selector.field}` {predicate} ?", [selector.value]


def _process_null_selector(selector: Selector) -> tuple[str, list[Any]]:
    predicate = str(selector.predicate)
    if predicate == "=":
        return build_null_clause(selector, _IS_CLAUSE), []
    if predicate == "!=":
        return build_null_clause(selector, _IS_NOT_CLAUSE), []
    return "", []


def build_null_clause(selector: Selector, clause: str) -> str:
    """Return a NULL comparison such as ```t`.`f` IS NULL``."""
    if not selector.table:
        return f"`{selector.field}` {clause} {_SQL_NULL}"
    return f"`{selector.table}`.`{selector.field}` {clause} {_SQL_NULL}"


def create_placeholders(count: int) -> str:
    """Return ``count`` comma-separated ``?`` placeholders."""
    return ",".join("?" * count)