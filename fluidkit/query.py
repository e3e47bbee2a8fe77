"""Building blocks for describing SQL queries: predicates, ordering, joins,
projections and selectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class _TextEnum(str, Enum):
    """String enum whose text form is its value."""

    def __str__(self) -> str:
        return str(self.value)

    def __format__(self, format_spec: str) -> str:
        return format(str(self.value), format_spec)


class Predicate(_TextEnum):
    """Comparison used by a selector."""

    GREATER = ">"
    GREATER_OR_EQUAL = ">="
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_OR_EQUAL = "<="
    IN = "IN"
    NOT_IN = "NOT IN"


class OrderDirection(_TextEnum):
    """Sort direction of a result set."""

    ASC = "ASC"
    DESC = "DESC"


@dataclass
class Order:
    """Ordering of a result set by one field."""

    table: str = ""
    field: str = ""
    direction: OrderDirection = OrderDirection.ASC


class JoinType(_TextEnum):
    """Kind of SQL join."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"


@dataclass
class ColumnSelector:
    """A table-qualified column reference."""

    table: str = ""
    column: str = ""

    def __str__(self) -> str:
        return f"`{self.table}`.`{self.column}`"


@dataclass
class Join:
    """A join clause between the queried table and another one."""

    type: JoinType = JoinType.INNER
    table: str = ""
    on_left: ColumnSelector = field(default_factory=ColumnSelector)
    on_right: ColumnSelector = field(default_factory=ColumnSelector)


@dataclass
class Projection:
    """A column in the select list, optionally qualified and aliased."""

    table: str = ""
    column: str = ""
    alias: str = ""

    def __str__(self) -> str:
        text = f"`{self.table}`.`{self.column}`" if self.table else f"`{self.column}`"
        if self.alias:
            text += f" AS `{self.alias}`"
        return text


@dataclass
class Selector:
    """A condition on a single field."""

    table: str = ""
    field: str = ""
    predicate: Predicate | str = Predicate.EQUAL
    value: Any = None


class Selectors(list):
    """A list of selectors with lookup by field name."""

    def get_by_field(self, field: str) -> Optional[Selector]:
        """Return the first selector on ``field``, or None."""
        return next((s for s in self if s.field == field), None)

    def get_by_fields(self, *fields: str) -> list[Selector]:
        """Return selectors matching any of ``fields``, grouped in field order."""
        return [s for name in fields for s in self if s.field == name]


@dataclass
class DBField:
    """Maps an API field to a database table and column."""

    table: str = ""
    column: str = ""