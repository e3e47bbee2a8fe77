import pytest

from fluidkit.query import (
    ColumnSelector,
    DBField,
    Join,
    JoinType,
    Order,
    OrderDirection,
    Predicate,
    Projection,
    Selector,
    Selectors,
)


@pytest.mark.parametrize(
    "table, column, expected",
    [
        ("users", "id", "`users`.`id`"),
        ("", "id", "``.`id`"),
        ("users", "", "`users`.``"),
        ("", "", "``.``"),
    ],
)
def test_column_selector_str(table, column, expected):
    assert str(ColumnSelector(table=table, column=column)) == expected


@pytest.mark.parametrize(
    "table, column, alias, expected",
    [
        ("", "column_name", "", "`column_name`"),
        ("table_name", "column_name", "", "`table_name`.`column_name`"),
        (
            "table_name",
            "column_name",
            "alias_name",
            "`table_name`.`column_name` AS `alias_name`",
        ),
        ("", "column_name", "alias_name", "`column_name` AS `alias_name`"),
        ("", "", "", "``"),
    ],
)
def test_projection_str(table, column, alias, expected):
    assert str(Projection(table=table, column=column, alias=alias)) == expected


def _selectors(*extra):
    return Selectors(
        [
            Selector(table="user", field="id", predicate="=", value=1),
            Selector(table="user", field="name", predicate="=", value="Alice"),
            *extra,
        ]
    )


def test_get_by_field_found():
    selector = _selectors().get_by_field("name")
    assert selector is not None
    assert selector.table == "user"
    assert selector.field == "name"
    assert selector.predicate == "="
    assert selector.value == "Alice"


def test_get_by_field_returns_stored_selector():
    selectors = _selectors()
    selectors.get_by_field("id").value = 42
    assert selectors[0].value == 42


def test_get_by_field_not_found():
    assert _selectors().get_by_field("age") is None


def test_get_by_fields_found():
    selectors = _selectors(Selector(table="user", field="age", predicate=">", value=25))
    result = selectors.get_by_fields("name", "age")
    assert [s.field for s in result] == ["name", "age"]


def test_get_by_fields_not_found():
    assert _selectors().get_by_fields("age", "address") == []


def test_get_by_fields_partial_found():
    selectors = _selectors(Selector(table="user", field="age", predicate=">", value=25))
    result = selectors.get_by_fields("name", "address")
    assert [s.field for s in result] == ["name"]


def test_predicate_text_and_lookup():
    assert str(Predicate.GREATER_OR_EQUAL) == ">="
    assert f"{Predicate.NOT_IN}" == "NOT IN"
    assert Predicate("IN") is Predicate.IN
    assert Predicate.EQUAL == "="


def test_order_and_join_defaults():
    order = Order(table="user", field="name")
    assert str(order.direction) == "ASC"
    join = Join(
        type=JoinType.LEFT,
        table="orders",
        on_left=ColumnSelector("user", "id"),
        on_right=ColumnSelector("orders", "user_id"),
    )
    assert f"{join.type} JOIN {join.table} ON {join.on_left} = {join.on_right}" == (
        "LEFT JOIN orders ON `user`.`id` = `orders`.`user_id`"
    )
    assert OrderDirection("DESC") is OrderDirection.DESC


def test_dbfield_holds_table_and_column():
    assert DBField(table="user", column="id") == DBField("user", "id")