"""Tests for the statistics index schema."""

import logging

import pytest

from data_skipping.catalog import (
    ColumnStatFields,
    IndexNaming,
    IndexSchema,
    IndexSchemaError,
    parse_data_type,
)
from data_skipping.config import IndexConfig
from data_skipping.plan import DataType


def test_compose_default_naming():
    """compose() derives the three stat fields of each column."""
    schema = IndexSchema.compose({"A": "BIGINT", "B": DataType.VARCHAR})

    fields = schema.resolve("A")
    assert fields.min_field == "A_minValue"
    assert fields.max_field == "A_maxValue"
    assert fields.null_count_field == "A_num_nulls"
    assert fields.data_type == DataType.BIGINT
    assert schema.resolve("B").data_type == DataType.VARCHAR
    assert len(schema) == 2


def test_resolve_is_case_insensitive():
    """Column lookups ignore case but keep the declared field names."""
    schema = IndexSchema.compose({"Amount": "DOUBLE"})

    assert schema.resolve("amount").min_field == "Amount_minValue"
    assert schema.is_indexed("AMOUNT")
    assert not schema.is_indexed("other")
    assert schema.resolve("other") is None


def test_incomplete_entry_is_not_usable(caplog):
    """A malformed entry resolves to None and logs a warning."""
    schema = IndexSchema(
        {"A": ColumnStatFields("A_min", None, "A_nulls", DataType.BIGINT)}
    )

    with caplog.at_level(logging.WARNING):
        assert schema.resolve("A") is None
    assert "incomplete" in caplog.text


def test_custom_naming():
    """Field names follow the configured templates."""
    naming = IndexNaming("min_{column}", "max_{column}", "nulls_{column}")
    schema = IndexSchema.compose({"A": "INT"}, naming)

    fields = schema.resolve("A")
    assert (fields.min_field, fields.max_field, fields.null_count_field) == (
        "min_A",
        "max_A",
        "nulls_A",
    )


def test_bad_template():
    """A template with an unknown placeholder is rejected."""
    naming = IndexNaming(min_template="{col}_min")
    with pytest.raises(IndexSchemaError):
        IndexSchema.compose({"A": "BIGINT"}, naming)


def test_from_config():
    """The schema can be built from an index config section."""
    config = IndexConfig(columns={"A": "BIGINT", "C": "TIMESTAMP"})
    schema = IndexSchema.from_config(config)

    assert schema.resolve("C").max_field == "C_maxValue"
    assert list(schema.field_names()) == [
        "file",
        "A_minValue",
        "A_maxValue",
        "A_num_nulls",
        "C_minValue",
        "C_maxValue",
        "C_num_nulls",
    ]


@pytest.mark.parametrize(
    "type_name,expected",
    [
        ("bigint", DataType.BIGINT),
        ("VARCHAR(32)", DataType.VARCHAR),
        ("string", DataType.VARCHAR),
        ("long", DataType.BIGINT),
        ("decimal(10, 2)", DataType.DECIMAL),
        (" timestamp ", DataType.TIMESTAMP),
        (DataType.DATE, DataType.DATE),
    ],
)
def test_parse_data_type(type_name, expected):
    """Type names and aliases resolve to data types."""
    assert parse_data_type(type_name) == expected


def test_unknown_type():
    """Unknown type names raise."""
    with pytest.raises(IndexSchemaError):
        parse_data_type("GEOMETRY")
