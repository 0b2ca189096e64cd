"""Shared fixtures for data skipping tests."""

import pytest

from data_skipping.catalog import IndexSchema
from data_skipping.executor import select_files
from data_skipping.optimizer import translate_filter
from data_skipping.parser import Parser


def index_row(file, a=(-1, -1, -1), b=(None, None, -1), c=(None, None, -1)):
    """Build one statistics record.

    Each of ``a``, ``b`` and ``c`` is ``(min, max, num_nulls)`` for the
    column of that name.
    """
    row = {"file": file}
    for column, (low, high, nulls) in (("A", a), ("B", b), ("C", c)):
        row[f"{column}_minValue"] = low
        row[f"{column}_maxValue"] = high
        row[f"{column}_num_nulls"] = nulls
    return row


@pytest.fixture
def index_schema():
    """Index over A BIGINT, B VARCHAR, C TIMESTAMP; D is not indexed."""
    return IndexSchema.compose({"A": "BIGINT", "B": "VARCHAR", "C": "TIMESTAMP"})


@pytest.fixture
def parser():
    return Parser()


@pytest.fixture
def kept_files(index_schema, parser):
    """Translate a filter and return the files of ``rows`` it keeps."""

    def run(filter_expr, rows):
        if isinstance(filter_expr, str):
            filter_expr = parser.parse_filter(filter_expr)
        predicate = translate_filter(filter_expr, index_schema)
        return select_files(predicate, rows)

    return run
