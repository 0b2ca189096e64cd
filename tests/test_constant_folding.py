"""Tests for constant folding and literal casts."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from data_skipping.optimizer import ConstantFolder, LiteralCastError, cast_value
from data_skipping.plan import (
    ColumnRef,
    Comparison,
    ComparisonOp,
    DataType,
    FunctionCall,
    InList,
    Literal,
    NullCheck,
    StartsWith,
    and_,
    not_,
    or_,
)


@pytest.fixture
def folder():
    return ConstantFolder()


class TestFunctionFolding:
    """Allow-listed functions over literal arguments."""

    def test_literal_is_returned_unchanged(self, folder):
        literal = Literal("x")
        assert folder.fold(literal) is literal

    def test_int_cast(self, folder):
        assert folder.fold(FunctionCall("int", [Literal("0")])) == Literal(0)

    def test_arithmetic(self, folder):
        assert folder.fold(FunctionCall("add", [Literal(1), Literal(2)])) == Literal(3)
        nested = FunctionCall("multiply", [FunctionCall("negate", [Literal(2)]), Literal(3)])
        assert folder.fold(nested) == Literal(-6)

    def test_string_functions(self, folder):
        assert folder.fold(FunctionCall("LOWER", [Literal("ABC")])) == Literal("abc")
        assert folder.fold(FunctionCall("concat", [Literal("a"), Literal(1)])) == Literal("a1")

    def test_date_functions(self, folder):
        parsed = FunctionCall("to_timestamp", [Literal("2022-03-06"), Literal("yyyy-MM-dd")])
        assert folder.fold(parsed) == Literal(datetime(2022, 3, 6))
        formatted = FunctionCall("date_format", [parsed, Literal("MM/dd/yyyy")])
        assert folder.fold(formatted) == Literal("03/06/2022")
        as_date = FunctionCall("to_date", [Literal("03/06/2022"), Literal("MM/dd/yyyy")])
        assert folder.fold(as_date) == Literal(date(2022, 3, 6))

    def test_sql_cast(self, folder):
        cast = FunctionCall("cast", [Literal("2022-03-06"), Literal("DATE")])
        assert folder.fold(cast) == Literal(date(2022, 3, 6))
        to_text = FunctionCall("cast", [Literal(12), Literal("VARCHAR")])
        assert folder.fold(to_text) == Literal("12")

    def test_null_argument_propagates(self, folder):
        assert folder.fold(FunctionCall("add", [Literal(1), Literal(None)])) == Literal(None)

    def test_unfoldable(self, folder):
        assert folder.fold(FunctionCall("rand", [])) is None
        assert folder.fold(FunctionCall("divide", [Literal(1), Literal(0)])) is None
        assert folder.fold(FunctionCall("int", [Literal("x")])) is None
        assert folder.fold(FunctionCall("lower", [Literal(1)])) is None
        assert folder.fold(FunctionCall("add", [ColumnRef("A"), Literal(1)])) is None
        assert folder.fold(ColumnRef("A")) is None

    def test_custom_function_table(self):
        folder = ConstantFolder({"double_it": lambda value: value * 2})
        assert folder.fold(FunctionCall("double_it", [Literal(4)])) == Literal(8)
        assert folder.fold(FunctionCall("int", [Literal("1")])) is None


class TestPredicateFolding:
    """Boolean leaves and connectives without columns."""

    def test_comparisons(self, folder):
        assert folder.fold(Comparison(ComparisonOp.LT, Literal(1), Literal(2))) == Literal(True)
        assert folder.fold(Comparison(ComparisonOp.EQ, Literal(1), Literal(1.0))).value is True
        assert folder.fold(Comparison(ComparisonOp.EQ, Literal(1), Literal(None))) == Literal(None)
        assert folder.fold(Comparison(ComparisonOp.EQ, Literal(1), Literal("1"))) is None

    def test_three_valued_connectives(self, folder):
        null = Literal(None)
        assert folder.fold(and_(Literal(True), null)) == Literal(None)
        assert folder.fold(and_(Literal(False), null)) == Literal(False)
        assert folder.fold(or_(Literal(True), null)) == Literal(True)
        assert folder.fold(or_(Literal(False), null)) == Literal(None)
        assert folder.fold(not_(null)) == Literal(None)
        assert folder.fold(not_(Literal(True))) == Literal(False)

    def test_null_check(self, folder):
        assert folder.fold(NullCheck(Literal(None))) == Literal(True)
        assert folder.fold(NullCheck(Literal(1), negated=True)) == Literal(True)

    def test_in_list(self, folder):
        assert folder.fold(InList(Literal(1), [Literal(1), Literal(2)])) == Literal(True)
        assert folder.fold(InList(Literal(3), [Literal(1), Literal(None)])) == Literal(None)
        assert folder.fold(InList(Literal(3), [Literal(1)], negated=True)) == Literal(True)

    def test_starts_with(self, folder):
        assert folder.fold(StartsWith(Literal("abc"), Literal("ab"))) == Literal(True)
        assert folder.fold(StartsWith(Literal("abc"), Literal("ab"), negated=True)) == Literal(False)


class TestCastValue:
    """Casting literals into a column's domain."""

    @pytest.mark.parametrize(
        "value,data_type,expected",
        [
            ("0", DataType.BIGINT, 0),
            (2.0, DataType.INTEGER, 2),
            (Decimal("3"), DataType.BIGINT, 3),
            (1, DataType.DOUBLE, 1.0),
            ("1.25", DataType.DECIMAL, Decimal("1.25")),
            ("abc", DataType.VARCHAR, "abc"),
            ("true", DataType.BOOLEAN, True),
            ("2022-03-06", DataType.DATE, date(2022, 3, 6)),
            (datetime(2022, 3, 6), DataType.DATE, date(2022, 3, 6)),
            (date(2022, 3, 6), DataType.TIMESTAMP, datetime(2022, 3, 6)),
            ("2022-03-06 10:00:00", DataType.TIMESTAMP, datetime(2022, 3, 6, 10)),
        ],
    )
    def test_cast(self, value, data_type, expected):
        assert cast_value(value, data_type) == expected

    @pytest.mark.parametrize(
        "value,data_type",
        [
            (None, DataType.BIGINT),
            (1.5, DataType.BIGINT),
            (True, DataType.BIGINT),
            ("abc", DataType.BIGINT),
            (float("nan"), DataType.DOUBLE),
            (1, DataType.VARCHAR),
            ("yes", DataType.BOOLEAN),
            (datetime(2022, 3, 6, 1), DataType.DATE),
            ("03/06/2022", DataType.TIMESTAMP),
            (Decimal("NaN"), DataType.BIGINT),
            (Decimal("Infinity"), DataType.BIGINT),
            (10**400, DataType.DOUBLE),
        ],
    )
    def test_inexact_cast_raises(self, value, data_type):
        with pytest.raises(LiteralCastError):
            cast_value(value, data_type)
