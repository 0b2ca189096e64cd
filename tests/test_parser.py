"""Tests for SQL filter parsing."""

import pytest
from sqlglot import exp

from data_skipping.parser import FilterParseError, Parser
from data_skipping.plan import (
    ColumnRef,
    Comparison,
    ComparisonOp,
    DataType,
    FunctionCall,
    InList,
    Literal,
    Logical,
    LogicalKind,
    NullCheck,
    StartsWith,
    and_,
    not_,
)


@pytest.fixture
def parse():
    return Parser().parse_filter


A = ColumnRef("A")
B = ColumnRef("B")


def test_comparison(parse):
    """Simple comparisons map onto comparison nodes."""
    assert parse("A = 0") == Comparison(ComparisonOp.EQ, A, Literal(0))
    assert parse("0 > A") == Comparison(ComparisonOp.GT, Literal(0), A)
    assert parse("A <> 1") == Comparison(ComparisonOp.NEQ, A, Literal(1))
    assert parse("-1 >= A") == Comparison(ComparisonOp.GTE, Literal(-1), A)


def test_literals(parse):
    """Numeric, string, boolean and NULL literals keep their types."""
    assert parse("A = 1.5").right == Literal(1.5, DataType.DOUBLE)
    assert parse("B = 'abc'").right == Literal("abc", DataType.VARCHAR)
    assert parse("B = '0'").right == Literal("0", DataType.VARCHAR)
    assert parse("A = NULL").right == Literal(None)
    assert parse("TRUE") == Literal(True)


def test_qualified_column(parse):
    """Table qualifiers are preserved on column references."""
    assert parse("t.A = 0").left == ColumnRef("A", table="t")


def test_connectives_are_flattened(parse):
    """Chains of AND/OR become a single node."""
    expr = parse("A = 1 AND A = 2 AND A = 3")
    assert isinstance(expr, Logical)
    assert expr.kind == LogicalKind.AND
    assert len(expr.children) == 3

    mixed = parse("A = 1 OR (A = 2 AND B = 'x')")
    assert mixed.kind == LogicalKind.OR
    assert mixed.children[1].kind == LogicalKind.AND


def test_not(parse):
    """NOT over a connective stays a NOT node."""
    expr = parse("NOT (A = 0 OR A = 1)")
    assert expr == not_(
        Logical(
            LogicalKind.OR,
            [
                Comparison(ComparisonOp.EQ, A, Literal(0)),
                Comparison(ComparisonOp.EQ, A, Literal(1)),
            ],
        )
    )


def test_null_checks(parse):
    """IS [NOT] NULL and NOT (... IS NULL) become null checks."""
    assert parse("A IS NULL") == NullCheck(A)
    assert parse("A IS NOT NULL") == NullCheck(A, negated=True)
    assert parse("NOT (A IS NULL)") == NullCheck(A, negated=True)


def test_in_lists(parse):
    """IN and NOT IN become membership tests."""
    assert parse("A IN (0, 1)") == InList(A, [Literal(0), Literal(1)])
    assert parse("A NOT IN (0, 1)") == InList(A, [Literal(0), Literal(1)], negated=True)


def test_like_prefix(parse):
    """Prefix LIKE patterns become prefix tests."""
    assert parse("B LIKE 'abc%'") == StartsWith(B, Literal("abc"))
    assert parse("B NOT LIKE 'abc%'") == StartsWith(B, Literal("abc"), negated=True)


@pytest.mark.parametrize("sql", ["B LIKE '%abc'", "B LIKE 'a_c%'", "B LIKE 'abc'"])
def test_like_other_patterns_rejected(parse, sql):
    """Only prefix patterns are supported."""
    with pytest.raises(FilterParseError):
        parse(sql)


def test_between(parse):
    """BETWEEN expands into two comparisons."""
    assert parse("A BETWEEN 0 AND 2") == and_(
        Comparison(ComparisonOp.GTE, A, Literal(0)),
        Comparison(ComparisonOp.LTE, A, Literal(2)),
    )


def test_date_format_keeps_pattern(parse):
    """date_format is kept as a call with its pattern unchanged."""
    expr = parse("date_format(C, 'MM/dd/yyyy') = '03/06/2022'")
    function = expr.left
    assert isinstance(function, FunctionCall)
    assert function.name == "date_format"
    assert function.args == (ColumnRef("C"), Literal("MM/dd/yyyy"))
    assert expr.right == Literal("03/06/2022")


def test_nested_functions(parse):
    """Nested parse/format calls keep their argument order."""
    expr = parse("to_timestamp(B, 'yyyy-MM-dd') >= '2022-03-06'")
    assert expr.left.name == "to_timestamp"
    assert expr.left.args == (B, Literal("yyyy-MM-dd"))


def test_case_fold_functions(parse):
    """lower/upper are recognised by name."""
    assert parse("lower(B) = 'abc'").left == FunctionCall("LOWER", [B])
    assert parse("upper(B) LIKE 'AB%'").value.name == "upper"


def test_cast(parse):
    """CAST becomes cast(value, 'TYPE')."""
    expr = parse("CAST(A AS DECIMAL) = 0")
    assert expr.left.name == "cast"
    assert expr.left.args == (A, Literal("DECIMAL"))


def test_arithmetic(parse):
    """Arithmetic is kept as calls for constant folding."""
    expr = parse("A = 1 + 2")
    assert expr.right == FunctionCall("add", [Literal(1), Literal(2)])


def test_starts_with_function(parse):
    """starts_with(col, prefix) becomes a prefix test."""
    assert parse("starts_with(B, 'abc')") == StartsWith(B, Literal("abc"))


def test_where_clause_of_query(parse):
    """A full query contributes its WHERE clause."""
    assert parse("SELECT * FROM t WHERE A = 0") == Comparison(ComparisonOp.EQ, A, Literal(0))
    with pytest.raises(FilterParseError):
        parse("SELECT * FROM t")


@pytest.mark.parametrize("sql", ["A IN (SELECT x FROM t)", "A = (SELECT 1)"])
def test_subqueries_rejected(parse, sql):
    """Subqueries cannot be translated."""
    with pytest.raises(FilterParseError):
        parse(sql)


@pytest.mark.parametrize(
    "node,expected",
    [
        (
            exp.Is(this=exp.column("A"), expression=exp.Null(), negate=True),
            NullCheck(A, negated=True),
        ),
        (
            exp.Like(this=exp.column("B"), expression=exp.Literal.string("abc%"), negate=True),
            StartsWith(B, Literal("abc"), negated=True),
        ),
        (
            exp.In(this=exp.column("A"), expressions=[exp.Literal.number(0)], negate=True),
            InList(A, [Literal(0)], negated=True),
        ),
    ],
)
def test_negate_flag(node, expected):
    """Negation carried as a node flag is kept."""
    assert Parser()._convert_expression(node) == expected


def test_negate_flag_under_not():
    """NOT over a node already flagged as negated cancels out."""
    node = exp.Not(this=exp.Is(this=exp.column("A"), expression=exp.Null(), negate=True))
    assert Parser()._convert_expression(node) == NullCheck(A)
