"""SQL filter parser using sqlglot."""

import logging
from typing import List

import sqlglot
from sqlglot import exp
from sqlglot.dialects.postgres import Postgres
from sqlglot.errors import ParseError

from ..plan.expressions import (
    ColumnRef,
    Comparison,
    ComparisonOp,
    DataType,
    Expression,
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

logger = logging.getLogger(__name__)

# Kept as plain calls so their format strings reach the recognizer unchanged
_VERBATIM_FUNCTIONS = (
    "DATE_FORMAT",
    "TIME_TO_STR",
    "STRFTIME",
    "TO_TIMESTAMP",
    "TO_DATE",
    "STR_TO_TIME",
    "STR_TO_DATE",
    "STARTSWITH",
    "STARTS_WITH",
)


class FilterDialect(Postgres):
    """Postgres dialect that leaves date/time and prefix functions uninterpreted."""

    class Parser(Postgres.Parser):
        FUNCTIONS = {
            name: builder
            for name, builder in Postgres.Parser.FUNCTIONS.items()
            if name not in _VERBATIM_FUNCTIONS
        }


class FilterParseError(ValueError):
    """Raised when a filter cannot be parsed into an expression tree."""


_COMPARISONS = {
    exp.EQ: ComparisonOp.EQ,
    exp.NEQ: ComparisonOp.NEQ,
    exp.LT: ComparisonOp.LT,
    exp.LTE: ComparisonOp.LTE,
    exp.GT: ComparisonOp.GT,
    exp.GTE: ComparisonOp.GTE,
}

_ARITHMETIC = {
    exp.Add: "add",
    exp.Sub: "subtract",
    exp.Mul: "multiply",
    exp.Div: "divide",
    exp.DPipe: "concat",
}


class Parser:
    """SQL parser that converts a filter condition to an expression tree."""

    def __init__(self):
        """Initialize parser."""
        self.dialect = FilterDialect

    def parse(self, sql: str) -> exp.Expression:
        """Parse SQL string to sqlglot AST.

        Args:
            sql: Filter condition, e.g. ``A = 0 AND B LIKE 'abc%'``

        Returns:
            sqlglot expression tree
        """
        try:
            return sqlglot.parse_one(sql, read=self.dialect)
        except ParseError as e:
            raise FilterParseError(f"Cannot parse filter {sql!r}: {e}") from e

    def parse_filter(self, sql: str) -> Expression:
        """Parse a filter condition into an expression tree.

        Args:
            sql: Filter condition text

        Returns:
            Filter expression over table columns
        """
        ast = self.parse(sql)
        if isinstance(ast, exp.Select):
            where = ast.args.get("where")
            if where is None:
                raise FilterParseError(f"Query has no WHERE clause: {sql!r}")
            ast = where.this
        expr = self._convert_expression(ast)
        logger.debug(f"Parsed filter {sql!r} into {expr}")
        return expr

    def _convert_expression(self, expr: exp.Expression) -> Expression:
        """Convert sqlglot expression to our Expression.

        Args:
            expr: sqlglot expression

        Returns:
            Our Expression object
        """
        if isinstance(expr, exp.Paren):
            return self._convert_expression(expr.this)
        if isinstance(expr, exp.Column):
            return self._convert_column(expr)
        if isinstance(expr, exp.Literal):
            return self._convert_literal(expr)
        if isinstance(expr, exp.Boolean):
            return Literal(bool(expr.this), DataType.BOOLEAN)
        if isinstance(expr, exp.Null):
            return Literal(None, DataType.NULL)
        if isinstance(expr, exp.Not):
            return self._convert_not(expr)
        if isinstance(expr, exp.And):
            return Logical(LogicalKind.AND, self._convert_connector(expr, exp.And))
        if isinstance(expr, exp.Or):
            return Logical(LogicalKind.OR, self._convert_connector(expr, exp.Or))
        if type(expr) in _COMPARISONS:
            return Comparison(
                _COMPARISONS[type(expr)],
                self._convert_expression(expr.left),
                self._convert_expression(expr.right),
            )
        if isinstance(expr, exp.Is):
            return self._convert_is_expression(expr, negated=False)
        if isinstance(expr, exp.In):
            return self._convert_in_expression(expr, negated=False)
        if isinstance(expr, exp.Like):
            return self._convert_like(expr, negated=False)
        if isinstance(expr, exp.Between):
            return self._convert_between_expression(expr)
        if type(expr) in _ARITHMETIC:
            return FunctionCall(
                _ARITHMETIC[type(expr)],
                [self._convert_expression(expr.left), self._convert_expression(expr.right)],
            )
        if isinstance(expr, exp.Neg):
            return self._convert_negation(expr)
        if isinstance(expr, exp.Cast):
            return self._convert_cast(expr)
        if isinstance(expr, exp.Anonymous):
            return self._convert_anonymous(expr)
        if isinstance(expr, exp.Func):
            return self._convert_function_call(expr)

        raise FilterParseError(f"Unsupported expression type: {type(expr).__name__}")

    def _convert_not(self, expr: exp.Not) -> Expression:
        """Fold NOT into the leaves that carry a negation flag."""
        inner = expr.this
        while isinstance(inner, exp.Paren):
            inner = inner.this
        if isinstance(inner, exp.Is):
            return self._convert_is_expression(inner, negated=True)
        if isinstance(inner, exp.In):
            return self._convert_in_expression(inner, negated=True)
        if isinstance(inner, exp.Like):
            return self._convert_like(inner, negated=True)
        return not_(self._convert_expression(inner))

    def _convert_connector(self, expr: exp.Connector, kind: type) -> List[Expression]:
        """Flatten a chain of the same connector into one child list."""
        children: List[Expression] = []
        for side in (expr.left, expr.right):
            if isinstance(side, kind):
                children.extend(self._convert_connector(side, kind))
            else:
                children.append(self._convert_expression(side))
        return children

    def _convert_column(self, col: exp.Column) -> ColumnRef:
        """Convert sqlglot Column to ColumnRef."""
        table = col.table if col.table else None
        return ColumnRef(column=col.name, table=table)

    def _convert_literal(self, lit: exp.Literal) -> Literal:
        """Convert sqlglot Literal to our Literal."""
        if lit.is_string:
            return Literal(lit.this, DataType.VARCHAR)
        text = lit.this
        try:
            if any(marker in text for marker in (".", "e", "E")):
                return Literal(float(text), DataType.DOUBLE)
            return Literal(int(text), DataType.BIGINT)
        except ValueError:
            raise FilterParseError(f"Invalid numeric literal: {text}") from None

    def _convert_is_expression(self, expr: exp.Is, negated: bool) -> Expression:
        """Convert IS [NOT] NULL into a null check."""
        # Newer sqlglot releases carry IS NOT, NOT IN and NOT LIKE as a flag
        negated = negated != bool(expr.args.get("negate"))
        operand = self._convert_expression(expr.this)
        comparison = expr.expression
        if isinstance(comparison, exp.Null):
            return NullCheck(operand, negated=negated)
        if isinstance(comparison, exp.Not) and isinstance(comparison.this, exp.Null):
            return NullCheck(operand, negated=not negated)
        raise FilterParseError("IS comparison supports only NULL and NOT NULL")

    def _convert_in_expression(self, expr: exp.In, negated: bool) -> Expression:
        """Convert IN list to expression node."""
        negated = negated != bool(expr.args.get("negate"))
        if expr.args.get("query") is not None or expr.args.get("unnest") is not None:
            raise FilterParseError("IN with a subquery is not supported")
        value_expr = self._convert_expression(expr.this)
        options = [self._convert_expression(option) for option in expr.expressions]
        return InList(value=value_expr, options=options, negated=negated)

    def _convert_like(self, expr: exp.Like, negated: bool) -> Expression:
        """Convert ``LIKE 'prefix%'`` into a prefix test."""
        negated = negated != bool(expr.args.get("negate"))
        pattern = expr.expression
        if not (isinstance(pattern, exp.Literal) and pattern.is_string):
            raise FilterParseError("LIKE requires a string literal pattern")
        text = pattern.this
        prefix = text[:-1]
        if not text.endswith("%") or any(char in prefix for char in "%_\\"):
            raise FilterParseError(f"Only prefix LIKE patterns are supported: {text!r}")
        value = self._convert_expression(expr.this)
        return StartsWith(value, Literal(prefix, DataType.VARCHAR), negated=negated)

    def _convert_between_expression(self, expr: exp.Between) -> Expression:
        """Convert BETWEEN to a pair of comparisons."""
        value_expr = self._convert_expression(expr.this)
        low_expr = self._convert_expression(expr.args["low"])
        high_expr = self._convert_expression(expr.args["high"])
        return and_(
            Comparison(ComparisonOp.GTE, value_expr, low_expr),
            Comparison(ComparisonOp.LTE, value_expr, high_expr),
        )

    def _convert_negation(self, expr: exp.Neg) -> Expression:
        operand = self._convert_expression(expr.this)
        if isinstance(operand, Literal) and operand.data_type in (DataType.BIGINT, DataType.DOUBLE):
            return Literal(-operand.value, operand.data_type)
        return FunctionCall("negate", [operand])

    def _convert_cast(self, expr: exp.Cast) -> FunctionCall:
        """Convert CAST into ``cast(value, 'TYPE')``."""
        value = self._convert_expression(expr.this)
        target = expr.to.this
        type_name = target.value if isinstance(target, exp.DataType.Type) else expr.to.sql()
        return FunctionCall("cast", [value, Literal(type_name, DataType.VARCHAR)])

    def _convert_anonymous(self, func: exp.Anonymous) -> Expression:
        """Convert calls sqlglot does not model, e.g. ``date_format``."""
        name = func.name
        args = [self._convert_expression(arg) for arg in func.expressions]
        if name.lower() in ("startswith", "starts_with"):
            if len(args) != 2:
                raise FilterParseError(f"{name} takes two arguments")
            return StartsWith(args[0], args[1])
        return FunctionCall(function_name=name, args=args)

    def _convert_function_call(self, func: exp.Func) -> FunctionCall:
        """Convert generic function expressions, arguments in declaration order."""
        name = func.sql_name()
        args: List[Expression] = []
        for key in func.arg_types:
            value = func.args.get(key)
            if value is None:
                continue
            if isinstance(value, list):
                args.extend(self._convert_expression(item) for item in value)
            elif isinstance(value, exp.Expression):
                args.append(self._convert_expression(value))
        return FunctionCall(function_name=name, args=args)
