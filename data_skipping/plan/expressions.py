"""Expression nodes for filters and skip predicates."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Optional, Tuple


class DataType(Enum):
    """SQL data types."""

    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DECIMAL = "DECIMAL"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    NULL = "NULL"

    @property
    def is_integral(self) -> bool:
        return self in (DataType.INTEGER, DataType.BIGINT)

    @property
    def is_numeric(self) -> bool:
        return self in (
            DataType.INTEGER,
            DataType.BIGINT,
            DataType.FLOAT,
            DataType.DOUBLE,
            DataType.DECIMAL,
        )

    @property
    def is_string(self) -> bool:
        return self in (DataType.VARCHAR, DataType.TEXT)

    @property
    def is_temporal(self) -> bool:
        return self in (DataType.DATE, DataType.TIMESTAMP)


def infer_data_type(value: Any) -> DataType:
    """Infer the SQL type of a Python literal value."""
    if value is None:
        return DataType.NULL
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, int):
        return DataType.BIGINT
    if isinstance(value, float):
        return DataType.DOUBLE
    if isinstance(value, Decimal):
        return DataType.DECIMAL
    if isinstance(value, datetime):
        return DataType.TIMESTAMP
    if isinstance(value, date):
        return DataType.DATE
    return DataType.VARCHAR


class Expression(ABC):
    """Base class for all expressions."""

    @abstractmethod
    def child_expressions(self) -> Tuple["Expression", ...]:
        """Direct sub-expressions of this node."""
        pass

    @abstractmethod
    def to_sql(self) -> str:
        """Convert expression to SQL string."""
        pass

    def walk(self) -> Iterator["Expression"]:
        """Yield this node and every descendant, pre-order."""
        yield self
        for child in self.child_expressions():
            yield from child.walk()

    def references_columns(self) -> bool:
        """True if any node in the tree is a column reference."""
        for node in self.walk():
            if isinstance(node, ColumnRef):
                return True
        return False


def _quote_identifier(name: str) -> str:
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


@dataclass(frozen=True)
class ColumnRef(Expression):
    """Column reference expression.

    In a filter this names a table column; in a skip predicate it names a
    field of the statistics record (e.g. ``A_minValue``).
    """

    column: str
    table: Optional[str] = None  # Can be None for unqualified references

    def child_expressions(self) -> Tuple[Expression, ...]:
        return ()

    def to_sql(self) -> str:
        if self.table:
            return f"{_quote_identifier(self.table)}.{_quote_identifier(self.column)}"
        return _quote_identifier(self.column)

    def __repr__(self) -> str:
        return f"ColumnRef({self.table}.{self.column})" if self.table else f"ColumnRef({self.column})"


@dataclass(frozen=True)
class Literal(Expression):
    """Literal value expression."""

    value: Any
    data_type: Optional[DataType] = None  # Inferred from value when omitted

    def __post_init__(self):
        if self.data_type is None:
            object.__setattr__(self, "data_type", infer_data_type(self.value))

    def child_expressions(self) -> Tuple[Expression, ...]:
        return ()

    def to_sql(self) -> str:
        value = self.value
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, datetime):
            return f"TIMESTAMP '{value.isoformat(sep=' ')}'"
        if isinstance(value, date):
            return f"DATE '{value.isoformat()}'"
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


TRUE = Literal(True, DataType.BOOLEAN)
FALSE = Literal(False, DataType.BOOLEAN)


def is_true(expr: Expression) -> bool:
    """Check if expression is the TRUE literal."""
    return isinstance(expr, Literal) and expr.value is True


def is_false(expr: Expression) -> bool:
    """Check if expression is the FALSE literal."""
    return isinstance(expr, Literal) and expr.value is False


class ComparisonOp(Enum):
    """Comparison operator types."""

    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="

    def reflect(self) -> "ComparisonOp":
        """Operator to use when swapping operands (``v < col`` -> ``col > v``)."""
        return _REFLECTED[self]

    def complement(self) -> "ComparisonOp":
        """Operator equivalent to the negation of this one."""
        return _COMPLEMENTS[self]


_REFLECTED = {
    ComparisonOp.EQ: ComparisonOp.EQ,
    ComparisonOp.NEQ: ComparisonOp.NEQ,
    ComparisonOp.LT: ComparisonOp.GT,
    ComparisonOp.LTE: ComparisonOp.GTE,
    ComparisonOp.GT: ComparisonOp.LT,
    ComparisonOp.GTE: ComparisonOp.LTE,
}

_COMPLEMENTS = {
    ComparisonOp.EQ: ComparisonOp.NEQ,
    ComparisonOp.NEQ: ComparisonOp.EQ,
    ComparisonOp.LT: ComparisonOp.GTE,
    ComparisonOp.LTE: ComparisonOp.GT,
    ComparisonOp.GT: ComparisonOp.LTE,
    ComparisonOp.GTE: ComparisonOp.LT,
}


@dataclass(frozen=True)
class Comparison(Expression):
    """Binary comparison expression."""

    op: ComparisonOp
    left: Expression
    right: Expression

    def child_expressions(self) -> Tuple[Expression, ...]:
        return (self.left, self.right)

    def to_sql(self) -> str:
        return f"({self.left.to_sql()} {self.op.value} {self.right.to_sql()})"

    def __repr__(self) -> str:
        return f"Comparison({self.op.value}, {self.left}, {self.right})"


class LogicalKind(Enum):
    """Logical connective types."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


@dataclass(frozen=True)
class Logical(Expression):
    """Logical connective over boolean children.

    NOT carries exactly one child; AND and OR carry any number.
    """

    kind: LogicalKind
    children: Tuple[Expression, ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        if self.kind == LogicalKind.NOT and len(self.children) != 1:
            raise ValueError("NOT takes exactly one operand")

    def child_expressions(self) -> Tuple[Expression, ...]:
        return self.children

    @property
    def operand(self) -> Expression:
        """The single operand of a NOT node."""
        return self.children[0]

    def to_sql(self) -> str:
        if self.kind == LogicalKind.NOT:
            return f"(NOT {self.operand.to_sql()})"
        if not self.children:
            return "TRUE" if self.kind == LogicalKind.AND else "FALSE"
        joiner = f" {self.kind.value} "
        return "(" + joiner.join(child.to_sql() for child in self.children) + ")"

    def __repr__(self) -> str:
        return f"Logical({self.kind.value}, {list(self.children)})"


def and_(*children: Expression) -> Logical:
    return Logical(LogicalKind.AND, children)


def or_(*children: Expression) -> Logical:
    return Logical(LogicalKind.OR, children)


def not_(child: Expression) -> Logical:
    return Logical(LogicalKind.NOT, (child,))


@dataclass(frozen=True)
class FunctionCall(Expression):
    """Function call expression."""

    function_name: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def name(self) -> str:
        """Lower-cased function name used for rule and folder lookups."""
        return self.function_name.lower()

    def child_expressions(self) -> Tuple[Expression, ...]:
        return self.args

    def to_sql(self) -> str:
        args_sql = ", ".join(arg.to_sql() for arg in self.args)
        return f"{self.function_name}({args_sql})"

    def __repr__(self) -> str:
        return f"FunctionCall({self.function_name}, {list(self.args)})"


@dataclass(frozen=True)
class InList(Expression):
    """Membership test ``value [NOT] IN (options...)``."""

    value: Expression
    options: Tuple[Expression, ...] = ()
    negated: bool = False

    def __post_init__(self):
        object.__setattr__(self, "options", tuple(self.options))

    def child_expressions(self) -> Tuple[Expression, ...]:
        return (self.value,) + self.options

    def flipped(self) -> "InList":
        return InList(self.value, self.options, not self.negated)

    def to_sql(self) -> str:
        options_sql = ", ".join(option.to_sql() for option in self.options)
        keyword = "NOT IN" if self.negated else "IN"
        return f"({self.value.to_sql()} {keyword} ({options_sql}))"

    def __repr__(self) -> str:
        keyword = "NOT IN" if self.negated else "IN"
        return f"InList({self.value} {keyword} {list(self.options)})"


@dataclass(frozen=True)
class NullCheck(Expression):
    """``operand IS [NOT] NULL``."""

    operand: Expression
    negated: bool = False

    def child_expressions(self) -> Tuple[Expression, ...]:
        return (self.operand,)

    def flipped(self) -> "NullCheck":
        return NullCheck(self.operand, not self.negated)

    def to_sql(self) -> str:
        keyword = "IS NOT NULL" if self.negated else "IS NULL"
        return f"({self.operand.to_sql()} {keyword})"

    def __repr__(self) -> str:
        keyword = "IS NOT NULL" if self.negated else "IS NULL"
        return f"NullCheck({self.operand} {keyword})"


@dataclass(frozen=True)
class StartsWith(Expression):
    """Prefix match ``value [NOT] STARTSWITH prefix``."""

    value: Expression
    prefix: Expression
    negated: bool = False

    def child_expressions(self) -> Tuple[Expression, ...]:
        return (self.value, self.prefix)

    def flipped(self) -> "StartsWith":
        return StartsWith(self.value, self.prefix, not self.negated)

    def to_sql(self) -> str:
        sql = f"starts_with({self.value.to_sql()}, {self.prefix.to_sql()})"
        if self.negated:
            return f"(NOT {sql})"
        return sql

    def __repr__(self) -> str:
        keyword = "NOT STARTSWITH" if self.negated else "STARTSWITH"
        return f"StartsWith({self.value} {keyword} {self.prefix})"
