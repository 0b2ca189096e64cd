"""Constant folding of column-free expressions.

Filters routinely carry literal-side computations (``A = int('0')``,
``C >= to_date('2022-03-06', 'yyyy-MM-dd')``). Before a leaf is translated its
literal operand is folded into a single ``Literal`` here. Only an allow-listed
set of functions is evaluated; anything else is reported as not foldable.
"""

import logging
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from ..catalog.index_schema import IndexSchemaError, parse_data_type
from ..plan.expressions import (
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
)
from .date_patterns import compile_pattern

logger = logging.getLogger(__name__)


class LiteralCastError(ValueError):
    """Raised when a literal cannot be represented in a column's type."""


def cast_value(value: Any, data_type: DataType) -> Any:
    """Cast a literal value into ``data_type``.

    Args:
        value: Python value of a folded literal
        data_type: Declared type of the column it is compared with

    Returns:
        The value in the column's domain

    Raises:
        LiteralCastError: If the value has no exact representation
    """
    if value is None:
        raise LiteralCastError("NULL has no value in any column domain")
    if data_type.is_integral:
        return _cast_integral(value)
    if data_type in (DataType.FLOAT, DataType.DOUBLE):
        return _cast_float(value)
    if data_type == DataType.DECIMAL:
        return _cast_decimal(value)
    if data_type.is_string:
        if isinstance(value, str):
            return value
        raise LiteralCastError(f"Cannot compare {type(value).__name__} with a string column")
    if data_type == DataType.BOOLEAN:
        return _cast_boolean(value)
    if data_type == DataType.DATE:
        return _cast_date(value)
    if data_type == DataType.TIMESTAMP:
        return _cast_timestamp(value)
    raise LiteralCastError(f"Unsupported column type: {data_type.value}")


def _cast_integral(value: Any) -> int:
    if isinstance(value, bool):
        raise LiteralCastError("Booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as e:
            raise LiteralCastError(str(e)) from e
    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            raise LiteralCastError(f"{value} is not finite")
        if isinstance(value, Decimal) and not value.is_finite():
            raise LiteralCastError(f"{value} is not finite")
        if value != int(value):
            raise LiteralCastError(f"{value} is not integral")
        return int(value)
    raise LiteralCastError(f"Cannot cast {type(value).__name__} to integer")


def _cast_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise LiteralCastError(f"Cannot cast {type(value).__name__} to float")
    try:
        result = float(value)
    except (ValueError, OverflowError) as e:
        raise LiteralCastError(str(e)) from e
    if math.isnan(result):
        raise LiteralCastError("NaN does not order")
    return result


def _cast_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise LiteralCastError(f"Cannot cast {type(value).__name__} to decimal")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise LiteralCastError(f"Invalid decimal: {value!r}") from e
    if not result.is_finite():
        raise LiteralCastError(f"{value} is not finite")
    return result


def _cast_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise LiteralCastError(f"Cannot cast {value!r} to boolean")


def _cast_date(value: Any) -> date:
    if isinstance(value, datetime):
        if value.time() != datetime.min.time():
            raise LiteralCastError(f"{value} is not a whole date")
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise LiteralCastError(str(e)) from e
    raise LiteralCastError(f"Cannot cast {type(value).__name__} to date")


def _cast_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise LiteralCastError(str(e)) from e
    raise LiteralCastError(f"Cannot cast {type(value).__name__} to timestamp")


def _cast_function(data_type: DataType) -> Callable[[Any], Any]:
    def apply(value):
        return cast_value(value, data_type)

    return apply


def _sql_cast(value: Any, type_name: str) -> Any:
    data_type = parse_data_type(type_name)
    if data_type.is_string:
        return _to_string(value)
    return cast_value(value, data_type)


def _format_date(value: Any, pattern: str) -> str:
    compiled = compile_pattern(pattern)
    if compiled is None:
        raise LiteralCastError(f"Unsupported date pattern: {pattern!r}")
    return compiled.format(_cast_timestamp(value))


def _parse_timestamp(value: Any, pattern: Optional[str] = None) -> datetime:
    if pattern is None:
        return _cast_timestamp(value)
    compiled = compile_pattern(pattern)
    if compiled is None:
        raise LiteralCastError(f"Unsupported date pattern: {pattern!r}")
    parsed = compiled.parse(value)
    if parsed is None:
        raise LiteralCastError(f"{value!r} does not match {pattern!r}")
    return parsed


def _parse_date(value: Any, pattern: Optional[str] = None) -> date:
    return _cast_date(_parse_timestamp(value, pattern)) if pattern else _cast_date(value)


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)


def _divide(left: Any, right: Any) -> Any:
    if right == 0:
        raise LiteralCastError("Division by zero")
    return left / right


FOLDABLE_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "cast": _sql_cast,
    "int": _cast_function(DataType.INTEGER),
    "integer": _cast_function(DataType.INTEGER),
    "bigint": _cast_function(DataType.BIGINT),
    "double": _cast_function(DataType.DOUBLE),
    "float": _cast_function(DataType.FLOAT),
    "decimal": _cast_function(DataType.DECIMAL),
    "string": _to_string,
    "boolean": _cast_function(DataType.BOOLEAN),
    "date": _cast_function(DataType.DATE),
    "timestamp": _cast_function(DataType.TIMESTAMP),
    "negate": lambda value: -value,
    "add": lambda left, right: left + right,
    "subtract": lambda left, right: left - right,
    "multiply": lambda left, right: left * right,
    "divide": _divide,
    "lower": lambda value: value.lower(),
    "upper": lambda value: value.upper(),
    "trim": lambda value: value.strip(),
    "concat": lambda *values: "".join(str(value) for value in values),
    "to_timestamp": _parse_timestamp,
    "to_date": _parse_date,
    "date_format": _format_date,
    "time_to_str": _format_date,
    "strftime": _format_date,
}


class ConstantFolder:
    """Fold column-free expressions into literals."""

    def __init__(self, functions: Optional[Dict[str, Callable[..., Any]]] = None):
        """Initialize folder.

        Args:
            functions: Allow-listed function implementations by lower-case name
        """
        self.functions = FOLDABLE_FUNCTIONS if functions is None else functions

    def fold(self, expr: Expression) -> Optional[Literal]:
        """Fold an expression.

        Args:
            expr: Input expression

        Returns:
            The equivalent literal, or None if the expression references a
            column, calls an unknown function, or fails to evaluate
        """
        if isinstance(expr, Literal):
            return expr
        if expr.references_columns():
            return None

        if isinstance(expr, FunctionCall):
            return self._fold_function_call(expr)
        if isinstance(expr, Comparison):
            return self._fold_comparison(expr)
        if isinstance(expr, Logical):
            return self._fold_logical(expr)
        if isinstance(expr, NullCheck):
            return self._fold_null_check(expr)
        if isinstance(expr, InList):
            return self._fold_in_list(expr)
        if isinstance(expr, StartsWith):
            return self._fold_starts_with(expr)

        return None

    def _fold_all(self, exprs) -> Optional[List[Literal]]:
        folded = []
        for expr in exprs:
            literal = self.fold(expr)
            if literal is None:
                return None
            folded.append(literal)
        return folded

    def _fold_function_call(self, expr: FunctionCall) -> Optional[Literal]:
        """Evaluate an allow-listed function over literal arguments."""
        implementation = self.functions.get(expr.name)
        if implementation is None:
            logger.debug(f"Function {expr.function_name} is not foldable")
            return None

        args = self._fold_all(expr.args)
        if args is None:
            return None

        values = [arg.value for arg in args]
        if any(value is None for value in values):
            return Literal(None, DataType.NULL)

        try:
            result = implementation(*values)
        except (LiteralCastError, IndexSchemaError, AttributeError, TypeError, ValueError, ArithmeticError) as e:
            logger.debug(f"Could not fold {expr.to_sql()}: {e}")
            return None
        return Literal(result)

    def _fold_comparison(self, expr: Comparison) -> Optional[Literal]:
        """Fold comparison with constant operands."""
        args = self._fold_all((expr.left, expr.right))
        if args is None:
            return None

        left_val = args[0].value
        right_val = args[1].value

        if left_val is None or right_val is None:
            return Literal(None, DataType.NULL)
        if not _comparable(left_val, right_val):
            return None

        if expr.op == ComparisonOp.EQ:
            result_value = left_val == right_val
        elif expr.op == ComparisonOp.NEQ:
            result_value = left_val != right_val
        elif expr.op == ComparisonOp.LT:
            result_value = left_val < right_val
        elif expr.op == ComparisonOp.LTE:
            result_value = left_val <= right_val
        elif expr.op == ComparisonOp.GT:
            result_value = left_val > right_val
        else:
            result_value = left_val >= right_val

        return Literal(result_value, DataType.BOOLEAN)

    def _fold_logical(self, expr: Logical) -> Optional[Literal]:
        """Fold logical connectives with SQL three-valued semantics."""
        args = self._fold_all(expr.children)
        if args is None:
            return None
        values = [arg.value for arg in args]
        if any(value is not None and not isinstance(value, bool) for value in values):
            return None

        if expr.kind == LogicalKind.NOT:
            if values[0] is None:
                return Literal(None, DataType.NULL)
            return Literal(not values[0], DataType.BOOLEAN)
        if expr.kind == LogicalKind.AND:
            if False in values:
                return Literal(False, DataType.BOOLEAN)
            if None in values:
                return Literal(None, DataType.NULL)
            return Literal(True, DataType.BOOLEAN)
        if True in values:
            return Literal(True, DataType.BOOLEAN)
        if None in values:
            return Literal(None, DataType.NULL)
        return Literal(False, DataType.BOOLEAN)

    def _fold_null_check(self, expr: NullCheck) -> Optional[Literal]:
        operand = self.fold(expr.operand)
        if operand is None:
            return None
        is_null = operand.value is None
        return Literal(is_null != expr.negated, DataType.BOOLEAN)

    def _fold_in_list(self, expr: InList) -> Optional[Literal]:
        args = self._fold_all((expr.value,) + expr.options)
        if args is None:
            return None
        value = args[0].value
        options = [arg.value for arg in args[1:]]
        if value is None:
            return Literal(None, DataType.NULL)
        if not all(option is None or _comparable(value, option) for option in options):
            return None
        if value in [option for option in options if option is not None]:
            return Literal(not expr.negated, DataType.BOOLEAN)
        if None in options:
            return Literal(None, DataType.NULL)
        return Literal(expr.negated, DataType.BOOLEAN)

    def _fold_starts_with(self, expr: StartsWith) -> Optional[Literal]:
        args = self._fold_all((expr.value, expr.prefix))
        if args is None:
            return None
        value, prefix = args[0].value, args[1].value
        if value is None or prefix is None:
            return Literal(None, DataType.NULL)
        if not isinstance(value, str) or not isinstance(prefix, str):
            return None
        return Literal(value.startswith(prefix) != expr.negated, DataType.BOOLEAN)


def _comparable(left: Any, right: Any) -> bool:
    """Whether two literal values order against each other in SQL terms."""
    numeric = (int, float, Decimal)
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool)
    if isinstance(left, numeric) and isinstance(right, numeric):
        return True
    if isinstance(left, datetime) or isinstance(right, datetime):
        return isinstance(left, datetime) and isinstance(right, datetime)
    return type(left) is type(right)
