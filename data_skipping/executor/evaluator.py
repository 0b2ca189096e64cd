"""Three-valued evaluation of skip predicates against one statistics record."""

import logging
import operator
from typing import Any, Iterable, List, Mapping, Optional

from ..catalog.index_schema import FILE_FIELD
from ..plan.expressions import (
    ColumnRef,
    Comparison,
    ComparisonOp,
    Expression,
    Literal,
    Logical,
    LogicalKind,
)

logger = logging.getLogger(__name__)

_OPERATORS = {
    ComparisonOp.EQ: operator.eq,
    ComparisonOp.NEQ: operator.ne,
    ComparisonOp.LT: operator.lt,
    ComparisonOp.LTE: operator.le,
    ComparisonOp.GT: operator.gt,
    ComparisonOp.GTE: operator.ge,
}


class PredicateEvaluationError(ValueError):
    """Raised for nodes that cannot appear in a skip predicate."""


def evaluate_predicate(predicate: Expression, stats_row: Mapping[str, Any]) -> Optional[bool]:
    """Evaluate a skip predicate with SQL three-valued logic.

    Args:
        predicate: Skip predicate over statistics fields
        stats_row: One file's statistics record

    Returns:
        True or False, or None when the result is unknown (a missing or NULL
        statistic, or values that cannot be compared)
    """
    if isinstance(predicate, Literal):
        if predicate.value is None or isinstance(predicate.value, bool):
            return predicate.value
        raise PredicateEvaluationError(f"Non-boolean literal {predicate.to_sql()}")
    if isinstance(predicate, ColumnRef):
        value = stats_row.get(predicate.column)
        return None if value is None else bool(value)
    if isinstance(predicate, Comparison):
        return _evaluate_comparison(predicate, stats_row)
    if isinstance(predicate, Logical):
        return _evaluate_logical(predicate, stats_row)
    raise PredicateEvaluationError(f"Unsupported skip predicate node: {predicate!r}")


def _operand_value(expr: Expression, stats_row: Mapping[str, Any]) -> Any:
    if isinstance(expr, ColumnRef):
        return stats_row.get(expr.column)
    if isinstance(expr, Literal):
        return expr.value
    raise PredicateEvaluationError(f"Unsupported comparison operand: {expr!r}")


def _evaluate_comparison(expr: Comparison, stats_row: Mapping[str, Any]) -> Optional[bool]:
    left = _operand_value(expr.left, stats_row)
    right = _operand_value(expr.right, stats_row)
    if left is None or right is None:
        return None
    try:
        return bool(_OPERATORS[expr.op](left, right))
    except TypeError as e:
        logger.debug(f"Cannot compare {left!r} with {right!r}: {e}")
        return None


def _evaluate_logical(expr: Logical, stats_row: Mapping[str, Any]) -> Optional[bool]:
    if expr.kind == LogicalKind.NOT:
        value = evaluate_predicate(expr.operand, stats_row)
        return None if value is None else not value

    values = [evaluate_predicate(child, stats_row) for child in expr.children]
    if expr.kind == LogicalKind.AND:
        if False in values:
            return False
        return None if None in values else True
    if True in values:
        return True
    return None if None in values else False


def select_files(
    predicate: Expression,
    rows: Iterable[Mapping[str, Any]],
    file_field: str = FILE_FIELD,
) -> List[Any]:
    """Return the files whose statistics do not rule them out.

    A file is skipped only when the predicate is definitely False; unknown
    results keep the file.
    """
    kept = []
    for row in rows:
        if evaluate_predicate(predicate, row) is not False:
            kept.append(row[file_field])
    return kept
