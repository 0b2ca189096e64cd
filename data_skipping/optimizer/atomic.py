"""Translation of single filter leaves into statistics predicates."""

import logging
from typing import Optional, Tuple

from ..catalog.index_schema import ColumnStatFields
from ..plan.expressions import (
    FALSE,
    TRUE,
    ColumnRef,
    Comparison,
    ComparisonOp,
    DataType,
    Expression,
    InList,
    Literal,
    NullCheck,
    StartsWith,
    is_true,
)
from .constant_folding import ConstantFolder
from .functions import ColumnTerm, FunctionPatternRecognizer
from .ranges import ValueSet, containment_predicate, overlap_predicate
from .simplify import conjoin, disjoin, negate

logger = logging.getLogger(__name__)

LEAF_TYPES = (Comparison, NullCheck, InList, StartsWith, ColumnRef)


def keep_if_overlaps(fields: ColumnStatFields, values: Optional[ValueSet]) -> Expression:
    """Keep a file whose ``[min, max]`` meets any cover range."""
    if values is None:
        return TRUE
    return disjoin(overlap_predicate(fields, value_range) for value_range in values.cover)


def keep_unless_contained(fields: ColumnStatFields, values: Optional[ValueSet]) -> Expression:
    """Keep a file unless ``[min, max]`` lies inside one exact range.

    Used for negated leaves: every value of such a file satisfies the
    positive leaf, so none satisfies its negation.
    """
    if values is None or not values.exact:
        return TRUE
    contained = disjoin(
        containment_predicate(fields, value_range) for value_range in values.exact
    )
    return negate(contained)


class AtomicPredicateTranslator:
    """Translate comparison, null-check, membership and prefix leaves."""

    def __init__(self, recognizer: FunctionPatternRecognizer, folder: Optional[ConstantFolder] = None):
        self.recognizer = recognizer
        self.folder = folder or recognizer.folder

    def translate(self, expr: Expression) -> Expression:
        """Translate one leaf into a keep-if-true predicate.

        Args:
            expr: A ``Comparison``, ``NullCheck``, ``InList``, ``StartsWith``
                or boolean ``ColumnRef``

        Returns:
            Skip predicate over statistics fields; TRUE when the leaf cannot
            be reasoned about
        """
        if not expr.references_columns():
            return self._fold_leaf(expr)
        if isinstance(expr, Comparison):
            return self.translate_comparison(expr)
        if isinstance(expr, NullCheck):
            return self.translate_null_check(expr)
        if isinstance(expr, InList):
            return self.translate_in_list(expr)
        if isinstance(expr, StartsWith):
            return self.translate_starts_with(expr)
        if isinstance(expr, ColumnRef):
            return self.translate_boolean_column(expr, True)
        return self._degrade(expr, "not an atomic leaf")

    def translate_comparison(self, expr: Comparison) -> Expression:
        split = self._split_operands(expr)
        if split is None:
            return self._degrade(expr, "neither operand folds to a literal")
        operand, op, literal = split
        if literal.value is None:
            return self._degrade(expr, "NULL literal")
        term = self.recognizer.resolve(operand)
        if term is None:
            return self._degrade(expr, "operand is not a recognized column term")
        if op == ComparisonOp.NEQ:
            values = term.value_set(ComparisonOp.EQ, literal.value)
            return self._result(expr, keep_unless_contained(term.fields, values))
        values = term.value_set(op, literal.value)
        return self._result(expr, keep_if_overlaps(term.fields, values))

    def translate_null_check(self, expr: NullCheck) -> Expression:
        term = self.recognizer.resolve(expr.operand)
        if term is None or not term.null_preserving:
            return self._degrade(expr, "operand nullness does not follow a column")
        op = ComparisonOp.EQ if expr.negated else ComparisonOp.GT
        return Comparison(op, ColumnRef(term.fields.null_count_field), Literal(0))

    def translate_in_list(self, expr: InList) -> Expression:
        if not expr.options:
            return TRUE if expr.negated else FALSE
        op = ComparisonOp.NEQ if expr.negated else ComparisonOp.EQ
        members = [
            self.translate(Comparison(op, expr.value, option)) for option in expr.options
        ]
        if expr.negated:
            return conjoin(members)
        return disjoin(members)

    def translate_starts_with(self, expr: StartsWith) -> Expression:
        prefix = self.folder.fold(expr.prefix)
        if prefix is None or not isinstance(prefix.value, str):
            return self._degrade(expr, "prefix is not a string literal")
        term = self.recognizer.resolve(expr.value)
        if term is None:
            return self._degrade(expr, "operand is not a recognized column term")
        values = term.prefix_set(prefix.value)
        if expr.negated:
            return self._result(expr, keep_unless_contained(term.fields, values))
        return self._result(expr, keep_if_overlaps(term.fields, values))

    def translate_boolean_column(self, expr: ColumnRef, expected: bool) -> Expression:
        """A boolean column used directly as a predicate, ``col = expected``."""
        term: Optional[ColumnTerm] = self.recognizer.resolve(expr)
        if term is None or term.output_type != DataType.BOOLEAN:
            return self._degrade(expr, "not an indexed boolean column")
        return keep_if_overlaps(term.fields, term.value_set(ComparisonOp.EQ, expected))

    def _split_operands(
        self, expr: Comparison
    ) -> Optional[Tuple[Expression, ComparisonOp, Literal]]:
        """Return ``(operand, op, literal)`` with the literal on the right."""
        right = self.folder.fold(expr.right)
        if right is not None:
            return expr.left, expr.op, right
        left = self.folder.fold(expr.left)
        if left is not None:
            return expr.right, expr.op.reflect(), left
        return None

    def _fold_leaf(self, expr: Expression) -> Expression:
        folded = self.folder.fold(expr)
        if folded is None:
            return self._degrade(expr, "column-free leaf did not fold")
        if folded.value is True:
            return TRUE
        # NULL and FALSE both reject every row
        if folded.value is None or folded.value is False:
            return FALSE
        return self._degrade(expr, "leaf folded to a non-boolean value")

    def _result(self, expr: Expression, predicate: Expression) -> Expression:
        if is_true(predicate):
            logger.debug(f"Leaf {expr.to_sql()} keeps every file")
        return predicate

    def _degrade(self, expr: Expression, reason: str) -> Expression:
        logger.debug(f"Leaf {expr.to_sql()} degraded to TRUE: {reason}")
        return TRUE
