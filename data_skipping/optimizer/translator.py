"""Filter to skip-predicate translation.

The translator walks a filter top-down. Logical connectives are composed with
constant propagation, NOT is pushed into its operand structurally, and every
leaf is handed to the atomic translator. The resulting skip predicate is TRUE
for files that must be read and FALSE only for files that provably hold no
matching row.
"""

import uuid
from typing import Optional

from ..catalog.index_schema import IndexSchema
from ..config.config import TranslationConfig
from ..plan.expressions import (
    FALSE,
    TRUE,
    ColumnRef,
    Comparison,
    Expression,
    FunctionCall,
    InList,
    Literal,
    Logical,
    LogicalKind,
    NullCheck,
    StartsWith,
    is_true,
    not_,
)
from ..utils.logging import get_contextual_logger
from .atomic import LEAF_TYPES, AtomicPredicateTranslator
from .constant_folding import ConstantFolder
from .functions import FunctionPatternRecognizer
from .simplify import conjoin, disjoin, negate


class DataSkippingTranslator:
    """Translate filters over table columns into predicates over file statistics."""

    def __init__(
        self,
        index_schema: IndexSchema,
        config: Optional[TranslationConfig] = None,
    ):
        """Initialize translator.

        Args:
            index_schema: Statistics index of the table being scanned
            config: Translation settings
        """
        self.index_schema = index_schema
        self.config = config or TranslationConfig()
        self.folder = ConstantFolder()
        self.recognizer = FunctionPatternRecognizer(
            index_schema,
            folder=self.folder,
            max_case_variants=self.config.max_case_variants,
        )
        self.atomic = AtomicPredicateTranslator(self.recognizer, self.folder)

    def translate(self, expr: Expression) -> Expression:
        """Translate a filter into its skip predicate.

        Args:
            expr: Filter expression over table columns

        Returns:
            Keep-if-true predicate over statistics fields. Never raises for a
            well-formed filter; shapes that cannot be reasoned about become
            TRUE locally.
        """
        logger = get_contextual_logger(__name__, {"translation_id": uuid.uuid4().hex[:8]})
        if not self.config.enabled:
            logger.debug("Data skipping disabled, keeping every file")
            return TRUE

        predicate = self._translate(expr)
        logger.debug(f"Translated {expr.to_sql()} into {predicate.to_sql()}")
        return predicate

    def _translate(self, expr: Expression) -> Expression:
        expr = _as_starts_with(expr)
        if isinstance(expr, Literal):
            return self._constant(expr)
        if isinstance(expr, Logical):
            if expr.kind == LogicalKind.AND:
                return conjoin(self._translate(child) for child in expr.children)
            if expr.kind == LogicalKind.OR:
                return disjoin(self._translate(child) for child in expr.children)
            return self._translate_not(expr.operand)
        if isinstance(expr, LEAF_TYPES):
            return self.atomic.translate(expr)
        if not expr.references_columns():
            folded = self.folder.fold(expr)
            return self._constant(folded) if folded is not None else TRUE
        # Boolean-valued function over columns, e.g. a UDF
        return TRUE

    def _translate_not(self, child: Expression) -> Expression:
        """Translate ``NOT child`` by rewriting the child structurally."""
        child = _as_starts_with(child)
        if isinstance(child, Logical):
            if child.kind == LogicalKind.AND:
                return disjoin(self._translate_not(grandchild) for grandchild in child.children)
            if child.kind == LogicalKind.OR:
                return conjoin(self._translate_not(grandchild) for grandchild in child.children)
            return self._translate(child.operand)
        if isinstance(child, Comparison):
            return self._translate(Comparison(child.op.complement(), child.left, child.right))
        if isinstance(child, (NullCheck, InList, StartsWith)):
            return self._translate(child.flipped())
        if isinstance(child, ColumnRef):
            return self.atomic.translate_boolean_column(child, False)
        if not child.references_columns():
            folded = self.folder.fold(not_(child))
            return self._constant(folded) if folded is not None else TRUE
        return self._negate_translated(child)

    def _negate_translated(self, child: Expression) -> Expression:
        translated = self._translate(child)
        # A degraded child says nothing about which files fail it
        if is_true(translated) or not translated.references_columns():
            return TRUE
        return negate(translated)

    def _constant(self, literal: Literal) -> Expression:
        if literal.value is True:
            return TRUE
        if literal.value is False or literal.value is None:
            return FALSE
        return TRUE


def _as_starts_with(expr: Expression) -> Expression:
    """Rewrite a two-argument ``startsWith(value, prefix)`` call as a prefix test."""
    if (
        isinstance(expr, FunctionCall)
        and expr.name in ("startswith", "starts_with")
        and len(expr.args) == 2
    ):
        return StartsWith(expr.args[0], expr.args[1])
    return expr


def translate_filter(
    expr: Expression,
    index_schema: IndexSchema,
    config: Optional[TranslationConfig] = None,
) -> Expression:
    """Translate ``expr`` into a skip predicate over ``index_schema``'s fields."""
    return DataSkippingTranslator(index_schema, config).translate(expr)
