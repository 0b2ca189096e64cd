"""Skip-predicate translation."""

from .constant_folding import ConstantFolder, LiteralCastError, cast_value
from .ranges import ValueRange, ValueSet, prefix_upper_bound
from .date_patterns import DatePattern, compile_pattern
from .functions import (
    ColumnTerm,
    FunctionRule,
    FunctionPatternRecognizer,
    DEFAULT_RULES,
)
from .atomic import AtomicPredicateTranslator
from .translator import DataSkippingTranslator, translate_filter

__all__ = [
    "ConstantFolder",
    "LiteralCastError",
    "cast_value",
    "ValueRange",
    "ValueSet",
    "prefix_upper_bound",
    "DatePattern",
    "compile_pattern",
    "ColumnTerm",
    "FunctionRule",
    "FunctionPatternRecognizer",
    "DEFAULT_RULES",
    "AtomicPredicateTranslator",
    "DataSkippingTranslator",
    "translate_filter",
]
