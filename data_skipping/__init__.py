"""Data skipping with per-file column statistics."""

from .catalog import IndexSchema
from .optimizer import DataSkippingTranslator, translate_filter
from .parser import Parser
from .executor import DuckDBStatsEvaluator, evaluate_predicate, select_files

__version__ = "0.1.0"

__all__ = [
    "IndexSchema",
    "DataSkippingTranslator",
    "translate_filter",
    "Parser",
    "DuckDBStatsEvaluator",
    "evaluate_predicate",
    "select_files",
]
