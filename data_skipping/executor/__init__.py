"""Skip-predicate evaluation."""

from .evaluator import PredicateEvaluationError, evaluate_predicate, select_files
from .duckdb_evaluator import DuckDBStatsEvaluator, read_stats_table

__all__ = [
    "PredicateEvaluationError",
    "evaluate_predicate",
    "select_files",
    "DuckDBStatsEvaluator",
    "read_stats_table",
]
