"""Expression trees for filters and skip predicates."""

from .expressions import (
    DataType,
    Expression,
    ColumnRef,
    Literal,
    TRUE,
    FALSE,
    ComparisonOp,
    Comparison,
    LogicalKind,
    Logical,
    FunctionCall,
    InList,
    NullCheck,
    StartsWith,
    and_,
    or_,
    not_,
    is_true,
    is_false,
    infer_data_type,
)

__all__ = [
    "DataType",
    "Expression",
    "ColumnRef",
    "Literal",
    "TRUE",
    "FALSE",
    "ComparisonOp",
    "Comparison",
    "LogicalKind",
    "Logical",
    "FunctionCall",
    "InList",
    "NullCheck",
    "StartsWith",
    "and_",
    "or_",
    "not_",
    "is_true",
    "is_false",
    "infer_data_type",
]
