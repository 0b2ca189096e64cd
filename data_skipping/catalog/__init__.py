"""Statistics index metadata."""

from .index_schema import (
    ColumnStatFields,
    IndexNaming,
    IndexSchema,
    IndexSchemaError,
    parse_data_type,
)

__all__ = [
    "ColumnStatFields",
    "IndexNaming",
    "IndexSchema",
    "IndexSchemaError",
    "parse_data_type",
]
