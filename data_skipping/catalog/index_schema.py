"""Column statistics index schema."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, Mapping, Optional, Union

from ..plan.expressions import DataType

if TYPE_CHECKING:
    from ..config.config import IndexConfig

logger = logging.getLogger(__name__)

FILE_FIELD = "file"
DEFAULT_MIN_TEMPLATE = "{column}_minValue"
DEFAULT_MAX_TEMPLATE = "{column}_maxValue"
DEFAULT_NULL_COUNT_TEMPLATE = "{column}_num_nulls"

# Aliases accepted when a schema is declared with type names
_TYPE_ALIASES = {
    "INT": DataType.INTEGER,
    "LONG": DataType.BIGINT,
    "REAL": DataType.FLOAT,
    "STRING": DataType.VARCHAR,
    "BOOL": DataType.BOOLEAN,
    "DATETIME": DataType.TIMESTAMP,
}


class IndexSchemaError(ValueError):
    """Raised when an index schema cannot be constructed."""


def parse_data_type(type_name: Union[str, DataType]) -> DataType:
    """Resolve a type name like ``bigint`` or ``VARCHAR(32)`` to a DataType."""
    if isinstance(type_name, DataType):
        return type_name
    normalized = str(type_name).strip().upper()
    base = normalized.split("(", 1)[0].strip()
    if base in _TYPE_ALIASES:
        return _TYPE_ALIASES[base]
    try:
        return DataType(base)
    except ValueError:
        raise IndexSchemaError(f"Unknown column type: {type_name}") from None


@dataclass(frozen=True)
class ColumnStatFields:
    """Names of the statistics fields kept for one indexed column."""

    min_field: Optional[str]
    max_field: Optional[str]
    null_count_field: Optional[str]
    data_type: Optional[DataType]

    def is_complete(self) -> bool:
        return bool(
            self.min_field
            and self.max_field
            and self.null_count_field
            and self.data_type is not None
        )


@dataclass(frozen=True)
class IndexNaming:
    """Field-name templates of a statistics index."""

    min_template: str = DEFAULT_MIN_TEMPLATE
    max_template: str = DEFAULT_MAX_TEMPLATE
    null_count_template: str = DEFAULT_NULL_COUNT_TEMPLATE

    def fields_for(self, column: str, data_type: DataType) -> ColumnStatFields:
        try:
            return ColumnStatFields(
                min_field=self.min_template.format(column=column),
                max_field=self.max_template.format(column=column),
                null_count_field=self.null_count_template.format(column=column),
                data_type=data_type,
            )
        except (KeyError, IndexError) as e:
            raise IndexSchemaError(f"Bad field name template: {e}") from e


@dataclass
class IndexSchema:
    """Mapping from indexed column name to its statistics fields.

    Lookups are case-insensitive. The schema is read-only for the duration of
    a translation.
    """

    columns: Dict[str, ColumnStatFields] = field(default_factory=dict)

    def __post_init__(self):
        self._by_key = {name.lower(): name for name in self.columns}

    @classmethod
    def compose(
        cls,
        columns: Mapping[str, Union[str, DataType]],
        naming: Optional[IndexNaming] = None,
    ) -> "IndexSchema":
        """Build the index schema for the given ``{column: type}`` mapping.

        Args:
            columns: Indexed source columns and their declared types
            naming: Field-name templates (defaults to ``<col>_minValue`` etc.)

        Returns:
            Index schema with one entry per column
        """
        naming = naming or IndexNaming()
        entries = {}
        for name, type_name in columns.items():
            entries[name] = naming.fields_for(name, parse_data_type(type_name))
        return cls(entries)

    @classmethod
    def from_config(cls, config: "IndexConfig") -> "IndexSchema":
        naming = IndexNaming(
            min_template=config.min_field_template,
            max_template=config.max_field_template,
            null_count_template=config.null_count_field_template,
        )
        return cls.compose(config.columns, naming)

    def resolve(self, name: str) -> Optional[ColumnStatFields]:
        """Get stat fields for a column, or None if it is not usable.

        Unindexed columns and malformed entries both return None; callers
        treat either as "nothing known about this column".
        """
        key = self._by_key.get(name.lower())
        if key is None:
            return None
        fields = self.columns[key]
        if not fields.is_complete():
            logger.warning(f"Index schema entry for column {key!r} is incomplete: {fields}")
            return None
        return fields

    def is_indexed(self, name: str) -> bool:
        return self.resolve(name) is not None

    def field_names(self) -> Iterator[str]:
        """Yield every field of a stats record, file name first."""
        yield FILE_FIELD
        for fields in self.columns.values():
            yield fields.min_field
            yield fields.max_field
            yield fields.null_count_field

    def __len__(self) -> int:
        return len(self.columns)

    def __repr__(self) -> str:
        return f"IndexSchema(columns={list(self.columns)})"
