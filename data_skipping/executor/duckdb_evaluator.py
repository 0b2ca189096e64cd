"""Skip-predicate evaluation over a statistics table with DuckDB."""

import logging
from pathlib import Path
from typing import List, Optional

import duckdb
import pyarrow as pa
import pyarrow.csv as pa_csv
import pyarrow.parquet as pq

from ..catalog.index_schema import FILE_FIELD
from ..plan.expressions import ColumnRef, Expression

logger = logging.getLogger(__name__)

STATS_VIEW = "column_stats"
ORDINAL_FIELD = "__row_ordinal"


def read_stats_table(path: str) -> pa.Table:
    """Read a statistics table from a Parquet or CSV file.

    Args:
        path: File path; ``.csv`` files are read as CSV, anything else as Parquet

    Returns:
        Arrow table with one row per data file
    """
    stats_path = Path(path)
    if not stats_path.exists():
        raise FileNotFoundError(f"Stats file not found: {path}")
    if stats_path.suffix.lower() == ".csv":
        return pa_csv.read_csv(stats_path)
    return pq.read_table(stats_path)


class DuckDBStatsEvaluator:
    """Run skip predicates as SQL over an in-memory statistics table."""

    def __init__(self, stats_table: pa.Table, file_field: str = FILE_FIELD):
        """Initialize evaluator.

        Args:
            stats_table: One row per data file with the index's stat fields
            file_field: Column holding the file identifier
        """
        if file_field not in stats_table.column_names:
            raise ValueError(f"Stats table has no {file_field!r} column")
        self.file_field = file_field
        self.num_files = stats_table.num_rows
        ordinals = pa.array(range(stats_table.num_rows), type=pa.int64())
        self._table = stats_table.append_column(ORDINAL_FIELD, ordinals)
        self.connection = duckdb.connect(":memory:")
        self.connection.register(STATS_VIEW, self._table)

    def kept_files(self, predicate: Expression) -> List[str]:
        """Return files the predicate keeps, in stats table order.

        A NULL predicate result keeps the file.
        """
        file_column = ColumnRef(self.file_field).to_sql()
        ordinal_column = ColumnRef(ORDINAL_FIELD).to_sql()
        sql = (
            f"SELECT {file_column} FROM {STATS_VIEW} "
            f"WHERE COALESCE({predicate.to_sql()}, TRUE) "
            f"ORDER BY {ordinal_column}"
        )
        logger.debug(f"Evaluating skip predicate: {sql}")
        rows = self.connection.execute(sql).fetchall()
        kept = [row[0] for row in rows]
        logger.info(f"Kept {len(kept)} of {self.num_files} files")
        return kept

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def __enter__(self) -> "DuckDBStatsEvaluator":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.close()
        return None
