"""Command line interface for translating filters and pruning files."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import click
import duckdb
import pyarrow as pa
import yaml

from ..catalog.index_schema import FILE_FIELD, IndexSchema, IndexSchemaError
from ..config import Config, IndexConfig, load_config
from ..executor import DuckDBStatsEvaluator, read_stats_table, select_files
from ..optimizer import DataSkippingTranslator
from ..parser import FilterParseError, Parser
from ..plan.expressions import Expression
from ..utils.logging import setup_logging


class StatsPrinter:
    """Formats the kept rows of a stats table for CLI display."""

    def __init__(self, emit):
        self.emit = emit

    def display(self, table: pa.Table) -> None:
        headers = list(table.schema.names)
        rows = [self._stringify_row(row.values()) for row in table.to_pylist()]
        widths = self._compute_widths(headers, rows)
        border = self._build_border(widths)
        self.emit(border)
        self.emit(self._format_row(headers, widths))
        self.emit(border)
        for row in rows:
            self.emit(self._format_row(row, widths))
        self.emit(border)

    def _compute_widths(self, headers: List[str], rows: List[List[str]]) -> List[int]:
        widths = [len(header) for header in headers]
        for row in rows:
            for index, text in enumerate(row):
                widths[index] = max(widths[index], len(text))
        return widths

    def _build_border(self, widths: List[int]) -> str:
        return "+" + "+".join("-" * (width + 2) for width in widths) + "+"

    def _format_row(self, values: Sequence[str], widths: List[int]) -> str:
        cells = [f" {value.ljust(width)} " for value, width in zip(values, widths)]
        return "|" + "|".join(cells) + "|"

    def _stringify_row(self, values) -> List[str]:
        return ["NULL" if value is None else str(value) for value in values]


def _parse_column_options(columns: Sequence[str]) -> dict:
    parsed = {}
    for option in columns:
        name, sep, type_name = option.partition("=")
        if not sep or not name.strip() or not type_name.strip():
            raise click.BadParameter(f"expected NAME=TYPE, got {option!r}", param_hint="--column")
        parsed[name.strip()] = type_name.strip()
    return parsed


def _load_config_bundle(config_path: Optional[str], columns: Sequence[str]) -> Config:
    try:
        config = load_config(config_path) if config_path else Config(index=IndexConfig())
    except (yaml.YAMLError, TypeError) as e:
        raise click.ClickException(f"Invalid config file: {e}") from e
    config.index.columns.update(_parse_column_options(columns))
    if not config.index.columns:
        raise click.UsageError("No indexed columns: pass --config or --column NAME=TYPE")
    return config


def _prepare_translation(options: dict, filter_sql: str) -> Expression:
    config = _load_config_bundle(options["config_path"], options["columns"])
    level = "DEBUG" if options["verbose"] else config.logging.level
    setup_logging(level, config.logging.structured, config.logging.log_file)
    try:
        index_schema = IndexSchema.from_config(config.index)
        expr = Parser().parse_filter(filter_sql)
    except (FilterParseError, IndexSchemaError) as e:
        raise click.ClickException(str(e)) from e
    predicate = DataSkippingTranslator(index_schema, config.translation).translate(expr)
    return predicate


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file describing the statistics index.",
)
@click.option(
    "--column",
    "columns",
    multiple=True,
    metavar="NAME=TYPE",
    help="Indexed column, in addition to those in the config file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log translation details.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], columns: Tuple[str, ...], verbose: bool) -> None:
    """Translate filters into data-skipping predicates over column statistics."""
    ctx.obj = {"config_path": config_path, "columns": columns, "verbose": verbose}


@cli.command()
@click.argument("filter_sql")
@click.pass_obj
def translate(options: dict, filter_sql: str) -> None:
    """Print the skip predicate for FILTER_SQL."""
    predicate = _prepare_translation(options, filter_sql)
    click.echo(predicate.to_sql())


@cli.command()
@click.argument("filter_sql")
@click.option(
    "--stats",
    "stats_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Statistics table as Parquet or CSV, one row per file.",
)
@click.option(
    "--engine",
    type=click.Choice(["duckdb", "python"]),
    default="duckdb",
    show_default=True,
    help="Evaluator used to apply the skip predicate.",
)
@click.option("--show-stats", is_flag=True, help="Print the kept files' statistics.")
@click.pass_obj
def prune(options: dict, filter_sql: str, stats_path: str, engine: str, show_stats: bool) -> None:
    """Print the files FILTER_SQL may match, one per line."""
    predicate = _prepare_translation(options, filter_sql)
    try:
        table = read_stats_table(stats_path)
    except (OSError, pa.ArrowInvalid) as e:
        raise click.ClickException(f"Cannot read stats table: {e}") from e

    if engine == "duckdb":
        try:
            with DuckDBStatsEvaluator(table) as evaluator:
                kept = evaluator.kept_files(predicate)
        except (ValueError, duckdb.Error) as e:
            raise click.ClickException(f"Cannot evaluate skip predicate: {e}") from e
    else:
        if FILE_FIELD not in table.column_names:
            raise click.ClickException(f"Stats table has no {FILE_FIELD!r} column")
        kept = select_files(predicate, table.to_pylist())

    if show_stats:
        kept_set = set(kept)
        mask = pa.array([name in kept_set for name in table.column(FILE_FIELD).to_pylist()])
        StatsPrinter(click.echo).display(table.filter(mask))
    else:
        for name in kept:
            click.echo(name)
    click.echo(f"Kept {len(kept)} of {table.num_rows} files", err=True)
