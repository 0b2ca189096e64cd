"""Configuration management for data skipping."""

from dataclasses import dataclass, field
from typing import Dict, Optional
import yaml
from pathlib import Path

from ..catalog.index_schema import (
    DEFAULT_MAX_TEMPLATE,
    DEFAULT_MIN_TEMPLATE,
    DEFAULT_NULL_COUNT_TEMPLATE,
)


@dataclass
class IndexConfig:
    """Configuration for the column statistics index."""

    min_field_template: str = DEFAULT_MIN_TEMPLATE
    max_field_template: str = DEFAULT_MAX_TEMPLATE
    null_count_field_template: str = DEFAULT_NULL_COUNT_TEMPLATE
    columns: Dict[str, str] = field(default_factory=dict)  # column -> type name


@dataclass
class TranslationConfig:
    """Configuration for skip-predicate translation."""

    enabled: bool = True  # When False every file is kept
    max_case_variants: int = 64


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    structured: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""

    index: IndexConfig = field(default_factory=IndexConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Parsed configuration

    Example YAML format:
        index:
          min_field_template: "{column}_minValue"
          max_field_template: "{column}_maxValue"
          null_count_field_template: "{column}_num_nulls"
          columns:
            A: BIGINT
            B: VARCHAR
            C: TIMESTAMP

        translation:
          enabled: true
          max_case_variants: 64

        logging:
          level: DEBUG
          structured: false
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Parse index config; column types stay as names until the schema is built
    index_data = dict(data.get("index", {}))
    columns = index_data.pop("columns", None) or {}
    index = IndexConfig(
        columns={str(name): str(type_name) for name, type_name in columns.items()},
        **index_data,
    )

    translation = TranslationConfig(**data.get("translation", {}))
    logging_config = LoggingConfig(**data.get("logging", {}))

    return Config(index=index, translation=translation, logging=logging_config)
