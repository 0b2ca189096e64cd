"""Configuration management."""

from .config import (
    Config,
    IndexConfig,
    TranslationConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "Config",
    "IndexConfig",
    "TranslationConfig",
    "LoggingConfig",
    "load_config",
]
