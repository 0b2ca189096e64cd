"""Filter parsing."""

from .parser import FilterDialect, FilterParseError, Parser

__all__ = ["FilterDialect", "FilterParseError", "Parser"]
