"""Date/time format patterns used by formatting and parsing functions.

Two pattern styles are understood: Java-style (``MM/dd/yyyy``, as used by
Spark's ``date_format``) and strftime-style (``%m/%d/%Y``). Only numeric
year/month/day/hour/minute/second fields are supported; anything else makes
the pattern unsupported and callers fall back.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import IntEnum
from functools import lru_cache
from typing import List, Optional, Tuple


class TimeUnit(IntEnum):
    """Pattern fields, most significant first."""

    YEAR = 0
    MONTH = 1
    DAY = 2
    HOUR = 3
    MINUTE = 4
    SECOND = 5


_JAVA_FIELDS = {
    "yyyy": (TimeUnit.YEAR, 4),
    "MM": (TimeUnit.MONTH, 2),
    "M": (TimeUnit.MONTH, 1),
    "dd": (TimeUnit.DAY, 2),
    "d": (TimeUnit.DAY, 1),
    "HH": (TimeUnit.HOUR, 2),
    "H": (TimeUnit.HOUR, 1),
    "mm": (TimeUnit.MINUTE, 2),
    "m": (TimeUnit.MINUTE, 1),
    "ss": (TimeUnit.SECOND, 2),
    "s": (TimeUnit.SECOND, 1),
}

_STRFTIME_FIELDS = {
    "Y": (TimeUnit.YEAR, 4),
    "m": (TimeUnit.MONTH, 2),
    "d": (TimeUnit.DAY, 2),
    "H": (TimeUnit.HOUR, 2),
    "M": (TimeUnit.MINUTE, 2),
    "S": (TimeUnit.SECOND, 2),
}

_STEPS = {
    TimeUnit.DAY: timedelta(days=1),
    TimeUnit.HOUR: timedelta(hours=1),
    TimeUnit.MINUTE: timedelta(minutes=1),
    TimeUnit.SECOND: timedelta(seconds=1),
}


@dataclass(frozen=True)
class _Token:
    text: str = ""
    unit: Optional[TimeUnit] = None
    width: int = 0


@dataclass(frozen=True)
class DatePattern:
    """A compiled, supported date/time pattern."""

    pattern: str
    tokens: Tuple[_Token, ...]

    @property
    def units(self) -> Tuple[TimeUnit, ...]:
        return tuple(token.unit for token in self.tokens if token.unit is not None)

    @property
    def resolution(self) -> TimeUnit:
        return max(self.units)

    @property
    def is_complete(self) -> bool:
        """Each field from year down to the resolution appears exactly once."""
        units = sorted(self.units)
        return units == list(TimeUnit)[: len(units)] and len(units) > 0

    @property
    def is_order_preserving(self) -> bool:
        """Formatted strings sort the same way as the instants they encode."""
        if not self.is_complete:
            return False
        fields = [token for token in self.tokens if token.unit is not None]
        if any(token.width == 1 for token in fields):
            return False
        return [token.unit for token in fields] == sorted(token.unit for token in fields)

    def format(self, value: datetime) -> str:
        parts = []
        for token in self.tokens:
            if token.unit is None:
                parts.append(token.text)
                continue
            number = _field_value(value, token.unit)
            parts.append(str(number).zfill(token.width))
        return "".join(parts)

    def parse(self, text: str) -> Optional[datetime]:
        """Parse ``text``; None unless it is exactly what ``format`` would emit."""
        match = self._regex.fullmatch(text)
        if match is None:
            return None
        values = {TimeUnit.MONTH: 1, TimeUnit.DAY: 1}
        fields = [token for token in self.tokens if token.unit is not None]
        for token, group in zip(fields, match.groups()):
            values[token.unit] = int(group)
        try:
            parsed = datetime(
                values.get(TimeUnit.YEAR, 1970),
                values[TimeUnit.MONTH],
                values[TimeUnit.DAY],
                values.get(TimeUnit.HOUR, 0),
                values.get(TimeUnit.MINUTE, 0),
                values.get(TimeUnit.SECOND, 0),
            )
        except ValueError:
            return None
        if self.format(parsed) != text:
            return None
        return parsed

    def floor(self, value: datetime) -> datetime:
        """Truncate to the pattern's resolution."""
        resolution = self.resolution
        if resolution == TimeUnit.YEAR:
            return datetime(value.year, 1, 1)
        if resolution == TimeUnit.MONTH:
            return datetime(value.year, value.month, 1)
        if resolution == TimeUnit.DAY:
            return datetime(value.year, value.month, value.day)
        if resolution == TimeUnit.HOUR:
            return value.replace(minute=0, second=0, microsecond=0)
        if resolution == TimeUnit.MINUTE:
            return value.replace(second=0, microsecond=0)
        return value.replace(microsecond=0)

    def step(self, value: datetime) -> datetime:
        """Advance a grid-aligned instant by one unit of resolution."""
        resolution = self.resolution
        if resolution == TimeUnit.YEAR:
            return value.replace(year=value.year + 1)
        if resolution == TimeUnit.MONTH:
            if value.month == 12:
                return value.replace(year=value.year + 1, month=1)
            return value.replace(month=value.month + 1)
        return value + _STEPS[resolution]

    def ceil(self, value: datetime) -> datetime:
        """Smallest grid instant not before ``value``."""
        floored = self.floor(value)
        if floored == value:
            return floored
        return self.step(floored)

    def interval(self, text: str) -> Optional[Tuple[datetime, datetime]]:
        """Instants that format to ``text``, as ``[start, end)``."""
        start = self.parse(text)
        if start is None:
            return None
        try:
            return start, self.step(start)
        except (ValueError, OverflowError):
            return None

    @property
    def _regex(self):
        return _compile_regex(self.tokens)


@lru_cache(maxsize=256)
def _compile_regex(tokens: Tuple[_Token, ...]):
    parts = []
    for token in tokens:
        if token.unit is None:
            parts.append(re.escape(token.text))
        elif token.width == 1:
            parts.append(r"(\d{1,2})")
        else:
            parts.append(r"(\d{%d})" % token.width)
    return re.compile("".join(parts))


def _field_value(value: datetime, unit: TimeUnit) -> int:
    if unit == TimeUnit.YEAR:
        return value.year
    if unit == TimeUnit.MONTH:
        return value.month
    if unit == TimeUnit.DAY:
        return value.day
    if unit == TimeUnit.HOUR:
        return value.hour
    if unit == TimeUnit.MINUTE:
        return value.minute
    return value.second


def _tokenize_java(pattern: str) -> Optional[List[_Token]]:
    tokens: List[_Token] = []
    position = 0
    while position < len(pattern):
        char = pattern[position]
        if char == "'":
            end = pattern.find("'", position + 1)
            if end == -1:
                return None
            quoted = pattern[position + 1:end]
            tokens.append(_Token(text=quoted if quoted else "'"))
            position = end + 1
            continue
        if char.isalpha():
            end = position
            while end < len(pattern) and pattern[end] == char:
                end += 1
            field = _JAVA_FIELDS.get(pattern[position:end])
            if field is None:
                return None
            tokens.append(_Token(unit=field[0], width=field[1]))
            position = end
            continue
        tokens.append(_Token(text=char))
        position += 1
    return tokens


def _tokenize_strftime(pattern: str) -> Optional[List[_Token]]:
    tokens: List[_Token] = []
    position = 0
    while position < len(pattern):
        char = pattern[position]
        if char != "%":
            tokens.append(_Token(text=char))
            position += 1
            continue
        if position + 1 >= len(pattern):
            return None
        directive = pattern[position + 1]
        if directive == "%":
            tokens.append(_Token(text="%"))
        else:
            field = _STRFTIME_FIELDS.get(directive)
            if field is None:
                return None
            tokens.append(_Token(unit=field[0], width=field[1]))
        position += 2
    return tokens


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Optional[DatePattern]:
    """Compile a Java- or strftime-style pattern, or None if unsupported."""
    if "%" in pattern:
        tokens = _tokenize_strftime(pattern)
    else:
        tokens = _tokenize_java(pattern)
    if not tokens:
        return None
    units = [token.unit for token in tokens if token.unit is not None]
    if not units or len(units) != len(set(units)):
        return None
    return DatePattern(pattern, tuple(tokens))


def ceil_to_date(value: datetime) -> date:
    """First calendar date whose midnight is not before ``value``."""
    if value.time() == datetime.min.time():
        return value.date()
    return value.date() + timedelta(days=1)
