"""Value ranges and the interval-overlap tests built on them.

A file's statistics describe the closed interval ``[min, max]`` of the values
it holds. Every atomic translation reduces to asking whether that interval
overlaps a set of candidate values (the file *may* match) or is contained in
a set of values that all satisfy the leaf (used for negated forms).
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..catalog.index_schema import ColumnStatFields
from ..plan.expressions import (
    Comparison,
    ComparisonOp,
    ColumnRef,
    Expression,
    Literal,
    and_,
)

MAX_CODE_POINT = chr(0x10FFFF)


@dataclass(frozen=True)
class ValueRange:
    """Interval of column values; a None bound is unbounded."""

    low: Any = None
    high: Any = None
    low_inclusive: bool = True
    high_inclusive: bool = True

    @classmethod
    def point(cls, value: Any) -> "ValueRange":
        return cls(value, value, True, True)

    @classmethod
    def below(cls, value: Any, inclusive: bool) -> "ValueRange":
        return cls(None, value, True, inclusive)

    @classmethod
    def above(cls, value: Any, inclusive: bool) -> "ValueRange":
        return cls(value, None, inclusive, True)

    @classmethod
    def half_open(cls, low: Any, high: Any) -> "ValueRange":
        """``[low, high)``; an unbounded high when ``high`` is None."""
        return cls(low, high, True, False)

    @property
    def is_point(self) -> bool:
        return (
            self.low is not None
            and self.low_inclusive
            and self.high_inclusive
            and self.low == self.high
        )

    @property
    def is_unbounded(self) -> bool:
        return self.low is None and self.high is None

    def contains(self, value: Any) -> bool:
        if self.low is not None:
            if value < self.low or (value == self.low and not self.low_inclusive):
                return False
        if self.high is not None:
            if value > self.high or (value == self.high and not self.high_inclusive):
                return False
        return True


@dataclass(frozen=True)
class ValueSet:
    """Raw column values for which a leaf may hold.

    ``cover`` ranges together contain every value that can satisfy the leaf;
    ``exact`` ranges contain only values that do. An empty cover means no
    value can satisfy it; an empty ``exact`` means nothing is known to.
    """

    cover: Tuple[ValueRange, ...]
    exact: Tuple[ValueRange, ...] = ()

    @classmethod
    def of(cls, *ranges: ValueRange) -> "ValueSet":
        """Set whose ranges are both cover and exact."""
        return cls(tuple(ranges), tuple(ranges))

    @classmethod
    def empty(cls) -> "ValueSet":
        return cls((), ())


def prefix_upper_bound(prefix: str) -> Optional[str]:
    """Smallest string greater than every string starting with ``prefix``.

    The last code point that can still be incremented is bumped and the rest
    dropped. Returns None (unbounded) for an empty prefix or one made only of
    maximal code points.
    """
    stripped = prefix.rstrip(MAX_CODE_POINT)
    if not stripped:
        return None
    last = ord(stripped[-1]) + 1
    # Lone surrogates cannot be encoded; no valid text sorts between them and U+E000
    if 0xD800 <= last <= 0xDFFF:
        last = 0xE000
    return stripped[:-1] + chr(last)


def prefix_range(prefix: str) -> ValueRange:
    """All strings starting with ``prefix`` as ``[prefix, upper_bound)``."""
    return ValueRange.half_open(prefix, prefix_upper_bound(prefix))


def ranges_overlap(low: Any, high: Any, other: ValueRange) -> bool:
    """Whether the closed interval ``[low, high]`` intersects ``other``."""
    if other.high is not None:
        if low > other.high or (low == other.high and not other.high_inclusive):
            return False
    if other.low is not None:
        if high < other.low or (high == other.low and not other.low_inclusive):
            return False
    return True


def _stat(name: str) -> ColumnRef:
    return ColumnRef(name)


def _compare(field_name: str, op: ComparisonOp, value: Any) -> Comparison:
    return Comparison(op, _stat(field_name), Literal(value))


def _conjunction(parts) -> Expression:
    if len(parts) == 1:
        return parts[0]
    return and_(*parts)


def overlap_predicate(fields: ColumnStatFields, value_range: ValueRange) -> Expression:
    """Keep-if-true predicate: ``[min, max]`` intersects ``value_range``.

    For a point this is ``min <= v AND max >= v``; a range unbounded on one
    side only constrains the other stat.
    """
    parts = []
    if value_range.high is not None:
        op = ComparisonOp.LTE if value_range.high_inclusive else ComparisonOp.LT
        parts.append(_compare(fields.min_field, op, value_range.high))
    if value_range.low is not None:
        op = ComparisonOp.GTE if value_range.low_inclusive else ComparisonOp.GT
        parts.append(_compare(fields.max_field, op, value_range.low))
    if not parts:
        return Literal(True)
    return _conjunction(parts)


def containment_predicate(fields: ColumnStatFields, value_range: ValueRange) -> Expression:
    """Predicate that holds when ``[min, max]`` lies inside ``value_range``.

    For a point this is ``min = v AND max = v``.
    """
    if value_range.is_point:
        return and_(
            _compare(fields.min_field, ComparisonOp.EQ, value_range.low),
            _compare(fields.max_field, ComparisonOp.EQ, value_range.low),
        )
    parts = []
    if value_range.low is not None:
        op = ComparisonOp.GTE if value_range.low_inclusive else ComparisonOp.GT
        parts.append(_compare(fields.min_field, op, value_range.low))
    if value_range.high is not None:
        op = ComparisonOp.LTE if value_range.high_inclusive else ComparisonOp.LT
        parts.append(_compare(fields.max_field, op, value_range.high))
    if not parts:
        return Literal(True)
    return _conjunction(parts)
