"""Function-pattern recognition for skip-predicate translation.

A leaf such as ``date_format(C, 'MM/dd/yyyy') = '03/06/2022'`` compares a
*function of a column* with a literal. Statistics only describe the raw
column, so the operand is resolved into a ``ColumnTerm`` which knows, for a
literal, which raw column values can satisfy the leaf.

Resolution runs through a closed, ordered table of rules. An operand no rule
accepts resolves to None and the leaf degrades to TRUE; nothing here tries to
interpret arbitrary functions.
"""

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from itertools import product
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..catalog.index_schema import (
    ColumnStatFields,
    IndexSchema,
    IndexSchemaError,
    parse_data_type,
)
from ..plan.expressions import (
    ColumnRef,
    ComparisonOp,
    DataType,
    Expression,
    FunctionCall,
)
from .constant_folding import ConstantFolder, LiteralCastError, cast_value
from .date_patterns import DatePattern, TimeUnit, ceil_to_date, compile_pattern
from .ranges import ValueRange, ValueSet, prefix_range, prefix_upper_bound

logger = logging.getLogger(__name__)

DEFAULT_MAX_CASE_VARIANTS = 64


def comparison_range(op: ComparisonOp, value: Any) -> ValueRange:
    """Values ``x`` with ``x op value`` for an ordering operator."""
    if op == ComparisonOp.EQ:
        return ValueRange.point(value)
    if op == ComparisonOp.LT:
        return ValueRange.below(value, inclusive=False)
    if op == ComparisonOp.LTE:
        return ValueRange.below(value, inclusive=True)
    if op == ComparisonOp.GT:
        return ValueRange.above(value, inclusive=False)
    if op == ComparisonOp.GTE:
        return ValueRange.above(value, inclusive=True)
    raise ValueError(f"No single range for operator {op.value}")


class ColumnTerm(ABC):
    """A filter operand resolved onto one indexed column.

    ``value_set`` answers "which raw column values make ``term op value``
    hold?" as a ``ValueSet``; None means the term cannot say.
    """

    def __init__(self, column: str, fields: ColumnStatFields):
        self.column = column
        self.fields = fields

    @property
    @abstractmethod
    def output_type(self) -> DataType:
        """Type of the values this term produces."""
        pass

    @property
    def null_preserving(self) -> bool:
        """True if the term is NULL exactly when the column is NULL."""
        return False

    @abstractmethod
    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        """Raw values for ``term op value``; ``op`` is never NEQ."""
        pass

    def prefix_set(self, prefix: str) -> Optional[ValueSet]:
        """Raw values for ``term STARTSWITH prefix``."""
        return None

    def range_set(self, values: ValueSet) -> Optional[ValueSet]:
        """Map a set of this term's output values onto raw column values."""
        return None


class IdentityTerm(ColumnTerm):
    """The bare column."""

    @property
    def output_type(self) -> DataType:
        return self.fields.data_type

    @property
    def null_preserving(self) -> bool:
        return True

    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        try:
            cast = cast_value(value, self.output_type)
        except LiteralCastError as e:
            logger.debug(f"Literal {value!r} does not fit column {self.column}: {e}")
            return None
        return ValueSet.of(comparison_range(op, cast))

    def prefix_set(self, prefix: str) -> Optional[ValueSet]:
        if not self.output_type.is_string:
            return None
        return ValueSet.of(prefix_range(prefix))

    def range_set(self, values: ValueSet) -> Optional[ValueSet]:
        return values

    def __repr__(self) -> str:
        return f"IdentityTerm({self.column})"


class CastTerm(ColumnTerm):
    """A widening cast of an inner term: order and equality are unchanged."""

    def __init__(self, inner: ColumnTerm, target_type: DataType):
        super().__init__(inner.column, inner.fields)
        self.inner = inner
        self.target_type = target_type

    @property
    def output_type(self) -> DataType:
        return self.target_type

    @property
    def null_preserving(self) -> bool:
        return self.inner.null_preserving

    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        try:
            cast = cast_value(value, self.target_type)
        except LiteralCastError:
            return None
        return self.inner.range_set(ValueSet.of(comparison_range(op, cast)))

    def prefix_set(self, prefix: str) -> Optional[ValueSet]:
        if self.target_type.is_string:
            return self.inner.prefix_set(prefix)
        return None

    def range_set(self, values: ValueSet) -> Optional[ValueSet]:
        return self.inner.range_set(values)


@lru_cache(maxsize=4)
def _fold_preimages(fold_name: str) -> Dict[str, Tuple[str, str]]:
    """For each ASCII char, the smallest and largest code point folding onto it.

    A code point counts when its folded form starts with that char, which
    also catches multi-character folds such as ``'ß'.upper() == 'SS'``.
    """
    bounds: Dict[str, Tuple[str, str]] = {}
    for code_point in range(0x110000):
        if 0xD800 <= code_point <= 0xDFFF:
            continue
        char = chr(code_point)
        folded = char.lower() if fold_name == "lower" else char.upper()
        if not folded or ord(folded[0]) > 0x7F:
            continue
        key = folded[0]
        if key in bounds:
            low, high = bounds[key]
            bounds[key] = (min(low, char), max(high, char))
        else:
            bounds[key] = (char, char)
    return bounds


class CaseFoldTerm(ColumnTerm):
    """``lower(col)`` or ``upper(col)`` over a string column.

    Supports equality and prefix tests against ASCII literals. The cover is
    one envelope around every string whose folded form can match; the exact
    ranges enumerate the ASCII case variants of the literal, up to
    ``max_variants`` of them.
    """

    def __init__(self, inner: IdentityTerm, fold_name: str, max_variants: int):
        super().__init__(inner.column, inner.fields)
        self.inner = inner
        self.fold_name = fold_name
        self.max_variants = max_variants

    @property
    def output_type(self) -> DataType:
        return self.inner.output_type

    @property
    def null_preserving(self) -> bool:
        return True

    def _fold(self, text: str) -> str:
        return text.lower() if self.fold_name == "lower" else text.upper()

    def _usable(self, literal: Any) -> bool:
        return isinstance(literal, str) and literal.isascii() and literal != ""

    def _envelope(self, text: str) -> ValueRange:
        preimages = _fold_preimages(self.fold_name)
        low = "".join(preimages[char][0] for char in text)
        high_chars = []
        for char in text:
            largest = preimages[char][1]
            high_chars.append(largest)
            if ord(largest) > 0x7F:
                break
        return ValueRange.half_open(low, prefix_upper_bound("".join(high_chars)))

    def _variants(self, text: str) -> List[str]:
        choices = []
        count = 1
        for char in text:
            options = sorted({char.upper(), char.lower()})
            options = [option for option in options if self._fold(option) == char]
            choices.append(options)
            count *= len(options)
            if count > self.max_variants:
                return []
        return ["".join(chars) for chars in product(*choices)]

    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        if op != ComparisonOp.EQ or not self._usable(value):
            return None
        if self._fold(value) != value:
            return ValueSet.empty()
        exact = tuple(ValueRange.point(variant) for variant in self._variants(value))
        return ValueSet((self._envelope(value),), exact)

    def prefix_set(self, prefix: str) -> Optional[ValueSet]:
        if not self._usable(prefix):
            return None
        if self._fold(prefix) != prefix:
            return ValueSet.empty()
        exact = tuple(prefix_range(variant) for variant in self._variants(prefix))
        return ValueSet((self._envelope(prefix),), exact)

    def __repr__(self) -> str:
        return f"CaseFoldTerm({self.fold_name}({self.column}))"


def _to_domain(value: Any, data_type: DataType) -> Any:
    # Bounds produced from date patterns are datetimes; DATE columns compare as dates
    if value is None or data_type != DataType.DATE:
        return value
    return ceil_to_date(value)


class DateFormatTerm(ColumnTerm):
    """``date_format(term, pattern)`` over a DATE or TIMESTAMP term.

    A literal is parsed with the pattern into the interval of instants that
    format to it, and comparisons are applied chronologically to that
    interval.
    """

    def __init__(self, inner: ColumnTerm, pattern: DatePattern):
        super().__init__(inner.column, inner.fields)
        self.inner = inner
        self.pattern = pattern

    @property
    def output_type(self) -> DataType:
        return DataType.VARCHAR

    @property
    def null_preserving(self) -> bool:
        return self.inner.null_preserving

    def _instants(self, op: ComparisonOp, start, end) -> ValueRange:
        if op == ComparisonOp.EQ:
            return ValueRange.half_open(start, end)
        if op == ComparisonOp.LT:
            return ValueRange.below(start, inclusive=False)
        if op == ComparisonOp.LTE:
            return ValueRange.below(end, inclusive=False)
        if op == ComparisonOp.GT:
            return ValueRange.above(end, inclusive=True)
        return ValueRange.above(start, inclusive=True)

    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        if not isinstance(value, str):
            return None
        interval = self.pattern.interval(value)
        if interval is None:
            logger.debug(f"{value!r} is not a {self.pattern.pattern!r} value")
            return None
        if op != ComparisonOp.EQ and not self.pattern.is_order_preserving:
            logger.debug(
                f"Comparing {self.pattern.pattern!r} values chronologically, "
                "not in string order"
            )
        instants = self._instants(op, *interval)
        domain = self.inner.output_type
        in_domain = ValueRange(
            _to_domain(instants.low, domain),
            _to_domain(instants.high, domain),
            instants.low_inclusive,
            instants.high_inclusive,
        )
        return self.inner.range_set(ValueSet.of(in_domain))

    def __repr__(self) -> str:
        return f"DateFormatTerm({self.inner}, {self.pattern.pattern!r})"


class ParseTimestampTerm(ColumnTerm):
    """``to_timestamp(col, pattern)`` / ``to_date(col, pattern)`` over strings.

    Only order-preserving patterns are accepted, so a range of instants maps
    to a lexicographic range of the formatted strings.
    """

    def __init__(self, inner: IdentityTerm, pattern: DatePattern, output_type: DataType):
        super().__init__(inner.column, inner.fields)
        self.inner = inner
        self.pattern = pattern
        self._output_type = output_type

    @property
    def output_type(self) -> DataType:
        return self._output_type

    def value_set(self, op: ComparisonOp, value: Any) -> Optional[ValueSet]:
        try:
            cast = cast_value(value, self._output_type)
        except LiteralCastError:
            return None
        return self.range_set(ValueSet.of(comparison_range(op, cast)))

    def _string_range(self, value_range: ValueRange) -> ValueRange:
        low = value_range.low
        high = value_range.high
        pattern = self.pattern
        if low is not None:
            low = cast_value(low, DataType.TIMESTAMP)
            grid = pattern.ceil(low) if value_range.low_inclusive else pattern.step(pattern.floor(low))
            low = pattern.format(grid)
        if high is not None:
            high = cast_value(high, DataType.TIMESTAMP)
            grid = pattern.step(pattern.floor(high)) if value_range.high_inclusive else pattern.ceil(high)
            high = pattern.format(grid)
        return ValueRange.half_open(low, high)

    def range_set(self, values: ValueSet) -> Optional[ValueSet]:
        try:
            cover = tuple(self._string_range(value_range) for value_range in values.cover)
            exact = tuple(self._string_range(value_range) for value_range in values.exact)
        except (LiteralCastError, ValueError, OverflowError) as e:
            logger.debug(f"Cannot map range through {self.pattern.pattern!r}: {e}")
            return None
        return self.inner.range_set(ValueSet(cover, exact))

    def __repr__(self) -> str:
        return f"ParseTimestampTerm({self.inner}, {self.pattern.pattern!r})"


class FunctionRule(ABC):
    """One entry of the recognizer's allow-list."""

    @abstractmethod
    def matches(self, expr: Expression) -> bool:
        """Whether this rule handles the operand's shape."""
        pass

    @abstractmethod
    def resolve(
        self, expr: Expression, recognizer: "FunctionPatternRecognizer"
    ) -> Optional[ColumnTerm]:
        """Resolve a matched operand, or None if it cannot be used."""
        pass

    @abstractmethod
    def name(self) -> str:
        """Return rule name for logging."""
        pass


class _FunctionNameRule(FunctionRule):
    function_names: Tuple[str, ...] = ()
    arity: int = 1

    def matches(self, expr: Expression) -> bool:
        return (
            isinstance(expr, FunctionCall)
            and expr.name in self.function_names
            and len(expr.args) == self.arity
        )

    def _string_argument(self, expr: Expression, recognizer) -> Optional[str]:
        literal = recognizer.folder.fold(expr)
        if literal is None or not isinstance(literal.value, str):
            return None
        return literal.value


class ColumnRefRule(FunctionRule):
    """A bare indexed column."""

    def matches(self, expr: Expression) -> bool:
        return isinstance(expr, ColumnRef)

    def resolve(self, expr: ColumnRef, recognizer) -> Optional[ColumnTerm]:
        fields = recognizer.index_schema.resolve(expr.column)
        if fields is None:
            logger.debug(f"Column {expr.column} is not indexed")
            return None
        return IdentityTerm(expr.column, fields)

    def name(self) -> str:
        return "column_ref"


class CaseFoldRule(_FunctionNameRule):
    """``lower(col)`` / ``upper(col)`` over a string column."""

    function_names = ("lower", "upper", "lcase", "ucase")

    def resolve(self, expr: FunctionCall, recognizer) -> Optional[ColumnTerm]:
        inner = recognizer.resolve(expr.args[0])
        if not isinstance(inner, IdentityTerm) or not inner.output_type.is_string:
            return None
        fold_name = "lower" if expr.name in ("lower", "lcase") else "upper"
        return CaseFoldTerm(inner, fold_name, recognizer.max_case_variants)

    def name(self) -> str:
        return "case_fold"


class DateFormatRule(_FunctionNameRule):
    """``date_format(term, pattern)`` over a temporal term."""

    function_names = ("date_format", "time_to_str", "strftime")
    arity = 2

    def resolve(self, expr: FunctionCall, recognizer) -> Optional[ColumnTerm]:
        pattern_text = self._string_argument(expr.args[1], recognizer)
        if pattern_text is None:
            return None
        pattern = compile_pattern(pattern_text)
        if pattern is None or not pattern.is_complete:
            logger.debug(f"Unsupported date pattern {pattern_text!r}")
            return None
        inner = recognizer.resolve(expr.args[0])
        if inner is None or not inner.output_type.is_temporal:
            return None
        return DateFormatTerm(inner, pattern)

    def name(self) -> str:
        return "date_format"


class ParseTimestampRule(_FunctionNameRule):
    """``to_timestamp(col, pattern)`` / ``to_date(col, pattern)`` over strings."""

    function_names = ("to_timestamp", "to_date", "str_to_time", "str_to_date")
    arity = 2

    def resolve(self, expr: FunctionCall, recognizer) -> Optional[ColumnTerm]:
        pattern_text = self._string_argument(expr.args[1], recognizer)
        if pattern_text is None:
            return None
        pattern = compile_pattern(pattern_text)
        if pattern is None or not pattern.is_order_preserving:
            logger.debug(f"Pattern {pattern_text!r} does not preserve order")
            return None
        output_type = DataType.TIMESTAMP
        if expr.name in ("to_date", "str_to_date"):
            if pattern.resolution > TimeUnit.DAY:
                return None
            output_type = DataType.DATE
        inner = recognizer.resolve(expr.args[0])
        if not isinstance(inner, IdentityTerm) or not inner.output_type.is_string:
            return None
        return ParseTimestampTerm(inner, pattern, output_type)

    def name(self) -> str:
        return "parse_timestamp"


_WIDENING = {
    DataType.INTEGER: (DataType.BIGINT, DataType.DOUBLE, DataType.DECIMAL),
    DataType.BIGINT: (DataType.DECIMAL,),
    DataType.FLOAT: (DataType.DOUBLE,),
    DataType.VARCHAR: (DataType.TEXT,),
    DataType.TEXT: (DataType.VARCHAR,),
}


class WideningCastRule(_FunctionNameRule):
    """``cast(term AS T)`` where T represents every value of the term exactly."""

    function_names = ("cast",)
    arity = 2

    def resolve(self, expr: FunctionCall, recognizer) -> Optional[ColumnTerm]:
        type_name = self._string_argument(expr.args[1], recognizer)
        if type_name is None:
            return None
        try:
            target = parse_data_type(type_name)
        except IndexSchemaError:
            return None
        inner = recognizer.resolve(expr.args[0])
        if inner is None:
            return None
        source = inner.output_type
        if target != source and target not in _WIDENING.get(source, ()):
            logger.debug(f"Cast {source.value} -> {target.value} is not widening")
            return None
        return CastTerm(inner, target)

    def name(self) -> str:
        return "widening_cast"


DEFAULT_RULES: Tuple[FunctionRule, ...] = (
    ColumnRefRule(),
    CaseFoldRule(),
    DateFormatRule(),
    ParseTimestampRule(),
    WideningCastRule(),
)


class FunctionPatternRecognizer:
    """Resolve filter operands into column terms via an ordered rule table."""

    def __init__(
        self,
        index_schema: IndexSchema,
        folder: Optional[ConstantFolder] = None,
        rules: Sequence[FunctionRule] = DEFAULT_RULES,
        max_case_variants: int = DEFAULT_MAX_CASE_VARIANTS,
    ):
        """Initialize recognizer.

        Args:
            index_schema: Statistics index consulted for column lookups
            folder: Folder used for literal function arguments
            rules: Allow-listed rules, first match wins
            max_case_variants: Cap on enumerated case variants of a literal
        """
        self.index_schema = index_schema
        self.folder = folder or ConstantFolder()
        self.rules = tuple(rules)
        self.max_case_variants = max_case_variants

    def resolve(self, expr: Expression) -> Optional[ColumnTerm]:
        """Resolve an operand, or None when no rule can use it."""
        for rule in self.rules:
            if rule.matches(expr):
                term = rule.resolve(expr, self)
                if term is None:
                    logger.debug(f"Rule {rule.name()} could not resolve {expr.to_sql()}")
                return term
        logger.debug(f"No rule recognizes {expr.to_sql()}")
        return None
