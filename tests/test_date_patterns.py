"""Tests for date/time format patterns."""

from datetime import date, datetime

import pytest

from data_skipping.optimizer import compile_pattern
from data_skipping.optimizer.date_patterns import TimeUnit, ceil_to_date


class TestCompile:
    """Pattern support and properties."""

    def test_java_day_pattern(self):
        pattern = compile_pattern("MM/dd/yyyy")
        assert pattern.resolution == TimeUnit.DAY
        assert pattern.is_complete
        assert not pattern.is_order_preserving

    def test_iso_pattern_preserves_order(self):
        assert compile_pattern("yyyy-MM-dd").is_order_preserving
        assert compile_pattern("%Y-%m-%d %H:%M:%S").is_order_preserving
        assert compile_pattern("yyyy-MM-dd HH:mm:ss").resolution == TimeUnit.SECOND

    def test_variable_width_does_not_preserve_order(self):
        assert not compile_pattern("yyyy-M-d").is_order_preserving

    def test_incomplete_patterns(self):
        assert not compile_pattern("MM/dd").is_complete
        assert not compile_pattern("yyyy'T'HH").is_complete

    @pytest.mark.parametrize("text", ["EEE, dd MMM yyyy", "%a %Y", "yyyy-yyyy", "", "'open"])
    def test_unsupported(self, text):
        assert compile_pattern(text) is None


class TestParseAndFormat:
    """Formatting instants and parsing literals back."""

    def test_format(self):
        pattern = compile_pattern("MM/dd/yyyy")
        assert pattern.format(datetime(2022, 3, 7, 19, 50, 48)) == "03/07/2022"
        assert compile_pattern("%Y%m%d").format(datetime(2022, 3, 7)) == "20220307"

    def test_quoted_literal_text(self):
        pattern = compile_pattern("yyyy-MM-dd'T'HH")
        assert pattern.format(datetime(2022, 3, 7, 5)) == "2022-03-07T05"
        assert pattern.parse("2022-03-07T05") == datetime(2022, 3, 7, 5)

    def test_parse_requires_canonical_text(self):
        pattern = compile_pattern("MM/dd/yyyy")
        assert pattern.parse("03/06/2022") == datetime(2022, 3, 6)
        assert pattern.parse("3/6/2022") is None
        assert pattern.parse("02/30/2022") is None
        assert pattern.parse("03/06/2022 ") is None

    def test_variable_width_round_trip(self):
        pattern = compile_pattern("M/d/yyyy")
        assert pattern.parse("3/6/2022") == datetime(2022, 3, 6)
        assert pattern.parse("03/6/2022") is None

    def test_interval(self):
        assert compile_pattern("MM/dd/yyyy").interval("03/06/2022") == (
            datetime(2022, 3, 6),
            datetime(2022, 3, 7),
        )
        assert compile_pattern("yyyy-MM").interval("2022-12") == (
            datetime(2022, 12, 1),
            datetime(2023, 1, 1),
        )
        assert compile_pattern("yyyy").interval("2021") == (
            datetime(2021, 1, 1),
            datetime(2022, 1, 1),
        )

    def test_floor_and_ceil(self):
        pattern = compile_pattern("yyyy-MM-dd HH")
        value = datetime(2022, 3, 6, 10, 30)
        assert pattern.floor(value) == datetime(2022, 3, 6, 10)
        assert pattern.ceil(value) == datetime(2022, 3, 6, 11)
        assert pattern.ceil(datetime(2022, 3, 6, 10)) == datetime(2022, 3, 6, 10)


def test_ceil_to_date():
    """Instants round up to the next midnight unless already on one."""
    assert ceil_to_date(datetime(2022, 3, 6)) == date(2022, 3, 6)
    assert ceil_to_date(datetime(2022, 3, 6, 0, 0, 1)) == date(2022, 3, 7)
