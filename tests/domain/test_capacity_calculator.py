from __future__ import annotations

from collections.abc import Sequence

import pytest

from domain.errors import MeasurementError
from domain.models import FrameGeometry, MeasuredLine, TextStyle
from domain.services.capacity_calculator import CapacityCalculator
from tests.helpers.flow_fixtures import char_measurer, char_style, frame


class FixedLinesMeasurer:
    def __init__(self, lines: Sequence[MeasuredLine]) -> None:
        self.lines = list(lines)
        self.widths: list[float] = []

    def measure_wrapped_lines(
        self, text: str, style: TextStyle, max_width: float
    ) -> list[MeasuredLine]:
        self.widths.append(max_width)
        return self.lines


def test_fit_splits_on_line_boundary() -> None:
    calculator = CapacityCalculator(char_measurer())

    result = calculator.fit("hello world again", char_style(), frame(chars_per_line=6, lines=2))

    assert result.fitting == "hello world "
    assert result.remainder == "again"
    assert result.overflows


def test_fit_everything_when_content_is_short() -> None:
    calculator = CapacityCalculator(char_measurer())

    result = calculator.fit("short", char_style(), frame())

    assert result.fitting == "short"
    assert result.remainder == ""
    assert not result.overflows


def test_empty_content_fits_trivially() -> None:
    result = CapacityCalculator(char_measurer()).fit("", char_style(), frame())

    assert (result.fitting, result.remainder) == ("", "")


def test_box_smaller_than_one_line_fits_nothing() -> None:
    calculator = CapacityCalculator(char_measurer())
    geometry = FrameGeometry(width=100, height=5)

    result = calculator.fit("abc", char_style(), geometry)

    assert result.fitting == ""
    assert result.remainder == "abc"


def test_padding_larger_than_box_fits_nothing() -> None:
    calculator = CapacityCalculator(char_measurer())
    geometry = FrameGeometry(width=100, height=10, padding=60)

    assert calculator.fit("abc", char_style(), geometry).remainder == "abc"


def test_usable_width_subtracts_padding_and_column_gaps() -> None:
    measurer = FixedLinesMeasurer([MeasuredLine("abc", 10)])
    calculator = CapacityCalculator(measurer)
    geometry = FrameGeometry(width=220, height=50, padding=10, columns=2, column_gap=20)

    calculator.fit("abc", char_style(), geometry)

    assert measurer.widths == [90.0]


def test_columns_fill_one_after_another() -> None:
    calculator = CapacityCalculator(char_measurer())
    geometry = frame(chars_per_line=10, lines=1, columns=2)

    result = calculator.fit("aaaaabbbbbccccc", char_style(), geometry)

    assert result.fitting == "aaaaabbbbb"
    assert result.remainder == "ccccc"


def test_epsilon_absorbs_float_noise_at_the_boundary() -> None:
    lines = [MeasuredLine("a", 10.2), MeasuredLine("b", 10.2), MeasuredLine("c", 10.2)]
    calculator = CapacityCalculator(FixedLinesMeasurer(lines), epsilon=0.5)

    result = calculator.fit("abc", char_style(), FrameGeometry(width=100, height=20))

    assert result.fitting == "ab"
    assert result.remainder == "c"


def test_repeated_fit_is_stable() -> None:
    calculator = CapacityCalculator(char_measurer())
    geometry = frame(chars_per_line=7, lines=3)
    text = "the quick brown fox jumps over the lazy dog"

    first = calculator.fit(text, char_style(), geometry)
    second = calculator.fit(text, char_style(), geometry)

    assert first == second
    assert first.fitting + first.remainder == text


def test_measurer_that_drops_characters_is_rejected() -> None:
    measurer = FixedLinesMeasurer([MeasuredLine("ab", 10)])
    calculator = CapacityCalculator(measurer)

    with pytest.raises(MeasurementError):
        calculator.fit("abc", char_style(), frame())


def test_line_capacity_counts_whole_lines() -> None:
    calculator = CapacityCalculator(char_measurer())

    assert calculator.line_capacity(char_style(), frame(lines=3, columns=2)) == 6
    assert calculator.line_capacity(char_style(), FrameGeometry(width=100, height=9)) == 0
