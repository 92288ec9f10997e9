from __future__ import annotations

import pytest

from adapters.measure.wrapping import wrap_preserving


def ten_px(value: str) -> float:
    return len(value) * 10.0


@pytest.mark.parametrize(
    "text",
    [
        "the quick brown fox jumps over the lazy dog",
        "line one\nline two\n\nline four\n",
        "  leading and trailing  ",
        "averyveryverylongwordthatneverfits and more",
        "tabs\tand\r\nwindows breaks",
    ],
)
def test_lines_concatenate_back_to_the_input(text: str) -> None:
    assert "".join(wrap_preserving(text, ten_px, 100.0)) == text


def test_greedy_wrap_at_word_boundaries() -> None:
    lines = wrap_preserving("the quick brown fox", ten_px, 100.0)

    assert lines == ["the quick ", "brown fox"]


def test_trailing_spaces_do_not_count_towards_width() -> None:
    assert wrap_preserving("0123456789   x", ten_px, 100.0) == ["0123456789   ", "x"]


def test_hard_breaks_end_lines() -> None:
    assert wrap_preserving("ab\ncd\n\nef", ten_px, 100.0) == ["ab\n", "cd\n", "\n", "ef"]


def test_long_words_break_between_characters() -> None:
    assert wrap_preserving("abcdefghijkl next", ten_px, 50.0) == ["abcde", "fghij", "kl ", "next"]


def test_empty_text_has_no_lines() -> None:
    assert wrap_preserving("", ten_px, 100.0) == []
