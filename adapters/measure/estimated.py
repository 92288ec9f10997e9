from __future__ import annotations

from adapters.measure.wrapping import wrap_preserving
from domain.models import MeasuredLine, TextStyle
from domain.ports.measurement import TextMeasurer

DEFAULT_WIDTH_FACTOR = 0.6


class EstimatedTextMeasurer(TextMeasurer):
    """Fixed-advance measurer: every character is ``font_size * width_factor`` wide."""

    def __init__(self, width_factor: float = DEFAULT_WIDTH_FACTOR, bold_factor: float = 1.0):
        self.width_factor = width_factor
        self.bold_factor = bold_factor

    def measure_wrapped_lines(
        self, text: str, style: TextStyle, max_width: float
    ) -> list[MeasuredLine]:
        char_width = style.font_size * self.width_factor
        if style.is_bold:
            char_width *= self.bold_factor
        line_height = style.line_height_px

        def advance(value: str) -> float:
            return len(value) * char_width

        return [
            MeasuredLine(text=line, height=line_height)
            for line in wrap_preserving(text, advance, max_width)
        ]
