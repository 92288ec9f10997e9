from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import MeasuredLine, TextStyle


class TextMeasurer(Protocol):
    """Wraps text at a pixel width.

    The texts of the returned lines concatenate back to the input, so every
    line boundary is a valid split point.
    """

    def measure_wrapped_lines(
        self, text: str, style: TextStyle, max_width: float
    ) -> Sequence[MeasuredLine]: ...
