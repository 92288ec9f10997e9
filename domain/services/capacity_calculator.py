from __future__ import annotations

from collections.abc import Sequence

from domain.errors import MeasurementError
from domain.models import FitResult, FrameGeometry, MeasuredLine, TextStyle
from domain.ports.measurement import TextMeasurer

DEFAULT_FIT_EPSILON = 0.5


class CapacityCalculator:
    """Splits content into the part a frame can show and the part it cannot.

    Splits always fall on a line boundary reported by the measurer, so a frame
    never shows half a line.
    """

    def __init__(self, measurer: TextMeasurer, epsilon: float = DEFAULT_FIT_EPSILON) -> None:
        self.measurer = measurer
        self.epsilon = epsilon

    def fit(self, content: str, style: TextStyle, geometry: FrameGeometry) -> FitResult:
        if not content:
            return FitResult(fitting="", remainder="")

        column_width = geometry.column_width()
        column_height = geometry.column_height()
        if column_width <= 0 or column_height <= 0:
            return FitResult(fitting="", remainder=content)

        lines = self.measurer.measure_wrapped_lines(content, style, column_width)
        self._check_partition(content, lines)
        split = self._split_offset(lines, column_height, geometry.columns)
        return FitResult(fitting=content[:split], remainder=content[split:])

    def line_capacity(self, style: TextStyle, geometry: FrameGeometry) -> int:
        """Number of uniform-height lines the frame holds for this style."""
        column_height = geometry.column_height()
        line_height = style.line_height_px
        if column_height <= 0 or geometry.column_width() <= 0:
            return 0
        per_column = int((column_height + self.epsilon) // line_height)
        return per_column * geometry.columns

    def _split_offset(
        self, lines: Sequence[MeasuredLine], column_height: float, columns: int
    ) -> int:
        offset = 0
        column = 0
        used = 0.0
        limit = column_height + self.epsilon
        for line in lines:
            if used + line.height > limit:
                column += 1
                used = 0.0
                if column >= columns or line.height > limit:
                    break
            used += line.height
            offset += len(line.text)
        return offset

    def _check_partition(self, content: str, lines: Sequence[MeasuredLine]) -> None:
        joined_length = sum(len(line.text) for line in lines)
        if joined_length != len(content) or "".join(line.text for line in lines) != content:
            msg = (
                f"{type(self.measurer).__name__} returned lines that do not partition the "
                f"input ({joined_length} of {len(content)} characters)"
            )
            raise MeasurementError(msg)
