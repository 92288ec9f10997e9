from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from PIL import ImageFont

from adapters.measure.wrapping import wrap_preserving
from domain.models import MeasuredLine, TextStyle
from domain.ports.measurement import TextMeasurer

logger = logging.getLogger(__name__)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


def font_variant(style: TextStyle) -> str:
    if style.is_bold and style.is_italic:
        return "bold-italic"
    if style.is_bold:
        return "bold"
    if style.is_italic:
        return "italic"
    return "regular"


class FreeTypeTextMeasurer(TextMeasurer):
    """Measures with real glyph advances through Pillow.

    ``font_paths`` maps ``"Family"`` or ``"Family:variant"`` (variant is one of
    ``bold``, ``italic``, ``bold-italic``) to a font file. Families without a
    file fall back to Pillow's bundled font.
    """

    def __init__(self, font_paths: Mapping[str, Path | str] | None = None) -> None:
        self.font_paths = {key.lower(): Path(value) for key, value in (font_paths or {}).items()}
        self._font_cache: dict[tuple[str, int], FontType] = {}

    def resolve_font_path(self, style: TextStyle) -> Path | None:
        family = style.font_family.lower()
        variant = font_variant(style)
        candidates = [f"{family}:{variant}"]
        if variant == "bold-italic":
            candidates.extend([f"{family}:bold", f"{family}:italic"])
        candidates.extend([f"{family}:regular", family])
        for key in candidates:
            path = self.font_paths.get(key)
            if path is not None:
                return path
        return None

    def get_font(self, style: TextStyle) -> FontType:
        path = self.resolve_font_path(style)
        size = max(1, round(style.font_size))
        key = (str(path) if path else "", size)
        if key not in self._font_cache:
            if path is None:
                logger.debug("No font file for %s, using the bundled font", style.font_family)
                self._font_cache[key] = ImageFont.load_default(size=size)
            else:
                self._font_cache[key] = ImageFont.truetype(str(path), size)
        return self._font_cache[key]

    def measure_wrapped_lines(
        self, text: str, style: TextStyle, max_width: float
    ) -> list[MeasuredLine]:
        font = self.get_font(style)
        line_height = style.line_height_px

        def advance(value: str) -> float:
            return float(font.getlength(value)) if value else 0.0

        return [
            MeasuredLine(text=line, height=line_height)
            for line in wrap_preserving(text, advance, max_width)
        ]
