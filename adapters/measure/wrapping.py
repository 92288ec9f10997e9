from __future__ import annotations

import re
from collections.abc import Callable

Advance = Callable[[str], float]

_TOKEN_PATTERN = re.compile(r"\S+\s*|\s+")


def wrap_preserving(text: str, advance: Advance, max_width: float) -> list[str]:
    """Greedy word wrap whose lines concatenate back to ``text`` exactly.

    Hard line breaks end a line and stay attached to it, trailing spaces stay
    on the line they follow and do not count towards its width. Words wider
    than ``max_width`` are broken between characters.
    """
    lines: list[str] = []
    for paragraph in text.splitlines(keepends=True):
        lines.extend(_wrap_paragraph(paragraph, advance, max_width))
    return lines


def _wrap_paragraph(paragraph: str, advance: Advance, max_width: float) -> list[str]:
    lines: list[str] = []
    current = ""
    for match in _TOKEN_PATTERN.finditer(paragraph):
        token = match.group(0)
        if current and advance((current + token).rstrip()) <= max_width:
            current += token
            continue
        if current:
            lines.append(current)
            current = ""
        if advance(token.rstrip()) <= max_width:
            current = token
            continue
        chunks = _break_token(token, advance, max_width)
        lines.extend(chunks[:-1])
        current = chunks[-1]
    if current:
        lines.append(current)
    return lines


def _break_token(token: str, advance: Advance, max_width: float) -> list[str]:
    word = token.rstrip()
    trailing = token[len(word) :]
    chunks: list[str] = []
    chunk = ""
    for char in word:
        if chunk and advance(chunk + char) > max_width:
            chunks.append(chunk)
            chunk = ""
        chunk += char
    chunks.append(chunk + trailing)
    return chunks
