from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

PAGE_JSON_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS | orjson.OPT_APPEND_NEWLINE


def read_page_payload(path: Path) -> dict[str, Any]:
    """Page file contents, or an empty payload for a page never written."""
    if not path.exists():
        return {}
    data = orjson.loads(path.read_bytes())
    if not isinstance(data, dict):
        msg = f"Page file {path} does not hold a JSON object"
        raise ValueError(msg)
    return data


def encode_page_payload(payload: dict[str, Any]) -> bytes:
    return orjson.dumps(payload, option=PAGE_JSON_OPTIONS)


def write_page_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_bytes(encode_page_payload(payload))
    tmp_path.replace(path)
