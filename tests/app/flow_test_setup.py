from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from fastapi.testclient import TestClient

from app.config import AppSettings
from app.web_main import create_app
from domain.ports.notifications import RecordingFlowListener

CHAR_STYLE = {"fontSize": 10, "lineHeight": 1}


@dataclass(frozen=True)
class FlowTestContext:
    client: TestClient
    listener: RecordingFlowListener


def frame_payload(chars_per_line: int = 10, lines: int = 1) -> dict[str, Any]:
    return {"width": chars_per_line * 10, "height": lines * 10}


def container_payload(
    container_id: str, *, content: str = "", page_id: str = "page-1"
) -> dict[str, Any]:
    return {
        "id": container_id,
        "page_id": page_id,
        "geometry": frame_payload(),
        "style": CHAR_STYLE,
        "content": content,
    }


@contextmanager
def build_flow_test_context(settings: AppSettings) -> Iterator[FlowTestContext]:
    listener = RecordingFlowListener()
    app = create_app(settings, listener=listener)
    with TestClient(app) as client:
        yield FlowTestContext(client=client, listener=listener)
