from __future__ import annotations

from typing import Protocol


class FlowListener(Protocol):
    def notify_flow_updated(self, container_id: str) -> None: ...


class NullFlowListener(FlowListener):
    def notify_flow_updated(self, container_id: str) -> None:
        return None


class RecordingFlowListener(FlowListener):
    def __init__(self) -> None:
        self.updated: list[str] = []

    def notify_flow_updated(self, container_id: str) -> None:
        self.updated.append(container_id)

    def clear(self) -> None:
        self.updated.clear()
