from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


class FlowError(Exception):
    """Base class for text flow failures."""


class ContainerNotFound(FlowError, KeyError):
    def __init__(self, container_id: str) -> None:
        super().__init__(container_id)
        self.container_id = container_id

    def __str__(self) -> str:
        return f"Text container not found: {self.container_id}"


class CycleError(FlowError):
    def __init__(self, message: str, *, source_id: str | None = None, target_id: str | None = None):
        super().__init__(message)
        self.source_id = source_id
        self.target_id = target_id


class CycleDetected(CycleError):
    def __init__(self, container_id: str, path: list[str]) -> None:
        msg = f"Link cycle detected at {container_id}: {' -> '.join(path)}"
        super().__init__(msg, source_id=path[0] if path else container_id, target_id=container_id)
        self.container_id = container_id
        self.path = list(path)


class LinkConflictError(CycleError):
    pass


class DuplicateContainerError(FlowError):
    def __init__(self, container_id: str) -> None:
        super().__init__(container_id)
        self.container_id = container_id

    def __str__(self) -> str:
        return f"Text container already exists: {self.container_id}"


class MeasurementError(FlowError):
    pass


DanglingReason = Literal["missing_target", "missing_source", "one_sided", "cycle"]


@dataclass(frozen=True)
class DanglingLinkOnLoad:
    container_id: str
    field: str
    missing_id: str
    reason: DanglingReason

    def describe(self) -> str:
        return f"{self.container_id}.{self.field} -> {self.missing_id} ({self.reason})"
