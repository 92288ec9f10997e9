from __future__ import annotations

import logging

from adapters.filesystem.container_repository import FileSystemContainerRepository
from adapters.measure.estimated import EstimatedTextMeasurer
from adapters.measure.freetype import FreeTypeTextMeasurer
from adapters.memory.container_repository import InMemoryContainerRepository
from app.config import AppSettings
from domain.ports.measurement import TextMeasurer
from domain.ports.notifications import FlowListener
from domain.ports.repositories import ContainerRepository
from domain.services.text_flow_document import TextFlowDocument


def build_measurer(settings: AppSettings) -> TextMeasurer:
    flow = settings.flow
    if flow.measurer == "freetype":
        return FreeTypeTextMeasurer(flow.font_paths)
    return EstimatedTextMeasurer(width_factor=flow.width_factor, bold_factor=flow.bold_factor)


def build_container_repository(settings: AppSettings) -> ContainerRepository:
    if settings.flow.storage == "memory":
        return InMemoryContainerRepository()
    return FileSystemContainerRepository(settings.flow.documents_dir)


def open_document(
    settings: AppSettings,
    repository: ContainerRepository | None = None,
    listener: FlowListener | None = None,
) -> TextFlowDocument:
    return TextFlowDocument.open(
        repository or build_container_repository(settings),
        build_measurer(settings),
        listener=listener,
        epsilon=settings.flow.fit_epsilon,
    )


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.flow.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
