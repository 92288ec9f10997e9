from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from app.config import AppSettings, load_settings
from app.flow_wiring import build_container_repository, open_document
from domain.errors import ContainerNotFound, CycleError, DuplicateContainerError, FlowError
from domain.models import FlowResult, FrameGeometry, TextContainer, TextStyle
from domain.ports.notifications import FlowListener
from domain.ports.repositories import ContainerRepository
from domain.services.change_propagator import ChainFailure
from domain.services.text_flow_document import TextFlowDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContainerCreate(BaseModel):
    id: Optional[str] = None
    page_id: str = Field(..., min_length=1)
    geometry: FrameGeometry
    style: TextStyle = Field(default_factory=TextStyle)
    content: str = ""


class ContentUpdate(BaseModel):
    text: str


class LinkRequest(BaseModel):
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)


@dataclass
class FlowContext:
    settings: AppSettings
    document: TextFlowDocument
    lock: threading.RLock = field(default_factory=threading.RLock)

    @contextmanager
    def exclusive(self) -> Iterator[TextFlowDocument]:
        with self.lock:
            yield self.document


def create_app(
    settings: AppSettings,
    repository: ContainerRepository | None = None,
    listener: FlowListener | None = None,
) -> FastAPI:
    document = open_document(
        settings, repository or build_container_repository(settings), listener
    )
    for issue in document.load_issues:
        logger.warning("Healed text link on open: %s", issue.describe())
    context = FlowContext(settings=settings, document=document)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        yield
        with context.exclusive() as current:
            current.save()
            current.close()

    app = FastAPI(title=settings.flow.title, lifespan=lifespan)

    def get_context() -> FlowContext:
        return context

    @app.get("/api/health")
    def api_health(context: FlowContext = Depends(get_context)) -> ORJSONResponse:
        with context.exclusive() as current:
            return ORJSONResponse(
                {
                    "status": "ok",
                    "containers": len(current.registry),
                    "healed_links": [issue.describe() for issue in current.load_issues],
                }
            )

    @app.get("/api/pages/{page_id}/containers")
    def api_page_containers(
        page_id: str, context: FlowContext = Depends(get_context)
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            containers = current.registry.page_containers(page_id)
            return ORJSONResponse(
                {"page_id": page_id, "containers": [item.to_record() for item in containers]}
            )

    @app.get("/api/containers/{container_id}")
    def api_container(
        container_id: str, context: FlowContext = Depends(get_context)
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            container = require_container(current, container_id)
            return ORJSONResponse(container.to_record())

    @app.get("/api/containers/{container_id}/chain")
    def api_chain(container_id: str, context: FlowContext = Depends(get_context)) -> ORJSONResponse:
        with context.exclusive() as current:
            require_container(current, container_id)
            chain = run_flow_call(lambda: current.chain(container_id))
            return ORJSONResponse(
                {
                    "head_id": chain[0].id,
                    "tail_id": chain[-1].id,
                    "containers": [item.to_record() for item in chain],
                    "terminal_overflow": chain[-1].overflow_content,
                }
            )

    @app.post("/api/containers", status_code=201)
    def api_create_container(
        payload: ContainerCreate, context: FlowContext = Depends(get_context)
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            result = run_flow_call(
                lambda: current.add_container(
                    payload.page_id,
                    payload.geometry,
                    style=payload.style,
                    content=payload.content,
                    container_id=payload.id,
                )
            )
            created = current.registry.get(result.touched_ids[0])
            return ORJSONResponse(
                {"container": created.to_record(), "flow": flow_payload(result.results)},
                status_code=201,
            )

    @app.put("/api/containers/{container_id}/content")
    def api_update_content(
        container_id: str,
        payload: ContentUpdate,
        context: FlowContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            require_container(current, container_id)
            report = current.edit_content(container_id, payload.text)
            return ORJSONResponse(report_payload(report.results, report.failures))

    @app.put("/api/containers/{container_id}/geometry")
    def api_update_geometry(
        container_id: str,
        payload: FrameGeometry,
        context: FlowContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            require_container(current, container_id)
            report = current.edit_geometry(container_id, payload)
            return ORJSONResponse(report_payload(report.results, report.failures))

    @app.put("/api/containers/{container_id}/style")
    def api_update_style(
        container_id: str,
        payload: TextStyle,
        context: FlowContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            require_container(current, container_id)
            report = current.edit_style(container_id, payload)
            return ORJSONResponse(report_payload(report.results, report.failures))

    @app.delete("/api/containers/{container_id}")
    def api_delete_container(
        container_id: str, context: FlowContext = Depends(get_context)
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            result = run_flow_call(lambda: current.delete_container(container_id))
            return ORJSONResponse(
                {
                    "status": "ok",
                    "removed_id": result.removed_id,
                    "flow": flow_payload(result.results),
                }
            )

    @app.get("/api/links")
    def api_links(context: FlowContext = Depends(get_context)) -> ORJSONResponse:
        with context.exclusive() as current:
            return ORJSONResponse({"links": current.registry.links()})

    @app.post("/api/links")
    def api_link(
        payload: LinkRequest, context: FlowContext = Depends(get_context)
    ) -> ORJSONResponse:
        with context.exclusive() as current:
            result = run_flow_call(lambda: current.link(payload.source_id, payload.target_id))
            return ORJSONResponse({"status": "ok", "flow": flow_payload(result.results)})

    @app.delete("/api/links/{source_id}")
    def api_unlink(source_id: str, context: FlowContext = Depends(get_context)) -> ORJSONResponse:
        with context.exclusive() as current:
            result = run_flow_call(lambda: current.unlink(source_id))
            return ORJSONResponse({"status": "ok", "flow": flow_payload(result.results)})

    return app


def require_container(document: TextFlowDocument, container_id: str) -> TextContainer:
    container = document.registry.find(container_id)
    if container is None:
        raise HTTPException(status_code=404, detail="Text container not found")
    return container


def run_flow_call(call: Callable[[], T]) -> T:
    try:
        return call()
    except ContainerNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (CycleError, DuplicateContainerError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except FlowError as exc:
        logger.exception("Text flow operation failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def flow_payload(results: list[FlowResult]) -> list[dict[str, Any]]:
    return [result.to_dict() for result in results]


def report_payload(results: list[FlowResult], failures: list[ChainFailure]) -> dict[str, Any]:
    return {
        "status": "ok" if not failures else "partial",
        "flow": flow_payload(results),
        "failures": [{"container_id": item.container_id, "error": item.error} for item in failures],
    }


app = create_app(load_settings())
