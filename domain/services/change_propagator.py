from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field

from domain.errors import ContainerNotFound, CycleError, FlowError
from domain.models import FlowResult, FrameGeometry, TextContainer, TextStyle
from domain.services.container_registry import ContainerRegistry
from domain.services.flow_resolver import FlowResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainFailure:
    container_id: str
    error: str


@dataclass(frozen=True)
class PropagationReport:
    results: list[FlowResult] = field(default_factory=list)
    failures: list[ChainFailure] = field(default_factory=list)

    @property
    def updated_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for result in self.results:
            for container_id in result.updated_ids:
                seen.setdefault(container_id, None)
        return list(seen.keys())

    @property
    def overflowing(self) -> dict[str, str]:
        return {
            result.tail_id: result.terminal_overflow
            for result in self.results
            if result.terminal_overflow
        }


class ChangePropagator:
    """Turns edits into re-flow passes.

    Edits only mark the owning chain dirty; ``flush`` runs one pass per dirty
    chain, head to tail. Chains marked while a flush is running are picked up
    by the same flush after the current pass, never concurrently with it.
    """

    def __init__(self, registry: ContainerRegistry, resolver: FlowResolver) -> None:
        self.registry = registry
        self.resolver = resolver
        self._dirty: dict[str, None] = {}
        self._baseline: dict[str, str] = {}
        self._lock = threading.RLock()
        self._flushing = False

    @property
    def pending(self) -> list[str]:
        return list(self._dirty.keys())

    def content_changed(self, container_id: str, text: str) -> bool:
        """Apply a text edit to one container and mark its chain dirty.

        Text typed into a chain head is the chain's whole new story: every
        downstream slice is cleared. Text typed into any other container only
        replaces that container's slice; the tail keeps its overflow.
        """
        container = self.registry.find(container_id)
        if container is None:
            logger.debug("Ignoring content edit for missing container %s", container_id)
            return False
        with self._lock:
            if self._is_head(container):
                self._replace_story(container, text)
            else:
                self._baseline.setdefault(container.id, container.visible_content)
                self.registry.put(container.model_copy(update={"visible_content": text}))
        return self.mark_dirty(container_id)

    def geometry_changed(self, container_id: str, geometry: FrameGeometry) -> bool:
        container = self.registry.find(container_id)
        if container is None:
            logger.debug("Ignoring geometry edit for missing container %s", container_id)
            return False
        self.registry.put(container.model_copy(update={"geometry": geometry}))
        return self.mark_dirty(container_id)

    def style_changed(self, container_id: str, style: TextStyle) -> bool:
        container = self.registry.find(container_id)
        if container is None:
            logger.debug("Ignoring style edit for missing container %s", container_id)
            return False
        self.registry.put(container.model_copy(update={"style": style}))
        return self.mark_dirty(container_id)

    def chain_changed(self, container_id: str) -> bool:
        return self.mark_dirty(container_id)

    def mark_dirty(self, container_id: str) -> bool:
        with self._lock:
            if container_id not in self.registry:
                return False
            self._dirty.setdefault(container_id, None)
            return True

    def flush(self) -> PropagationReport:
        results: list[FlowResult] = []
        failures: list[ChainFailure] = []
        with self._lock:
            if self._flushing:
                # Re-entrant trigger: the running flush drains it.
                return PropagationReport()
            self._flushing = True
            try:
                while self._dirty:
                    batch = list(self._dirty.keys())
                    self._dirty.clear()
                    flowed_heads: set[str] = set()
                    for container_id in batch:
                        self._flush_one(container_id, flowed_heads, results, failures)
            finally:
                self._flushing = False
                self._baseline.clear()
        return PropagationReport(results=results, failures=failures)

    def _flush_one(
        self,
        container_id: str,
        flowed_heads: set[str],
        results: list[FlowResult],
        failures: list[ChainFailure],
    ) -> None:
        try:
            head = self.registry.find_head(container_id)
        except ContainerNotFound:
            logger.debug("Dropping re-flow for deleted container %s", container_id)
            return
        except FlowError as exc:
            logger.exception("Cannot locate chain head for %s", container_id)
            failures.append(ChainFailure(container_id=container_id, error=str(exc)))
            return
        if head.id in flowed_heads:
            return
        flowed_heads.add(head.id)
        try:
            results.append(self.resolver.reflow(head.id, self._baseline))
        except FlowError as exc:
            logger.exception("Re-flow failed for chain starting at %s", head.id)
            failures.append(ChainFailure(container_id=container_id, error=str(exc)))

    def _is_head(self, container: TextContainer) -> bool:
        predecessor_id = container.linked_from_object_id
        return predecessor_id is None or predecessor_id not in self.registry

    def _replace_story(self, head: TextContainer, text: str) -> None:
        try:
            downstream = self.registry.resolve_chain(head.id)[1:]
        except CycleError:
            logger.warning("Chain from %s loops; replacing only its first slice", head.id)
            downstream = []
        cleared = {"visible_content": "", "overflow_content": None, "has_overflow": False}
        updated = [
            head.model_copy(
                update={"visible_content": text, "overflow_content": None, "has_overflow": False}
            )
        ]
        updated.extend(container.model_copy(update=cleared) for container in downstream)
        for container in [head, *downstream]:
            self._baseline.setdefault(container.id, container.visible_content)
        self.registry.put_many(updated)

    def propagate_content(self, container_id: str, text: str) -> PropagationReport:
        self.content_changed(container_id, text)
        return self.flush()

    def propagate_geometry(self, container_id: str, geometry: FrameGeometry) -> PropagationReport:
        self.geometry_changed(container_id, geometry)
        return self.flush()

    def propagate_style(self, container_id: str, style: TextStyle) -> PropagationReport:
        self.style_changed(container_id, style)
        return self.flush()


class FlowScheduler:
    """Coalesces edits into one flush at the end of the current event loop task."""

    def __init__(self, propagator: ChangePropagator) -> None:
        self.propagator = propagator
        self.last_report: PropagationReport | None = None
        self._handle: asyncio.Handle | None = None

    def schedule(self, container_id: str) -> bool:
        if not self.propagator.mark_dirty(container_id):
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return True
        if self._handle is None:
            self._handle = loop.call_soon(self._run)
        return True

    def flush_now(self) -> PropagationReport:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.last_report = self.propagator.flush()
        return self.last_report

    def _run(self) -> None:
        self._handle = None
        self.last_report = self.propagator.flush()
