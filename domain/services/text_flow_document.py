from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from domain.errors import DanglingLinkOnLoad
from domain.models import FlowResult, FrameGeometry, TextContainer, TextStyle
from domain.ports.measurement import TextMeasurer
from domain.ports.notifications import FlowListener
from domain.ports.repositories import ContainerRepository
from domain.services.capacity_calculator import DEFAULT_FIT_EPSILON, CapacityCalculator
from domain.services.chain_mutator import ChainMutator, MutationResult
from domain.services.chain_restore import restore_chains
from domain.services.change_propagator import ChangePropagator, FlowScheduler, PropagationReport
from domain.services.container_registry import ContainerRegistry
from domain.services.flow_resolver import FlowResolver

logger = logging.getLogger(__name__)


class TextFlowDocument:
    """Text flow state for one open document.

    Owns the registry and wires the flow services around it. Mutating calls
    persist every container they touched when a repository is attached.
    """

    def __init__(
        self,
        registry: ContainerRegistry,
        measurer: TextMeasurer,
        *,
        repository: ContainerRepository | None = None,
        listener: FlowListener | None = None,
        epsilon: float = DEFAULT_FIT_EPSILON,
        issues: Sequence[DanglingLinkOnLoad] = (),
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.calculator = CapacityCalculator(measurer, epsilon=epsilon)
        self.resolver = FlowResolver(registry, self.calculator, listener)
        self.mutator = ChainMutator(registry, self.resolver)
        self.propagator = ChangePropagator(registry, self.resolver)
        self.scheduler = FlowScheduler(self.propagator)
        self.load_issues: list[DanglingLinkOnLoad] = list(issues)

    @classmethod
    def open(
        cls,
        repository: ContainerRepository,
        measurer: TextMeasurer,
        *,
        page_ids: Iterable[str] | None = None,
        listener: FlowListener | None = None,
        epsilon: float = DEFAULT_FIT_EPSILON,
    ) -> TextFlowDocument:
        selected = list(page_ids) if page_ids is not None else list(repository.list_page_ids())
        containers: list[TextContainer] = []
        for page_id in selected:
            containers.extend(repository.load_containers_for_page(page_id))
        registry, issues = restore_chains(containers)
        document = cls(
            registry,
            measurer,
            repository=repository,
            listener=listener,
            epsilon=epsilon,
            issues=issues,
        )
        if issues:
            healed_ids = {issue.container_id for issue in issues}
            healed_ids.update(issue.missing_id for issue in issues if issue.reason == "cycle")
            document._persist(sorted(healed_ids))
            document._reflow_healed(healed_ids | {issue.missing_id for issue in issues})
        logger.info("Opened text flow document with %d containers", len(registry))
        return document

    def close(self) -> None:
        self.scheduler.flush_now()
        self.registry.clear()
        self.load_issues = []

    def save(self) -> None:
        if self.repository is None:
            return
        for container in self.registry:
            self.repository.persist_container(container)

    def get(self, container_id: str) -> TextContainer:
        return self.registry.get(container_id)

    def chain(self, container_id: str) -> list[TextContainer]:
        return self.registry.chain_for(container_id)

    def add_container(
        self,
        page_id: str,
        geometry: FrameGeometry,
        *,
        style: TextStyle | None = None,
        content: str = "",
        container_id: str | None = None,
    ) -> MutationResult:
        payload: dict[str, object] = {
            "page_id": page_id,
            "geometry": geometry,
            "style": style or TextStyle(),
            "visible_content": content,
        }
        if container_id:
            payload["id"] = container_id
        container = TextContainer.model_validate(payload)
        result = self.mutator.add_container(container)
        self._persist(result.touched_ids)
        return result

    def link(self, source_id: str, target_id: str) -> MutationResult:
        result = self.mutator.link(source_id, target_id)
        self._persist(result.touched_ids)
        return result

    def unlink(self, source_id: str) -> MutationResult:
        result = self.mutator.unlink(source_id)
        self._persist(result.touched_ids)
        return result

    def delete_container(self, container_id: str) -> MutationResult:
        removed = self.registry.get(container_id)
        result = self.mutator.delete_container(container_id)
        if self.repository is not None:
            self.repository.delete_container(removed.page_id, removed.id)
        self._persist(result.touched_ids)
        return result

    def edit_content(self, container_id: str, text: str) -> PropagationReport:
        report = self.propagator.propagate_content(container_id, text)
        self._persist_report(report)
        return report

    def edit_geometry(self, container_id: str, geometry: FrameGeometry) -> PropagationReport:
        report = self.propagator.propagate_geometry(container_id, geometry)
        self._persist_report(report)
        return report

    def edit_style(self, container_id: str, style: TextStyle) -> PropagationReport:
        report = self.propagator.propagate_style(container_id, style)
        self._persist_report(report)
        return report

    def reflow_all(self) -> list[FlowResult]:
        results = self.resolver.reflow_all()
        for result in results:
            self._persist(result.chain_ids)
        return results

    def overflowing(self) -> list[TextContainer]:
        return [
            container
            for container in self.registry
            if container.linked_object_id is None and container.overflow_content
        ]

    def _reflow_healed(self, healed_ids: Iterable[str]) -> None:
        # A cleared link is an implicit unlink, so every healed chain re-flows.
        heads = {
            self.registry.find_head(container_id).id
            for container_id in healed_ids
            if container_id in self.registry
        }
        for head_id in sorted(heads):
            self._persist(self.resolver.reflow(head_id).chain_ids)

    def _persist_report(self, report: PropagationReport) -> None:
        for result in report.results:
            self._persist(result.chain_ids)

    def _persist(self, container_ids: Iterable[str]) -> None:
        if self.repository is None:
            return
        for container_id in container_ids:
            container = self.registry.find(container_id)
            if container is not None:
                self.repository.persist_container(container)
