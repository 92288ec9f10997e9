from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from domain.models import FlowResult, TextContainer
from domain.ports.notifications import FlowListener, NullFlowListener
from domain.services.capacity_calculator import CapacityCalculator
from domain.services.container_registry import ContainerRegistry

logger = logging.getLogger(__name__)


def chain_content(chain: Sequence[TextContainer]) -> str:
    """The story currently held by a chain, in chain order."""
    return "".join(container.content for container in chain)


class FlowResolver:
    def __init__(
        self,
        registry: ContainerRegistry,
        calculator: CapacityCalculator,
        listener: FlowListener | None = None,
    ) -> None:
        self.registry = registry
        self.calculator = calculator
        self.listener = listener or NullFlowListener()

    def resolve(
        self,
        chain: Sequence[TextContainer],
        source_content: str,
        baseline: Mapping[str, str] | None = None,
    ) -> FlowResult:
        """Flow ``source_content`` through ``chain``.

        ``baseline`` holds the visible text listeners last saw for containers
        whose slice was edited before this pass.
        """
        if not chain:
            return FlowResult(head_id="", chain_ids=[])

        remaining = source_content
        updated: list[TextContainer] = []
        changed_ids: list[str] = []
        last_index = len(chain) - 1

        for index, container in enumerate(chain):
            if remaining:
                fit = self.calculator.fit(remaining, container.style, container.geometry)
                visible, remaining = fit.fitting, fit.remainder
            else:
                visible = ""
            overflow = remaining if index == last_index and remaining else None
            resolved = container.model_copy(
                update={
                    "visible_content": visible,
                    "overflow_content": overflow,
                    "has_overflow": overflow is not None,
                }
            )
            updated.append(resolved)
            previous = (baseline or {}).get(container.id, container.visible_content)
            if resolved.visible_content != previous:
                changed_ids.append(container.id)

        self.registry.put_many(updated)

        terminal_overflow = remaining or None
        if terminal_overflow is not None:
            logger.info(
                "Chain %s overflows by %d characters at %s",
                chain[0].id,
                len(terminal_overflow),
                chain[-1].id,
            )
        for container_id in changed_ids:
            self.listener.notify_flow_updated(container_id)

        return FlowResult(
            head_id=chain[0].id,
            chain_ids=[container.id for container in chain],
            updated_ids=changed_ids,
            terminal_overflow=terminal_overflow,
        )

    def reflow(self, container_id: str, baseline: Mapping[str, str] | None = None) -> FlowResult:
        chain = self.registry.chain_for(container_id)
        return self.resolve(chain, chain_content(chain), baseline)

    def reflow_all(self) -> list[FlowResult]:
        return [self.reflow(head.id) for head in self.registry.heads()]
