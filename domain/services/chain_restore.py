from __future__ import annotations

import logging
from collections.abc import Iterable

from domain.errors import DanglingLinkOnLoad
from domain.models import TextContainer
from domain.services.container_registry import ContainerRegistry

logger = logging.getLogger(__name__)


def restore_chains(
    containers: Iterable[TextContainer],
) -> tuple[ContainerRegistry, list[DanglingLinkOnLoad]]:
    """Rebuild a registry from persisted records and heal broken links.

    A link is kept only when both ends exist and agree with each other. Any
    other pointer is cleared and reported; loading never fails on topology.
    """
    by_id: dict[str, TextContainer] = {}
    for container in containers:
        if container.id in by_id:
            logger.warning("Duplicate text container %s on load, keeping the last", container.id)
        by_id[container.id] = container

    issues: list[DanglingLinkOnLoad] = []
    healed: dict[str, TextContainer] = {}

    for container in by_id.values():
        update: dict[str, object] = {}
        target_id = container.linked_object_id
        if target_id is not None:
            target = by_id.get(target_id)
            if target is None:
                issues.append(
                    DanglingLinkOnLoad(container.id, "linkedObjectId", target_id, "missing_target")
                )
                update["linked_object_id"] = None
            elif target.linked_from_object_id != container.id:
                issues.append(
                    DanglingLinkOnLoad(container.id, "linkedObjectId", target_id, "one_sided")
                )
                update["linked_object_id"] = None
        source_id = container.linked_from_object_id
        if source_id is not None:
            source = by_id.get(source_id)
            if source is None:
                issues.append(
                    DanglingLinkOnLoad(
                        container.id, "linkedFromObjectId", source_id, "missing_source"
                    )
                )
                update["linked_from_object_id"] = None
            elif source.linked_object_id != container.id:
                issues.append(
                    DanglingLinkOnLoad(container.id, "linkedFromObjectId", source_id, "one_sided")
                )
                update["linked_from_object_id"] = None
        healed[container.id] = container.model_copy(update=update) if update else container

    issues.extend(_break_cycles(healed))

    for issue in issues:
        logger.warning("Healed text link on load: %s", issue.describe())
    return ContainerRegistry(healed.values()), issues


def _break_cycles(containers: dict[str, TextContainer]) -> list[DanglingLinkOnLoad]:
    # After the consistency pass every node has at most one successor and one
    # predecessor, so a node never reached from a head sits on a cycle.
    reachable: set[str] = set()
    for container in containers.values():
        if container.linked_from_object_id is not None:
            continue
        current: TextContainer | None = container
        while current is not None and current.id not in reachable:
            reachable.add(current.id)
            current = containers.get(current.linked_object_id or "")

    issues: list[DanglingLinkOnLoad] = []
    for container_id in sorted(containers):
        if container_id in reachable:
            continue
        start = containers[container_id]
        predecessor_id = start.linked_from_object_id
        if predecessor_id is None:
            continue
        predecessor = containers[predecessor_id]
        containers[predecessor_id] = predecessor.model_copy(update={"linked_object_id": None})
        containers[container_id] = start.model_copy(update={"linked_from_object_id": None})
        issues.append(DanglingLinkOnLoad(predecessor_id, "linkedObjectId", container_id, "cycle"))
        node: TextContainer | None = containers[container_id]
        while node is not None and node.id not in reachable:
            reachable.add(node.id)
            node = containers.get(node.linked_object_id or "")
    return issues
