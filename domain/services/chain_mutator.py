from __future__ import annotations

import logging
from dataclasses import dataclass, field

from domain.errors import CycleError, DuplicateContainerError, LinkConflictError
from domain.models import FlowResult, TextContainer
from domain.services.container_registry import ContainerRegistry
from domain.services.flow_resolver import FlowResolver, chain_content

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationResult:
    results: list[FlowResult] = field(default_factory=list)
    removed_id: str | None = None

    @property
    def touched_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for result in self.results:
            for container_id in result.chain_ids:
                seen.setdefault(container_id, None)
        return list(seen.keys())

    @property
    def updated_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for result in self.results:
            for container_id in result.updated_ids:
                seen.setdefault(container_id, None)
        return list(seen.keys())


class ChainMutator:
    """Link, unlink, add and delete operations on the chain topology.

    Every structural check runs before the first write, so a rejected call
    leaves the registry untouched.
    """

    def __init__(self, registry: ContainerRegistry, resolver: FlowResolver) -> None:
        self.registry = registry
        self.resolver = resolver

    def add_container(self, container: TextContainer) -> MutationResult:
        if container.id in self.registry:
            raise DuplicateContainerError(container.id)
        detached = container.model_copy(
            update={"linked_object_id": None, "linked_from_object_id": None}
        )
        self.registry.put(detached)
        result = self.resolver.resolve([detached], detached.content)
        return MutationResult(results=[result])

    def link(self, source_id: str, target_id: str) -> MutationResult:
        source = self.registry.get(source_id)
        target = self.registry.get(target_id)

        source_chain = self.registry.chain_for(source_id)
        if target_id == source_id or target_id in {item.id for item in source_chain}:
            msg = f"Linking {source_id} -> {target_id} would create a cycle"
            raise CycleError(msg, source_id=source_id, target_id=target_id)
        if target.linked_from_object_id is not None:
            msg = f"{target_id} is already linked from {target.linked_from_object_id}"
            raise LinkConflictError(msg, source_id=source_id, target_id=target_id)
        if source.linked_object_id is not None:
            msg = f"{source_id} is already linked to {source.linked_object_id}"
            raise LinkConflictError(msg, source_id=source_id, target_id=target_id)

        target_chain = self.registry.resolve_chain(target_id)
        story = chain_content(source_chain) + chain_content(target_chain)

        self.registry.put_many(
            [
                source.model_copy(update={"linked_object_id": target_id}),
                target.model_copy(update={"linked_from_object_id": source_id}),
            ]
        )
        logger.debug("Linked %s -> %s", source_id, target_id)

        chain = self.registry.chain_for(source_id)
        return MutationResult(results=[self.resolver.resolve(chain, story)])

    def unlink(self, source_id: str) -> MutationResult:
        source = self.registry.get(source_id)
        target = self.registry.find(source.linked_object_id)
        if source.linked_object_id is None:
            return MutationResult()
        if target is None:
            # Successor already gone: only the pointer needs clearing.
            self.registry.put(source.model_copy(update={"linked_object_id": None}))
            return MutationResult(results=[self.resolver.reflow(source_id)])

        detached_chain = self.registry.resolve_chain(target.id)
        detached_story = chain_content(detached_chain)

        self.registry.put_many(
            [
                source.model_copy(update={"linked_object_id": None}),
                target.model_copy(update={"linked_from_object_id": None}),
            ]
        )
        logger.debug("Unlinked %s -> %s", source_id, target.id)

        head_chain = self.registry.chain_for(source_id)
        head_result = self.resolver.resolve(head_chain, chain_content(head_chain))
        detached_result = self.resolver.resolve(
            self.registry.resolve_chain(target.id), detached_story
        )
        return MutationResult(results=[head_result, detached_result])

    def delete_container(self, container_id: str) -> MutationResult:
        container = self.registry.get(container_id)
        chain = self.registry.chain_for(container_id)
        story = chain_content(chain)

        predecessor = self.registry.find(container.linked_from_object_id)
        successor = self.registry.find(container.linked_object_id)

        stitched: list[TextContainer] = []
        if predecessor is not None:
            next_id = successor.id if successor is not None else None
            stitched.append(predecessor.model_copy(update={"linked_object_id": next_id}))
        if successor is not None:
            previous_id = predecessor.id if predecessor is not None else None
            stitched.append(successor.model_copy(update={"linked_from_object_id": previous_id}))
        self.registry.put_many(stitched)
        self.registry.remove(container_id)
        logger.debug(
            "Deleted %s, stitched %s -> %s",
            container_id,
            predecessor.id if predecessor else None,
            successor.id if successor else None,
        )

        survivor = predecessor or successor
        if survivor is None:
            return MutationResult(removed_id=container_id)
        remaining_chain = self.registry.chain_for(survivor.id)
        result = self.resolver.resolve(remaining_chain, story)
        return MutationResult(results=[result], removed_id=container_id)
