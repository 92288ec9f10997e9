from __future__ import annotations

from collections.abc import Iterable, Iterator

from domain.errors import ContainerNotFound, CycleDetected
from domain.models import TextContainer


class ContainerRegistry:
    """All text containers of one open document, keyed by id.

    Links are stored as ids on the containers themselves; the registry only
    resolves them.
    """

    def __init__(self, containers: Iterable[TextContainer] = ()) -> None:
        self._containers: dict[str, TextContainer] = {}
        for container in containers:
            self._containers[container.id] = container

    def __len__(self) -> int:
        return len(self._containers)

    def __contains__(self, container_id: object) -> bool:
        return container_id in self._containers

    def __iter__(self) -> Iterator[TextContainer]:
        return iter(list(self._containers.values()))

    def get(self, container_id: str) -> TextContainer:
        container = self._containers.get(container_id)
        if container is None:
            raise ContainerNotFound(container_id)
        return container

    def find(self, container_id: str | None) -> TextContainer | None:
        if container_id is None:
            return None
        return self._containers.get(container_id)

    def put(self, container: TextContainer) -> None:
        self._containers[container.id] = container

    def put_many(self, containers: Iterable[TextContainer]) -> None:
        batch = {container.id: container for container in containers}
        merged = dict(self._containers)
        merged.update(batch)
        self._containers = merged

    def remove(self, container_id: str) -> TextContainer:
        container = self._containers.pop(container_id, None)
        if container is None:
            raise ContainerNotFound(container_id)
        return container

    def clear(self) -> None:
        self._containers = {}

    def ids(self) -> list[str]:
        return list(self._containers.keys())

    def resolve_chain(self, head_id: str) -> list[TextContainer]:
        chain: list[TextContainer] = []
        visited: set[str] = set()
        current_id: str | None = head_id
        while current_id is not None:
            if current_id in visited:
                raise CycleDetected(current_id, [item.id for item in chain] + [current_id])
            visited.add(current_id)
            container = self.get(current_id)
            chain.append(container)
            current_id = container.linked_object_id
            if current_id is not None and current_id not in self._containers:
                # Dangling successor: the chain ends here.
                break
        return chain

    def find_head(self, container_id: str) -> TextContainer:
        container = self.get(container_id)
        visited: set[str] = {container.id}
        path = [container.id]
        while container.linked_from_object_id is not None:
            previous = self.find(container.linked_from_object_id)
            if previous is None:
                break
            if previous.id in visited:
                raise CycleDetected(previous.id, list(reversed(path + [previous.id])))
            visited.add(previous.id)
            path.append(previous.id)
            container = previous
        return container

    def chain_for(self, container_id: str) -> list[TextContainer]:
        return self.resolve_chain(self.find_head(container_id).id)

    def chain_ids(self, container_id: str) -> list[str]:
        return [container.id for container in self.chain_for(container_id)]

    def heads(self) -> list[TextContainer]:
        return [container for container in self._containers.values() if container.is_head]

    def links(self) -> dict[str, str]:
        return {
            container.id: container.linked_object_id
            for container in self._containers.values()
            if container.linked_object_id is not None
        }

    def linked_target(self, container_id: str) -> str | None:
        return self.get(container_id).linked_object_id

    def has_linked_target(self, container_id: str) -> bool:
        container = self.find(container_id)
        return container is not None and container.linked_object_id is not None

    def page_containers(self, page_id: str) -> list[TextContainer]:
        return [
            container for container in self._containers.values() if container.page_id == page_id
        ]

    def page_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for container in self._containers.values():
            seen.setdefault(container.page_id, None)
        return list(seen.keys())
