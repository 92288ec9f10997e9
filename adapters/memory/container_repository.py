from __future__ import annotations

from typing import Any

from domain.models import TextContainer
from domain.ports.repositories import ContainerRepository


class InMemoryContainerRepository(ContainerRepository):
    def __init__(self, containers: list[TextContainer] | None = None) -> None:
        self._pages: dict[str, dict[str, dict[str, Any]]] = {}
        for container in containers or []:
            self.persist_container(container)

    def persist_container(self, container: TextContainer) -> None:
        self._pages.setdefault(container.page_id, {})[container.id] = container.to_record()

    def load_containers_for_page(self, page_id: str) -> list[TextContainer]:
        records = self._pages.get(page_id, {})
        return [TextContainer.from_record(record) for record in records.values()]

    def list_page_ids(self) -> list[str]:
        return list(self._pages.keys())

    def delete_container(self, page_id: str, container_id: str) -> None:
        self._pages.get(page_id, {}).pop(container_id, None)

    def records(self, page_id: str) -> list[dict[str, Any]]:
        return list(self._pages.get(page_id, {}).values())
