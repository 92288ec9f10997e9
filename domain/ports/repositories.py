from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import TextContainer


class ContainerRepository(Protocol):
    def persist_container(self, container: TextContainer) -> None: ...

    def load_containers_for_page(self, page_id: str) -> Sequence[TextContainer]: ...

    def list_page_ids(self) -> Sequence[str]: ...

    def delete_container(self, page_id: str, container_id: str) -> None: ...
