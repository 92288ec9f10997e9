from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from filelock import FileLock
from pydantic import ValidationError

from adapters.filesystem.page_files import read_page_payload, write_page_atomic
from domain.models import TextContainer
from domain.ports.repositories import ContainerRepository

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".page.json"


class FileSystemContainerRepository(ContainerRepository):
    """Stores each page's text containers as flat records in one JSON file."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def page_path(self, page_id: str) -> Path:
        return self.root / f"{quote(page_id, safe='')}{PAGE_SUFFIX}"

    def persist_container(self, container: TextContainer) -> None:
        path = self.page_path(container.page_id)
        with self._lock(path):
            records = self._read_records(path)
            record = container.to_record()
            for index, existing in enumerate(records):
                if existing.get("id") == container.id:
                    records[index] = record
                    break
            else:
                records.append(record)
            self._write_records(path, container.page_id, records)

    def load_containers_for_page(self, page_id: str) -> list[TextContainer]:
        path = self.page_path(page_id)
        containers: list[TextContainer] = []
        for record in self._read_records(path):
            try:
                containers.append(TextContainer.from_record(record))
            except ValidationError:
                logger.warning("Skipping invalid text container record in %s: %r", path, record)
        return containers

    def list_page_ids(self) -> list[str]:
        if not self.root.exists():
            return []
        page_ids: list[str] = []
        for path in sorted(self.root.glob(f"*{PAGE_SUFFIX}")):
            payload = read_page_payload(path)
            page_id = payload.get("page_id") or unquote(path.name[: -len(PAGE_SUFFIX)])
            page_ids.append(str(page_id))
        return page_ids

    def delete_container(self, page_id: str, container_id: str) -> None:
        path = self.page_path(page_id)
        with self._lock(path):
            records = self._read_records(path)
            kept = [record for record in records if record.get("id") != container_id]
            if len(kept) != len(records):
                self._write_records(path, page_id, kept)

    def _read_records(self, path: Path) -> list[dict[str, Any]]:
        payload = read_page_payload(path)
        records = payload.get("containers", [])
        if not isinstance(records, list):
            return []
        return [record for record in records if isinstance(record, dict)]

    def _write_records(self, path: Path, page_id: str, records: list[dict[str, Any]]) -> None:
        write_page_atomic(path, {"page_id": page_id, "containers": records})

    def _lock(self, path: Path) -> FileLock:
        self.root.mkdir(parents=True, exist_ok=True)
        return FileLock(str(path.with_suffix(f"{path.suffix}.lock")))
