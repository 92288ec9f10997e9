from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from adapters.filesystem.container_repository import FileSystemContainerRepository
from tests.helpers.flow_fixtures import chained, make_container


def test_persisted_containers_load_back(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    containers = chained(["a", "b"], content="text")

    for container in containers:
        repository.persist_container(container)

    assert repository.load_containers_for_page("page-1") == containers


def test_records_use_camel_case_keys(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    repository.persist_container(make_container("a", linked_object_id="b"))

    payload = json.loads(repository.page_path("page-1").read_text(encoding="utf-8"))

    record = payload["containers"][0]
    assert payload["page_id"] == "page-1"
    assert record["linkedObjectId"] == "b"
    assert record["linkedFromObjectId"] is None
    assert record["visibleContent"] == ""
    assert record["geometry"]["columnGap"] == 0.0


def test_persist_replaces_existing_record(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    repository.persist_container(make_container("a", content="old"))
    repository.persist_container(make_container("a", content="new"))

    loaded = repository.load_containers_for_page("page-1")

    assert [container.visible_content for container in loaded] == ["new"]


def test_page_ids_survive_unsafe_characters(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    repository.persist_container(make_container("a", page_id="book/chapter 1"))
    repository.persist_container(make_container("b", page_id="cover"))

    assert sorted(repository.list_page_ids()) == ["book/chapter 1", "cover"]
    assert [item.id for item in repository.load_containers_for_page("book/chapter 1")] == ["a"]


def test_delete_container(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    for container in chained(["a", "b"]):
        repository.persist_container(container)

    repository.delete_container("page-1", "a")
    repository.delete_container("page-1", "missing")

    assert [item.id for item in repository.load_containers_for_page("page-1")] == ["b"]


def test_missing_root_and_page(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path / "absent")

    assert repository.list_page_ids() == []
    assert repository.load_containers_for_page("page-1") == []


def test_invalid_records_are_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    valid = make_container("a").to_record()
    repository.page_path("page-1").write_text(
        json.dumps({"page_id": "page-1", "containers": [{"id": "broken"}, valid, "junk"]}),
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING):
        loaded = repository.load_containers_for_page("page-1")

    assert [item.id for item in loaded] == ["a"]
    assert "Skipping invalid text container record" in caplog.text


def test_page_file_must_hold_an_object(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    repository.page_path("page-1").write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError, match="does not hold a JSON object"):
        repository.load_containers_for_page("page-1")


def test_page_file_is_sorted_and_newline_terminated(tmp_path: Path) -> None:
    repository = FileSystemContainerRepository(tmp_path)
    repository.persist_container(make_container("a"))

    text = repository.page_path("page-1").read_text(encoding="utf-8")

    assert text.endswith("}\n")
    assert text.index('"containers"') < text.index('"page_id"')
    assert not list(tmp_path.glob(".*.tmp"))
