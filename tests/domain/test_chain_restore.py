from __future__ import annotations

import logging

import pytest

from domain.errors import DanglingLinkOnLoad
from domain.services.chain_restore import restore_chains
from tests.helpers.flow_fixtures import chained, make_container


def test_consistent_chain_loads_unchanged() -> None:
    registry, issues = restore_chains(chained(["a", "b", "c"]))

    assert issues == []
    assert registry.chain_ids("b") == ["a", "b", "c"]


def test_missing_target_is_cleared() -> None:
    registry, issues = restore_chains([make_container("a", linked_object_id="ghost")])

    assert issues == [DanglingLinkOnLoad("a", "linkedObjectId", "ghost", "missing_target")]
    assert registry.get("a").linked_object_id is None


def test_missing_source_is_cleared() -> None:
    registry, issues = restore_chains([make_container("b", linked_from_object_id="ghost")])

    assert issues == [DanglingLinkOnLoad("b", "linkedFromObjectId", "ghost", "missing_source")]
    assert registry.get("b").is_head


def test_one_sided_link_is_dropped() -> None:
    registry, issues = restore_chains(
        [make_container("a", linked_object_id="b"), make_container("b")]
    )

    assert [issue.reason for issue in issues] == ["one_sided"]
    assert registry.links() == {}


def test_disagreeing_pointers_are_both_dropped() -> None:
    containers = [
        make_container("a", linked_object_id="b"),
        make_container("b", linked_from_object_id="c"),
        make_container("c"),
    ]

    registry, issues = restore_chains(containers)

    assert {(issue.container_id, issue.field) for issue in issues} == {
        ("a", "linkedObjectId"),
        ("b", "linkedFromObjectId"),
    }
    assert all(container.is_head and container.is_tail for container in registry)


def test_cycle_is_broken_into_a_chain() -> None:
    containers = [
        make_container("a", linked_object_id="b", linked_from_object_id="b"),
        make_container("b", linked_object_id="a", linked_from_object_id="a"),
    ]

    registry, issues = restore_chains(containers)

    assert issues == [DanglingLinkOnLoad("b", "linkedObjectId", "a", "cycle")]
    assert registry.chain_ids("b") == ["a", "b"]


def test_duplicate_ids_keep_the_last_record() -> None:
    registry, _ = restore_chains(
        [make_container("a", content="old"), make_container("a", content="new")]
    )

    assert len(registry) == 1
    assert registry.get("a").visible_content == "new"


def test_healed_links_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="domain.services.chain_restore"):
        restore_chains([make_container("a", linked_object_id="ghost")])

    assert "Healed text link on load" in caplog.text
    assert "a.linkedObjectId -> ghost (missing_target)" in caplog.text
