from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from app.cli import app

ALPHABET = "abcdefghijklmnopqrstuvwxyz"

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "textflow.yaml"
    path.write_text(
        "flow:\n"
        f'  documents_dir: "{tmp_path / "documents"}"\n'
        "  measurer: estimated\n"
        "  width_factor: 1.0\n"
        "  log_level: warning\n",
        encoding="utf-8",
    )
    return path


def _invoke(config_path: Path, *args: str) -> tuple[int, str]:
    result = runner.invoke(app, [*args, "--config", str(config_path)])
    return result.exit_code, result.output


def _add(config_path: Path, container_id: str, text: str = "") -> tuple[int, str]:
    return _invoke(
        config_path,
        "add",
        "page-1",
        "--width",
        "100",
        "--height",
        "10",
        "--font-size",
        "10",
        "--line-height",
        "1",
        "--text",
        text,
        "--id",
        container_id,
    )


def test_add_reports_overflow(config_path: Path) -> None:
    code, output = _add(config_path, "a", ALPHABET)

    assert code == 0
    assert "Added a" in output
    assert "Overflow at a: 16 characters do not fit" in output


def test_link_check_and_fix(config_path: Path) -> None:
    _add(config_path, "a", ALPHABET)
    _add(config_path, "b")

    code, output = _invoke(config_path, "link", "a", "b")
    assert code == 0
    assert "Linked a -> b" in output

    code, output = _invoke(config_path, "check")
    assert code == 1
    assert "Overflow at b: 6 characters do not fit" in output

    _invoke(config_path, "set-text", "b", "tail")
    code, output = _invoke(config_path, "check")
    assert code == 0
    assert "All text fits" in output


def test_cycle_is_reported(config_path: Path) -> None:
    _add(config_path, "a")
    _add(config_path, "b")
    _invoke(config_path, "link", "a", "b")

    code, output = _invoke(config_path, "link", "b", "a")

    assert code == 1
    assert "Cannot link" in output


def test_unlink_delete_and_pages(config_path: Path) -> None:
    _add(config_path, "a", "0123456789abc")
    _add(config_path, "b")
    _invoke(config_path, "link", "a", "b")

    code, output = _invoke(config_path, "unlink", "a")
    assert code == 0
    assert "Unlinked a" in output

    code, output = _invoke(config_path, "unlink", "a")
    assert code == 0
    assert "a has no outgoing link" in output

    code, output = _invoke(config_path, "delete", "b")
    assert code == 0
    assert "Deleted b" in output

    code, output = _invoke(config_path, "delete", "b")
    assert code == 1

    code, output = _invoke(config_path, "pages")
    assert code == 0
    assert "page-1 (1 containers)" in output


def test_show_and_chain(config_path: Path) -> None:
    _add(config_path, "a", "hello")

    code, output = _invoke(config_path, "show", "page-1")
    assert code == 0
    assert "hello" in output

    code, _ = _invoke(config_path, "chain", "a")
    assert code == 0

    code, output = _invoke(config_path, "chain", "missing")
    assert code == 1
    assert "Text container not found" in output


def test_set_text_for_unknown_container(config_path: Path) -> None:
    code, output = _invoke(config_path, "set-text", "missing", "text")

    assert code == 1
    assert "Text container not found" in output


def test_empty_storage(config_path: Path) -> None:
    code, output = _invoke(config_path, "pages")

    assert code == 0
    assert "No pages with text containers" in output


def test_add_rejects_an_existing_id(config_path: Path) -> None:
    _add(config_path, "a", "first")

    code, output = _add(config_path, "a", "second")

    assert code == 1
    assert "Cannot add" in output
    assert "Text container already exists: a" in output
