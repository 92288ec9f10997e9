from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from app.config import AppSettings, FlowSettings


def _clear_textflow_env() -> None:
    for key in list(os.environ):
        if key.startswith("TEXTFLOW_"):
            os.environ.pop(key, None)


_clear_textflow_env()


@pytest.fixture(autouse=True)
def clear_textflow_env() -> Generator[None, None, None]:
    _clear_textflow_env()
    yield
    _clear_textflow_env()


@pytest.fixture
def flow_settings(tmp_path: Path) -> FlowSettings:
    return FlowSettings(
        title="Test Flow",
        documents_dir=tmp_path / "documents",
        storage="filesystem",
        measurer="estimated",
        width_factor=1.0,
        bold_factor=1.0,
        font_paths={},
        fit_epsilon=0.5,
        log_level="DEBUG",
    )


@pytest.fixture
def flow_settings_factory(flow_settings: FlowSettings) -> Callable[..., FlowSettings]:
    def _factory(**overrides: object) -> FlowSettings:
        return flow_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(flow_settings: FlowSettings) -> AppSettings:
    return AppSettings(flow=flow_settings)


@pytest.fixture
def app_settings_factory(
    flow_settings_factory: Callable[..., FlowSettings],
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(flow=flow_settings_factory(**overrides))

    return _factory
