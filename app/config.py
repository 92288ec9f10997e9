from __future__ import annotations

import json
import os
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.services.capacity_calculator import DEFAULT_FIT_EPSILON

DEFAULT_CONFIG_PATH = Path("config/textflow.yaml")

StorageKind = Literal["filesystem", "memory"]
MeasurerKind = Literal["estimated", "freetype"]


class FlowSettings(BaseModel):
    title: str = "Text Flow"
    documents_dir: Path = Path("data/documents")
    storage: StorageKind = "filesystem"
    measurer: MeasurerKind = "estimated"
    width_factor: float = Field(default=0.6, gt=0)
    bold_factor: float = Field(default=1.0, gt=0)
    font_paths: dict[str, Path] = Field(default_factory=dict)
    fit_epsilon: float = Field(default=DEFAULT_FIT_EPSILON, ge=0)
    log_level: str = "INFO"

    @field_validator("storage", "measurer", mode="before")
    @classmethod
    def normalize_kind(cls, value: object) -> str:
        return str(value).strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        return str(value).strip().upper() if value else "INFO"

    @field_validator("font_paths", mode="before")
    @classmethod
    def normalize_font_paths(cls, value: object) -> dict[str, str]:
        if value is None or value == "":
            return {}
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                msg = "flow.font_paths must be a JSON object"
                raise ValueError(msg) from exc
            if not isinstance(parsed, dict):
                msg = "flow.font_paths must be a JSON object"
                raise ValueError(msg)
            return {str(key): str(item) for key, item in parsed.items()}
        msg = "flow.font_paths must be a JSON object"
        raise ValueError(msg)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TEXTFLOW_", env_nested_delimiter="__")

    flow: FlowSettings = FlowSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("TEXTFLOW_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
