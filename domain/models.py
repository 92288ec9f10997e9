from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FONT_FAMILY = "Arial"
DEFAULT_FONT_SIZE = 16.0
DEFAULT_LINE_HEIGHT = 1.16
CONTAINER_ID_PREFIX = "text"


def generate_container_id() -> str:
    return f"{CONTAINER_ID_PREFIX}-{uuid.uuid4().hex}"


class FrameGeometry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    padding: float = Field(default=0.0, ge=0)
    columns: int = Field(default=1, ge=1)
    column_gap: float = Field(default=0.0, ge=0, alias="columnGap")

    def column_width(self) -> float:
        gaps = self.column_gap * (self.columns - 1)
        return (self.width - 2 * self.padding - gaps) / self.columns

    def column_height(self) -> float:
        return self.height - 2 * self.padding


class TextStyle(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    font_family: str = Field(default=DEFAULT_FONT_FAMILY, alias="fontFamily")
    font_size: float = Field(default=DEFAULT_FONT_SIZE, gt=0, alias="fontSize")
    font_weight: str = Field(default="normal", alias="fontWeight")
    font_style: str = Field(default="normal", alias="fontStyle")
    line_height: float = Field(default=DEFAULT_LINE_HEIGHT, gt=0, alias="lineHeight")
    text_align: str = Field(default="left", alias="textAlign")

    @field_validator("font_weight", "font_style", "text_align", mode="before")
    @classmethod
    def normalize_keyword(cls, value: object) -> str:
        return str(value).strip().lower() if value is not None else "normal"

    @property
    def line_height_px(self) -> float:
        return self.font_size * self.line_height

    @property
    def is_bold(self) -> bool:
        if self.font_weight in {"bold", "bolder"}:
            return True
        return self.font_weight.isdigit() and int(self.font_weight) >= 600

    @property
    def is_italic(self) -> bool:
        return self.font_style in {"italic", "oblique"}


class TextContainer(BaseModel):
    """A text frame that shows one slice of a chain's story."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=generate_container_id, min_length=1)
    page_id: str = Field(..., min_length=1, alias="pageId")
    geometry: FrameGeometry
    style: TextStyle = Field(default_factory=TextStyle)
    visible_content: str = Field(default="", alias="visibleContent")
    overflow_content: Optional[str] = Field(default=None, alias="overflowContent")
    linked_object_id: Optional[str] = Field(default=None, alias="linkedObjectId")
    linked_from_object_id: Optional[str] = Field(default=None, alias="linkedFromObjectId")
    has_overflow: bool = Field(default=False, alias="hasOverflow")

    @field_validator("visible_content", mode="before")
    @classmethod
    def coerce_visible_content(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("linked_object_id", "linked_from_object_id", "overflow_content", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def is_head(self) -> bool:
        return self.linked_from_object_id is None

    @property
    def is_tail(self) -> bool:
        return self.linked_object_id is None

    @property
    def content(self) -> str:
        return self.visible_content + (self.overflow_content or "")

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> TextContainer:
        return cls.model_validate(record)


@dataclass(frozen=True)
class MeasuredLine:
    text: str
    height: float


@dataclass(frozen=True)
class FitResult:
    fitting: str
    remainder: str

    @property
    def overflows(self) -> bool:
        return bool(self.remainder)


@dataclass(frozen=True)
class TerminalOverflow:
    container_id: str
    content: str


@dataclass(frozen=True)
class FlowResult:
    head_id: str
    chain_ids: List[str]
    updated_ids: List[str] = field(default_factory=list)
    terminal_overflow: Optional[str] = None

    @property
    def tail_id(self) -> str:
        return self.chain_ids[-1] if self.chain_ids else self.head_id

    def overflow(self) -> Optional[TerminalOverflow]:
        if not self.terminal_overflow:
            return None
        return TerminalOverflow(container_id=self.tail_id, content=self.terminal_overflow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "head_id": self.head_id,
            "chain_ids": list(self.chain_ids),
            "updated_ids": list(self.updated_ids),
            "terminal_overflow": self.terminal_overflow,
        }
