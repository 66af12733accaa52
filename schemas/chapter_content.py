from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field


class ChapterContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    ai_summary: str = Field(alias="aiSummary")

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ChapterContent":
        return cls.model_validate(data)


class CellKind(str, Enum):
    MARKDOWN = "markdown"
    CODE = "code"


class NotebookCell(BaseModel):
    type: CellKind
    content: str


class Notebook(BaseModel):
    cells: List[NotebookCell]


@dataclass(frozen=True)
class ChapterOk:
    chapter: ChapterContent


@dataclass(frozen=True)
class ChapterFailed:
    title: str
    reason: str


ChapterResult = Union[ChapterOk, ChapterFailed]
