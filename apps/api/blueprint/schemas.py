from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


PLACEHOLDER = "*Content for this topic could not be generated.*"


class ContentPolicy(str, Enum):
    leaves = "leaves"
    all = "all"


class TopicNode(BaseModel):
    name: str = ""
    children: list["TopicNode"] = Field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children


TopicNode.model_rebuild()


@dataclass(frozen=True)
class SourceCandidate:
    url: str
    rank: int


@dataclass(frozen=True)
class SynthesisResult:
    text: str
    ok: bool
    variant: Optional[str] = None

    @classmethod
    def placeholder(cls) -> "SynthesisResult":
        return cls(text=PLACEHOLDER, ok=False)


@dataclass(frozen=True)
class TopicOutcome:
    topic: str
    ok: bool
    variant: Optional[str] = None
    sources: int = 0
    error: str = ""
