"""Analysis / explanation / answer result types produced by the remote path."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Complexity(BaseModel):
    time: str = "O(n)"
    space: str = "O(n)"

    @field_validator("time", "space", mode="before")
    @classmethod
    def _default_blank(cls, value):
        return str(value) if value else "O(n)"


class CodeAnalysis(BaseModel):
    """Complexity analysis plus improvement suggestions."""

    explanation: str
    complexity: Complexity
    suggestions: list[str] = []

    @field_validator("complexity", mode="before")
    @classmethod
    def _coerce_complexity(cls, value):
        if isinstance(value, str):
            return {"time": value}
        return value

    @field_validator("suggestions", mode="before")
    @classmethod
    def _coerce_suggestions(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]


class LineExplanation(BaseModel):
    line: int = 0
    code: str = ""
    explanation: str = ""

    @field_validator("code", "explanation", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return "" if value is None else str(value)


class CodeExplanation(BaseModel):
    """Summary plus per-line commentary, keyed like the remote JSON."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = ""
    line_by_line: list[LineExplanation] = Field(
        default_factory=list, alias="lineByLineExplanation"
    )


class AnswerOrigin(str, Enum):
    REMOTE = "remote"
    CANNED = "canned"
    UNAVAILABLE = "unavailable"


class CodeAnswer(BaseModel):
    question: str
    answer: str
    origin: AnswerOrigin
