"""Record shapes emitted by the supported external diff tools.

Each tool prints one JSON object per changed file, one object per line.
Explicit ``null`` values fall back to the field default.
"""

from typing import Annotated, Any, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    StrictInt,
    field_validator,
    model_validator,
)


def _validate_text(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"must be a string, got {type(value).__name__}")
    return value


# pydantic's own str validation rejects lone surrogates, which is how
# undecodable bytes reach us; keep the Python string as is.
Text = Annotated[str, PlainValidator(_validate_text)]


class ToolRecord(BaseModel):
    """Base for tool records."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# difftastic (variant A)


class DifftChange(ToolRecord):
    start: StrictInt = 0
    end: StrictInt = 0
    content: Text = ""


class DifftSide(ToolRecord):
    line_number: StrictInt = 0
    changes: List[DifftChange] = Field(default_factory=list)


class DifftLine(ToolRecord):
    """One aligned row; a side is absent for one-sided changes."""

    lhs: DifftSide = Field(default_factory=DifftSide)
    rhs: DifftSide = Field(default_factory=DifftSide)


class DifftFile(ToolRecord):
    path: Text
    language: Text = ""
    status: Text = ""
    chunks: List[List[DifftLine]] = Field(default_factory=list)

    @field_validator("path")
    @classmethod
    def path_must_not_be_empty(cls, v):
        if not v:
            raise ValueError("file record has no path")
        return v


# git special diff (variant B)

LineMarker = Literal[" ", "+", "-", "m+", "m-"]


class SpecialDiffLine(ToolRecord):
    type: LineMarker
    text: Text = ""


class SpecialDiffHunkHeader(ToolRecord):
    raw: Text = ""
    old_start: StrictInt = 0
    old_offset: StrictInt = 0
    new_start: StrictInt = 0
    new_offset: StrictInt = 0


class SpecialDiffHunk(ToolRecord):
    header: SpecialDiffHunkHeader = Field(default_factory=SpecialDiffHunkHeader)
    headers: List[Text] = Field(default_factory=list)
    lines: List[SpecialDiffLine] = Field(default_factory=list)


class SpecialDiffFile(ToolRecord):
    headers: List[Text] = Field(default_factory=list)
    old_path: Optional[Text] = None
    new_path: Optional[Text] = None
    hunks: List[SpecialDiffHunk] = Field(default_factory=list)
