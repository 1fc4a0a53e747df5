"""Pydantic models for extdiff API requests and responses."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import (
    DEFAULT_MAX_FILES,
    DEFAULT_MAX_LINE_CHARACTERS,
    DEFAULT_MAX_LINES,
    WHITESPACE_FLAGS,
    DiffBackend,
)


class DiffRequest(BaseModel):
    """Request model for diff endpoint."""

    repo_path: str = Field(
        ...,
        description="Absolute path of a local git repository",
        examples=["/srv/repos/project.git"],
    )
    after_commit_id: str = Field(
        ...,
        description="Commit to show (newer side)",
        examples=["d7a39abec5a282b9955afdd1649a5f1bafae35f7"],
    )
    before_commit_id: str = Field(
        "",
        description="Base commit; first parent or the empty tree when omitted",
    )
    backend: Optional[DiffBackend] = Field(
        None,
        description="External diff tool; server default when omitted",
    )
    skip_to: str = Field("", description="Start the diff at this file")
    whitespace: str = Field("show-all", description="Whitespace behavior")
    files: List[str] = Field(default_factory=list, description="Path filters")
    max_lines: int = Field(DEFAULT_MAX_LINES, ge=-1, description="Maximum lines per file")
    max_line_characters: int = Field(
        DEFAULT_MAX_LINE_CHARACTERS, ge=-1, description="Maximum characters per line"
    )
    max_files: int = Field(DEFAULT_MAX_FILES, ge=-1, description="Maximum number of files")
    strict: bool = Field(False, description="Fail on diff tool errors")

    @field_validator("repo_path")
    @classmethod
    def repo_path_must_be_absolute(cls, v):
        """Basic validation for repository path."""
        v = v.strip()
        if not v:
            raise ValueError("repo_path cannot be empty")
        if not (v.startswith("/") or (len(v) > 2 and v[1] == ":")):
            raise ValueError("repo_path must be an absolute path")
        return v

    @field_validator("after_commit_id", "before_commit_id")
    @classmethod
    def commit_id_must_be_valid(cls, v, info):
        """Basic validation for commit ids."""
        v = v.strip()
        if info.field_name == "after_commit_id" and not v:
            raise ValueError("after_commit_id cannot be empty")
        if v.startswith("-"):
            raise ValueError("commit id cannot start with '-'")
        return v

    @field_validator("whitespace")
    @classmethod
    def whitespace_must_be_known(cls, v):
        """Only named whitespace behaviors are accepted over HTTP."""
        if v not in WHITESPACE_FLAGS:
            raise ValueError(f"whitespace must be one of {', '.join(sorted(WHITESPACE_FLAGS))}")
        return v

    @field_validator("max_lines", "max_line_characters", "max_files")
    @classmethod
    def limit_must_not_be_zero(cls, v):
        if v == 0:
            raise ValueError("limit must be positive or -1 (unlimited)")
        return v


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., examples=["healthy", "degraded"])
    version: str = Field(..., examples=["1.0.0"])
    git_available: bool = Field(..., examples=[True])
    git_version: Optional[str] = Field(None, examples=["2.34.1"])
    tools: Dict[str, bool] = Field(
        default_factory=dict, examples=[{"difft": True, "special": False}]
    )


class VersionResponse(BaseModel):
    """Response model for version endpoint."""

    version: str = Field(..., examples=["1.0.0"])
    api_version: str = Field(..., examples=["v1"])
    git_version: Optional[str] = Field(None, examples=["2.34.1"])
    minimum_git_version: str = Field(..., examples=["2.30"])
    backends: List[str] = Field(
        default_factory=lambda: [backend.value for backend in DiffBackend]
    )
    supported_features: list = Field(
        default_factory=lambda: [
            "skip_to",
            "truncation_limits",
            "encoding_normalization",
            "moved_lines",
        ]
    )
