"""Configuration management for extdiff diff requests."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ConfigInvalidError

DEFAULT_MAX_LINES = 1000
DEFAULT_MAX_LINE_CHARACTERS = 5000
DEFAULT_MAX_FILES = 100

WHITESPACE_FLAGS: Dict[str, List[str]] = {
    "show-all": [],
    "ignore-all": ["-w"],
    "ignore-change": ["-b"],
    "ignore-eol": ["--ignore-space-at-eol"],
}


class DiffBackend(str, Enum):
    """External diff tool producing the line-delimited JSON stream."""

    DIFFT = "difft"
    SPECIAL = "special"


def whitespace_flags(behavior: Optional[str]) -> List[str]:
    """Translate a whitespace behavior name into git diff flags.

    Raw flags (starting with ``-``) pass through unchanged.
    """
    if not behavior:
        return []
    if behavior.startswith("-"):
        return [behavior]
    try:
        return list(WHITESPACE_FLAGS[behavior])
    except KeyError:
        raise ConfigInvalidError(
            f"unknown whitespace behavior {behavior!r}; "
            f"expected one of {', '.join(sorted(WHITESPACE_FLAGS))}"
        ) from None


@dataclass(frozen=True)
class DiffLimits:
    """Truncation limits applied while building a diff. -1 means unlimited."""

    max_lines: int = DEFAULT_MAX_LINES
    max_line_characters: int = DEFAULT_MAX_LINE_CHARACTERS
    max_files: int = DEFAULT_MAX_FILES

    def __post_init__(self) -> None:
        """Validate limits after initialization."""
        for name in ("max_lines", "max_line_characters", "max_files"):
            value = getattr(self, name)
            if value < -1 or value == 0:
                raise ConfigInvalidError(f"{name} must be positive or -1 (unlimited)")

    @classmethod
    def unlimited(cls) -> "DiffLimits":
        return cls(max_lines=-1, max_line_characters=-1, max_files=-1)

    @property
    def reader_buffer_size(self) -> int:
        """Read buffer size: at least one full line, never below 4 KiB."""
        return max(self.max_line_characters, 4096)

    def to_dict(self) -> Dict[str, int]:
        return {
            "max_lines": self.max_lines,
            "max_line_characters": self.max_line_characters,
            "max_files": self.max_files,
        }


@dataclass
class DiffOptions:
    """Options for one diff request.

    The command builder writes back one output: ``before_commit_id`` is set
    to the concrete parent commit when it was left empty and the after commit
    has a parent.
    """

    after_commit_id: str
    before_commit_id: str = ""
    skip_to: str = ""
    whitespace_behavior: List[str] = field(default_factory=list)
    limits: DiffLimits = field(default_factory=DiffLimits)
    raise_on_tool_error: bool = False

    def __post_init__(self) -> None:
        """Validate options after initialization."""
        self.after_commit_id = (self.after_commit_id or "").strip()
        self.before_commit_id = (self.before_commit_id or "").strip()
        if not self.after_commit_id:
            raise ConfigInvalidError("after_commit_id is required")
        for commit_id in (self.after_commit_id, self.before_commit_id):
            if commit_id.startswith("-"):
                raise ConfigInvalidError(f"commit id cannot start with '-': {commit_id!r}")
        if isinstance(self.whitespace_behavior, str):
            self.whitespace_behavior = whitespace_flags(self.whitespace_behavior)

    def to_provenance_dict(self) -> Dict[str, Any]:
        """Convert options to a provenance dictionary for output."""
        return {
            "before_commit_id": self.before_commit_id,
            "after_commit_id": self.after_commit_id,
            "skip_to": self.skip_to or None,
            "whitespace_behavior": list(self.whitespace_behavior),
            "limits": self.limits.to_dict(),
        }
