"""In-memory diff model shared by every diff backend."""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional


class DiffLineType(Enum):
    """Kind of a rendered diff row."""

    SECTION = "section"
    PLAIN = "plain"
    ADD = "add"
    DEL = "del"
    MOVED_ADD = "moved_add"
    MOVED_DEL = "moved_del"

    @property
    def category(self) -> Optional["DiffLineType"]:
        """Content category used for encoding detection.

        Moved lines share the category of the plain change they relocate.
        Section headers carry no content and have no category.
        """
        return _CATEGORIES.get(self)

    @property
    def is_addition(self) -> bool:
        return self in (DiffLineType.ADD, DiffLineType.MOVED_ADD)

    @property
    def is_deletion(self) -> bool:
        return self in (DiffLineType.DEL, DiffLineType.MOVED_DEL)


_CATEGORIES = {
    DiffLineType.PLAIN: DiffLineType.PLAIN,
    DiffLineType.ADD: DiffLineType.ADD,
    DiffLineType.MOVED_ADD: DiffLineType.ADD,
    DiffLineType.DEL: DiffLineType.DEL,
    DiffLineType.MOVED_DEL: DiffLineType.DEL,
}


class DiffFileType(Enum):
    """Change classification of a file."""

    ADD = "add"
    CHANGE = "change"
    DEL = "del"
    RENAME = "rename"
    COPY = "copy"


@dataclass
class SectionInfo:
    """Parsed hunk header of a section."""

    path: str
    raw: str
    last_left_idx: int
    last_right_idx: int
    left_idx: int
    right_idx: int
    left_hunk_size: int
    right_hunk_size: int


@dataclass
class DiffLine:
    """One rendered row of a section."""

    type: DiffLineType
    content: str
    left_idx: int = 0
    right_idx: int = 0
    match: int = -1
    section_info: Optional[SectionInfo] = None

    @property
    def prefix(self) -> str:
        return self.content[:1]

    @property
    def text(self) -> str:
        """Content without its one-character prefix."""
        return self.content[1:]


@dataclass
class DiffSection:
    """A hunk of one file."""

    file_name: str
    lines: List[DiffLine] = field(default_factory=list)
    file: Optional["DiffFile"] = field(default=None, repr=False, compare=False)


@dataclass
class DiffFile:
    """One changed path and its sections."""

    name: str
    index: int
    type: DiffFileType = DiffFileType.CHANGE
    old_name: Optional[str] = None
    language: Optional[str] = None
    name_hash: str = ""
    sections: List[DiffSection] = field(default_factory=list)
    addition: int = 0
    deletion: int = 0
    is_incomplete: bool = False
    is_incomplete_line_too_long: bool = False

    def __post_init__(self) -> None:
        """Derive the stable anchor hash from the file name."""
        if not self.name_hash:
            self.name_hash = encode_sha1(self.name)

    def iter_lines(self) -> Iterator[DiffLine]:
        for section in self.sections:
            yield from section.lines


@dataclass
class Diff:
    """Result of parsing one diff request."""

    files: List[DiffFile] = field(default_factory=list)
    total_addition: int = 0
    total_deletion: int = 0
    num_files: int = 0
    is_incomplete: bool = False
    end: Optional[str] = None
    tool_error: Optional[str] = None


def raw_bytes(text: str) -> bytes:
    """Recover the bytes of text decoded with ``surrogateescape``."""
    try:
        return text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        # lone surrogates from JSON escapes, not from undecodable bytes
        return text.encode("utf-8", errors="surrogatepass")


def encode_sha1(value: str) -> str:
    """Return the hex SHA-1 of a string."""
    return hashlib.sha1(raw_bytes(value)).hexdigest()
