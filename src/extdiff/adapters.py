"""Record adapters turning tool-specific records into builder events.

The builder only sees files, hunks and classified lines; everything that
depends on a tool's JSON shape lives here.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Type

from pydantic import BaseModel, ValidationError

from .config import DiffBackend
from .errors import RecordDecodeError
from .hunk_header import HunkRange
from .models import DiffLineType
from .records import DifftFile, SpecialDiffFile

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"

_GIT_HEADER_PATTERN = re.compile(r'^diff --git "?\\?a/(.*?)"? "?\\?b/(.*?)"?$')


@dataclass
class FileIdentity:
    name: str
    old_name: Optional[str] = None
    language: Optional[str] = None


@dataclass
class LineEvent:
    type: DiffLineType
    text: str


@dataclass
class HunkEvent:
    """One hunk: its header content and classified lines."""

    header: str
    header_range: Optional[HunkRange] = None
    lines: List[LineEvent] = field(default_factory=list)


class RecordAdapter(ABC):
    """Decodes one tool's records and yields common builder events."""

    backend: DiffBackend
    record_type: Type[BaseModel]
    tracks_line_numbers: bool = False

    def decode(self, raw: bytes) -> Any:
        """Decode one output line into this tool's record type.

        Bytes that are not valid UTF-8 survive as surrogate escapes so the
        encoding normalizer can still see the original bytes.
        """
        try:
            data = json.loads(raw.decode("utf-8", errors="surrogateescape"))
        except json.JSONDecodeError as e:
            raise RecordDecodeError(str(e), self.backend.value) from e
        return self.from_dict(data)

    def from_dict(self, data: Any) -> Any:
        """Validate decoded JSON into this tool's record type."""
        try:
            return self.record_type.model_validate(data)
        except ValidationError as e:
            raise RecordDecodeError(_describe(e), self.backend.value) from e

    @abstractmethod
    def file_identity(self, record: Any) -> FileIdentity:
        """Return the file a record describes."""

    @abstractmethod
    def hunks(self, record: Any) -> Iterator[HunkEvent]:
        """Yield the record's hunks in order."""


class DifftAdapter(RecordAdapter):
    """difftastic JSON: hunks of aligned lhs/rhs lines with changed ranges.

    difftastic reports character ranges rather than line alignment, so no
    line numbers are produced.
    """

    backend = DiffBackend.DIFFT
    record_type = DifftFile
    tracks_line_numbers = False

    def file_identity(self, record: DifftFile) -> FileIdentity:
        return FileIdentity(name=record.path, language=record.language or None)

    def hunks(self, record: DifftFile) -> Iterator[HunkEvent]:
        for chunk in record.chunks:
            event = HunkEvent(header="@")
            for line in chunk:
                for change in line.lhs.changes:
                    event.lines.append(LineEvent(DiffLineType.DEL, change.content))
                for change in line.rhs.changes:
                    event.lines.append(LineEvent(DiffLineType.ADD, change.content))
            yield event


class SpecialDiffAdapter(RecordAdapter):
    """Move-aware git diff JSON: unified hunks with explicit line markers."""

    backend = DiffBackend.SPECIAL
    record_type = SpecialDiffFile
    tracks_line_numbers = True

    LINE_TYPES = {
        " ": DiffLineType.PLAIN,
        "+": DiffLineType.ADD,
        "-": DiffLineType.DEL,
        "m+": DiffLineType.MOVED_ADD,
        "m-": DiffLineType.MOVED_DEL,
    }

    def file_identity(self, record: SpecialDiffFile) -> FileIdentity:
        old_path = record.old_path if record.old_path != DEV_NULL else None
        new_path = record.new_path if record.new_path != DEV_NULL else None

        if not (old_path or new_path) and record.headers:
            parsed = parse_git_header(record.headers[0])
            if parsed:
                old_path, new_path = parsed

        name = new_path or old_path
        if not name:
            raise RecordDecodeError("file record has no path", self.backend.value)

        old_name = old_path if old_path and new_path and old_path != new_path else None
        return FileIdentity(name=name, old_name=old_name)

    def hunks(self, record: SpecialDiffFile) -> Iterator[HunkEvent]:
        for hunk in record.hunks:
            header = hunk.header
            header_range = None
            if header.old_start or header.new_start:
                header_range = HunkRange(
                    old_start=header.old_start,
                    old_lines=header.old_offset,
                    new_start=header.new_start,
                    new_lines=header.new_offset,
                )
            yield HunkEvent(
                header=header.raw,
                header_range=header_range,
                lines=[
                    LineEvent(self.LINE_TYPES[line.type], line.text)
                    for line in hunk.lines
                ],
            )


def _describe(error: ValidationError) -> str:
    """First validation failure as ``location: message``."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def parse_git_header(header: str) -> Optional[tuple]:
    """Extract (old_path, new_path) from a ``diff --git`` header line."""
    match = _GIT_HEADER_PATTERN.match(header.strip())
    if not match:
        logger.debug("Unrecognized file header", extra={"header": header})
        return None
    return match.group(1), match.group(2)


_ADAPTERS = {
    DiffBackend.DIFFT: DifftAdapter,
    DiffBackend.SPECIAL: SpecialDiffAdapter,
}


def get_adapter(backend: DiffBackend) -> RecordAdapter:
    """Return a record adapter for ``backend``."""
    return _ADAPTERS[DiffBackend(backend)]()
