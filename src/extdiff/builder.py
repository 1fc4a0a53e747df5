"""Folds decoded tool records into the diff model."""

import logging
from typing import BinaryIO, Optional

from .adapters import FileIdentity, HunkEvent, LineEvent, RecordAdapter
from .config import DiffLimits
from .encoding import EncodingNormalizer
from .errors import DiffDecodeError, ExtDiffError
from .hunk_header import get_section_info
from .models import Diff, DiffFile, DiffFileType, DiffLine, DiffLineType, DiffSection

logger = logging.getLogger(__name__)

_PREFIXES = {
    DiffLineType.PLAIN: " ",
    DiffLineType.ADD: "+",
    DiffLineType.MOVED_ADD: "+",
    DiffLineType.DEL: "-",
    DiffLineType.MOVED_DEL: "-",
}


class DiffBuilder:
    """Accumulates files, sections and lines for one diff.

    Applies the skip-to hint and the truncation limits. A file is added to
    the diff, and to its totals, only after all of its hunks were built.
    """

    def __init__(
        self,
        adapter: RecordAdapter,
        limits: Optional[DiffLimits] = None,
        skip_to: str = "",
    ):
        self.adapter = adapter
        self.limits = limits or DiffLimits()
        self.skip_to = skip_to
        self.skipping = bool(skip_to)
        self.diff = Diff()
        self.stopped = False
        self._line_count = 0
        self._last_left, self._last_right = 1, 1

    def add_record(self, record) -> None:
        """Fold one decoded record into the diff."""
        identity = self.adapter.file_identity(record)

        if self.skipping:
            if identity.name != self.skip_to:
                logger.debug("Skipping file before skip-to target", extra={"path": identity.name})
                return
            self.skipping = False

        max_files = self.limits.max_files
        if max_files > -1 and len(self.diff.files) >= max_files:
            logger.info(
                "File limit reached",
                extra={"max_files": max_files, "end": identity.name},
            )
            self.diff.is_incomplete = True
            self.diff.end = identity.name
            self.stopped = True
            return

        file = self._new_file(identity)
        self._line_count = 0
        self._last_left, self._last_right = 1, 1
        for hunk in self.adapter.hunks(record):
            self._add_hunk(file, hunk)

        # The file joins the diff only once all of its hunks were built
        self.diff.files.append(file)
        self.diff.total_addition += file.addition
        self.diff.total_deletion += file.deletion
        if file.is_incomplete:
            self.diff.is_incomplete = True

    def _new_file(self, identity: FileIdentity) -> DiffFile:
        return DiffFile(
            name=identity.name,
            old_name=identity.old_name,
            language=identity.language,
            index=len(self.diff.files) + 1,
            type=DiffFileType.CHANGE,
        )

    def _add_hunk(self, file: DiffFile, hunk: HunkEvent) -> None:
        if file.is_incomplete:
            return
        section = DiffSection(file_name=file.name, file=file)
        file.sections.append(section)

        if not self.adapter.tracks_line_numbers:
            section.lines.append(DiffLine(type=DiffLineType.SECTION, content=hunk.header))
            for event in hunk.lines:
                if self._add_line(file, section, event) is None:
                    break
            return

        section_info = get_section_info(
            file.name, hunk.header, self._last_left, self._last_right, hunk.header_range
        )
        section.lines.append(
            DiffLine(
                type=DiffLineType.SECTION,
                content=hunk.header,
                section_info=section_info,
            )
        )

        left_idx = section_info.left_idx
        right_idx = section_info.right_idx
        for event in hunk.lines:
            line = self._add_line(file, section, event)
            if line is None:
                break
            if event.type is DiffLineType.PLAIN:
                line.left_idx = left_idx
                line.right_idx = right_idx
                line.match = left_idx
                left_idx += 1
                right_idx += 1
            elif event.type.is_addition:
                line.right_idx = right_idx
                right_idx += 1
            elif event.type.is_deletion:
                line.left_idx = left_idx
                left_idx += 1

        # the next hunk of this file records where this one stopped
        self._last_left, self._last_right = left_idx, right_idx

    def _add_line(self, file: DiffFile, section: DiffSection, event: LineEvent) -> Optional[DiffLine]:
        """Append a content line, or return None once the file hit a limit."""
        if file.is_incomplete:
            return None

        limits = self.limits
        if limits.max_line_characters > -1 and len(event.text) > limits.max_line_characters:
            logger.info(
                "Line too long, truncating file",
                extra={"path": file.name, "length": len(event.text)},
            )
            file.is_incomplete = True
            file.is_incomplete_line_too_long = True
            return None

        if limits.max_lines > -1 and self._line_count >= limits.max_lines:
            logger.info(
                "Line limit reached, truncating file",
                extra={"path": file.name, "max_lines": limits.max_lines},
            )
            file.is_incomplete = True
            return None

        line = DiffLine(type=event.type, content=_PREFIXES[event.type] + event.text)
        section.lines.append(line)
        self._line_count += 1
        if event.type.is_addition:
            file.addition += 1
        elif event.type.is_deletion:
            file.deletion += 1
        return line

    def finish(self, normalizer: Optional[EncodingNormalizer] = None) -> Diff:
        """Normalize encodings and seal the diff."""
        if normalizer is not None:
            normalizer.normalize(self.diff)
        self.diff.num_files = len(self.diff.files)
        return self.diff


def parse_patch(
    reader: BinaryIO,
    adapter: RecordAdapter,
    limits: Optional[DiffLimits] = None,
    skip_to: str = "",
    normalizer: Optional[EncodingNormalizer] = None,
) -> Diff:
    """Build a Diff from a stream of newline-delimited tool records.

    Raises DiffDecodeError carrying the partial diff when a record cannot be
    decoded; clean end of stream returns the diff.
    """
    limits = limits or DiffLimits()
    logger.debug(
        "parse_patch(%d, %d, %d, ..., %s)",
        limits.max_lines,
        limits.max_line_characters,
        limits.max_files,
        skip_to,
        extra={"backend": adapter.backend.value},
    )

    builder = DiffBuilder(adapter, limits, skip_to)
    line_number = 0
    for raw in reader:
        line_number += 1
        if not raw.strip():
            continue
        try:
            record = adapter.decode(raw)
            builder.add_record(record)
        except ExtDiffError as e:
            diff = builder.finish(normalizer)
            logger.warning(
                "Stopped parsing on bad record",
                extra={"line_number": line_number, "files": len(diff.files)},
            )
            raise DiffDecodeError(diff, line_number, e.message) from e

        if builder.stopped:
            # Drain so the producer can exit instead of blocking on a full pipe
            for _ in reader:
                pass
            break

    diff = builder.finish(normalizer)
    logger.info(
        "Parsed diff",
        extra={
            "files": diff.num_files,
            "additions": diff.total_addition,
            "deletions": diff.total_deletion,
            "incomplete": diff.is_incomplete,
        },
    )
    return diff
