"""Unified hunk header parsing."""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import HunkHeaderError
from .models import SectionInfo

logger = logging.getLogger(__name__)

HUNK_HEADER_PATTERN = re.compile(
    r"^@@ -(\d+)(?:,(\d+))?(?: \+(\d+)(?:,(\d+))?)? @@"
)


@dataclass(frozen=True)
class HunkRange:
    """Structured hunk header fields reported by a diff tool."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int


def parse_hunk_header(header: str) -> Tuple[int, int, int, int]:
    """Parse ``@@ -a,b +c,d @@`` into (old_start, old_lines, new_start, new_lines).

    A missing length means a single line. A header without a new-side range
    mirrors the old side.
    """
    match = HUNK_HEADER_PATTERN.match(header)
    if not match:
        raise HunkHeaderError(header)

    old_start = int(match.group(1))
    old_lines = int(match.group(2) or "1")
    if match.group(3) is None:
        logger.debug("Hunk header has no new-side range", extra={"header": header})
        return old_start, old_lines, old_start, old_lines

    new_start = int(match.group(3))
    new_lines = int(match.group(4) or "1")
    return old_start, old_lines, new_start, new_lines


def get_section_info(
    path: str,
    header: str,
    last_left_idx: int,
    last_right_idx: int,
    fallback: Optional[HunkRange] = None,
) -> SectionInfo:
    """Build the SectionInfo for a hunk.

    ``last_left_idx``/``last_right_idx`` are the counters where the previous
    hunk of the same file stopped. The running counters of this hunk start at
    the header's start lines.
    """
    try:
        old_start, old_lines, new_start, new_lines = parse_hunk_header(header)
    except HunkHeaderError:
        if fallback is None:
            raise
        logger.debug(
            "Using structured hunk range for unparsable header",
            extra={"path": path, "header": header},
        )
        old_start, old_lines = fallback.old_start, fallback.old_lines
        new_start, new_lines = fallback.new_start, fallback.new_lines

    return SectionInfo(
        path=path,
        raw=header,
        last_left_idx=last_left_idx,
        last_right_idx=last_right_idx,
        left_idx=old_start,
        right_idx=new_start,
        left_hunk_size=old_lines,
        right_hunk_size=new_lines,
    )
