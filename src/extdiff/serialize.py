"""JSON serialization of the diff model for extdiff."""

import json
import logging
from typing import Any, Dict, Optional

from .models import Diff, DiffFile, DiffLine, DiffLineType, DiffSection, SectionInfo, raw_bytes

logger = logging.getLogger(__name__)


def _text(value: str) -> str:
    """Return ``value`` as valid UTF-8 text.

    Bytes the normalizer could not decode are still surrogate escapes at
    this point; they become U+FFFD.
    """
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return raw_bytes(value).decode("utf-8", errors="replace")
    return value


def _clean(value: Any) -> Any:
    """Apply ``_text`` to every string in a nested payload."""
    if isinstance(value, str):
        return _text(value)
    if isinstance(value, dict):
        return {_clean(key): _clean(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clean(item) for item in value]
    return value


class DiffSerializer:
    """Converts Diff models into plain dictionaries and JSON."""

    def serialize_diff(
        self, diff: Diff, provenance: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Serialize the complete diff to a dictionary."""
        logger.debug(
            "Serializing diff",
            extra={"files": len(diff.files), "incomplete": diff.is_incomplete},
        )
        payload = {
            "files": [self._serialize_file(file) for file in diff.files],
            "num_files": diff.num_files,
            "total_addition": diff.total_addition,
            "total_deletion": diff.total_deletion,
            "is_incomplete": diff.is_incomplete,
        }
        if diff.end is not None:
            payload["end"] = _text(diff.end)
        if diff.tool_error is not None:
            payload["tool_error"] = _text(diff.tool_error)
        if provenance:
            payload["provenance"] = _clean(provenance)
        return payload

    def _serialize_file(self, file: DiffFile) -> Dict[str, Any]:
        """Serialize a single file to dictionary."""
        file_data = {
            "name": _text(file.name),
            "name_hash": file.name_hash,
            "index": file.index,
            "type": file.type.value,
            "addition": file.addition,
            "deletion": file.deletion,
            "sections": [self._serialize_section(section) for section in file.sections],
        }

        if file.old_name:
            file_data["old_name"] = _text(file.old_name)

        if file.language:
            file_data["language"] = _text(file.language)

        if file.is_incomplete:
            file_data["is_incomplete"] = True

        if file.is_incomplete_line_too_long:
            file_data["is_incomplete_line_too_long"] = True

        return file_data

    def _serialize_section(self, section: DiffSection) -> Dict[str, Any]:
        return {
            "file_name": _text(section.file_name),
            "lines": [self._serialize_line(line) for line in section.lines],
        }

    def _serialize_line(self, line: DiffLine) -> Dict[str, Any]:
        line_data: Dict[str, Any] = {
            "type": line.type.value,
            "content": _text(line.content),
        }
        if line.type is DiffLineType.SECTION:
            if line.section_info is not None:
                line_data["section_info"] = self._serialize_section_info(line.section_info)
            return line_data

        if line.left_idx:
            line_data["left_idx"] = line.left_idx
        if line.right_idx:
            line_data["right_idx"] = line.right_idx
        if line.type is DiffLineType.PLAIN:
            line_data["match"] = line.match
        return line_data

    def _serialize_section_info(self, info: SectionInfo) -> Dict[str, Any]:
        return {
            "path": _text(info.path),
            "raw": _text(info.raw),
            "last_left_idx": info.last_left_idx,
            "last_right_idx": info.last_right_idx,
            "left_idx": info.left_idx,
            "right_idx": info.right_idx,
            "left_hunk_size": info.left_hunk_size,
            "right_hunk_size": info.right_hunk_size,
        }

    def to_json_string(self, payload: Dict[str, Any]) -> str:
        """Convert payload to pretty-printed JSON string."""
        logger.debug("Rendering payload to JSON string")
        return json.dumps(payload, ensure_ascii=True, sort_keys=True, indent=2)

    def create_success_envelope(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create success envelope around payload."""
        logger.debug("Creating success envelope")
        return {"ok": True, "data": payload}

    def create_error_envelope(
        self, error_code: str, error_message: str, details: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        """Create error envelope."""
        logger.debug("Creating error envelope", extra={"code": error_code})
        error_data = {
            "code": error_code,
            "message": _text(error_message),
        }
        if details:
            error_data["details"] = _clean(details)

        return {"ok": False, "error": error_data}
