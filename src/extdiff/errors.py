"""Error definitions and handling for extdiff."""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .models import Diff


class ExtDiffError(Exception):
    """Base exception for extdiff errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize error with code, message, and optional details."""
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        result = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class GitVersionUnsupportedError(ExtDiffError):
    """Git version is not supported."""

    def __init__(self, detected_version: str, required_version: str = "2.30"):
        super().__init__(
            code="GIT_VERSION_UNSUPPORTED",
            message=f"Git version {detected_version} is not supported. "
            f"Minimum required: {required_version}",
            details={
                "detected_version": detected_version,
                "required_version": required_version,
            },
        )


class CommitNotFoundError(ExtDiffError):
    """A commit could not be resolved in the repository."""

    def __init__(self, commit_id: str, repo_path: str, reason: str = ""):
        details = {"commit_id": commit_id, "repo_path": repo_path}
        if reason:
            details["reason"] = reason
        super().__init__(
            code="COMMIT_NOT_FOUND",
            message=f"Commit not found: {commit_id}",
            details=details,
        )


class ConfigInvalidError(ExtDiffError):
    """Invalid settings or diff options."""

    def __init__(self, reason: str):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Invalid configuration: {reason}",
            details={"reason": reason},
        )


class RecordDecodeError(ExtDiffError):
    """A line of tool output is not a valid record."""

    def __init__(self, reason: str, backend: str = ""):
        details = {"reason": reason}
        if backend:
            details["backend"] = backend
        super().__init__(
            code="RECORD_INVALID",
            message=f"Invalid diff record: {reason}",
            details=details,
        )


class HunkHeaderError(ExtDiffError):
    """A hunk header string could not be parsed."""

    def __init__(self, header: str):
        super().__init__(
            code="HUNK_HEADER_INVALID",
            message=f"Invalid hunk header: {header!r}",
            details={"header": header},
        )


class DiffDecodeError(ExtDiffError):
    """Parsing stopped on a malformed record.

    ``diff`` holds every file built before the bad record so the caller can
    decide whether a partial diff is acceptable.
    """

    def __init__(self, diff: "Diff", line_number: int, reason: str):
        super().__init__(
            code="DIFF_DECODE_FAILED",
            message=f"Unable to decode diff output at line {line_number}: {reason}",
            details={
                "line_number": line_number,
                "reason": reason,
                "files_parsed": len(diff.files),
            },
        )
        self.diff = diff
        self.line_number = line_number


class DiffToolFailedError(ExtDiffError):
    """The external diff process failed, timed out or could not start."""

    def __init__(
        self,
        diff: "Diff",
        description: str,
        reason: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(
            code="DIFF_TOOL_FAILED",
            message=f"Diff tool failed during {description}: {reason}",
            details={
                "reason": reason,
                "returncode": returncode,
                "stderr": stderr,
                "files_parsed": len(diff.files),
            },
        )
        self.diff = diff
        self.returncode = returncode
        self.stderr = stderr
