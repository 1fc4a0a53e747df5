"""Version control system operations for extdiff."""

import logging
import re
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .errors import CommitNotFoundError, GitVersionUnsupportedError
from .settings import Settings

logger = logging.getLogger(__name__)

EMPTY_SHA = "0" * 40
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
MINIMUM_GIT_VERSION = "2.30"
SKIP_TO_GIT_VERSION = "2.31"

_VERSION_PATTERN = re.compile(r"git version (\d+\.\d+(?:\.\d+)?)")


def parse_version(version: str) -> Tuple[int, ...]:
    """Turn ``2.34.1`` into ``(2, 34, 1)``."""
    return tuple(int(part) for part in version.split("."))


class GitRepository:
    """Git operations against an existing local repository."""

    def __init__(self, repo_path: Union[str, Path], settings: Optional[Settings] = None):
        """Initialize with repository path and settings."""
        self.repo_path = Path(repo_path)
        self.settings = settings or Settings()
        self._git_version: Optional[str] = None

    @property
    def base_command(self) -> List[str]:
        """Git invocation prefix enforcing deterministic behavior."""
        return [
            self.settings.git_binary,
            "-c",
            "core.autocrlf=false",
            "-c",
            "color.ui=false",
        ]

    def _run_git(
        self,
        args: List[str],
        timeout: int = 60,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a short git command and capture its text output."""
        cmd = self.base_command + args
        logger.debug("Running git command", extra={"git_args": args})
        return subprocess.run(
            cmd,
            cwd=self.repo_path,
            env=self.settings.git_env,
            timeout=timeout,
            check=check,
            capture_output=True,
            text=True,
        )

    def validate_git_version(self) -> str:
        """Validate Git version meets minimum requirements."""
        if self._git_version:
            return self._git_version

        try:
            result = subprocess.run(
                [self.settings.git_binary, "--version"],
                capture_output=True,
                text=True,
                check=True,
                timeout=10,
            )
        except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise GitVersionUnsupportedError("unavailable", MINIMUM_GIT_VERSION) from e

        # Extract version number from "git version 2.34.1"
        match = _VERSION_PATTERN.search(result.stdout.strip())
        if not match:
            raise GitVersionUnsupportedError("unknown", MINIMUM_GIT_VERSION)

        version_str = match.group(1)
        if parse_version(version_str)[:2] < parse_version(MINIMUM_GIT_VERSION):
            raise GitVersionUnsupportedError(version_str, MINIMUM_GIT_VERSION)

        logger.debug("Detected git version", extra={"git_version": version_str})
        self._git_version = version_str
        return version_str

    def check_version_at_least(self, required: str) -> bool:
        """Return True when the installed git is at least ``required``."""
        try:
            detected = self.validate_git_version()
        except GitVersionUnsupportedError:
            return False
        required_parts = parse_version(required)
        return parse_version(detected)[: len(required_parts)] >= required_parts

    def supports_skip_to(self) -> bool:
        """git diff learned --skip-to in 2.31."""
        return self.check_version_at_least(SKIP_TO_GIT_VERSION)

    def get_commit_parents(self, commit_id: str) -> Tuple[str, List[str]]:
        """Resolve a commit and return its full id and parent ids."""
        try:
            result = self._run_git(["rev-list", "--parents", "-n", "1", commit_id, "--"])
        except subprocess.CalledProcessError as e:
            raise CommitNotFoundError(
                commit_id, str(self.repo_path), (e.stderr or "").strip()
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CommitNotFoundError(commit_id, str(self.repo_path), "timed out") from e

        ids = result.stdout.split()
        if not ids:
            raise CommitNotFoundError(commit_id, str(self.repo_path), "not a commit")
        return ids[0], ids[1:]
