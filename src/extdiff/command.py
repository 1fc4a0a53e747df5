"""Assembly of the git command that runs an external diff tool."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import DiffBackend, DiffOptions
from .vcs import EMPTY_SHA, EMPTY_TREE_SHA, GitRepository

logger = logging.getLogger(__name__)


@dataclass
class DiffCommand:
    """A fully built diff invocation.

    ``skip_to`` is the hint the parser must still apply in software. It is
    empty when git skips natively or no hint was given.
    """

    args: List[str]
    env: Dict[str, str]
    cwd: Path
    backend: DiffBackend
    description: str
    skip_to: str = ""


class DiffCommandBuilder:
    """Builds diff commands for one repository and backend."""

    def __init__(self, repo: GitRepository, backend: DiffBackend = DiffBackend.DIFFT):
        """Initialize with repository and backend."""
        self.repo = repo
        self.backend = backend

    def build(self, options: DiffOptions, files: Optional[Sequence[str]] = None) -> DiffCommand:
        """Build the command for ``options``.

        Writes the resolved parent commit back to ``options.before_commit_id``
        when no before commit was supplied and the after commit has a parent.
        """
        files = list(files or [])
        args = self.repo.base_command + self._subcommand()
        args.extend(options.whitespace_behavior)
        args.extend(self._revisions(options))

        skip_to = options.skip_to
        if options.skip_to and self.repo.supports_skip_to():
            args.append(f"--skip-to={options.skip_to}")
            skip_to = ""
            logger.debug("Using native --skip-to", extra={"skip_to": options.skip_to})

        args.append("--")
        args.extend(files)

        command = DiffCommand(
            args=args,
            env=self._environment(),
            cwd=self.repo.repo_path,
            backend=self.backend,
            description=f"GetDiffRange [repo_path: {self.repo.repo_path}]",
            skip_to=skip_to,
        )
        logger.info(
            "Built diff command",
            extra={
                "backend": self.backend.value,
                "before": options.before_commit_id or EMPTY_TREE_SHA,
                "after": options.after_commit_id,
                "software_skip": bool(skip_to),
                "files": len(files),
            },
        )
        return command

    def _subcommand(self) -> List[str]:
        if self.backend is DiffBackend.DIFFT:
            return ["diff", "--src-prefix=\\a/", "--dst-prefix=\\b/", "-M"]
        return [self.repo.settings.special_subcommand]

    def _revisions(self, options: DiffOptions) -> List[str]:
        after_id, parents = self.repo.get_commit_parents(options.after_commit_id)
        no_before = not options.before_commit_id or options.before_commit_id == EMPTY_SHA

        if no_before and not parents:
            # Root commit: diff against the empty tree so every file shows as added
            logger.debug("Diffing root commit against empty tree", extra={"after": after_id})
            return [EMPTY_TREE_SHA, options.after_commit_id]

        if no_before:
            options.before_commit_id = parents[0]
        return [options.before_commit_id, options.after_commit_id]

    def _environment(self) -> Dict[str, str]:
        env = self.repo.settings.git_env
        if self.backend is DiffBackend.DIFFT:
            env.update(
                {
                    "DFT_UNSTABLE": "yes",
                    "DFT_DISPLAY": "json",
                    "GIT_EXTERNAL_DIFF": self.repo.settings.difft_binary,
                }
            )
        else:
            env.update(
                {
                    "PATH": os.environ.get("PATH", ""),
                    "MYDT_FORMAT": "json",
                }
            )
        return env
