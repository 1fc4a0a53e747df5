"""Diff ingestion service wiring command, runner, parser and normalizer."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from .adapters import get_adapter
from .builder import parse_patch
from .command import DiffCommandBuilder
from .config import DiffBackend, DiffOptions
from .encoding import EncodingNormalizer
from .errors import DiffDecodeError, DiffToolFailedError
from .models import Diff
from .runner import ProcessRunner
from .settings import Settings
from .vcs import GitRepository

logger = logging.getLogger(__name__)


class DiffService:
    """Produces Diff models by running an external diff tool through git."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize with explicit settings."""
        self.settings = settings or Settings()
        self.runner = ProcessRunner(self.settings.git_timeout)
        self.normalizer = EncodingNormalizer(self.settings.fallback_encoding)

    def get_diff(
        self,
        repo_path: Union[str, Path],
        options: DiffOptions,
        files: Optional[Sequence[str]] = None,
        backend: Optional[DiffBackend] = None,
    ) -> Diff:
        """Diff ``options.before_commit_id`` against ``options.after_commit_id``.

        ``options.before_commit_id`` is updated with the parent commit when it
        was resolved implicitly. Raises DiffDecodeError on malformed tool
        output and, when ``options.raise_on_tool_error`` is set,
        DiffToolFailedError when the tool did not exit cleanly. Both carry
        the partial diff.
        """
        backend = DiffBackend(backend or self.settings.backend)
        repo = GitRepository(repo_path, self.settings)
        repo.validate_git_version()

        command = DiffCommandBuilder(repo, backend).build(options, files)
        adapter = get_adapter(backend)

        logger.info(
            "Running diff",
            extra={
                "repo_path": str(repo.repo_path),
                "backend": backend.value,
                "before": options.before_commit_id,
                "after": options.after_commit_id,
            },
        )

        with self.runner.start(command, options.limits.reader_buffer_size) as stream:
            try:
                diff = parse_patch(
                    stream.reader,
                    adapter,
                    options.limits,
                    command.skip_to,
                    self.normalizer,
                )
            except DiffDecodeError:
                logger.exception("Unable to parse diff output", extra={"backend": backend.value})
                raise
            failure = stream.wait()

        if failure is not None:
            diff.is_incomplete = True
            diff.tool_error = failure.reason
            if options.raise_on_tool_error:
                raise DiffToolFailedError(
                    diff,
                    command.description,
                    failure.reason,
                    returncode=failure.returncode,
                    stderr=failure.stderr,
                )
        return diff
