"""Concurrent execution of the diff command.

The external tool writes into one end of an OS pipe from a worker thread
while the caller reads the other end. The pipe buffer is the only buffer
between them, so a slow reader stalls the tool and vice versa.
"""

import io
import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .command import DiffCommand

logger = logging.getLogger(__name__)

# Seconds close() waits for the worker after the pipe is gone
CLOSE_JOIN_TIMEOUT = 5.0


@dataclass
class ToolFailure:
    """Why the external diff process did not finish cleanly."""

    reason: str
    returncode: Optional[int] = None
    stderr: str = ""


class DiffStream:
    """Read side of a running diff command.

    Both pipe ends are closed by ``close()``; closing is idempotent so the
    worker and the caller may both do it.
    """

    def __init__(self, command: DiffCommand, timeout: int, buffer_size: int = 4096):
        read_fd, write_fd = os.pipe()
        self.command = command
        self.timeout = timeout
        self.reader: BinaryIO = io.open(read_fd, "rb", buffering=buffer_size)
        self._writer: BinaryIO = io.open(write_fd, "wb", buffering=0)
        self._lock = threading.Lock()
        self._failure: Optional[ToolFailure] = None
        self._thread = threading.Thread(
            target=self._run, name="extdiff-runner", daemon=True
        )

    def __enter__(self) -> "DiffStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def start(self) -> "DiffStream":
        self._thread.start()
        return self

    def _run(self) -> None:
        stderr = ""
        try:
            result = subprocess.run(
                self.command.args,
                cwd=self.command.cwd,
                env=self.command.env,
                stdin=subprocess.DEVNULL,
                stdout=self._writer,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
            stderr = _decode_stderr(result.stderr)
            if result.returncode != 0:
                self._record_failure(
                    ToolFailure(
                        reason=f"exit status {result.returncode}",
                        returncode=result.returncode,
                        stderr=stderr,
                    )
                )
        except subprocess.TimeoutExpired as e:
            self._record_failure(
                ToolFailure(
                    reason=f"timed out after {self.timeout}s",
                    stderr=_decode_stderr(e.stderr),
                )
            )
        except (OSError, ValueError) as e:
            self._record_failure(ToolFailure(reason=str(e)))
        finally:
            self._close_writer()

    def _record_failure(self, failure: ToolFailure) -> None:
        logger.error(
            "error during %s: %s, stderr: %s",
            self.command.description,
            failure.reason,
            failure.stderr,
            extra={"repo_path": str(self.command.cwd), "returncode": failure.returncode},
        )
        with self._lock:
            self._failure = failure

    @property
    def failure(self) -> Optional[ToolFailure]:
        with self._lock:
            return self._failure

    def wait(self, timeout: Optional[float] = None) -> Optional[ToolFailure]:
        """Wait for the worker to finish and return the failure, if any."""
        self._thread.join(timeout)
        return self.failure

    def _close_writer(self) -> None:
        with self._lock:
            self._writer.close()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def close(self) -> None:
        """Close both pipe ends so a still-running tool fails its next write.

        Then waits up to ``CLOSE_JOIN_TIMEOUT`` for the worker to exit.
        """
        with self._lock:
            self.reader.close()
            self._writer.close()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(CLOSE_JOIN_TIMEOUT)
            if self._thread.is_alive():
                logger.warning(
                    "Diff worker still running after close",
                    extra={"repo_path": str(self.command.cwd)},
                )


class ProcessRunner:
    """Starts diff commands with a bounded timeout."""

    def __init__(self, timeout: int):
        """Initialize with the subprocess timeout in seconds."""
        self.timeout = timeout

    def start(self, command: DiffCommand, buffer_size: int = 4096) -> DiffStream:
        """Launch ``command`` in a worker thread and return the read side."""
        logger.debug(
            "Starting diff process",
            extra={"backend": command.backend.value, "timeout": self.timeout},
        )
        return DiffStream(command, self.timeout, buffer_size).start()


def _decode_stderr(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace").strip()
