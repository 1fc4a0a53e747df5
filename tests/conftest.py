"""Pytest configuration and fixtures for extdiff tests."""

import io
import json
import os
import shutil
import stat
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp(prefix="extdiff_test_"))
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            shutil.rmtree(temp_path, ignore_errors=True)


class GitRepoHelper:
    """Helper class for git repository operations in tests."""

    def __init__(self, repo_path: Path):
        self.repo_path = repo_path
        self.env = os.environ.copy()
        self.env.update({
            "GIT_AUTHOR_NAME": "Test User",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test User",
            "GIT_COMMITTER_EMAIL": "test@example.com",
        })

    def run_git(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run git command in the repository."""
        return subprocess.run(
            ["git"] + args,
            cwd=self.repo_path,
            env=self.env,
            check=True,
            capture_output=True,
            text=True,
        )

    def create_file(self, path: str, content: str) -> None:
        """Create a file with content."""
        file_path = self.repo_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    def add_and_commit(self, message: str) -> str:
        """Add all files and create a commit, return commit SHA."""
        self.run_git(["add", "-A"])
        self.run_git(["commit", "-m", message])
        return self.get_current_sha()

    def get_current_sha(self) -> str:
        """Get current commit SHA."""
        result = self.run_git(["rev-parse", "HEAD"])
        return result.stdout.strip()


@pytest.fixture
def git_repo(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository with one root commit."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    helper = GitRepoHelper(repo_path)
    helper.run_git(["init"])
    helper.run_git(["config", "user.name", "Test User"])
    helper.run_git(["config", "user.email", "test@example.com"])

    (repo_path / "README.md").write_text("# Test Repository\n")
    helper.add_and_commit("Initial commit")

    yield repo_path


@pytest.fixture
def git_helper(git_repo: Path) -> GitRepoHelper:
    """Create a git repository helper."""
    return GitRepoHelper(git_repo)


def write_script(path: Path, body: str) -> Path:
    """Write an executable shell script."""
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_special_tool(temp_dir: Path, monkeypatch) -> Path:
    """Install a ``git mydt`` subcommand that prints a canned JSON stream.

    Write the stream to the returned directory's ``output.jsonl``; the
    arguments git passed are recorded in ``args.txt``.
    """
    tool_dir = temp_dir / "bin"
    tool_dir.mkdir()
    (tool_dir / "output.jsonl").write_text("")
    write_script(
        tool_dir / "git-mydt",
        '[ "$MYDT_FORMAT" = json ] || exit 3\n'
        f'printf "%s\\n" "$@" > "{tool_dir}/args.txt"\n'
        f'cat "{tool_dir}/output.jsonl"\n',
    )
    monkeypatch.setenv("PATH", f"{tool_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return tool_dir


@pytest.fixture
def fake_difft(temp_dir: Path) -> Path:
    """A GIT_EXTERNAL_DIFF program emitting one difftastic JSON record per file."""
    record = {
        "path": "__PATH__",
        "language": "Text",
        "status": "changed",
        "chunks": [[{
            "lhs": {"line_number": 0, "changes": [{"start": 0, "end": 3, "content": "old"}]},
            "rhs": {"line_number": 0, "changes": [{"start": 0, "end": 3, "content": "new"}]},
        }]],
    }
    template = json.dumps(record).replace("__PATH__", "%s")
    return write_script(
        temp_dir / "fake-difft",
        '[ "$DFT_DISPLAY" = json ] || exit 3\n'
        f"printf '{template}\\n' \"$1\"\n",
    )


def jsonl(*records) -> bytes:
    """Encode records as newline-delimited JSON."""
    return b"".join(json.dumps(record).encode("utf-8") + b"\n" for record in records)


@pytest.fixture
def make_stream() -> Callable[..., io.BytesIO]:
    """Return a factory building a byte stream of JSON-lines records."""

    def _make(*records) -> io.BytesIO:
        return io.BytesIO(jsonl(*records))

    return _make
