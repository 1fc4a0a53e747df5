"""Application-wide settings and environment loading."""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .config import DiffBackend
from .errors import ConfigInvalidError

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 360


@dataclass(frozen=True)
class Settings:
    """Process settings, built explicitly and passed to the service."""

    git_binary: str = "git"
    git_timeout: int = DEFAULT_GIT_TIMEOUT
    difft_binary: str = "difft"
    special_subcommand: str = "mydt"
    fallback_encoding: Optional[str] = None
    backend: DiffBackend = DiffBackend.DIFFT

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.git_timeout <= 0:
            raise ConfigInvalidError("git_timeout must be positive")
        if not self.git_binary:
            raise ConfigInvalidError("git_binary cannot be empty")
        if not self.special_subcommand or self.special_subcommand.startswith("-"):
            raise ConfigInvalidError("special_subcommand must name a git subcommand")

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True
    ) -> "Settings":
        """Build settings from environment variables (and ``.env`` if present)."""
        if environ is None:
            if dotenv:
                load_dotenv()
                logger.debug("Environment variables loaded from .env if present")
            environ = os.environ

        raw_timeout = environ.get("EXTDIFF_GIT_TIMEOUT", str(DEFAULT_GIT_TIMEOUT))
        try:
            git_timeout = int(raw_timeout)
        except ValueError:
            raise ConfigInvalidError(
                f"EXTDIFF_GIT_TIMEOUT must be an integer, got {raw_timeout!r}"
            ) from None

        raw_backend = environ.get("EXTDIFF_BACKEND", DiffBackend.DIFFT.value)
        try:
            backend = DiffBackend(raw_backend)
        except ValueError:
            raise ConfigInvalidError(f"unknown EXTDIFF_BACKEND {raw_backend!r}") from None

        settings = cls(
            git_binary=environ.get("EXTDIFF_GIT_BINARY", "git"),
            git_timeout=git_timeout,
            difft_binary=environ.get("EXTDIFF_DIFFT_BINARY", "difft"),
            special_subcommand=environ.get("EXTDIFF_SPECIAL_SUBCOMMAND", "mydt"),
            fallback_encoding=environ.get("EXTDIFF_FALLBACK_ENCODING") or None,
            backend=backend,
        )
        logger.debug(
            "Settings resolved",
            extra={"backend": settings.backend.value, "git_timeout": settings.git_timeout},
        )
        return settings

    @property
    def git_env(self) -> Dict[str, str]:
        """Get Git environment variables for deterministic output."""
        env = os.environ.copy()

        # Use platform-appropriate null device
        null_device = "NUL" if os.name == "nt" else "/dev/null"

        env.update(
            {
                "LC_ALL": "C",
                "GIT_CONFIG_GLOBAL": null_device,
                "GIT_CONFIG_SYSTEM": null_device,
                "GIT_TERMINAL_PROMPT": "0",
                "GIT_ASKPASS": "echo",
                "SSH_ASKPASS": "echo",
                "GCM_INTERACTIVE": "never",
            }
        )
        return env
