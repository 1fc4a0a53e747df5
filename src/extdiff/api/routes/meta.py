"""Meta endpoints for the extdiff API."""

import logging
import shutil
from typing import Dict, Optional

from fastapi import APIRouter

from .. import __version__
from ...errors import GitVersionUnsupportedError
from ...settings import Settings
from ...vcs import MINIMUM_GIT_VERSION, GitRepository
from ..models import HealthResponse, VersionResponse

router = APIRouter(tags=["meta"])

logger = logging.getLogger(__name__)


def _probe_git(settings: Settings) -> Optional[str]:
    """Return the installed git version when it is usable."""
    try:
        return GitRepository(".", settings).validate_git_version()
    except GitVersionUnsupportedError as exc:
        logger.warning("git is not usable", extra={"detected": exc.details["detected_version"]})
        return None


def _tool_availability(settings: Settings) -> Dict[str, bool]:
    """Whether each backend's external program can be found."""
    return {
        "difft": shutil.which(settings.difft_binary) is not None,
        "special": shutil.which(f"git-{settings.special_subcommand}") is not None,
    }


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report whether git and the diff tools are usable."""
    settings = Settings.from_env()
    git_version = _probe_git(settings)
    tools = _tool_availability(settings)
    logger.info(
        "Health check invoked",
        extra={"git_version": git_version, "tools": tools},
    )
    return HealthResponse(
        status="healthy" if git_version else "degraded",
        version=__version__,
        git_available=git_version is not None,
        git_version=git_version,
        tools=tools,
    )


@router.get("/version", response_model=VersionResponse)
def version_info() -> VersionResponse:
    """Version information endpoint."""
    git_version = _probe_git(Settings.from_env())
    return VersionResponse(
        version=__version__,
        api_version="v1",
        git_version=git_version,
        minimum_git_version=MINIMUM_GIT_VERSION,
    )


@router.get("/", include_in_schema=False)
def root() -> dict:
    """Root endpoint providing basic API metadata."""
    return {
        "name": "extdiff API",
        "version": __version__,
        "description": "External diff tool ingestion API",
        "endpoints": {
            "diff": "POST /diff - Parse the diff between two commits",
            "health": "GET /health - Git and diff tool availability",
            "version": "GET /version - Version information",
            "docs": "GET /docs - API documentation",
        },
    }
