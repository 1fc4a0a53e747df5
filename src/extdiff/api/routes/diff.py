"""Diff routes for the extdiff API."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..models import DiffRequest
from ..service import DiffApiService

router = APIRouter(tags=["diff"])

logger = logging.getLogger(__name__)


def get_diff_api_service() -> DiffApiService:
    """Build the request handler; overridden in tests."""
    return DiffApiService()


@router.post("/diff")
def create_diff(
    request: DiffRequest,
    service: DiffApiService = Depends(get_diff_api_service),
) -> Dict[str, Any]:
    """Parse the diff between two commits."""
    logger.info(
        "Received diff request",
        extra={
            "repo": request.repo_path,
            "before": request.before_commit_id,
            "after": request.after_commit_id,
        },
    )

    try:
        result = service.process_diff_request(request)
        logger.info(
            "Diff request completed",
            extra={
                "repo": request.repo_path,
                "ok": result.get("ok"),
                "files": len(result.get("data", {}).get("files", [])),
            },
        )
        return result

    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Diff request failed", extra={"repo": request.repo_path})
        raise HTTPException(
            status_code=500,
            detail={
                "ok": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": f"Failed to process diff: {str(exc)}",
                    "details": {"exception_type": type(exc).__name__},
                },
            },
        ) from exc
