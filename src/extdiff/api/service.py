"""Service layer for the extdiff API."""

import logging
from typing import Any, Dict, Optional

from ..config import DiffLimits, DiffOptions
from ..errors import DiffDecodeError, DiffToolFailedError, ExtDiffError
from ..serialize import DiffSerializer
from ..service import DiffService
from ..settings import Settings
from .models import DiffRequest

logger = logging.getLogger(__name__)


class DiffApiService:
    """Turns API requests into diff envelopes."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.diff_service = DiffService(self.settings)
        self.serializer = DiffSerializer()

    def process_diff_request(self, request: DiffRequest) -> Dict[str, Any]:
        """Run a diff request and return a success or error envelope."""
        try:
            options = DiffOptions(
                after_commit_id=request.after_commit_id,
                before_commit_id=request.before_commit_id,
                skip_to=request.skip_to,
                whitespace_behavior=request.whitespace,
                limits=DiffLimits(
                    max_lines=request.max_lines,
                    max_line_characters=request.max_line_characters,
                    max_files=request.max_files,
                ),
                raise_on_tool_error=request.strict,
            )
            diff = self.diff_service.get_diff(
                request.repo_path, options, request.files, request.backend
            )
            payload = self.serializer.serialize_diff(diff, options.to_provenance_dict())
            return self.serializer.create_success_envelope(payload)

        except (DiffDecodeError, DiffToolFailedError) as e:
            details = dict(e.details)
            details["partial"] = self.serializer.serialize_diff(e.diff)
            return self.serializer.create_error_envelope(e.code, e.message, details)

        except ExtDiffError as e:
            return self.serializer.create_error_envelope(e.code, e.message, e.details)
