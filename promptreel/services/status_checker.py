import logging
from typing import Any, Dict

import pydantic

from promptreel.models.schemas import JobStatus, StatusResult
from promptreel.services.errors import NetworkError, UpstreamError, ValidationError
from promptreel.services.heygen_client import HeyGenClient

logger = logging.getLogger(__name__)


def classify_status(data: Dict[str, Any]) -> StatusResult:
    """Map an upstream status snapshot onto completed, failed or processing."""
    raw_status = str(data.get("status") or "").lower()

    try:
        if raw_status == JobStatus.COMPLETED.value:
            video_url = data.get("video_url")
            if not video_url:
                raise UpstreamError("Video completed without a video_url", status_code=200, body=data)
            return StatusResult(status=JobStatus.COMPLETED, video_url=video_url)

        if raw_status == JobStatus.FAILED.value:
            detail = data.get("error")
            if isinstance(detail, dict):
                detail = detail.get("message") or detail.get("detail")
            return StatusResult(status=JobStatus.FAILED, error_detail=detail if isinstance(detail, str) else None)
    except pydantic.ValidationError as exc:
        raise NetworkError(f"Malformed status payload: {exc.error_count()} invalid field(s)") from exc

    return StatusResult(status=JobStatus.PROCESSING)


def require_job_id(job_id: str) -> str:
    job_id = (job_id or "").strip()
    if not job_id:
        raise ValidationError("video_id is required", {"video_id": "video_id is required"})
    return job_id


class StatusChecker:
    """Performs one upstream status lookup per call; holds no job state."""

    def __init__(self, client: HeyGenClient):
        self._client = client

    async def check_status(self, job_id: str) -> StatusResult:
        job_id = require_job_id(job_id)
        data = await self._client.get_video_status(job_id)
        result = classify_status(data)
        logger.debug("Job %s upstream status=%r -> %s", job_id, data.get("status"), result.status.value)
        return result
