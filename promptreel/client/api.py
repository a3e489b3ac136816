"""Async client for the promptreel server's own endpoints."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from promptreel.models.schemas import GenerationRequest, StatusEvent, StatusResult
from promptreel.services.errors import NetworkError, UpstreamError
from promptreel.services.status_checker import classify_status, require_job_id

logger = logging.getLogger(__name__)

GENERATE_FAILED_MESSAGE = "Failed to start video generation."
STATUS_FAILED_MESSAGE = "Failed to check video status"


class VideoApiClient:
    """Talks to ``/api/video-api`` and ``/api/video-status`` on a running server."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> VideoApiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, fallback: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkError(str(exc)) from exc

        if not response.is_success:
            raise UpstreamError.from_response(response.status_code, body, fallback)
        return body

    async def generate(self, request: GenerationRequest) -> str:
        """Submit a generation request and return the new job id."""
        body = await self._request("POST", "/api/video-api", GENERATE_FAILED_MESSAGE, json=request.to_payload())
        data = body.get("data") if isinstance(body, dict) else None
        video_id = data.get("video_id") if isinstance(data, dict) else None
        if not video_id:
            raise UpstreamError(GENERATE_FAILED_MESSAGE, status_code=200, body=body)
        logger.info("Submitted video job %s", video_id)
        return video_id

    async def check_status(self, job_id: str) -> StatusResult:
        job_id = require_job_id(job_id)
        body = await self._request("GET", "/api/video-status", STATUS_FAILED_MESSAGE, params={"video_id": job_id})
        if not isinstance(body, dict):
            raise UpstreamError(STATUS_FAILED_MESSAGE, status_code=200, body=body)
        return classify_status(body)

    async def stream_status(self, job_id: str) -> AsyncIterator[StatusEvent]:
        """Follow the server-side poll over one long-lived response."""
        job_id = require_job_id(job_id)
        try:
            async with self._client.stream(
                "GET", "/api/video-status/stream", params={"video_id": job_id}, timeout=None
            ) as response:
                if not response.is_success:
                    await response.aread()
                    try:
                        body = response.json()
                    except ValueError:
                        body = response.text
                    raise UpstreamError.from_response(response.status_code, body, STATUS_FAILED_MESSAGE)
                async for line in response.aiter_lines():
                    if line.strip():
                        yield StatusEvent.model_validate_json(line)
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc)) from exc
        except ValueError as exc:
            raise NetworkError(f"Malformed status event: {exc}") from exc
