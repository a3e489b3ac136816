"""Async HTTP client for the HeyGen video agent API.

Holds the upstream API key for the lifetime of the client; nothing else in
the application sees it.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from promptreel.services.errors import NetworkError, UpstreamError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_GENERATE_PATH = "/v1/video_agent/generate"
_STATUS_PATH = "/v1/video_status.get"


class HeyGenClient:
    """Async client for the HeyGen API.

    Usage::

        async with HeyGenClient(api_key="...") as client:
            created = await client.create_video("A calm lake at sunrise", 30, "landscape")
            status = await client.get_video_status(created["data"]["video_id"])
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.heygen.com",
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "accept": "application/json",
                "x-api-key": api_key,
            },
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> HeyGenClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("HeyGen %s %s failed: %s", method, url, exc)
            raise NetworkError(f"Request to HeyGen failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            if response.is_success:
                raise NetworkError("HeyGen returned a response that is not JSON") from exc
            body = response.text

        if not response.is_success:
            logger.warning("HeyGen %s %s returned HTTP %s", method, url, response.status_code)
            raise UpstreamError.from_response(
                response.status_code, body, f"HeyGen returned HTTP {response.status_code}"
            )
        return body

    async def create_video(self, prompt: str, duration_sec: int, orientation: str) -> dict:
        """Start a video agent job and return the raw upstream response."""
        body = {
            "prompt": prompt,
            "config": {
                "duration_sec": duration_sec,
                "orientation": orientation,
            },
        }
        logger.info("Creating HeyGen video: prompt=%r, duration=%ss, orientation=%s", prompt[:80], duration_sec, orientation)
        data = await self._request("POST", _GENERATE_PATH, json=body)
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected response from HeyGen", status_code=200, body=data)
        return data

    async def get_video_status(self, video_id: str) -> dict:
        """Return the ``data`` object of the upstream status response."""
        payload = await self._request("GET", _STATUS_PATH, params={"video_id": video_id})
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise UpstreamError("HeyGen status response has no data", status_code=200, body=payload)
        return data
