import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from promptreel.models.schemas import StatusEvent, VideoGenerationPayload
from promptreel.services.errors import NetworkError, UpstreamError
from promptreel.services.heygen_client import HeyGenClient
from promptreel.services.poller import PollEvent, watch
from promptreel.services.status_checker import StatusChecker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

MISSING_FIELDS_ERROR = "all fields are required - {prompt, duration_sec, orientation}"


def get_heygen_client(request: Request) -> HeyGenClient:
    return request.app.state.heygen_client


def get_poll_interval(request: Request) -> float:
    return request.app.state.settings.poll_interval_sec


def _upstream_response(exc: UpstreamError, error: str) -> JSONResponse:
    status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 502
    return JSONResponse(status_code=status_code, content={"error": error, "details": exc.body})


def _network_response(exc: NetworkError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Something went wrong", "details": str(exc)})


@router.post("/video-api")
async def generate_video(payload: VideoGenerationPayload, client: HeyGenClient = Depends(get_heygen_client)):
    if not payload.is_complete():
        return JSONResponse(status_code=400, content={"error": MISSING_FIELDS_ERROR})

    try:
        data = await client.create_video(payload.prompt, payload.duration_sec, payload.orientation.value)
    except UpstreamError as exc:
        logger.error("HeyGen rejected generation request: %s", exc)
        return _upstream_response(exc, exc.message)
    except NetworkError as exc:
        return _network_response(exc)

    inner = data.get("data")
    video_id = inner.get("video_id") if isinstance(inner, dict) else None
    if not video_id:
        logger.error("HeyGen accepted generation request without returning a video_id")
        return JSONResponse(
            status_code=502,
            content={"error": "Video generation did not return a video id", "details": data},
        )

    logger.info("Started HeyGen video %s", video_id)
    return data


@router.get("/video-status")
async def get_video_status(
    video_id: Optional[str] = None,
    client: HeyGenClient = Depends(get_heygen_client),
):
    if not video_id:
        return JSONResponse(status_code=400, content={"error": "video_id is required"})

    try:
        return await client.get_video_status(video_id)
    except UpstreamError as exc:
        return _upstream_response(exc, "Failed to fetch video status")
    except NetworkError as exc:
        return _network_response(exc)


def _event_line(event: PollEvent) -> str:
    if event.error is not None:
        details = event.error.body if isinstance(event.error, UpstreamError) else str(event.error)
        line = StatusEvent(status=event.status.value, error=str(event.error), details=details)
    else:
        line = StatusEvent(
            status=event.result.status.value,
            video_url=event.result.video_url,
            error=event.result.error_detail,
        )
    return line.model_dump_json(exclude_none=True) + "\n"


@router.get("/video-status/stream")
async def stream_video_status(
    video_id: Optional[str] = None,
    client: HeyGenClient = Depends(get_heygen_client),
    interval: float = Depends(get_poll_interval),
):
    if not video_id:
        return JSONResponse(status_code=400, content={"error": "video_id is required"})

    checker = StatusChecker(client)

    async def events():
        # Starlette cancels this generator when the client disconnects.
        async for event in watch(checker.check_status, video_id, interval):
            yield _event_line(event)

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.get("/health")
def health_check():
    return {"status": "ok"}
