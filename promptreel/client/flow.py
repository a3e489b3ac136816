"""Submission flow: validate, submit, then poll until the video is ready.

The flow owns the only piece of state the client keeps, a ``PollState``.
It moves ``idle -> generating -> polling -> completed | failed | error`` and
goes back to ``generating`` whenever a new valid request is submitted.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import pydantic

from promptreel.client.api import VideoApiClient
from promptreel.models.schemas import GenerationRequest, Job, PollState, PollStatus
from promptreel.services.errors import NetworkError, UpstreamError, ValidationError
from promptreel.services.poller import DEFAULT_POLL_INTERVAL_SEC, PollEvent, Poller

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Video generation failed. Please try again."
SUBMIT_NETWORK_MESSAGE = "Network error. Please try again."
STATUS_NETWORK_MESSAGE = "Network error while checking status. Please try again."

STATUS_MESSAGES: Dict[PollStatus, str] = {
    PollStatus.GENERATING: "Sending your request to HeyGen...",
    PollStatus.POLLING: "Generating your video, this may take a few minutes...",
}


def validate_request(values: Union[GenerationRequest, Mapping[str, Any]]) -> GenerationRequest:
    if isinstance(values, GenerationRequest):
        return values
    try:
        return GenerationRequest.model_validate(dict(values))
    except pydantic.ValidationError as exc:
        field_errors: Dict[str, str] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error.get("loc") else "__root__"
            message = error.get("msg", "Invalid value")
            field_errors.setdefault(field, message.removeprefix("Value error, "))
        raise ValidationError("Invalid video request", field_errors) from exc


class SubmissionFlow:
    def __init__(
        self,
        api: VideoApiClient,
        interval: float = DEFAULT_POLL_INTERVAL_SEC,
        on_change: Optional[Callable[[PollState], None]] = None,
    ):
        self._api = api
        self._poller = Poller(api.check_status, interval)
        self._on_change = on_change
        self._submission = 0
        self.state = PollState()
        self.job: Optional[Job] = None

    def _publish(self, state: PollState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(state)

    def _set_state(self, **changes: Any) -> None:
        self._publish(self.state.model_copy(update=changes))

    async def submit(self, values: Union[GenerationRequest, Mapping[str, Any]]) -> PollState:
        # Raises ValidationError before touching state or the network.
        request = validate_request(values)

        self._submission += 1
        submission = self._submission
        self._poller.stop()
        self.job = None
        self._publish(PollState(status=PollStatus.GENERATING))

        try:
            job_id = await self._api.generate(request)
        except UpstreamError as exc:
            if submission == self._submission:
                logger.error("Video generation request rejected: %s", exc.message)
                self._set_state(status=PollStatus.ERROR, error_message=exc.message)
            return self.state
        except NetworkError as exc:
            if submission == self._submission:
                logger.error("Video generation request failed: %s", exc)
                self._set_state(status=PollStatus.ERROR, error_message=SUBMIT_NETWORK_MESSAGE)
            return self.state

        if submission != self._submission:
            logger.info("Discarding job %s from a superseded submission", job_id)
            return self.state

        self.job = Job(id=job_id)
        self._set_state(status=PollStatus.POLLING, job_id=job_id)
        self._poller.start(job_id, self._on_progress, self._on_terminal)
        return self.state

    def _on_progress(self, event: PollEvent) -> None:
        if self.job is not None and event.result is not None:
            self.job.apply(event.result)
        self._set_state(status=PollStatus.POLLING)

    def _on_terminal(self, event: PollEvent) -> None:
        if self.job is not None and event.result is not None:
            self.job.apply(event.result)

        if event.status is PollStatus.COMPLETED:
            self._set_state(status=PollStatus.COMPLETED, video_url=event.result.video_url)
        elif event.status is PollStatus.FAILED:
            self._set_state(status=PollStatus.FAILED, error_message=FAILED_MESSAGE)
        elif isinstance(event.error, UpstreamError):
            self._set_state(status=PollStatus.ERROR, error_message=event.error.message)
        else:
            self._set_state(status=PollStatus.ERROR, error_message=STATUS_NETWORK_MESSAGE)

    async def wait(self) -> PollState:
        await self._poller.wait()
        return self.state

    def stop(self) -> None:
        self._poller.stop()

    def close(self) -> None:
        self.stop()
        self.job = None
