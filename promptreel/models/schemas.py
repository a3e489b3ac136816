from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROMPT_MIN_CHARS = 10
PROMPT_MAX_CHARS = 500


class Duration(str, Enum):
    THIRTY_SECONDS = "30 sec"
    ONE_MINUTE = "1 min"

    @property
    def seconds(self) -> int:
        return 60 if self is Duration.ONE_MINUTE else 30


class Orientation(str, Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class PollStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"

    @property
    def is_loading(self) -> bool:
        return self in (PollStatus.GENERATING, PollStatus.POLLING)


DEFAULT_FORM_VALUES: Dict[str, str] = {
    "prompt": "",
    "duration": Duration.THIRTY_SECONDS.value,
    "orientation": Orientation.LANDSCAPE.value,
}


class GenerationRequest(BaseModel):
    """What the user fills in before a video is generated."""

    prompt: str = Field(None, validate_default=True)
    duration: Duration = Field(None, validate_default=True)
    orientation: Orientation = Field(None, validate_default=True)

    @field_validator("prompt", mode="before")
    @classmethod
    def prompt_length(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Prompt is required")
        if len(value) < PROMPT_MIN_CHARS:
            raise ValueError(f"Prompt must be at least {PROMPT_MIN_CHARS} characters")
        if len(value) > PROMPT_MAX_CHARS:
            raise ValueError(f"Prompt must be under {PROMPT_MAX_CHARS} characters")
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def known_duration(cls, value: Any) -> Any:
        if not isinstance(value, Duration) and value not in [d.value for d in Duration]:
            raise ValueError("Please select a duration")
        return value

    @field_validator("orientation", mode="before")
    @classmethod
    def known_orientation(cls, value: Any) -> Any:
        if not isinstance(value, Orientation) and value not in [o.value for o in Orientation]:
            raise ValueError("Please select an orientation")
        return value

    def to_payload(self) -> Dict[str, Any]:
        return {
            "duration_sec": self.duration.seconds,
            "prompt": self.prompt,
            "orientation": self.orientation.value,
        }


class VideoGenerationPayload(BaseModel):
    """Body accepted by the server's generation endpoint."""

    prompt: Optional[str] = None
    duration_sec: Optional[Literal[30, 60]] = None
    orientation: Optional[Orientation] = None

    def is_complete(self) -> bool:
        return bool(self.prompt) and self.duration_sec is not None and self.orientation is not None


class StatusResult(BaseModel):
    status: JobStatus
    video_url: Optional[str] = None
    error_detail: Optional[str] = None


class Job(BaseModel):
    id: str
    status: JobStatus = JobStatus.PENDING
    video_url: Optional[str] = None

    def apply(self, result: StatusResult) -> None:
        self.status = result.status
        self.video_url = result.video_url if result.status is JobStatus.COMPLETED else None


class PollState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PollStatus = PollStatus.IDLE
    error_message: Optional[str] = None
    video_url: Optional[str] = None
    job_id: Optional[str] = None


class StatusEvent(BaseModel):
    """One line of the streamed status response."""

    status: str
    video_url: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = Field(default=None)
