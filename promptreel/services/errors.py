from typing import Any, Dict, Optional


class PromptreelError(RuntimeError):
    """Base class for errors raised while generating or tracking a video."""


class ValidationError(PromptreelError):
    """Raised when input is rejected before any network call is made."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        self.field_errors = field_errors or {}
        super().__init__(message)


class UpstreamError(PromptreelError):
    """Raised when an API answers with a non-success status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        self.message = message
        super().__init__(message)

    @classmethod
    def from_response(cls, status_code: int, body: Any, fallback: str) -> "UpstreamError":
        return cls(extract_error_message(body, fallback), status_code=status_code, body=body)


class NetworkError(PromptreelError):
    """Raised when a request cannot be sent or its response cannot be parsed."""


def extract_error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if isinstance(error, str) and error:
            return error
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return fallback
