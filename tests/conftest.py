import json
from typing import Callable, List

import httpx
import pytest

from promptreel.config import Settings
from promptreel.services.heygen_client import HeyGenClient

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler):
        self.requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def status_sequence(*payloads: dict) -> Callable[[], dict]:
    """Return the given payloads one after another, repeating the last one."""
    remaining = list(payloads)

    def next_payload() -> dict:
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return next_payload


@pytest.fixture
def settings() -> Settings:
    return Settings(heygen_api_key="test-key", heygen_base_url="https://heygen.test/", poll_interval_sec=0.01)


@pytest.fixture
def make_heygen_client(settings):
    def factory(handler: Handler) -> HeyGenClient:
        transport = RecordingTransport(handler)
        client = HeyGenClient(
            api_key=settings.heygen_api_key.get_secret_value(),
            base_url=settings.heygen_base_url,
            transport=transport,
        )
        client.transport = transport
        return client

    return factory
