import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import json_body, status_sequence
from promptreel.app import create_app

LAKE_BODY = {"duration_sec": 30, "prompt": "A calm lake at sunrise with birds flying", "orientation": "landscape"}
VIDEO_URL = "https://cdn.test/abc123.mp4"


@pytest.fixture
def make_api(settings, make_heygen_client):
    def factory(handler):
        heygen = make_heygen_client(handler)
        return TestClient(create_app(settings, heygen_client=heygen)), heygen.transport

    return factory


def test_generate_relays_upstream_response(make_api):
    upstream = {"error": None, "data": {"video_id": "abc123"}}
    api, transport = make_api(lambda request: httpx.Response(200, json=upstream))
    with api:
        response = api.post("/api/video-api", json=LAKE_BODY)

    assert response.status_code == 200
    assert response.json() == upstream
    assert json_body(transport.requests[0]) == {
        "prompt": LAKE_BODY["prompt"],
        "config": {"duration_sec": 30, "orientation": "landscape"},
    }


def test_generate_requires_every_field(make_api):
    api, transport = make_api(lambda request: httpx.Response(200, json={}))
    with api:
        response = api.post("/api/video-api", json={"prompt": LAKE_BODY["prompt"], "duration_sec": 30})

    assert response.status_code == 400
    assert response.json() == {"error": "all fields are required - {prompt, duration_sec, orientation}"}
    assert transport.requests == []


def test_generate_rejects_unknown_duration(make_api):
    api, transport = make_api(lambda request: httpx.Response(200, json={}))
    with api:
        response = api.post("/api/video-api", json={**LAKE_BODY, "duration_sec": 45})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert transport.requests == []


def test_generate_relays_upstream_error(make_api):
    api, _ = make_api(lambda request: httpx.Response(500, json={"error": "rate limited"}))
    with api:
        response = api.post("/api/video-api", json=LAKE_BODY)

    assert response.status_code == 500
    assert response.json()["error"] == "rate limited"


def test_generate_without_video_id_is_bad_gateway(make_api):
    api, _ = make_api(lambda request: httpx.Response(200, json={"data": None}))
    with api:
        response = api.post("/api/video-api", json=LAKE_BODY)

    assert response.status_code == 502


def test_status_requires_video_id(make_api):
    api, transport = make_api(lambda request: httpx.Response(200, json={}))
    with api:
        response = api.get("/api/video-status")

    assert response.status_code == 400
    assert response.json() == {"error": "video_id is required"}
    assert transport.requests == []


def test_status_returns_upstream_data(make_api):
    data = {"id": "abc123", "status": "completed", "video_url": VIDEO_URL}
    api, transport = make_api(lambda request: httpx.Response(200, json={"code": 100, "data": data}))
    with api:
        response = api.get("/api/video-status", params={"video_id": "abc123"})

    assert response.status_code == 200
    assert response.json() == data
    assert transport.requests[0].headers["x-api-key"] == "test-key"


def test_status_relays_upstream_failure(make_api):
    api, _ = make_api(lambda request: httpx.Response(404, json={"message": "not found"}))
    with api:
        response = api.get("/api/video-status", params={"video_id": "missing"})

    assert response.status_code == 404
    assert response.json() == {"error": "Failed to fetch video status", "details": {"message": "not found"}}


def test_status_transport_failure_is_500(make_api):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    api, _ = make_api(handler)
    with api:
        response = api.get("/api/video-status", params={"video_id": "abc123"})

    assert response.status_code == 500
    assert response.json()["error"] == "Something went wrong"


def test_stream_emits_one_line_per_check_until_terminal(make_api):
    next_payload = status_sequence(
        {"data": {"status": "pending"}},
        {"data": {"status": "processing"}},
        {"data": {"status": "completed", "video_url": VIDEO_URL}},
    )
    api, transport = make_api(lambda request: httpx.Response(200, json=next_payload()))
    with api:
        with api.stream("GET", "/api/video-status/stream", params={"video_id": "abc123"}) as response:
            assert response.status_code == 200
            lines = [json.loads(line) for line in response.iter_lines() if line]

    assert lines == [
        {"status": "processing"},
        {"status": "processing"},
        {"status": "completed", "video_url": VIDEO_URL},
    ]
    assert len(transport.requests) == 3


def test_stream_ends_with_error_line_on_upstream_failure(make_api):
    api, _ = make_api(lambda request: httpx.Response(500, json={"error": "upstream down"}))
    with api:
        with api.stream("GET", "/api/video-status/stream", params={"video_id": "abc123"}) as response:
            lines = [json.loads(line) for line in response.iter_lines() if line]

    assert len(lines) == 1
    assert lines[0]["status"] == "error"
    assert lines[0]["error"] == "upstream down"


def test_stream_requires_video_id(make_api):
    api, _ = make_api(lambda request: httpx.Response(200, json={}))
    with api:
        response = api.get("/api/video-status/stream")
    assert response.status_code == 400


def test_health(make_api):
    api, _ = make_api(lambda request: httpx.Response(200, json={}))
    with api:
        assert api.get("/api/health").json() == {"status": "ok"}


def test_stream_ends_with_error_line_on_malformed_status(make_api):
    api, _ = make_api(
        lambda request: httpx.Response(200, json={"data": {"status": "completed", "video_url": {"url": "x"}}})
    )
    with api:
        with api.stream("GET", "/api/video-status/stream", params={"video_id": "abc123"}) as response:
            lines = [json.loads(line) for line in response.iter_lines() if line]

    assert len(lines) == 1
    assert lines[0]["status"] == "error"
    assert "Malformed status payload" in lines[0]["error"]
