import httpx
import pytest
from fastapi.testclient import TestClient

from jimeng.api import http_api
from jimeng.core.errors import (
    ApiError,
    ConcurrencyBusy,
    ConfigurationError,
    HttpError,
    InvalidRequestError,
    NetworkError,
    SigningError,
    TaskFailed,
    TaskTimeout,
)
from jimeng.core.gate import ConcurrencyGate
from jimeng.image.service import ImageService
from jimeng.image.tasks import TaskLifecycle


@pytest.fixture
def serve(make_api):
    """Install a service over a recording transport and return a test client."""

    def _serve(replies=()):
        api, transport = make_api(replies)

        async def no_sleep(seconds):
            return None

        service = ImageService(
            api,
            gate=ConcurrencyGate("reject"),
            lifecycle=TaskLifecycle(api, poll_interval=0.0, max_wait_time=5.0, sleep=no_sleep),
        )
        http_api.set_service(service)
        return TestClient(http_api.app), transport

    yield _serve
    http_api.set_service(None)


@pytest.mark.parametrize(
    "error, status",
    [
        (InvalidRequestError("bad"), 400),
        (ConcurrencyBusy(), 409),
        (TaskFailed("expired", "T1"), 422),
        (TaskTimeout("T1", 5), 504),
        (HttpError(500, "x"), 502),
        (ApiError(50411, "risk"), 502),
        (NetworkError("down"), 502),
        (SigningError("no key"), 503),
        (ConfigurationError("bad policy"), 503),
        (ValueError("Unknown req_key"), 400),
        (RuntimeError("?"), 500),
    ],
)
def test_status_for(error, status):
    assert http_api.status_for(error) == status


def test_text_to_image_endpoint(serve):
    client, transport = serve([{"code": 10000, "message": "Success", "data": {"task_id": "T1"}}])

    response = client.post("/v1/images/text-to-image", json={"prompt": "a cat", "seed": 7})

    assert response.status_code == 200
    body = response.json()
    assert body["task_id"] == "T1"
    assert "Task ID: T1" in body["text"]
    assert transport.bodies()[0]["seed"] == 7


def test_invalid_prompt_maps_to_400(serve):
    client, transport = serve()

    response = client.post("/v1/images/text-to-image", json={"prompt": ""})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRequestError"
    assert transport.requests == []


def test_image_to_image_without_images_maps_to_400(serve):
    client, _ = serve()

    response = client.post("/v1/images/image-to-image", json={"prompt": "x"})

    assert response.status_code == 400


def test_generate_and_wait_endpoint(serve):
    client, transport = serve(
        [
            {"code": 10000, "data": {"task_id": "T1"}},
            {"code": 10000, "data": {"status": "generating"}},
            {"code": 10000, "data": {"status": "done", "image_urls": ["http://x/1.png"]}},
        ]
    )

    response = client.post(
        "/v1/images/generate-and-wait",
        json={"prompt": "x", "logo_info": {"add_logo": True, "position": 1}},
    )

    assert response.status_code == 200
    assert response.json()["image_urls"] == ["http://x/1.png"]
    queries = transport.bodies()[1:]
    assert len(queries) == 2
    assert '"logo_info":{"add_logo":true,"position":1}' in queries[0]["req_json"]


def test_task_failure_maps_to_422(serve):
    client, _ = serve([{"data": {"task_id": "T1"}}, {"data": {"status": "not_found"}}])

    response = client.post("/v1/images/generate-and-wait", json={"prompt": "x"})

    assert response.status_code == 422
    assert response.json()["error"] == "TaskFailed"


def test_upstream_error_maps_to_502(serve):
    client, _ = serve([httpx.Response(429, text="slow down")])

    response = client.post("/v1/images/text-to-image", json={"prompt": "x"})

    assert response.status_code == 502
    assert "429" in response.json()["message"]


def test_query_endpoint_without_body(serve):
    client, transport = serve([{"data": {"status": "in_queue"}}])

    response = client.post("/v1/tasks/T1/query")

    assert response.status_code == 200
    assert response.json()["status"] == "in_queue"
    assert transport.bodies() == [{"req_key": "jimeng_t2i_v30", "task_id": "T1"}]


def test_query_endpoint_with_unknown_req_key(serve):
    client, transport = serve()

    response = client.post("/v1/tasks/T1/query", json={"req_key": "nope"})

    assert response.status_code == 400
    assert transport.requests == []


def test_status_endpoint_reports_errors_inline(serve):
    client, _ = serve([httpx.Response(500, text="down")])

    response = client.get("/v1/tasks/T1/status", params={"req_key": "jimeng_i2i_v30"})

    assert response.status_code == 200
    assert response.json()["status"] == "error"


def test_config_endpoint():
    response = TestClient(http_api.app).get("/v1/config")

    assert response.status_code == 200
    body = response.json()
    assert body["scale_range"]["DEFAULT"] == 0.5
    assert "watermark_options" in body


def test_invalid_settings_map_to_503(monkeypatch):
    monkeypatch.setenv("JIMENG_CONCURRENCY_POLICY", "bogus")
    http_api.set_service(None)
    client = TestClient(http_api.app)
    try:
        status = client.get("/v1/tasks/T1/status")
        submit = client.post("/v1/images/text-to-image", json={"prompt": "x"})
    finally:
        http_api.set_service(None)

    assert status.status_code == 503
    assert status.json()["error"] == "ConfigurationError"
    assert "bogus" in status.json()["message"]
    assert submit.status_code == 503
