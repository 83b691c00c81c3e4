import asyncio
import json

import pytest

from jimeng.core.errors import ApiError, InvalidRequestError
from jimeng.image.api import (
    build_req_json,
    validate_image_size,
    validate_image_to_image_size,
    validate_prompt,
    validate_scale,
)
from jimeng.image.constants import I2I_RECOMMENDED_SIZES, RECOMMENDED_SIZES, REQ_KEY_I2I, REQ_KEY_T2I


SUBMITTED = {
    "code": 10000,
    "message": "Success",
    "request_id": "req-1",
    "status": 10000,
    "time_elapsed": "0.1s",
    "data": {"task_id": "T1"},
}


def test_validators():
    assert validate_prompt("a")
    assert validate_prompt("x" * 800)
    assert not validate_prompt("")
    assert not validate_prompt("x" * 801)

    assert validate_image_size(512, 512)
    assert validate_image_size(2048, 2048)
    assert not validate_image_size(511, 1024)
    assert validate_image_size(3024, 1296)
    assert not validate_image_size(4097, 2048)
    assert not validate_image_size(2048, 600)  # ratio above 3

    assert validate_image_to_image_size(2016, 864)
    assert not validate_image_to_image_size(2048, 2048)

    assert validate_scale(0) and validate_scale(1) and validate_scale(0.5)
    assert not validate_scale(-0.1) and not validate_scale(1.01)


def test_build_req_json():
    assert build_req_json() is None
    assert build_req_json(return_url=True) == '{"return_url":true}'
    encoded = build_req_json(return_url=False, logo_info={"add_logo": True, "position": 0, "language": None})
    assert json.loads(encoded) == {"return_url": False, "logo_info": {"add_logo": True, "position": 0}}


def test_generate_image_payload(make_api):
    api, transport = make_api([SUBMITTED])

    response = asyncio.run(api.generate_image("x", seed=42, width=1024, height=1024))

    assert response.task_id == "T1"
    assert response.request_id == "req-1"
    assert transport.bodies() == [
        {
            "req_key": REQ_KEY_T2I,
            "prompt": "x",
            "use_pre_llm": True,
            "seed": 42,
            "width": 1024,
            "height": 1024,
        }
    ]


def test_generate_image_omits_size_unless_both_given(make_api):
    api, transport = make_api([SUBMITTED])

    asyncio.run(api.generate_image("x", width=1024))

    body = transport.bodies()[0]
    assert "width" not in body and "height" not in body
    assert body["seed"] == -1


@pytest.mark.parametrize(
    "size",
    [size for tier in RECOMMENDED_SIZES.values() for size in tier.values()],
    ids=[f"{tier}-{ratio}" for tier, sizes in RECOMMENDED_SIZES.items() for ratio in sizes],
)
def test_every_recommended_text_to_image_size_is_accepted(make_api, size):
    api, transport = make_api([SUBMITTED])

    asyncio.run(api.generate_image("x", width=size["width"], height=size["height"]))

    body = transport.bodies()[0]
    assert (body["width"], body["height"]) == (size["width"], size["height"])


@pytest.mark.parametrize("size", list(I2I_RECOMMENDED_SIZES.values()), ids=list(I2I_RECOMMENDED_SIZES))
def test_every_recommended_image_to_image_size_is_accepted(make_api, size):
    api, transport = make_api([SUBMITTED])

    asyncio.run(
        api.generate_image_to_image("x", image_urls=["u"], width=size["width"], height=size["height"])
    )

    assert transport.bodies()[0]["width"] == size["width"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"prompt": ""},
        {"prompt": "x" * 801},
        {"prompt": "x", "width": 100, "height": 100},
    ],
)
def test_generate_image_rejects_invalid_input_before_sending(make_api, kwargs):
    api, transport = make_api()

    with pytest.raises(InvalidRequestError):
        asyncio.run(api.generate_image(**kwargs))

    assert transport.requests == []


def test_image_to_image_prefers_base64_over_urls(make_api):
    api, transport = make_api([SUBMITTED])

    asyncio.run(
        api.generate_image_to_image(
            "make it blue",
            image_urls=["https://example.com/a.png"],
            binary_data_base64=["aGVsbG8="],
            width=1328,
            height=1328,
        )
    )

    body = transport.bodies()[0]
    assert body["req_key"] == REQ_KEY_I2I
    assert body["binary_data_base64"] == ["aGVsbG8="]
    assert "image_urls" not in body
    assert body["scale"] == 0.5
    assert body["width"] == 1328


def test_image_to_image_with_urls(make_api):
    api, transport = make_api([SUBMITTED])

    asyncio.run(api.generate_image_to_image("x", image_urls=["https://example.com/a.png"], scale=0.8))

    body = transport.bodies()[0]
    assert body["image_urls"] == ["https://example.com/a.png"]
    assert body["scale"] == 0.8


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({}, "image input is required"),
        ({"image_urls": []}, "image_urls"),
        ({"binary_data_base64": []}, "binary_data_base64"),
        ({"image_urls": ["u"], "scale": 1.5}, "Scale"),
        ({"image_urls": ["u"], "width": 2048, "height": 2048}, "512-2016"),
    ],
)
def test_image_to_image_validation(make_api, kwargs, message):
    api, transport = make_api()

    with pytest.raises(InvalidRequestError, match=message):
        asyncio.run(api.generate_image_to_image("x", **kwargs))

    assert transport.requests == []


def test_query_task_payload_with_req_json(make_api):
    api, transport = make_api([{"data": {"status": "generating"}}])

    response = asyncio.run(
        api.query_task("T1", req_key=REQ_KEY_I2I, return_url=True, logo_info={"add_logo": True, "position": 3})
    )

    assert response.task_status == "generating"
    assert response.task_id == "T1"
    body = transport.bodies()[0]
    assert body["req_key"] == REQ_KEY_I2I
    assert body["task_id"] == "T1"
    assert isinstance(body["req_json"], str)
    assert json.loads(body["req_json"]) == {"return_url": True, "logo_info": {"add_logo": True, "position": 3}}


def test_query_task_without_options_has_no_req_json(make_api):
    api, transport = make_api([{"data": {"status": "in_queue"}}])

    asyncio.run(api.query_task("T1"))

    assert transport.bodies() == [{"req_key": REQ_KEY_T2I, "task_id": "T1"}]


def test_error_code_in_envelope_raises_api_error(make_api):
    api, _ = make_api([{"code": 50411, "message": "Pre Img Risk Not Pass", "request_id": "r9"}])

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(api.generate_image("x"))

    assert excinfo.value.code == 50411
    assert excinfo.value.request_id == "r9"


def test_submit_without_task_id_raises_api_error(make_api):
    api, _ = make_api([{"code": 10000, "data": {}}])

    with pytest.raises(ApiError, match="no task_id"):
        asyncio.run(api.generate_image("x"))
