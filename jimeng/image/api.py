"""Jimeng 3.0 image-generation operations.

Processing flow:
    1. Validate caller parameters (prompt, size, scale, image inputs).
    2. Build the submit or query payload for the right `req_key`.
    3. Dispatch through `RequestDispatcher` (signing + transport).
    4. Check the response envelope code and return a typed response.

Supported operations:
    - `generate_image`: text-to-image submission.
    - `generate_image_to_image`: image-to-image submission.
    - `query_task`: task status/result query with optional `req_json`.

Size validation:
    - Text-to-image: width/height in [512, 4096] (covers every
      `RECOMMENDED_SIZES` entry).
    - Image-to-image: width/height in [512, 2016].
    - Both: aspect ratio in [1/3, 3].

Error handling strategy:
    - Local parameter problems -> `InvalidRequestError`.
    - Envelope `code` other than 10000 -> `ApiError`.
    - Transport/HTTP failures propagate from the dispatcher unchanged.
"""

import json
import logging
from typing import Any

from jimeng.core.errors import ApiError, InvalidRequestError
from jimeng.core.types import QueryResponse, SubmitResponse
from jimeng.image.client import RequestDispatcher
from jimeng.image import constants as C


logger = logging.getLogger(__name__)


def validate_prompt(prompt: str | None) -> bool:
    max_length = C.PROMPT_CONSTRAINTS["max_length"]
    return bool(prompt) and len(prompt) <= max_length


def _validate_size(width: int, height: int, size_range: tuple[int, int]) -> bool:
    low, high = size_range
    if width < low or width > high or height < low or height > high:
        return False
    ratio = width / height
    min_ratio, max_ratio = C.ASPECT_RATIO_RANGE
    return min_ratio <= ratio <= max_ratio


def validate_image_size(width: int, height: int) -> bool:
    """Text-to-image size check."""
    return _validate_size(width, height, C.T2I_SIZE_RANGE)


def validate_image_to_image_size(width: int, height: int) -> bool:
    """Image-to-image size check."""
    return _validate_size(width, height, C.I2I_SIZE_RANGE)


def validate_scale(scale: float) -> bool:
    return C.SCALE_RANGE["MIN"] <= scale <= C.SCALE_RANGE["MAX"]


def build_req_json(return_url: bool | None = None, logo_info: dict[str, Any] | None = None) -> str | None:
    """Encode the query-time `req_json` string, or `None` when empty."""
    req_json: dict[str, Any] = {}
    if return_url is not None:
        req_json["return_url"] = return_url
    if logo_info:
        req_json["logo_info"] = {k: v for k, v in logo_info.items() if v is not None}
    if not req_json:
        return None
    return json.dumps(req_json, ensure_ascii=False, separators=(",", ":"))


class JimengAPI:
    """Submit and query Jimeng image-generation tasks."""

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher

    async def generate_image(
        self,
        prompt: str,
        use_pre_llm: bool = True,
        seed: int = C.DEFAULT_SEED,
        width: int | None = None,
        height: int | None = None,
    ) -> SubmitResponse:
        """Submit a text-to-image task.

        Args:
            prompt: Image description.
            use_pre_llm: Let the service expand short prompts.
            seed: Random seed; -1 lets the service choose.
            width: Output width; sent only together with `height`.
            height: Output height; sent only together with `width`.

        Returns:
            `SubmitResponse` carrying the remote `task_id`.

        Raises:
            InvalidRequestError: Empty/oversized prompt or invalid size.
        """
        if not validate_prompt(prompt):
            raise InvalidRequestError("Prompt must be 1 to 800 characters")

        payload: dict[str, Any] = {
            "req_key": C.REQ_KEY_T2I,
            "prompt": prompt,
            "use_pre_llm": use_pre_llm,
            "seed": seed,
        }

        if width and height:
            if not validate_image_size(width, height):
                raise InvalidRequestError(
                    "Invalid image size: width and height must be within 512-4096 "
                    "and the aspect ratio within 1:3 to 3:1"
                )
            payload["width"] = width
            payload["height"] = height

        return await self._submit(payload, "Fail to generate image")

    async def generate_image_to_image(
        self,
        prompt: str,
        image_urls: list[str] | None = None,
        binary_data_base64: list[str] | None = None,
        scale: float | None = None,
        seed: int = C.DEFAULT_SEED,
        width: int | None = None,
        height: int | None = None,
    ) -> SubmitResponse:
        """Submit an image-to-image task.

        Exactly one image input is forwarded: Base64 data wins over URLs when
        both are given.

        Raises:
            InvalidRequestError: Invalid prompt, missing/empty image input,
                out-of-range scale or invalid size.
        """
        self._validate_image_to_image(prompt, image_urls, binary_data_base64, scale, width, height)

        payload: dict[str, Any] = {
            "req_key": C.REQ_KEY_I2I,
            "prompt": prompt,
            "seed": seed,
            "scale": C.SCALE_RANGE["DEFAULT"] if scale is None else scale,
        }

        if binary_data_base64:
            payload["binary_data_base64"] = list(binary_data_base64)
        else:
            payload["image_urls"] = list(image_urls or [])

        if width and height:
            payload["width"] = width
            payload["height"] = height

        return await self._submit(payload, "Fail to generate image to image")

    async def query_task(
        self,
        task_id: str,
        req_key: str = C.REQ_KEY_T2I,
        return_url: bool | None = None,
        logo_info: dict[str, Any] | None = None,
    ) -> QueryResponse:
        """Query task status and results.

        Args:
            task_id: Remote task id.
            req_key: Service identifier used at submission.
            return_url: Ask the service to return image URLs.
            logo_info: Watermark settings (`add_logo`, `position`, `language`,
                `opacity`, `logo_text_content`).

        Returns:
            `QueryResponse`.
        """
        if not task_id:
            raise InvalidRequestError("task_id is required")

        payload: dict[str, Any] = {"req_key": req_key, "task_id": task_id}
        req_json = build_req_json(return_url, logo_info)
        if req_json is not None:
            payload["req_json"] = req_json

        data = await self.dispatcher.dispatch(payload)
        response = QueryResponse.from_payload(data, task_id=task_id)
        self._check_envelope(response)
        return response

    async def _submit(self, payload: dict[str, Any], failure_msg: str) -> SubmitResponse:
        data = await self.dispatcher.dispatch(payload)
        response = SubmitResponse.from_payload(data)
        self._check_envelope(response)
        if not response.task_id:
            raise ApiError(response.code, f"{failure_msg}: no task_id returned", response.request_id)
        logger.info("Submitted %s task %s", payload["req_key"], response.task_id)
        return response

    @staticmethod
    def _check_envelope(response) -> None:
        if not response.is_success:
            raise ApiError(response.code, response.message, response.request_id)

    @staticmethod
    def _validate_image_to_image(prompt, image_urls, binary_data_base64, scale, width, height) -> None:
        if not validate_prompt(prompt):
            raise InvalidRequestError("Prompt must be 1 to 800 characters")

        if binary_data_base64 is None and image_urls is None:
            raise InvalidRequestError("An image input is required: binary_data_base64 or image_urls")
        if binary_data_base64 is not None and len(binary_data_base64) == 0:
            raise InvalidRequestError("binary_data_base64 must not be an empty list")
        if image_urls is not None and len(image_urls) == 0:
            raise InvalidRequestError("image_urls must not be an empty list")

        if scale is not None and not validate_scale(scale):
            raise InvalidRequestError("Scale must be between 0 and 1")

        if width and height and not validate_image_to_image_size(width, height):
            raise InvalidRequestError(
                "Invalid image size: width and height must be within 512-2016 "
                "and the aspect ratio within 1:3 to 3:1"
            )
