"""Image service used by the HTTP and CLI adapters.

Role in pipeline:
    - Owns the process's single `ConcurrencyGate`.
    - Runs every generation-related operation (submit, submit-and-wait)
      inside the gate; status reads are not guarded.
    - Renders operation results into short human-readable messages while
      keeping the raw response payload for structured consumers.

Error handling strategy:
    - Exceptions from the API, lifecycle and gate are propagated unchanged.
    - `task_status` is the only read path that reports failures inline, as a
      status document with `status: "error"`.

Determinism:
    Message rendering is deterministic for a given response payload.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from jimeng.core.config import JimengConfig
from jimeng.core.gate import ConcurrencyGate
from jimeng.core.errors import JimengError
from jimeng.core.types import QueryResponse, SubmitResponse, TaskStatus, describe_status
from jimeng.image import constants as C
from jimeng.image.api import JimengAPI
from jimeng.image.client import RequestDispatcher
from jimeng.image.tasks import TaskLifecycle


logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Adapter-facing result: rendered text plus structured payload."""

    text: str
    data: dict[str, Any] = field(default_factory=dict)


def render_submission(kind: str, response: SubmitResponse) -> ServiceResult:
    text = f"{kind} task submitted!\nTask ID: {response.task_id}\nStatus: {response.message}"
    return ServiceResult(text=text, data={"task_id": response.task_id, "response": response.raw})


def render_query(response: QueryResponse) -> ServiceResult:
    status = response.task_status
    text = f"Task status: {describe_status(status)}\n"

    if status == TaskStatus.DONE.value:
        if response.image_urls:
            text += "\nGenerated image URLs:\n" + "\n".join(response.image_urls)
        if response.binary_data_base64:
            text += f"\n\nGenerated {len(response.binary_data_base64)} image(s)"

    return ServiceResult(
        text=text,
        data={
            "task_id": response.task_id,
            "status": status,
            "image_urls": response.image_urls,
            "binary_data_count": len(response.binary_data_base64),
            "response": response.raw,
        },
    )


def config_document() -> dict[str, Any]:
    """Static capability/limits document exposed by adapters."""
    return {
        "api_info": {
            "name": "Jimeng image generation API",
            "version": "1.0.0",
            "description": "AI image generation on Volcengine visual services",
        },
        "text_to_image_sizes": {
            "standard_1k": C.RECOMMENDED_SIZES["STANDARD_1K"],
            "hd_2k": C.RECOMMENDED_SIZES["HD_2K"],
            "constraints": {
                "width_range": list(C.T2I_SIZE_RANGE),
                "height_range": list(C.T2I_SIZE_RANGE),
                "aspect_ratio_range": list(C.ASPECT_RATIO_RANGE),
            },
        },
        "image_to_image_sizes": {
            "recommended": C.I2I_RECOMMENDED_SIZES,
            "constraints": {
                "width_range": list(C.I2I_SIZE_RANGE),
                "height_range": list(C.I2I_SIZE_RANGE),
                "aspect_ratio_range": list(C.ASPECT_RATIO_RANGE),
            },
        },
        "watermark_options": {
            "positions": C.WATERMARK_POSITIONS,
            "languages": C.WATERMARK_LANGUAGES,
        },
        "scale_range": C.SCALE_RANGE,
        "image_limits": C.IMAGE_LIMITS,
        "prompt_constraints": C.PROMPT_CONSTRAINTS,
        "tools": {
            "text_to_image": "Text-to-image (submit task)",
            "image_to_image": "Image-to-image (submit task)",
            "generate_and_wait": "Submit and wait for the result",
            "query_task": "Query task status",
        },
    }


class ImageService:
    """Gate-guarded façade over `JimengAPI` and `TaskLifecycle`."""

    def __init__(
        self,
        api: JimengAPI,
        gate: ConcurrencyGate | None = None,
        lifecycle: TaskLifecycle | None = None,
    ) -> None:
        self.api = api
        self.gate = gate or ConcurrencyGate()
        self.lifecycle = lifecycle or TaskLifecycle(api)

    @classmethod
    def from_config(cls, config: JimengConfig, dispatcher: RequestDispatcher | None = None) -> "ImageService":
        """Compose the full client stack from configuration."""
        dispatcher = dispatcher or RequestDispatcher.from_config(config)
        api = JimengAPI(dispatcher)
        return cls(
            api,
            gate=ConcurrencyGate(policy=config.concurrency_policy),
            lifecycle=TaskLifecycle(
                api,
                poll_interval=config.poll_interval,
                max_wait_time=config.max_wait_time,
            ),
        )

    async def text_to_image(
        self,
        prompt: str,
        use_pre_llm: bool = True,
        seed: int | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> ServiceResult:
        async def operation() -> SubmitResponse:
            return await self.api.generate_image(
                prompt,
                use_pre_llm=use_pre_llm,
                seed=C.DEFAULT_SEED if seed is None else seed,
                width=width,
                height=height,
            )

        response = await self.gate.run(operation)
        return render_submission("Image generation", response)

    async def image_to_image(
        self,
        prompt: str,
        image_urls: list[str] | None = None,
        binary_data_base64: list[str] | None = None,
        scale: float | None = None,
        seed: int | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> ServiceResult:
        async def operation() -> SubmitResponse:
            return await self.api.generate_image_to_image(
                prompt,
                image_urls=image_urls,
                binary_data_base64=binary_data_base64,
                scale=scale,
                seed=C.DEFAULT_SEED if seed is None else seed,
                width=width,
                height=height,
            )

        response = await self.gate.run(operation)
        return render_submission("Image-to-image", response)

    async def generate_and_wait(
        self,
        prompt: str,
        image_urls: list[str] | None = None,
        binary_data_base64: list[str] | None = None,
        scale: float | None = None,
        use_pre_llm: bool = True,
        seed: int | None = None,
        width: int | None = None,
        height: int | None = None,
        poll_interval: float | None = None,
        max_wait_time: float | None = None,
        logo_info: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Submit a task and hold the gate until it reaches a terminal state.

        Image inputs select the image-to-image variant; otherwise the task is
        text-to-image.
        """
        seed = C.DEFAULT_SEED if seed is None else seed
        if image_urls is not None or binary_data_base64 is not None:
            req_key = C.REQ_KEY_I2I

            def submit():
                return self.api.generate_image_to_image(
                    prompt,
                    image_urls=image_urls,
                    binary_data_base64=binary_data_base64,
                    scale=scale,
                    seed=seed,
                    width=width,
                    height=height,
                )
        else:
            req_key = C.REQ_KEY_T2I

            def submit():
                return self.api.generate_image(
                    prompt, use_pre_llm=use_pre_llm, seed=seed, width=width, height=height
                )

        async def operation() -> QueryResponse:
            return await self.lifecycle.submit_and_wait(
                submit,
                req_key=req_key,
                poll_interval=poll_interval,
                max_wait_time=max_wait_time,
                logo_info=logo_info,
            )

        response = await self.gate.run(operation)
        return render_query(response)

    async def query_task(
        self,
        task_id: str,
        req_key: str = C.REQ_KEY_T2I,
        return_url: bool | None = None,
        logo_info: dict[str, Any] | None = None,
    ) -> ServiceResult:
        response = await self.api.query_task(
            task_id, req_key=req_key, return_url=return_url, logo_info=logo_info
        )
        return render_query(response)

    async def task_status(self, task_id: str, req_key: str = C.REQ_KEY_T2I) -> dict[str, Any]:
        """Return a status document for `task_id`; failures are reported inline."""
        try:
            response = await self.api.query_task(task_id, req_key=req_key)
        except JimengError as exc:
            logger.exception("Fail to query task %s", task_id)
            return {"task_id": task_id, "error": str(exc), "status": "error"}

        return {
            "task_id": task_id,
            "status": response.task_status,
            "image_urls": response.image_urls,
            "binary_data_count": len(response.binary_data_base64),
        }

    async def aclose(self) -> None:
        await self.api.dispatcher.aclose()
