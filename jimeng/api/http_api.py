"""
HTTP API adapter for the Jimeng image service.

Architectural role:
- Expose generation, task query and configuration endpoints.
- Validate request bodies with pydantic models.
- Delegate all work to one process-wide `ImageService`.
- Map typed client errors to HTTP status codes.

Endpoint responsibilities:
- `POST /v1/images/text-to-image`: submit a text-to-image task.
- `POST /v1/images/image-to-image`: submit an image-to-image task.
- `POST /v1/images/generate-and-wait`: submit and poll until terminal.
- `POST /v1/tasks/{task_id}/query`: query a task with `req_json` options.
- `GET /v1/tasks/{task_id}/status`: status document (errors inline).
- `GET /v1/config`: sizes, watermark options, limits.

Error handling strategy:
- `InvalidRequestError` -> 400
- `ConcurrencyBusy` -> 409
- `TaskFailed` -> 422
- `HttpError` / `ApiError` / `NetworkError` -> 502
- `TaskTimeout` -> 504
- Unknown `req_key` (`ValueError`) -> 400
- Missing credentials (`SigningError`) -> 503
- Invalid settings (`ConfigurationError`) -> 503
Error bodies are `{"error": <type>, "message": <text>}`.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- Builds the service lazily on first request so the app can be imported
  without credentials.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from jimeng.core.config import JimengConfig
from jimeng.core.errors import (
    ApiError,
    ConcurrencyBusy,
    ConfigurationError,
    HttpError,
    InvalidRequestError,
    JimengError,
    NetworkError,
    SigningError,
    TaskFailed,
    TaskTimeout,
)
from jimeng.image import constants as C
from jimeng.image.service import ImageService, ServiceResult, config_document


logger = logging.getLogger(__name__)

app = FastAPI(title="jimeng-image")

_SERVICE: ImageService | None = None


def set_service(service: ImageService | None) -> None:
    """Override or clear the process-wide service used by endpoints.

    Passing `None` makes the next request rebuild it from `JimengConfig()`.
    """
    global _SERVICE
    _SERVICE = service


def get_service() -> ImageService:
    """Return the cached service, building it from configuration once."""
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = ImageService.from_config(JimengConfig())
    return _SERVICE


# ============================================================
# Request Schemas
# ============================================================

class LogoInfo(BaseModel):
    """Watermark settings forwarded in the query `req_json`."""
    add_logo: bool | None = None
    position: int | None = None
    language: int | None = None
    opacity: float | None = None
    logo_text_content: str | None = None


class TextToImageRequest(BaseModel):
    prompt: str
    use_pre_llm: bool = True
    seed: int | None = None
    width: int | None = None
    height: int | None = None


class ImageToImageRequest(BaseModel):
    prompt: str
    image_urls: list[str] | None = None
    binary_data_base64: list[str] | None = None
    scale: float | None = None
    seed: int | None = None
    width: int | None = None
    height: int | None = None


class GenerateAndWaitRequest(ImageToImageRequest):
    use_pre_llm: bool = True
    poll_interval: float | None = Field(default=None, gt=0)
    max_wait_time: float | None = Field(default=None, gt=0)
    logo_info: LogoInfo | None = None


class QueryTaskRequest(BaseModel):
    req_key: str = C.REQ_KEY_T2I
    return_url: bool | None = None
    logo_info: LogoInfo | None = None


# ============================================================
# Error Mapping
# ============================================================

_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (InvalidRequestError, 400),
    (ConcurrencyBusy, 409),
    (TaskFailed, 422),
    (TaskTimeout, 504),
    (HttpError, 502),
    (ApiError, 502),
    (NetworkError, 502),
    (SigningError, 503),
    (ConfigurationError, 503),
]


def status_for(error: Exception) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    if isinstance(error, ValueError):
        return 400
    return 500


def _error_response(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(error),
        content={"error": type(error).__name__, "message": str(error)},
    )


@app.exception_handler(JimengError)
async def handle_client_error(request: Request, exc: JimengError):
    """Translate typed client failures to JSON error responses."""
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(exc)


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError):
    return _error_response(exc)


def _result_body(result: ServiceResult) -> dict[str, Any]:
    return {"text": result.text, **result.data}


def _logo_dict(logo_info: LogoInfo | None) -> dict[str, Any] | None:
    if logo_info is None:
        return None
    return logo_info.model_dump(exclude_none=True)


# ============================================================
# Endpoints
# ============================================================

@app.post("/v1/images/text-to-image")
async def text_to_image(body: TextToImageRequest):
    result = await get_service().text_to_image(
        body.prompt,
        use_pre_llm=body.use_pre_llm,
        seed=body.seed,
        width=body.width,
        height=body.height,
    )
    return _result_body(result)


@app.post("/v1/images/image-to-image")
async def image_to_image(body: ImageToImageRequest):
    result = await get_service().image_to_image(
        body.prompt,
        image_urls=body.image_urls,
        binary_data_base64=body.binary_data_base64,
        scale=body.scale,
        seed=body.seed,
        width=body.width,
        height=body.height,
    )
    return _result_body(result)


@app.post("/v1/images/generate-and-wait")
async def generate_and_wait(body: GenerateAndWaitRequest):
    result = await get_service().generate_and_wait(
        body.prompt,
        image_urls=body.image_urls,
        binary_data_base64=body.binary_data_base64,
        scale=body.scale,
        use_pre_llm=body.use_pre_llm,
        seed=body.seed,
        width=body.width,
        height=body.height,
        poll_interval=body.poll_interval,
        max_wait_time=body.max_wait_time,
        logo_info=_logo_dict(body.logo_info),
    )
    return _result_body(result)


@app.post("/v1/tasks/{task_id}/query")
async def query_task(task_id: str, body: QueryTaskRequest | None = None):
    body = body or QueryTaskRequest()
    result = await get_service().query_task(
        task_id,
        req_key=body.req_key,
        return_url=body.return_url,
        logo_info=_logo_dict(body.logo_info),
    )
    return _result_body(result)


@app.get("/v1/tasks/{task_id}/status")
async def task_status(task_id: str, req_key: str = C.REQ_KEY_T2I):
    return await get_service().task_status(task_id, req_key=req_key)


@app.get("/v1/config")
def get_config():
    return config_document()
