"""Signed HTTP dispatcher for the visual API.

Processing flow:
    1. Serialize the JSON body once (compact, key order preserved).
    2. Resolve the action from `req_key` and the presence of `task_id`.
    3. Build the signed request (`auth.signer`) for that action.
    4. POST the exact signed bytes with `httpx.AsyncClient`.
    5. Return the response, or raise a typed error.

Action routing:
    - `req_key` must be a known Jimeng service identifier.
    - Body carries `task_id` -> query action (`CVSync2AsyncGetResult`).
    - Otherwise -> submit action (`CVSync2AsyncSubmitTask`).

Retry behavior:
    No retry loop is implemented. `HttpError.retryable` is set for 429/500 so
    callers can decide; each call is attempted exactly once.

Error handling strategy:
    - Transport failures -> `NetworkError`.
    - Non-2xx responses -> `HttpError{status, body}`.
    Both are reported through the configured `ErrorReporter` before raising.

Determinism:
    Request assembly is deterministic for fixed inputs and signing time.
"""

import json
import logging
from typing import Any

import httpx

from jimeng.auth.signer import ACTION_QUERY, ACTION_SUBMIT, API_VERSION, SignedRequest, Signer
from jimeng.core.config import DEFAULT_TIMEOUT_SECONDS, JimengConfig
from jimeng.core.errors import ApiError, HttpError, NetworkError
from jimeng.core.reporting import ErrorReporter, LoggingErrorReporter
from jimeng.image.constants import REQ_KEYS


logger = logging.getLogger(__name__)


def serialize_body(body: Any) -> str:
    """Serialize a request body the way it is hashed and sent.

    Strings are passed through untouched so pre-serialized bodies keep their
    exact bytes.
    """
    if isinstance(body, str):
        return body
    return json.dumps(body, ensure_ascii=False, separators=(",", ":"))


def action_for(body: dict[str, Any]) -> str:
    """Return the API action for a submit or query body.

    Raises:
        ValueError: If `req_key` is not a known service identifier.
    """
    req_key = body.get("req_key")
    if req_key not in REQ_KEYS:
        raise ValueError(f"Unknown req_key: {req_key!r}")
    if body.get("task_id"):
        return ACTION_QUERY
    return ACTION_SUBMIT


class RequestDispatcher:
    """Attach signatures to outgoing calls and type their failures."""

    def __init__(
        self,
        signer: Signer,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            signer: Request signer bound to credentials and endpoint.
            timeout_seconds: Per-request timeout for an owned client.
            client: Optional externally managed `httpx.AsyncClient`. When
                omitted, the dispatcher creates and owns one.
            reporter: Failure reporter; defaults to logging.
        """
        self.signer = signer
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._reporter = reporter or LoggingErrorReporter()

    @classmethod
    def from_config(
        cls,
        config: JimengConfig,
        client: httpx.AsyncClient | None = None,
        reporter: ErrorReporter | None = None,
    ) -> "RequestDispatcher":
        return cls(
            Signer.from_config(config),
            timeout_seconds=config.timeout_seconds,
            client=client,
            reporter=reporter,
        )

    def build_request(self, action: str, body: Any) -> SignedRequest:
        """Serialize and sign one `POST /` call for `action`."""
        return self.signer.sign("POST", "/", {}, serialize_body(body), action, API_VERSION)

    async def send(self, action: str, body: Any) -> httpx.Response:
        """Sign and send one request.

        Args:
            action: API action name.
            body: JSON-serializable body or pre-serialized JSON text.

        Returns:
            The 2xx `httpx.Response`.

        Raises:
            NetworkError: Transport failure.
            HttpError: Non-2xx response.
        """
        signed = self.build_request(action, body)

        try:
            response = await self._client.post(
                signed.url,
                content=signed.body.encode("utf-8"),
                headers=signed.headers,
            )
        except httpx.RequestError as exc:
            error = NetworkError(f"Request to visual API failed: {exc}", url=signed.url)
            self._reporter.report(exc, "Network failure", action=action, url=signed.url)
            raise error from exc

        if not response.is_success:
            error = HttpError(response.status_code, response.text)
            self._reporter.report(
                error,
                "API request failed",
                action=action,
                status=response.status_code,
                retryable=error.retryable,
            )
            if error.retryable:
                logger.warning("Status %s is retryable; retry is left to the caller", response.status_code)
            raise error

        return response

    async def dispatch(self, body: dict[str, Any]) -> dict[str, Any]:
        """Route `body` to its action, send it, and decode the JSON reply.

        Raises:
            ValueError: Unknown `req_key`.
            ApiError: Response body is not valid JSON.
            NetworkError / HttpError: As for `send`.
        """
        response = await self.send(action_for(body), body)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(None, f"Invalid JSON response: {exc}") from exc
        return payload if isinstance(payload, dict) else {}

    async def aclose(self) -> None:
        """Close the underlying client if this dispatcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
