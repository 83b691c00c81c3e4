"""Pytest configuration and fixtures for the Jimeng client test suite.

Provides fixed credentials and configuration, plus an `httpx.MockTransport`
wrapper that serves queued replies and records every outgoing request.
"""

import json

import httpx
import pytest

from jimeng.auth.signer import Credentials, Signer
from jimeng.core.config import JimengConfig
from jimeng.image.api import JimengAPI
from jimeng.image.client import RequestDispatcher


class RecordingTransport:
    """Serve queued replies in order and keep the requests that were sent.

    A reply may be a dict (JSON 200), an `httpx.Response`, or a callable
    taking the request and returning a response or raising.
    """

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        reply = self.replies.pop(0)
        if callable(reply):
            return reply(request)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def actions(self) -> list[str]:
        return [r.url.params.get("Action") for r in self.requests]


class RecordingReporter:
    def __init__(self):
        self.reports = []

    def report(self, error, msg, **context):
        self.reports.append((error, msg, context))


@pytest.fixture
def credentials():
    return Credentials(
        access_key_id="AKLTtestaccesskey",
        secret_key="dGVzdHNlY3JldGtleQ==",
        region="cn-north-1",
        service="cv",
        host="visual.volcengineapi.com",
    )


@pytest.fixture
def signer(credentials):
    return Signer(credentials, endpoint="https://visual.volcengineapi.com")


@pytest.fixture
def config():
    return JimengConfig(
        access_key="AKLTtestaccesskey",
        secret_key="dGVzdHNlY3JldGtleQ==",
        endpoint="https://visual.volcengineapi.com",
        region="cn-north-1",
        service="cv",
        timeout_seconds=5.0,
        poll_interval=0.0,
        max_wait_time=5.0,
        concurrency_policy="reject",
    )


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def make_api(signer, reporter):
    """Build a `JimengAPI` over a recording transport."""

    def _make(replies=()):
        transport = RecordingTransport(replies)
        dispatcher = RequestDispatcher(signer, client=transport.client(), reporter=reporter)
        return JimengAPI(dispatcher), transport

    return _make


@pytest.fixture
def recording_transport():
    """Factory for `RecordingTransport` instances."""
    return RecordingTransport
