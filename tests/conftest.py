"""Shared pytest fixtures for Galaxy FDS tests.

Client tests run against an ``httpx.MockTransport`` so no network is used;
each recorded request is kept on ``recorder.requests`` for assertions.
"""

import json

import httpx
import pytest

from galaxy_fds.auth import SigningEngine
from galaxy_fds.client import GalaxyFDSClient
from galaxy_fds.models import Credential
from galaxy_fds.transport import HttpxTransport

ENDPOINT = "http://files.fds.api.xiaomi.com/"
FIXED_NOW = 1729495680.0  # 21 Oct 2024 07:28:00 GMT


class Recorder:
    """Records requests and replies with queued responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def queue(self, status: int = 200, payload=None, headers=None, content: bytes | None = None):
        if content is None and payload is not None:
            content = json.dumps(payload).encode()
        self.responses.append(httpx.Response(status, content=content or b"", headers=headers))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(200)
        return self.responses.pop(0)


@pytest.fixture
def credential() -> Credential:
    return Credential(access_key_id="AKEXAMPLE", access_secret="s3cr3t")


@pytest.fixture
def engine() -> SigningEngine:
    return SigningEngine()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def fds_client(credential, recorder):
    """A GalaxyFDSClient wired to a recording mock transport and a fixed clock."""
    http_client = httpx.Client(transport=httpx.MockTransport(recorder))
    client = GalaxyFDSClient(
        credential=credential,
        transport=HttpxTransport(client=http_client),
        endpoint=ENDPOINT,
        clock=lambda: FIXED_NOW,
    )
    yield client
    http_client.close()
