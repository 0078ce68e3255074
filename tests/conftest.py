"""Shared fixtures: an API client wired to an in-memory backend."""

import json

import httpx
import pytest

from leaseweb_baremetal.baremetalapi import client

BASE_URL = "https://api.leaseweb.test"
TOKEN = "test-token"


class FakeBackend:
    """Records requests and answers them with queued responses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._responses: list[httpx.Response] = []

    def queue(
        self,
        status_code: int,
        json_body: object = None,
        content: bytes | None = None,
    ) -> None:
        """Queue the response for the next request."""
        if json_body is not None:
            content = json.dumps(json_body).encode()
        self._responses.append(httpx.Response(status_code, content=content or b""))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> object:
        return json.loads(self.last_request.content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api_client(backend: FakeBackend) -> client.LeasewebClient:
    """LeasewebClient sending every request to the fake backend."""
    with client.LeasewebClient(
        base_url=BASE_URL,
        token=TOKEN,
        transport=httpx.MockTransport(backend),
    ) as api:
        yield api
