"""
Pytest configuration and fixtures for Edgework tests.
"""

import inspect
import tempfile
from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest

from edgework.client import CdnClient
from edgework.mapper import distribution_to_state
from edgework.models import Backend, Distribution, DistributionConfig, Optimizer
from edgework.settings import reload_settings
from edgework.state import MemoryStateStore

PROJECT_ID = "test-project-123"
DISTRIBUTION_ID = "distribution-abc-123"
COMBINED_ID = f"{PROJECT_ID},{DISTRIBUTION_ID}"
BASE_URL = "https://cdn.test"

COLLECTION_PATH = f"/v1beta/projects/{PROJECT_ID}/distributions"
ITEM_PATH = f"{COLLECTION_PATH}/{DISTRIBUTION_ID}"

Responder = Union[httpx.Response, Callable[[httpx.Request], Any]]


def distribution_body(status: str = "ACTIVE", **overrides) -> dict:
    """Wire representation of the test distribution, as the API returns it."""
    distribution = {
        "id": DISTRIBUTION_ID,
        "projectId": PROJECT_ID,
        "status": status,
        "createdAt": "2024-01-02T03:04:05Z",
        "updatedAt": "2024-01-02T04:05:06Z",
        "config": {
            "backend": {
                "type": "http",
                "originUrl": "https://origin.example.com",
                "originRequestHeaders": {"X-Origin": "edgework"},
                "geofencing": {},
            },
            "regions": ["EU", "US"],
            "blockedCountries": [],
            "optimizer": {"enabled": False},
        },
        "domains": [
            {"name": "abc123.cdn.example.net", "status": "ACTIVE", "type": "managed", "errors": []},
        ],
        "errors": [],
    }
    distribution.update(overrides)
    return {"distribution": distribution}


def json_response(status_code: int, body: Any = None) -> httpx.Response:
    if body is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=body)


class FakeCdnApi:
    """Scripted CDN API served through httpx.MockTransport.

    Each route holds a queue of responders. A responder is either an
    httpx.Response or a (sync or async) callable taking the request. The last
    responder of a route is repeated once the queue runs down to it.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responders: Responder) -> "FakeCdnApi":
        self.routes[(method, path)] = list(responders)
        return self

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return json_response(501, {"message": f"no route for {request.method} {request.url.path}"})

        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(responder, httpx.Response):
            # Scripted responses are replayed, so hand out a fresh copy each time
            return httpx.Response(
                responder.status_code, headers=responder.headers, content=responder.content
            )
        result = responder(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def client(self) -> CdnClient:
        return CdnClient(
            base_url=BASE_URL,
            token="test-token",
            transport=httpx.MockTransport(self.handler),
        )

    def calls(self, method: str = None) -> list[str]:
        return [
            f"{request.method} {request.url.path}"
            for request in self.requests
            if method is None or request.method == method
        ]


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(autouse=True)
def settings_env(monkeypatch, tmp_path):
    """Point settings at a throwaway state file with short waits."""
    monkeypatch.setenv("EW_API_URL", BASE_URL)
    monkeypatch.setenv("EW_API_TOKEN", "test-token")
    monkeypatch.setenv("EW_STATE_FILE", str(tmp_path / "state.joblib"))
    monkeypatch.setenv("EW_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("EW_CREATE_TIMEOUT", "5")
    monkeypatch.setenv("EW_UPDATE_TIMEOUT", "5")
    monkeypatch.setenv("EW_DELETE_TIMEOUT", "5")
    settings = reload_settings()
    yield settings
    monkeypatch.undo()
    reload_settings()


@pytest.fixture
def api():
    """Fake CDN API with no routes."""
    return FakeCdnApi()


@pytest.fixture
def config():
    """Desired configuration matching distribution_body()."""
    return DistributionConfig(
        backend=Backend(
            origin_url="https://origin.example.com",
            origin_request_headers={"X-Origin": "edgework"},
        ),
        regions=["EU", "US"],
        optimizer=Optimizer(enabled=False),
    )


@pytest.fixture
def active_state():
    """Fully populated state for the ACTIVE test distribution."""
    distribution = Distribution.model_validate(distribution_body()["distribution"])
    return distribution_to_state(distribution, PROJECT_ID)


@pytest.fixture
def store():
    """Empty in-memory state store."""
    return MemoryStateStore()
