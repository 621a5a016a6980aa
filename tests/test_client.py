"""Tests for the CDN API client."""

import json

import httpx
import pytest

from edgework.client import CdnClient
from edgework.errors import ApiError, ConfigurationError
from edgework.settings import reload_settings
from tests.conftest import (
    COLLECTION_PATH,
    DISTRIBUTION_ID,
    ITEM_PATH,
    PROJECT_ID,
    distribution_body,
    json_response,
)


@pytest.mark.asyncio
async def test_create_posts_to_collection(api):
    api.on("POST", COLLECTION_PATH, json_response(202, {"distribution": {"id": DISTRIBUTION_ID}}))

    async with api.client() as client:
        distribution = await client.create_distribution(PROJECT_ID, {"originUrl": "https://o.example.com"})

    assert distribution.id == DISTRIBUTION_ID
    request = api.requests[0]
    assert request.url.path == COLLECTION_PATH
    assert request.headers["Authorization"] == "Bearer test-token"
    assert json.loads(request.content) == {"originUrl": "https://o.example.com"}


@pytest.mark.asyncio
async def test_get_parses_distribution(api):
    api.on("GET", ITEM_PATH, json_response(200, distribution_body("ACTIVE")))

    async with api.client() as client:
        distribution = await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)

    assert distribution.status == "ACTIVE"
    assert distribution.project_id == PROJECT_ID
    assert distribution.config.backend.origin_url == "https://origin.example.com"
    assert distribution.created_at.year == 2024


@pytest.mark.asyncio
async def test_update_patches_item(api):
    api.on("PATCH", ITEM_PATH, json_response(202, distribution_body("UPDATING")))

    async with api.client() as client:
        await client.update_distribution(PROJECT_ID, DISTRIBUTION_ID, {"config": {"regions": ["EU"]}})

    assert api.calls() == [f"PATCH {ITEM_PATH}"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [404, 410])
async def test_not_found_statuses(api, status_code):
    api.on("DELETE", ITEM_PATH, json_response(status_code))

    async with api.client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.delete_distribution(PROJECT_ID, DISTRIBUTION_ID)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.is_not_found
    assert not exc_info.value.is_transient


@pytest.mark.asyncio
async def test_error_carries_status_and_body(api):
    api.on("GET", ITEM_PATH, json_response(503, {"message": "maintenance"}))

    async with api.client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)

    assert exc_info.value.status_code == 503
    assert "maintenance" in exc_info.value.body
    assert exc_info.value.is_transient


@pytest.mark.asyncio
async def test_transport_error_has_no_status(api):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    api.on("GET", ITEM_PATH, refuse)

    async with api.client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)

    assert exc_info.value.status_code is None
    assert exc_info.value.is_transient


@pytest.mark.asyncio
async def test_invalid_json_is_an_api_error(api):
    api.on("GET", ITEM_PATH, httpx.Response(200, content=b"<html>oops</html>"))

    async with api.client() as client:
        with pytest.raises(ApiError, match="Invalid JSON"):
            await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)


@pytest.mark.asyncio
async def test_invalid_payload_is_an_api_error(api):
    api.on("GET", ITEM_PATH, json_response(200, distribution_body(createdAt="not a timestamp")))

    async with api.client() as client:
        with pytest.raises(ApiError, match="Unexpected distribution payload"):
            await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)


@pytest.mark.asyncio
async def test_create_without_id_is_an_api_error(api):
    api.on("POST", COLLECTION_PATH, json_response(202, {}))

    async with api.client() as client:
        with pytest.raises(ApiError, match="no distribution id"):
            await client.create_distribution(PROJECT_ID, {})


@pytest.mark.asyncio
async def test_defaults_come_from_settings():
    requests = []

    def handler(request):
        requests.append(request)
        return json_response(200, distribution_body())

    async with CdnClient(transport=httpx.MockTransport(handler)) as client:
        await client.get_distribution(PROJECT_ID, DISTRIBUTION_ID)

    assert str(requests[0].url) == f"https://cdn.test{ITEM_PATH}"
    assert requests[0].headers["Authorization"] == "Bearer test-token"


def test_missing_api_url_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("EW_API_URL", "")
    reload_settings()

    with pytest.raises(ConfigurationError, match="EW_API_URL"):
        CdnClient()
