"""HTTP client for the CDN distribution API."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .errors import ApiError, ConfigurationError
from .models import Distribution
from .settings import get_settings

logger = logging.getLogger(__name__)


class CdnClient:
    """Async client for ``/v1beta/projects/{projectId}/distributions``.

    Every failure surfaces as ApiError: non-2xx responses carry their status
    code, transport failures carry ``status_code=None``.

    Example:
        >>> async with CdnClient() as client:
        ...     distribution = await client.get_distribution("proj", "dist")
    """

    API_VERSION = "v1beta"

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize CdnClient.

        Args:
            base_url: API base URL (default: settings.api_url)
            token: Bearer token (default: settings.api_token)
            timeout: Per-request timeout in seconds (default: settings.request_timeout)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests

        Raises:
            ConfigurationError: If no API URL is given or configured
        """
        settings = get_settings()
        base_url = base_url or settings.api_url
        if not base_url:
            raise ConfigurationError("No CDN API URL configured (set EW_API_URL)")
        token = token if token is not None else settings.api_token

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CdnClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _path(self, project_id: str, distribution_id: Optional[str] = None) -> str:
        path = f"/{self.API_VERSION}/projects/{project_id}/distributions"
        if distribution_id is not None:
            path = f"{path}/{distribution_id}"
        return path

    async def _request(
        self, method: str, path: str, json: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise ApiError(
                f"{method} {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    @staticmethod
    def _parse_distribution(response: httpx.Response) -> Distribution:
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON in API response: {e}", status_code=response.status_code
            ) from e
        if not isinstance(body, dict):
            raise ApiError("Unexpected API response shape", status_code=response.status_code)
        try:
            return Distribution.model_validate(body.get("distribution") or {})
        except ValidationError as e:
            raise ApiError(
                f"Unexpected distribution payload: {e}", status_code=response.status_code
            ) from e

    async def create_distribution(self, project_id: str, payload: dict[str, Any]) -> Distribution:
        """Request a new distribution.

        Returns:
            The distribution as accepted by the API; its ``id`` is always set

        Raises:
            ApiError: If the call fails or the response carries no id
        """
        response = await self._request("POST", self._path(project_id), json=payload)
        distribution = self._parse_distribution(response)
        if not distribution.id:
            raise ApiError(
                "Create response carries no distribution id",
                status_code=response.status_code,
            )
        logger.debug(f"Create accepted with status {response.status_code}: {distribution.id}")
        return distribution

    async def get_distribution(self, project_id: str, distribution_id: str) -> Distribution:
        response = await self._request("GET", self._path(project_id, distribution_id))
        return self._parse_distribution(response)

    async def update_distribution(
        self, project_id: str, distribution_id: str, payload: dict[str, Any]
    ) -> None:
        await self._request("PATCH", self._path(project_id, distribution_id), json=payload)

    async def delete_distribution(self, project_id: str, distribution_id: str) -> None:
        await self._request("DELETE", self._path(project_id, distribution_id))
