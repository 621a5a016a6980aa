"""
Pydantic models for Edgework.

This module contains the data models used throughout the distribution lifecycle:
- Identifiers and status values
- Desired configuration (what the caller asks for)
- Persisted state (what the controller records)
- Wire models (what the CDN API sends and receives)
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Core Enums
# =============================================================================

class DistributionStatus(str, Enum):
    """Lifecycle status of a CDN distribution."""
    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    UPDATING = "UPDATING"
    DELETING = "DELETING"
    ERROR = "ERROR"
    # Anything the API sends that this client does not know about
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "DistributionStatus":
        """Decode a status string from the API.

        Unknown, empty or missing values decode to UNRECOGNIZED.
        """
        if not value:
            return cls.UNRECOGNIZED
        try:
            return cls(value)
        except ValueError:
            return cls.UNRECOGNIZED


# =============================================================================
# Identifiers
# =============================================================================

class ResourceId(BaseModel):
    """Composite identifier of a distribution: project scope + distribution id."""

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(..., min_length=1)
    distribution_id: str = Field(..., min_length=1)

    @property
    def combined(self) -> str:
        """Opaque id used to address the distribution, e.g. "proj,dist"."""
        return f"{self.project_id},{self.distribution_id}"

    @classmethod
    def parse(cls, combined: str) -> "ResourceId":
        """Parse a combined "project_id,distribution_id" string.

        Raises:
            ValueError: If the string does not hold exactly two non-empty parts
        """
        parts = combined.split(",")
        if len(parts) != 2 or not all(part.strip() for part in parts):
            raise ValueError(
                "Expected import identifier with format "
                f"[project_id],[distribution_id], got {combined!r}"
            )
        return cls(project_id=parts[0].strip(), distribution_id=parts[1].strip())

    def __str__(self) -> str:
        return self.combined


# =============================================================================
# Desired Configuration
# =============================================================================

class Backend(BaseModel):
    """Origin the distribution pulls content from.

    Attributes:
        type: Backend kind, only "http" is supported
        origin_url: URL of the origin server
        origin_request_headers: Extra headers sent to the origin (None = unset)
        geofencing: Origin URL -> country codes allowed to use it (None = unset)
    """

    type: Literal["http"] = "http"
    origin_url: str = Field(..., min_length=1)
    origin_request_headers: Optional[dict[str, str]] = None
    geofencing: Optional[dict[str, list[str]]] = None


class Optimizer(BaseModel):
    """Image optimizer settings."""

    enabled: bool = False


class DistributionConfig(BaseModel):
    """Desired configuration of a distribution.

    Attributes:
        backend: Origin definition
        regions: Regions to serve content from, e.g. ["EU", "US"]
        blocked_countries: ISO country codes to block (None = unset)
        optimizer: Optimizer settings (None = unset)
    """

    backend: Backend
    regions: list[str] = Field(..., min_length=1)
    blocked_countries: Optional[list[str]] = None
    optimizer: Optional[Optimizer] = None


# =============================================================================
# Persisted State
# =============================================================================

class Domain(BaseModel):
    """A domain assigned to the distribution."""

    name: str
    status: str
    type: str
    errors: Optional[list[str]] = None


class DistributionState(BaseModel):
    """Durable snapshot of a distribution as known to the controller.

    Only ``project_id`` is always set. An anchor snapshot carries just the
    identifiers; everything else stays None until convergence succeeds.
    """

    id: Optional[str] = None
    distribution_id: Optional[str] = None
    project_id: str
    status: Optional[DistributionStatus] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    errors: Optional[list[str]] = None
    domains: Optional[list[Domain]] = None
    config: Optional[DistributionConfig] = None

    @classmethod
    def anchor(cls, resource_id: ResourceId) -> "DistributionState":
        """Minimal state holding only the identifiers."""
        return cls(
            id=resource_id.combined,
            distribution_id=resource_id.distribution_id,
            project_id=resource_id.project_id,
        )

    @property
    def resource_id(self) -> Optional[ResourceId]:
        if not self.distribution_id:
            return None
        return ResourceId(project_id=self.project_id, distribution_id=self.distribution_id)


# =============================================================================
# Wire Models
# =============================================================================

class WireModel(BaseModel):
    """Base for API payloads: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class StatusError(WireModel):
    key: Optional[str] = None
    en: Optional[str] = None
    de: Optional[str] = None


class HttpBackend(WireModel):
    type: Optional[str] = None
    origin_url: Optional[str] = None
    origin_request_headers: Optional[dict[str, str]] = None
    geofencing: Optional[dict[str, list[str]]] = None


class OptimizerConfig(WireModel):
    enabled: Optional[bool] = None


class Config(WireModel):
    backend: Optional[HttpBackend] = None
    regions: Optional[list[str]] = None
    blocked_countries: Optional[list[str]] = None
    optimizer: Optional[OptimizerConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_backend(cls, data: Any) -> Any:
        # The backend is a one-of; some responses nest it under its kind
        if isinstance(data, dict):
            backend = data.get("backend")
            if isinstance(backend, dict) and "http" in backend:
                data = {**data, "backend": backend["http"]}
        return data


class WireDomain(WireModel):
    name: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    errors: Optional[list[StatusError]] = None


class Distribution(WireModel):
    """A distribution as returned by the CDN API."""

    id: Optional[str] = None
    project_id: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    config: Optional[Config] = None
    domains: Optional[list[WireDomain]] = None
    errors: Optional[list[StatusError]] = None
