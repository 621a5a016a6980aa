"""Translation between CDN API payloads and persisted distribution state.

Everything here is pure: no I/O, no logging, no state. Optional nested
configuration values that the API leaves out, or echoes back empty, map to
None so that "unset" never turns into "set to empty".
"""

from datetime import datetime, timezone
from typing import Any, Optional

from .models import (
    Backend,
    Config,
    Distribution,
    DistributionConfig,
    DistributionState,
    DistributionStatus,
    Domain,
    Optimizer,
    ResourceId,
    StatusError,
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as RFC 3339 text in UTC.

    Naive datetimes are taken to be UTC already.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _unset_if_empty(value):
    return value if value else None


def _error_messages(errors: Optional[list[StatusError]]) -> Optional[list[str]]:
    if errors is None:
        return None
    return [error.en or error.key or "" for error in errors]


def _backend_payload(backend: Backend) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": backend.type,
        "originUrl": backend.origin_url,
    }
    if backend.origin_request_headers is not None:
        payload["originRequestHeaders"] = dict(backend.origin_request_headers)
    if backend.geofencing is not None:
        payload["geofencing"] = {
            url: list(countries) for url, countries in backend.geofencing.items()
        }
    return payload


def config_to_payload(config: DistributionConfig) -> dict[str, Any]:
    """Build the camelCase ``config`` object for the API.

    Unset optional values are left out of the payload entirely.
    """
    payload: dict[str, Any] = {
        "backend": _backend_payload(config.backend),
        "regions": list(config.regions),
    }
    if config.blocked_countries is not None:
        payload["blockedCountries"] = list(config.blocked_countries)
    if config.optimizer is not None:
        payload["optimizer"] = {"enabled": config.optimizer.enabled}
    return payload


def config_to_create_payload(config: DistributionConfig) -> dict[str, Any]:
    """Build the body of a create call.

    The create endpoint takes the backend fields flattened into the top level.
    """
    nested = config_to_payload(config)
    payload = {key: value for key, value in nested.pop("backend").items() if key != "type"}
    payload.update(nested)
    return payload


def config_to_update_payload(config: DistributionConfig) -> dict[str, Any]:
    """Build the body of a patch call."""
    return {"config": config_to_payload(config)}


def wire_config_to_config(config: Optional[Config]) -> Optional[DistributionConfig]:
    """Map the API's config echo onto a DistributionConfig.

    Raises:
        ValueError: If the echo lacks a backend or regions
    """
    if config is None:
        return None
    if config.backend is None or not config.backend.origin_url:
        raise ValueError("API response config has no backend origin URL")

    backend = Backend(
        type=config.backend.type or "http",
        origin_url=config.backend.origin_url,
        origin_request_headers=_unset_if_empty(config.backend.origin_request_headers),
        geofencing=_unset_if_empty(config.backend.geofencing),
    )

    optimizer = None
    if config.optimizer is not None:
        optimizer = Optimizer(enabled=bool(config.optimizer.enabled))

    return DistributionConfig(
        backend=backend,
        regions=list(config.regions or []),
        blocked_countries=_unset_if_empty(config.blocked_countries),
        optimizer=optimizer,
    )


def distribution_to_state(distribution: Distribution, project_id: str) -> DistributionState:
    """Map a distribution returned by the API to persisted state.

    Args:
        distribution: Wire representation from a get call
        project_id: Project scope the distribution lives in

    Returns:
        Fully populated DistributionState

    Raises:
        ValueError: If the payload lacks an id or carries an unusable config
    """
    if not distribution.id:
        raise ValueError("API response has no distribution id")

    domains = None
    if distribution.domains is not None:
        domains = [
            Domain(
                name=domain.name or "",
                status=domain.status or "",
                type=domain.type or "",
                errors=_unset_if_empty(_error_messages(domain.errors)),
            )
            for domain in distribution.domains
        ]

    return DistributionState(
        id=ResourceId(project_id=project_id, distribution_id=distribution.id).combined,
        distribution_id=distribution.id,
        project_id=project_id,
        status=DistributionStatus.from_wire(distribution.status),
        created_at=format_timestamp(distribution.created_at),
        updated_at=format_timestamp(distribution.updated_at),
        errors=_error_messages(distribution.errors),
        domains=domains,
        config=wire_config_to_config(distribution.config),
    )
