"""Pulumi dynamic provider for CDN distributions.

This module exposes DistributionController to Pulumi programs. Each provider
call runs one controller operation against an in-memory state store seeded
from Pulumi's own state, and turns error diagnostics into exceptions.
"""

import asyncio
from typing import Any, Optional

import pulumi
from pulumi.dynamic import (
    CreateResult,
    DiffResult,
    ReadResult,
    ResourceProvider,
    UpdateResult,
)

from edgework.client import CdnClient
from edgework.controller import DistributionController
from edgework.diagnostics import Diagnostics
from edgework.errors import EdgeworkError
from edgework.models import DistributionConfig, DistributionState, ResourceId
from edgework.state import MemoryStateStore

# Computed outputs, filled in from persisted state
STATE_OUTPUTS = (
    "distribution_id",
    "status",
    "created_at",
    "updated_at",
    "errors",
    "domains",
)


class DistributionInputs:
    """Input properties for CdnDistribution resource.

    Attributes:
        project_id: Project the distribution belongs to
        config: Desired distribution configuration
    """

    def __init__(self, project_id: str, config: DistributionConfig):
        """Initialize DistributionInputs.

        Args:
            project_id: Project the distribution belongs to
            config: Desired distribution configuration
        """
        self.project_id = project_id
        self.config = config

    def to_props(self) -> dict[str, Any]:
        props: dict[str, Any] = {
            "project_id": self.project_id,
            "config": self.config.model_dump(mode="json"),
        }
        for name in STATE_OUTPUTS:
            props[name] = None
        return props


class DistributionProvider(ResourceProvider):
    """Pulumi dynamic provider for CDN distributions.

    The provider is serialized into the Pulumi program, so it carries no
    attributes; API endpoint, token and timeouts come from EdgeworkSettings
    at run time.
    """

    def _client(self) -> CdnClient:
        return CdnClient()

    async def _run(self, operation: str, store: MemoryStateStore, **kwargs) -> Diagnostics:
        async with self._client() as client:
            controller = DistributionController(client)
            return await getattr(controller, operation)(store=store, **kwargs)

    @staticmethod
    def _raise_on_error(diags: Diagnostics, hint: str = "") -> None:
        if diags.has_error():
            message = "; ".join(str(entry) for entry in diags.errors())
            raise EdgeworkError(f"{message}{hint}")

    @staticmethod
    def _anchor(id: str) -> DistributionState:
        return DistributionState.anchor(ResourceId.parse(id))

    @staticmethod
    def _outs(props: dict[str, Any], state: DistributionState) -> dict[str, Any]:
        dumped = state.model_dump(mode="json")
        outs = dict(props)
        outs["project_id"] = state.project_id
        for name in STATE_OUTPUTS:
            outs[name] = dumped[name]
        if state.config is not None:
            outs["config"] = dumped["config"]
        return outs

    def create(self, props: dict[str, Any]) -> CreateResult:
        """Create a distribution and wait for it to become ACTIVE.

        Args:
            props: Resource properties

        Returns:
            CreateResult with the combined id and outputs

        Raises:
            EdgeworkError: If creation fails; the message names the distribution
                id whenever the API had already accepted it
        """
        config = DistributionConfig.model_validate(props["config"])
        store = MemoryStateStore()
        diags = asyncio.run(
            self._run("create", store, project_id=props["project_id"], config=config)
        )

        state = store.read()
        hint = ""
        if state is not None:
            hint = (
                f" (distribution {state.id} exists; "
                f"import it with id '{state.id}' once the cause is fixed)"
            )
        self._raise_on_error(diags, hint)
        return CreateResult(id_=state.id, outs=self._outs(props, state))

    def read(self, id: str, props: dict[str, Any]) -> ReadResult:
        """Refresh a distribution.

        An empty id in the result tells Pulumi the distribution is gone.
        """
        store = MemoryStateStore(self._anchor(id))
        diags = asyncio.run(self._run("read", store))
        self._raise_on_error(diags)

        state = store.read()
        if state is None:
            return ReadResult(id_="", outs={})
        return ReadResult(id_=state.id, outs=self._outs(props, state))

    def update(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> UpdateResult:
        """Apply a new configuration.

        Args:
            id: Combined distribution id
            old_props: Old resource properties
            new_props: New resource properties

        Returns:
            UpdateResult with new outputs
        """
        config = DistributionConfig.model_validate(new_props["config"])
        store = MemoryStateStore(self._anchor(id))
        diags = asyncio.run(self._run("update", store, config=config))
        self._raise_on_error(diags)
        return UpdateResult(outs=self._outs(new_props, store.read()))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """Delete a distribution; one that is already gone counts as deleted."""
        store = MemoryStateStore(self._anchor(id))
        diags = asyncio.run(self._run("delete", store))
        self._raise_on_error(diags)

    def diff(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> DiffResult:
        """Check what changed between old and new properties.

        Moving a distribution to another project requires replacement, config
        changes are applied in place.
        """
        changes = []
        replaces = []

        if old_props.get("project_id") != new_props.get("project_id"):
            changes.append("project_id")
            replaces.append("project_id")

        if old_props.get("config") != new_props.get("config"):
            changes.append("config")

        return DiffResult(
            changes=len(changes) > 0,
            replaces=replaces,
            stables=[],
            delete_before_replace=False,
        )


class CdnDistribution(pulumi.dynamic.Resource):
    """Pulumi resource for a CDN distribution.

    Attributes:
        project_id: Project the distribution belongs to
        config: Configuration as last observed
        distribution_id: Distribution id assigned by the API (output)
        status: Distribution status (output)
        domains: Domains assigned to the distribution (output)
    """

    project_id: pulumi.Output[str]
    config: pulumi.Output[dict]
    distribution_id: pulumi.Output[str]
    status: pulumi.Output[str]
    created_at: pulumi.Output[str]
    updated_at: pulumi.Output[str]
    errors: pulumi.Output[list]
    domains: pulumi.Output[list]

    def __init__(
        self,
        resource_name: str,
        inputs: DistributionInputs,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        """Initialize CdnDistribution resource.

        Args:
            resource_name: Pulumi resource name
            inputs: Distribution input properties
            opts: Pulumi resource options
        """
        super().__init__(
            DistributionProvider(),
            resource_name,
            inputs.to_props(),
            opts,
        )
