"""
Edgework Controller - lifecycle of a single CDN distribution.

Create Pipeline: build payload → create call → anchor commit (id only) → wait for ACTIVE → final commit
Read Pipeline: get call → not found clears state / success commits mapped state
Update Pipeline: build payload → patch call → wait for ACTIVE → final commit
Delete Pipeline: delete call → wait until gone → clear state
Import Pipeline: parse combined id → anchor commit → read

Every operation returns Diagnostics instead of raising. Persisted state is only
touched through StateStore.commit/clear at the points listed above; a failure
anywhere else leaves it exactly as it was.
"""

import logging
from functools import partial
from typing import Optional

from .client import CdnClient
from .diagnostics import Diagnostics
from .errors import ApiError, StateError, WaitError
from .mapper import config_to_create_payload, config_to_update_payload, distribution_to_state
from .models import DistributionConfig, DistributionState, ResourceId
from .settings import get_settings
from .state import StateStore
from .waiter import Deadline, wait_for_status, wait_until_gone

logger = logging.getLogger(__name__)

CREATE_ERROR = "Error creating CDN distribution"
READ_ERROR = "Error reading CDN distribution"
UPDATE_ERROR = "Error updating CDN distribution"
DELETE_ERROR = "Error deleting CDN distribution"
IMPORT_ERROR = "Error importing CDN distribution"


class DistributionController:
    """Drives create/read/update/delete of CDN distributions."""

    def __init__(
        self,
        client: CdnClient,
        poll_interval: float | None = None,
        create_timeout: float | None = None,
        update_timeout: float | None = None,
        delete_timeout: float | None = None,
    ):
        """
        Initialize DistributionController.

        Args:
            client: CDN API client
            poll_interval: Seconds between status polls (overrides settings)
            create_timeout: Default create deadline in seconds (overrides settings)
            update_timeout: Default update deadline in seconds (overrides settings)
            delete_timeout: Default delete deadline in seconds (overrides settings)
        """
        settings = get_settings()

        self.client = client
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval
        self.create_timeout = create_timeout if create_timeout is not None else settings.create_timeout
        self.update_timeout = update_timeout if update_timeout is not None else settings.update_timeout
        self.delete_timeout = delete_timeout if delete_timeout is not None else settings.delete_timeout

    # =========================================================================
    # Operations
    # =========================================================================

    async def create(
        self,
        project_id: str,
        config: DistributionConfig,
        store: StateStore,
        deadline: Optional[Deadline] = None,
    ) -> Diagnostics:
        """
        Create a distribution and wait for it to become ACTIVE.

        The distribution id is committed to ``store`` as soon as the API hands
        it out; a later timeout or failure never takes it away again.

        Args:
            project_id: Project the distribution belongs to
            config: Desired configuration
            store: Where the distribution's state is persisted
            deadline: Bounds the whole operation (default: settings.create_timeout)

        Returns:
            Diagnostics; any error entry means the create failed
        """
        diags = Diagnostics()
        deadline = deadline or Deadline(self.create_timeout)

        try:
            payload = config_to_create_payload(config)
        except ValueError as e:
            diags.add_error(CREATE_ERROR, f"Creating API payload: {e}")
            return diags

        try:
            async with deadline.scope():
                created = await self.client.create_distribution(project_id, payload)
        except ApiError as e:
            logger.error(f"Create call failed for project {project_id}: {e}")
            diags.add_error(CREATE_ERROR, f"Calling API: {e}")
            return diags
        except TimeoutError:
            diags.add_error(CREATE_ERROR, "Calling API: deadline exceeded before the API responded")
            return diags

        resource_id = ResourceId(project_id=project_id, distribution_id=created.id)

        # Anchor: nothing else may happen before the id is persisted
        if not self._commit(store, DistributionState.anchor(resource_id), diags, CREATE_ERROR,
                            f"Distribution {resource_id} was created but its id could not be persisted"):
            return diags
        logger.info(f"Created distribution {resource_id}, id persisted")

        await self._converge(resource_id, store, deadline, diags, CREATE_ERROR, "Waiting for create")
        return diags

    async def read(self, store: StateStore, deadline: Optional[Deadline] = None) -> Diagnostics:
        """
        Refresh persisted state from the API.

        A distribution the API reports as not found (404/410) is removed from
        ``store``. Any other failure leaves ``store`` untouched.
        """
        diags = Diagnostics()
        deadline = deadline or Deadline()

        current = store.read()
        resource_id = current.resource_id if current else None
        if resource_id is None:
            diags.add_error(READ_ERROR, "No distribution id in state")
            return diags

        try:
            async with deadline.scope():
                distribution = await self.client.get_distribution(
                    resource_id.project_id, resource_id.distribution_id
                )
        except ApiError as e:
            if e.is_not_found:
                logger.info(f"Distribution {resource_id} no longer exists, removing it from state")
                self._clear(store, diags, READ_ERROR)
                return diags
            logger.error(f"Read of {resource_id} failed: {e}")
            diags.add_error(READ_ERROR, f"Calling API: {e}")
            return diags
        except TimeoutError:
            diags.add_error(READ_ERROR, "Calling API: deadline exceeded before the API responded")
            return diags

        self._map_and_commit(distribution, resource_id, store, diags, READ_ERROR)
        return diags

    async def update(
        self,
        config: DistributionConfig,
        store: StateStore,
        deadline: Optional[Deadline] = None,
    ) -> Diagnostics:
        """
        Apply a new configuration and wait for the distribution to be ACTIVE again.

        If the patch call or the wait fails, persisted state keeps its previous
        value in full.
        """
        diags = Diagnostics()
        deadline = deadline or Deadline(self.update_timeout)

        current = store.read()
        resource_id = current.resource_id if current else None
        if resource_id is None:
            diags.add_error(UPDATE_ERROR, "No distribution id in state")
            return diags

        try:
            payload = config_to_update_payload(config)
        except ValueError as e:
            diags.add_error(UPDATE_ERROR, f"Creating API payload: {e}")
            return diags

        try:
            async with deadline.scope():
                await self.client.update_distribution(
                    resource_id.project_id, resource_id.distribution_id, payload
                )
        except ApiError as e:
            logger.error(f"Update call failed for {resource_id}: {e}")
            diags.add_error(UPDATE_ERROR, f"Calling API: {e}")
            return diags
        except TimeoutError:
            diags.add_error(UPDATE_ERROR, "Calling API: deadline exceeded before the API responded")
            return diags

        logger.info(f"Update of distribution {resource_id} accepted")
        await self._converge(resource_id, store, deadline, diags, UPDATE_ERROR, "Waiting for update")
        return diags

    async def delete(
        self,
        store: StateStore,
        resource_id: Optional[ResourceId] = None,
        deadline: Optional[Deadline] = None,
    ) -> Diagnostics:
        """
        Delete a distribution and wait until the API no longer knows it.

        Deleting a distribution that is already gone succeeds. On any failure
        the state stays in ``store`` so the delete can be retried.

        Args:
            store: Where the distribution's state is persisted
            resource_id: Distribution to delete (default: the one in ``store``)
            deadline: Bounds the whole operation (default: settings.delete_timeout)
        """
        diags = Diagnostics()
        deadline = deadline or Deadline(self.delete_timeout)

        if resource_id is None:
            current = store.read()
            resource_id = current.resource_id if current else None
        if resource_id is None:
            diags.add_warning("Nothing to delete", "No distribution id in state")
            return diags

        try:
            async with deadline.scope():
                await self.client.delete_distribution(
                    resource_id.project_id, resource_id.distribution_id
                )
        except ApiError as e:
            if e.is_not_found:
                logger.info(f"Distribution {resource_id} already deleted")
                self._clear(store, diags, DELETE_ERROR)
                return diags
            logger.error(f"Delete call failed for {resource_id}: {e}")
            diags.add_error(DELETE_ERROR, f"Calling API: {e}")
            return diags
        except TimeoutError:
            diags.add_error(DELETE_ERROR, "Calling API: deadline exceeded before the API responded")
            return diags

        try:
            await wait_until_gone(
                self._fetcher(resource_id),
                deadline,
                self.poll_interval,
                description=f"Waiting for delete of {resource_id}",
            )
        except (WaitError, ApiError) as e:
            logger.error(str(e))
            diags.add_error(DELETE_ERROR, f"Waiting for delete: {e}")
            return diags

        logger.info(f"Deleted distribution {resource_id}")
        self._clear(store, diags, DELETE_ERROR)
        return diags

    async def import_state(
        self, combined_id: str, store: StateStore, deadline: Optional[Deadline] = None
    ) -> Diagnostics:
        """
        Start tracking an existing distribution by its "project_id,distribution_id".

        A store that already tracks a different distribution is left untouched.
        Importing the id it already tracks refreshes it.
        """
        diags = Diagnostics()

        try:
            resource_id = ResourceId.parse(combined_id)
        except ValueError as e:
            diags.add_error(IMPORT_ERROR, str(e))
            return diags

        current = store.read()
        if current is not None and current.resource_id != resource_id:
            diags.add_error(
                IMPORT_ERROR,
                f"State already tracks distribution {current.id or current.project_id}; "
                f"delete it before importing {resource_id}",
            )
            return diags

        if not self._commit(store, DistributionState.anchor(resource_id), diags, IMPORT_ERROR):
            return diags

        diags.extend(await self.read(store, deadline))
        if not diags.has_error() and store.read() is None:
            diags.add_error(IMPORT_ERROR, f"Distribution {resource_id} does not exist")
        return diags

    # =========================================================================
    # Helpers
    # =========================================================================

    def _fetcher(self, resource_id: ResourceId):
        return partial(
            self.client.get_distribution, resource_id.project_id, resource_id.distribution_id
        )

    async def _converge(
        self,
        resource_id: ResourceId,
        store: StateStore,
        deadline: Deadline,
        diags: Diagnostics,
        summary: str,
        phase: str,
    ) -> None:
        """Wait for ACTIVE, then commit the mapped final state.

        On failure only a diagnostic is added; whatever ``store`` holds stays.
        """
        try:
            distribution = await wait_for_status(
                self._fetcher(resource_id),
                deadline,
                self.poll_interval,
                description=f"{phase} of {resource_id}",
            )
        except (WaitError, ApiError) as e:
            logger.error(str(e))
            diags.add_error(summary, f"{phase}: {e}")
            return

        self._map_and_commit(distribution, resource_id, store, diags, summary)

    def _map_and_commit(self, distribution, resource_id, store, diags, summary) -> None:
        try:
            state = distribution_to_state(distribution, resource_id.project_id)
        except ValueError as e:
            diags.add_error(summary, f"Processing API payload: {e}")
            return
        if state.distribution_id != resource_id.distribution_id:
            diags.add_error(
                summary,
                f"Processing API payload: expected distribution {resource_id.distribution_id}, "
                f"got {state.distribution_id}",
            )
            return
        self._commit(store, state, diags, summary)

    @staticmethod
    def _commit(
        store: StateStore,
        state: DistributionState,
        diags: Diagnostics,
        summary: str,
        context: str = "Persisting state",
    ) -> bool:
        try:
            store.commit(state)
        except StateError as e:
            logger.error(f"{context}: {e}")
            diags.add_error(summary, f"{context}: {e}")
            return False
        return True

    @staticmethod
    def _clear(store: StateStore, diags: Diagnostics, summary: str) -> None:
        try:
            store.clear()
        except StateError as e:
            logger.error(f"Removing state: {e}")
            diags.add_error(summary, f"Removing state: {e}")
