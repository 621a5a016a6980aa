"""
Edgework - CDN distribution lifecycle management.

Create, refresh, update and delete CDN distributions without ever losing
track of one: the distribution id is persisted the moment the API hands it
out, before anything waits for the distribution to become ACTIVE.

Usable from Python, from the `edgework` command line, or as a Pulumi
dynamic resource.
"""

from .client import CdnClient
from .controller import DistributionController
from .diagnostics import Diagnostic, Diagnostics, Severity
from .models import (
    Backend,
    DistributionConfig,
    DistributionState,
    DistributionStatus,
    Optimizer,
    ResourceId,
)
from .settings import EdgeworkSettings, get_settings, reload_settings
from .state import FileStateStore, MemoryStateStore, StateFile, StateStore
from .waiter import Deadline

__version__ = "0.1.0"
__all__ = [
    "Backend",
    "CdnClient",
    "Deadline",
    "Diagnostic",
    "Diagnostics",
    "DistributionConfig",
    "DistributionController",
    "DistributionState",
    "DistributionStatus",
    "EdgeworkSettings",
    "FileStateStore",
    "MemoryStateStore",
    "Optimizer",
    "ResourceId",
    "Severity",
    "StateFile",
    "StateStore",
    "get_settings",
    "reload_settings",
]
