"""
Domain models — pydantic types for the installer.

All models are re-exported here for convenient access:

    from devsetup.core.models import ResourceDescriptor, OperationOutcome, RunConfig
"""

from devsetup.core.models.outcome import (
    BatchReport,
    FailureKind,
    OperationAction,
    OperationOutcome,
    OperationResult,
)
from devsetup.core.models.profile import Profile, ResourceEntry
from devsetup.core.models.resource import (
    INSTALL_ORDER,
    UNINSTALL_ORDER,
    ResourceDescriptor,
    ResourceKind,
    ResourceState,
)
from devsetup.core.models.run_config import RunConfig

__all__ = [
    # outcome.py
    "BatchReport",
    "FailureKind",
    "OperationAction",
    "OperationOutcome",
    "OperationResult",
    # profile.py
    "Profile",
    "ResourceEntry",
    # resource.py
    "INSTALL_ORDER",
    "UNINSTALL_ORDER",
    "ResourceDescriptor",
    "ResourceKind",
    "ResourceState",
    # run_config.py
    "RunConfig",
]
