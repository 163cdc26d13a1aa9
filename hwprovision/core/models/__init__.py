"""
Domain models — Pydantic types for hardware provisioning.

All models are re-exported here for convenient access:

    from hwprovision.core.models import HardwareFacts, DesiredState, MergedState
"""

from hwprovision.core.models.action import Action, ApplyResult
from hwprovision.core.models.hardware import (
    GpuGeneration,
    HardwareClass,
    HardwareFacts,
    VendorClass,
)
from hwprovision.core.models.state import (
    AppendBlock,
    ConfigDomain,
    DesiredState,
    FileArtifact,
    MergedState,
    OutcomeKind,
    RepositoryDescriptor,
    Skip,
    SuppressedWrite,
)

__all__ = [
    # action.py
    "Action",
    "ApplyResult",
    # state.py
    "AppendBlock",
    "ConfigDomain",
    "DesiredState",
    "FileArtifact",
    # hardware.py
    "GpuGeneration",
    "HardwareClass",
    "HardwareFacts",
    "MergedState",
    "OutcomeKind",
    "RepositoryDescriptor",
    "Skip",
    "SuppressedWrite",
    "VendorClass",
]
