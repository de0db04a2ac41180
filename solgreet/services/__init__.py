"""Service layer modules for Solgreet."""

from .bootstrap import (  # noqa: F401
    AccountNotFoundError,
    BootstrapError,
    BootstrapService,
    BootstrapSession,
    ConnectivityError,
    DeploymentError,
    DeploymentLookup,
    DeploymentStatus,
    FundingError,
    FundingEstimate,
    InvocationError,
    SessionState,
    SessionStateError,
    min_loader_signatures,
)

__all__ = [
    "AccountNotFoundError",
    "BootstrapError",
    "BootstrapService",
    "BootstrapSession",
    "ConnectivityError",
    "DeploymentError",
    "DeploymentLookup",
    "DeploymentStatus",
    "FundingError",
    "FundingEstimate",
    "InvocationError",
    "SessionState",
    "SessionStateError",
    "min_loader_signatures",
]
