"""Domain models package.

This package contains the on-chain and persisted models for Solgreet.
"""

from .greeting import GREETING_ACCOUNT_SIZE, GREETING_LAYOUT, DecodeError, GreetingAccount
from .program import DeployedProgramRecord

__all__ = [
    "DecodeError",
    "DeployedProgramRecord",
    "GREETING_ACCOUNT_SIZE",
    "GREETING_LAYOUT",
    "GreetingAccount",
]
