"""Solana cluster adapters for Solgreet.

The bootstrap workflow programs against :class:`LedgerClient`; the production
implementation is :class:`SolanaLedgerClient`.
"""

from .base import LAMPORTS_PER_SOL, LedgerClient, LedgerError
from .client import SolanaLedgerClient
from .deployer import (
    BUFFER_METADATA_SIZE,
    PROGRAM_ACCOUNT_SIZE,
    PROGRAMDATA_METADATA_SIZE,
    CliProgramDeployer,
)

__all__ = [
    "BUFFER_METADATA_SIZE",
    "CliProgramDeployer",
    "LAMPORTS_PER_SOL",
    "LedgerClient",
    "LedgerError",
    "PROGRAM_ACCOUNT_SIZE",
    "PROGRAMDATA_METADATA_SIZE",
    "SolanaLedgerClient",
]
