"""Capability interface for talking to a Solana cluster.

The bootstrap workflow only depends on :class:`LedgerClient`, so tests can
drive it with an in-memory fake while production code uses
:class:`~solgreet.infrastructure.ledger.client.SolanaLedgerClient`.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

LAMPORTS_PER_SOL = 1_000_000_000


class LedgerError(Exception):
    """Raised when a cluster request fails or cannot be confirmed."""


@runtime_checkable
class LedgerClient(Protocol):
    url: str

    def connect(self) -> str:
        """Perform a version handshake and return the cluster core version."""
        ...

    def get_balance(self, pubkey: Pubkey) -> int:
        ...

    def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        """Request faucet funds and block until the airdrop is confirmed."""
        ...

    def get_lamports_per_signature(self) -> int:
        ...

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        ...

    def deploy_program(
        self, payer: Keypair, program_data: bytes, max_len: int | None = None
    ) -> Pubkey:
        """Deploy a program binary and return its program id.

        ``max_len`` is the programdata capacity to reserve, in bytes.
        """
        ...

    def send_and_confirm(
        self,
        label: str,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
    ) -> str:
        """Submit a transaction paid by ``signers[0]`` and wait for confirmation."""
        ...

    def get_account_data(self, pubkey: Pubkey) -> bytes | None:
        """Return account data, or ``None`` when the account does not exist."""
        ...
