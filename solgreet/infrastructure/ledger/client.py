"""Solana RPC adapter implementing :class:`LedgerClient`.

This module centralises cluster access for the bootstrap workflow. It wraps a
:class:`solana.rpc.api.Client`, turns every transport or RPC failure into a
:class:`LedgerError`, and blocks on confirmation for airdrops and
transactions so callers never see a half-finished submission.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence, TypeVar

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from solgreet.infrastructure.observability import get_logger, trace_span

from .base import LedgerError
from .deployer import CliProgramDeployer

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_LAMPORTS_PER_SIGNATURE = 5000


class SolanaLedgerClient:
    """Synchronous cluster client with confirmation handling."""

    def __init__(
        self,
        url: str,
        *,
        commitment: str = "confirmed",
        timeout_seconds: float = 30.0,
        client: Client | None = None,
        deployer: CliProgramDeployer | None = None,
    ) -> None:
        self.url = url
        self.commitment = Commitment(commitment)
        self.client = client or Client(
            url, commitment=self.commitment, timeout=timeout_seconds
        )
        self.deployer = deployer or CliProgramDeployer(commitment=commitment)

    # -------------------- request helpers --------------------
    def _call(self, method: str, fn: Callable[[], T]) -> T:
        with trace_span(f"rpc.{method}", kind="client", url=self.url):
            try:
                return fn()
            except LedgerError:
                raise
            except Exception as exc:
                logger.debug("RPC %s failed: %s", method, exc)
                raise LedgerError(f"{method} failed: {exc}") from exc

    def _confirm(self, signature: Signature, last_valid_block_height: int | None = None) -> None:
        resp = self._call(
            "confirmTransaction",
            lambda: self.client.confirm_transaction(
                signature,
                commitment=self.commitment,
                last_valid_block_height=last_valid_block_height,
            ),
        )
        statuses = resp.value
        status = statuses[0] if statuses else None
        if status is None:
            raise LedgerError(f"transaction {signature} was not confirmed")
        if status.err is not None:
            raise LedgerError(f"transaction {signature} failed: {status.err}")

    # -------------------- cluster queries --------------------
    def connect(self) -> str:
        resp = self._call("getVersion", self.client.get_version)
        version = getattr(resp.value, "solana_core", None)
        if not version:
            raise LedgerError(f"malformed version response from {self.url}: {resp!r}")
        return str(version)

    def get_balance(self, pubkey: Pubkey) -> int:
        resp = self._call("getBalance", lambda: self.client.get_balance(pubkey))
        return int(resp.value)

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        resp = self._call(
            "getMinimumBalanceForRentExemption",
            lambda: self.client.get_minimum_balance_for_rent_exemption(size),
        )
        return int(resp.value)

    def get_lamports_per_signature(self) -> int:
        """Price a single-signature message against the latest blockhash."""
        blockhash = self._call(
            "getLatestBlockhash", self.client.get_latest_blockhash
        ).value.blockhash
        probe = Keypair().pubkey()
        message = Message.new_with_blockhash(
            [transfer(TransferParams(from_pubkey=probe, to_pubkey=probe, lamports=0))],
            probe,
            blockhash,
        )
        resp = self._call(
            "getFeeForMessage", lambda: self.client.get_fee_for_message(message)
        )
        if resp.value is None:
            logger.warning(
                "Cluster did not price the fee probe; assuming %d lamports per signature",
                DEFAULT_LAMPORTS_PER_SIGNATURE,
            )
            return DEFAULT_LAMPORTS_PER_SIGNATURE
        return int(resp.value)

    def get_account_data(self, pubkey: Pubkey) -> bytes | None:
        resp = self._call("getAccountInfo", lambda: self.client.get_account_info(pubkey))
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    # -------------------- state changes --------------------
    def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        resp = self._call(
            "requestAirdrop",
            lambda: self.client.request_airdrop(pubkey, lamports, commitment=self.commitment),
        )
        signature = resp.value
        self._confirm(signature)
        logger.debug("Airdrop of %d lamports to %s confirmed: %s", lamports, pubkey, signature)
        return str(signature)

    def deploy_program(
        self, payer: Keypair, program_data: bytes, max_len: int | None = None
    ) -> Pubkey:
        return self._call(
            "deployProgram",
            lambda: self.deployer.deploy(self.url, payer, program_data, max_len),
        )

    def send_and_confirm(
        self,
        label: str,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
    ) -> str:
        if not signers:
            raise ValueError("At least one signer (the fee payer) is required")
        latest = self._call("getLatestBlockhash", self.client.get_latest_blockhash).value
        tx = Transaction.new_signed_with_payer(
            list(instructions), signers[0].pubkey(), list(signers), latest.blockhash
        )
        opts = TxOpts(skip_confirmation=True, preflight_commitment=self.commitment)
        resp: Any = self._call(
            "sendTransaction", lambda: self.client.send_transaction(tx, opts=opts)
        )
        signature = resp.value
        self._confirm(signature, latest.last_valid_block_height)
        logger.debug("Transaction '%s' confirmed: %s", label, signature)
        return str(signature)
