"""Idempotent bootstrap workflow for the hello world program.

A run connects to the cluster, funds a payer, makes sure the program and its
greeted account exist (reusing the deployment remembered in the config store
when it is still live), greets the account and reads the counter back.

All run state lives in a :class:`BootstrapSession` owned by the service; the
operations are meant to be called in order, once per process.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from solgreet.app.config import DEFAULT_CONFIG_KEY, FeePolicy, Settings
from solgreet.domain.models import (
    GREETING_ACCOUNT_SIZE,
    DecodeError,
    DeployedProgramRecord,
    GreetingAccount,
)
from solgreet.infrastructure.ledger import (
    BUFFER_METADATA_SIZE,
    LAMPORTS_PER_SOL,
    PROGRAM_ACCOUNT_SIZE,
    PROGRAMDATA_METADATA_SIZE,
    CliProgramDeployer,
    LedgerClient,
    LedgerError,
    SolanaLedgerClient,
)
from solgreet.infrastructure.observability import (
    get_logger,
    get_trace_context,
    log_context,
    record_exception,
    trace_span,
    traced,
)
from solgreet.infrastructure.persistence import (
    ConfigStore,
    CorruptionError,
    NotFoundError,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BootstrapError(Exception):
    """Base class for failures of a bootstrap operation.

    ``operation`` names the step that failed; the underlying cause is chained
    as ``__cause__``.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class ConnectivityError(BootstrapError):
    """The cluster could not be reached or answered with garbage."""


class FundingError(BootstrapError):
    """The payer could not be funded."""


class DeploymentError(BootstrapError):
    """The program or its greeted account could not be created."""


class InvocationError(BootstrapError):
    """The greeting transaction was rejected or never confirmed."""


class AccountNotFoundError(BootstrapError):
    """The greeted account does not exist on the cluster."""


class SessionStateError(BootstrapError):
    """An operation was called before the steps it depends on."""


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    PAYER_READY = "payer_ready"
    PROGRAM_READY = "program_ready"


_STATE_ORDER = (
    SessionState.DISCONNECTED,
    SessionState.CONNECTED,
    SessionState.PAYER_READY,
    SessionState.PROGRAM_READY,
)


@dataclass
class BootstrapSession:
    """Everything a run has established so far."""

    url: str
    state: SessionState = SessionState.DISCONNECTED
    version: str | None = None
    payer: Keypair | None = None
    program_id: Pubkey | None = None
    greeted_pubkey: Pubkey | None = None

    def reached(self, state: SessionState) -> bool:
        return _STATE_ORDER.index(self.state) >= _STATE_ORDER.index(state)

    def advance(self, state: SessionState) -> None:
        if not self.reached(state):
            self.state = state


class DeploymentStatus(str, Enum):
    """Outcome of checking the remembered deployment."""

    LIVE = "live"
    NOT_RECORDED = "not_recorded"
    UNREADABLE = "unreadable"
    OTHER_CLUSTER = "other_cluster"
    ACCOUNTS_MISSING = "accounts_missing"


@dataclass(frozen=True)
class DeploymentLookup:
    status: DeploymentStatus
    record: DeployedProgramRecord | None = None
    reason: str | None = None

    @property
    def is_live(self) -> bool:
        return self.status is DeploymentStatus.LIVE


@dataclass(frozen=True)
class FundingEstimate:
    """Breakdown of the lamports requested for a new payer.

    The rent items follow the upgradeable loader: the program is first
    written to a buffer account, then copied into a programdata account
    with room for ``max_len`` bytes, and the program account itself only
    points at the programdata.
    """

    lamports_per_signature: int
    deploy_signatures: int
    buffer_rent: int
    programdata_rent: int
    program_rent: int
    greeted_rent: int
    transaction_fees: int

    @property
    def deploy_fees(self) -> int:
        return self.lamports_per_signature * self.deploy_signatures

    @property
    def total(self) -> int:
        return (
            self.deploy_fees
            + self.buffer_rent
            + self.programdata_rent
            + self.program_rent
            + self.greeted_rent
            + self.transaction_fees
        )


def min_loader_signatures(program_size: int, chunk_size: int) -> int:
    """Signatures the loader needs to write ``program_size`` bytes and finalize."""
    return 2 * (math.ceil(program_size / chunk_size) + 1 + 1)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BootstrapService:
    """Sequence the steps that bring the hello world program to life.

    Example usage:
        service = BootstrapService.from_settings(load_settings())
        service.establish_connection()
        service.establish_payer()
        service.ensure_program_deployed()
        service.say_hello()
        count = service.report_greetings()

        # Test usage with a fake cluster:
        service = BootstrapService(fake_ledger, ConfigStore(tmp_path), program_path=binary)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        store: ConfigStore,
        *,
        program_path: Path | str,
        fees: FeePolicy | None = None,
        config_key: str = DEFAULT_CONFIG_KEY,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.program_path = Path(program_path)
        self.fees = fees or FeePolicy()
        self.config_key = config_key
        self.session = BootstrapSession(url=ledger.url)
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(
        cls, settings: Settings, ledger: LedgerClient | None = None
    ) -> "BootstrapService":
        """Create a service bound to a real cluster and the on-disk store."""
        if ledger is None:
            ledger = SolanaLedgerClient(
                settings.url,
                commitment=settings.commitment,
                timeout_seconds=settings.rpc_timeout_seconds,
                deployer=CliProgramDeployer(
                    solana_cli=settings.solana_cli, commitment=settings.commitment
                ),
            )
        return cls(
            ledger,
            ConfigStore(settings.store_dir),
            program_path=settings.program_path,
            fees=settings.fees,
            config_key=settings.config_key,
        )

    # -------------------- helpers --------------------
    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with log_context(operation=name), trace_span(name, url=self.session.url):
            with log_context(**get_trace_context()):
                try:
                    yield
                except (BootstrapError, DecodeError) as exc:
                    record_exception(exc)
                    self._logger.error("%s", exc)
                    raise

    def _require(self, operation: str, state: SessionState) -> None:
        if not self.session.reached(state):
            raise SessionStateError(
                operation,
                f"requires state '{state.value}', session is '{self.session.state.value}'",
            )

    def _payer(self, operation: str) -> Keypair:
        if self.session.payer is None:
            raise SessionStateError(operation, "no funded payer in this session")
        return self.session.payer

    def _deployment(self, operation: str) -> tuple[Pubkey, Pubkey]:
        program_id = self.session.program_id
        greeted = self.session.greeted_pubkey
        if program_id is None or greeted is None:
            raise SessionStateError(operation, "no deployed program in this session")
        return program_id, greeted

    def _read_program(self, operation: str) -> bytes:
        try:
            return self.program_path.read_bytes()
        except OSError as exc:
            raise DeploymentError(
                operation,
                f"cannot read program binary {self.program_path}: {exc.strerror or exc}",
            ) from exc

    def _program_size(self) -> int:
        try:
            return self.program_path.stat().st_size
        except OSError:
            self._logger.warning(
                "Program binary %s not found; funding without deployment costs",
                self.program_path,
            )
            return 0

    # -------------------- 1. connection --------------------
    def establish_connection(self) -> BootstrapSession:
        """Open the cluster connection and verify it with a version handshake."""
        op = "establish_connection"
        with self._operation(op):
            try:
                version = self.ledger.connect()
            except LedgerError as exc:
                raise ConnectivityError(op, f"cannot reach {self.session.url}: {exc}") from exc
            if not version:
                raise ConnectivityError(op, f"empty version from {self.session.url}")
            self.session.version = version
            self.session.advance(SessionState.CONNECTED)
            self._logger.info(
                "Connection to cluster established: %s (version %s)",
                self.session.url,
                version,
            )
            return self.session

    # -------------------- 2. payer --------------------
    def estimate_funding(self, program_size: int) -> FundingEstimate:
        """Price deployment, loader and greeted-account rent and a transaction buffer."""
        lamports_per_signature = self.ledger.get_lamports_per_signature()
        rent = self.ledger.get_minimum_balance_for_rent_exemption
        max_len = self.fees.program_max_len(program_size)
        return FundingEstimate(
            lamports_per_signature=lamports_per_signature,
            deploy_signatures=(
                min_loader_signatures(program_size, self.fees.loader_chunk_size)
                + self.fees.deploy_retry_margin
            ),
            buffer_rent=rent(BUFFER_METADATA_SIZE + program_size),
            programdata_rent=rent(PROGRAMDATA_METADATA_SIZE + max_len),
            program_rent=rent(PROGRAM_ACCOUNT_SIZE),
            greeted_rent=rent(GREETING_ACCOUNT_SIZE),
            transaction_fees=lamports_per_signature * self.fees.transaction_fee_buffer,
        )

    def establish_payer(self) -> BootstrapSession:
        """Create and fund the payer once; later calls only refresh its balance."""
        op = "establish_payer"
        with self._operation(op):
            self._require(op, SessionState.CONNECTED)
            if self.session.payer is None:
                try:
                    estimate = self.estimate_funding(self._program_size())
                except LedgerError as exc:
                    raise FundingError(op, f"cannot estimate fees: {exc}") from exc
                payer = Keypair()
                self._logger.info(
                    "Requesting airdrop of %d lamports for %s", estimate.total, payer.pubkey()
                )
                try:
                    self.ledger.request_airdrop(payer.pubkey(), estimate.total)
                except LedgerError as exc:
                    raise FundingError(op, f"airdrop failed: {exc}") from exc
                self.session.payer = payer

            payer = self._payer(op)
            try:
                lamports = self.ledger.get_balance(payer.pubkey())
            except LedgerError as exc:
                raise FundingError(op, f"cannot read payer balance: {exc}") from exc
            self.session.advance(SessionState.PAYER_READY)
            self._logger.info(
                "Using account %s containing %s SOL to pay for fees",
                payer.pubkey(),
                lamports / LAMPORTS_PER_SOL,
            )
            return self.session

    # -------------------- 3. deployment --------------------
    def stored_record(self) -> DeployedProgramRecord | None:
        """Return the remembered deployment without touching the network.

        Raises:
            CorruptionError: If the stored document is unreadable or invalid.
        """
        try:
            document = self.store.load(self.config_key)
        except NotFoundError:
            return None
        try:
            return DeployedProgramRecord.model_validate(document)
        except ValidationError as exc:
            raise CorruptionError(f"Invalid deployment record: {exc}") from exc

    def lookup_deployment(self) -> DeploymentLookup:
        """Classify the remembered deployment.

        Only confirmed outcomes are returned. A liveness check that fails for
        any other reason raises :class:`ConnectivityError`, so a flaky
        network never triggers a redeployment.
        """
        op = "ensure_program_deployed"
        try:
            record = self.stored_record()
        except CorruptionError as exc:
            return DeploymentLookup(DeploymentStatus.UNREADABLE, reason=str(exc))
        if record is None:
            return DeploymentLookup(DeploymentStatus.NOT_RECORDED, reason="no record")
        if record.url != self.session.url:
            return DeploymentLookup(
                DeploymentStatus.OTHER_CLUSTER,
                record,
                reason=f"recorded for {record.url}",
            )

        try:
            program = self.ledger.get_account_data(record.program_pubkey)
            greeted = (
                self.ledger.get_account_data(record.greeted)
                if program is not None
                else None
            )
        except LedgerError as exc:
            raise ConnectivityError(
                op, f"cannot verify program {record.program_id}: {exc}"
            ) from exc
        if program is None or greeted is None:
            missing = "program" if program is None else "greeted account"
            return DeploymentLookup(
                DeploymentStatus.ACCOUNTS_MISSING,
                record,
                reason=f"{missing} no longer exists",
            )
        return DeploymentLookup(DeploymentStatus.LIVE, record)

    def ensure_program_deployed(self) -> BootstrapSession:
        """Reuse the remembered deployment if it is live, otherwise deploy afresh."""
        op = "ensure_program_deployed"
        with self._operation(op):
            self._require(op, SessionState.PAYER_READY)
            lookup = self.lookup_deployment()
            if lookup.is_live and lookup.record is not None:
                self.session.program_id = lookup.record.program_pubkey
                self.session.greeted_pubkey = lookup.record.greeted
                self.session.advance(SessionState.PROGRAM_READY)
                self._logger.info(
                    "Program already loaded to account %s", self.session.program_id
                )
                return self.session

            self._logger.info(
                "Deploying program (%s: %s)", lookup.status.value, lookup.reason
            )
            self._deploy(op)
            self.session.advance(SessionState.PROGRAM_READY)
            return self.session

    def _deploy(self, op: str) -> None:
        payer = self._payer(op)
        data = self._read_program(op)

        self._logger.info("Loading hello world program...")
        try:
            program_id = self.ledger.deploy_program(
                payer, data, max_len=self.fees.program_max_len(len(data))
            )
        except LedgerError as exc:
            raise DeploymentError(op, f"program deployment failed: {exc}") from exc
        self._logger.info("Program loaded to account %s", program_id)

        greeted = Keypair()
        self._logger.info("Creating account %s to say hello to", greeted.pubkey())
        try:
            lamports = self.ledger.get_minimum_balance_for_rent_exemption(
                GREETING_ACCOUNT_SIZE
            )
            instruction = create_account(
                CreateAccountParams(
                    from_pubkey=payer.pubkey(),
                    to_pubkey=greeted.pubkey(),
                    lamports=lamports,
                    space=GREETING_ACCOUNT_SIZE,
                    owner=program_id,
                )
            )
            self.ledger.send_and_confirm("createAccount", [instruction], [payer, greeted])
        except LedgerError as exc:
            raise DeploymentError(op, f"greeted account creation failed: {exc}") from exc

        record = DeployedProgramRecord.from_pubkeys(
            self.session.url, program_id, greeted.pubkey()
        )
        try:
            self.store.save(self.config_key, record.to_document())
        except OSError as exc:
            raise DeploymentError(op, f"cannot persist deployment record: {exc}") from exc

        self.session.program_id = program_id
        self.session.greeted_pubkey = greeted.pubkey()

    # -------------------- 4. invoke --------------------
    def say_hello(self) -> str:
        """Send one greeting to the greeted account; returns the signature."""
        op = "say_hello"
        with self._operation(op):
            self._require(op, SessionState.PROGRAM_READY)
            payer = self._payer(op)
            program_id, greeted = self._deployment(op)

            self._logger.info("Saying hello to %s", greeted)
            instruction = Instruction(
                program_id,
                b"",  # all instructions are hellos
                [AccountMeta(greeted, is_signer=False, is_writable=True)],
            )
            try:
                return self.ledger.send_and_confirm("sayHello", [instruction], [payer])
            except LedgerError as exc:
                raise InvocationError(op, str(exc)) from exc

    # -------------------- 5. read --------------------
    def report_greetings(self) -> int:
        """Read how many times the greeted account has been greeted."""
        op = "report_greetings"
        with self._operation(op):
            self._require(op, SessionState.PROGRAM_READY)
            _, greeted = self._deployment(op)
            try:
                data = self.ledger.get_account_data(greeted)
            except LedgerError as exc:
                raise ConnectivityError(op, f"cannot fetch {greeted}: {exc}") from exc
            if data is None:
                raise AccountNotFoundError(op, f"cannot find the greeted account {greeted}")
            num_greets = GreetingAccount.decode(data).num_greets
            self._logger.info("%s has been greeted %d time(s)", greeted, num_greets)
            return num_greets

    # -------------------- convenience --------------------
    @traced("bootstrap.run")
    def run(self, times: int = 1) -> list[int]:
        """Bootstrap, then greet ``times`` times; returns each counter read."""
        if times < 0:
            raise ValueError("times must be non-negative")
        self.establish_connection()
        self.establish_payer()
        self.ensure_program_deployed()
        counts: list[int] = []
        for _ in range(times):
            self.say_hello()
            counts.append(self.report_greetings())
        return counts

    def reset(self) -> bool:
        """Forget the remembered deployment so the next run deploys afresh."""
        return self.store.delete(self.config_key)
