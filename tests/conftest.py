from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import decode_create_account

from solgreet.domain.models import GREETING_LAYOUT
from solgreet.infrastructure.ledger import LedgerError
from solgreet.infrastructure.persistence import ConfigStore
from solgreet.services.bootstrap import BootstrapService

LOCAL_URL = "http://localhost:8899"


class FakeCluster:
    """In-memory stand-in for a cluster: balances, accounts and programs."""

    def __init__(self) -> None:
        self.balances: dict[Pubkey, int] = {}
        self.accounts: dict[Pubkey, bytearray] = {}
        self.owners: dict[Pubkey, Pubkey] = {}
        self.programs: set[Pubkey] = set()

    def wipe(self) -> None:
        """Simulate a cluster reset."""
        self.balances.clear()
        self.accounts.clear()
        self.owners.clear()
        self.programs.clear()


class FakeLedgerClient:
    """LedgerClient that executes create-account and hello instructions locally."""

    def __init__(self, cluster: FakeCluster | None = None, url: str = LOCAL_URL) -> None:
        self.url = url
        self.cluster = cluster or FakeCluster()
        self.calls: list[str] = []
        self.sent: list[str] = []
        self.deploy_max_lens: list[int | None] = []
        self.failures: dict[str, Exception] = {}
        self.version = "1.18.26"
        self.lamports_per_signature = 5000

    def _record(self, name: str) -> None:
        self.calls.append(name)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def connect(self) -> str:
        self._record("connect")
        return self.version

    def get_balance(self, pubkey: Pubkey) -> int:
        self._record("get_balance")
        return self.cluster.balances.get(pubkey, 0)

    def request_airdrop(self, pubkey: Pubkey, lamports: int) -> str:
        self._record("request_airdrop")
        self.cluster.balances[pubkey] = self.cluster.balances.get(pubkey, 0) + lamports
        return f"airdrop-{len(self.calls)}"

    def get_lamports_per_signature(self) -> int:
        self._record("get_lamports_per_signature")
        return self.lamports_per_signature

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        self._record("get_minimum_balance_for_rent_exemption")
        return (128 + size) * 6960

    def deploy_program(
        self, payer: Keypair, program_data: bytes, max_len: int | None = None
    ) -> Pubkey:
        self._record("deploy_program")
        self.deploy_max_lens.append(max_len)
        program_id = Keypair().pubkey()
        self.cluster.accounts[program_id] = bytearray(program_data)
        self.cluster.programs.add(program_id)
        return program_id

    def send_and_confirm(
        self,
        label: str,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
    ) -> str:
        self._record("send_and_confirm")
        self.sent.append(label)
        for ix in instructions:
            if ix.program_id == SYSTEM_PROGRAM_ID:
                params = decode_create_account(ix)
                new_account = params["to_pubkey"]
                if new_account in self.cluster.accounts:
                    raise LedgerError(f"account {new_account} already in use")
                self.cluster.accounts[new_account] = bytearray(params["space"])
                self.cluster.owners[new_account] = params["owner"]
            elif ix.program_id in self.cluster.programs:
                target = ix.accounts[0].pubkey
                if self.cluster.owners.get(target) != ix.program_id:
                    raise LedgerError("greeted account is not owned by the program")
                data = self.cluster.accounts[target]
                (num_greets,) = GREETING_LAYOUT.unpack_from(data)
                GREETING_LAYOUT.pack_into(data, 0, (num_greets + 1) & 0xFFFFFFFF)
            else:
                raise LedgerError(f"program {ix.program_id} is not deployed")
        return f"sig-{len(self.sent)}"

    def get_account_data(self, pubkey: Pubkey) -> bytes | None:
        self._record("get_account_data")
        data = self.cluster.accounts.get(pubkey)
        return None if data is None else bytes(data)


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def ledger(cluster: FakeCluster) -> FakeLedgerClient:
    return FakeLedgerClient(cluster)


@pytest.fixture
def store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "store")


@pytest.fixture
def program_binary(tmp_path: Path) -> Path:
    path = tmp_path / "dist" / "program" / "helloworld.so"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x7fELF" + bytes(2044))
    return path


@pytest.fixture
def make_service(
    cluster: FakeCluster, store: ConfigStore, program_binary: Path
) -> Callable[..., BootstrapService]:
    """Build a fresh service (one process run) against the shared fake cluster."""

    def factory(ledger: FakeLedgerClient | None = None) -> BootstrapService:
        return BootstrapService(
            ledger or FakeLedgerClient(cluster),
            store,
            program_path=program_binary,
        )

    return factory
