"""Program deployment through the ``solana`` command-line tool.

solana-py has no loader implementation, so deployments are handed to
``solana program deploy``. The payer and program keypairs are written to a
private temporary directory for the duration of the command only.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solgreet.infrastructure.observability import get_logger

from .base import LedgerError

logger = get_logger(__name__)

# Account sizes used by the upgradeable loader that `solana program deploy` targets.
BUFFER_METADATA_SIZE = 37
PROGRAMDATA_METADATA_SIZE = 45
PROGRAM_ACCOUNT_SIZE = 36


def _write_keypair(path: Path, keypair: Keypair) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(list(bytes(keypair)), f)


class CliProgramDeployer:
    """Deploy programs by invoking ``solana program deploy``."""

    def __init__(
        self,
        *,
        solana_cli: str = "solana",
        commitment: str = "confirmed",
        timeout_seconds: float = 600.0,
    ) -> None:
        self.solana_cli = solana_cli
        self.commitment = commitment
        self.timeout_seconds = timeout_seconds

    def build_command(
        self,
        url: str,
        payer_path: Path,
        program_keypair_path: Path,
        binary_path: Path,
        max_len: int | None = None,
    ) -> list[str]:
        cmd = [
            self.solana_cli,
            "program",
            "deploy",
            str(binary_path),
            "--url",
            url,
            "--keypair",
            str(payer_path),
            "--program-id",
            str(program_keypair_path),
            "--commitment",
            self.commitment,
            "--output",
            "json",
        ]
        if max_len is not None:
            cmd += ["--max-len", str(max_len)]
        return cmd

    def deploy(
        self,
        url: str,
        payer: Keypair,
        program_data: bytes,
        max_len: int | None = None,
    ) -> Pubkey:
        """Deploy ``program_data`` and return its program id.

        ``max_len`` reserves room in the programdata account for upgrades; the
        CLI picks its own default when it is ``None``.
        """
        executable = shutil.which(self.solana_cli)
        if executable is None:
            raise LedgerError(
                f"'{self.solana_cli}' not found on PATH; install the Solana CLI tools"
            )

        program_keypair = Keypair()
        with tempfile.TemporaryDirectory(prefix="solgreet-deploy-") as tmp:
            tmp_dir = Path(tmp)
            payer_path = tmp_dir / "payer.json"
            program_keypair_path = tmp_dir / "program.json"
            binary_path = tmp_dir / "program.so"
            _write_keypair(payer_path, payer)
            _write_keypair(program_keypair_path, program_keypair)
            binary_path.write_bytes(program_data)

            cmd = self.build_command(
                url, payer_path, program_keypair_path, binary_path, max_len
            )
            cmd[0] = executable
            logger.debug("Running %s", " ".join(cmd))
            try:
                proc = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                )
            except subprocess.TimeoutExpired as exc:
                raise LedgerError(
                    f"program deploy timed out after {self.timeout_seconds:.0f}s"
                ) from exc

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout).strip()
            raise LedgerError(f"program deploy failed ({proc.returncode}): {detail}")

        return self._parse_program_id(proc.stdout, program_keypair.pubkey())

    @staticmethod
    def _parse_program_id(stdout: str, expected: Pubkey) -> Pubkey:
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError:
            logger.debug("Non-JSON deploy output: %s", stdout.strip())
            return expected
        reported = payload.get("programId") if isinstance(payload, dict) else None
        if reported is None:
            return expected
        program_id = Pubkey.from_string(reported)
        if program_id != expected:
            raise LedgerError(
                f"deploy reported program id {program_id}, expected {expected}"
            )
        return program_id
