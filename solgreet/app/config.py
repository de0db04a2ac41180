"""Configuration utilities for Solgreet.

Settings come from three layers, later ones winning: built-in defaults, an
optional JSON settings file, and ``SOLGREET_*`` environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping

DEFAULT_SETTINGS_FILE = Path("solgreet.json")
DEFAULT_STORE_DIR = Path("store")
DEFAULT_PROGRAM_PATH = Path("dist/program/helloworld.so")
DEFAULT_CONFIG_KEY = "config.json"
LOCALNET_URL = "http://localhost:8899"

CLUSTERS = ("localnet", "devnet", "testnet", "mainnet-beta")

ENV_PREFIX = "SOLGREET_"


def cluster_api_url(cluster: str, tls: bool = True) -> str:
    """Return the public RPC endpoint for a named cluster."""
    if cluster == "localnet":
        return LOCALNET_URL
    if cluster not in CLUSTERS:
        raise ValueError(
            f"Unknown cluster '{cluster}'; expected one of {', '.join(CLUSTERS)}"
        )
    scheme = "https" if tls else "http"
    return f"{scheme}://api.{cluster}.solana.com"


@dataclass(frozen=True)
class FeePolicy:
    """Safety margins used when sizing the payer airdrop.

    ``deploy_retry_margin`` extra signatures are budgeted for deployment
    retries and ``transaction_fee_buffer`` signatures for the remaining
    transactions of a run. ``loader_chunk_size`` is the number of program
    bytes the loader writes per transaction. The programdata account is
    sized at ``max_len_factor`` times the program so it can be upgraded in
    place.
    """

    deploy_retry_margin: int = 500
    transaction_fee_buffer: int = 100
    loader_chunk_size: int = 932
    max_len_factor: int = 2

    def __post_init__(self) -> None:
        if self.deploy_retry_margin < 0 or self.transaction_fee_buffer < 0:
            raise ValueError("Fee margins must be non-negative")
        if self.loader_chunk_size <= 0:
            raise ValueError("loader_chunk_size must be positive")
        if self.max_len_factor < 1:
            raise ValueError("max_len_factor must be at least 1")

    def program_max_len(self, program_size: int) -> int:
        """Programdata capacity reserved for a program of ``program_size`` bytes."""
        return program_size * self.max_len_factor


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one run."""

    cluster: str = "localnet"
    rpc_url: str | None = None
    commitment: str = "confirmed"
    rpc_timeout_seconds: float = 30.0
    store_dir: Path = DEFAULT_STORE_DIR
    config_key: str = DEFAULT_CONFIG_KEY
    program_path: Path = DEFAULT_PROGRAM_PATH
    solana_cli: str = "solana"
    fees: FeePolicy = field(default_factory=FeePolicy)

    @property
    def url(self) -> str:
        """The RPC endpoint; an explicit ``rpc_url`` wins over ``cluster``."""
        return self.rpc_url or cluster_api_url(self.cluster)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with the non-``None`` overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        for key in ("store_dir", "program_path"):
            if key in values:
                values[key] = Path(values[key])
        return replace(self, **values)


def load_config(path: Path | str) -> Dict[str, Any]:
    """Load a JSON settings file and return it as a dictionary."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    return data


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key in ("cluster", "rpc_url", "commitment", "store_dir", "program_path", "solana_cli"):
        raw = env.get(ENV_PREFIX + key.upper())
        if raw:
            values[key] = raw
    timeout = env.get(ENV_PREFIX + "RPC_TIMEOUT_SECONDS")
    if timeout:
        values["rpc_timeout_seconds"] = float(timeout)
    return values


def load_settings(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Build :class:`Settings` from defaults, a settings file and the environment.

    A missing default settings file is ignored; an explicitly requested one
    must exist.
    """
    env = os.environ if env is None else env
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_FILE
    file_values: Dict[str, Any] = {}
    if config_path is not None or path.exists():
        file_values = load_config(path)

    fee_values = file_values.pop("fees", None) or {}
    if not isinstance(fee_values, dict):
        raise ValueError("'fees' must be a JSON object")
    known = set(Settings.__dataclass_fields__) - {"fees"}
    unknown = set(file_values) - known
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    try:
        fees = FeePolicy(**fee_values)
    except TypeError as exc:
        raise ValueError(f"Invalid fee settings: {exc}") from exc
    settings = Settings(fees=fees)
    settings = settings.with_overrides(**file_values)
    settings = settings.with_overrides(**_from_env(env))
    if settings.rpc_url is None:
        cluster_api_url(settings.cluster)  # validates the cluster name
    return settings


__all__ = [
    "CLUSTERS",
    "DEFAULT_CONFIG_KEY",
    "DEFAULT_PROGRAM_PATH",
    "DEFAULT_STORE_DIR",
    "FeePolicy",
    "Settings",
    "cluster_api_url",
    "load_config",
    "load_settings",
]
