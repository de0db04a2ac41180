from __future__ import annotations

import json
from pathlib import Path

import pytest

from solgreet.app.config import FeePolicy, Settings, cluster_api_url, load_settings


def test_defaults_target_localnet(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = load_settings(env={})

    assert settings.url == "http://localhost:8899"
    assert settings.store_dir == Path("store")
    assert settings.program_path == Path("dist/program/helloworld.so")
    assert settings.fees == FeePolicy()


@pytest.mark.parametrize(
    ("cluster", "tls", "url"),
    [
        ("devnet", True, "https://api.devnet.solana.com"),
        ("testnet", False, "http://api.testnet.solana.com"),
        ("mainnet-beta", True, "https://api.mainnet-beta.solana.com"),
        ("localnet", True, "http://localhost:8899"),
    ],
)
def test_cluster_api_url(cluster: str, tls: bool, url: str) -> None:
    assert cluster_api_url(cluster, tls) == url


def test_unknown_cluster_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown cluster"):
        Settings(cluster="moonnet").url


def test_rpc_url_wins_over_cluster() -> None:
    settings = Settings(cluster="devnet", rpc_url="http://10.0.0.2:8899")

    assert settings.url == "http://10.0.0.2:8899"


def test_settings_file_and_env_layers(tmp_path: Path) -> None:
    path = tmp_path / "solgreet.json"
    path.write_text(
        json.dumps(
            {
                "cluster": "devnet",
                "store_dir": "state",
                "fees": {"deploy_retry_margin": 10, "transaction_fee_buffer": 5},
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(path, env={"SOLGREET_STORE_DIR": "/tmp/other"})

    assert settings.cluster == "devnet"
    assert settings.store_dir == Path("/tmp/other")
    assert settings.fees.deploy_retry_margin == 10
    assert settings.fees.transaction_fee_buffer == 5
    assert settings.fees.loader_chunk_size == 932


def test_env_timeout_is_parsed(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = load_settings(env={"SOLGREET_RPC_TIMEOUT_SECONDS": "12.5"})

    assert settings.rpc_timeout_seconds == 12.5


def test_explicit_missing_settings_file_fails(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.json", env={})


def test_unknown_settings_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "solgreet.json"
    path.write_text(json.dumps({"clustre": "devnet"}), encoding="utf-8")

    with pytest.raises(ValueError, match="clustre"):
        load_settings(path, env={})


def test_fee_policy_validation() -> None:
    with pytest.raises(ValueError):
        FeePolicy(loader_chunk_size=0)
    with pytest.raises(ValueError):
        FeePolicy(deploy_retry_margin=-1)
    with pytest.raises(ValueError):
        FeePolicy(max_len_factor=0)
    assert FeePolicy(max_len_factor=3).program_max_len(100) == 300


def test_unknown_fee_settings_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "solgreet.json"
    path.write_text(json.dumps({"fees": {"margin": 1}}), encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid fee settings"):
        load_settings(path, env={})
