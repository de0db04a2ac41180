from __future__ import annotations

from pathlib import Path

import pytest

from solgreet.infrastructure.persistence import ConfigStore, CorruptionError, NotFoundError


def test_save_then_load_round_trips(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path / "store")
    record = {"url": "http://localhost:8899", "nested": {"list": [1, 2, 3]}, "flag": True}

    store.save("config.json", record)

    assert store.load("config.json") == record


def test_save_creates_directory(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path / "a" / "b")

    store.save("config.json", {"x": 1})

    assert (tmp_path / "a" / "b" / "config.json").exists()


def test_save_overwrites_instead_of_merging(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path)
    store.save("config.json", {"old": 1, "shared": "a"})

    store.save("config.json", {"shared": "b"})

    assert store.load("config.json") == {"shared": "b"}


def test_save_leaves_no_temporary_files(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path)

    store.save("config.json", {"x": 1})
    store.save("config.json", {"x": 2})

    assert sorted(p.name for p in tmp_path.iterdir()) == ["config.json"]


def test_failed_save_keeps_previous_document(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path)
    store.save("config.json", {"x": 1})

    with pytest.raises(TypeError):
        store.save("config.json", {"x": object()})

    assert store.load("config.json") == {"x": 1}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["config.json"]


def test_load_missing_key_raises_not_found(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path)

    with pytest.raises(NotFoundError):
        store.load("config.json")


def test_load_missing_directory_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        ConfigStore(tmp_path / "nope").load("config.json")


@pytest.mark.parametrize("content", ["{truncated", "", "[1, 2]", '"text"'])
def test_load_corrupt_document_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / "config.json").write_text(content, encoding="utf-8")

    with pytest.raises(CorruptionError):
        ConfigStore(tmp_path).load("config.json")


def test_load_non_utf8_document_raises_corruption(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_bytes(b"\xff\xfe{garbage")

    with pytest.raises(CorruptionError, match="not UTF-8"):
        ConfigStore(tmp_path).load("config.json")


@pytest.mark.parametrize("key", ["", "..", "../escape.json", "sub/config.json"])
def test_invalid_keys_are_rejected(tmp_path: Path, key: str) -> None:
    with pytest.raises(ValueError):
        ConfigStore(tmp_path).path_for(key)


def test_delete(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path)
    store.save("config.json", {"x": 1})

    assert store.delete("config.json") is True
    assert store.delete("config.json") is False
    with pytest.raises(NotFoundError):
        store.load("config.json")
