from __future__ import annotations

import json

import pytest

from lib_live_config.domain.snapshot import EMPTY_SNAPSHOT, ConfigurationSnapshot, translate_key


def make_snapshot() -> ConfigurationSnapshot:
    return ConfigurationSnapshot(
        {"db.host": "localhost", "db.port": "5432", "feature": "true"},
        {"db.host": "files", "db.port": "kv", "feature": "env"},
    )


def test_mapping_interface() -> None:
    snapshot = make_snapshot()
    assert snapshot["db.host"] == "localhost"
    assert "db.port" in snapshot
    assert len(snapshot) == 3
    assert sorted(snapshot) == ["db.host", "db.port", "feature"]
    assert snapshot.get("missing") is None
    assert snapshot.get("missing", "fallback") == "fallback"


def test_snapshot_cannot_be_mutated() -> None:
    snapshot = make_snapshot()
    with pytest.raises(TypeError):
        snapshot._data["db.host"] = "remote"  # type: ignore[index]


def test_snapshot_copies_its_input() -> None:
    source = {"a": "1"}
    snapshot = ConfigurationSnapshot(source)
    source["a"] = "2"
    assert snapshot["a"] == "1"


def test_as_dict_returns_independent_copy() -> None:
    snapshot = make_snapshot()
    copy = snapshot.as_dict()
    copy["db.host"] = "remote"
    copy["extra"] = "x"
    assert snapshot["db.host"] == "localhost"
    assert "extra" not in snapshot


def test_of_stringifies_values_and_records_origin() -> None:
    snapshot = ConfigurationSnapshot.of({"port": 5432, "debug": None}, origin="memory")
    assert snapshot["port"] == "5432"
    assert snapshot["debug"] == ""
    assert snapshot.origin("port") == "memory"
    assert ConfigurationSnapshot.of(snapshot) is snapshot


def test_origin_metadata() -> None:
    snapshot = make_snapshot()
    assert snapshot.origin("db.port") == "kv"
    assert snapshot.origin("missing") is None


def test_to_json_with_and_without_provenance() -> None:
    snapshot = make_snapshot()
    assert json.loads(snapshot.to_json())["db.port"] == "5432"
    payload = json.loads(snapshot.to_json(provenance=True))
    assert payload["config"]["feature"] == "true"
    assert payload["provenance"]["feature"] == "env"


def test_with_overrides_creates_new_snapshot() -> None:
    snapshot = make_snapshot()
    updated = snapshot.with_overrides({"db.port": 5433}, origin="test")
    assert updated["db.port"] == "5433"
    assert updated.origin("db.port") == "test"
    assert snapshot["db.port"] == "5432"


def test_subset_strips_prefix() -> None:
    snapshot = make_snapshot()
    subset = snapshot.subset("db")
    assert subset.as_dict() == {"host": "localhost", "port": "5432"}
    assert subset.origin("port") == "kv"
    assert snapshot.has_prefix("db")
    assert not snapshot.has_prefix("cache")


def test_empty_snapshot() -> None:
    assert len(EMPTY_SNAPSHOT) == 0
    assert EMPTY_SNAPSHOT.as_dict() == {}


def test_translate_key() -> None:
    assert translate_key("prod/db/host", "prod/") == "db.host"
    assert translate_key("db/host", "") == "db.host"
    assert translate_key("prod/", "prod/") is None
    assert translate_key("production/db", "prod/") is None
