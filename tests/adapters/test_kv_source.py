from __future__ import annotations

import pytest

from lib_live_config.adapters.kv import KeyValueConfigurationSource
from lib_live_config.adapters.memory import InMemoryKeyValueStore
from lib_live_config.domain.environment import Environment
from lib_live_config.domain.errors import CommunicationError, MissingEnvironmentError, NotInitializedError


@pytest.fixture()
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(
        {
            "config/us-west/db/host": "west",
            "config/us-west/db/port": "5432",
            "config/us-east/db/host": "east",
            "config/empty/": None,
            "other/us-west/db/host": "outside",
        }
    )


def test_translates_paths_below_environment(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(store, root="/config")
    snapshot = source.fetch(Environment("us-west"))
    assert snapshot.as_dict() == {"db.host": "west", "db.port": "5432"}
    assert snapshot.origin("db.host") == "kv:/config"


def test_folder_marker_marks_existing_empty_environment(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(store, root="/config")
    assert len(source.fetch(Environment("empty"))) == 0
    with pytest.raises(MissingEnvironmentError):
        source.fetch(Environment("eu-central"))


def test_root_environment_reads_whole_subtree(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(store, root="/config")
    snapshot = source.fetch(Environment())
    assert snapshot["us-east.db.host"] == "east"
    assert "other.us-west.db.host" not in snapshot


def test_values_are_cached_until_refresh(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(store, root="/config")
    assert source.fetch(Environment("us-west"))["db.host"] == "west"
    store.put("config/us-west/db/host", "changed")
    assert source.fetch(Environment("us-west"))["db.host"] == "west"
    source.refresh()
    assert source.fetch(Environment("us-west"))["db.host"] == "changed"


def test_factory_client_requires_initialize(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(client_factory=lambda: store, root="/config")
    assert not source.initialized
    with pytest.raises(NotInitializedError):
        source.fetch(Environment("us-west"))
    source.initialize()
    assert source.initialized
    assert source.fetch(Environment("us-west"))["db.port"] == "5432"


def test_factory_failure_is_communication_error() -> None:
    def refuse() -> InMemoryKeyValueStore:
        raise ConnectionRefusedError("consul down")

    source = KeyValueConfigurationSource(client_factory=refuse, name="consul")
    with pytest.raises(CommunicationError, match="consul down") as info:
        source.initialize()
    assert isinstance(info.value.__cause__, ConnectionRefusedError)
    assert not source.initialized


def test_read_failure_resets_factory_built_client(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(client_factory=lambda: store, root="/config")
    source.initialize()
    store.fail_with = TimeoutError("read timed out")
    with pytest.raises(CommunicationError):
        source.fetch(Environment("us-west"))
    assert not source.initialized
    store.fail_with = None
    source.initialize()
    assert source.fetch(Environment("us-west"))["db.host"] == "west"


def test_read_failure_with_fixed_client_stays_initialized(store: InMemoryKeyValueStore) -> None:
    source = KeyValueConfigurationSource(store)
    store.fail_with = TimeoutError("read timed out")
    with pytest.raises(CommunicationError):
        source.fetch(Environment("us-west"))
    assert source.initialized


def test_requires_exactly_one_client_option(store: InMemoryKeyValueStore) -> None:
    with pytest.raises(ValueError):
        KeyValueConfigurationSource()
    with pytest.raises(ValueError):
        KeyValueConfigurationSource(store, client_factory=lambda: store)
