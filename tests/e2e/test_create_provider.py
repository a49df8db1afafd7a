"""End-to-end scenarios wiring real sources through ``create_provider``."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Protocol

import pytest

from lib_live_config import (
    CommunicationError,
    EnvironmentVariablesConfigurationSource,
    FilesConfigurationSource,
    InMemoryConfigurationSource,
    InMemoryKeyValueStore,
    KeyValueConfigurationSource,
    create_provider,
    polling,
    push,
    read_properties,
)
from tests.support import RecordingReloadable, create_config_tree


class ServiceConfig(Protocol):
    def url(self) -> str: ...

    def retries(self) -> int: ...


def test_files_then_environment_variables_precedence(tmp_path: Path) -> None:
    tree = create_config_tree(tmp_path)
    tree.write("prod", "application.properties", "service.url=http://prod\nservice.retries=3\n")
    environ = {"APP_SERVICE__RETRIES": "5"}
    provider = create_provider(
        sources=[FilesConfigurationSource(tree.root), EnvironmentVariablesConfigurationSource("APP", environ=environ)],
        environment="prod",
    )
    with provider:
        service = provider.bind("service", ServiceConfig)
        assert service.url() == "http://prod"
        assert service.retries() == 5
        assert provider.snapshot.origin("service.retries") == "env:APP_"


def test_polling_provider_picks_up_file_changes(tmp_path: Path) -> None:
    tree = create_config_tree(tmp_path)
    tree.write("prod", "application.properties", "service.retries=1\n")
    spy = RecordingReloadable()
    provider = create_provider(
        sources=FilesConfigurationSource(tree.root),
        environment="prod",
        reload=polling(interval=0.02, initial_delay=0.02),
    )
    provider.add_listener(spy.reload)
    try:
        assert provider.get_property("service.retries", int) == 1
        tree.write("prod", "application.properties", "service.retries=2\n")
        assert spy.wait_for(1)
        assert _eventually(lambda: provider.get_property("service.retries", int) == 2)
    finally:
        provider.close()


def test_push_provider_follows_store_changes() -> None:
    store = InMemoryKeyValueStore({"config/prod/service/url": "http://a", "config/prod/service/retries": "1"})
    provider = create_provider(
        sources=KeyValueConfigurationSource(store, root="/config"),
        environment="prod",
        reload=push(store, "/config"),
    )
    with provider:
        service = provider.bind("service", ServiceConfig)
        store.put("config/prod/service/url", "http://b")
        assert _eventually(lambda: service.url() == "http://b")
        assert service.retries() == 1


def test_start_false_defers_initial_fetch() -> None:
    provider = create_provider(sources=InMemoryConfigurationSource({"a": "1"}), start=False)
    assert not provider.started
    assert len(provider.snapshot) == 0
    provider.start()
    assert provider.get("a") == "1"
    provider.close()


def test_read_properties_is_one_shot_merge() -> None:
    snapshot = read_properties(
        sources=[
            InMemoryConfigurationSource({"a": "1", "b": "1"}, name="defaults"),
            InMemoryConfigurationSource({"b": "2"}, name="overrides"),
        ],
        environment="anything",
    )
    assert snapshot.as_dict() == {"a": "1", "b": "2"}
    assert snapshot.origin("a") == "defaults"


def test_initial_failure_propagates_from_create_provider() -> None:
    store = InMemoryKeyValueStore()
    store.fail_with = ConnectionError("unreachable")
    with pytest.raises(CommunicationError):
        create_provider(sources=KeyValueConfigurationSource(store), environment="prod")


def _eventually(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
