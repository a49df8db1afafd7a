from __future__ import annotations

import abc
import enum
from typing import Optional, Protocol

import pytest

from lib_live_config.application.binding import build_dispatch_table
from lib_live_config.application.provider import ConfigurationProvider
from lib_live_config.domain.errors import ConversionError, KeyNotFoundError


class LogLevel(enum.Enum):
    DEBUG = 10
    INFO = 20


class DatabaseConfig(Protocol):
    def host(self) -> str: ...

    def port(self) -> int: ...

    def replicas(self) -> list[str]: ...

    def timeout(self) -> Optional[float]: ...


class LoggingConfig(abc.ABC):
    @abc.abstractmethod
    def level(self) -> LogLevel: ...

    def describe_level(self) -> str:
        return "helper"

    @property
    def ignored(self) -> str:
        return "property"

    @staticmethod
    def also_ignored() -> str:
        return "static"


class RootConfig(Protocol):
    def name(self) -> str: ...


class NeedsArgument(Protocol):
    def value(self, key: str) -> str: ...


class NoOperations(Protocol):
    pass


@pytest.fixture()
def provider() -> ConfigurationProvider:
    return ConfigurationProvider.of(
        {
            "db.host": "localhost",
            "db.port": "5432",
            "db.replicas": "r1,r2",
            "log.level": "INFO",
            "log.describe_level": "from-config",
            "name": "service",
        }
    )


def test_bound_methods_read_prefixed_keys(provider: ConfigurationProvider) -> None:
    db = provider.bind("db", DatabaseConfig)
    assert db.host() == "localhost"
    assert db.port() == 5432
    assert db.replicas() == ["r1", "r2"]
    assert db.timeout() is None


def test_bound_object_sees_reloads(provider: ConfigurationProvider) -> None:
    db = provider.bind("db", DatabaseConfig)
    assert db.port() == 5432
    provider.reload({"db.host": "db2", "db.port": "6543", "db.replicas": ""})
    assert db.port() == 6543
    assert db.host() == "db2"
    assert db.replicas() == []


def test_abc_contract_binds_every_public_method(provider: ConfigurationProvider) -> None:
    logging_config = provider.bind("log", LoggingConfig)
    assert isinstance(logging_config, LoggingConfig)
    assert logging_config.level() is LogLevel.INFO
    assert logging_config.describe_level() == "from-config"
    assert logging_config.ignored == "property"


def test_empty_prefix_uses_bare_operation_names(provider: ConfigurationProvider) -> None:
    assert provider.bind("", RootConfig).name() == "service"


def test_missing_and_malformed_values_surface_at_call_time(provider: ConfigurationProvider) -> None:
    db = provider.bind("db", DatabaseConfig)
    provider.reload({"db.port": "not-a-port"})
    with pytest.raises(KeyNotFoundError):
        db.host()
    with pytest.raises(ConversionError):
        db.port()


def test_dispatch_table_is_built_once() -> None:
    table = build_dispatch_table("db", DatabaseConfig)
    assert {name: op.key for name, op in table.items()} == {
        "host": "db.host",
        "port": "db.port",
        "replicas": "db.replicas",
        "timeout": "db.timeout",
    }


def test_operations_with_arguments_are_rejected(provider: ConfigurationProvider) -> None:
    with pytest.raises(TypeError, match="must not take arguments"):
        provider.bind("x", NeedsArgument)


def test_contract_without_operations_is_rejected(provider: ConfigurationProvider) -> None:
    with pytest.raises(TypeError, match="declares no operations"):
        provider.bind("x", NoOperations)


def test_non_class_contract_is_rejected(provider: ConfigurationProvider) -> None:
    with pytest.raises(TypeError):
        provider.bind("x", "DatabaseConfig")  # type: ignore[arg-type]
