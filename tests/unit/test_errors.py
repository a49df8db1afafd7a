from __future__ import annotations

from lib_live_config.domain.errors import (
    CommunicationError,
    ConfigError,
    ConversionError,
    InitializationError,
    InvalidFormat,
    KeyNotFoundError,
    MissingEnvironmentError,
    NotFound,
    NotInitializedError,
    ValidationError,
)


def test_error_hierarchy() -> None:
    for error_type in (
        InvalidFormat,
        ValidationError,
        NotFound,
        MissingEnvironmentError,
        CommunicationError,
        NotInitializedError,
        InitializationError,
        KeyNotFoundError,
        ConversionError,
    ):
        assert issubclass(error_type, ConfigError)
    assert issubclass(InitializationError, CommunicationError)


def test_key_not_found_is_a_lookup_error() -> None:
    error = KeyNotFoundError("db.port")
    assert isinstance(error, LookupError)
    assert error.key == "db.port"
    assert "db.port" in str(error)


def test_conversion_error_carries_context() -> None:
    error = ConversionError("db.port", "x", int)
    assert isinstance(error, ValueError)
    assert (error.key, error.value, error.target) == ("db.port", "x", int)
    assert "int" in str(error)


def test_initialization_error_lists_failures() -> None:
    cause = RuntimeError("boom")
    error = InitializationError("failed", failures=[("kv", cause)])
    assert error.failures == (("kv", cause),)


def test_missing_environment_records_name() -> None:
    assert MissingEnvironmentError("gone", environment="prod").environment == "prod"
