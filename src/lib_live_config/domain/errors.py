"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by sources, the merge policy, reload
strategies, the provider, and consuming applications. The hierarchy lives in
the domain layer so outer layers may depend on it without the domain depending
on them.

Contents
--------
* :class:`ConfigError` – umbrella base class for all configuration issues.
* :class:`InvalidFormat` – retrieved bytes could not be parsed.
* :class:`ValidationError` – invalid knob values (intervals, delimiters).
* :class:`NotFound` – optional resource missing; non-fatal inside adapters.
* :class:`MissingEnvironmentError` – the environment namespace is absent.
* :class:`CommunicationError` – transient I/O or connection failure.
* :class:`NotInitializedError` – a source was fetched before ``initialize``.
* :class:`InitializationError` – one or more merged sources failed to start.
* :class:`KeyNotFoundError` – key absent from the current snapshot.
* :class:`ConversionError` – value present but not convertible.

System Role
-----------
Reload strategies catch :class:`ConfigError` (and anything else a transport
throws) to keep the last good snapshot; direct callers of ``fetch`` and
``get_property`` see these exceptions raised unchanged.
"""

from __future__ import annotations

from typing import Any, Sequence


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_live_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class InvalidFormat(ConfigError):
    """Raised when retrieved content cannot be parsed into key/value pairs.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`, the
    ``.properties`` parser).
    """


class ValidationError(ConfigError):
    """Signifies that a knob or argument failed semantic checks.

    Raised eagerly at construction time, e.g. for a non-positive polling
    interval or an empty list delimiter.
    """


class NotFound(ConfigError):
    """Represents missing-but-optional resources (files, directories, etc.).

    Adapters use this to signal absence without aborting a whole fetch.
    """


class MissingEnvironmentError(ConfigError):
    """The requested environment namespace does not exist in a source.

    Distinct from an existing-but-empty namespace, which yields an empty
    snapshot. Never retried automatically.
    """

    def __init__(self, message: str, *, environment: str = "") -> None:
        super().__init__(message)
        self.environment = environment


class CommunicationError(ConfigError):
    """Transient failure while talking to a backing store.

    Reload strategies log it and keep the previous snapshot; direct ``fetch``
    callers see it raised.
    """


class NotInitializedError(ConfigError):
    """A source that needs a session was used before ``initialize`` succeeded."""


class InitializationError(CommunicationError):
    """Raised when some constituents of a merged source fail to initialise.

    Attributes
    ----------
    failures:
        ``(source_name, exception)`` pairs for every constituent that failed
        during the same initialisation pass.
    """

    def __init__(self, message: str, *, failures: Sequence[tuple[str, BaseException]] = ()) -> None:
        super().__init__(message)
        self.failures = tuple(failures)


class KeyNotFoundError(ConfigError, LookupError):
    """Key absent from the snapshot that was current at read time."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No configuration value for key '{key}'")
        self.key = key


class ConversionError(ConfigError, ValueError):
    """Value present but not convertible to the requested target type.

    Never silently replaced by a default value.
    """

    def __init__(self, key: str, value: str, target: Any, reason: str | None = None) -> None:
        label = getattr(target, "__name__", None) or repr(target)
        message = f"Cannot convert value {value!r} of key '{key}' to {label}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.key = key
        self.value = value
        self.target = target
