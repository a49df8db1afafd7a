"""Application-layer ports describing adapter and strategy responsibilities.

Purpose
-------
Define the structural contracts that backing-store adapters and reload
strategies must satisfy so the provider can orchestrate behaviour without
depending on concrete implementations.

Contents
--------
* :class:`ConfigurationSource` – pull-based store contract.
* :class:`Reloadable` – single entry point a provider exposes to strategies.
* :class:`ReloadStrategy` – decides when a fresh snapshot is delivered.
* :class:`FileLoader` – parses one configuration file into a mapping.
* :class:`KeyValueClient` – minimal read API of a distributed K/V store.
* :class:`Subscription` / :class:`ChangeFeed` – cancellable change channel of
  a store that supports watches.

System Role
-----------
These protocols enforce Dependency Inversion. Every protocol is
``runtime_checkable`` so contract tests can assert conformance with
``isinstance``.
"""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

from ..domain.environment import Environment
from ..domain.snapshot import ConfigurationSnapshot


@runtime_checkable
class ConfigurationSource(Protocol):
    """Backing store that returns a flat key/value view for an environment.

    Methods
    -------
    :meth:`initialize`
        Idempotently establish any session needed to reach the store.
    :meth:`fetch`
        Return every key visible under the environment.
    :meth:`refresh`
        Drop any internal cache so the next fetch hits the store.
    """

    @property
    def name(self) -> str:
        """Human readable identifier used in logs, provenance, and errors."""

    def initialize(self) -> None:
        """Connect to the store; raise ``CommunicationError`` when unreachable."""

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        """Return the snapshot for *environment* or raise a ``ConfigError``."""

    def refresh(self) -> None:
        """Invalidate cached data held by the source."""


@runtime_checkable
class Reloadable(Protocol):
    """Receiver of freshly fetched snapshots."""

    def reload(self, snapshot: ConfigurationSnapshot) -> None:
        """Publish *snapshot* as the current configuration."""


@runtime_checkable
class ReloadStrategy(Protocol):
    """Policy deciding when a :class:`Reloadable` receives new data."""

    def register(self, reloadable: Reloadable) -> None:
        """Start delivering snapshots to *reloadable*."""

    def deregister(self, reloadable: Reloadable) -> None:
        """Stop delivering; no ``reload`` call may follow once this returns."""


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``InvalidFormat`` / ``NotFound``."""


@runtime_checkable
class KeyValueClient(Protocol):
    """Read access to a hierarchical key/value store (Consul, etcd, ...)."""

    def get_values(self, root: str) -> Mapping[str, str | None]:
        """Return every store path below *root* with its UTF-8 value."""


@runtime_checkable
class Subscription(Protocol):
    """Channel owned by a watch; yields complete value sets in store order."""

    def get(self, timeout: float | None = None) -> Mapping[str, str | None] | None:
        """Return the next change set, or ``None`` on timeout or once closed."""

    def close(self) -> None:
        """Release the channel; pending and future ``get`` calls return ``None``."""


@runtime_checkable
class ChangeFeed(Protocol):
    """Store capability to push change notifications for a key root."""

    def subscribe(self, root: str) -> Subscription:
        """Open a new subscription for all keys below *root*."""
