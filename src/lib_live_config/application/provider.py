"""Configuration provider: current snapshot plus typed access.

Purpose
-------
Hold exactly one visible :class:`ConfigurationSnapshot`, replace it atomically
whenever a reload strategy delivers new data, and answer typed reads against it.

Contents
--------
* :class:`ConfigurationProvider` – the provider itself.
* :data:`MISSING` – sentinel distinguishing "no default" from ``None``.

Concurrency
-----------
The snapshot reference is the only mutable state shared with readers. A reload
replaces it with a single attribute assignment, so a reader that captured the
old reference finishes against the old snapshot and the next read sees the new
one. Every read captures the reference exactly once, which keeps structured
and sequence reads internally consistent. Reads never perform I/O. When two
deliveries race, the one assigned last wins.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Mapping, TypeVar, overload

from ..domain.environment import Environment
from ..domain.errors import KeyNotFoundError
from ..domain.snapshot import EMPTY_SNAPSHOT, ConfigurationSnapshot
from ..observability import log_debug, log_error, log_info, make_event
from .binding import bind_contract
from .coercion import Shape, TypeCoercion, describe
from .ports import ConfigurationSource, ReloadStrategy

T = TypeVar("T")
C = TypeVar("C")


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

Listener = Callable[[ConfigurationSnapshot], None]


class ConfigurationProvider:
    """Serve typed configuration from the current snapshot.

    Parameters
    ----------
    source:
        Source fetched during :meth:`start` and handed to no one else; reload
        strategies are constructed around the same source by the caller.
    environment:
        Namespace used for the initial fetch.
    reload_strategy:
        Strategy registered during :meth:`start` and deregistered by
        :meth:`close`. ``None`` disables reloading after the initial fetch.
    coercion:
        Conversion rules (list delimiter) for typed reads.

    Examples
    --------
    >>> provider = ConfigurationProvider.of({"db.port": "5432"})
    >>> provider.get_property("db.port", int)
    5432
    >>> provider.get_property("db.user", str, default="admin")
    'admin'
    """

    def __init__(
        self,
        source: ConfigurationSource | None = None,
        *,
        environment: str | Environment | None = None,
        reload_strategy: ReloadStrategy | None = None,
        coercion: TypeCoercion | None = None,
    ) -> None:
        self._source = source
        self._environment = Environment.of(environment)
        self._strategy = reload_strategy
        self._coercion = coercion or TypeCoercion()
        self._snapshot: ConfigurationSnapshot = EMPTY_SNAPSHOT
        self._generation = 0
        self._listeners: list[Listener] = []
        self._lifecycle = threading.Lock()
        self._started = False

    @classmethod
    def of(cls, values: Mapping[str, Any], *, coercion: TypeCoercion | None = None) -> ConfigurationProvider:
        """Return a provider that serves *values* without any backing source."""

        provider = cls(coercion=coercion)
        provider.reload(ConfigurationSnapshot.of(values))
        return provider

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def snapshot(self) -> ConfigurationSnapshot:
        """The snapshot visible right now."""

        return self._snapshot

    @property
    def generation(self) -> int:
        """Number of snapshots delivered so far."""

        return self._generation

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> ConfigurationProvider:
        """Initialise the source, publish the first snapshot, register for reloads.

        Errors from the initial fetch propagate; nothing is registered in that
        case. Calling ``start`` twice is a no-op.
        """

        with self._lifecycle:
            if self._started:
                return self
            if self._source is not None:
                self._source.initialize()
                self.reload(self._source.fetch(self._environment))
            if self._strategy is not None:
                self._strategy.register(self)
            self._started = True
        log_info(
            "provider_started",
            **make_event(self._source_name(), self._environment.name, {"keys": len(self._snapshot)}),
        )
        return self

    def close(self) -> None:
        """Deregister from the reload strategy; no reload arrives afterwards."""

        with self._lifecycle:
            if not self._started:
                return
            if self._strategy is not None:
                self._strategy.deregister(self)
            self._started = False
        log_debug("provider_closed", **make_event(self._source_name(), self._environment.name))

    def __enter__(self) -> ConfigurationProvider:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def reload(self, snapshot: ConfigurationSnapshot | Mapping[str, Any]) -> None:
        """Publish *snapshot* as the current configuration (atomic swap)."""

        published = ConfigurationSnapshot.of(snapshot)
        self._snapshot = published
        self._generation += 1
        log_debug(
            "snapshot_reloaded",
            **make_event(self._source_name(), self._environment.name, {"keys": len(published), "generation": self._generation}),
        )
        for listener in tuple(self._listeners):
            try:
                listener(published)
            except Exception as exc:  # noqa: BLE001 - listeners must not break delivery
                log_error("listener_failed", **make_event(self._source_name(), self._environment.name, {"error": str(exc)}))

    def add_listener(self, listener: Listener) -> None:
        """Call *listener* with each newly published snapshot."""

        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @overload
    def get_property(self, key: str, target: type[T]) -> T: ...

    @overload
    def get_property(self, key: str, target: type[T], *, default: T) -> T: ...

    @overload
    def get_property(self, key: str, target: Any = ..., *, default: Any = ...) -> Any: ...

    def get_property(self, key: str, target: Any = str, *, default: Any = MISSING) -> Any:
        """Return *key* converted to *target*.

        Raises
        ------
        KeyNotFoundError
            When the key (or a required structured field) is absent and no
            *default* was supplied.
        ConversionError
            When the value exists but cannot be converted, regardless of
            *default*.
        """

        shape = describe(target)
        if default is MISSING:
            return self.read_shape(key, shape)
        try:
            return self.read_shape(key, shape)
        except KeyNotFoundError:
            return default

    def read_shape(self, key: str, shape: Shape) -> Any:
        """Resolve *key* for a pre-computed *shape* against one captured snapshot."""

        snapshot = self._snapshot
        return self._coercion.resolve(key, shape, lambda dotted: _lookup(snapshot, dotted))

    def get(self, key: str, default: Any = None) -> str | Any:
        """Return the raw string for *key* or *default*."""

        return self._snapshot.get(key, default)

    def contains(self, key: str) -> bool:
        return key in self._snapshot

    def all_configuration_as_properties(self) -> dict[str, str]:
        """Return a mutable copy of the whole current snapshot."""

        return self._snapshot.as_dict()

    def bind(self, prefix: str, contract: type[C]) -> C:
        """Return a live object implementing *contract* backed by this provider.

        Each contract method ``op`` reads ``prefix.op`` (or ``op`` when *prefix*
        is empty) at call time using the method's return annotation as target.
        """

        return bind_contract(self, prefix, contract)

    def _source_name(self) -> str:
        return self._source.name if self._source is not None else "in-memory"

    def __repr__(self) -> str:
        return f"ConfigurationProvider(source={self._source_name()!r}, environment={self._environment.name!r})"


def _lookup(snapshot: ConfigurationSnapshot, key: str) -> str:
    try:
        return snapshot[key]
    except KeyError:
        raise KeyNotFoundError(key) from None
