"""In-memory backing stores.

Purpose
-------
Provide dependency-free stand-ins for real stores so applications can run
without infrastructure and tests can drive sources and reload strategies
deterministically.

Contents
--------
* :class:`InMemoryConfigurationSource` – environment-agnostic source serving a
  fixed (replaceable) set of properties.
* :class:`InMemoryKeyValueStore` – thread-safe store implementing both the
  ``KeyValueClient`` and ``ChangeFeed`` ports.
* :class:`QueueSubscription` – a subscription backed by :class:`queue.Queue`.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Mapping

from ..domain.environment import Environment
from ..domain.snapshot import ConfigurationSnapshot
from ..observability import log_debug


class InMemoryConfigurationSource:
    """Serve the same properties for every environment.

    Examples
    --------
    >>> source = InMemoryConfigurationSource({"db.port": 5432})
    >>> source.fetch(Environment("anything"))["db.port"]
    '5432'
    """

    def __init__(self, properties: Mapping[str, Any] | None = None, *, name: str = "in-memory") -> None:
        self._name = name
        self._snapshot = ConfigurationSnapshot.of(properties or {}, origin=name)

    @property
    def name(self) -> str:
        return self._name

    def initialize(self) -> None:
        return None

    def refresh(self) -> None:
        return None

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        return self._snapshot

    def update(self, properties: Mapping[str, Any]) -> None:
        """Replace the served properties."""

        self._snapshot = ConfigurationSnapshot.of(properties, origin=self._name)


class QueueSubscription:
    """Subscription whose channel is a FIFO queue fed by the store."""

    _CLOSED = object()

    def __init__(self, store: InMemoryKeyValueStore, root: str) -> None:
        self._store = store
        self.root = root
        self._channel: queue.Queue[Any] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, values: Mapping[str, str | None]) -> None:
        if not self._closed.is_set():
            self._channel.put(dict(values))

    def get(self, timeout: float | None = None) -> Mapping[str, str | None] | None:
        if self._closed.is_set():
            return None
        try:
            item = self._channel.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is self._CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._channel.put(self._CLOSED)
        self._store._unsubscribe(self)


class InMemoryKeyValueStore:
    """Dict-backed hierarchical key/value store with change notifications.

    Paths use ``/`` separators and are stored without a leading slash. Every
    mutation publishes the complete value set under each subscription's root
    to that subscription, in mutation order.

    Examples
    --------
    >>> store = InMemoryKeyValueStore({"prod/db/host": "db1"})
    >>> store.get_values("/")
    {'prod/db/host': 'db1'}
    """

    def __init__(self, values: Mapping[str, str | None] | None = None) -> None:
        self._lock = threading.RLock()
        self._values: dict[str, str | None] = {}
        self._subscriptions: list[QueueSubscription] = []
        self.fail_with: BaseException | None = None
        for path, value in (values or {}).items():
            self._values[_normalize(path)] = value

    def get_values(self, root: str) -> Mapping[str, str | None]:
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            return self._below(_normalize(root))

    def put(self, path: str, value: str | None) -> None:
        self.put_many({path: value})

    def put_many(self, values: Mapping[str, str | None]) -> None:
        with self._lock:
            for path, value in values.items():
                self._values[_normalize(path)] = value
            self._notify()

    def delete(self, path: str) -> None:
        """Remove *path* and everything below it."""

        normalized = _normalize(path)
        with self._lock:
            doomed = [key for key in self._values if key == normalized or key.startswith(normalized.rstrip("/") + "/")]
            for key in doomed:
                del self._values[key]
            self._notify()

    def subscribe(self, root: str) -> QueueSubscription:
        with self._lock:
            subscription = QueueSubscription(self, root)
            self._subscriptions.append(subscription)
            subscription.publish(self._below(_normalize(root)))
        log_debug("watch_subscribed", source="in-memory-kv", environment=None, root=root)
        return subscription

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _unsubscribe(self, subscription: QueueSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.publish(self._below(_normalize(subscription.root)))

    def _below(self, root: str) -> dict[str, str | None]:
        if not root:
            return dict(self._values)
        head = root.rstrip("/") + "/"
        return {key: value for key, value in self._values.items() if key == root or key.startswith(head)}


def _normalize(path: str) -> str:
    return path.lstrip("/")
