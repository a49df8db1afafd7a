"""Reload strategies that keep a provider's snapshot fresh.

Purpose
-------
Decide when a source is consulted again and deliver the result to a
:class:`~lib_live_config.application.ports.Reloadable`. All strategies share
the same delivery discipline:

* fetch work happens on the strategy's own thread, never on a reader's;
* a failed fetch is logged and the previous snapshot stays in place
  (stale-but-available);
* once :meth:`deregister` returns, no further ``reload`` is delivered.

Contents
--------
* :class:`ImmediateReloadStrategy` – one delivery at registration time.
* :class:`PollingReloadStrategy` – periodic initialize + refresh + fetch on a worker thread.
* :class:`PushReloadStrategy` – forwards change sets from a store watch.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Final, Mapping

from ..domain.environment import Environment
from ..domain.errors import ValidationError
from ..domain.snapshot import ConfigurationSnapshot, translate_key
from ..observability import log_debug, log_error, log_info, make_event
from .ports import ChangeFeed, ConfigurationSource, Reloadable, Subscription

DEFAULT_POLL_INTERVAL: Final[float] = 60.0
_CHANNEL_TIMEOUT: Final[float] = 0.5
_JOIN_TIMEOUT: Final[float] = 10.0


@dataclass(eq=False)
class _Registration:
    """Per-target delivery state shared between a worker and ``deregister``."""

    target: Reloadable
    stop: threading.Event = field(default_factory=threading.Event)
    guard: threading.RLock = field(default_factory=threading.RLock)
    worker: threading.Thread | None = None
    subscription: Subscription | None = None
    active: bool = True

    def deliver(self, snapshot: ConfigurationSnapshot) -> bool:
        """Hand *snapshot* to the target unless the registration was cancelled."""

        with self.guard:
            if not self.active:
                return False
            self.target.reload(snapshot)
            return True

    def cancel(self) -> None:
        self.stop.set()
        with self.guard:
            self.active = False
        if self.subscription is not None:
            self.subscription.close()
        worker = self.worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=_JOIN_TIMEOUT)


class _RegistrySupport:
    """Bookkeeping shared by the threaded strategies."""

    def __init__(self) -> None:
        self._registrations: dict[int, _Registration] = {}
        self._lock = threading.Lock()

    def _add(self, target: Reloadable) -> _Registration:
        with self._lock:
            if id(target) in self._registrations:
                raise ValueError(f"{target!r} is already registered with {type(self).__name__}")
            registration = _Registration(target)
            self._registrations[id(target)] = registration
            return registration

    def _pop(self, target: Reloadable) -> _Registration | None:
        with self._lock:
            return self._registrations.pop(id(target), None)

    def is_registered(self, target: Reloadable) -> bool:
        with self._lock:
            return id(target) in self._registrations

    def deregister(self, reloadable: Reloadable) -> None:
        """Stop deliveries to *reloadable*; safe to call repeatedly."""

        registration = self._pop(reloadable)
        if registration is None:
            return
        registration.cancel()
        log_info("reload_deregistered", strategy=type(self).__name__)


class ImmediateReloadStrategy:
    """Deliver one fresh snapshot when a target registers, then nothing.

    Failures are logged; the target keeps whatever it already holds.
    """

    def __init__(self, source: ConfigurationSource, environment: str | Environment | None = None) -> None:
        self._source = source
        self._environment = Environment.of(environment)

    def register(self, reloadable: Reloadable) -> None:
        _fetch_and_deliver(self._source, self._environment, reloadable.reload)

    def deregister(self, reloadable: Reloadable) -> None:
        return None


class PollingReloadStrategy(_RegistrySupport):
    """Refresh and fetch a source on a fixed interval.

    Parameters
    ----------
    source / environment:
        What to fetch on every tick.
    interval:
        Seconds between ticks; must be positive.
    initial_delay:
        Seconds before the first tick; must not be negative.

    Each registration owns one daemon thread. The thread waits on an event, so
    ``deregister`` interrupts a pending wait immediately. Every tick calls
    ``initialize`` before ``refresh`` so a source that dropped its client after
    a failed read reconnects once the store is reachable again.
    """

    def __init__(
        self,
        source: ConfigurationSource,
        environment: str | Environment | None = None,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        initial_delay: float = 0.0,
    ) -> None:
        super().__init__()
        if interval <= 0:
            raise ValidationError(f"Poll interval must be greater than zero, got {interval}")
        if initial_delay < 0:
            raise ValidationError(f"Initial delay must not be negative, got {initial_delay}")
        self._source = source
        self._environment = Environment.of(environment)
        self._interval = float(interval)
        self._initial_delay = float(initial_delay)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def initial_delay(self) -> float:
        return self._initial_delay

    def register(self, reloadable: Reloadable) -> None:
        registration = self._add(reloadable)
        worker = threading.Thread(
            target=self._run,
            args=(registration,),
            name=f"lib_live_config-poll[{self._source.name}]",
            daemon=True,
        )
        registration.worker = worker
        worker.start()
        log_info(
            "reload_registered",
            **make_event(self._source.name, self._environment.name, {"strategy": "polling", "interval": self._interval}),
        )

    def _run(self, registration: _Registration) -> None:
        delay = self._initial_delay
        while not registration.stop.wait(delay):
            self._tick(registration)
            delay = self._interval

    def _tick(self, registration: _Registration) -> None:
        try:
            self._source.initialize()
            self._source.refresh()
        except Exception as exc:  # noqa: BLE001 - stale-but-available
            log_error("reload_failed", **make_event(self._source.name, self._environment.name, {"error": str(exc)}))
            return
        _fetch_and_deliver(self._source, self._environment, registration.deliver)


class PushReloadStrategy(_RegistrySupport):
    """Forward change notifications from a store watch to the target.

    Parameters
    ----------
    feed:
        Store capability producing subscriptions.
    root:
        Store path the watch covers (``"/"`` for everything).
    environment:
        Namespace inside the delivered values; its prefix is stripped and the
        store separator translated to dots, exactly as a source fetch would.

    Every registration owns one subscription and one forwarding thread that
    drains the subscription channel in delivery order.
    """

    def __init__(self, feed: ChangeFeed, root: str = "/", environment: str | Environment | None = None) -> None:
        super().__init__()
        self._feed = feed
        self._root = root
        self._environment = Environment.of(environment)

    def register(self, reloadable: Reloadable) -> None:
        registration = self._add(reloadable)
        try:
            registration.subscription = self._feed.subscribe(self._root)
        except Exception:
            self._pop(reloadable)
            log_error("reload_subscribe_failed", **make_event(self._name, self._environment.name))
            raise
        worker = threading.Thread(
            target=self._run,
            args=(registration,),
            name=f"lib_live_config-watch[{self._root}]",
            daemon=True,
        )
        registration.worker = worker
        worker.start()
        log_info("reload_registered", **make_event(self._name, self._environment.name, {"strategy": "push"}))

    @property
    def _name(self) -> str:
        return f"watch:{self._root}"

    def _run(self, registration: _Registration) -> None:
        subscription = registration.subscription
        assert subscription is not None
        while not registration.stop.is_set():
            try:
                values = subscription.get(timeout=_CHANNEL_TIMEOUT)
            except Exception as exc:  # noqa: BLE001 - keep watching; transport hiccup
                log_error("reload_failed", **make_event(self._name, self._environment.name, {"error": str(exc)}))
                registration.stop.wait(_CHANNEL_TIMEOUT)
                continue
            if values is None:
                continue
            snapshot = self.convert(values)
            log_debug("change_received", **make_event(self._name, self._environment.name, {"keys": len(snapshot)}))
            registration.deliver(snapshot)

    def convert(self, values: Mapping[str, str | None]) -> ConfigurationSnapshot:
        """Turn a raw store change set into a snapshot for the environment."""

        prefix = self._environment.store_prefix(self._root)
        data: dict[str, str] = {}
        for path, value in values.items():
            key = translate_key(path.lstrip("/"), prefix)
            if key is not None:
                data[key] = value or ""
        return ConfigurationSnapshot.of(data, origin=self._name)


def _fetch_and_deliver(
    source: ConfigurationSource,
    environment: Environment,
    deliver: Callable[[ConfigurationSnapshot], object],
) -> None:
    try:
        snapshot = source.fetch(environment)
    except Exception as exc:  # noqa: BLE001 - stale-but-available
        log_error(
            "reload_failed",
            **make_event(source.name, environment.name, {"error": str(exc), "type": type(exc).__name__}),
        )
        return
    deliver(snapshot)
