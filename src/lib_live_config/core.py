"""Composition root for ``lib_live_config``.

Purpose
-------
Provide the entry points that wire sources, the merge policy, a reload strategy,
and the provider together so applications do not assemble the pieces by hand.

Contents
--------
* :func:`create_provider` – build (and by default start) a provider.
* :func:`read_properties` – one-shot initialise + fetch returning a snapshot.
* :func:`polling` / :func:`push` – strategy factories for ``create_provider``.
* :func:`combine_sources` – collapse several sources into one.

System Role
-----------
The only module that knows which concrete strategy is the default. Changing the
default reload behaviour or precedence rules happens here.
"""

from __future__ import annotations

from typing import Callable, Sequence, Union

from .application.coercion import DEFAULT_DELIMITER, TypeCoercion
from .application.merge import MergingConfigurationSource
from .application.ports import ChangeFeed, ConfigurationSource, ReloadStrategy
from .application.provider import ConfigurationProvider
from .application.reload import (
    DEFAULT_POLL_INTERVAL,
    PollingReloadStrategy,
    PushReloadStrategy,
)
from .domain.environment import Environment
from .domain.snapshot import ConfigurationSnapshot
from .observability import bind_trace_id, log_info, make_event

StrategyFactory = Callable[[ConfigurationSource, Environment], ReloadStrategy]
ReloadSpec = Union[ReloadStrategy, StrategyFactory, None]


def combine_sources(sources: ConfigurationSource | Sequence[ConfigurationSource]) -> ConfigurationSource:
    """Return a single source; several sources merge in the given order (last wins)."""

    if not isinstance(sources, Sequence):
        return sources
    if len(sources) == 1:
        return sources[0]
    return MergingConfigurationSource(sources)


def polling(interval: float = DEFAULT_POLL_INTERVAL, initial_delay: float = 0.0) -> StrategyFactory:
    """Return a factory creating a :class:`PollingReloadStrategy`.

    The delay defaults to zero; the provider already fetched once during
    ``start``, so the first tick merely confirms the snapshot.
    """

    def factory(source: ConfigurationSource, environment: Environment) -> ReloadStrategy:
        return PollingReloadStrategy(source, environment, interval=interval, initial_delay=initial_delay)

    return factory


def push(feed: ChangeFeed, root: str = "/") -> StrategyFactory:
    """Return a factory creating a :class:`PushReloadStrategy` for *feed*."""

    def factory(source: ConfigurationSource, environment: Environment) -> ReloadStrategy:
        return PushReloadStrategy(feed, root, environment)

    return factory


def create_provider(
    *,
    sources: ConfigurationSource | Sequence[ConfigurationSource],
    environment: str | Environment | None = None,
    reload: ReloadSpec = None,
    delimiter: str = DEFAULT_DELIMITER,
    start: bool = True,
    trace_id: str | None = None,
) -> ConfigurationProvider:
    """Build a :class:`ConfigurationProvider` for *sources*.

    Parameters
    ----------
    sources:
        One source or an ordered sequence merged last-writer-wins.
    environment:
        Namespace for every fetch; defaults to the root environment.
    reload:
        A strategy instance, a factory ``(source, environment) -> strategy``
        such as :func:`polling`, or ``None`` to keep the snapshot fetched at
        start.
    delimiter:
        List delimiter used by typed reads.
    start:
        Start the provider immediately (initialise, first fetch, register).
    trace_id:
        Optional identifier bound to the logging context for start-up events.

    Examples
    --------
    >>> from lib_live_config.adapters.memory import InMemoryConfigurationSource
    >>> provider = create_provider(sources=[
    ...     InMemoryConfigurationSource({"db.port": "5432"}, name="defaults"),
    ...     InMemoryConfigurationSource({"db.port": "6543"}, name="overrides"),
    ... ])
    >>> provider.get_property("db.port", int)
    6543
    >>> provider.close()
    """

    bind_trace_id(trace_id)
    env = Environment.of(environment)
    source = combine_sources(sources)
    strategy = _resolve_strategy(reload, source, env)
    provider = ConfigurationProvider(
        source,
        environment=env,
        reload_strategy=strategy,
        coercion=TypeCoercion(delimiter=delimiter),
    )
    log_info(
        "provider_created",
        **make_event(source.name, env.name, {"strategy": type(strategy).__name__ if strategy else None}),
    )
    if start:
        provider.start()
    return provider


def read_properties(
    *,
    sources: ConfigurationSource | Sequence[ConfigurationSource],
    environment: str | Environment | None = None,
) -> ConfigurationSnapshot:
    """Initialise *sources* and return one merged snapshot; no reload machinery.

    Failures propagate to the caller unchanged.
    """

    source = combine_sources(sources)
    source.initialize()
    return source.fetch(Environment.of(environment))


def _resolve_strategy(reload: ReloadSpec, source: ConfigurationSource, environment: Environment) -> ReloadStrategy | None:
    if reload is None:
        return None
    if callable(reload) and not hasattr(reload, "register"):
        return reload(source, environment)
    return reload  # type: ignore[return-value]


__all__ = [
    "combine_sources",
    "create_provider",
    "polling",
    "push",
    "read_properties",
]
