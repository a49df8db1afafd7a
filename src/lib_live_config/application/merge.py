"""Application-layer merge policy and the merging source.

Purpose
-------
Combine the snapshots of several sources into a single coherent snapshot while
tracking which source supplied every key. The merge itself is free of I/O so it
can be reused outside :class:`MergingConfigurationSource`.

Contents
    - ``merge_layers``: last-writer-wins merge with provenance.
    - ``MergingConfigurationSource``: composite source that fetches every
      constituent for the same environment and merges the results.

System Role
-----------
Sits between the backing-store adapters and the provider. A failing constituent
aborts the whole merge, so the provider never receives a partial snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable, Sequence

from ..domain.environment import Environment
from ..domain.errors import CommunicationError, InitializationError
from ..domain.snapshot import ConfigurationSnapshot
from ..observability import log_debug, log_error, make_event
from .ports import ConfigurationSource


def merge_layers(layers: Iterable[tuple[str, Mapping[str, str]]]) -> ConfigurationSnapshot:
    """Merge flat *layers* so later layers override earlier ones.

    Parameters
    ----------
    layers:
        ``(source_name, mapping)`` tuples ordered from lowest to highest
        precedence.

    Returns
    -------
    ConfigurationSnapshot
        Merged data with each key's winning source recorded as provenance.

    Examples
    --------
    >>> merged = merge_layers([("defaults", {"db.port": "5432", "db.host": "a"}), ("env", {"db.port": "6543"})])
    >>> merged["db.port"], merged.origin("db.port"), merged.origin("db.host")
    ('6543', 'env', 'defaults')
    """

    data: dict[str, str] = {}
    origins: dict[str, str] = {}
    for name, payload in layers:
        for key, value in payload.items():
            data[key] = value
            origins[key] = _winning_origin(payload, key, name)
    return ConfigurationSnapshot(data, origins)


def _winning_origin(payload: Mapping[str, str], key: str, name: str) -> str:
    """Keep nested provenance when a layer is itself a merged snapshot."""

    if isinstance(payload, ConfigurationSnapshot):
        nested = payload.origin(key)
        if nested is not None:
            return nested
    return name


class MergingConfigurationSource:
    """Composite source applying last-writer-wins across ordered constituents.

    Why
    ----
    Applications typically layer defaults, shared store values, and local
    overrides. Callers should see one source with one failure mode.

    Partial initialisation leaves the constituents that did start initialised;
    ``initialize`` is idempotent, so a retry only re-attempts the failed ones.
    """

    def __init__(self, sources: Sequence[ConfigurationSource], *, name: str | None = None) -> None:
        if not sources:
            raise ValueError("MergingConfigurationSource requires at least one source")
        self._sources: tuple[ConfigurationSource, ...] = tuple(sources)
        self._name = name or "merged[" + ", ".join(source.name for source in self._sources) + "]"

    @property
    def name(self) -> str:
        return self._name

    @property
    def sources(self) -> tuple[ConfigurationSource, ...]:
        return self._sources

    def initialize(self) -> None:
        """Initialise every constituent, reporting all failures of this pass."""

        failures: list[tuple[str, BaseException]] = []
        for source in self._sources:
            try:
                source.initialize()
            except Exception as exc:  # noqa: BLE001 - collected and re-raised below
                log_error("source_initialize_failed", **make_event(source.name, None, {"error": str(exc)}))
                failures.append((source.name, exc))
        if failures:
            names = ", ".join(name for name, _ in failures)
            error = InitializationError(f"Failed to initialize source(s): {names}", failures=failures)
            raise error from failures[0][1]
        log_debug("source_initialized", **make_event(self._name, None, {"sources": len(self._sources)}))

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        """Fetch all constituents for *environment* and merge them in order."""

        layers: list[tuple[str, Mapping[str, str]]] = []
        for source in self._sources:
            try:
                layers.append((source.name, source.fetch(environment)))
            except Exception as exc:  # noqa: BLE001 - wrapped with source context
                log_error(
                    "merge_aborted",
                    **make_event(source.name, environment.name, {"error": str(exc), "type": type(exc).__name__}),
                )
                raise CommunicationError(
                    f"Source {source.name} failed for environment '{environment.name}': {exc}"
                ) from exc
        merged = merge_layers(layers)
        log_debug("merge_completed", **make_event(self._name, environment.name, {"keys": len(merged)}))
        return merged

    def refresh(self) -> None:
        for source in self._sources:
            source.refresh()

    def __repr__(self) -> str:
        return f"MergingConfigurationSource({self._name!r})"
