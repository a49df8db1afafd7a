"""Domain-level configuration snapshot.

Purpose
-------
Anchor the immutable :class:`ConfigurationSnapshot` value object produced by one
fetch (or merge) cycle and published by the provider. This module belongs to the
domain layer and contains no I/O.

Contents
--------
* :class:`ConfigurationSnapshot` – ``Mapping[str, str]`` over dotted keys with
  provenance lookups, JSON export, and functional overrides.
* :func:`translate_key` – store path to dotted key translation shared by the
  key/value adapters and the push reload strategy.
* :data:`EMPTY_SNAPSHOT` – canonical empty instance.

System Role
-----------
The provider swaps whole snapshots by reference. Because the type guarantees
immutability, readers holding an old reference keep a consistent view while a
reload publishes a new one.
"""

from __future__ import annotations

import json
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, TypeVar, overload

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ConfigurationSnapshot(MappingABC[str, str]):
    """Immutable flat mapping from dotted key to string value.

    Why
    ----
    Readers must never observe a half-applied reload. Freezing the payload at
    construction lets the provider publish snapshots by plain reference
    assignment.

    Parameters
    ----------
    _data:
        Dotted keys mapped to raw string values. Copied and wrapped in a
        ``mappingproxy`` during initialisation.
    _origins:
        Optional mapping from dotted key to the name of the source that supplied
        the winning value.

    Examples
    --------
    >>> snap = ConfigurationSnapshot({"db.host": "localhost"}, {"db.host": "files"})
    >>> snap["db.host"], snap.origin("db.host")
    ('localhost', 'files')
    >>> snap.with_overrides({"db.port": "5433"}).get("db.port")
    '5433'
    """

    _data: Mapping[str, str] = field(default_factory=dict)
    _origins: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", _freeze_mapping(self._data))
        object.__setattr__(self, "_origins", _freeze_mapping(self._origins))

    @classmethod
    def of(cls, values: Mapping[str, Any] | ConfigurationSnapshot, *, origin: str | None = None) -> ConfigurationSnapshot:
        """Build a snapshot from any mapping, stringifying values.

        Existing snapshots are returned unchanged.
        """

        if isinstance(values, ConfigurationSnapshot):
            return values
        data = {str(key): "" if value is None else str(value) for key, value in values.items()}
        origins = {key: origin for key in data} if origin is not None else {}
        return cls(data, origins)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    @overload
    def get(self, key: str) -> str | None: ...

    @overload
    def get(self, key: str, default: T) -> str | T: ...

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def origin(self, key: str) -> str | None:
        """Return the name of the source that supplied *key*, if recorded."""

        return self._origins.get(key)

    @property
    def origins(self) -> Mapping[str, str]:
        return self._origins

    def as_dict(self) -> dict[str, str]:
        """Return a mutable copy; changing it never affects the snapshot."""

        return dict(self._data)

    def to_json(self, *, indent: int | None = None, provenance: bool = False) -> str:
        """Serialise the snapshot (optionally with provenance) to JSON.

        Examples
        --------
        >>> ConfigurationSnapshot({"a.b": "1"}).to_json()
        '{"a.b":"1"}'
        """

        payload: dict[str, Any] = dict(sorted(self._data.items()))
        if provenance:
            payload = {"config": payload, "provenance": dict(sorted(self._origins.items()))}
        return json.dumps(payload, indent=indent, separators=(",", ":"), ensure_ascii=False)

    def with_overrides(self, overrides: Mapping[str, Any], *, origin: str | None = None) -> ConfigurationSnapshot:
        """Produce a new snapshot with *overrides* applied on top."""

        updated = dict(self._data)
        origins = dict(self._origins)
        for key, value in overrides.items():
            updated[key] = "" if value is None else str(value)
            if origin is None:
                origins.pop(key, None)
            else:
                origins[key] = origin
        return ConfigurationSnapshot(updated, origins)

    def subset(self, prefix: str) -> ConfigurationSnapshot:
        """Return the keys below ``prefix.`` with the prefix stripped.

        Examples
        --------
        >>> ConfigurationSnapshot({"db.host": "h", "dbx": "y"}).subset("db").as_dict()
        {'host': 'h'}
        """

        if not prefix:
            return self
        head = prefix.rstrip(".") + "."
        data = {key[len(head) :]: value for key, value in self._data.items() if key.startswith(head)}
        origins = {key[len(head) :]: value for key, value in self._origins.items() if key.startswith(head)}
        return ConfigurationSnapshot(data, origins)

    def has_prefix(self, prefix: str) -> bool:
        """Return ``True`` when any key lives below ``prefix.``."""

        head = prefix.rstrip(".") + "."
        return any(key.startswith(head) for key in self._data)


def translate_key(path: str, prefix: str, separator: str = "/") -> str | None:
    """Strip *prefix* from a store *path* and translate separators to dots.

    Returns ``None`` when *path* lies outside *prefix* or names the prefix
    itself (a folder marker).

    Examples
    --------
    >>> translate_key("prod/db/host", "prod/")
    'db.host'
    >>> translate_key("dev/db/host", "prod/") is None
    True
    """

    if not path.startswith(prefix):
        return None
    remainder = path[len(prefix) :].strip(separator)
    if not remainder:
        return None
    return remainder.replace(separator, ".")


def _freeze_mapping(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return an immutable proxy around a private copy of *mapping*."""

    return MappingProxyType(dict(mapping))


#: Shared empty snapshot; safe to re-use because snapshots are immutable.
EMPTY_SNAPSHOT = ConfigurationSnapshot({}, {})
