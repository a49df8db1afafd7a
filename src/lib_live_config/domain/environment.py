"""Environment value object.

Purpose
-------
Name the hierarchical namespace a fetch is scoped to. Sources treat the
normalised name as a key prefix, so normalisation lives here once instead of
inside every adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

SEPARATOR: Final[str] = "/"


@dataclass(frozen=True, slots=True)
class Environment:
    """Immutable, slash-separated namespace identifier.

    The empty name is the root environment and means "no scoping".

    Examples
    --------
    >>> Environment("/us-west/prod").prefix
    'us-west/prod/'
    >>> Environment().prefix
    ''
    >>> Environment("us-west").child("prod").name
    'us-west/prod'
    """

    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", "" if self.name is None else str(self.name))

    @classmethod
    def root(cls) -> Environment:
        return ROOT_ENVIRONMENT

    @classmethod
    def of(cls, value: str | Environment | None) -> Environment:
        """Coerce ``value`` into an :class:`Environment`."""

        if isinstance(value, Environment):
            return value
        if value is None:
            return ROOT_ENVIRONMENT
        return cls(value)

    @property
    def prefix(self) -> str:
        """Key prefix: no leading separator, one trailing separator when non-empty."""

        path = self.name.strip().strip(SEPARATOR)
        if not path:
            return ""
        return path + SEPARATOR

    @property
    def is_root(self) -> bool:
        return not self.prefix

    def segments(self) -> tuple[str, ...]:
        """Return the non-empty path segments of the namespace."""

        return tuple(part for part in self.prefix.split(SEPARATOR) if part)

    def store_prefix(self, root: str = SEPARATOR) -> str:
        """Prefix of this environment below a store *root*, without leading separator.

        Examples
        --------
        >>> Environment("prod").store_prefix("/config")
        'config/prod/'
        """

        base = root.strip(SEPARATOR)
        base = base + SEPARATOR if base else ""
        return base + self.prefix

    def child(self, name: str) -> Environment:
        return Environment(self.prefix + name.strip(SEPARATOR))

    def __str__(self) -> str:
        return self.name


ROOT_ENVIRONMENT: Final[Environment] = Environment()
