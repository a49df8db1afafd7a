"""Directory-per-environment files source.

Purpose
-------
Implement :class:`lib_live_config.application.ports.ConfigurationSource` on top
of a directory tree: the environment selects a sub-directory of ``root`` and a
fixed list of file names is read from it, later files overriding earlier ones.

Layout example::

    root/
      application.toml        <- Environment("") (root)
      us-west/prod/
        application.toml      <- Environment("us-west/prod")
        secrets.properties

Nested TOML/JSON/YAML tables are flattened into dotted keys, and values are
stringified so typed access behaves the same for every backing store.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Sequence

from ..domain.environment import Environment
from ..domain.errors import InvalidFormat, MissingEnvironmentError, NotFound
from ..domain.snapshot import ConfigurationSnapshot
from ..observability import log_debug, log_warning, make_event
from .file_loaders.structured import DEFAULT_LOADERS, BaseFileLoader

DEFAULT_FILES: tuple[str, ...] = ("application.properties",)


class FilesConfigurationSource:
    """Read configuration files below ``root/<environment>``.

    Parameters
    ----------
    root:
        Base directory; the root environment reads files directly from it.
    files:
        File names (relative to the environment directory) read in order.
    loaders:
        Loaders keyed by lower-case suffix. Defaults to
        :data:`~lib_live_config.adapters.file_loaders.structured.DEFAULT_LOADERS`.
    list_delimiter:
        Separator used when a structured file holds a list value.
    """

    def __init__(
        self,
        root: str | Path,
        files: Sequence[str] = DEFAULT_FILES,
        *,
        loaders: Mapping[str, BaseFileLoader] | None = None,
        list_delimiter: str = ",",
    ) -> None:
        self._root = Path(root)
        self._files = tuple(files)
        self._loaders = dict(loaders or DEFAULT_LOADERS)
        self._delimiter = list_delimiter

    @property
    def name(self) -> str:
        return f"files:{self._root}"

    def initialize(self) -> None:
        return None

    def refresh(self) -> None:
        return None

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        directory = self._root / environment.prefix if environment.prefix else self._root
        if not directory.is_dir():
            log_warning("environment_missing", **make_event(self.name, environment.name, {"path": str(directory)}))
            raise MissingEnvironmentError(
                f"Directory doesn't exist: {environment.name or '/'} (looked in {directory})",
                environment=environment.name,
            )
        data: dict[str, str] = {}
        for file_name in self._files:
            path = directory / file_name
            if not path.is_file():
                log_debug("config_file_skipped", **make_event(self.name, environment.name, {"path": str(path)}))
                continue
            try:
                payload = self._loader_for(path).load(str(path))
            except NotFound:
                log_debug("config_file_skipped", **make_event(self.name, environment.name, {"path": str(path)}))
                continue
            data.update(flatten(payload, delimiter=self._delimiter))
        log_debug("source_fetched", **make_event(self.name, environment.name, {"keys": len(data)}))
        return ConfigurationSnapshot.of(data, origin=self.name)

    def _loader_for(self, path: Path) -> BaseFileLoader:
        loader = self._loaders.get(path.suffix.lower())
        if loader is None:
            raise InvalidFormat(f"No loader registered for configuration file {path}")
        return loader

    def __repr__(self) -> str:
        return f"FilesConfigurationSource(root={str(self._root)!r}, files={self._files!r})"


def flatten(payload: Mapping[str, object], *, delimiter: str = ",", prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted keys with string values.

    Examples
    --------
    >>> flatten({"db": {"port": 5432, "ssl": True}, "hosts": ["a", "b"]})
    {'db.port': '5432', 'db.ssl': 'true', 'hosts': 'a,b'}
    """

    flat: dict[str, str] = {}
    for key, value in payload.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, delimiter=delimiter, prefix=dotted))
        else:
            flat[dotted] = stringify(value, delimiter=delimiter)
    return flat


def stringify(value: object, *, delimiter: str = ",") -> str:
    """Render a parsed scalar or list the way it would appear in a properties file."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return delimiter.join(stringify(item, delimiter=delimiter) for item in value)
    return str(value)
