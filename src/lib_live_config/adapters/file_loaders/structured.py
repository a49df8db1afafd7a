"""Structured configuration file loaders.

Purpose
-------
Convert on-disk artifacts into Python mappings that the files source flattens
into dotted keys. Loaders are small wrappers around ``tomllib`` / ``json`` /
``yaml.safe_load`` and a ``.properties`` reader, so error handling and
observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`TOMLFileLoader`, :class:`JSONFileLoader`, :class:`YAMLFileLoader`.
* :class:`PropertiesFileLoader` – ``key=value`` / ``key: value`` files.
* :data:`DEFAULT_LOADERS` – loaders keyed by file suffix.

System Role
-----------
Invoked by :class:`lib_live_config.adapters.files.FilesConfigurationSource`.
A missing file raises :class:`NotFound` (skipped by the source); unreadable
files raise :class:`CommunicationError`; malformed content raises
:class:`InvalidFormat`.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Mapping

import yaml

from ...domain.errors import CommunicationError, InvalidFormat, NotFound
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Why
        ----
        Every loader needs the same existence check, I/O error mapping, and
        logging; keeping them here lets the files source treat all formats alike.

        Parameters
        ----------
        path:
            File path inside an environment directory.

        Returns
        -------
        bytes
            Raw file contents.

        Raises
        ------
        NotFound
            When *path* is not a regular file; the files source skips it.
        CommunicationError
            When the file exists but cannot be read.

        Side Effects
        ------------
        Emits ``config_file_read`` debug events.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"key = 'value'")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:3]
        b'key'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Configuration file not found: {path}")
        try:
            payload = file_path.read_bytes()
        except OSError as exc:
            log_error("config_file_unreadable", source="file", path=path, error=str(exc))
            raise CommunicationError(f"Cannot read configuration file {path}: {exc}") from exc
        log_debug("config_file_read", source="file", path=path, size=len(payload))
        return payload

    def _decode(self, payload: bytes, *, path: str, fmt: str) -> str:
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            log_error("config_file_invalid", source="file", path=path, format=fmt, error=str(exc))
            raise InvalidFormat(f"{path} is not valid UTF-8: {exc}") from exc

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Why
        ----
        Flattening into dotted keys expects a mapping at the top level; a bare
        list or scalar means the file is not a configuration document.

        Parameters
        ----------
        data:
            Object produced by the parser.
        path:
            Originating file path used for error messaging.

        Returns
        -------
        Mapping[str, object]
            The validated mapping.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> BaseFileLoader._ensure_mapping(42, path="demo")
        Traceback (most recent call last):
        ...
        lib_live_config.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data  # type: ignore[return-value]


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return the mapping parsed from the TOML file at *path*.

        Parameters
        ----------
        path:
            Path to a TOML document.

        Returns
        -------
        Mapping[str, object]
            Parsed, still nested configuration data.

        Side Effects
        ------------
        Emits ``config_file_loaded`` debug events.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', suffix='.toml', delete=False, encoding='utf-8')
        >>> _ = tmp.write('[db]\\nport = 5432\\n')
        >>> tmp.close()
        >>> TOMLFileLoader().load(tmp.name)["db"]["port"]
        5432
        >>> Path(tmp.name).unlink()
        """

        text = self._decode(self._read(path), path=path, fmt="toml")
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            log_error("config_file_invalid", source="file", path=path, format="toml", error=str(exc))
            raise InvalidFormat(f"Invalid TOML in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", source="file", path=path, format="toml")
        return result


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return the mapping parsed from the JSON file at *path*.

        Why
        ----
        Parity with TOML for deployments that generate configuration as JSON.

        Parameters
        ----------
        path:
            Path to a JSON document.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', suffix='.json', delete=False, encoding='utf-8')
        >>> _ = tmp.write('{"enabled": true}')
        >>> tmp.close()
        >>> JSONFileLoader().load(tmp.name)["enabled"]
        True
        >>> Path(tmp.name).unlink()
        """

        try:
            data = json.loads(self._read(path))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            log_error("config_file_invalid", source="file", path=path, format="json", error=str(exc))
            raise InvalidFormat(f"Invalid JSON in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", source="file", path=path, format="json")
        return result


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents with ``yaml.safe_load``; an empty file is an empty mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return the mapping parsed from the YAML file at *path*.

        Parameters
        ----------
        path:
            Path to a YAML document.

        Raises
        ------
        InvalidFormat
            When the document does not parse or its top level is not a mapping.
        """

        try:
            data = yaml.safe_load(self._read(path))
        except yaml.YAMLError as exc:
            log_error("config_file_invalid", source="file", path=path, format="yaml", error=str(exc))
            raise InvalidFormat(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", source="file", path=path, format="yaml")
        return result


class PropertiesFileLoader(BaseFileLoader):
    """Load ``.properties`` files (``key=value`` or ``key: value`` per line).

    Blank lines and lines starting with ``#`` or ``!`` are ignored; a trailing
    backslash continues the value on the next line.

    Examples
    --------
    >>> PropertiesFileLoader.parse("db.host = localhost\\n# note\\ndb.port:5432", path="demo")
    {'db.host': 'localhost', 'db.port': '5432'}
    """

    def load(self, path: str) -> Mapping[str, object]:
        text = self._decode(self._read(path), path=path, fmt="properties")
        result = self.parse(text, path=path)
        log_debug("config_file_loaded", source="file", path=path, format="properties")
        return result

    @staticmethod
    def parse(text: str, *, path: str) -> dict[str, object]:
        data: dict[str, object] = {}
        pending = ""
        for number, raw_line in enumerate(text.splitlines(), start=1):
            line = pending + raw_line.strip() if pending else raw_line.strip()
            pending = ""
            if not line or line[0] in "#!":
                continue
            if line.endswith("\\"):
                pending = line[:-1]
                continue
            key, value = _split_property(line, path=path, number=number)
            data[key] = value
        if pending:
            key, value = _split_property(pending, path=path, number=-1)
            data[key] = value
        return data


def _split_property(line: str, *, path: str, number: int) -> tuple[str, str]:
    positions = [index for index in (line.find("="), line.find(":")) if index >= 0]
    if not positions:
        raise InvalidFormat(f"Invalid property line {number} in {path}: {line!r}")
    split_at = min(positions)
    key = line[:split_at].strip()
    if not key:
        raise InvalidFormat(f"Empty property key on line {number} in {path}")
    return key, line[split_at + 1 :].strip()


#: Supported loaders keyed by lower-case suffix.
DEFAULT_LOADERS: Mapping[str, BaseFileLoader] = {
    ".toml": TOMLFileLoader(),
    ".json": JSONFileLoader(),
    ".yaml": YAMLFileLoader(),
    ".yml": YAMLFileLoader(),
    ".properties": PropertiesFileLoader(),
}
