"""Environment variable source.

Purpose
-------
Translate process environment variables into dotted configuration keys so they
can join a merge as the highest-precedence layer.

Key behaviours
--------------
* Only variables starting with ``<PREFIX>_`` are captured.
* A non-root environment narrows the capture further: ``us-west/prod`` expects
  ``<PREFIX>_US_WEST__PROD__`` in front of the key.
* ``__`` separates nesting levels (``DB__PORT`` → ``db.port``); keys are
  lower-cased.
* Values stay strings; typed access converts them on read.
* Process environments have no namespace notion, so an unmatched environment
  yields an empty snapshot rather than ``MissingEnvironmentError``.
"""

from __future__ import annotations

import os
from typing import Mapping

from ..domain.environment import Environment
from ..domain.snapshot import ConfigurationSnapshot
from ..observability import log_debug, make_event

NESTING: str = "__"


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('lib-live-config')
    'LIB_LIVE_CONFIG'
    """

    return slug.replace("-", "_").replace("/", "_").upper()


class EnvironmentVariablesConfigurationSource:
    """Read variables that belong to the configuration namespace.

    Parameters
    ----------
    prefix:
        Namespace filter (upper-case). ``_`` is appended if missing.
    environ:
        Mapping to read from. Defaults to :data:`os.environ`, read on every
        fetch so changes become visible to polling strategies.

    Examples
    --------
    >>> env = {"DEMO_DB__PORT": "5432", "DEMO_PROD__DB__PORT": "6543", "OTHER": "x"}
    >>> source = EnvironmentVariablesConfigurationSource("DEMO", environ=env)
    >>> source.fetch(Environment()).get("db.port")
    '5432'
    >>> source.fetch(Environment("prod")).as_dict()
    {'db.port': '6543'}
    """

    def __init__(self, prefix: str, *, environ: Mapping[str, str] | None = None) -> None:
        self._prefix = prefix if not prefix or prefix.endswith("_") else f"{prefix}_"
        self._environ = environ

    @property
    def name(self) -> str:
        return f"env:{self._prefix}"

    def initialize(self) -> None:
        return None

    def refresh(self) -> None:
        return None

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        head = self._prefix + _environment_segment(environment)
        environ = self._environ if self._environ is not None else os.environ
        collected: dict[str, str] = {}
        for variable, value in environ.items():
            if head and not variable.upper().startswith(head):
                continue
            stripped = variable[len(head) :]
            if not stripped:
                continue
            collected[_dotted(stripped)] = value
        log_debug("source_fetched", **make_event(self.name, environment.name, {"keys": sorted(collected)}))
        return ConfigurationSnapshot.of(collected, origin=self.name)


def _environment_segment(environment: Environment) -> str:
    """Render ``us-west/prod`` as ``US_WEST__PROD__``."""

    return "".join(default_env_prefix(segment) + NESTING for segment in environment.segments())


def _dotted(variable: str) -> str:
    """Translate ``DB__PORT`` into ``db.port``."""

    return ".".join(part.lower() for part in variable.split(NESTING) if part)
