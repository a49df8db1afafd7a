"""Shared test helpers for building environment directory trees and spies."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from textwrap import dedent

from lib_live_config.domain.environment import Environment
from lib_live_config.domain.errors import CommunicationError
from lib_live_config.domain.snapshot import ConfigurationSnapshot


@dataclass(slots=True)
class ConfigTree:
    """Directory tree with one sub-directory per environment."""

    root: Path

    def write(self, environment: str, relative: str, content: str) -> Path:
        """Write *content* (dedented) to ``root/<environment>/<relative>``."""

        directory = self.root / Environment(environment).prefix if environment else self.root
        target = directory / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
        return target

    def mkdir(self, environment: str) -> Path:
        directory = self.root / Environment(environment).prefix
        directory.mkdir(parents=True, exist_ok=True)
        return directory


def create_config_tree(tmp_path: Path) -> ConfigTree:
    root = tmp_path / "config"
    root.mkdir(parents=True, exist_ok=True)
    return ConfigTree(root)


@dataclass(eq=False)
class RecordingReloadable:
    """Reloadable that records every delivered snapshot."""

    snapshots: list[ConfigurationSnapshot] = field(default_factory=list)
    delivered: threading.Event = field(default_factory=threading.Event)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def reload(self, snapshot: ConfigurationSnapshot) -> None:
        with self._lock:
            self.snapshots.append(snapshot)
        self.delivered.set()

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        """Block until at least *count* snapshots arrived or *timeout* elapsed."""

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if len(self.snapshots) >= count:
                    return True
            time.sleep(0.01)
        with self._lock:
            return len(self.snapshots) >= count

    @property
    def count(self) -> int:
        with self._lock:
            return len(self.snapshots)

    @property
    def last(self) -> ConfigurationSnapshot:
        with self._lock:
            return self.snapshots[-1]


class FlakySource:
    """Source whose fetch fails while ``failing`` is set."""

    def __init__(self, values: dict[str, str], *, name: str = "flaky") -> None:
        self.values = dict(values)
        self.failing = False
        self.fetches = 0
        self.refreshes = 0
        self.initializations = 0
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def initialize(self) -> None:
        self.initializations += 1

    def refresh(self) -> None:
        self.refreshes += 1

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        self.fetches += 1
        if self.failing:
            raise CommunicationError("store unreachable")
        return ConfigurationSnapshot.of(self.values, origin=self._name)
