"""Key/value store source.

Purpose
-------
Expose a hierarchical key/value store (Consul, etcd, or the in-memory store used
in tests) as a :class:`~lib_live_config.application.ports.ConfigurationSource`.
The network client itself is supplied through the
:class:`~lib_live_config.application.ports.KeyValueClient` port, either ready
made or through a factory invoked by :meth:`KeyValueConfigurationSource.initialize`.

Key translation
---------------
Store paths below ``root`` are matched against the environment prefix, the
prefix is stripped, and ``/`` becomes ``.``: with ``root="/"`` and environment
``us-west``, the path ``us-west/db/host`` becomes ``db.host``. A path ending in
``/`` is a folder marker: it proves the environment exists but contributes no
key.
"""

from __future__ import annotations

from typing import Callable, Mapping

from ..application.ports import KeyValueClient
from ..domain.environment import Environment
from ..domain.errors import CommunicationError, MissingEnvironmentError, NotInitializedError
from ..domain.snapshot import ConfigurationSnapshot, translate_key
from ..observability import log_debug, log_error, log_info, log_warning, make_event

ClientFactory = Callable[[], KeyValueClient]


class KeyValueConfigurationSource:
    """Read configuration from a key/value store.

    Parameters
    ----------
    client:
        Ready client; the source counts as initialised immediately.
    client_factory:
        Callable creating the client during :meth:`initialize`. Exactly one of
        ``client`` / ``client_factory`` is required.
    root:
        Store path whose subtree is read on every fetch.
    name:
        Identifier used in logs and provenance.

    Values are cached between fetches; :meth:`refresh` drops the cache. A
    failed read marks the source uninitialised so the next ``initialize`` can
    rebuild the client.
    """

    def __init__(
        self,
        client: KeyValueClient | None = None,
        *,
        client_factory: ClientFactory | None = None,
        root: str = "/",
        name: str | None = None,
    ) -> None:
        if (client is None) == (client_factory is None):
            raise ValueError("Provide exactly one of client or client_factory")
        self._client = client
        self._factory = client_factory
        self._root = root or "/"
        self._name = name or f"kv:{self._root}"
        self._values: Mapping[str, str | None] | None = None
        self._initialized = client is not None

    @property
    def name(self) -> str:
        return self._name

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Create the client through the factory; a no-op once initialised."""

        if self._initialized:
            return
        assert self._factory is not None
        try:
            log_info("source_connecting", **make_event(self._name, None))
            self._client = self._factory()
        except Exception as exc:  # noqa: BLE001 - any transport failure is a communication failure
            log_error("source_initialize_failed", **make_event(self._name, None, {"error": str(exc)}))
            raise CommunicationError(f"Can't connect to key/value store for {self._name}: {exc}") from exc
        self._initialized = True
        log_debug("source_initialized", **make_event(self._name, None))

    def refresh(self) -> None:
        self._values = None

    def fetch(self, environment: Environment) -> ConfigurationSnapshot:
        if not self._initialized:
            raise NotInitializedError(
                f"{self._name} has to be successfully initialized before you request configuration"
            )
        values = self._values if self._values is not None else self._load(environment)
        prefix = environment.store_prefix(self._root)
        data: dict[str, str] = {}
        exists = not environment.prefix
        for path, value in values.items():
            normalized = path.lstrip("/")
            if not normalized.startswith(prefix):
                continue
            exists = True
            key = translate_key(normalized, prefix)
            if key is not None:
                data[key] = value or ""
        if not exists:
            log_warning("environment_missing", **make_event(self._name, environment.name))
            raise MissingEnvironmentError(
                f"Environment '{environment.name}' doesn't exist in {self._name}",
                environment=environment.name,
            )
        log_debug("source_fetched", **make_event(self._name, environment.name, {"keys": len(data)}))
        return ConfigurationSnapshot.of(data, origin=self._name)

    def _load(self, environment: Environment) -> Mapping[str, str | None]:
        assert self._client is not None
        try:
            log_debug("source_loading", **make_event(self._name, environment.name))
            values = dict(self._client.get_values(self._root))
        except Exception as exc:  # noqa: BLE001 - any transport failure is a communication failure
            if self._factory is not None:
                self._initialized = False
            log_error("source_fetch_failed", **make_event(self._name, environment.name, {"error": str(exc)}))
            raise CommunicationError(f"Can't get values from key/value store {self._name}: {exc}") from exc
        self._values = values
        return values

    def __repr__(self) -> str:
        return f"KeyValueConfigurationSource(name={self._name!r}, root={self._root!r})"
