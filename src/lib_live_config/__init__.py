"""Public package surface for ``lib_live_config``.

Re-exports the composition root, the provider, the sources and strategies, and
the error taxonomy so ``from lib_live_config import ...`` covers typical use.
"""

from __future__ import annotations

from .adapters.env import EnvironmentVariablesConfigurationSource, default_env_prefix
from .adapters.files import FilesConfigurationSource
from .adapters.kv import KeyValueConfigurationSource
from .adapters.memory import InMemoryConfigurationSource, InMemoryKeyValueStore
from .application.coercion import Shape, ShapeKind, TypeCoercion, describe
from .application.merge import MergingConfigurationSource, merge_layers
from .application.provider import ConfigurationProvider
from .application.reload import ImmediateReloadStrategy, PollingReloadStrategy, PushReloadStrategy
from .core import combine_sources, create_provider, polling, push, read_properties
from .domain.environment import Environment
from .domain.errors import (
    CommunicationError,
    ConfigError,
    ConversionError,
    InitializationError,
    InvalidFormat,
    KeyNotFoundError,
    MissingEnvironmentError,
    NotFound,
    NotInitializedError,
    ValidationError,
)
from .domain.snapshot import EMPTY_SNAPSHOT, ConfigurationSnapshot
from .observability import bind_trace_id, get_logger

__all__ = [
    "CommunicationError",
    "ConfigError",
    "ConfigurationProvider",
    "ConfigurationSnapshot",
    "ConversionError",
    "EMPTY_SNAPSHOT",
    "Environment",
    "EnvironmentVariablesConfigurationSource",
    "FilesConfigurationSource",
    "ImmediateReloadStrategy",
    "InMemoryConfigurationSource",
    "InMemoryKeyValueStore",
    "InitializationError",
    "InvalidFormat",
    "KeyNotFoundError",
    "KeyValueConfigurationSource",
    "MergingConfigurationSource",
    "MissingEnvironmentError",
    "NotFound",
    "NotInitializedError",
    "PollingReloadStrategy",
    "PushReloadStrategy",
    "Shape",
    "ShapeKind",
    "TypeCoercion",
    "ValidationError",
    "bind_trace_id",
    "combine_sources",
    "create_provider",
    "default_env_prefix",
    "describe",
    "get_logger",
    "merge_layers",
    "polling",
    "push",
    "read_properties",
]
