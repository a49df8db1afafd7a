"""Bind contract classes to live configuration lookups.

Purpose
-------
Turn an interface-shaped class (a ``Protocol`` or ``ABC`` whose methods take no
arguments) into an object whose method calls read configuration. The mapping
from operation name to ``(key, shape)`` is computed once at bind time; every
call performs a fresh lookup against whatever snapshot is current, so bound
objects never hold values of their own.

Contents
--------
* :class:`Operation` – one row of the dispatch table.
* :func:`build_dispatch_table` – derive the table from a contract.
* :func:`bind_contract` – generate an adapter class and instantiate it.
"""

from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, TypeVar

from .coercion import Shape, describe

C = TypeVar("C")


class PropertyReader(Protocol):
    """The part of the provider a bound object needs."""

    def read_shape(self, key: str, shape: Shape) -> Any: ...


@dataclass(frozen=True)
class Operation:
    name: str
    key: str
    shape: Shape


def build_dispatch_table(prefix: str, contract: type) -> dict[str, Operation]:
    """Map every public contract method to its configuration key and shape.

    Raises
    ------
    TypeError
        When *contract* is not a class, has no operations, or declares an
        operation that takes arguments.
    """

    if not isinstance(contract, type):
        raise TypeError(f"Binding contract must be a class, got {contract!r}")
    table: dict[str, Operation] = {}
    for name, member in _public_methods(contract):
        _require_accessor(contract, name, member)
        key = f"{prefix}.{name}" if prefix else name
        table[name] = Operation(name, key, describe(_return_type(member)))
    if not table:
        raise TypeError(f"Binding contract {contract.__name__} declares no operations")
    return table


def bind_contract(reader: PropertyReader, prefix: str, contract: type[C]) -> C:
    """Return an instance of a generated subclass of *contract* backed by *reader*."""

    table = build_dispatch_table(prefix, contract)
    namespace: dict[str, Any] = {name: _accessor(op) for name, op in table.items()}
    namespace["__init__"] = _init
    namespace["__repr__"] = _repr
    namespace["_dispatch"] = table
    adapter = type(f"Bound{contract.__name__}", (contract,), namespace)
    return adapter(reader, prefix)


def _accessor(operation: Operation) -> Callable[[Any], Any]:
    def accessor(self: Any) -> Any:
        return self._reader.read_shape(operation.key, operation.shape)

    accessor.__name__ = operation.name
    accessor.__qualname__ = operation.name
    return accessor


def _init(self: Any, reader: PropertyReader, prefix: str) -> None:
    self._reader = reader
    self._prefix = prefix


def _repr(self: Any) -> str:
    return f"<{type(self).__name__} prefix={self._prefix!r}>"


def _public_methods(contract: type) -> list[tuple[str, Any]]:
    methods: list[tuple[str, Any]] = []
    for name in dir(contract):
        if name.startswith("_"):
            continue
        member = inspect.getattr_static(contract, name)
        if isinstance(member, (staticmethod, classmethod, property)):
            continue
        if inspect.isfunction(member):
            methods.append((name, member))
    return methods


def _require_accessor(contract: type, name: str, member: Any) -> None:
    parameters = list(inspect.signature(member).parameters.values())[1:]
    required = [p for p in parameters if p.default is inspect.Parameter.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)]
    if required:
        raise TypeError(f"{contract.__name__}.{name} must not take arguments to be bound to configuration")


def _return_type(member: Any) -> Any:
    hints: Mapping[str, Any] = typing.get_type_hints(member)
    hint = hints.get("return")
    if hint is None or hint is type(None):
        return str
    return hint
