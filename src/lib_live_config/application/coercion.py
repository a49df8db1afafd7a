"""String-to-type coercion driven by tagged target shapes.

Purpose
-------
Convert raw string values into the types callers ask for. Each requested type is
first described as a :class:`Shape` (a small tagged descriptor) and the
conversion is then dispatched on the shape's :class:`ShapeKind`. Supporting a
new kind of target means adding a kind plus one converter, never new runtime
introspection at read time.

Contents
--------
* :class:`ShapeKind` / :class:`Shape` – the descriptor vocabulary.
* :func:`describe` – derive a shape from a type or type hint.
* :class:`TypeCoercion` – converts values for a given shape, resolving
  structured shapes through a lookup callable.

System Role
-----------
Used by :class:`lib_live_config.application.provider.ConfigurationProvider` for
every typed read and by the binding layer at bind time to pre-compute shapes.
"""

from __future__ import annotations

import dataclasses
import enum
import types
import typing
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Final, Mapping, Union

from ..domain.errors import ConversionError, KeyNotFoundError, ValidationError

DEFAULT_DELIMITER: Final[str] = ","

_TRUE: Final[frozenset[str]] = frozenset({"true", "yes", "on", "1"})
_FALSE: Final[frozenset[str]] = frozenset({"false", "no", "off", "0"})

#: Callable returning the raw value for a dotted key or raising KeyNotFoundError.
Lookup = Callable[[str], str]


class ShapeKind(enum.Enum):
    PRIMITIVE = "primitive"
    ENUM = "enum"
    SEQUENCE = "sequence"
    OPTIONAL = "optional"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class Field:
    """One named member of a structured shape.

    ``default_factory`` produces the value of an absent optional member; it is
    called once per read so mutable defaults are never shared between reads.
    """

    name: str
    shape: Shape
    required: bool = True
    default_factory: Callable[[], Any] | None = None

    def fallback(self) -> Any:
        return self.default_factory() if self.default_factory is not None else None


@dataclass(frozen=True)
class Shape:
    """Tagged description of a coercion target.

    Attributes
    ----------
    kind:
        Which converter handles the shape.
    target:
        The concrete Python type produced (``int``, an enum class, ``list``,
        a dataclass, ...).
    element:
        Element shape for sequences and the wrapped shape for optionals.
    fields:
        Member descriptors for structured shapes.
    """

    kind: ShapeKind
    target: Any
    element: Shape | None = None
    fields: tuple[Field, ...] = ()

    @property
    def label(self) -> str:
        return getattr(self.target, "__name__", None) or repr(self.target)


_PRIMITIVES: Final[tuple[type, ...]] = (str, int, float, bool, Decimal, Path)
_SEQUENCES: Final[tuple[type, ...]] = (list, tuple, set, frozenset)


def describe(target: Any) -> Shape:
    """Return the :class:`Shape` for a type or type hint.

    Raises
    ------
    TypeError
        When *target* is outside the supported closed set.

    Examples
    --------
    >>> describe(int).kind
    <ShapeKind.PRIMITIVE: 'primitive'>
    >>> describe(list[int]).element.target
    <class 'int'>
    """

    return _describe_cached(target)


@lru_cache(maxsize=256)
def _describe_cached(target: Any) -> Shape:
    if target is Any or target is None:
        return Shape(ShapeKind.PRIMITIVE, str)
    origin = typing.get_origin(target)
    if origin is Union or origin is types.UnionType:
        return _describe_union(target)
    if origin in _SEQUENCES:
        return _describe_sequence(origin, typing.get_args(target))
    if isinstance(target, type):
        if issubclass(target, enum.Enum):
            return Shape(ShapeKind.ENUM, target)
        if target in _PRIMITIVES or issubclass(target, _PRIMITIVES):
            return Shape(ShapeKind.PRIMITIVE, target)
        if target in _SEQUENCES:
            return Shape(ShapeKind.SEQUENCE, target, element=Shape(ShapeKind.PRIMITIVE, str))
        return _describe_structured(target)
    raise TypeError(f"Unsupported configuration target: {target!r}")


def _describe_union(target: Any) -> Shape:
    members = [arg for arg in typing.get_args(target) if arg is not type(None)]
    if len(members) != 1:
        raise TypeError(f"Only Optional[T] unions are supported, got {target!r}")
    inner = describe(members[0])
    return Shape(ShapeKind.OPTIONAL, inner.target, element=inner)


def _describe_sequence(origin: type, args: tuple[Any, ...]) -> Shape:
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        args = args[:1]
    elif origin is tuple and len(set(args)) > 1:
        raise TypeError("Only homogeneous tuple[T, ...] targets are supported")
    element = describe(args[0]) if args else Shape(ShapeKind.PRIMITIVE, str)
    if element.kind not in (ShapeKind.PRIMITIVE, ShapeKind.ENUM):
        raise TypeError(f"Sequence elements must be primitives or enums, got {element.label}")
    return Shape(ShapeKind.SEQUENCE, origin, element=element)


def _describe_structured(target: type) -> Shape:
    hints = _field_hints(target)
    if not hints:
        raise TypeError(f"Unsupported configuration target without annotated fields: {target.__name__}")
    defaults = _field_defaults(target)
    fields = tuple(
        Field(name, describe(hint), required=name not in defaults, default_factory=defaults.get(name))
        for name, hint in hints.items()
    )
    return Shape(ShapeKind.STRUCTURED, target, fields=fields)


def _field_hints(target: type) -> dict[str, Any]:
    hints = typing.get_type_hints(target)
    if dataclasses.is_dataclass(target):
        return {f.name: hints[f.name] for f in dataclasses.fields(target) if f.init}
    return {name: hint for name, hint in hints.items() if not name.startswith("_") and typing.get_origin(hint) is not typing.ClassVar}


def _field_defaults(target: type) -> dict[str, Callable[[], Any]]:
    """Map each member with a default to a factory producing that default."""

    if dataclasses.is_dataclass(target):
        defaults: dict[str, Callable[[], Any]] = {}
        for f in dataclasses.fields(target):
            if f.default is not dataclasses.MISSING:
                defaults[f.name] = _constant(f.default)
            elif f.default_factory is not dataclasses.MISSING:
                defaults[f.name] = f.default_factory
        return defaults
    named_defaults = getattr(target, "_field_defaults", None)
    if isinstance(named_defaults, Mapping):
        return {name: _constant(value) for name, value in named_defaults.items()}
    return {
        name: _constant(getattr(target, name)) for name in typing.get_type_hints(target) if hasattr(target, name)
    }


def _constant(value: Any) -> Callable[[], Any]:
    return lambda: value


class TypeCoercion:
    """Convert raw strings into the shape a caller requested.

    Parameters
    ----------
    delimiter:
        Separator used to split sequence values. Must be non-blank.

    Examples
    --------
    >>> coercion = TypeCoercion()
    >>> coercion.convert("ports", "80, 443", describe(list[int]))
    [80, 443]
    >>> coercion.convert("debug", "on", describe(bool))
    True
    """

    def __init__(self, *, delimiter: str = DEFAULT_DELIMITER) -> None:
        if not delimiter or not delimiter.strip():
            raise ValidationError("List delimiter must be a non-blank string")
        self._delimiter = delimiter
        self._converters: dict[ShapeKind, Callable[[str, str, Shape], Any]] = {
            ShapeKind.PRIMITIVE: self._convert_primitive,
            ShapeKind.ENUM: self._convert_enum,
            ShapeKind.SEQUENCE: self._convert_sequence,
            ShapeKind.OPTIONAL: self._convert_optional,
        }

    @property
    def delimiter(self) -> str:
        return self._delimiter

    def convert(self, key: str, raw: str, shape: Shape) -> Any:
        """Convert one raw value; structured shapes need :meth:`resolve`."""

        converter = self._converters.get(shape.kind)
        if converter is None:
            raise TypeError(f"Shape {shape.kind.value} cannot be converted from a single value")
        return converter(key, raw, shape)

    def resolve(self, key: str, shape: Shape, lookup: Lookup) -> Any:
        """Resolve *key* for *shape*, reading one or more raw values via *lookup*.

        Raises
        ------
        KeyNotFoundError
            When a required key (or structured field) is absent.
        ConversionError
            When a present value cannot be converted.
        """

        if shape.kind is ShapeKind.STRUCTURED:
            return self._resolve_structured(key, shape, lookup)
        if shape.kind is ShapeKind.OPTIONAL:
            assert shape.element is not None
            try:
                return self.resolve(key, shape.element, lookup)
            except KeyNotFoundError:
                return None
        return self.convert(key, lookup(key), shape)

    def _resolve_structured(self, key: str, shape: Shape, lookup: Lookup) -> Any:
        values: dict[str, Any] = {}
        for member in shape.fields:
            member_key = f"{key}.{member.name}" if key else member.name
            try:
                values[member.name] = self.resolve(member_key, member.shape, lookup)
            except KeyNotFoundError:
                if member.required:
                    raise
                values[member.name] = member.fallback()
        try:
            return shape.target(**values)
        except (TypeError, ValueError) as exc:
            raise ConversionError(key, "", shape.target, str(exc)) from exc

    def _convert_primitive(self, key: str, raw: str, shape: Shape) -> Any:
        target = shape.target
        if issubclass(target, str):
            return target(raw)
        text = raw.strip()
        try:
            if issubclass(target, bool):
                return _parse_bool(text)
            return target(text)
        except (ValueError, InvalidOperation) as exc:
            raise ConversionError(key, raw, target) from exc

    def _convert_enum(self, key: str, raw: str, shape: Shape) -> Any:
        try:
            return shape.target[raw.strip()]
        except KeyError as exc:
            choices = ", ".join(member.name for member in shape.target)
            raise ConversionError(key, raw, shape.target, f"expected one of {choices}") from exc

    def _convert_sequence(self, key: str, raw: str, shape: Shape) -> Any:
        element = shape.element or Shape(ShapeKind.PRIMITIVE, str)
        if not raw.strip():
            return shape.target()
        items = [self.convert(key, part.strip(), element) for part in raw.split(self._delimiter)]
        return shape.target(items)

    def _convert_optional(self, key: str, raw: str, shape: Shape) -> Any:
        assert shape.element is not None
        return self.convert(key, raw, shape.element)


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean literal: {text!r}")
