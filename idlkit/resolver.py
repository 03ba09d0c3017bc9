"""Resolve type descriptors to the concrete shape used for editing and encoding."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union

from .errors import IdlFormatError, UnresolvedDefinedType
from .types import (
    Array,
    COption,
    Defined,
    EnumDef,
    Option,
    Primitive,
    StructDef,
    TypeAlias,
    TypeDescriptor,
    TypeRegistry,
    Vector,
)

ShapeNode = Union[Primitive, Vector, Array, StructDef, EnumDef, Defined]


@dataclass(frozen=True)
class ResolvedShape:
    """A descriptor with options unwrapped and defined references looked up.

    `node` is a `Defined` only when the reference could not be resolved.
    """

    node: ShapeNode
    optional: bool = False

    def required(self) -> "ResolvedShape":
        """The same shape without the option wrapper."""
        return replace(self, optional=False)

    @property
    def is_enum(self) -> bool:
        return isinstance(self.node, EnumDef)

    @property
    def is_struct(self) -> bool:
        return isinstance(self.node, StructDef)

    @property
    def is_list(self) -> bool:
        return isinstance(self.node, (Vector, Array))

    @property
    def is_opaque(self) -> bool:
        return isinstance(self.node, Defined)

    @property
    def is_integer(self) -> bool:
        return isinstance(self.node, Primitive) and self.node.is_integer

    @property
    def is_pubkey(self) -> bool:
        return isinstance(self.node, Primitive) and self.node.is_pubkey


def resolve(descriptor: TypeDescriptor, registry: TypeRegistry, strict: bool = False) -> ResolvedShape:
    optional = False
    current = descriptor
    aliases_seen: set[str] = set()
    while True:
        if isinstance(current, (Option, COption)):
            optional = True
            current = current.inner
            continue
        if isinstance(current, Defined):
            definition = registry.get(current.name)
            if definition is None:
                if strict:
                    raise UnresolvedDefinedType(current.name)
                return ResolvedShape(current, optional)
            if isinstance(definition, TypeAlias):
                key = definition.name.lower()
                if key in aliases_seen:
                    raise IdlFormatError(f"Type alias cycle through {definition.name}")
                aliases_seen.add(key)
                current = definition.target
                continue
            return ResolvedShape(definition, optional)
        return ResolvedShape(current, optional)


def element_shape(shape: ResolvedShape, registry: TypeRegistry) -> ResolvedShape:
    """Resolved shape of the elements of a vector/array shape."""
    node = shape.node
    if not isinstance(node, (Vector, Array)):
        raise TypeError(f"not a list shape: {node!r}")
    return resolve(node.inner, registry)


def describe(shape: ResolvedShape) -> str:
    """Short label for a resolved shape (enum, struct, the primitive name, ...)."""
    node = shape.node
    if isinstance(node, EnumDef):
        label = f"enum {node.name}"
    elif isinstance(node, StructDef):
        label = f"struct {node.name}"
    elif isinstance(node, Defined):
        label = f"{node.name} (unresolved)"
    elif isinstance(node, Primitive):
        label = node.name
    elif isinstance(node, Vector):
        label = "vec"
    else:
        label = f"array[{node.length}]"
    return f"option {label}" if shape.optional else label
