"""Type descriptors and definitions parsed from Anchor IDL documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

from .errors import IdlFormatError

INTEGER_TYPES: Dict[str, Tuple[int, bool]] = {
    "u8": (8, False),
    "i8": (8, True),
    "u16": (16, False),
    "i16": (16, True),
    "u32": (32, False),
    "i32": (32, True),
    "u64": (64, False),
    "i64": (64, True),
    "u128": (128, False),
    "i128": (128, True),
    "u256": (256, False),
    "i256": (256, True),
}
FLOAT_TYPES = {"f32", "f64"}

# Legacy (pre-0.30) Anchor spellings.
_PRIMITIVE_ALIASES = {"publicKey": "pubkey"}


@dataclass(frozen=True)
class Primitive:
    name: str

    @property
    def is_integer(self) -> bool:
        return self.name in INTEGER_TYPES

    @property
    def is_float(self) -> bool:
        return self.name in FLOAT_TYPES

    @property
    def is_bool(self) -> bool:
        return self.name == "bool"

    @property
    def is_pubkey(self) -> bool:
        return self.name == "pubkey"


@dataclass(frozen=True)
class Option:
    inner: "TypeDescriptor"


@dataclass(frozen=True)
class COption:
    inner: "TypeDescriptor"


@dataclass(frozen=True)
class Vector:
    inner: "TypeDescriptor"


@dataclass(frozen=True)
class Array:
    inner: "TypeDescriptor"
    length: int


@dataclass(frozen=True)
class Defined:
    name: str


TypeDescriptor = Union[Primitive, Option, COption, Vector, Array, Defined]


@dataclass(frozen=True)
class Field:
    name: Optional[str]
    type: TypeDescriptor


@dataclass(frozen=True)
class StructDef:
    name: str
    fields: Tuple[Field, ...]


@dataclass(frozen=True)
class Variant:
    name: str
    fields: Tuple[Field, ...] = ()


@dataclass(frozen=True)
class EnumDef:
    name: str
    variants: Tuple[Variant, ...]

    def variant(self, name: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.name == name:
                return variant
        return None


@dataclass(frozen=True)
class TypeAlias:
    name: str
    target: TypeDescriptor


TypeDefinition = Union[StructDef, EnumDef, TypeAlias]


def integer_bounds(name: str) -> Tuple[int, int]:
    """Inclusive (min, max) for an integer primitive name."""
    bits, signed = INTEGER_TYPES[name]
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


class TypeRegistry:
    """Named struct/enum definitions keyed by case-insensitive name."""

    def __init__(self, definitions: Iterable[TypeDefinition] = ()) -> None:
        self._by_name: Dict[str, TypeDefinition] = {}
        for definition in definitions:
            key = definition.name.lower()
            if key in self._by_name:
                raise IdlFormatError(f"Duplicate type definition: {definition.name}")
            self._by_name[key] = definition

    def get(self, name: str) -> Optional[TypeDefinition]:
        return self._by_name.get(name.lower())

    @property
    def definitions(self) -> Tuple[TypeDefinition, ...]:
        return tuple(self._by_name.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._by_name

    def __iter__(self) -> Iterator[TypeDefinition]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)


def _defined_name(raw: Any) -> str:
    if isinstance(raw, str) and raw:
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("name"), str) and raw["name"]:
        return raw["name"]
    raise IdlFormatError(f"defined type must name a type: {raw!r}")


def parse_type(raw: Any) -> TypeDescriptor:
    """Convert an IDL JSON type into a descriptor."""
    if isinstance(raw, str):
        if not raw:
            raise IdlFormatError("type name must not be empty")
        return Primitive(_PRIMITIVE_ALIASES.get(raw, raw))
    if not isinstance(raw, dict) or len(raw) != 1:
        raise IdlFormatError(f"Unrecognised type: {raw!r}")
    key, body = next(iter(raw.items()))
    if key == "option":
        return Option(parse_type(body))
    if key == "coption":
        return COption(parse_type(body))
    if key == "vec":
        return Vector(parse_type(body))
    if key == "array":
        if not isinstance(body, list) or len(body) != 2:
            raise IdlFormatError("array type must be [inner, length]")
        inner, length = body
        if not isinstance(length, int) or isinstance(length, bool) or length < 0:
            raise IdlFormatError(f"array length must be a non-negative integer: {length!r}")
        return Array(parse_type(inner), length)
    if key == "defined":
        return Defined(_defined_name(body))
    if key == "generic":
        return Defined(_defined_name(body))
    raise IdlFormatError(f"Unrecognised type: {raw!r}")


def format_type(descriptor: TypeDescriptor) -> str:
    if isinstance(descriptor, Primitive):
        return descriptor.name
    if isinstance(descriptor, Option):
        return f"option<{format_type(descriptor.inner)}>"
    if isinstance(descriptor, COption):
        return f"coption<{format_type(descriptor.inner)}>"
    if isinstance(descriptor, Vector):
        return f"vec<{format_type(descriptor.inner)}>"
    if isinstance(descriptor, Array):
        return f"[{format_type(descriptor.inner)}; {descriptor.length}]"
    if isinstance(descriptor, Defined):
        return f"defined<{descriptor.name}>"
    raise TypeError(f"not a type descriptor: {descriptor!r}")


def _parse_fields(raw: Any, context: str) -> Tuple[Field, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise IdlFormatError(f"{context} fields must be a list")
    fields = []
    for item in raw:
        # Named fields are {name, type}; tuple fields are bare types.
        if isinstance(item, dict) and "name" in item and "type" in item:
            fields.append(Field(str(item["name"]), parse_type(item["type"])))
        else:
            fields.append(Field(None, parse_type(item)))
    return tuple(fields)


def parse_type_definition(entry: Dict[str, Any]) -> TypeDefinition:
    """Parse one entry of the IDL `types` (or `accounts`) list."""
    if not isinstance(entry, dict):
        raise IdlFormatError("type definitions must be objects")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise IdlFormatError("type definition missing name")
    body = entry.get("type")
    if not isinstance(body, dict):
        raise IdlFormatError(f"type definition {name} missing type body")
    kind = body.get("kind")
    if kind == "struct":
        return StructDef(name, _parse_fields(body.get("fields"), name))
    if kind == "enum":
        raw_variants = body.get("variants")
        if not isinstance(raw_variants, list):
            raise IdlFormatError(f"enum {name} variants must be a list")
        variants = []
        for raw in raw_variants:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                raise IdlFormatError(f"enum {name} has a malformed variant")
            variants.append(Variant(raw["name"], _parse_fields(raw.get("fields"), f"{name}.{raw['name']}")))
        return EnumDef(name, tuple(variants))
    if kind == "type":
        return TypeAlias(name, parse_type(body.get("alias")))
    raise IdlFormatError(f"type definition {name} has unsupported kind {kind!r}")
