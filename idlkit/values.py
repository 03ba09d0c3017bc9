"""Editable values for IDL argument editors.

Every value is an immutable tree mirroring the resolved shape it was created
for. Edits are addressed by a path and return a new tree; untouched siblings
are shared with the old one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import json
import re
from typing import Any, Optional, Sequence, Tuple, Union

from .errors import InvalidEdit
from .resolver import ResolvedShape, element_shape
from .types import Array, EnumDef, INTEGER_TYPES, Primitive, TypeRegistry, Vector

# Path steps (besides integer list indices).
SOME = "some"
FIELDS = "fields"

_SIGNED_TEXT_RE = re.compile(r"-?[0-9]*")
_UNSIGNED_TEXT_RE = re.compile(r"[0-9]*")


@dataclass(frozen=True)
class Scalar:
    text: str = ""


@dataclass(frozen=True)
class Boolean:
    value: bool = False


@dataclass(frozen=True)
class OptionValue:
    present: bool = False
    inner: Optional["EditableValue"] = None


@dataclass(frozen=True)
class ListValue:
    items: Tuple["EditableValue", ...] = ()


@dataclass(frozen=True)
class EnumValue:
    variant: str
    fields: Optional["EditableValue"] = None


@dataclass(frozen=True)
class RawJson:
    text: str = ""


EditableValue = Union[Scalar, Boolean, OptionValue, ListValue, EnumValue, RawJson]
PathStep = Union[int, str]


@dataclass(frozen=True)
class SetText:
    text: str


@dataclass(frozen=True)
class SetBool:
    value: bool


@dataclass(frozen=True)
class SetJson:
    text: str


@dataclass(frozen=True)
class Append:
    pass


@dataclass(frozen=True)
class RemoveAt:
    index: int


@dataclass(frozen=True)
class ReplaceAt:
    index: int
    value: EditableValue


@dataclass(frozen=True)
class SetPresent:
    present: bool


@dataclass(frozen=True)
class SelectVariant:
    variant: str


EditOp = Union[SetText, SetBool, SetJson, Append, RemoveAt, ReplaceAt, SetPresent, SelectVariant]


def synthesize_default(shape: ResolvedShape, registry: TypeRegistry) -> EditableValue:
    """Initial editor value for a shape.

    Enums start on their first declared variant so a required enum argument
    is never left without a selection.
    """
    if shape.optional:
        return OptionValue(False, None)
    node = shape.node
    if isinstance(node, EnumDef):
        if node.variants:
            return EnumValue(node.variants[0].name, None)
        return RawJson("")
    if isinstance(node, Primitive):
        if node.is_bool:
            return Boolean(False)
        return Scalar("")
    if isinstance(node, (Vector, Array)):
        return ListValue(())
    return RawJson("")


def accepts_text(shape: ResolvedShape, text: str) -> bool:
    """Input filter for scalar editors; integers only take decimal digits."""
    node = shape.node
    if isinstance(node, Primitive) and node.name in INTEGER_TYPES:
        _, signed = INTEGER_TYPES[node.name]
        pattern = _SIGNED_TEXT_RE if signed else _UNSIGNED_TEXT_RE
        return pattern.fullmatch(text) is not None
    return True


def _check_index(items: Tuple[EditableValue, ...], index: Any) -> int:
    if not isinstance(index, int) or isinstance(index, bool):
        raise InvalidEdit(f"list index must be an integer, got {index!r}")
    if index < 0 or index >= len(items):
        raise InvalidEdit(f"list index {index} out of range (length {len(items)})")
    return index


def _expect(value: EditableValue, kind: type, op: EditOp) -> None:
    if not isinstance(value, kind):
        raise InvalidEdit(f"{type(op).__name__} cannot be applied to {type(value).__name__}")


def _apply(value: EditableValue, shape: ResolvedShape, op: EditOp, registry: TypeRegistry) -> EditableValue:
    if isinstance(op, SetText):
        _expect(value, Scalar, op)
        if not accepts_text(shape, op.text):
            raise InvalidEdit(f"{op.text!r} is not valid input for {shape.node.name}")  # type: ignore[union-attr]
        return Scalar(op.text)
    if isinstance(op, SetBool):
        _expect(value, Boolean, op)
        return Boolean(bool(op.value))
    if isinstance(op, SetJson):
        _expect(value, RawJson, op)
        return RawJson(op.text)
    if isinstance(op, SetPresent):
        _expect(value, OptionValue, op)
        if not op.present:
            return OptionValue(False, None)
        if value.present:  # type: ignore[union-attr]
            return value
        return OptionValue(True, synthesize_default(shape.required(), registry))
    if isinstance(op, SelectVariant):
        _expect(value, EnumValue, op)
        node = shape.node
        if not isinstance(node, EnumDef) or node.variant(op.variant) is None:
            raise InvalidEdit(f"unknown variant {op.variant!r}")
        if value.variant == op.variant:  # type: ignore[union-attr]
            return value
        return EnumValue(op.variant, None)

    _expect(value, ListValue, op)
    items = value.items  # type: ignore[union-attr]
    item_shape = element_shape(shape, registry)
    if isinstance(op, Append):
        node = shape.node
        if isinstance(node, Array) and len(items) >= node.length:
            raise InvalidEdit(f"array already holds {node.length} items")
        return ListValue(items + (synthesize_default(item_shape, registry),))
    if isinstance(op, RemoveAt):
        index = _check_index(items, op.index)
        return ListValue(items[:index] + items[index + 1 :])
    if isinstance(op, ReplaceAt):
        index = _check_index(items, op.index)
        expected = type(synthesize_default(item_shape, registry))
        if not isinstance(op.value, expected):
            raise InvalidEdit(f"list item must be {expected.__name__}, got {type(op.value).__name__}")
        return ListValue(items[:index] + (op.value,) + items[index + 1 :])
    raise InvalidEdit(f"unsupported edit: {op!r}")


def edit(
    value: EditableValue,
    shape: ResolvedShape,
    path: Sequence[PathStep],
    op: EditOp,
    registry: TypeRegistry,
) -> EditableValue:
    """Apply `op` to the value addressed by `path` and return the new tree."""
    if not path:
        return _apply(value, shape, op, registry)
    step, rest = path[0], path[1:]
    if isinstance(value, OptionValue):
        if step != SOME:
            raise InvalidEdit(f"expected {SOME!r} to step into an option, got {step!r}")
        if not value.present or value.inner is None:
            raise InvalidEdit("option has no value to edit")
        return OptionValue(True, edit(value.inner, shape.required(), rest, op, registry))
    if isinstance(value, ListValue):
        index = _check_index(value.items, step)
        child = edit(value.items[index], element_shape(shape, registry), rest, op, registry)
        return ListValue(value.items[:index] + (child,) + value.items[index + 1 :])
    if isinstance(value, EnumValue):
        if step != FIELDS:
            raise InvalidEdit(f"expected {FIELDS!r} to step into an enum, got {step!r}")
        node = shape.node
        variant = node.variant(value.variant) if isinstance(node, EnumDef) else None
        if variant is None or not variant.fields:
            raise InvalidEdit(f"variant {value.variant!r} has no fields")
        # Variant fields are edited as raw JSON.
        current = value.fields if value.fields is not None else RawJson("")
        fields_shape = ResolvedShape(node)
        return replace(value, fields=edit(current, fields_shape, rest, op, registry))
    raise InvalidEdit(f"cannot step into {type(value).__name__} with {step!r}")


def validate(value: EditableValue, shape: ResolvedShape, registry: TypeRegistry) -> bool:
    """True when the value is complete enough to encode."""
    if shape.optional:
        if not isinstance(value, OptionValue):
            return False
        if not value.present or value.inner is None:
            return True
        if isinstance(value.inner, Scalar) and not value.inner.text.strip():
            return True
        return validate(value.inner, shape.required(), registry)
    node = shape.node
    if isinstance(node, EnumDef):
        if isinstance(value, EnumValue):
            return node.variant(value.variant) is not None
        return isinstance(value, RawJson) and bool(value.text.strip())
    if isinstance(node, Primitive):
        if node.is_bool:
            return isinstance(value, Boolean)
        if not isinstance(value, Scalar):
            return False
        # Identities are stripped before parsing, so blank text counts as empty.
        text = value.text.strip() if node.is_pubkey else value.text
        return bool(text)
    if isinstance(node, (Vector, Array)):
        if not isinstance(value, ListValue):
            return False
        if isinstance(node, Array) and len(value.items) != node.length:
            return False
        item_shape = element_shape(shape, registry)
        return all(validate(item, item_shape, registry) for item in value.items)
    return isinstance(value, RawJson) and bool(value.text.strip())


def from_json(data: Any, shape: ResolvedShape, registry: TypeRegistry) -> EditableValue:
    """Build an editable value from plain JSON data."""
    if shape.optional:
        if data is None:
            return OptionValue(False, None)
        return OptionValue(True, from_json(data, shape.required(), registry))
    node = shape.node
    if isinstance(node, Primitive):
        if node.is_bool:
            if isinstance(data, bool):
                return Boolean(data)
            if isinstance(data, str) and data.strip().lower() in {"true", "false"}:
                return Boolean(data.strip().lower() == "true")
            raise InvalidEdit(f"expected a boolean, got {data!r}")
        if isinstance(data, bool) or not isinstance(data, (int, float, str)):
            raise InvalidEdit(f"expected a {node.name} value, got {data!r}")
        text = str(data)
        if not accepts_text(shape, text):
            raise InvalidEdit(f"{text!r} is not valid input for {node.name}")
        return Scalar(text)
    if isinstance(node, (Vector, Array)):
        if not isinstance(data, list):
            raise InvalidEdit(f"expected a list, got {data!r}")
        item_shape = element_shape(shape, registry)
        return ListValue(tuple(from_json(item, item_shape, registry) for item in data))
    if isinstance(node, EnumDef):
        if isinstance(data, str):
            variant, fields = data, None
        elif isinstance(data, dict) and len(data) == 1:
            variant, fields = next(iter(data.items()))
        else:
            raise InvalidEdit(f"enum {node.name} expects a variant name or {{variant: fields}}")
        if node.variant(variant) is None:
            raise InvalidEdit(f"unknown variant {variant!r} for enum {node.name}")
        if fields in (None, {}, []):
            return EnumValue(variant, None)
        return EnumValue(variant, RawJson(json.dumps(fields)))
    if isinstance(data, str):
        return RawJson(data)
    return RawJson(json.dumps(data))


def parse_raw(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def to_json(value: EditableValue) -> Any:
    """Plain JSON view of an editable value (for display and saving)."""
    if isinstance(value, Scalar):
        return value.text
    if isinstance(value, Boolean):
        return value.value
    if isinstance(value, OptionValue):
        if not value.present or value.inner is None:
            return None
        return to_json(value.inner)
    if isinstance(value, ListValue):
        return [to_json(item) for item in value.items]
    if isinstance(value, EnumValue):
        if value.fields is None or (isinstance(value.fields, RawJson) and not value.fields.text.strip()):
            return {value.variant: {}}
        return {value.variant: to_json(value.fields)}
    return parse_raw(value.text)
