"""Encode edited values into call-ready instruction arguments."""

from __future__ import annotations

import json
import math
import re
from typing import Any, List, Mapping, Sequence

from solders.pubkey import Pubkey

from .errors import EncodeFailure, IdlFormatError, InvalidEdit, InvalidNumber, MalformedIdentity
from .resolver import ResolvedShape, element_shape, resolve
from .types import Array, EnumDef, Field, Primitive, TypeRegistry, Vector, integer_bounds
from .values import (
    Boolean,
    EditableValue,
    EnumValue,
    ListValue,
    OptionValue,
    RawJson,
    Scalar,
    parse_raw,
    to_json,
)

_INTEGER_RE = re.compile(r"-?[0-9]+")
F32_MAX = 3.4028234663852886e38


def parse_identity(text: str, field: str) -> Pubkey:
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise MalformedIdentity(field, text) from exc


def _encode_integer(text: str, name: str, field: str) -> int:
    if text == "":
        return 0
    if not _INTEGER_RE.fullmatch(text):
        raise InvalidNumber(field, f"{text!r} is not a decimal integer")
    low, high = integer_bounds(name)
    sign = "-" if text.startswith("-") else ""
    digits = text.lstrip("-").lstrip("0") or "0"
    # Checked before int(), which refuses very long digit strings.
    if len(digits) > len(str(max(-low, high))):
        raise InvalidNumber(field, f"value is out of range for {name} ({low}..{high})")
    number = int(sign + digits)
    if number < low or number > high:
        raise InvalidNumber(field, f"{number} is out of range for {name} ({low}..{high})")
    return number


def _encode_float(text: str, name: str, field: str) -> float:
    if text.strip() == "":
        return 0.0
    try:
        number = float(text)
    except ValueError as exc:
        raise InvalidNumber(field, f"{text!r} is not a valid {name}") from exc
    if not math.isfinite(number):
        raise InvalidNumber(field, f"{text!r} is not a finite {name}")
    if name == "f32" and abs(number) > F32_MAX:
        raise InvalidNumber(field, f"{text!r} is out of range for f32")
    return number


def _encode_primitive(value: EditableValue, node: Primitive, field: str) -> Any:
    if node.is_bool:
        if not isinstance(value, Boolean):
            raise EncodeFailure(field, f"expected a boolean, got {type(value).__name__}")
        return value.value
    if not isinstance(value, Scalar):
        if node.name in ("string", "pubkey") or node.is_integer or node.is_float:
            raise EncodeFailure(field, f"expected text for {node.name}, got {type(value).__name__}")
        return to_json(value)
    if node.is_integer:
        return _encode_integer(value.text, node.name, field)
    if node.is_float:
        return _encode_float(value.text, node.name, field)
    if node.is_pubkey:
        text = value.text.strip()
        if not text:
            return None
        return parse_identity(text, field)
    return value.text


def _encode_variant_fields(fields: Any) -> Any:
    if fields is None:
        return {}
    if isinstance(fields, RawJson) and not fields.text.strip():
        return {}
    return to_json(fields)


def encode(value: EditableValue, shape: ResolvedShape, registry: TypeRegistry, field: str = "value") -> Any:
    """Encode one edited value for its resolved shape.

    Errors are `EncodeFailure`s naming `field` (with `[i]` suffixes for
    list elements).
    """
    if shape.optional:
        if not isinstance(value, OptionValue):
            raise EncodeFailure(field, f"expected an option value, got {type(value).__name__}")
        if not value.present or value.inner is None:
            return None
        if isinstance(value.inner, Scalar) and value.inner.text == "":
            return None
        return encode(value.inner, shape.required(), registry, field)

    node = shape.node
    if isinstance(node, EnumDef):
        if isinstance(value, EnumValue):
            if node.variant(value.variant) is None:
                raise EncodeFailure(field, f"unknown variant {value.variant!r} for enum {node.name}")
            return {value.variant: _encode_variant_fields(value.fields)}
        if isinstance(value, RawJson):
            parsed = parse_raw(value.text)
            if isinstance(parsed, dict) and len(parsed) == 1:
                return parsed
        raise EncodeFailure(field, f"enum {node.name} needs a variant selection")
    if isinstance(node, Primitive):
        return _encode_primitive(value, node, field)
    if isinstance(node, (Vector, Array)):
        if not isinstance(value, ListValue):
            raise EncodeFailure(field, f"expected a list, got {type(value).__name__}")
        if isinstance(node, Array) and len(value.items) != node.length:
            raise EncodeFailure(field, f"expected {node.length} items, got {len(value.items)}")
        item_shape = element_shape(shape, registry)
        return [
            encode(item, item_shape, registry, f"{field}[{index}]")
            for index, item in enumerate(value.items)
        ]
    # Structs and unresolved references go through as raw data.
    return to_json(value)


def encode_arguments(
    args: Sequence[Field],
    values: Mapping[str, EditableValue],
    registry: TypeRegistry,
) -> List[Any]:
    """Encode an instruction's arguments in declaration order.

    The first failure aborts the whole call; no partial list is returned.
    """
    encoded: List[Any] = []
    for index, arg in enumerate(args):
        name = arg.name or f"arg{index}"
        if name not in values:
            raise EncodeFailure(name, "missing value")
        try:
            shape = resolve(arg.type, registry)
            encoded.append(encode(values[name], shape, registry, field=name))
        except EncodeFailure:
            raise
        except (IdlFormatError, InvalidEdit, TypeError, ValueError) as exc:
            raise EncodeFailure(name, str(exc)) from exc
    return encoded


def decode(encoded: Any, shape: ResolvedShape, registry: TypeRegistry) -> EditableValue:
    """Map an encoded value back to an editable one."""
    if shape.optional:
        if encoded is None:
            return OptionValue(False, None)
        return OptionValue(True, decode(encoded, shape.required(), registry))
    node = shape.node
    if isinstance(node, Primitive):
        if node.is_bool:
            return Boolean(bool(encoded))
        if encoded is None:
            return Scalar("")
        return Scalar(str(encoded))
    if isinstance(node, (Vector, Array)):
        item_shape = element_shape(shape, registry)
        return ListValue(tuple(decode(item, item_shape, registry) for item in encoded))
    if isinstance(node, EnumDef) and isinstance(encoded, dict) and len(encoded) == 1:
        variant, fields = next(iter(encoded.items()))
        if fields in (None, {}, []):
            return EnumValue(variant, None)
        return EnumValue(variant, RawJson(json.dumps(encoded_to_json(fields))))
    if isinstance(encoded, str):
        return RawJson(encoded)
    return RawJson(json.dumps(encoded_to_json(encoded)))


def encoded_to_json(encoded: Any) -> Any:
    """JSON-safe copy of encoded arguments (public keys as base58 text)."""
    if isinstance(encoded, Pubkey):
        return str(encoded)
    if isinstance(encoded, dict):
        return {key: encoded_to_json(item) for key, item in encoded.items()}
    if isinstance(encoded, (list, tuple)):
        return [encoded_to_json(item) for item in encoded]
    return encoded
