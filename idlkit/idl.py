"""Anchor IDL loading: type registry, instruction schemas and account layouts."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import IdlFormatError
from .types import Field, TypeDefinition, TypeRegistry, parse_type, parse_type_definition

DEFAULT_PROGRAM_NAME = "Anchor Program"


@dataclass(frozen=True)
class AccountSlot:
    name: str
    signer: bool = False
    writable: bool = False
    optional: bool = False
    docs: Tuple[str, ...] = ()

    @property
    def flags(self) -> List[str]:
        out = []
        if self.signer:
            out.append("signer")
        if self.writable:
            out.append("mut")
        if self.optional:
            out.append("optional")
        return out


@dataclass(frozen=True)
class InstructionSchema:
    name: str
    args: Tuple[Field, ...]
    accounts: Tuple[AccountSlot, ...]
    docs: Tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return display_name(self.name)


@dataclass(frozen=True)
class Idl:
    name: str
    version: Optional[str]
    address: Optional[str]
    instructions: Tuple[InstructionSchema, ...]
    accounts: Tuple[str, ...]
    registry: TypeRegistry

    def instruction(self, name: str) -> InstructionSchema:
        for ix in self.instructions:
            if ix.name == name:
                return ix
        known = ", ".join(ix.name for ix in self.instructions) or "none"
        raise KeyError(f"Unknown instruction {name!r} (available: {known})")


def display_name(name: str) -> str:
    """`initialize_pool` -> `Initialize pool`."""
    return name[:1].upper() + name[1:].replace("_", " ")


def _docs(entry: Dict[str, Any]) -> Tuple[str, ...]:
    docs = entry.get("docs")
    if not isinstance(docs, list):
        return ()
    return tuple(str(line) for line in docs)


def _flag(entry: Dict[str, Any], current: str, legacy: str) -> bool:
    if current in entry:
        return bool(entry[current])
    return bool(entry.get(legacy, False))


def _parse_account_slots(raw: Any, prefix: str = "") -> List[AccountSlot]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise IdlFormatError("instruction accounts must be a list")
    slots: List[AccountSlot] = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise IdlFormatError("instruction account entries need a name")
        name = prefix + entry["name"]
        if "accounts" in entry:
            # Composite account group; members are addressed as group.member.
            slots.extend(_parse_account_slots(entry["accounts"], prefix=f"{name}."))
            continue
        slots.append(
            AccountSlot(
                name=name,
                signer=_flag(entry, "signer", "isSigner"),
                writable=_flag(entry, "writable", "isMut"),
                optional=_flag(entry, "optional", "isOptional"),
                docs=_docs(entry),
            )
        )
    return slots


def _parse_instruction(entry: Any) -> InstructionSchema:
    if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
        raise IdlFormatError("instructions need a name")
    name = entry["name"]
    raw_args = entry.get("args") or []
    if not isinstance(raw_args, list):
        raise IdlFormatError(f"instruction {name} args must be a list")
    args: List[Field] = []
    for arg in raw_args:
        if not isinstance(arg, dict) or not isinstance(arg.get("name"), str) or "type" not in arg:
            raise IdlFormatError(f"instruction {name} has a malformed argument")
        args.append(Field(arg["name"], parse_type(arg["type"])))
    return InstructionSchema(
        name=name,
        args=tuple(args),
        accounts=tuple(_parse_account_slots(entry.get("accounts"))),
        docs=_docs(entry),
    )


def parse_idl(document: Dict[str, Any]) -> Idl:
    if not isinstance(document, dict):
        raise IdlFormatError("IDL document must be a JSON object")
    metadata = document.get("metadata") if isinstance(document.get("metadata"), dict) else {}

    raw_types = document.get("types") or []
    if not isinstance(raw_types, list):
        raise IdlFormatError("IDL types must be a list")
    definitions: List[TypeDefinition] = [parse_type_definition(entry) for entry in raw_types]
    known = {definition.name.lower() for definition in definitions}

    raw_accounts = document.get("accounts") or []
    if not isinstance(raw_accounts, list):
        raise IdlFormatError("IDL accounts must be a list")
    account_names: List[str] = []
    for entry in raw_accounts:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise IdlFormatError("IDL account layouts need a name")
        account_names.append(entry["name"])
        # Legacy IDLs carry the layout inline instead of in `types`.
        if "type" in entry and entry["name"].lower() not in known:
            definitions.append(parse_type_definition(entry))
            known.add(entry["name"].lower())

    raw_instructions = document.get("instructions") or []
    if not isinstance(raw_instructions, list):
        raise IdlFormatError("IDL instructions must be a list")

    address = document.get("address") or metadata.get("address")
    version = metadata.get("version") or document.get("version")
    return Idl(
        name=metadata.get("name") or document.get("name") or DEFAULT_PROGRAM_NAME,
        version=str(version) if version else None,
        address=str(address) if address else None,
        instructions=tuple(_parse_instruction(entry) for entry in raw_instructions),
        accounts=tuple(account_names),
        registry=TypeRegistry(definitions),
    )


def load_idl(path: str | Path) -> Idl:
    idl_path = Path(path)
    if not idl_path.exists():
        raise FileNotFoundError(f"IDL not found: {idl_path}")
    try:
        document = json.loads(idl_path.read_text())
    except json.JSONDecodeError as exc:
        raise IdlFormatError(f"IDL is not valid JSON: {idl_path}: {exc}") from exc
    return parse_idl(document)
