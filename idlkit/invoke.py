"""Instruction forms: argument/account editors and the submission hand-off."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, Sequence

from solders.pubkey import Pubkey

from .codec import encode_arguments, parse_identity
from .errors import IncompleteArguments
from .idl import InstructionSchema
from .resolver import ResolvedShape, resolve
from .types import TypeRegistry
from .values import EditableValue, EditOp, PathStep, edit, from_json, synthesize_default, to_json, validate


class Submitter(Protocol):
    """Builds, signs, sends and confirms the call; returns the signature."""

    def submit(self, instruction: str, arguments: List[Any], accounts: Dict[str, Pubkey]) -> str:
        ...


@dataclass(frozen=True)
class PreparedCall:
    instruction: str
    arguments: List[Any]
    accounts: Dict[str, Pubkey]


@dataclass
class InstructionForm:
    """Editor state for one instruction.

    Selecting another instruction means building a new form; nothing carries
    over between instructions.
    """

    schema: InstructionSchema
    registry: TypeRegistry
    args: Dict[str, EditableValue] = field(default_factory=dict)
    accounts: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_instruction(cls, schema: InstructionSchema, registry: TypeRegistry) -> "InstructionForm":
        args = {
            arg.name: synthesize_default(resolve(arg.type, registry), registry)
            for arg in schema.args
            if arg.name is not None
        }
        accounts = {slot.name: "" for slot in schema.accounts}
        return cls(schema=schema, registry=registry, args=args, accounts=accounts)

    def shape(self, name: str) -> ResolvedShape:
        for arg in self.schema.args:
            if arg.name == name:
                return resolve(arg.type, self.registry)
        raise KeyError(f"Unknown argument {name!r} for {self.schema.name}")

    def edit_arg(self, name: str, path: Sequence[PathStep], op: EditOp) -> EditableValue:
        shape = self.shape(name)
        self.args[name] = edit(self.args[name], shape, path, op, self.registry)
        return self.args[name]

    def set_arg(self, name: str, value: EditableValue) -> None:
        self.shape(name)
        self.args[name] = value

    def set_arg_json(self, name: str, data: Any) -> None:
        self.args[name] = from_json(data, self.shape(name), self.registry)

    def load_args(self, data: Mapping[str, Any]) -> None:
        for name, item in data.items():
            self.set_arg_json(name, item)

    def set_account(self, name: str, identity: str) -> None:
        if name not in self.accounts:
            raise KeyError(f"Unknown account {name!r} for {self.schema.name}")
        self.accounts[name] = identity

    def to_json(self) -> Dict[str, Any]:
        return {
            "instruction": self.schema.name,
            "args": {name: to_json(value) for name, value in self.args.items()},
            "accounts": dict(self.accounts),
        }


def missing_fields(form: InstructionForm) -> List[str]:
    """Required arguments and accounts that are still empty, in schema order."""
    missing: List[str] = []
    for arg in form.schema.args:
        if arg.name is None:
            continue
        shape = resolve(arg.type, form.registry)
        value = form.args.get(arg.name)
        if value is None or not validate(value, shape, form.registry):
            missing.append(arg.name)
    for slot in form.schema.accounts:
        if slot.optional:
            continue
        if not form.accounts.get(slot.name, "").strip():
            missing.append(slot.name)
    return missing


def ensure_complete(form: InstructionForm) -> None:
    missing = missing_fields(form)
    if missing:
        raise IncompleteArguments(missing)


def encode_accounts(form: InstructionForm) -> Dict[str, Pubkey]:
    accounts: Dict[str, Pubkey] = {}
    for slot in form.schema.accounts:
        text = form.accounts.get(slot.name, "").strip()
        if not text:
            continue
        accounts[slot.name] = parse_identity(text, slot.name)
    return accounts


def prepare(form: InstructionForm) -> PreparedCall:
    """Validate then encode; nothing is encoded when validation fails."""
    ensure_complete(form)
    arguments = encode_arguments(form.schema.args, form.args, form.registry)
    accounts = encode_accounts(form)
    return PreparedCall(instruction=form.schema.name, arguments=arguments, accounts=accounts)


def submit(form: InstructionForm, submitter: Submitter) -> str:
    call = prepare(form)
    return submitter.submit(call.instruction, call.arguments, call.accounts)
