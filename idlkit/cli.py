"""CLI entrypoint for idlkit."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from .codec import encoded_to_json
from .config import CLUSTER_URLS, EXPLORERS, config_path, get_defaults, resolve_context, set_defaults
from .console import log_error, log_info, log_success, log_warning, print_json
from .errors import IdlKitError, UnresolvedDefinedType
from .idl import Idl, load_idl
from .invoke import InstructionForm, prepare
from .resolver import ResolvedShape, describe, resolve
from .seeds import SolanaCliDeriver, derive_address, parse_seed
from .types import Array, EnumDef, Primitive, StructDef, TypeAlias, Vector, format_type


def _load_idl_arg(raw: str | None) -> Idl:
    path = raw or resolve_context().idl
    if not path:
        raise ValueError("No IDL given; pass a path or run `idlkit config set --idl PATH`")
    return load_idl(path)


def _parse_assignment(item: str, option: str) -> tuple[str, str]:
    if "=" not in item:
        raise ValueError(f"{option} entries must be in name=value form")
    name, value = item.split("=", 1)
    name = name.strip()
    if not name:
        raise ValueError(f"{option} entries must be in name=value form")
    return name, value


def _cli_value(text: str, shape: ResolvedShape) -> Any:
    """Interpret command-line text for an argument of the given shape."""
    if shape.optional and text.strip() in ("", "null"):
        return None
    node = shape.node
    if isinstance(node, Primitive) and not node.is_bool:
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _print_definition(definition: Any) -> None:
    if isinstance(definition, StructDef):
        print(f"struct {definition.name}")
        for field in definition.fields:
            label = field.name if field.name is not None else "_"
            print(f"  {label}: {format_type(field.type)}")
    elif isinstance(definition, EnumDef):
        print(f"enum {definition.name}")
        for variant in definition.variants:
            if not variant.fields:
                print(f"  {variant.name}")
                continue
            inner = ", ".join(
                f"{f.name}: {format_type(f.type)}" if f.name else format_type(f.type)
                for f in variant.fields
            )
            print(f"  {variant.name}({inner})")
    elif isinstance(definition, TypeAlias):
        print(f"type {definition.name} = {format_type(definition.target)}")


def _cmd_show(args: argparse.Namespace) -> int:
    idl = _load_idl_arg(args.idl)
    print(f"Program: {idl.name}" + (f" v{idl.version}" if idl.version else ""))
    print(f"  address: {idl.address or '<unknown>'}")
    if not idl.address:
        log_warning("IDL has no program address; pass --program-id to `idlkit pda`")
    print("Instructions:")
    if not idl.instructions:
        print("  <none>")
    for ix in idl.instructions:
        print(f"  {ix.display_name} ({ix.name}): {len(ix.args)} args, {len(ix.accounts)} accounts")
        if ix.docs:
            print(f"    {ix.docs[0]}")
        for arg in ix.args:
            shape = resolve(arg.type, idl.registry)
            print(f"    arg {arg.name}: {format_type(arg.type)} [{describe(shape)}]")
        for slot in ix.accounts:
            flags = ", ".join(slot.flags)
            print(f"    account {slot.name}" + (f" ({flags})" if flags else ""))
    print("Accounts:")
    print("  " + (", ".join(idl.accounts) if idl.accounts else "<none>"))
    print("Types:")
    print("  " + (", ".join(d.name for d in idl.registry) if len(idl.registry) else "<none>"))
    return 0


def _dangling_references(idl: Idl) -> list[str]:
    found: list[str] = []

    def walk(descriptor: Any, context: str) -> None:
        try:
            shape = resolve(descriptor, idl.registry, strict=True)
        except UnresolvedDefinedType as exc:
            found.append(f"{context}: {exc.name}")
            return
        if isinstance(shape.node, (Vector, Array)):
            walk(shape.node.inner, context)

    for definition in idl.registry:
        if isinstance(definition, StructDef):
            for field in definition.fields:
                walk(field.type, definition.name)
        elif isinstance(definition, EnumDef):
            for variant in definition.variants:
                for field in variant.fields:
                    walk(field.type, f"{definition.name}.{variant.name}")
        elif isinstance(definition, TypeAlias):
            walk(definition.target, definition.name)
    for ix in idl.instructions:
        for arg in ix.args:
            walk(arg.type, f"{ix.name}.{arg.name}")
    return found


def _cmd_types(args: argparse.Namespace) -> int:
    idl = _load_idl_arg(args.idl)
    if args.name:
        definition = idl.registry.get(args.name)
        if definition is None:
            raise ValueError(f"Unknown type: {args.name}")
        _print_definition(definition)
    else:
        if not len(idl.registry):
            print("No types defined")
        for definition in idl.registry:
            _print_definition(definition)
    if args.strict:
        dangling = _dangling_references(idl)
        if dangling:
            log_error("Unresolved defined types:")
            for item in dangling:
                log_error(f"- {item}")
            return 1
    return 0


def _cmd_template(args: argparse.Namespace) -> int:
    idl = _load_idl_arg(args.idl)
    form = InstructionForm.for_instruction(idl.instruction(args.instruction), idl.registry)
    print_json(form.to_json())
    return 0


def _cmd_encode(args: argparse.Namespace) -> int:
    idl = _load_idl_arg(args.idl)
    form = InstructionForm.for_instruction(idl.instruction(args.instruction), idl.registry)
    if args.args_file:
        data = json.loads(Path(args.args_file).read_text())
        if not isinstance(data, dict):
            raise ValueError("--args-file must hold a JSON object")
        if "args" in data or "accounts" in data:
            form.load_args(data.get("args") or {})
        else:
            # A bare object holds only argument values.
            form.load_args(data)
        accounts = data.get("accounts") if isinstance(data.get("accounts"), dict) else {}
        for name, identity in accounts.items():
            form.set_account(name, str(identity))
    for item in args.arg or []:
        name, text = _parse_assignment(item, "--arg")
        form.set_arg_json(name, _cli_value(text, form.shape(name)))
    for item in args.account or []:
        name, identity = _parse_assignment(item, "--account")
        form.set_account(name, identity.strip())

    call = prepare(form)
    print_json(
        {
            "instruction": call.instruction,
            "arguments": encoded_to_json(call.arguments),
            "accounts": {name: str(key) for name, key in call.accounts.items()},
        }
    )
    return 0


def _cmd_pda(args: argparse.Namespace) -> int:
    ctx = resolve_context(cluster=args.cluster, program_id=args.program_id, idl=args.idl)
    program_id = args.program_id
    if not program_id and args.idl:
        # An explicit IDL wins over a stored program id.
        program_id = load_idl(args.idl).address
    program_id = program_id or ctx.program_id
    if not program_id and ctx.idl:
        program_id = load_idl(ctx.idl).address
    if not program_id:
        raise ValueError("No program id; pass --program-id or an IDL with an address")
    seeds = [parse_seed(item) for item in args.seeds]
    deriver = SolanaCliDeriver() if args.solana_cli else None
    log_info(f"Deriving address for {program_id} from {len(seeds)} seed(s)")
    derived = derive_address(program_id, seeds, deriver=deriver)
    print(f"address: {derived.address}")
    print(f"bump: {derived.bump}")
    if args.explorer_link:
        print(f"explorer: {ctx.explorer_url('address', derived.address)}")
    return 0


def _cmd_config_show(args: argparse.Namespace) -> int:
    defaults = get_defaults()
    print(f"Config: {config_path()}")
    for key in ("cluster", "rpc_url", "program_id", "idl", "explorer"):
        print(f"  {key}: {defaults.get(key) or '<unset>'}")
    return 0


def _cmd_config_set(args: argparse.Namespace) -> int:
    if all(v is None for v in (args.cluster, args.rpc_url, args.program_id, args.idl, args.explorer)):
        raise ValueError("Nothing to set; pass at least one option")
    set_defaults(
        cluster=args.cluster,
        rpc_url=args.rpc_url,
        program_id=args.program_id,
        idl=args.idl,
        explorer=args.explorer,
    )
    log_success(f"Updated {config_path()}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog=os.path.basename(sys.argv[0]))
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_show = sub.add_parser("show", help="Summarise an IDL")
    p_show.add_argument("idl", nargs="?", help="Path to the IDL JSON (default: configured IDL)")
    p_show.set_defaults(func=_cmd_show)

    p_types = sub.add_parser("types", help="Print defined types")
    p_types.add_argument("idl", nargs="?", help="Path to the IDL JSON")
    p_types.add_argument("--name", help="Only print this type")
    p_types.add_argument("--strict", action="store_true", help="Fail on unresolved defined types")
    p_types.set_defaults(func=_cmd_types)

    p_template = sub.add_parser("template", help="Print default arguments for an instruction")
    p_template.add_argument("instruction", help="Instruction name")
    p_template.add_argument("--idl", help="Path to the IDL JSON")
    p_template.set_defaults(func=_cmd_template)

    p_encode = sub.add_parser("encode", help="Validate and encode instruction arguments")
    p_encode.add_argument("instruction", help="Instruction name")
    p_encode.add_argument("--idl", help="Path to the IDL JSON")
    p_encode.add_argument("--arg", action="append", help="Argument value (name=value); JSON for composites")
    p_encode.add_argument("--account", action="append", help="Account identity (name=pubkey)")
    p_encode.add_argument("--args-file", help="JSON file with {args: {...}, accounts: {...}}")
    p_encode.set_defaults(func=_cmd_encode)

    p_pda = sub.add_parser("pda", help="Derive a program address from seeds")
    p_pda.add_argument("seeds", nargs="+", help="Seeds as kind:value (string, pubkey, u8, u16, u32, u64)")
    p_pda.add_argument("--program-id", help="Program id (default: configured or IDL address)")
    p_pda.add_argument("--idl", help="IDL whose address is the program id")
    p_pda.add_argument("--cluster", choices=sorted(CLUSTER_URLS), help="Cluster for explorer links")
    p_pda.add_argument("--solana-cli", action="store_true", help="Derive with `solana find-program-derived-address`")
    p_pda.add_argument("--explorer-link", action="store_true", help="Print a block explorer link")
    p_pda.set_defaults(func=_cmd_pda)

    p_config = sub.add_parser("config", help="Manage stored defaults")
    p_config_sub = p_config.add_subparsers(dest="config_cmd", required=True)
    p_config_show = p_config_sub.add_parser("show", help="Print stored defaults")
    p_config_show.set_defaults(func=_cmd_config_show)
    p_config_set = p_config_sub.add_parser("set", help="Update stored defaults")
    p_config_set.add_argument("--cluster", choices=sorted(CLUSTER_URLS))
    p_config_set.add_argument("--rpc-url")
    p_config_set.add_argument("--program-id")
    p_config_set.add_argument("--idl")
    p_config_set.add_argument("--explorer", choices=EXPLORERS)
    p_config_set.set_defaults(func=_cmd_config_set)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except FileNotFoundError as exc:
        log_error(str(exc))
        return 1
    except KeyError as exc:
        log_error(str(exc.args[0]) if exc.args else str(exc))
        return 1
    except (IdlKitError, ValueError) as exc:
        log_error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
