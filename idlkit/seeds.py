"""Seed encoding and program-derived-address derivation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
import re
import subprocess
from typing import Callable, Iterable, List, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .codec import parse_identity
from .errors import EmptySeed, InvalidSeed

# Runtime limits for PDA seeds.
MAX_SEED_LEN = 32
MAX_SEEDS = 16

_DIGITS_RE = re.compile(r"[0-9]+")


class SeedKind(str, Enum):
    STRING = "string"
    PUBKEY = "pubkey"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"


SEED_WIDTHS = {
    SeedKind.U8: 1,
    SeedKind.U16: 2,
    SeedKind.U32: 4,
    SeedKind.U64: 8,
}

# `solana find-program-derived-address` spellings are accepted too.
_KIND_ALIASES = {
    "publicKey": SeedKind.PUBKEY,
    "u16le": SeedKind.U16,
    "u32le": SeedKind.U32,
    "u64le": SeedKind.U64,
}


@dataclass(frozen=True)
class Seed:
    kind: SeedKind
    value: str


@dataclass(frozen=True)
class DerivedAddress:
    address: str
    bump: int
    seeds: Tuple[Seed, ...]


Deriver = Callable[[Pubkey, Sequence[bytes]], Tuple[Union[Pubkey, str], int]]
SeedLike = Union[Seed, Tuple[str, str]]


def seed_kind(name: str) -> SeedKind:
    if name in _KIND_ALIASES:
        return _KIND_ALIASES[name]
    try:
        return SeedKind(name.strip().lower())
    except ValueError:
        choices = ", ".join(kind.value for kind in SeedKind)
        raise ValueError(f"Unknown seed type {name!r} (expected one of: {choices})") from None


def parse_seed(text: str) -> Seed:
    """Parse `kind:value` notation, e.g. `string:pool` or `u64:7`."""
    if ":" not in text:
        raise ValueError(f"Seed {text!r} must be in kind:value form")
    kind, value = text.split(":", 1)
    return Seed(seed_kind(kind.strip()), value)


def _coerce(seed: SeedLike) -> Seed:
    if isinstance(seed, Seed):
        return seed
    kind, value = seed
    return Seed(seed_kind(kind) if isinstance(kind, str) else kind, value)


def _encode_one(index: int, seed: Seed) -> bytes:
    if seed.kind == SeedKind.STRING:
        data = seed.value.encode("utf-8")
    elif seed.kind == SeedKind.PUBKEY:
        try:
            data = bytes(Pubkey.from_string(seed.value.strip()))
        except ValueError:
            raise InvalidSeed(index, "invalid public key format") from None
    else:
        width = SEED_WIDTHS[seed.kind]
        text = seed.value.strip()
        if not _DIGITS_RE.fullmatch(text):
            raise InvalidSeed(index, f"{seed.value!r} is not a non-negative integer")
        digits = text.lstrip("0") or "0"
        limit = 1 << (8 * width)
        if len(digits) > len(str(limit - 1)):
            raise InvalidSeed(index, f"value does not fit in {seed.kind.value}")
        number = int(digits)
        if number >= limit:
            raise InvalidSeed(index, f"{number} does not fit in {seed.kind.value}")
        data = number.to_bytes(width, "little")
    if len(data) > MAX_SEED_LEN:
        raise InvalidSeed(index, f"seed is {len(data)} bytes; the limit is {MAX_SEED_LEN}")
    return data


def encode_seeds(seeds: Iterable[SeedLike]) -> List[bytes]:
    """Encode seeds in order, one buffer per seed.

    Empty values are rejected for every seed before any parsing happens.
    A list over the seed limit fails with the index of the first seed past
    the limit (`MAX_SEEDS`).
    """
    items = [_coerce(seed) for seed in seeds]
    for index, seed in enumerate(items):
        if not seed.value.strip():
            raise EmptySeed(index)
    if len(items) > MAX_SEEDS:
        raise InvalidSeed(MAX_SEEDS, f"at most {MAX_SEEDS} seeds are allowed")
    return [_encode_one(index, seed) for index, seed in enumerate(items)]


def find_program_address(program_id: Pubkey, seeds: Sequence[bytes]) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address(list(seeds), program_id)


class SolanaCliDeriver:
    """Derive addresses with `solana find-program-derived-address`."""

    def __init__(self, executable: str = "solana") -> None:
        self.executable = executable

    def __call__(self, program_id: Pubkey, seeds: Sequence[bytes]) -> Tuple[str, int]:
        cmd = [
            self.executable,
            "find-program-derived-address",
            "--output",
            "json-compact",
            "--no-address-labels",
            str(program_id),
            *[f"hex:{seed.hex()}" for seed in seeds],
        ]
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            msg = result.stderr.strip() or result.stdout.strip() or "solana find-program-derived-address failed"
            raise RuntimeError(msg)
        try:
            parsed = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Unable to parse PDA output: {result.stdout.strip()}") from exc
        address = parsed.get("address")
        bump = parsed.get("bumpSeed")
        if not isinstance(address, str) or not address:
            raise RuntimeError(f"PDA output missing address: {result.stdout.strip()}")
        if not isinstance(bump, int):
            raise RuntimeError(f"PDA output missing bump seed: {result.stdout.strip()}")
        return address, bump


def derive_address(
    program_id: str,
    seeds: Iterable[SeedLike],
    deriver: Deriver | None = None,
) -> DerivedAddress:
    """Encode `seeds` and derive the program address for `program_id`."""
    program = parse_identity(program_id.strip(), "program_id")
    items = tuple(_coerce(seed) for seed in seeds)
    buffers = encode_seeds(items)
    address, bump = (deriver or find_program_address)(program, buffers)
    return DerivedAddress(address=str(address), bump=int(bump), seeds=items)
