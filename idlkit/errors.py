"""Error taxonomy for idlkit."""

from __future__ import annotations

from typing import Iterable


class IdlKitError(Exception):
    """Base class for all idlkit failures."""


class IdlFormatError(IdlKitError):
    """Raised when an IDL document (or a type inside it) cannot be parsed."""


class UnresolvedDefinedType(IdlKitError):
    """A `defined` reference names a type missing from the registry.

    Only raised by strict resolution; normal resolution degrades to opaque
    editing instead.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Unresolved defined type: {name}")
        self.name = name


class InvalidEdit(IdlKitError):
    """Raised when an edit does not fit the addressed value."""


class EncodeFailure(IdlKitError):
    """An argument could not be encoded. `field` names the offending input."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class MalformedIdentity(EncodeFailure):
    def __init__(self, field: str, value: str = "") -> None:
        reason = "invalid public key" if not value else f"invalid public key {value!r}"
        super().__init__(field, reason)
        self.value = value


class InvalidNumber(EncodeFailure):
    pass


class IncompleteArguments(IdlKitError):
    """Raised before encoding when required arguments or accounts are empty."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing required values: " + ", ".join(self.missing))


class SeedError(IdlKitError):
    def __init__(self, index: int, message: str) -> None:
        super().__init__(message)
        self.index = index


class EmptySeed(SeedError):
    def __init__(self, index: int) -> None:
        super().__init__(index, f"Seed {index + 1} cannot be empty")


class InvalidSeed(SeedError):
    def __init__(self, index: int, reason: str) -> None:
        super().__init__(index, f"Seed {index + 1}: {reason}")
        self.reason = reason
