"""Result type for explicit error handling.

Every fallible step of a release run returns a Result instead of raising.
Exceptions are only caught at the process and plugin boundaries, where they
are converted into Err values carrying a domain error.

Usage:
    def resolve(version: str) -> Result[SemVer, ReleaseError]:
        parsed = parse_version(version)
        if parsed is None:
            return Err(ReleaseError(kind="invalid_next_version", message=version))
        return Ok(parsed)

    match resolve("1.2.3"):
        case Ok(version):
            print(version)
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

__all__ = ["Err", "Ok", "Result"]

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[E]
