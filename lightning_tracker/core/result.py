"""Explicit success/failure result for persistence calls."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

PERSISTENCE_DISABLED = "persistence disabled"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a store operation.

    Stores never raise for database problems; they hand back a failed
    result and the caller decides whether to log and carry on.
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "StoreResult[T]":
        return cls(error=error)

    @classmethod
    def disabled(cls) -> "StoreResult[T]":
        return cls(error=PERSISTENCE_DISABLED)
