"""Result type for best-effort lookups.

Explorer queries degrade instead of raising, but callers still need to tell a
confirmed empty answer apart from one that could not be determined.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class OutcomeStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Items plus how they were obtained. ``items`` is always a list."""

    status: OutcomeStatus
    items: list[T] = field(default_factory=list)
    reason: str | None = None

    @classmethod
    def of(cls, items: list[T]) -> "Outcome[T]":
        """Successful lookup; EMPTY when nothing was found."""
        if not items:
            return cls(OutcomeStatus.EMPTY)
        return cls(OutcomeStatus.OK, list(items))

    @classmethod
    def failed(cls, reason: str) -> "Outcome[T]":
        return cls(OutcomeStatus.FAILED, [], reason)

    @property
    def ok(self) -> bool:
        """True for any answer that was actually determined, empty or not."""
        return self.status is not OutcomeStatus.FAILED
