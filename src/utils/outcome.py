"""Result type for best-effort pipeline steps.

A step either succeeds (``ok``) or degrades to a fallback value while
recording why (``degraded``), so callers can log and report the loss
instead of it disappearing silently.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepOutcome(Generic[T]):
    """Value produced by a step, plus the reason it degraded (if it did)."""

    value: T
    reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.reason is not None

    @classmethod
    def ok(cls, value: T) -> "StepOutcome[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, value: T, reason: str) -> "StepOutcome[T]":
        return cls(value=value, reason=reason)
