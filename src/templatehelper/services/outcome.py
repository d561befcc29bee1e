"""Structured result returned by every public document operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..host.errors import ErrorCode, HostError

T = TypeVar("T")


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Success-or-failure container for a document operation.

    Attributes:
        ok: Whether the operation completed.
        operation: Name of the public operation that produced the outcome.
        value: The operation's result when successful.
        error: The host error that stopped it, if any.
        duration_ms: Wall time spent in the operation.
        metadata: Extra facts about the run.
    """

    ok: bool
    operation: str
    value: T | None = None
    error: HostError | None = None
    duration_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, operation: str, value: T | None = None, **metadata: Any) -> Outcome[T]:
        return cls(ok=True, operation=operation, value=value, metadata=dict(metadata))

    @classmethod
    def failure(cls, operation: str, error: HostError, **metadata: Any) -> Outcome[T]:
        return cls(ok=False, operation=operation, error=error, metadata=dict(metadata))

    @property
    def error_code(self) -> str | None:
        return self.error.error_code if self.error is not None else None

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        return "ok"

    @property
    def details(self) -> dict[str, Any]:
        if self.error is not None and self.error.details:
            return dict(self.error.details)
        return {}

    def unwrap(self) -> T | None:
        """Return the value, raising the stored error for failed outcomes."""

        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> dict[str, Any]:
        """Serialize the outcome for JSON output."""
        result: dict[str, Any] = {"ok": self.ok, "operation": self.operation}
        if self.ok:
            value = self.value
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            if value is not None:
                result["value"] = value
        else:
            result.update(
                self.error.to_dict()
                if self.error
                else {"error": ErrorCode.INTERNAL_ERROR, "message": "Unknown error"}
            )
        result["duration_ms"] = round(self.duration_ms, 3)
        if self.metadata:
            result["_metadata"] = dict(self.metadata)
        return result


__all__ = ["Outcome"]
