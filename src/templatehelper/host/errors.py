"""Error types raised by document hosts.

Every error carries a machine-readable code, a human-readable message and,
where the engine has it, a ``debug_info`` mapping describing the command that
failed. The service layer turns these into :class:`~templatehelper.services.outcome.Outcome`
values instead of letting them escape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes reported in outcomes."""

    # Host/transport errors
    HOST_UNREACHABLE = "host_unreachable"
    INVALID_LOCATOR = "invalid_locator"
    STALE_RANGE = "stale_range"

    # Request errors
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_MARKUP = "invalid_markup"
    PROPERTY_NOT_LOADED = "property_not_loaded"

    # Lifecycle errors
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class HostError(Exception):
    """Base exception for failures reported by a document host.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Structured information about the failing request.
        debug_info: Diagnostic payload attached by the engine, if any.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for logs and outcomes."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.debug_info:
            result["debug_info"] = dict(self.debug_info)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Host/Transport Errors
# -----------------------------------------------------------------------------

@dataclass
class HostCommunicationError(HostError):
    """The engine could not be reached or a queued command failed during sync."""

    error_code: str = field(default=ErrorCode.HOST_UNREACHABLE)
    message: str = field(default="The document engine could not be reached")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)


@dataclass
class InvalidLocatorError(HostCommunicationError):
    """A paragraph locator does not resolve to an existing paragraph."""

    error_code: str = field(default=ErrorCode.INVALID_LOCATOR)
    message: str = field(default="The paragraph locator does not name an existing paragraph")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)

    locator: Any = field(default=None)
    paragraph_count: int | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["locator"] = repr(self.locator)
        if self.paragraph_count is not None:
            result["paragraph_count"] = self.paragraph_count
        return result


@dataclass
class StaleRangeError(HostCommunicationError):
    """A range handle no longer tracks live content in the document."""

    error_code: str = field(default=ErrorCode.STALE_RANGE)
    message: str = field(default="The range is no longer valid in this document")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)

    handle_id: int | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.handle_id is not None:
            result["handle_id"] = self.handle_id
        return result


# -----------------------------------------------------------------------------
# Request Errors
# -----------------------------------------------------------------------------

@dataclass
class InvalidArgumentError(HostError):
    """A request argument was rejected by the host."""

    error_code: str = field(default=ErrorCode.INVALID_ARGUMENT)
    message: str = field(default="Invalid argument")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)

    parameter: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.parameter is not None:
            result["parameter"] = self.parameter
        return result


@dataclass
class MarkupError(HostError):
    """Supplied markup could not be parsed or is not a document body."""

    error_code: str = field(default=ErrorCode.INVALID_MARKUP)
    message: str = field(default="The markup is not a WordprocessingML body")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)


@dataclass
class PropertyNotLoadedError(HostError):
    """A queued result was read before the sync that fills it."""

    error_code: str = field(default=ErrorCode.PROPERTY_NOT_LOADED)
    message: str = field(default="The value is not available until context.sync() completes")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationTimeoutError(HostError):
    """The operation did not finish before its deadline."""

    error_code: str = field(default=ErrorCode.TIMEOUT)
    message: str = field(default="The document operation timed out")
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: dict[str, Any] = field(default_factory=dict)

    timeout_seconds: float | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.timeout_seconds is not None:
            result["timeout_seconds"] = self.timeout_seconds
        return result


def error_from_dict(data: Mapping[str, Any]) -> HostError:
    """Rebuild a base :class:`HostError` from its dictionary form."""
    return HostError(
        error_code=data.get("error", ErrorCode.INTERNAL_ERROR),
        message=data.get("message", "Unknown error"),
        details=dict(data.get("details", {})),
        debug_info=dict(data.get("debug_info", {})),
    )


__all__ = [
    "ErrorCode",
    "HostError",
    "HostCommunicationError",
    "InvalidLocatorError",
    "StaleRangeError",
    "InvalidArgumentError",
    "MarkupError",
    "PropertyNotLoadedError",
    "OperationTimeoutError",
    "error_from_dict",
]
