"""Document host: engines, handles and the queued-command request context."""

from .context import ClientResult, DocumentHost, RequestContext
from .docx_engine import DocxEngine
from .engine import DocumentEngine
from .errors import (
    ErrorCode,
    HostCommunicationError,
    HostError,
    InvalidArgumentError,
    InvalidLocatorError,
    MarkupError,
    OperationTimeoutError,
    PropertyNotLoadedError,
    StaleRangeError,
)
from .memory import InMemoryEngine
from .types import HostRange, InsertLocation, ParagraphLocator

__all__ = [
    "ClientResult",
    "DocumentEngine",
    "DocumentHost",
    "DocxEngine",
    "ErrorCode",
    "HostCommunicationError",
    "HostError",
    "HostRange",
    "InMemoryEngine",
    "InsertLocation",
    "InvalidArgumentError",
    "InvalidLocatorError",
    "MarkupError",
    "OperationTimeoutError",
    "ParagraphLocator",
    "PropertyNotLoadedError",
    "RequestContext",
    "StaleRangeError",
]
