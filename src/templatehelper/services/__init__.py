"""Service layer: the replacer, public document operations, settings and telemetry."""

from .outcome import Outcome
from .replacer import (
    Disposition,
    ExclusionAwareReplacer,
    ReplaceSummary,
    ReplacementCandidate,
)
from .settings import Settings, SettingsStore
from .word_document import WordDocumentService

__all__ = [
    "Disposition",
    "ExclusionAwareReplacer",
    "Outcome",
    "ReplaceSummary",
    "ReplacementCandidate",
    "Settings",
    "SettingsStore",
    "WordDocumentService",
]
