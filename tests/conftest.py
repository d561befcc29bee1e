"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Iterator

import pytest

from templatehelper.services.telemetry import EventRecorder, listening

_ENV_NAMES = (
    "TEMPLATEHELPER_MATCH_CASE",
    "TEMPLATEHELPER_MATCH_WHOLE_WORD",
    "TEMPLATEHELPER_DEBUG",
    "TEMPLATEHELPER_DEBUG_LOGGING",
    "TEMPLATEHELPER_OPERATION_TIMEOUT",
    "TEMPLATEHELPER_LOG_DIR",
    "TEMPLATEHELPER_SETTINGS_PATH",
)
_EVENTS = ("replace_excluding", "replace_document_content", "set_markup", "operation_failed")


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def recorder() -> Iterator[EventRecorder]:
    with listening(_EVENTS, EventRecorder()) as events:
        yield events
