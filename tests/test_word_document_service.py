"""Tests for the public document operations and their outcomes."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from templatehelper.host.context import DocumentHost, RequestContext
from templatehelper.host.errors import ErrorCode
from templatehelper.host.markup import paragraphs_from_markup
from templatehelper.host.memory import InMemoryEngine
from templatehelper.services.replacer import ExclusionAwareReplacer, ReplaceSummary
from templatehelper.services.settings import Settings
from templatehelper.services.telemetry import EventRecorder
from templatehelper.services.word_document import WordDocumentService


class _BrokenReplacer(ExclusionAwareReplacer):
    async def run(self, context: RequestContext, *args: Any, **kwargs: Any) -> ReplaceSummary:
        raise RuntimeError("kaboom")


def _service(*paragraphs: str, settings: Settings | None = None) -> tuple[WordDocumentService, InMemoryEngine]:
    engine = InMemoryEngine(paragraphs)
    return WordDocumentService(DocumentHost(engine), settings=settings), engine


@pytest.mark.asyncio
async def test_replace_excluding_reports_a_summary(recorder: EventRecorder) -> None:
    service, engine = _service("The cat sat.", "The cat ran.")

    outcome = await service.replace_excluding("cat", "dog", [0])

    assert outcome.ok
    assert engine.paragraph_texts() == ["The cat sat.", "The dog ran."]
    assert outcome.value == ReplaceSummary(matches_found=2, replaced=1, excluded=1, exclusion_zones=1)
    assert outcome.to_dict()["value"]["replaced"] == 1
    event = recorder.tail(1)[0]
    assert event["event"] == "replace_excluding"
    assert event["replaced"] == 1


@pytest.mark.asyncio
async def test_empty_search_is_rejected_before_the_host_is_contacted(
    recorder: EventRecorder, caplog: pytest.LogCaptureFixture
) -> None:
    service, engine = _service("The cat sat.")
    engine.disconnect()
    caplog.set_level(logging.ERROR)

    outcome = await service.replace_excluding("", "dog", [0])

    assert not outcome.ok
    assert outcome.error_code == ErrorCode.INVALID_ARGUMENT
    assert "Error: [invalid_argument]" in caplog.text
    assert recorder.tail(1)[0]["event"] == "operation_failed"


@pytest.mark.asyncio
async def test_oversized_search_is_reported_not_raised() -> None:
    service, engine = _service("The cat sat.")

    outcome = await service.replace_excluding("c" * 300, "dog")

    assert outcome.error_code == ErrorCode.INVALID_ARGUMENT
    assert outcome.details == {"length": 300}
    assert engine.paragraph_texts() == ["The cat sat."]


@pytest.mark.asyncio
async def test_invalid_locator_logs_message_and_debug_info(
    recorder: EventRecorder, caplog: pytest.LogCaptureFixture
) -> None:
    service, engine = _service("The cat sat.")
    caplog.set_level(logging.ERROR)

    outcome = await service.replace_excluding("cat", "dog", ["9"])

    assert outcome.error_code == ErrorCode.INVALID_LOCATOR
    assert engine.paragraph_texts() == ["The cat sat."]
    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("Error: [invalid_locator]") for message in messages)
    assert any(message.startswith("Debug info:") and "paragraph_range" in message for message in messages)
    failure = recorder.tail(1)[0]
    assert failure["operation"] == "replace_excluding"
    assert failure["error"] == ErrorCode.INVALID_LOCATOR


@pytest.mark.asyncio
async def test_service_settings_drive_the_search_options() -> None:
    service, engine = _service("concatenate cat", settings=Settings(match_whole_word=False))

    outcome = await service.replace_excluding("cat", "dog")

    assert outcome.value is not None
    assert outcome.value.replaced == 2
    assert engine.paragraph_texts() == ["condogenate dog"]


@pytest.mark.asyncio
async def test_repeated_replacements_keep_no_ranges_between_calls() -> None:
    service, engine = _service("The cat sat.", "The cat ran.")

    tracked = []
    for _ in range(5):
        outcome = await service.replace_excluding("cat", "cat", [0])
        assert outcome.ok
        tracked.append(len(engine.tracked_handles))

    assert tracked == [0, 0, 0, 0, 0]


@pytest.mark.asyncio
async def test_replace_document_content_has_no_leading_blank(recorder: EventRecorder) -> None:
    service, engine = _service()

    outcome = await service.replace_document_content(["Intro", "Body", "Conclusion"])

    assert outcome.ok
    assert outcome.value == 3
    assert engine.paragraph_texts() == ["Intro", "Body", "Conclusion"]
    assert recorder.tail(1)[0] == {"event": "replace_document_content", "paragraphs": 3}


@pytest.mark.asyncio
async def test_replace_document_content_overwrites_existing_text() -> None:
    service, engine = _service("old one", "old two", "old three")

    await service.replace_document_content(["new"])
    assert engine.paragraph_texts() == ["new"]

    outcome = await service.replace_document_content([])
    assert outcome.value == 0
    assert engine.paragraph_texts() == [""]


@pytest.mark.asyncio
async def test_get_markup_returns_empty_string_when_host_is_unreachable(
    caplog: pytest.LogCaptureFixture,
) -> None:
    service, engine = _service("text")
    engine.disconnect("no connection")
    caplog.set_level(logging.ERROR)

    markup = await service.get_markup()

    assert markup == ""
    assert "Error: [host_unreachable]" in caplog.text
    assert "no connection" in caplog.text


@pytest.mark.asyncio
async def test_get_markup_returns_the_body() -> None:
    service, _ = _service("Intro", "Body")

    markup = await service.get_markup()

    assert paragraphs_from_markup(markup) == ["Intro", "Body"]


@pytest.mark.asyncio
async def test_set_markup_replaces_the_body(recorder: EventRecorder) -> None:
    source, _ = _service("From", "elsewhere")
    service, engine = _service("Old")

    outcome = await service.set_markup(await source.get_markup())

    assert outcome.ok
    assert engine.paragraph_texts() == ["From", "elsewhere"]
    assert recorder.tail(1)[0]["event"] == "set_markup"


@pytest.mark.asyncio
async def test_set_markup_rejects_foreign_markup() -> None:
    service, engine = _service("Old")

    outcome = await service.set_markup("<html><body/></html>")

    assert outcome.error_code == ErrorCode.INVALID_MARKUP
    assert outcome.to_dict()["details"] == {"root": "html"}
    assert engine.paragraph_texts() == ["Old"]


@pytest.mark.asyncio
async def test_operation_timeout_is_reported() -> None:
    engine = InMemoryEngine(["text"])
    host = DocumentHost(engine)
    service = WordDocumentService(host, settings=Settings(operation_timeout=0.05))

    async with host.session():
        outcome = await service.fetch_markup()

    assert outcome.error_code == ErrorCode.TIMEOUT
    assert outcome.error is not None
    assert outcome.error.to_dict()["timeout_seconds"] == 0.05
    assert outcome.duration_ms >= 0.0


@pytest.mark.asyncio
async def test_unexpected_failures_become_internal_errors(caplog: pytest.LogCaptureFixture) -> None:
    engine = InMemoryEngine(["The cat sat."])
    service = WordDocumentService(DocumentHost(engine), replacer=_BrokenReplacer())
    caplog.set_level(logging.ERROR)

    outcome = await service.replace_excluding("cat", "dog")

    assert outcome.error_code == ErrorCode.INTERNAL_ERROR
    assert outcome.message == "kaboom"
    assert "Unexpected failure in replace_excluding" in caplog.text
    with pytest.raises(Exception):
        outcome.unwrap()
