"""Public document operations exposed to the command line and other callers.

Each operation runs as one host session and always returns an
:class:`~templatehelper.services.outcome.Outcome`; host failures are logged
and reported through the outcome instead of being raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, Sequence, TypeVar

from ..host.context import DocumentHost, RequestContext
from ..host.errors import ErrorCode, HostError, InvalidArgumentError, OperationTimeoutError
from ..host.types import InsertLocation, ParagraphLocator
from .outcome import Outcome
from .replacer import ExclusionAwareReplacer, ReplaceSummary
from .settings import Settings
from .telemetry import emit as telemetry_emit

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class WordDocumentService:
    """Search/replace, sample content and markup transfer against one host."""

    def __init__(
        self,
        host: DocumentHost,
        *,
        settings: Settings | None = None,
        replacer: ExclusionAwareReplacer | None = None,
    ) -> None:
        self.host = host
        self.settings = settings or Settings()
        self.replacer = replacer or ExclusionAwareReplacer(
            match_case=self.settings.match_case,
            match_whole_word=self.settings.match_whole_word,
        )

    async def replace_excluding(
        self,
        search_text: str,
        replacement: str,
        excluded_paragraphs: ParagraphLocator | Iterable[ParagraphLocator] | None = (),
    ) -> Outcome[ReplaceSummary]:
        """Replace ``search_text`` everywhere except inside the excluded paragraphs."""

        operation = "replace_excluding"
        if not search_text:
            return self._reject(
                operation,
                InvalidArgumentError(message="Search text must not be empty", parameter="search_text"),
            )

        async def batch(context: RequestContext) -> ReplaceSummary:
            return await self.replacer.run(context, search_text, replacement, excluded_paragraphs)

        outcome = await self._execute(operation, batch)
        if outcome.ok and outcome.value is not None:
            telemetry_emit(operation, outcome.value.to_dict())
        return outcome

    async def replace_document_content(self, paragraphs: Sequence[str]) -> Outcome[int]:
        """Clear the body and write ``paragraphs`` in order.

        The first entry goes into the empty paragraph the clear leaves behind,
        so the document never starts with a blank line.
        """

        entries = [str(entry) for entry in paragraphs]

        async def batch(context: RequestContext) -> int:
            context.clear()
            if entries:
                context.insert_text(entries[0], InsertLocation.END)
                for entry in entries[1:]:
                    context.insert_paragraph(entry, InsertLocation.END)
            await context.sync()
            return len(entries)

        outcome = await self._execute("replace_document_content", batch)
        if outcome.ok:
            telemetry_emit("replace_document_content", {"paragraphs": len(entries)})
        return outcome

    async def fetch_markup(self) -> Outcome[str]:
        """Return the body markup wrapped in an outcome."""

        async def batch(context: RequestContext) -> str:
            markup = context.get_ooxml()
            await context.sync()
            return markup.value

        return await self._execute("get_markup", batch)

    async def get_markup(self) -> str:
        """Return the body markup, or an empty string when the host fails."""

        outcome = await self.fetch_markup()
        if not outcome.ok or outcome.value is None:
            return ""
        return outcome.value

    async def set_markup(self, markup: str) -> Outcome[None]:
        """Replace the whole body with ``markup``."""

        async def batch(context: RequestContext) -> None:
            context.insert_ooxml(markup, InsertLocation.REPLACE)
            await context.sync()
            LOGGER.info("Markup replaced the document body.")

        outcome = await self._execute("set_markup", batch)
        if outcome.ok:
            telemetry_emit("set_markup", {"length": len(markup)})
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _execute(
        self,
        operation: str,
        batch: Callable[[RequestContext], Awaitable[T]],
    ) -> Outcome[T]:
        started = time.perf_counter()
        timeout = self.settings.operation_timeout
        try:
            if timeout:
                value = await asyncio.wait_for(self.host.run(batch), timeout)
            else:
                value = await self.host.run(batch)
        except HostError as exc:
            outcome: Outcome[T] = Outcome.failure(operation, exc)
        except asyncio.TimeoutError:
            outcome = Outcome.failure(
                operation,
                OperationTimeoutError(
                    message=f"{operation} did not finish within {timeout} seconds",
                    timeout_seconds=timeout,
                ),
            )
        except Exception as exc:
            LOGGER.exception("Unexpected failure in %s", operation)
            outcome = Outcome.failure(
                operation,
                HostError(
                    error_code=ErrorCode.INTERNAL_ERROR,
                    message=str(exc) or type(exc).__name__,
                    debug_info={"exception": type(exc).__name__},
                ),
            )
        else:
            outcome = Outcome.success(operation, value)
        outcome.duration_ms = (time.perf_counter() - started) * 1000.0
        if not outcome.ok:
            self._report(outcome)
        return outcome

    def _reject(self, operation: str, error: HostError) -> Outcome[Any]:
        outcome: Outcome[Any] = Outcome.failure(operation, error)
        self._report(outcome)
        return outcome

    def _report(self, outcome: Outcome[Any]) -> None:
        error = outcome.error
        if error is None:
            return
        LOGGER.error("Error: %s", error)
        if error.debug_info:
            LOGGER.error("Debug info: %s", json.dumps(error.debug_info, default=str, sort_keys=True))
        telemetry_emit(
            "operation_failed",
            {"operation": outcome.operation, "error": error.error_code, "message": error.message},
        )


__all__ = ["WordDocumentService"]
