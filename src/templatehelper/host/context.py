"""Queued-command request context and the host that hands it out.

Commands issued on a :class:`RequestContext` are only recorded. They execute,
in order, when the caller awaits :meth:`RequestContext.sync`, and the values
they produce only become readable afterwards. A batch that contains
mutations is applied atomically: if any command fails, the engine is rolled
back to its state before the batch and no result of that batch is filled in.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, TypeVar

from ..core.ranges import LocationRelation
from .errors import HostCommunicationError, HostError, PropertyNotLoadedError
from .types import HostEngine, HostRange, InsertLocation, ParagraphLocator

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ClientResult(Generic[T]):
    """Placeholder for a value the host produces at the next sync."""

    __slots__ = ("_label", "_value", "_loaded")

    def __init__(self, label: str) -> None:
        self._label = label
        self._value: Any = None
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def value(self) -> T:
        if not self._loaded:
            raise PropertyNotLoadedError(
                message=f"{self._label} is not available until context.sync() completes",
                details={"command": self._label},
            )
        return self._value

    def _set(self, value: T) -> None:
        self._value = value
        self._loaded = True

    def __repr__(self) -> str:
        state = repr(self._value) if self._loaded else "<not loaded>"
        return f"ClientResult({self._label}={state})"


@dataclass(slots=True)
class QueuedCommand:
    """A recorded host call awaiting the next sync."""

    name: str
    action: Callable[[HostEngine], Any]
    result: ClientResult[Any] | None = None
    mutates: bool = False


class RequestContext:
    """Records host commands and executes them at :meth:`sync`."""

    def __init__(self, engine: HostEngine) -> None:
        self.engine = engine
        self._queue: list[QueuedCommand] = []
        self.sync_count = 0

    @property
    def pending(self) -> int:
        """Number of commands recorded since the last sync."""

        return len(self._queue)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def search(
        self,
        text: str,
        *,
        match_case: bool = False,
        match_whole_word: bool = True,
    ) -> ClientResult[list[HostRange]]:
        return self._read(
            "search",
            lambda engine: engine.search(text, match_case=match_case, match_whole_word=match_whole_word),
        )

    def paragraphs(self) -> ClientResult[list[HostRange]]:
        return self._read("paragraphs", lambda engine: engine.paragraphs())

    def paragraph_range(self, locator: ParagraphLocator) -> ClientResult[HostRange]:
        return self._read("paragraph_range", lambda engine: engine.paragraph_range(locator))

    def compare_location(self, subject: HostRange, other: HostRange) -> ClientResult[LocationRelation]:
        return self._read("compare_location", lambda engine: engine.compare_location(subject, other))

    def range_text(self, target: HostRange) -> ClientResult[str]:
        return self._read("range_text", lambda engine: engine.range_text(target))

    def get_text(self) -> ClientResult[str]:
        return self._read("get_text", lambda engine: engine.get_text())

    def paragraph_texts(self) -> ClientResult[list[str]]:
        return self._read("paragraph_texts", lambda engine: list(engine.paragraph_texts()))

    def get_ooxml(self) -> ClientResult[str]:
        return self._read("get_ooxml", lambda engine: engine.get_ooxml())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert_text(
        self,
        text: str,
        location: InsertLocation = InsertLocation.END,
        *,
        target: HostRange | None = None,
    ) -> None:
        """Queue an insert relative to ``target``, or to the body when omitted."""

        self._write("insert_text", lambda engine: engine.insert_text(target, text, location))

    def replace(self, target: HostRange, text: str) -> None:
        self._write("replace", lambda engine: engine.insert_text(target, text, InsertLocation.REPLACE))

    def insert_paragraph(
        self,
        text: str,
        location: InsertLocation = InsertLocation.END,
    ) -> ClientResult[HostRange]:
        result: ClientResult[HostRange] = ClientResult("insert_paragraph")
        self._queue.append(
            QueuedCommand(
                name="insert_paragraph",
                action=lambda engine: engine.insert_paragraph(text, location),
                result=result,
                mutates=True,
            )
        )
        return result

    def clear(self) -> None:
        self._write("clear", lambda engine: engine.clear())

    def insert_ooxml(self, markup: str, location: InsertLocation = InsertLocation.REPLACE) -> None:
        self._write("insert_ooxml", lambda engine: engine.insert_ooxml(markup, location))

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------
    async def sync(self) -> None:
        """Execute every queued command and fill in their results."""

        commands, self._queue = self._queue, []
        await asyncio.sleep(0)
        self._flush(commands)
        self.sync_count += 1

    def discard(self) -> int:
        """Drop queued commands without running them."""

        dropped = len(self._queue)
        self._queue = []
        return dropped

    def _read(self, name: str, action: Callable[[HostEngine], T]) -> ClientResult[T]:
        result: ClientResult[T] = ClientResult(name)
        self._queue.append(QueuedCommand(name=name, action=action, result=result))
        return result

    def _write(self, name: str, action: Callable[[HostEngine], Any]) -> None:
        self._queue.append(QueuedCommand(name=name, action=action, mutates=True))

    def _flush(self, commands: list[QueuedCommand]) -> None:
        self.engine.ensure_connected()
        if not commands:
            return
        checkpoint = self.engine.checkpoint() if any(cmd.mutates for cmd in commands) else None
        produced: list[tuple[ClientResult[Any], Any]] = []

        for index, command in enumerate(commands):
            try:
                value = command.action(self.engine)
            except HostError as exc:
                self._rollback(checkpoint)
                exc.debug_info.setdefault("command", command.name)
                exc.debug_info.setdefault("command_index", index)
                LOGGER.debug("Batch failed at %s (#%d): %s", command.name, index, exc)
                raise
            except Exception as exc:
                self._rollback(checkpoint)
                raise HostCommunicationError(
                    message=f"{command.name} failed: {exc}",
                    debug_info={
                        "command": command.name,
                        "command_index": index,
                        "exception": type(exc).__name__,
                    },
                ) from exc
            if command.result is not None:
                produced.append((command.result, value))

        for result, value in produced:
            result._set(value)
        LOGGER.debug("Synchronized %d commands", len(commands))

    def _rollback(self, checkpoint: Any) -> None:
        if checkpoint is None:
            return
        self.engine.restore(checkpoint)
        LOGGER.debug("Rolled back engine %s to its pre-batch state", self.engine.engine_id)


class DocumentHost:
    """Hands out request contexts, one session at a time."""

    def __init__(self, engine: HostEngine) -> None:
        self.engine = engine
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RequestContext]:
        """Yield a context, flushing leftover commands when the block exits cleanly.

        Ranges handed out during the session are released when it ends, so
        handles never outlive the operation that obtained them.
        """
        async with self._lock:
            context = RequestContext(self.engine)
            watermark = self.engine.handle_watermark
            try:
                try:
                    yield context
                except BaseException:
                    dropped = context.discard()
                    if dropped:
                        LOGGER.debug("Discarded %d queued commands after an error", dropped)
                    raise
                if context.pending:
                    await context.sync()
            finally:
                released = self.engine.release_handles(watermark)
                if released:
                    LOGGER.debug("Released %d ranges at session end", released)

    async def run(self, batch: Callable[[RequestContext], Awaitable[T]]) -> T:
        """Run ``batch`` inside a session and return its result."""

        async with self.session() as context:
            return await batch(context)


__all__ = ["ClientResult", "DocumentHost", "QueuedCommand", "RequestContext"]
