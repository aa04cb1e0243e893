"""Progress reporting for long-running remote scripts.

Maintenance scripts print free-form status lines while they run. The
aggregator keeps only the lines it was told to expect, marks each one as
pending, succeeded, or failed, and keeps a single chat message showing the
list up to date.

Edits to that message go through a chain of render tasks: every render
waits for the one before it, so edits are applied in order even when new
lines arrive while an edit is still in flight.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, cast

from valkyrie.models import CommandOutcome, ExecutionOptions, RemoteTarget
from valkyrie.services.validation import CommandExecutionError

if TYPE_CHECKING:
    from valkyrie.protocols import StatusMessage
    from valkyrie.services.scheduler import Scheduler
    from valkyrie.services.session import SessionTransport

logger = logging.getLogger(__name__)


class StatusState(str, Enum):
    """Classification of one status line."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {
    StatusState.PENDING: "⏳",
    StatusState.SUCCESS: "✅",
    StatusState.FAILURE: "❌",
}


def normalize_line(line: str) -> str:
    """Strip whitespace and carriage returns from a raw output line."""
    return line.replace("\r", "").strip()


@dataclass(frozen=True)
class StatusVocabulary:
    """The status lines a remote script is known to print.

    Lines outside ``phrases`` are dropped. Classification is a
    case-insensitive substring match: failure terms win over success terms,
    anything else is pending.
    """

    phrases: frozenset[str]
    failure_terms: tuple[str, ...] = ("fail", "error")
    success_terms: tuple[str, ...] = ("complete", "success", "done")

    @classmethod
    def of(
        cls,
        phrases: Iterable[str],
        failure_terms: Iterable[str] = ("fail", "error"),
        success_terms: Iterable[str] = ("complete", "success", "done"),
    ) -> "StatusVocabulary":
        """Build a vocabulary from any iterables, normalizing the phrases."""
        return cls(
            phrases=frozenset(normalize_line(p) for p in phrases if normalize_line(p)),
            failure_terms=tuple(t.lower() for t in failure_terms),
            success_terms=tuple(t.lower() for t in success_terms),
        )

    def accepts(self, line: str) -> bool:
        return line in self.phrases

    def classify(self, line: str) -> StatusState:
        lowered = line.lower()
        if any(term in lowered for term in self.failure_terms):
            return StatusState.FAILURE
        if any(term in lowered for term in self.success_terms):
            return StatusState.SUCCESS
        return StatusState.PENDING


@dataclass(frozen=True)
class StatusEntry:
    """One classified line of the status block."""

    text: str
    state: StatusState

    @property
    def rendered(self) -> str:
        return f"{self.state.glyph} {self.text}"


class LineBuffer:
    """Splits a chunked stream into complete lines."""

    def __init__(self) -> None:
        self._partial = ""

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk; return the lines it completed."""
        *lines, self._partial = (self._partial + chunk).split("\n")
        return lines

    def flush(self) -> list[str]:
        """Return the unterminated remainder, if any, and reset."""
        rest, self._partial = self._partial, ""
        return [rest] if rest else []


@dataclass(frozen=True)
class OutputChunk:
    """A piece of remote output tagged with its stream."""

    stream: str
    text: str


_CLOSED = object()


class OutputChannel:
    """Bounded channel of output chunks between a session and a consumer.

    ``send`` waits while ``maxsize`` chunks are unconsumed. ``close`` never
    blocks; iteration ends once every chunk sent before it was consumed.
    """

    def __init__(self, maxsize: int = 64) -> None:
        if maxsize <= 0:
            raise ValueError(f"maxsize must be > 0, got {maxsize}")
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._slots = asyncio.Semaphore(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, stream: str, text: str) -> None:
        if self._closed:
            raise RuntimeError("Output channel is closed")
        await self._slots.acquire()
        self._queue.put_nowait(OutputChunk(stream, text))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[OutputChunk]:
        return self

    async def __anext__(self) -> OutputChunk:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other reader.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        self._slots.release()
        return cast(OutputChunk, item)


class ProgressAggregator:
    """Turns script output into one live, classified status message."""

    def __init__(
        self,
        vocabulary: StatusVocabulary,
        message: "StatusMessage",
        header: str | None = None,
        edit_interval: float = 1.0,
    ) -> None:
        """Initialize aggregator.

        Args:
            vocabulary: Status lines to keep and how to classify them
            message: Chat message that shows the status block
            header: Optional first line of the block
            edit_interval: Minimum seconds between two message edits
        """
        self.vocabulary = vocabulary
        self.message = message
        self.header = header
        self.edit_interval = max(0.0, edit_interval)
        self._entries: list[StatusEntry] = []
        self._buffers: dict[str, LineBuffer] = {}
        self._render_task: asyncio.Task[None] | None = None
        self._last_text: str | None = None
        self._last_edit = float("-inf")
        self._stopped = False

    @property
    def entries(self) -> tuple[StatusEntry, ...]:
        return tuple(self._entries)

    @property
    def stopped(self) -> bool:
        """True after ``abort``; later output is ignored."""
        return self._stopped

    def render(self) -> str:
        """Render the status block as message text."""
        lines = [entry.rendered for entry in self._entries]
        if self.header:
            lines.insert(0, self.header)
        return "\n".join(lines)

    # ── input ──────────────────────────────────────────────────

    def feed(self, stream: str, chunk: str) -> None:
        """Consume a chunk of output from *stream*."""
        if self._stopped:
            return
        buffer = self._buffers.setdefault(stream, LineBuffer())
        for line in buffer.feed(chunk):
            self._accept(line)

    def feed_stdout(self, chunk: str) -> None:
        self.feed("stdout", chunk)

    def feed_stderr(self, chunk: str) -> None:
        self.feed("stderr", chunk)

    async def consume(self, channel: OutputChannel) -> None:
        """Feed every chunk from *channel* until it is closed."""
        async for chunk in channel:
            self.feed(chunk.stream, chunk.text)

    def _accept(self, raw: str) -> None:
        line = normalize_line(raw)
        if not line:
            return
        if not self.vocabulary.accepts(line):
            logger.debug("Dropping unrecognized status line: %r", line)
            return
        self._append(StatusEntry(line, self.vocabulary.classify(line)))

    def _append(self, entry: StatusEntry) -> None:
        self._entries.append(entry)
        self._request_render()

    def _flush_partials(self) -> None:
        for buffer in self._buffers.values():
            for line in buffer.flush():
                self._accept(line)

    # ── lifecycle ──────────────────────────────────────────────

    async def complete(self) -> None:
        """The command finished: evaluate leftover partial lines and settle."""
        if self._stopped:
            return
        self._flush_partials()
        await self.drain()

    async def abort(self, message: str) -> None:
        """The command or session failed: add a failure line and stop."""
        if self._stopped:
            return
        self._flush_partials()
        self._append(StatusEntry(message, StatusState.FAILURE))
        self._stopped = True
        await self.drain()

    async def prune_pending(self) -> None:
        """Remove every pending entry and re-render once."""
        remaining = [e for e in self._entries if e.state is not StatusState.PENDING]
        removed = len(self._entries) - len(remaining)
        self._entries = remaining
        logger.debug("Pruned %d pending status line(s)", removed)
        self._request_render()
        await self.drain()

    def schedule_cleanup(
        self,
        scheduler: "Scheduler",
        delay: float,
    ) -> "asyncio.Task[None] | None":
        """Prune pending entries after *delay* seconds (not after ``abort``)."""
        if self._stopped:
            return None
        return scheduler.call_later(delay, self.prune_pending, name="status cleanup")

    async def drain(self) -> None:
        """Wait until every requested render has been applied."""
        while self._render_task is not None and not self._render_task.done():
            await self._render_task

    # ── rendering ──────────────────────────────────────────────

    def _request_render(self) -> None:
        previous = self._render_task
        self._render_task = asyncio.get_running_loop().create_task(
            self._render_after(previous)
        )

    async def _render_after(self, previous: "asyncio.Task[None] | None") -> None:
        if previous is not None:
            await previous

        text = self.render()
        if text == self._last_text:
            return

        loop = asyncio.get_running_loop()
        wait = self._last_edit + self.edit_interval - loop.time()
        if wait > 0:
            await asyncio.sleep(wait)
            # Lines may have arrived while waiting.
            text = self.render()
            if text == self._last_text:
                return

        try:
            await self.message.edit(text)
        except Exception as e:
            logger.warning("Failed to update status message: %s", e)
            return

        self._last_text = text
        self._last_edit = loop.time()


async def run_with_progress(
    transport: "SessionTransport",
    target: RemoteTarget,
    command: str,
    aggregator: ProgressAggregator,
    working_directory: str | None = None,
    failure_message: str = "Operation failed",
) -> CommandOutcome:
    """Run a long command in its own session, streaming into *aggregator*.

    A command that ran and exited non-zero still completes the aggregator
    (its own status lines say what went wrong). Any other failure, such as
    the session not opening, aborts it with *failure_message*.

    Raises:
        CommandExecutionError: The command exited non-zero
        Exception: Session failures, unchanged
    """
    channel = OutputChannel()
    consumer = asyncio.create_task(aggregator.consume(channel))
    options = ExecutionOptions(working_directory=working_directory, output=channel)

    try:
        outcome = await transport.run_single_command(target, command, options)
    except CommandExecutionError:
        await _close_channel(channel, consumer)
        await aggregator.complete()
        raise
    except Exception:
        await _close_channel(channel, consumer)
        await aggregator.abort(failure_message)
        raise
    finally:
        channel.close()

    await _close_channel(channel, consumer)
    await aggregator.complete()
    return outcome


async def _close_channel(channel: OutputChannel, consumer: "asyncio.Task[None]") -> None:
    channel.close()
    await consumer
