"""Command execution data models."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from valkyrie.services.progress import OutputChannel

# Called with each decoded chunk as it arrives; may return an awaitable.
ChunkCallback = Callable[[str], Awaitable[None] | None]


@dataclass
class CommandOutcome:
    """Result of a remote command execution."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    signal: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the command exited normally with status 0."""
        return self.signal is None and self.exit_code == 0


@dataclass
class ExecutionOptions:
    """Per-command execution options."""

    working_directory: str | None = None
    accept_non_zero_exit: bool = False
    on_stdout_chunk: ChunkCallback | None = None
    on_stderr_chunk: ChunkCallback | None = None
    output: "OutputChannel | None" = None

    @property
    def streaming(self) -> bool:
        """Whether output must be delivered incrementally."""
        return bool(self.on_stdout_chunk or self.on_stderr_chunk or self.output)
