"""Scoped SSH sessions.

Every operation opens its own connection, runs its commands, and closes
the connection again. Nothing is pooled or reused between operations.
"""

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import asyncssh

from valkyrie.config import ConfigurationError
from valkyrie.models import ChunkCallback, CommandOutcome, ExecutionOptions, RemoteTarget
from valkyrie.services.validation import validate_outcome
from valkyrie.utils.shell import quote_path

if TYPE_CHECKING:
    from valkyrie.services.progress import OutputChannel

logger = logging.getLogger(__name__)

T = TypeVar("T")

READ_CHUNK_SIZE = 4096


class CredentialError(Exception):
    """SSH private key could not be read or parsed."""

    def __init__(self, target_label: str, original_error: Exception):
        """Initialize credential error.

        Args:
            target_label: Name of the target whose key failed to load
            original_error: Original exception that caused the failure
        """
        self.target_label = target_label
        self.original_error = original_error
        super().__init__(f"Cannot load SSH key for {target_label}: {original_error}")


class ConnectionError(Exception):
    """Failed to establish SSH connection."""

    def __init__(self, host_name: str, original_error: Exception):
        """Initialize connection error.

        Args:
            host_name: Name of the SSH host
            original_error: Original exception that caused the failure
        """
        self.host_name = host_name
        self.original_error = original_error
        super().__init__(f"Cannot connect to {host_name}: {original_error}")


def _decode(value: str | bytes | None) -> str:
    """Normalize asyncssh output, which may be str, bytes, or None."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _outcome(
    stdout: str | bytes | None,
    stderr: str | bytes | None,
    exit_status: int | None,
    exit_signal: tuple[Any, ...] | None,
) -> CommandOutcome:
    """Build a CommandOutcome; a terminating signal replaces the exit code."""
    signal = str(exit_signal[0]) if exit_signal else None
    return CommandOutcome(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=None if signal else exit_status,
        signal=signal,
    )


class RemoteSession:
    """Handle to one open connection, passed to session tasks."""

    def __init__(
        self,
        target: RemoteTarget,
        connection: "asyncssh.SSHClientConnection",
    ) -> None:
        self.target = target
        self.connection = connection

    async def run_command(
        self,
        command: str,
        options: ExecutionOptions | None = None,
    ) -> CommandOutcome:
        """Run a command and validate its exit status.

        Args:
            command: Shell command, passed through as-is
            options: Working directory, exit status policy, and streaming
                callbacks or output channel

        Returns:
            The validated outcome

        Raises:
            CommandExecutionError: Unless ``accept_non_zero_exit`` is set and
                the command did not succeed
        """
        options = options or ExecutionOptions()
        full_command = command
        if options.working_directory:
            full_command = f"cd {quote_path(options.working_directory)} && {command}"

        logger.debug("Running on %s: %s", self.target.label, full_command)

        if options.streaming:
            outcome = await self._stream(full_command, options)
        else:
            result = await self.connection.run(full_command, check=False)
            outcome = _outcome(
                result.stdout, result.stderr, result.exit_status, result.exit_signal
            )

        logger.debug(
            "Command on %s finished (exit_code=%s, signal=%s)",
            self.target.label,
            outcome.exit_code,
            outcome.signal,
        )
        return validate_outcome(command, outcome, options.accept_non_zero_exit)

    async def _stream(self, command: str, options: ExecutionOptions) -> CommandOutcome:
        """Run a command, delivering output chunk by chunk as it arrives."""
        channel = options.output
        try:
            process = await self.connection.create_process(command)
            pumps = [
                asyncio.create_task(
                    _pump(process.stdout, "stdout", options.on_stdout_chunk, channel)
                ),
                asyncio.create_task(
                    _pump(process.stderr, "stderr", options.on_stderr_chunk, channel)
                ),
            ]
            try:
                try:
                    stdout, stderr = await asyncio.gather(*pumps)
                except BaseException:
                    # The channel closes below; no pump may outlive it.
                    for pump in pumps:
                        pump.cancel()
                    await asyncio.gather(*pumps, return_exceptions=True)
                    raise
                completed = await process.wait(check=False)
            finally:
                process.close()
            return _outcome(stdout, stderr, completed.exit_status, completed.exit_signal)
        finally:
            if channel is not None:
                channel.close()


async def _pump(
    reader: Any,
    stream: str,
    callback: ChunkCallback | None,
    channel: "OutputChannel | None",
) -> str:
    """Read a stream to EOF, forwarding each chunk; return everything read."""
    parts: list[str] = []
    while True:
        chunk = _decode(await reader.read(READ_CHUNK_SIZE))
        if not chunk:
            break
        parts.append(chunk)
        if callback is not None:
            result = callback(chunk)
            if inspect.isawaitable(result):
                await result
        if channel is not None:
            await channel.send(stream, chunk)
    return "".join(parts)


class SessionTransport:
    """Opens one SSH connection per operation and always closes it."""

    def __init__(
        self,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
        connect_timeout: int = 15,
    ) -> None:
        """Initialize transport.

        Args:
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unknown host keys
            connect_timeout: Seconds to wait for the SSH handshake
        """
        self._known_hosts = known_hosts
        self._strict_host_key = strict_host_key_checking
        self.connect_timeout = connect_timeout

        if self._known_hosts is None:
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Set VALKYRIE_KNOWN_HOSTS to a valid known_hosts file path."
            )
        else:
            logger.info(
                "SSH host key verification enabled (known_hosts=%s, strict=%s)",
                self._known_hosts,
                self._strict_host_key,
            )

    @asynccontextmanager
    async def session(self, target: RemoteTarget) -> AsyncIterator[RemoteSession]:
        """Open a session to *target*, closing it when the block exits.

        Raises:
            ConfigurationError: If host, username, or key path is empty
                (checked before any file or network access)
            CredentialError: If the private key cannot be loaded
            ConnectionError: If the connection cannot be established
        """
        missing = target.missing_fields()
        if missing:
            raise ConfigurationError(
                [
                    f"Invalid SSH configuration for {target.label}: "
                    f"{', '.join(missing)} required"
                ]
            )

        key = self._load_credential(target)
        conn = await self._connect(target, key)
        try:
            yield RemoteSession(target, conn)
        finally:
            await self._dispose(target, conn)

    async def with_session(
        self,
        target: RemoteTarget,
        task: Callable[[RemoteSession], Awaitable[T]],
    ) -> T:
        """Run *task* inside a session and return its result.

        The connection is closed exactly once whether the task returns or
        raises; the task's result or exception reaches the caller unchanged.
        """
        async with self.session(target) as remote:
            return await task(remote)

    async def run_single_command(
        self,
        target: RemoteTarget,
        command: str,
        options: ExecutionOptions | None = None,
    ) -> CommandOutcome:
        """Open a session, run one validated command, close the session."""
        async with self.session(target) as remote:
            return await remote.run_command(command, options)

    def _load_credential(self, target: RemoteTarget) -> "asyncssh.SSHKey":
        """Read and parse the target's private key; never cached."""
        path = Path(target.credential_reference).expanduser()
        try:
            key_data = path.read_text(encoding="utf-8")
            return asyncssh.import_private_key(key_data)
        except (OSError, UnicodeDecodeError, asyncssh.KeyImportError) as e:
            logger.error("Failed to load SSH key for %s from %s: %s", target.label, path, e)
            raise CredentialError(target.label, e) from e

    async def _connect(
        self,
        target: RemoteTarget,
        key: "asyncssh.SSHKey",
    ) -> "asyncssh.SSHClientConnection":
        """Open the connection, wrapping transport failures in ConnectionError."""
        logger.info("Opening SSH connection to %s (%s@%s)", target.label, target.username, target.host)
        try:
            try:
                conn = await self._open(target, key, self._known_hosts)
            except asyncssh.HostKeyNotVerifiable as e:
                if self._strict_host_key:
                    logger.error(
                        "Host key verification failed for %s: %s. "
                        "Add the host key to %s or set "
                        "VALKYRIE_STRICT_HOST_KEY_CHECKING=false",
                        target.label,
                        e,
                        self._known_hosts,
                    )
                    raise
                logger.warning(
                    "Host key not verified for %s (strict mode disabled): %s",
                    target.label,
                    e,
                )
                conn = await self._open(target, key, None)
        except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
            logger.error("SSH connection to %s failed: %s", target.label, e)
            raise ConnectionError(target.label, e) from e

        logger.info("SSH connection established to %s", target.label)
        return conn

    async def _open(
        self,
        target: RemoteTarget,
        key: "asyncssh.SSHKey",
        known_hosts: str | None,
    ) -> "asyncssh.SSHClientConnection":
        return await asyncssh.connect(
            target.host,
            username=target.username,
            client_keys=[key],
            known_hosts=known_hosts,
            connect_timeout=self.connect_timeout,
        )

    async def _dispose(
        self,
        target: RemoteTarget,
        conn: "asyncssh.SSHClientConnection",
    ) -> None:
        """Close the connection; waiting for the close is best effort."""
        logger.debug("Closing SSH connection to %s", target.label)
        conn.close()
        try:
            await conn.wait_closed()
        except Exception as e:
            logger.warning("Error while closing SSH connection to %s: %s", target.label, e)
