"""Exit status validation for remote commands."""

from valkyrie.models import CommandOutcome


class CommandExecutionError(Exception):
    """Remote command exited non-zero, was killed, or reported no status."""

    def __init__(self, command: str, outcome: CommandOutcome):
        """Initialize command execution error.

        Args:
            command: Command text as sent to the remote shell
            outcome: Captured outcome, kept for diagnostics
        """
        self.command = command
        self.outcome = outcome
        super().__init__(f"Command failed ({self.reason}): {command}")

    @property
    def exit_code(self) -> int | None:
        return self.outcome.exit_code

    @property
    def signal(self) -> str | None:
        return self.outcome.signal

    @property
    def stdout(self) -> str:
        return self.outcome.stdout

    @property
    def stderr(self) -> str:
        return self.outcome.stderr

    @property
    def reason(self) -> str:
        """Short description of why the outcome was rejected."""
        if self.signal:
            return f"signal {self.signal}"
        if self.exit_code is None:
            return "no exit status"
        return f"exit code {self.exit_code}"


def validate_outcome(
    command: str,
    outcome: CommandOutcome,
    accept_non_zero_exit: bool = False,
) -> CommandOutcome:
    """Check a completed command's exit status.

    Args:
        command: Command text, recorded on failure
        outcome: Outcome to check
        accept_non_zero_exit: Return the outcome unchecked; the caller
            inspects ``exit_code`` itself

    Returns:
        The outcome, unchanged

    Raises:
        CommandExecutionError: On a signal, a non-zero exit code, or a
            missing exit code
    """
    if accept_non_zero_exit:
        return outcome

    if outcome.signal is not None or outcome.exit_code != 0:
        raise CommandExecutionError(command, outcome)

    return outcome
