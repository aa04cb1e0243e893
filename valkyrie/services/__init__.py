"""Services for Valkyrie."""

from valkyrie.services.authorization import (
    AuthorizationGate,
    Decision,
    DenialReason,
    RoleTiers,
)
from valkyrie.services.progress import (
    OutputChannel,
    ProgressAggregator,
    StatusVocabulary,
    run_with_progress,
)
from valkyrie.services.registry import CommandRegistry
from valkyrie.services.scheduler import Scheduler
from valkyrie.services.session import (
    ConnectionError,
    CredentialError,
    RemoteSession,
    SessionTransport,
)
from valkyrie.services.validation import CommandExecutionError, validate_outcome

__all__ = [
    "AuthorizationGate",
    "CommandExecutionError",
    "CommandRegistry",
    "ConnectionError",
    "CredentialError",
    "Decision",
    "DenialReason",
    "OutputChannel",
    "ProgressAggregator",
    "RemoteSession",
    "RoleTiers",
    "Scheduler",
    "SessionTransport",
    "StatusVocabulary",
    "run_with_progress",
    "validate_outcome",
]
