"""Data models for Valkyrie."""

from valkyrie.models.command import ChunkCallback, CommandOutcome, ExecutionOptions
from valkyrie.models.operation import (
    OperationDefinition,
    OperationHandler,
    OperationOption,
    OperationRequest,
    Surface,
    operation_key,
)
from valkyrie.models.target import GameServer, RemoteTarget

__all__ = [
    "ChunkCallback",
    "CommandOutcome",
    "ExecutionOptions",
    "GameServer",
    "OperationDefinition",
    "OperationHandler",
    "OperationOption",
    "OperationRequest",
    "RemoteTarget",
    "Surface",
    "operation_key",
]
