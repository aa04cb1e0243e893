"""Request dispatch: resolve, authorize, run the handler, contain failures."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from valkyrie.models import OperationDefinition, OperationRequest
from valkyrie.protocols import Reply
from valkyrie.services.authorization import Decision, DenialReason

if TYPE_CHECKING:
    from valkyrie.config import Config, Settings
    from valkyrie.dependencies import Dependencies
    from valkyrie.services.scheduler import Scheduler
    from valkyrie.services.session import SessionTransport

logger = logging.getLogger(__name__)

UNKNOWN_OPERATION_MESSAGE = "This command is not available right now."
INSUFFICIENT_ROLE_MESSAGE = "You do not have the required permissions to use this command."
RATE_LIMITED_MESSAGE = "Please wait before using this command again."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while processing your command."


@dataclass
class OperationContext:
    """Everything a handler needs to serve one request."""

    request: OperationRequest
    reply: Reply
    operation: OperationDefinition
    role_tier: int
    deps: "Dependencies"

    @property
    def config(self) -> "Config":
        return self.deps.config

    @property
    def settings(self) -> "Settings":
        return self.deps.config.settings

    @property
    def transport(self) -> "SessionTransport":
        return self.deps.transport

    @property
    def scheduler(self) -> "Scheduler":
        return self.deps.scheduler


class Dispatcher:
    """Entry point the chat layer calls for every inbound request."""

    def __init__(self, deps: "Dependencies") -> None:
        self.deps = deps

    async def dispatch(self, request: OperationRequest, reply: Reply) -> Decision | None:
        """Serve one request.

        Returns:
            The authorization decision, or None for an unknown operation
        """
        operation = self.deps.registry.resolve(request.key)
        if operation is None:
            logger.info("Unknown operation requested: %s", request.key)
            await reply.send(UNKNOWN_OPERATION_MESSAGE, ephemeral=True)
            return None

        role_tier = self.deps.role_tiers.resolve(request.role_names)
        decision = self.deps.gate.authorize(request.user_id, role_tier, operation)
        if not decision.allowed:
            if decision.reason is DenialReason.RATE_LIMITED:
                await reply.send(RATE_LIMITED_MESSAGE, ephemeral=True)
            else:
                await reply.send(INSUFFICIENT_ROLE_MESSAGE, ephemeral=True)
            return decision

        if operation.cooldown_eligible:
            logger.info(
                "%s (%s) executed /%s",
                request.user_tag or request.user_id,
                request.user_id,
                operation.name,
            )

        context = OperationContext(
            request=request,
            reply=reply,
            operation=operation,
            role_tier=role_tier,
            deps=self.deps,
        )
        try:
            await operation.handler(context)
        except Exception:
            logger.exception("Unexpected error while executing /%s", operation.name)
            try:
                await reply.send(UNEXPECTED_ERROR_MESSAGE, ephemeral=True)
            except Exception as e:
                logger.warning("Failed to report error for /%s: %s", operation.name, e)

        return decision
