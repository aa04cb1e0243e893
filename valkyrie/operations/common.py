"""Helpers shared by operation handlers."""

import logging
from typing import TYPE_CHECKING

from valkyrie.models import GameServer
from valkyrie.services.validation import CommandExecutionError
from valkyrie.utils.ping import check_host_online

if TYPE_CHECKING:
    from valkyrie.dispatch import OperationContext


async def report_failure(
    ctx: "OperationContext",
    logger: logging.Logger,
    message: str,
    error: Exception,
) -> None:
    """Log a handler failure with its diagnostics and reply with *message*.

    The reply never includes the error itself.
    """
    if isinstance(error, CommandExecutionError):
        logger.error(
            "%s: %s (stdout=%r, stderr=%r)",
            message,
            error,
            error.stdout,
            error.stderr,
        )
    else:
        logger.error("%s: %s", message, error, exc_info=error)
    await ctx.reply.send(message)


async def is_server_online(ctx: "OperationContext", server: GameServer) -> bool:
    """Probe the game port of *server*."""
    return await check_host_online(
        server.target.host,
        server.port,
        timeout=ctx.settings.probe_timeout,
    )


async def send_direct_with_notice(ctx: "OperationContext", text: str) -> None:
    """DM the requester and tell them, privately, whether it worked."""
    if await ctx.reply.send_direct(text):
        await ctx.reply.send("I sent you a DM with the requested information.", ephemeral=True)
    else:
        await ctx.reply.send(
            "I could not send you a DM. Please make sure your privacy settings "
            "allow messages from server members.",
            ephemeral=True,
        )
