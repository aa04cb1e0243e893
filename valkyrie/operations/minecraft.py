"""Minecraft Bedrock server operations.

The server is a systemd unit; maintenance is done by shell scripts under
``/minecraft`` that print one status line per step.
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from valkyrie.models import ExecutionOptions, OperationDefinition, OperationOption
from valkyrie.operations.common import report_failure, send_direct_with_notice
from valkyrie.services.progress import (
    ProgressAggregator,
    StatusVocabulary,
    run_with_progress,
)
from valkyrie.services.validation import CommandExecutionError

if TYPE_CHECKING:
    from valkyrie.dispatch import OperationContext

logger = logging.getLogger(__name__)

CATEGORY = "Minecraft"
PATCH_FORMAT = re.compile(r"^\d+\.\d+\.\d+\.\d+$")
DOWNLOAD_LINK = "https://www.minecraft.net/bedrockdedicatedserver/bin-linux/bedrock-server-{patch}.zip"
LINK_FILE = "/minecraft/bedrock_last_link.txt"


@dataclass(frozen=True)
class MaintenanceScript:
    """A maintenance script and what it reports to the channel."""

    command: str
    start_text: str
    done_text: str
    failure_text: str
    vocabulary: StatusVocabulary


BACKUP = MaintenanceScript(
    command="sudo /minecraft/backup.sh",
    start_text="Backing up Minecraft server...",
    done_text="Minecraft backup completed.",
    failure_text="Failed to backup Minecraft server.",
    vocabulary=StatusVocabulary.of(
        [
            "Stopping server...",
            "Server stopped.",
            "Creating backup...",
            "Compressing worlds...",
            "Backup complete!",
            "Backup failed!",
            "Starting server...",
            "Server started successfully.",
            "Server failed to start!",
        ]
    ),
)

UPDATE = MaintenanceScript(
    command="sudo /minecraft/update.sh",
    start_text="Updating Minecraft server...",
    done_text="Minecraft update completed.",
    failure_text="Failed to update Minecraft server.",
    vocabulary=StatusVocabulary.of(
        [
            "Checking for updates...",
            "Server is already up to date.",
            "Downloading update...",
            "Download failed!",
            "Stopping server...",
            "Server stopped.",
            "Backing up configuration...",
            "Installing update...",
            "Restoring configuration...",
            "Update complete!",
            "Update failed!",
            "Starting server...",
            "Server started successfully.",
            "Server failed to start!",
        ],
        success_terms=("complete", "success", "done", "up to date"),
    ),
)

RESTORE = MaintenanceScript(
    command="sudo /minecraft/restore.sh",
    start_text="Restoring Minecraft server worlds, settings, and permissions...",
    done_text="Minecraft restore completed.",
    failure_text="Failed to restore Minecraft server.",
    vocabulary=StatusVocabulary.of(
        [
            "Stopping server...",
            "Server stopped.",
            "Restoring worlds...",
            "Restoring settings...",
            "Restoring permissions...",
            "Restore complete!",
            "Restore failed!",
            "Starting server...",
            "Server started successfully.",
            "Server failed to start!",
        ]
    ),
)


async def status_minecraft(ctx: "OperationContext") -> None:
    await ctx.reply.send("Checking Minecraft server status...")
    try:
        # is-active exits non-zero for every state but "active".
        outcome = await ctx.transport.run_single_command(
            ctx.config.minecraft.target,
            "sudo systemctl is-active minecraft",
            ExecutionOptions(accept_non_zero_exit=True),
        )
    except Exception as e:
        await report_failure(ctx, logger, "Failed to check Minecraft server status.", e)
        return

    status = outcome.stdout.strip() or outcome.stderr.strip()
    await ctx.reply.send(f"Minecraft server status: {status}")


async def join_minecraft(ctx: "OperationContext") -> None:
    server = ctx.config.minecraft
    await send_direct_with_notice(
        ctx,
        "To join the Minecraft Bedrock server:\n"
        "1. Open Minecraft Bedrock Edition.\n"
        '2. Click "Play" > "Servers" > "Add Server".\n'
        "3. Enter the server details:\n"
        f"   - Server IP: {server.public_ip}\n"
        f"   - Port: {server.port}\n"
        f"   - Password: {server.password}",
    )


def _systemctl(action: str, start_text: str, done_text: str, failure_text: str):
    async def handler(ctx: "OperationContext") -> None:
        await ctx.reply.send(start_text)
        try:
            await ctx.transport.run_single_command(
                ctx.config.minecraft.target, f"sudo systemctl {action} minecraft"
            )
        except Exception as e:
            await report_failure(ctx, logger, failure_text, e)
            return
        await ctx.reply.send(done_text)

    handler.__name__ = f"{action}_minecraft"
    return handler


start_minecraft = _systemctl(
    "start",
    "Starting Minecraft server...",
    "Minecraft server started.",
    "Failed to start Minecraft server.",
)
stop_minecraft = _systemctl(
    "stop",
    "Stopping Minecraft server...",
    "Minecraft server stopped.",
    "Failed to stop Minecraft server.",
)
restart_minecraft = _systemctl(
    "restart",
    "Restarting Minecraft server...",
    "Minecraft server restarted.",
    "Failed to restart Minecraft server.",
)


async def run_maintenance(ctx: "OperationContext", script: MaintenanceScript) -> None:
    """Run *script* with a live status message.

    Pending lines are pruned after the cleanup delay, unless the session
    itself failed.
    """
    message = await ctx.reply.send(script.start_text)
    aggregator = ProgressAggregator(
        script.vocabulary,
        message,
        header=script.start_text,
        edit_interval=ctx.settings.status_edit_interval,
    )

    try:
        await run_with_progress(
            ctx.transport,
            ctx.config.minecraft.target,
            script.command,
            aggregator,
            failure_message=script.failure_text,
        )
    except CommandExecutionError as e:
        aggregator.schedule_cleanup(ctx.scheduler, ctx.settings.progress_cleanup_delay)
        await report_failure(ctx, logger, script.failure_text, e)
        return
    except Exception as e:
        await report_failure(ctx, logger, script.failure_text, e)
        return

    aggregator.schedule_cleanup(ctx.scheduler, ctx.settings.progress_cleanup_delay)
    await ctx.reply.send(script.done_text)


async def backup_minecraft(ctx: "OperationContext") -> None:
    await run_maintenance(ctx, BACKUP)


async def update_minecraft(ctx: "OperationContext") -> None:
    await run_maintenance(ctx, UPDATE)


async def restore_minecraft(ctx: "OperationContext") -> None:
    await run_maintenance(ctx, RESTORE)


async def set_minecraftpatch(ctx: "OperationContext") -> None:
    patch = ctx.request.argument("patch")
    if not PATCH_FORMAT.match(patch):
        await ctx.reply.send(
            "Invalid patch format. Please use the format `/set_minecraftpatch 1.21.113.1`.",
            ephemeral=True,
        )
        return

    link = DOWNLOAD_LINK.format(patch=patch)
    await ctx.reply.send("Updating Minecraft Bedrock download link...")
    try:
        await ctx.transport.run_single_command(
            ctx.config.minecraft.target,
            f'echo "{link}" | sudo tee {LINK_FILE} > /dev/null',
        )
    except Exception as e:
        await report_failure(
            ctx,
            logger,
            "Failed to update the download link due to insufficient permissions or other errors.",
            e,
        )
        return
    await ctx.reply.send(f"Minecraft Bedrock download link updated to version {patch}.")


OPERATIONS = [
    OperationDefinition(
        name="status_minecraft",
        description="Check if the Minecraft server is online.",
        handler=status_minecraft,
        minimum_role_tier=2,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="join_minecraft",
        description="Receive instructions on how to join the Minecraft server via DM.",
        handler=join_minecraft,
        minimum_role_tier=2,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="start_minecraft",
        description="Start the Minecraft server.",
        handler=start_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="stop_minecraft",
        description="Stop the Minecraft server.",
        handler=stop_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="restart_minecraft",
        description="Restart the Minecraft server.",
        handler=restart_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="backup_minecraft",
        description="Back up the Minecraft server.",
        handler=backup_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="update_minecraft",
        description="Update the Minecraft server.",
        handler=update_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="restore_minecraft",
        description="Restore the Minecraft server from backup.",
        handler=restore_minecraft,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="set_minecraftpatch",
        description="Update the Minecraft Bedrock download link to a specific patch version.",
        handler=set_minecraftpatch,
        minimum_role_tier=3,
        usage="set_minecraftpatch <patch>",
        category=CATEGORY,
        options=(
            OperationOption(
                name="patch",
                description="The Minecraft Bedrock patch version (e.g., 1.21.113.1).",
            ),
        ),
    ),
]
