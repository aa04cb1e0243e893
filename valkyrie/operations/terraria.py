"""Terraria server operations.

The server runs inside a detached ``screen`` session named ``terraria``;
console commands are typed into it with ``screen -X stuff``.
"""

import asyncio
import logging
import re
from dataclasses import replace
from typing import TYPE_CHECKING

from valkyrie.config import Settings
from valkyrie.models import ExecutionOptions, OperationDefinition, OperationOption
from valkyrie.operations.common import (
    is_server_online,
    report_failure,
    send_direct_with_notice,
)
from valkyrie.services.session import RemoteSession
from valkyrie.utils.shell import escape_double_quotes

if TYPE_CHECKING:
    from valkyrie.dispatch import OperationContext

logger = logging.getLogger(__name__)

CATEGORY = "Terraria"
SERVER_DIRECTORY = "1449/Linux"
SCREEN_LOG = f"{SERVER_DIRECTORY}/screenlog.0"
START_COMMAND = (
    "screen -L -Logfile screenlog.0 -dmS terraria "
    "./TerrariaServer.bin.x86_64 -config ./serverconfig.txt"
)
QUIT_COMMAND = "screen -S terraria -X quit"
UPTIME_COMMAND = "ps -eo pid,etime,cmd | grep TerrariaServer | grep -v grep"

PLAYER_LINE = re.compile(r"\w+ \(.*\)")


def console_command(text: str) -> str:
    """Build the shell command that types *text* into the server console."""
    return f'screen -S terraria -p 0 -X stuff "{text}\\n"'


def parse_players(screen_log: str) -> list[str]:
    """Extract player names from the output of the ``playing`` command."""
    return [
        line.split(" ")[0]
        for line in screen_log.split("\n")
        if PLAYER_LINE.search(line)
    ]


def parse_uptime(ps_output: str) -> str | None:
    """Return the elapsed-time column of the first ``ps`` line, if any."""
    fields = ps_output.split()
    if len(fields) < 2:
        return None
    return fields[1]


async def status_terraria(ctx: "OperationContext") -> None:
    await ctx.reply.send("Checking Terraria server status...")
    if await is_server_online(ctx, ctx.config.terraria):
        await ctx.reply.send("Terraria server is currently online and connectable!")
    else:
        await ctx.reply.send("Terraria server is currently offline.")


async def player_list(ctx: "OperationContext") -> None:
    await ctx.reply.send("Fetching list of currently connected players...")
    delay = ctx.settings.player_list_delay

    async def read_players(remote: RemoteSession) -> str:
        await remote.run_command(console_command("playing"))
        await asyncio.sleep(delay)
        outcome = await remote.run_command(f"cat {SCREEN_LOG}")
        return outcome.stdout

    try:
        screen_log = await ctx.transport.with_session(ctx.config.terraria.target, read_players)
    except Exception as e:
        await report_failure(ctx, logger, "Failed to fetch player list.", e)
        return

    players = parse_players(screen_log)
    listing = "\n".join(players) if players else "No players currently connected."
    await ctx.reply.send(f"Currently connected players:\n{listing}")


async def announce(ctx: "OperationContext") -> None:
    message = ctx.request.argument("message")
    if not message:
        await ctx.reply.send("Please provide a message to announce.", ephemeral=True)
        return

    await ctx.reply.send("Sending announcement to players...")
    try:
        await ctx.transport.run_single_command(
            ctx.config.terraria.target,
            console_command(f"say {escape_double_quotes(message)}"),
        )
    except Exception as e:
        await report_failure(ctx, logger, "Failed to send announcement to players.", e)
        return
    await ctx.reply.send(f"Announcement delivered: {message}")


async def join_terraria(ctx: "OperationContext") -> None:
    server = ctx.config.terraria
    await send_direct_with_notice(
        ctx,
        "Hello! Here are the instructions to join the Terraria server:\n\n"
        "1. Open Terraria.\n"
        "2. Click on Multiplayer.\n"
        "3. Click on Join via IP.\n"
        "4. Enter the server IP and port when prompted.\n\n"
        f"Server IP: {server.public_ip}\n"
        f"Server Password: {server.password}\n"
        f"Server Port: {server.port}",
    )


def _schedule_verification(ctx: "OperationContext", online_text: str, offline_text: str) -> None:
    """Probe the server after the configured delay and report the result."""

    async def verify() -> None:
        online = await is_server_online(ctx, ctx.config.terraria)
        await ctx.reply.send(online_text if online else offline_text)

    ctx.scheduler.call_later(ctx.settings.verify_delay, verify, name="terraria verification")


async def start_terraria(ctx: "OperationContext") -> None:
    await ctx.reply.send("Starting Terraria server...")
    try:
        await ctx.transport.run_single_command(
            ctx.config.terraria.target,
            START_COMMAND,
            ExecutionOptions(working_directory=SERVER_DIRECTORY),
        )
    except Exception as e:
        await report_failure(ctx, logger, "Failed to start Terraria server.", e)
        return

    _schedule_verification(
        ctx,
        "Terraria server is online and connectable!",
        "Failed to verify if Terraria server started.",
    )


async def _quit_server(ctx: "OperationContext") -> None:
    try:
        await ctx.transport.run_single_command(ctx.config.terraria.target, QUIT_COMMAND)
    except Exception as e:
        await report_failure(ctx, logger, "Failed to stop Terraria server.", e)
        return
    await ctx.reply.send("Terraria server stopped.")


async def stop_terraria(ctx: "OperationContext") -> None:
    await ctx.reply.send("Stopping Terraria server...")
    await _quit_server(ctx)


async def stop_terraria_warning(ctx: "OperationContext") -> None:
    delay = ctx.settings.stop_warning_delay
    await ctx.reply.send(
        f"Warning: The server will stop in {_describe_delay(delay)}. Please save your progress."
    )

    async def stop_now() -> None:
        await ctx.reply.send("Stopping Terraria server now...")
        await _quit_server(ctx)

    ctx.scheduler.call_later(delay, stop_now, name="terraria delayed stop")


def _describe_delay(seconds: int) -> str:
    if seconds <= 0:
        return "a moment"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    return "1 second" if seconds == 1 else f"{seconds} seconds"


async def restart_terraria(ctx: "OperationContext") -> None:
    await ctx.reply.send("Restarting Terraria server...")

    async def restart(remote: RemoteSession) -> None:
        # Quitting fails when no session is running; start anyway.
        await remote.run_command(QUIT_COMMAND, ExecutionOptions(accept_non_zero_exit=True))
        await remote.run_command(
            START_COMMAND, ExecutionOptions(working_directory=SERVER_DIRECTORY)
        )

    try:
        await ctx.transport.with_session(ctx.config.terraria.target, restart)
    except Exception as e:
        await report_failure(ctx, logger, "Failed to restart Terraria server.", e)
        return

    _schedule_verification(
        ctx,
        "Terraria server has been restarted and is online!",
        "Failed to verify if Terraria server restarted.",
    )


async def uptime_terraria(ctx: "OperationContext") -> None:
    await ctx.reply.send("Fetching server uptime...")
    try:
        # grep exits 1 when the server is not running.
        outcome = await ctx.transport.run_single_command(
            ctx.config.terraria.target,
            UPTIME_COMMAND,
            ExecutionOptions(accept_non_zero_exit=True),
        )
    except Exception as e:
        await report_failure(ctx, logger, "Failed to fetch server uptime.", e)
        return

    uptime = parse_uptime(outcome.stdout) or "Unable to determine uptime."
    await ctx.reply.send(f"Server uptime: {uptime}")


OPERATIONS = [
    OperationDefinition(
        name="status_terraria",
        description="Check if the Terraria server is online and connectable.",
        handler=status_terraria,
        minimum_role_tier=1,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="player_list",
        description="List the currently connected Terraria players.",
        handler=player_list,
        minimum_role_tier=2,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="announce",
        description="Send an announcement to players currently online in Terraria.",
        handler=announce,
        minimum_role_tier=2,
        usage="announce <message>",
        category=CATEGORY,
        options=(
            OperationOption(
                name="message",
                description="The announcement to send to online Terraria players.",
            ),
        ),
    ),
    OperationDefinition(
        name="join_terraria",
        description="Receive instructions on how to join the Terraria server via DM.",
        handler=join_terraria,
        minimum_role_tier=2,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="start_terraria",
        description="Start the Terraria server.",
        handler=start_terraria,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="stop_terraria",
        description="Stop the Terraria server immediately.",
        handler=stop_terraria,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="stop_terraria_warning",
        description="Warn players and stop the Terraria server after a delay.",
        handler=stop_terraria_warning,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="restart_terraria",
        description="Restart the Terraria server.",
        handler=restart_terraria,
        minimum_role_tier=3,
        cooldown_eligible=True,
        category=CATEGORY,
    ),
    OperationDefinition(
        name="uptime_terraria",
        description="Display Terraria server uptime.",
        handler=uptime_terraria,
        minimum_role_tier=3,
        category=CATEGORY,
    ),
]


def operations(settings: Settings) -> list[OperationDefinition]:
    """The Terraria catalog, with descriptions that quote configured delays."""
    warning = (
        "Warn players and stop the Terraria server after "
        f"{_describe_delay(settings.stop_warning_delay)}."
    )
    return [
        replace(d, description=warning) if d.name == "stop_terraria_warning" else d
        for d in OPERATIONS
    ]
