"""Tests for Terraria operations."""

import asyncio
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from valkyrie.config import Settings
from valkyrie.models import CommandOutcome
from valkyrie.operations import terraria
from valkyrie.services.session import ConnectionError
from valkyrie.services.validation import CommandExecutionError

SCREEN_LOG = """\
: playing
Alice (203.0.113.10:53211)
Bob_2 (203.0.113.11:60000)
2 players connected.
"""


async def settle(scheduler: Any) -> None:
    while scheduler.pending:
        await asyncio.sleep(0)


@pytest.fixture
def online() -> Generator[AsyncMock, None, None]:
    with patch("valkyrie.operations.common.check_host_online", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def remote() -> MagicMock:
    mock = MagicMock()
    mock.run_command = AsyncMock(return_value=CommandOutcome(exit_code=0))
    return mock


@pytest.fixture
def with_remote(transport: MagicMock, remote: MagicMock) -> MagicMock:
    async def run(target: Any, task: Any) -> Any:
        return await task(remote)

    transport.with_session.side_effect = run
    return remote


def test_parse_players() -> None:
    assert terraria.parse_players(SCREEN_LOG) == ["Alice", "Bob_2"]
    assert terraria.parse_players("2 players connected.\n") == []


def test_parse_uptime() -> None:
    line = " 4242     1-02:03:04 ./TerrariaServer.bin.x86_64 -config ./serverconfig.txt\n"

    assert terraria.parse_uptime(line) == "1-02:03:04"
    assert terraria.parse_uptime("") is None


def test_console_command() -> None:
    assert terraria.console_command("playing") == 'screen -S terraria -p 0 -X stuff "playing\\n"'


class TestStatus:
    @pytest.mark.asyncio
    async def test_online(self, make_context: Any, reply: Any, online: AsyncMock) -> None:
        await terraria.status_terraria(make_context())

        online.assert_awaited_once_with("10.0.0.5", 7777, timeout=0.1)
        assert reply.texts == [
            "Checking Terraria server status...",
            "Terraria server is currently online and connectable!",
        ]

    @pytest.mark.asyncio
    async def test_offline(self, make_context: Any, reply: Any, online: AsyncMock) -> None:
        online.return_value = False

        await terraria.status_terraria(make_context())

        assert reply.texts[-1] == "Terraria server is currently offline."


class TestPlayerList:
    @pytest.mark.asyncio
    async def test_lists_players(
        self, make_context: Any, reply: Any, with_remote: MagicMock
    ) -> None:
        with_remote.run_command.side_effect = [
            CommandOutcome(exit_code=0),
            CommandOutcome(stdout=SCREEN_LOG, exit_code=0),
        ]

        await terraria.player_list(make_context())

        commands = [call.args[0] for call in with_remote.run_command.await_args_list]
        assert commands == [
            terraria.console_command("playing"),
            "cat 1449/Linux/screenlog.0",
        ]
        assert reply.texts[-1] == "Currently connected players:\nAlice\nBob_2"

    @pytest.mark.asyncio
    async def test_no_players(self, make_context: Any, reply: Any, with_remote: MagicMock) -> None:
        await terraria.player_list(make_context())

        assert reply.texts[-1] == "Currently connected players:\nNo players currently connected."

    @pytest.mark.asyncio
    async def test_failure(self, make_context: Any, reply: Any, transport: MagicMock) -> None:
        transport.with_session.side_effect = ConnectionError("terraria", OSError("down"))

        await terraria.player_list(make_context())

        assert reply.texts[-1] == "Failed to fetch player list."


class TestAnnounce:
    @pytest.mark.asyncio
    async def test_quotes_escaped(
        self, make_context: Any, reply: Any, transport: MagicMock
    ) -> None:
        ctx = make_context(arguments={"message": ' Server says "hi" '})

        await terraria.announce(ctx)

        command = transport.run_single_command.await_args.args[1]
        assert command == 'screen -S terraria -p 0 -X stuff "say Server says \\"hi\\"\\n"'
        assert reply.texts[-1] == 'Announcement delivered: Server says "hi"'

    @pytest.mark.asyncio
    async def test_failure_reply_is_generic(
        self, make_context: Any, reply: Any, transport: MagicMock
    ) -> None:
        transport.run_single_command.side_effect = CommandExecutionError(
            "screen", CommandOutcome(stderr="No screen session found.", exit_code=1)
        )

        await terraria.announce(make_context(arguments={"message": "hello"}))

        assert reply.texts[-1] == "Failed to send announcement to players."
        assert all("screen" not in text.lower() for text in reply.texts)

    @pytest.mark.asyncio
    async def test_empty_message(self, make_context: Any, reply: Any, transport: MagicMock) -> None:
        await terraria.announce(make_context(arguments={"message": "   "}))

        transport.run_single_command.assert_not_called()
        assert reply.sent[-1][1] is True


class TestJoin:
    @pytest.mark.asyncio
    async def test_sends_instructions(self, make_context: Any, reply: Any) -> None:
        await terraria.join_terraria(make_context())

        assert "Server IP: 203.0.113.27" in reply.direct[0]
        assert "Server Password: hunter2" in reply.direct[0]
        assert "Server Port: 7777" in reply.direct[0]
        assert reply.sent == [("I sent you a DM with the requested information.", True)]

    @pytest.mark.asyncio
    async def test_dm_refused(self, make_context: Any, reply: Any) -> None:
        reply.direct_ok = False

        await terraria.join_terraria(make_context())

        assert reply.sent[-1][0].startswith("I could not send you a DM.")
        assert reply.sent[-1][1] is True


class TestStart:
    @pytest.mark.asyncio
    async def test_starts_and_verifies(
        self,
        make_context: Any,
        reply: Any,
        transport: MagicMock,
        deps: Any,
        online: AsyncMock,
    ) -> None:
        await terraria.start_terraria(make_context())

        args = transport.run_single_command.await_args.args
        assert args[1] == terraria.START_COMMAND
        assert args[2].working_directory == "1449/Linux"

        await settle(deps.scheduler)
        assert reply.texts == [
            "Starting Terraria server...",
            "Terraria server is online and connectable!",
        ]

    @pytest.mark.asyncio
    async def test_failure_skips_verification(
        self, make_context: Any, reply: Any, transport: MagicMock, deps: Any
    ) -> None:
        transport.run_single_command.side_effect = ConnectionError("terraria", OSError("down"))

        await terraria.start_terraria(make_context())

        assert deps.scheduler.pending == 0
        assert reply.texts[-1] == "Failed to start Terraria server."


class TestStop:
    @pytest.mark.asyncio
    async def test_stop(self, make_context: Any, reply: Any, transport: MagicMock) -> None:
        await terraria.stop_terraria(make_context())

        assert transport.run_single_command.await_args.args[1] == "screen -S terraria -X quit"
        assert reply.texts == ["Stopping Terraria server...", "Terraria server stopped."]

    @pytest.mark.asyncio
    async def test_stop_with_warning(
        self, make_context: Any, reply: Any, transport: MagicMock, deps: Any
    ) -> None:
        await terraria.stop_terraria_warning(make_context())

        assert reply.texts[0].startswith("Warning: The server will stop in")
        transport.run_single_command.assert_not_called()

        await settle(deps.scheduler)

        transport.run_single_command.assert_awaited_once()
        assert reply.texts[1:] == ["Stopping Terraria server now...", "Terraria server stopped."]

    def test_describe_delay(self) -> None:
        """Test delays read as minutes, seconds, or a moment."""
        assert terraria._describe_delay(60) == "1 minute"
        assert terraria._describe_delay(120) == "2 minutes"
        assert terraria._describe_delay(45) == "45 seconds"
        assert terraria._describe_delay(1) == "1 second"
        assert terraria._describe_delay(0) == "a moment"

    def test_description_follows_configured_delay(self) -> None:
        """Test the warned stop description quotes the configured delay."""
        catalog = {d.name: d for d in terraria.operations(Settings(stop_warning_delay=300))}

        assert catalog["stop_terraria_warning"].description == (
            "Warn players and stop the Terraria server after 5 minutes."
        )
        assert catalog["stop_terraria"].description == "Stop the Terraria server immediately."

    @pytest.mark.asyncio
    async def test_warning_with_no_delay(
        self, make_context: Any, reply: Any, transport: MagicMock, deps: Any
    ) -> None:
        """Test a zero delay warns without claiming zero minutes."""
        await terraria.stop_terraria_warning(make_context())

        assert reply.texts[0] == (
            "Warning: The server will stop in a moment. Please save your progress."
        )
        await settle(deps.scheduler)


class TestRestart:
    @pytest.mark.asyncio
    async def test_quit_failure_tolerated(
        self,
        make_context: Any,
        reply: Any,
        with_remote: MagicMock,
        deps: Any,
        online: AsyncMock,
    ) -> None:
        await terraria.restart_terraria(make_context())

        quit_call, start_call = with_remote.run_command.await_args_list
        assert quit_call.args[0] == terraria.QUIT_COMMAND
        assert quit_call.args[1].accept_non_zero_exit is True
        assert start_call.args[1].working_directory == "1449/Linux"

        await settle(deps.scheduler)
        assert reply.texts[-1] == "Terraria server has been restarted and is online!"


class TestUptime:
    @pytest.mark.asyncio
    async def test_uptime(self, make_context: Any, reply: Any, transport: MagicMock) -> None:
        transport.run_single_command.return_value = CommandOutcome(
            stdout=" 4242  02:03:04 ./TerrariaServer.bin.x86_64\n", exit_code=0
        )

        await terraria.uptime_terraria(make_context())

        assert transport.run_single_command.await_args.args[2].accept_non_zero_exit
        assert reply.texts[-1] == "Server uptime: 02:03:04"

    @pytest.mark.asyncio
    async def test_not_running(self, make_context: Any, reply: Any, transport: MagicMock) -> None:
        transport.run_single_command.return_value = CommandOutcome(exit_code=1)

        await terraria.uptime_terraria(make_context())

        assert reply.texts[-1] == "Server uptime: Unable to determine uptime."
