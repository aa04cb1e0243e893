"""Tests for the role-grouped command reference."""

from typing import Any

import pytest

from valkyrie.models import Surface
from valkyrie.operations import register_operations
from valkyrie.operations.reference import render_help, server_help


@pytest.fixture
def registered(deps: Any) -> Any:
    register_operations(deps.registry, deps.config.settings)
    return deps


def test_grouped_by_role(registered: Any) -> None:
    text = render_help(registered.registry.list_all(), registered.role_tiers, 2)
    lines = text.split("\n")

    assert lines[0] == "Here are the available server commands by role:"
    assert lines.index("Friends:") < lines.index("Crows:") < lines.index("Server Mgt:")
    assert "• /announce <message> — Send an announcement to players currently online in Terraria." in lines
    assert "• /set_minecraftpatch <patch> — Update the Minecraft Bedrock download link to a specific patch version." in lines
    assert lines[-1] == (
        "Your highest recognized role is: Crows. "
        "You can use all commands listed for your role and any preceding roles."
    )


def test_sorted_within_role(registered: Any) -> None:
    text = render_help(registered.registry.list_all(), registered.role_tiers, 3)
    lines = text.split("\n")
    start = lines.index("Crows:") + 1
    end = lines.index("", start)
    names = [line.split()[1] for line in lines[start:end]]

    assert names == sorted(names)
    assert names[0] == "/announce"


def test_user_menu_entries_not_listed(registered: Any) -> None:
    text = render_help(registered.registry.list_all(), registered.role_tiers, 1)

    assert "Server Command Reference" not in text
    assert "• /server — " in text


@pytest.mark.asyncio
async def test_reply_is_ephemeral(registered: Any, make_context: Any, reply: Any) -> None:
    await server_help(make_context(role_tier=1))

    text, ephemeral = reply.sent[0]
    assert ephemeral is True
    assert "Your highest recognized role is: Friends." in text


def test_both_surfaces_registered(registered: Any) -> None:
    slash = registered.registry.get("server")
    menu = registered.registry.get("Server Command Reference", Surface.USER_MENU)

    assert slash.handler is menu.handler
    assert menu.minimum_role_tier == 1
