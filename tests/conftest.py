"""Shared fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from valkyrie.config import Config, Settings
from valkyrie.dependencies import Dependencies
from valkyrie.dispatch import OperationContext
from valkyrie.models import GameServer, OperationRequest, RemoteTarget
from valkyrie.services.authorization import AuthorizationGate, RoleTiers
from valkyrie.services.registry import CommandRegistry
from valkyrie.services.scheduler import Scheduler


class FakeStatusMessage:
    """Records every edit applied to a sent message."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.edits: list[str] = []

    async def edit(self, text: str) -> None:
        self.text = text
        self.edits.append(text)


class FakeReply:
    """Reply that records what a handler sent."""

    def __init__(self, direct_ok: bool = True) -> None:
        self.sent: list[tuple[str, bool]] = []
        self.messages: list[FakeStatusMessage] = []
        self.direct: list[str] = []
        self.direct_ok = direct_ok

    async def send(self, text: str, ephemeral: bool = False) -> FakeStatusMessage:
        self.sent.append((text, ephemeral))
        message = FakeStatusMessage(text)
        self.messages.append(message)
        return message

    async def send_direct(self, text: str) -> bool:
        self.direct.append(text)
        return self.direct_ok

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.sent]


def make_server(name: str, host: str, port: int) -> GameServer:
    return GameServer(
        name=name,
        target=RemoteTarget(
            host=host,
            username="steam",
            credential_reference="/keys/id_ed25519",
            display_name=name,
        ),
        public_ip=f"203.0.113.{port % 250}",
        port=port,
        password="hunter2",
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with delays short enough for tests."""
    return Settings(
        verify_delay=0,
        stop_warning_delay=0,
        player_list_delay=0,
        progress_cleanup_delay=0,
        status_edit_interval=0.0,
        probe_timeout=0.1,
    )


@pytest.fixture
def config(settings: Settings) -> Config:
    return Config(
        settings=settings,
        discord_token="token",
        allowed_guilds=[1234],
        terraria=make_server("terraria", "10.0.0.5", 7777),
        minecraft=make_server("minecraft", "10.0.0.6", 19132),
    )


@pytest.fixture
def transport() -> MagicMock:
    """Session transport whose methods are AsyncMocks."""
    mock = MagicMock()
    mock.run_single_command = AsyncMock()
    mock.with_session = AsyncMock()
    return mock


@pytest.fixture
def deps(config: Config, transport: MagicMock) -> Dependencies:
    return Dependencies(
        config=config,
        transport=transport,
        registry=CommandRegistry(),
        role_tiers=RoleTiers(config.role_tiers),
        gate=AuthorizationGate(cooldown_seconds=30),
        scheduler=Scheduler(),
    )


@pytest.fixture
def reply() -> FakeReply:
    return FakeReply()


@pytest.fixture
def make_context(deps: Dependencies, reply: FakeReply) -> Any:
    """Build an OperationContext for calling a handler directly."""

    def factory(
        name: str = "test",
        role_tier: int = 3,
        arguments: dict[str, str] | None = None,
    ) -> OperationContext:
        request = OperationRequest(
            name=name,
            user_id="42",
            user_tag="player#0001",
            arguments=arguments or {},
        )
        return OperationContext(
            request=request,
            reply=reply,
            operation=MagicMock(name=name),
            role_tier=role_tier,
            deps=deps,
        )

    return factory
