"""Discord adapter.

Turns registry entries into guild application commands and turns
interactions into ``OperationRequest`` objects for the dispatcher. Nothing
here knows what an operation does.
"""

import logging
from collections.abc import Awaitable, Callable

import discord
from discord import app_commands

from valkyrie.dependencies import Dependencies
from valkyrie.dispatch import Dispatcher
from valkyrie.models import OperationDefinition, OperationRequest, Surface

logger = logging.getLogger(__name__)

GUILD_NOT_ALLOWED_MESSAGE = "This bot is not enabled in this server."


class DiscordStatusMessage:
    """Editable handle to a message sent in reply to an interaction."""

    def __init__(self, message: discord.InteractionMessage | discord.WebhookMessage) -> None:
        self.message = message

    async def edit(self, text: str) -> None:
        await self.message.edit(content=text)


class InteractionReply:
    """``Reply`` implementation backed by a Discord interaction.

    The first message uses the interaction response; every later one is a
    follow-up.
    """

    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction

    async def send(self, text: str, ephemeral: bool = False) -> DiscordStatusMessage:
        if not self.interaction.response.is_done():
            await self.interaction.response.send_message(text, ephemeral=ephemeral)
            message = await self.interaction.original_response()
        else:
            message = await self.interaction.followup.send(text, ephemeral=ephemeral, wait=True)
        return DiscordStatusMessage(message)

    async def send_direct(self, text: str) -> bool:
        try:
            await self.interaction.user.send(text)
        except discord.HTTPException as e:
            logger.warning("Failed to DM %s: %s", self.interaction.user, e)
            return False
        return True


def build_request(
    interaction: discord.Interaction,
    name: str,
    surface: Surface,
    arguments: dict[str, str] | None = None,
) -> OperationRequest:
    """Describe an interaction in chat-platform-neutral terms."""
    user = interaction.user
    roles = getattr(user, "roles", None) or []
    return OperationRequest(
        name=name,
        user_id=str(user.id),
        user_tag=str(user),
        role_names=frozenset(role.name for role in roles),
        surface=surface,
        guild_id=str(interaction.guild_id) if interaction.guild_id else None,
        arguments=arguments or {},
    )


class ValkyrieBot(discord.Client):
    """Discord client exposing the registered operations as app commands."""

    def __init__(self, deps: Dependencies) -> None:
        super().__init__(intents=discord.Intents.default())
        self.deps = deps
        self.dispatcher = Dispatcher(deps)
        self.tree = app_commands.CommandTree(self)
        self.allowed_guilds = list(deps.config.allowed_guilds)

    async def setup_hook(self) -> None:
        guilds = [discord.Object(id=guild_id) for guild_id in self.allowed_guilds]
        for definition in self.deps.registry.list_all():
            self.tree.add_command(self._build_command(definition), guilds=guilds)

        for guild in guilds:
            try:
                synced = await self.tree.sync(guild=guild)
            except discord.HTTPException as e:
                logger.error("Failed to register commands for guild %s: %s", guild.id, e)
                continue
            logger.info("Registered %d command(s) for guild %s", len(synced), guild.id)

    async def on_ready(self) -> None:
        logger.info("Bot connected as %s", self.user)
        for guild in self.guilds:
            if guild.id not in self.allowed_guilds:
                logger.warning("Connected to guild outside ALLOWED_GUILDS: %s (%s)", guild.name, guild.id)

    async def handle(
        self,
        interaction: discord.Interaction,
        definition: OperationDefinition,
        arguments: dict[str, str] | None = None,
    ) -> None:
        """Check the guild, then hand the interaction to the dispatcher."""
        reply = InteractionReply(interaction)
        if interaction.guild_id not in self.allowed_guilds:
            logger.info("Ignoring /%s from guild %s", definition.name, interaction.guild_id)
            await reply.send(GUILD_NOT_ALLOWED_MESSAGE, ephemeral=True)
            return

        request = build_request(interaction, definition.name, definition.surface, arguments)
        await self.dispatcher.dispatch(request, reply)

    def _build_command(
        self, definition: OperationDefinition
    ) -> app_commands.Command | app_commands.ContextMenu:
        if definition.surface is Surface.USER_MENU:
            return app_commands.ContextMenu(
                name=definition.name,
                callback=self._user_menu_callback(definition),
            )

        return app_commands.Command(
            name=definition.name,
            description=definition.description,
            callback=self._slash_callback(definition),
        )

    def _user_menu_callback(
        self, definition: OperationDefinition
    ) -> Callable[[discord.Interaction, discord.Member], Awaitable[None]]:
        async def callback(interaction: discord.Interaction, member: discord.Member) -> None:
            await self.handle(interaction, definition)

        return callback

    def _slash_callback(self, definition: OperationDefinition) -> Callable[..., Awaitable[None]]:
        if not definition.options:

            async def no_arguments(interaction: discord.Interaction) -> None:
                await self.handle(interaction, definition)

            return no_arguments

        if len(definition.options) > 1:
            raise ValueError(f"/{definition.name}: at most one option is supported")

        option = definition.options[0]

        @app_commands.rename(value=option.name)
        @app_commands.describe(value=option.description)
        async def one_argument(interaction: discord.Interaction, value: str) -> None:
            await self.handle(interaction, definition, {option.name: value})

        return one_argument
