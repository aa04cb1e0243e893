"""Entry point for the Valkyrie bot."""

import asyncio
import logging
import sys

from valkyrie.bot import ValkyrieBot
from valkyrie.config import Config, ConfigurationError, Settings, load_environment
from valkyrie.dependencies import Dependencies
from valkyrie.logs import configure_logging
from valkyrie.server import create_health_server

logger = logging.getLogger("valkyrie")


async def run(config: Config) -> None:
    """Run the bot, and the health server when enabled, until stopped."""
    settings = config.settings
    deps = Dependencies.from_config(config)
    bot = ValkyrieBot(deps)
    logger.info(
        "Starting Valkyrie (env=%s, operations=%d, guilds=%d)",
        settings.environment,
        len(deps.registry),
        len(config.allowed_guilds),
    )

    health = None
    if settings.health_enabled:
        health = create_health_server(settings, bot.is_ready)
        logger.info(
            "Health endpoint on http://%s:%d/health",
            settings.health_host,
            settings.health_port,
        )

    try:
        async with bot:
            services = [bot.start(config.discord_token)]
            if health is not None:
                services.append(health.serve())
            await asyncio.gather(*services)
    finally:
        if health is not None:
            health.should_exit = True
        await deps.cleanup()
        logger.info("Valkyrie stopped")


def main() -> None:
    """Load configuration, configure logging, and run the bot."""
    loaded = load_environment()
    configure_logging(Settings.from_env())
    for path in loaded:
        logger.debug("Loaded environment file %s", path)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        for problem in e.problems:
            logger.error("Configuration error: %s", problem)
        sys.exit(1)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
