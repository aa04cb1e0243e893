"""Application configuration.

Delegates to specialized components:
- load_environment: layered ``.env`` files
- Settings: optional ``VALKYRIE_*`` tunables
- Config.from_env: required bot and game server variables
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from valkyrie.config.settings import Settings
from valkyrie.models import GameServer, RemoteTarget

logger = logging.getLogger(__name__)

GAME_SERVERS = ("terraria", "minecraft")

REQUIRED_ENV_VARS = [
    "DISCORD_TOKEN",
    "ALLOWED_GUILDS",
    *(
        f"{server.upper()}_{suffix}"
        for server in GAME_SERVERS
        for suffix in (
            "GAME_SERVER_IP",
            "SSH_USER",
            "SSH_PRIVATE_KEY_PATH",
            "PUBLIC_IP",
            "PORT",
            "PASS",
        )
    ),
]

_NUMERIC_ID = re.compile(r"^\d+$")


class ConfigurationError(Exception):
    """Required configuration is missing or invalid."""

    def __init__(self, problems: list[str]):
        """Initialize configuration error.

        Args:
            problems: One human readable line per invalid setting
        """
        self.problems = problems
        super().__init__("; ".join(problems))


def load_environment(root: Path | str | None = None) -> list[Path]:
    """Load layered ``.env`` files into the process environment.

    Files are applied in order, later files overriding earlier ones:
    ``.env``, ``.env.<env>``, ``.env.local``, ``.env.<env>.local`` where
    ``<env>`` comes from ``VALKYRIE_ENV`` (default ``development``).

    Args:
        root: Directory holding the files (default: current directory)

    Returns:
        Paths of the files that were loaded
    """
    base = Path(root) if root is not None else Path.cwd()
    name = os.getenv("VALKYRIE_ENV", "development").strip().lower()

    loaded: list[Path] = []
    for filename in (".env", f".env.{name}", ".env.local", f".env.{name}.local"):
        path = base / filename
        if path.is_file():
            load_dotenv(path, override=True)
            loaded.append(path)

    if loaded:
        logger.debug("Loaded environment files: %s", ", ".join(str(p) for p in loaded))
    return loaded


@dataclass
class Config:
    """Application configuration.

    Aggregates the Discord credentials, the managed game servers, and the
    optional settings.
    """

    settings: Settings
    discord_token: str
    allowed_guilds: list[int]
    terraria: GameServer
    minecraft: GameServer

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance

        Raises:
            ConfigurationError: Listing every missing or malformed variable
        """
        missing = [key for key in REQUIRED_ENV_VARS if not os.getenv(key, "").strip()]
        if missing:
            raise ConfigurationError(
                [f"Missing required environment variables: {', '.join(missing)}"]
            )

        problems: list[str] = []
        allowed_guilds = cls._parse_guilds(os.environ["ALLOWED_GUILDS"], problems)
        servers = {name: cls._game_server(name, problems) for name in GAME_SERVERS}

        if problems:
            raise ConfigurationError(problems)

        settings = Settings.from_env()
        return cls(
            settings=settings,
            discord_token=os.environ["DISCORD_TOKEN"].strip(),
            allowed_guilds=allowed_guilds,
            terraria=servers["terraria"],
            minecraft=servers["minecraft"],
        )

    @staticmethod
    def _parse_guilds(value: str, problems: list[str]) -> list[int]:
        """Parse comma-separated guild IDs, recording malformed entries."""
        guild_ids = [part.strip() for part in value.split(",") if part.strip()]
        if not guild_ids:
            problems.append("ALLOWED_GUILDS must specify at least one guild ID.")
            return []

        parsed = []
        for guild_id in guild_ids:
            if not _NUMERIC_ID.match(guild_id):
                problems.append(f"Invalid guild ID in ALLOWED_GUILDS: {guild_id}")
                continue
            parsed.append(int(guild_id))
        return parsed

    @staticmethod
    def _game_server(name: str, problems: list[str]) -> GameServer | None:
        """Build one game server from its ``<NAME>_*`` variables."""
        prefix = name.upper()

        def env(suffix: str) -> str:
            return os.environ[f"{prefix}_{suffix}"].strip()

        port_value = env("PORT")
        try:
            port = int(port_value)
        except ValueError:
            problems.append(f"{prefix}_PORT must be a valid number.")
            return None

        target = RemoteTarget(
            host=env("GAME_SERVER_IP"),
            username=env("SSH_USER"),
            credential_reference=env("SSH_PRIVATE_KEY_PATH"),
            display_name=name,
        )
        return GameServer(
            name=name,
            target=target,
            public_ip=env("PUBLIC_IP"),
            port=port,
            password=env("PASS"),
        )

    # Delegate to settings for convenience
    @property
    def role_tiers(self) -> list[str]:
        """Role names ordered from lowest to highest privilege."""
        return self.settings.role_tiers

    @property
    def cooldown_seconds(self) -> int:
        """Cooldown window for sensitive operations."""
        return self.settings.cooldown_seconds

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.settings.known_hosts
