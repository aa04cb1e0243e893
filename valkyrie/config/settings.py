"""Application settings from environment variables.

Centralized parsing of the optional ``VALKYRIE_*`` tunables.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_ROLE_TIERS = ["Friends", "Crows", "Server Mgt"]


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all optional env vars.
    """

    environment: str = field(default="development")

    # Authorization
    role_tiers: list[str] = field(default_factory=lambda: list(DEFAULT_ROLE_TIERS))
    cooldown_seconds: int = field(default=30)

    # Timers (seconds)
    verify_delay: int = field(default=10)
    stop_warning_delay: int = field(default=60)
    player_list_delay: int = field(default=5)
    progress_cleanup_delay: int = field(default=60)
    status_edit_interval: float = field(default=1.0)
    probe_timeout: float = field(default=5.0)

    # SSH
    connect_timeout: int = field(default=15)
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=True)

    # Logging
    log_level: str = field(default="DEBUG")
    log_colors: bool = field(default=True)
    log_console_enabled: bool = field(default=True)
    log_console_level: str | None = field(default=None)
    log_file_level: str | None = field(default=None)
    log_file_enabled: bool = field(default=False)
    log_directory: str = field(default="logs")
    log_file_name: str = field(default="valkyrie.log")
    log_file_max_bytes: int = field(default=10 * 1024 * 1024)
    log_file_backup_count: int = field(default=5)

    # Health endpoint
    health_enabled: bool = field(default=False)
    health_host: str = field(default="0.0.0.0")
    health_port: int = field(default=8080)

    @property
    def is_production(self) -> bool:
        """Whether the process runs with production defaults."""
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Logging defaults follow the environment: production logs at INFO and
        writes a rotating file, everything else logs at DEBUG to the console.

        Returns:
            Settings instance with values from environment
        """
        environment = os.getenv("VALKYRIE_ENV", "development").strip().lower()
        production = environment == "production"

        return cls(
            environment=environment,
            role_tiers=cls._get_list("VALKYRIE_ROLE_TIERS", DEFAULT_ROLE_TIERS),
            cooldown_seconds=cls._get_int("VALKYRIE_COOLDOWN_SECONDS", 30),
            verify_delay=cls._get_int("VALKYRIE_VERIFY_DELAY", 10),
            stop_warning_delay=cls._get_int("VALKYRIE_STOP_WARNING_DELAY", 60),
            player_list_delay=cls._get_int("VALKYRIE_PLAYER_LIST_DELAY", 5),
            progress_cleanup_delay=cls._get_int("VALKYRIE_PROGRESS_CLEANUP_DELAY", 60),
            status_edit_interval=cls._get_float("VALKYRIE_STATUS_EDIT_INTERVAL", 1.0),
            probe_timeout=cls._get_float("VALKYRIE_PROBE_TIMEOUT", 5.0),
            connect_timeout=cls._get_int("VALKYRIE_CONNECT_TIMEOUT", 15),
            known_hosts=os.getenv("VALKYRIE_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool("VALKYRIE_STRICT_HOST_KEY_CHECKING", True),
            log_level=os.getenv("VALKYRIE_LOG_LEVEL", "INFO" if production else "DEBUG").upper(),
            log_colors=cls._get_bool("VALKYRIE_LOG_COLORS", True),
            log_console_enabled=cls._get_bool("VALKYRIE_LOG_CONSOLE_ENABLED", True),
            log_console_level=cls._get_level("VALKYRIE_LOG_CONSOLE_LEVEL"),
            log_file_level=cls._get_level("VALKYRIE_LOG_FILE_LEVEL"),
            log_file_enabled=cls._get_bool("VALKYRIE_LOG_FILE_ENABLED", production),
            log_directory=os.getenv("VALKYRIE_LOG_DIRECTORY", "logs"),
            log_file_name=os.getenv("VALKYRIE_LOG_FILE_NAME", "valkyrie.log"),
            log_file_max_bytes=cls._get_int("VALKYRIE_LOG_FILE_MAX_BYTES", 10 * 1024 * 1024),
            log_file_backup_count=cls._get_int("VALKYRIE_LOG_FILE_BACKUP_COUNT", 5),
            health_enabled=cls._get_bool("VALKYRIE_HEALTH_ENABLED", False),
            health_host=os.getenv("VALKYRIE_HEALTH_HOST", "0.0.0.0"),
            health_port=cls._get_int("VALKYRIE_HEALTH_PORT", 8080),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get float from environment, falling back to default when invalid."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_list(key: str, default: list[str]) -> list[str]:
        """Get a comma-separated list from environment.

        Returns:
            List of stripped, non-empty items (default if unset or empty)
        """
        value = os.getenv(key, "").strip()
        if not value:
            return list(default)
        return [item.strip() for item in value.split(",") if item.strip()]

    @staticmethod
    def _get_level(key: str) -> str | None:
        """Get an optional log level name; unset means inherit the base level."""
        value = os.getenv(key, "").strip().upper()
        return value or None
