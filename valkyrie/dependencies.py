"""Dependency injection container for Valkyrie.

Everything a request needs is constructed once at startup and passed down
explicitly; there is no module-level state.
"""

from dataclasses import dataclass

from valkyrie.config import Config
from valkyrie.operations import register_operations
from valkyrie.services.authorization import AuthorizationGate, RoleTiers
from valkyrie.services.registry import CommandRegistry
from valkyrie.services.scheduler import Scheduler
from valkyrie.services.session import SessionTransport


@dataclass
class Dependencies:
    """Container for Valkyrie dependencies.

    Example:
        deps = Dependencies.from_config(Config.from_env())
        dispatcher = Dispatcher(deps)
    """

    config: Config
    transport: SessionTransport
    registry: CommandRegistry
    role_tiers: RoleTiers
    gate: AuthorizationGate
    scheduler: Scheduler

    @classmethod
    def from_config(cls, config: Config, register: bool = True) -> "Dependencies":
        """Create dependencies from configuration.

        Args:
            config: Loaded configuration
            register: Register the built-in operations

        Returns:
            Initialized Dependencies instance
        """
        settings = config.settings
        transport = SessionTransport(
            known_hosts=config.known_hosts_path,
            strict_host_key_checking=settings.strict_host_key_checking,
            connect_timeout=settings.connect_timeout,
        )
        registry = CommandRegistry()
        if register:
            register_operations(registry, settings)

        return cls(
            config=config,
            transport=transport,
            registry=registry,
            role_tiers=RoleTiers(config.role_tiers),
            gate=AuthorizationGate(cooldown_seconds=config.cooldown_seconds),
            scheduler=Scheduler(),
        )

    async def cleanup(self) -> None:
        """Cancel pending timers."""
        await self.scheduler.shutdown()
