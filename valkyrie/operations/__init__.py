"""Built-in bot operations."""

from valkyrie.config import Settings
from valkyrie.operations import minecraft, reference, terraria
from valkyrie.services.registry import CommandRegistry

__all__ = ["register_operations"]


def register_operations(registry: CommandRegistry, settings: Settings | None = None) -> None:
    """Register every built-in operation with *registry*."""
    settings = settings or Settings()
    definitions = [
        *terraria.operations(settings),
        *minecraft.OPERATIONS,
        *reference.OPERATIONS,
    ]
    for definition in definitions:
        registry.register(definition)
