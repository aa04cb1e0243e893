"""Registry of the operations users can invoke."""

import logging

from valkyrie.models import OperationDefinition, Surface, operation_key

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Maps operation keys to their definitions.

    Registering a key twice replaces the first definition.
    """

    def __init__(self) -> None:
        self._operations: dict[str, OperationDefinition] = {}

    def register(self, definition: OperationDefinition) -> None:
        """Register an operation under ``definition.key``.

        Args:
            definition: Operation to register
        """
        if definition.key in self._operations:
            logger.debug("Operation %s registered twice, overwriting", definition.key)
        self._operations[definition.key] = definition
        logger.debug("Registered operation: %s", definition.key)

    def resolve(self, key: str) -> OperationDefinition | None:
        """Look up an operation by key; unknown keys return None."""
        return self._operations.get(key)

    def get(self, name: str, surface: Surface = Surface.SLASH) -> OperationDefinition | None:
        """Look up an operation by name and surface."""
        return self.resolve(operation_key(name, surface))

    def list_all(self) -> list[OperationDefinition]:
        """All operations, sorted by surface then name."""
        return sorted(self._operations.values(), key=lambda d: (d.surface.value, d.name))

    def __len__(self) -> int:
        return len(self._operations)

    def __contains__(self, key: object) -> bool:
        return key in self._operations
