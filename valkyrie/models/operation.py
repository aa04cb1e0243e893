"""Operation data models."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from valkyrie.dispatch import OperationContext

OperationHandler = Callable[["OperationContext"], Awaitable[Any]]


class Surface(str, Enum):
    """Where an operation can be invoked from."""

    SLASH = "slash"
    USER_MENU = "user"


def operation_key(name: str, surface: Surface = Surface.SLASH) -> str:
    """Build the registry key of an operation."""
    return f"{Surface(surface).value}:{name}"


@dataclass(frozen=True)
class OperationOption:
    """A string argument accepted by a slash operation."""

    name: str
    description: str
    required: bool = True


@dataclass(frozen=True)
class OperationDefinition:
    """A registered, authorization-gated operation."""

    name: str
    description: str
    handler: OperationHandler
    minimum_role_tier: int = 0
    cooldown_eligible: bool = False
    surface: Surface = Surface.SLASH
    usage: str | None = None
    category: str = "General"
    options: tuple[OperationOption, ...] = ()

    def __post_init__(self) -> None:
        if self.minimum_role_tier < 0:
            raise ValueError(
                f"minimum_role_tier must be >= 0, got {self.minimum_role_tier}"
            )

    @property
    def key(self) -> str:
        """Registry key, unique per (surface, name)."""
        return operation_key(self.name, self.surface)

    @property
    def usage_line(self) -> str:
        """Usage as shown in help, e.g. ``/announce <message>``."""
        usage = self.usage or self.name
        suffix = usage.replace(self.name, "", 1).strip()
        return f"/{self.name} {suffix}" if suffix else f"/{self.name}"


@dataclass
class OperationRequest:
    """An inbound request from the chat layer."""

    name: str
    user_id: str
    user_tag: str = ""
    role_names: frozenset[str] = field(default_factory=frozenset)
    surface: Surface = Surface.SLASH
    guild_id: str | None = None
    arguments: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Registry key this request resolves to."""
        return operation_key(self.name, self.surface)

    def argument(self, name: str, default: str = "") -> str:
        """Return a stripped argument value."""
        return (self.arguments.get(name) or default).strip()
