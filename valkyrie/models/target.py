"""Remote target data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteTarget:
    """SSH endpoint of one managed server."""

    host: str
    username: str
    credential_reference: str
    display_name: str | None = None

    @property
    def label(self) -> str:
        """Human readable name used in log lines."""
        return self.display_name or f"{self.username}@{self.host}"

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are empty."""
        return [
            name
            for name in ("host", "username", "credential_reference")
            if not getattr(self, name)
        ]


@dataclass(frozen=True)
class GameServer:
    """A game server: where to SSH to and what players connect to."""

    name: str
    target: RemoteTarget
    public_ip: str
    port: int
    password: str
