"""Protocol interfaces for the chat layer.

The core never talks to a chat platform directly. Operation handlers
reply through these interfaces, which the Discord adapter implements and
tests replace with mocks.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class StatusMessage(Protocol):
    """A message that was sent and can be edited afterwards."""

    async def edit(self, text: str) -> None:
        """Replace the message content."""
        ...


@runtime_checkable
class Reply(Protocol):
    """Reply surface of one inbound request."""

    async def send(self, text: str, ephemeral: bool = False) -> StatusMessage:
        """Send a message in reply to the request.

        Args:
            text: Message content
            ephemeral: Only the requesting user can see the message

        Returns:
            Handle that can edit the sent message
        """
        ...

    async def send_direct(self, text: str) -> bool:
        """Send a private message to the requesting user.

        Returns:
            True if delivered, False if the user does not accept them
        """
        ...
