"""Abstract interfaces for the chat platform.

The relay only needs a few capabilities from the chat server: checking it is
alive, logging in, looking up the team and channels, posting replies and
listening to events. ChatPlatform and EventStream describe them so the bot
logic never depends on a concrete client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from .models import ChatEvent, ChatUser


class EventStream(ABC):
    """A pull-based stream of chat events.

    Iteration blocks until the next event and ends when the connection is
    closed, by the server or through close(). close() may be called from a
    thread other than the one iterating.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[ChatEvent]:
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the stream, unblocking the reader. Idempotent."""
        pass


class ChatPlatform(ABC):
    """Abstract base class for chat platform clients."""

    @abstractmethod
    def ping(self) -> dict[str, Any]:
        """Check the server is reachable.

        Returns:
            Server properties (at least ``version`` when known)
        """
        pass

    @abstractmethod
    def login(self, username: str, password: str) -> ChatUser:
        """Log in and return the bot's own user."""
        pass

    @abstractmethod
    def list_teams(self) -> list[dict[str, Any]]:
        """List the teams the bot belongs to."""
        pass

    @abstractmethod
    def set_team(self, team_id: str) -> None:
        """Select the team used by list_channels()."""
        pass

    @abstractmethod
    def list_channels(self) -> list[dict[str, Any]]:
        """List the channels of the selected team the bot is a member of."""
        pass

    @abstractmethod
    def create_post(self, channel_id: str, message: str) -> None:
        """Post a message in a channel."""
        pass

    @abstractmethod
    def connect_event_stream(self) -> EventStream:
        """Open the event stream."""
        pass
