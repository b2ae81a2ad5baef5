"""Data models for the chat platform.

Only the handful of fields the relay reads are modelled.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

# Event type broadcast when a message is posted
POSTED_EVENT = "posted"


@dataclass(frozen=True)
class ChatUser:
    """The account the relay is logged in as."""

    id: str
    username: str


@dataclass(frozen=True)
class ChatPost:
    """A message posted in a channel."""

    id: str
    channel_id: str
    user_id: str
    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatPost:
        return cls(
            id=data.get("id", ""),
            channel_id=data.get("channel_id", ""),
            user_id=data.get("user_id", ""),
            message=data.get("message", "") or "",
        )


@dataclass(frozen=True)
class ChatEvent:
    """An event received on the chat event stream."""

    event: str
    channel_id: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ChatEvent:
        """Build an event from a decoded websocket frame."""
        broadcast = payload.get("broadcast") or {}
        return cls(
            event=payload.get("event", ""),
            channel_id=broadcast.get("channel_id", ""),
            data=payload.get("data") or {},
        )

    def post(self) -> ChatPost | None:
        """Decode the post carried by a ``posted`` event.

        Mattermost sends the post as a JSON document embedded in a string.

        Returns:
            The post, or None if the event carries no valid post
        """
        raw = self.data.get("post")
        if not raw:
            return None

        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError:
            return None

        if not isinstance(data, dict):
            return None

        return ChatPost.from_dict(data)
