"""Chat platform clients for trac-relay."""

from .base import ChatPlatform, EventStream
from .mattermost import MattermostClient, WebSocketEventStream, websocket_url
from .models import POSTED_EVENT, ChatEvent, ChatPost, ChatUser

__all__ = [
    # Interfaces
    "ChatPlatform",
    "EventStream",
    # Mattermost
    "MattermostClient",
    "WebSocketEventStream",
    "websocket_url",
    # Models
    "ChatEvent",
    "ChatPost",
    "ChatUser",
    "POSTED_EVENT",
]
