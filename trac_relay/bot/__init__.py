"""Bot logic: reference detection, channel policy, routing and event handling."""

from .events import EventLoop
from .policy import ChannelPolicy
from .references import TICKET_RE, ReferenceMatch, extract_references
from .relay import Relay, build_registry
from .rendering import ERROR_MARKER, TicketTemplate, format_error
from .router import MessageRouter

__all__ = [
    "Relay",
    "build_registry",
    "EventLoop",
    "MessageRouter",
    "ChannelPolicy",
    "TicketTemplate",
    "ReferenceMatch",
    "extract_references",
    "format_error",
    "TICKET_RE",
    "ERROR_MARKER",
]
