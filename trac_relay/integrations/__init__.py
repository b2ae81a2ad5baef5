"""Trac integration for trac-relay.

This package provides the Trac client (login, session expiry handling,
ticket retrieval), the CSV ticket decoder and the client registry.
"""

from .models import (
    SESSION_COOKIE,
    TICKET_URL_FIELD,
    AuthType,
    Credentials,
    SessionState,
    Ticket,
    TracSession,
)
from .registry import TracRegistry
from .ticket_csv import parse_ticket_csv
from .trac import TracClient

__all__ = [
    # Clients
    "TracClient",
    "TracRegistry",
    # Models
    "AuthType",
    "Credentials",
    "SessionState",
    "Ticket",
    "TracSession",
    "SESSION_COOKIE",
    "TICKET_URL_FIELD",
    # Utilities
    "parse_ticket_csv",
]
