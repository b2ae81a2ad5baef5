"""Data models for the Trac integration.

This module defines the authentication mechanisms, the per-client session
state and the generic ticket representation returned by TracClient.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from requests.cookies import RequestsCookieJar

# Field injected into every ticket, holding the human-readable ticket page
TICKET_URL_FIELD = "_url"

# Cookie Trac uses to carry an authenticated session
SESSION_COOKIE = "trac_auth"


class AuthType(Enum):
    """Login mechanisms supported by Trac."""

    BASIC = "basic"  # HTTP Basic Auth on /login
    FORM = "form"  # Trac login form with __FORM_TOKEN

    @classmethod
    def parse(cls, value: str) -> AuthType:
        """Parse an auth type name, case-insensitively.

        Raises:
            ValueError: If the name is not a known auth type
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid auth type: {value}") from None


class SessionState(Enum):
    """Lifecycle of a Trac session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class Credentials:
    """Username and password used to (re-)authenticate."""

    username: str
    password: str = field(repr=False)


@dataclass
class TracSession:
    """Session state owned by a single TracClient.

    Attributes:
        cookies: Cookie store holding the trac_auth session cookie
        credentials: Last credentials that authenticated successfully
        state: Current lifecycle state
        ever_authenticated: Whether any authentication ever succeeded
    """

    cookies: RequestsCookieJar
    credentials: Credentials | None = None
    state: SessionState = SessionState.UNAUTHENTICATED
    ever_authenticated: bool = False

    @property
    def is_authenticated(self) -> bool:
        """Check if the last authentication attempt succeeded."""
        return self.state == SessionState.AUTHENTICATED

    def reset(self) -> None:
        """Drop cookies before a new login so stale sessions never leak in."""
        self.cookies.clear()

    def mark_authenticated(self, credentials: Credentials) -> None:
        """Record a successful login."""
        self.credentials = credentials
        self.state = SessionState.AUTHENTICATED
        self.ever_authenticated = True

    def mark_failed(self) -> None:
        """Record a failed login."""
        self.state = SessionState.FAILED


class Ticket(dict):
    """A Trac ticket as a mapping of field name to value.

    Tickets can come in any shape depending on the Trac configuration, so
    the only guaranteed key is ``_url``, the URL of the ticket page.
    """

    @property
    def url(self) -> str:
        """URL of the ticket page."""
        return self.get(TICKET_URL_FIELD, "")
