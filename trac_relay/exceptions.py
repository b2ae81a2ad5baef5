"""Exceptions raised by trac-relay.

Errors fall into a few families that callers treat differently:

- ConfigurationError aborts startup.
- TracError and PolicyError concern a single ticket reference and are
  reported inline in the chat reply.
- RenderError and ChatPlatformError abort the handling of one message.
"""

from typing import Any


class RelayError(Exception):
    """Base exception for all trac-relay errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(RelayError):
    """Malformed or inconsistent configuration."""


# Trac client errors


class TracError(RelayError):
    """Base exception for Trac client failures."""


class AuthenticationError(TracError):
    """Logging into a Trac instance failed."""


class InvalidCredentialsError(AuthenticationError):
    """Trac rejected the username or password."""

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__("Invalid username or password", details)


class FormTokenNotFoundError(AuthenticationError):
    """The login page carried no __FORM_TOKEN field."""

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__("Cannot find form token in login page", details)


class UnexpectedStatusError(TracError):
    """Trac answered with an HTTP status the client does not handle."""

    def __init__(self, status_code: int, details: dict[str, Any] | None = None):
        self.status_code = status_code
        super().__init__(f"Unexpected HTTP status: {status_code}", details)


class TooManyRedirectsError(TracError):
    """A redirect chain exceeded the allowed number of hops."""


class TicketFetchError(TracError):
    """A ticket could not be retrieved."""


class MalformedTicketError(TracError):
    """The ticket CSV payload does not have the expected shape."""


# Channel policy errors


class PolicyError(RelayError):
    """A ticket reference cannot be served from this channel."""


class MissingInstanceError(PolicyError):
    """Bare ticket number in a channel without default Trac instance."""

    def __init__(self, ticket_number: str):
        self.ticket_number = ticket_number
        super().__init__(
            f"Missing Trac ID for ticket #{ticket_number}",
            {"ticket_number": ticket_number},
        )


class InstanceNotConfiguredError(PolicyError):
    """The Trac instance is not authorized for this channel."""

    def __init__(self, instance: str):
        self.instance = instance
        super().__init__(
            f"Trac ID {instance} not configured for this channel",
            {"instance": instance},
        )


class UnknownInstanceError(PolicyError):
    """No Trac client is registered under this name."""

    def __init__(self, instance: str):
        self.instance = instance
        super().__init__(f"Unknown Trac ID: {instance}", {"instance": instance})


class RenderError(RelayError):
    """The ticket template could not be evaluated."""


class ChatPlatformError(RelayError):
    """A chat platform request failed."""
