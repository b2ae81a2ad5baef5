"""Formatting of ticket replies.

Ticket templates use ``str.format`` placeholders naming ticket fields, eg.
``{_url} {summary} [{status}]``. Field sets vary between Trac instances, so a
template referring to a missing field fails at render time.
"""

from __future__ import annotations

from collections.abc import Mapping
from string import Formatter

from ..exceptions import ConfigurationError, RelayError, RenderError

ERROR_MARKER = ":x:"


class TicketTemplate:
    """A compiled ticket template."""

    def __init__(self, source: str):
        """Compile a template.

        Raises:
            ConfigurationError: If the template syntax is invalid
        """
        self.source = source
        self._formatter = Formatter()

        try:
            self.fields = [
                name
                for _, name, _, _ in self._formatter.parse(source)
                if name is not None
            ]
        except ValueError as e:
            raise ConfigurationError(
                f"Error while compiling ticket formatting template: {e}"
            ) from e

        for name in self.fields:
            if not name:
                raise ConfigurationError(
                    "Ticket formatting template has an unnamed {} placeholder"
                )

    def render(self, ticket: Mapping[str, str]) -> str:
        """Render a ticket.

        Raises:
            RenderError: If the template cannot be evaluated against the ticket
        """
        try:
            return self._formatter.vformat(self.source, (), ticket)
        except (KeyError, IndexError, AttributeError, TypeError, ValueError) as e:
            raise RenderError(
                f"Error while rendering ticket template: {e!r}",
                {"template": self.source},
            ) from e


def format_error(error: RelayError) -> str:
    """Format a per-reference failure as a reply line."""
    return f"{ERROR_MARKER} {error.message}"
