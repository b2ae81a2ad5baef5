"""Per-channel resolution and authorization of Trac instances."""

from __future__ import annotations

from ..config.models import ChannelConfig
from ..exceptions import (
    InstanceNotConfiguredError,
    MissingInstanceError,
    UnknownInstanceError,
)
from ..integrations.registry import TracRegistry


class ChannelPolicy:
    """Decides which Trac instance a ticket reference may query.

    Args:
        registry: Trac clients by instance name, looked up ignoring case
    """

    def __init__(self, registry: TracRegistry):
        self.registry = registry

    def resolve(
        self, channel_config: ChannelConfig, instance: str, ticket_number: str
    ) -> str:
        """Resolve the Trac instance for a reference made from a channel.

        Args:
            channel_config: Configuration of the channel the message came from
            instance: Trac ID typed in the message, empty for a bare number
            ticket_number: Ticket number, reported when no instance applies

        Returns:
            The instance name to query

        Raises:
            MissingInstanceError: Bare number and no default instance
            InstanceNotConfiguredError: Instance not allowed in this channel
            UnknownInstanceError: No client registered under that name
        """
        if not instance:
            if not channel_config.default_trac_instance:
                raise MissingInstanceError(ticket_number)
            instance = channel_config.default_trac_instance

        if not channel_config.authorizes(instance):
            raise InstanceNotConfiguredError(instance)

        # Only reachable with a registry built outside load_config()
        if instance not in self.registry:
            raise UnknownInstanceError(instance)

        return instance
