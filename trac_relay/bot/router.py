"""Handling of a single chat message.

For every ticket reference in the message, the router resolves the Trac
instance allowed for the channel, fetches the ticket and renders it. Failed
references become error lines; the reply is posted once, with one line per
reference in the order they appear in the message.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..chat.base import ChatPlatform
from ..chat.models import ChatPost
from ..config.models import ChannelConfig
from ..exceptions import ChatPlatformError, PolicyError, TracError
from ..integrations.models import Ticket
from ..integrations.registry import TracRegistry
from ..relay_logging import get_logger
from .policy import ChannelPolicy
from .references import ReferenceMatch, extract_references
from .rendering import TicketTemplate, format_error

logger = get_logger()


class MessageRouter:
    """Turns an incoming post into at most one reply post."""

    def __init__(
        self,
        policy: ChannelPolicy,
        registry: TracRegistry,
        template: TicketTemplate,
        platform: ChatPlatform,
        channel_configs: Mapping[str, ChannelConfig],
        bot_user_id: str,
    ):
        self.policy = policy
        self.registry = registry
        self.template = template
        self.platform = platform
        self.channel_configs = channel_configs
        self.bot_user_id = bot_user_id

    def _fetch(self, channel_config: ChannelConfig, match: ReferenceMatch) -> Ticket:
        instance = self.policy.resolve(channel_config, match.instance, match.number)
        client = self.registry[instance]

        try:
            return client.get_ticket(match.number)
        except TracError as e:
            raise TracError(
                f"Error while retrieving ticket {instance}#{match.number}: "
                f"{e.message}",
                {"instance": instance, "ticket": match.number},
            ) from e

    def handle(self, post: ChatPost, channel_name: str) -> str | None:
        """Process one message and post the reply, if any.

        Args:
            post: The incoming post
            channel_name: Name of the channel the post belongs to

        Returns:
            The reply text, or None when the message needs no reply

        Raises:
            RenderError: If the ticket template fails (nothing is posted)
            ChatPlatformError: If the reply cannot be posted
        """
        if post.user_id == self.bot_user_id:
            return None

        matches = extract_references(post.message)
        if not matches:
            return None

        channel_config = self.channel_configs[channel_name]
        lines: list[str] = []

        for match in matches:
            try:
                ticket = self._fetch(channel_config, match)
            except (PolicyError, TracError) as e:
                logger.warning(
                    f"Ticket request {match.label} from channel {channel_name} "
                    f"failed: {e.message}"
                )
                lines.append(format_error(e))
                continue

            lines.append(self.template.render(ticket))

        reply = "\n".join(lines)

        try:
            self.platform.create_post(post.channel_id, reply)
        except ChatPlatformError as e:
            raise ChatPlatformError(
                f"Error while sending message on channel {channel_name}: {e.message}",
                e.details,
            ) from e

        logger.info(
            f"Replied to post {post.id} on channel {channel_name} "
            f"with {len(matches)} ticket reference(s)"
        )
        return reply
