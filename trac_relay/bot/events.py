"""Consumption of the chat event stream."""

from __future__ import annotations

from collections.abc import Mapping

from ..chat.base import EventStream
from ..chat.models import POSTED_EVENT, ChatEvent, ChatPost
from ..exceptions import RelayError
from ..relay_logging import get_logger
from .router import MessageRouter

logger = get_logger()


class EventLoop:
    """Dispatches posted messages from watched channels to the router.

    Events are handled one at a time, in the order they arrive, so replies
    follow the order of the messages.

    Args:
        stream: Event stream to consume
        router: Router handling each relevant post
        channel_names: Watched channels, channel ID -> channel name
        bot_user_id: ID of the bot's own user, whose posts are ignored
    """

    def __init__(
        self,
        stream: EventStream,
        router: MessageRouter,
        channel_names: Mapping[str, str],
        bot_user_id: str,
    ):
        self.stream = stream
        self.router = router
        self.channel_names = channel_names
        self.bot_user_id = bot_user_id
        self.handled_count = 0
        self.failed_count = 0

    def _relevant_post(self, event: ChatEvent) -> ChatPost | None:
        if event.event != POSTED_EVENT:
            return None

        if event.channel_id not in self.channel_names:
            return None

        post = event.post()
        if post is None:
            logger.debug(f"Ignoring posted event without valid post on {event.channel_id}")
            return None

        if post.user_id == self.bot_user_id:
            return None

        return post

    def run(self) -> None:
        """Consume events until the stream ends or is closed."""
        for event in self.stream:
            post = self._relevant_post(event)
            if post is None:
                continue

            channel_name = self.channel_names[event.channel_id]

            try:
                self.router.handle(post, channel_name)
                self.handled_count += 1
            except RelayError as e:
                self.failed_count += 1
                logger.error(
                    f"Error while handling post {post.id} on channel "
                    f"{channel_name}: {e.message}"
                )
            except Exception:
                self.failed_count += 1
                logger.exception(
                    f"Unexpected error while handling post {post.id} on channel "
                    f"{channel_name}"
                )

        logger.info("Event stream closed")
