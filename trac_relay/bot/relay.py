"""The relay: startup sequence and lifetime of the bot.

Relay.from_config() sets up and authenticates every Trac client, so broken
credentials stop the process before it joins the chat. run() then logs into
the chat server, resolves the team and channels and consumes the event
stream until it closes.
"""

from __future__ import annotations

import threading

from ..chat.base import ChatPlatform, EventStream
from ..chat.mattermost import MattermostClient
from ..chat.models import ChatUser
from ..config.models import RelayConfig
from ..exceptions import AuthenticationError, ChatPlatformError, TracError
from ..integrations.registry import TracRegistry
from ..integrations.trac import TracClient
from ..relay_logging import get_logger
from .events import EventLoop
from .policy import ChannelPolicy
from .rendering import TicketTemplate
from .router import MessageRouter

logger = get_logger()


def build_registry(config: RelayConfig, debug: bool = False) -> TracRegistry:
    """Create and authenticate one TracClient per configured instance.

    Raises:
        ConfigurationError: If two instance names differ only by case
        AuthenticationError: If an instance rejects its credentials
    """
    clients: dict[str, TracClient] = {}

    for name, trac_config in config.tracs.items():
        logger.info(
            f"Setting up Trac client {name} with auth {trac_config.auth_type.value}"
        )

        client = TracClient(
            name,
            trac_config.url,
            trac_config.auth_type,
            insecure=trac_config.insecure,
            debug=debug,
        )

        try:
            client.authenticate(trac_config.username, trac_config.password)
        except TracError as e:
            raise AuthenticationError(
                f"Authentication error for Trac {name}: {e.message}", e.details
            ) from e

        clients[name] = client

    return TracRegistry(clients)


class Relay:
    """Mattermost bot answering Trac ticket references."""

    def __init__(
        self,
        config: RelayConfig,
        platform: ChatPlatform,
        registry: TracRegistry,
        template: TicketTemplate,
    ):
        self.config = config
        self.platform = platform
        self.registry = registry
        self.template = template
        self.policy = ChannelPolicy(registry)

        self.user: ChatUser | None = None
        # Channel ID -> channel name, for the configured channels only
        self.channel_names: dict[str, str] = {}

        self._lock = threading.Lock()
        self._stream: EventStream | None = None
        self._closing = False

    @classmethod
    def from_config(cls, config: RelayConfig, debug: bool = False) -> Relay:
        """Build a relay talking to the Mattermost server of the configuration.

        Raises:
            ConfigurationError: If the ticket template is invalid
            AuthenticationError: If a Trac instance rejects its credentials
        """
        template = TicketTemplate(config.ticket_template)
        registry = build_registry(config, debug=debug)
        return cls(config, MattermostClient(config.server), registry, template)

    def _select_team(self) -> None:
        for team in self.platform.list_teams():
            if team.get("name") == self.config.team:
                self.platform.set_team(team["id"])
                return

        raise ChatPlatformError(f"Found no team named {self.config.team}")

    def _load_channels(self) -> None:
        for channel in self.platform.list_channels():
            if channel.get("name") in self.config.channels:
                self.channel_names[channel["id"]] = channel["name"]

        known = set(self.channel_names.values())
        for name in self.config.channels:
            if name not in known:
                raise ChatPlatformError(f"No channel {name} on server")

    def run(self) -> None:
        """Connect to the chat server and handle messages until closed.

        Raises:
            ChatPlatformError: If any startup step fails
        """
        props = self.platform.ping()
        logger.info(f"Mattermost server version {props.get('version', 'unknown')}")

        self.user = self.platform.login(self.config.username, self.config.password)
        logger.info(f"Logged in as {self.config.username}")

        self._select_team()
        self._load_channels()
        logger.info(f"Watching channels: {', '.join(sorted(self.channel_names.values()))}")

        router = MessageRouter(
            policy=self.policy,
            registry=self.registry,
            template=self.template,
            platform=self.platform,
            channel_configs=self.config.channels,
            bot_user_id=self.user.id,
        )

        stream = self.platform.connect_event_stream()
        with self._lock:
            self._stream = stream
            closing = self._closing
        if closing:
            stream.close()

        EventLoop(stream, router, self.channel_names, self.user.id).run()

    def close(self) -> None:
        """Close the event stream, making run() return. Safe from any thread."""
        with self._lock:
            self._closing = True
            stream = self._stream

        if stream is not None:
            stream.close()
