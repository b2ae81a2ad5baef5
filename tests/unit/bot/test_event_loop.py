"""Tests for the event loop."""

from unittest.mock import MagicMock

import pytest
from conftest import FakeEventStream, posted_event

from trac_relay.bot.events import EventLoop
from trac_relay.chat.models import ChatEvent
from trac_relay.exceptions import RenderError, TicketFetchError

CHANNEL_NAMES = {"chan-1": "town-square"}


@pytest.fixture
def router() -> MagicMock:
    return MagicMock()


def run_loop(router, events) -> EventLoop:
    loop = EventLoop(FakeEventStream(events), router, CHANNEL_NAMES, "bot-user")
    loop.run()
    return loop


class TestEventFiltering:
    """Test which events reach the router."""

    def test_posted_in_watched_channel(self, router):
        """Test a post in a watched channel is dispatched."""
        run_loop(router, [posted_event("chan-1", "see #33")])

        router.handle.assert_called_once()
        post, channel_name = router.handle.call_args.args
        assert post.message == "see #33"
        assert channel_name == "town-square"

    def test_other_channel_ignored(self, router):
        """Test posts in other channels are ignored."""
        run_loop(router, [posted_event("chan-9", "see #33")])

        router.handle.assert_not_called()

    def test_other_event_types_ignored(self, router):
        """Test non-posted events are ignored."""
        events = [
            ChatEvent(event="typing", channel_id="chan-1", data={}),
            ChatEvent(event="hello", data={"server_version": "9.0"}),
        ]

        run_loop(router, events)

        router.handle.assert_not_called()

    def test_own_posts_ignored(self, router):
        """Test the bot's replies are not processed again."""
        run_loop(router, [posted_event("chan-1", "#33", user_id="bot-user")])

        router.handle.assert_not_called()

    def test_invalid_post_ignored(self, router):
        """Test posted events with undecodable posts are skipped."""
        events = [
            ChatEvent(event="posted", channel_id="chan-1", data={"post": "{not json"}),
            ChatEvent(event="posted", channel_id="chan-1", data={}),
        ]

        run_loop(router, events)

        router.handle.assert_not_called()


class TestEventLoopErrors:
    """Test error handling while consuming events."""

    def test_errors_do_not_stop_loop(self, router):
        """Test a failing message does not end the stream."""
        router.handle.side_effect = [RenderError("bad template"), "reply"]
        events = [
            posted_event("chan-1", "#1", post_id="p1"),
            posted_event("chan-1", "#2", post_id="p2"),
        ]

        loop = run_loop(router, events)

        assert router.handle.call_count == 2
        assert loop.failed_count == 1
        assert loop.handled_count == 1

    def test_order_preserved(self, router):
        """Test events are handled in arrival order."""
        events = [posted_event("chan-1", f"#{i}", post_id=f"p{i}") for i in range(5)]

        run_loop(router, events)

        handled = [call.args[0].id for call in router.handle.call_args_list]
        assert handled == ["p0", "p1", "p2", "p3", "p4"]

    def test_unexpected_relay_error(self, router):
        """Test any relay error is contained."""
        router.handle.side_effect = TicketFetchError("boom")

        loop = run_loop(router, [posted_event("chan-1", "#1")])

        assert loop.failed_count == 1

    def test_unexpected_exception_contained(self, router):
        """Test an exception outside the relay errors only fails its message."""
        router.handle.side_effect = [TypeError("string indices must be integers"), "reply"]
        events = [
            posted_event("chan-1", "#1", post_id="p1"),
            posted_event("chan-1", "#2", post_id="p2"),
        ]

        loop = run_loop(router, events)

        assert router.handle.call_count == 2
        assert loop.failed_count == 1
        assert loop.handled_count == 1

    def test_closed_stream_ends_loop(self, router):
        """Test closing the stream stops the loop."""
        stream = FakeEventStream([posted_event("chan-1", "#1"), posted_event("chan-1", "#2")])
        router.handle.side_effect = lambda post, name: stream.close()

        EventLoop(stream, router, CHANNEL_NAMES, "bot-user").run()

        assert router.handle.call_count == 1
