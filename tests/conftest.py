"""Shared fixtures: a scripted Trac server and a fake chat platform."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import pytest
import requests

from trac_relay.chat.base import ChatPlatform, EventStream
from trac_relay.chat.models import ChatEvent, ChatUser

TRAC_HOST = "127.0.0.1"
TRAC_PATH = "/testPrefix"
TRAC_URL = f"http://{TRAC_HOST}:1234{TRAC_PATH}"
TRAC_USERNAME = "user"
TRAC_PASSWORD = "password"
SESSION_COOKIE_VALUE = "dad21f2313322902e4d8a70fbe588244"

TICKET_CSV = (
    "id,summary,reporter,owner,description,type,status,priority,milestone,"
    "component,version,resolution,keywords,cc\r\n"
    "33,Test ticket,reporter,owner,description,type,status,priority,milestone,"
    "component,version,resolution,keywords,cc\r\n"
)

LOGIN_FORM_HTML = """<html><body>
<form method="post" id="acctmgr_loginform" action="/testPrefix/login">
  <div><input type="hidden" name="__FORM_TOKEN" value="{token}" /></div>
  <input type="text" name="user" /><input type="password" name="password" />
  <input type="hidden" name="referer" value="{url}" />
</form></body></html>"""


def make_response(
    status: int,
    url: str,
    body: bytes | str = b"",
    headers: dict[str, str] | None = None,
    method: str = "GET",
) -> requests.Response:
    """Build a real requests.Response without any network."""
    response = requests.Response()
    response.status_code = status
    response._content = body.encode() if isinstance(body, str) else body
    response.encoding = "utf-8"
    response.url = url
    response.reason = str(status)
    response.headers.update(headers or {})
    response.request = requests.Request(method, url).prepare()
    return response


Step = Callable[[str, str, dict[str, Any]], requests.Response]


class ScriptedSession(requests.Session):
    """requests.Session answering from the steps of a FakeTracServer."""

    def __init__(self, server: FakeTracServer):
        super().__init__()
        self.server = server

    def request(self, method, url, **kwargs):  # type: ignore[override]
        return self.server.handle(method, url, kwargs)


class FakeTracServer:
    """Trac server simulated as an ordered list of expected requests."""

    def __init__(self, url: str = TRAC_URL):
        self.url = url
        self.steps: list[Step] = []
        self.requests: list[tuple[str, str, dict[str, Any]]] = []
        self.authenticated = False
        self.session = ScriptedSession(self)

    def handle(self, method: str, url: str, kwargs: dict[str, Any]) -> requests.Response:
        self.requests.append((method, url, kwargs))
        if not self.steps:
            pytest.fail(f"More requests than steps: {method} {url}")
        step = self.steps.pop(0)
        return step(method, url, kwargs)

    @property
    def pending_steps(self) -> int:
        return len(self.steps)

    def set_session_cookie(self) -> None:
        self.authenticated = True
        self.session.cookies.set(
            "trac_auth", SESSION_COOKIE_VALUE, domain=TRAC_HOST, path=TRAC_PATH
        )

    def expire_session(self) -> None:
        """Simulate the server forgetting the session."""
        self.authenticated = False

    def add(self, step: Step) -> None:
        self.steps.append(step)

    def respond(
        self,
        status: int,
        body: bytes | str = b"",
        headers: dict[str, str] | None = None,
        set_cookie: bool = False,
    ) -> None:
        def step(method, url, kwargs):
            if set_cookie:
                self.set_session_cookie()
            return make_response(status, url, body, headers, method)

        self.add(step)

    def fail_transport(self, error: Exception) -> None:
        def step(method, url, kwargs):
            raise error

        self.add(step)

    def basic_login(self, status: int = 200) -> None:
        def step(method, url, kwargs):
            assert method == "GET"
            assert url == f"{self.url}/login"
            if kwargs.get("auth") != (TRAC_USERNAME, TRAC_PASSWORD):
                return make_response(403, url, method=method)
            if status in (200, 302):
                self.set_session_cookie()
            return make_response(status, url, method=method)

        self.add(step)

    def login_page(self, token: str | None = "f3a8c2b1d0") -> None:
        def step(method, url, kwargs):
            assert method == "GET"
            assert url == f"{self.url}/login"
            if token is None:
                html = "<html><body>Please log in</body></html>"
            else:
                html = LOGIN_FORM_HTML.format(token=token, url=self.url)
            return make_response(200, url, html, method=method)

        self.add(step)

    def form_login(self, status: int = 303, token: str = "f3a8c2b1d0") -> None:
        def step(method, url, kwargs):
            assert method == "POST"
            assert url == f"{self.url}/login"
            data = kwargs.get("data") or {}
            valid = (
                data.get("user") == TRAC_USERNAME
                and data.get("password") == TRAC_PASSWORD
                and data.get("__FORM_TOKEN") == token
            )
            if not valid:
                return make_response(200, url, "Invalid username or password", method=method)
            self.set_session_cookie()
            return make_response(
                status, url, headers={"Location": f"{self.url}/"}, method=method
            )

        self.add(step)

    def send_ticket(self, ticket_id: str = "33", csv: bytes | str = TICKET_CSV) -> None:
        def step(method, url, kwargs):
            assert method == "GET"
            assert url == f"{self.url}/ticket/{ticket_id}?format=csv"
            if not self.authenticated:
                return make_response(403, url, method=method)
            return make_response(200, url, csv, method=method)

        self.add(step)


@pytest.fixture
def trac_server() -> FakeTracServer:
    """A scripted Trac server with no steps yet."""
    return FakeTracServer()


class FakeEventStream(EventStream):
    """Event stream replaying a fixed list of events."""

    def __init__(self, events: list[ChatEvent] | None = None):
        self.events = list(events or [])
        self.closed = False

    def __iter__(self) -> Iterator[ChatEvent]:
        for event in self.events:
            if self.closed:
                return
            yield event

    def close(self) -> None:
        self.closed = True


class FakeChatPlatform(ChatPlatform):
    """In-memory chat platform recording posts."""

    def __init__(
        self,
        user: ChatUser | None = None,
        teams: list[dict[str, Any]] | None = None,
        channels: list[dict[str, Any]] | None = None,
        events: list[ChatEvent] | None = None,
    ):
        self.user = user or ChatUser(id="bot-user", username="tracbot")
        self.teams = teams if teams is not None else [{"id": "team-1", "name": "dev"}]
        self.channels = channels if channels is not None else [
            {"id": "chan-1", "name": "town-square"},
            {"id": "chan-2", "name": "random"},
        ]
        self.stream = FakeEventStream(events)
        self.team_id: str | None = None
        self.posts: list[tuple[str, str]] = []
        self.logins: list[tuple[str, str]] = []

    def ping(self) -> dict[str, Any]:
        return {"status": "OK", "version": "9.0.0"}

    def login(self, username: str, password: str) -> ChatUser:
        self.logins.append((username, password))
        return self.user

    def list_teams(self) -> list[dict[str, Any]]:
        return self.teams

    def set_team(self, team_id: str) -> None:
        self.team_id = team_id

    def list_channels(self) -> list[dict[str, Any]]:
        return self.channels

    def create_post(self, channel_id: str, message: str) -> None:
        self.posts.append((channel_id, message))

    def connect_event_stream(self) -> FakeEventStream:
        return self.stream


def posted_event(
    channel_id: str, message: str, user_id: str = "user-1", post_id: str = "post-1"
) -> ChatEvent:
    """Build a ``posted`` event the way Mattermost sends it."""
    post = {
        "id": post_id,
        "channel_id": channel_id,
        "user_id": user_id,
        "message": message,
    }
    return ChatEvent(
        event="posted",
        channel_id=channel_id,
        data={"post": json.dumps(post)},
    )


@pytest.fixture
def chat_platform() -> FakeChatPlatform:
    """A fake chat platform with one team and two channels."""
    return FakeChatPlatform()
