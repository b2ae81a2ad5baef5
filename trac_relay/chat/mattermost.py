"""Mattermost integration.

This module provides a client for the Mattermost REST API (v4) and the
websocket event stream, covering what the relay needs: login, team and
channel lookup, posting replies and receiving ``posted`` events.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from typing import Any

import requests
import websocket

from ..exceptions import ChatPlatformError
from ..relay_logging import get_logger
from .base import ChatPlatform, EventStream
from .models import ChatEvent, ChatUser

logger = get_logger()


def websocket_url(server_url: str) -> str:
    """Derive the websocket endpoint from the server URL.

    Raises:
        ChatPlatformError: If the server URL is not an http(s) URL
    """
    if server_url.startswith("https://"):
        base = "wss://" + server_url[len("https://") :]
    elif server_url.startswith("http://"):
        base = "ws://" + server_url[len("http://") :]
    else:
        raise ChatPlatformError(f"Server URL is not HTTP: {server_url}")

    return f"{base.rstrip('/')}/api/v4/websocket"


class WebSocketEventStream(EventStream):
    """Event stream over a Mattermost websocket connection.

    The connection handle is guarded by a lock since close() is called from
    the thread handling shutdown while another thread is blocked reading.
    """

    def __init__(self, connection: websocket.WebSocket):
        self._ws = connection
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __iter__(self) -> Iterator[ChatEvent]:
        try:
            while True:
                try:
                    raw = self._ws.recv()
                except (websocket.WebSocketException, OSError) as e:
                    if not self.closed:
                        logger.warning(f"Event stream connection lost: {e}")
                    return

                if not raw:
                    if not self._ws.connected:
                        return
                    continue

                try:
                    payload = json.loads(raw)
                except json.JSONDecodeError:
                    logger.debug(f"Ignoring undecodable websocket frame: {raw!r}")
                    continue

                # Replies to our own actions carry no event name
                if not isinstance(payload, dict) or not payload.get("event"):
                    continue

                yield ChatEvent.from_dict(payload)
        finally:
            self._ws.shutdown()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            # Wakes up the thread blocked in recv()
            self._ws.abort()


class MattermostClient(ChatPlatform):
    """Client for the Mattermost REST API v4."""

    API_PREFIX = "/api/v4"

    def __init__(
        self,
        server_url: str,
        timeout: float = 10.0,
        http_session: requests.Session | None = None,
    ):
        """Initialize the Mattermost client.

        Args:
            server_url: URL of the Mattermost server, eg. http://chat:8065
            timeout: Per-request timeout in seconds
            http_session: Session to use instead of a fresh requests.Session
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.token: str | None = None
        self.team_id: str | None = None
        self._session = http_session or requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """Make a request to the Mattermost API.

        Raises:
            ChatPlatformError: On transport failure or non-2xx status
        """
        url = f"{self.server_url}{self.API_PREFIX}{endpoint}"

        try:
            response = self._session.request(
                method, url, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ChatPlatformError(
                f"Error while sending {method} {endpoint}: {e}"
            ) from e

        if not response.ok:
            try:
                detail = response.json().get("message", "")
            except (ValueError, AttributeError):
                detail = ""
            raise ChatPlatformError(
                f"{method} {endpoint} failed with HTTP {response.status_code}"
                + (f": {detail}" if detail else ""),
                {"status_code": response.status_code},
            )

        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ChatPlatformError(
                f"Invalid JSON in response from {response.url}: {e}"
            ) from e

    def ping(self) -> dict[str, Any]:
        response = self._request("GET", "/system/ping")
        props = self._json(response)
        props.setdefault("version", response.headers.get("X-Version-Id", "unknown"))
        return props

    def login(self, username: str, password: str) -> ChatUser:
        response = self._request(
            "POST", "/users/login", json={"login_id": username, "password": password}
        )

        token = response.headers.get("Token")
        if not token:
            raise ChatPlatformError("Login response carried no session token")

        self.token = token
        self._session.headers["Authorization"] = f"Bearer {token}"

        data = self._json(response)
        return ChatUser(id=data.get("id", ""), username=data.get("username", username))

    def list_teams(self) -> list[dict[str, Any]]:
        return self._json(self._request("GET", "/users/me/teams"))

    def set_team(self, team_id: str) -> None:
        self.team_id = team_id

    def list_channels(self) -> list[dict[str, Any]]:
        if not self.team_id:
            raise ChatPlatformError("No team selected")
        return self._json(
            self._request("GET", f"/users/me/teams/{self.team_id}/channels")
        )

    def create_post(self, channel_id: str, message: str) -> None:
        self._request(
            "POST", "/posts", json={"channel_id": channel_id, "message": message}
        )

    def connect_event_stream(self) -> WebSocketEventStream:
        if not self.token:
            raise ChatPlatformError("Cannot open event stream before login")

        url = websocket_url(self.server_url)
        logger.info(f"Connecting to {url}")

        try:
            connection = websocket.create_connection(url, timeout=self.timeout)
            connection.send(
                json.dumps(
                    {
                        "seq": 1,
                        "action": "authentication_challenge",
                        "data": {"token": self.token},
                    }
                )
            )
            # Block until events arrive, close() interrupts the wait
            connection.settimeout(None)
        except (websocket.WebSocketException, OSError) as e:
            raise ChatPlatformError(
                f"Error while establishing connection to {url}: {e}"
            ) from e

        return WebSocketEventStream(connection)
