"""Trac integration.

This module provides a client for a single Trac instance. It logs in with
either HTTP Basic Auth or the Trac login form, keeps the resulting session
cookie, and retrieves tickets through Trac's CSV export. When the session
expires the client logs in again once and retries the request.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

import requests

from ..exceptions import (
    AuthenticationError,
    FormTokenNotFoundError,
    InvalidCredentialsError,
    TicketFetchError,
    TooManyRedirectsError,
    UnexpectedStatusError,
)
from ..relay_logging import get_logger
from .models import SESSION_COOKIE, AuthType, Credentials, Ticket, TracSession
from .ticket_csv import parse_ticket_csv
from .transport import install_exchange_logging

logger = get_logger()

FORM_TOKEN_RE = re.compile(r'name="__FORM_TOKEN"\s+value="([^"]+)"')

AUTH_FAILURE_STATUSES = (401, 403)
BASIC_LOGIN_OK = (200, 302)
FORM_LOGIN_OK = (200, 302, 303)


class TracClient:
    """Client for one Trac instance.

    Owns the HTTP session (and thus the cookie store) for that instance.
    Not thread-safe: a client is meant to be used from a single thread.
    """

    DEFAULT_TIMEOUT = 10.0
    MAX_REDIRECTS = 10

    def __init__(
        self,
        name: str,
        url: str,
        auth_type: AuthType,
        insecure: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        debug: bool = False,
        http_session: requests.Session | None = None,
    ):
        """Initialize the Trac client.

        Args:
            name: Instance name as configured (used in logs)
            url: Base URL of the Trac instance, eg. http://trac.domain:8080/proj
            auth_type: Login mechanism
            insecure: Skip TLS certificate verification
            timeout: Per-request timeout in seconds
            debug: Log full HTTP exchanges
            http_session: Session to use instead of a fresh requests.Session
        """
        self.name = name
        self.url = url.rstrip("/")
        self.auth_type = auth_type
        self.insecure = insecure
        self.timeout = timeout

        self._http = http_session or requests.Session()
        self._http.max_redirects = self.MAX_REDIRECTS
        if debug:
            install_exchange_logging(self._http)

        self.session = TracSession(cookies=self._http.cookies)

    @property
    def login_url(self) -> str:
        return f"{self.url}/login"

    def ticket_url(self, ticket_id: str) -> str:
        """URL of the human-readable ticket page."""
        return f"{self.url}/ticket/{ticket_id}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._http.request(
            method,
            url,
            timeout=self.timeout,
            verify=not self.insecure,
            **kwargs,
        )

    def _has_session_cookie(self, url: str) -> bool:
        """Check if the cookie store holds a Trac session cookie for a URL."""
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        path = parts.path or "/"

        for cookie in self._http.cookies:
            if cookie.name != SESSION_COOKIE or not cookie.value:
                continue
            domain = (cookie.domain or "").lstrip(".").lower()
            if domain and host != domain and not host.endswith("." + domain):
                continue
            if not path.startswith(cookie.path or "/"):
                continue
            return True

        return False

    @staticmethod
    def _redirect_target(response: requests.Response, url: str) -> str:
        return urljoin(response.url or url, response.headers["location"])

    def _login_request(
        self,
        method: str,
        url: str,
        auth: tuple[str, str] | None = None,
        data: dict[str, str] | None = None,
    ) -> requests.Response:
        """Send a login request, following redirects by hand.

        A redirect is not followed once the cookie store holds a session
        cookie for its target: the rest of the chain only walks through
        Trac's intermediate auth pages.
        """
        origin = urlsplit(url).netloc
        response = self._request(
            method, url, auth=auth, data=data, allow_redirects=False
        )

        for _ in range(self.MAX_REDIRECTS):
            if not response.is_redirect:
                return response

            target = self._redirect_target(response, url)
            if self._has_session_cookie(target):
                return response

            url = target
            if response.status_code in (302, 303) or method == "POST":
                method, data = "GET", None
            if urlsplit(url).netloc != origin:
                auth = None

            logger.debug(f"Following login redirect to {url}")
            response = self._request(
                method, url, auth=auth, data=data, allow_redirects=False
            )

        if response.is_redirect:
            target = self._redirect_target(response, url)
            if self._has_session_cookie(target):
                return response
            raise TooManyRedirectsError(
                f"Stopped after {self.MAX_REDIRECTS} redirects",
                {"url": url},
            )
        return response

    def _check_login_status(
        self, response: requests.Response, accepted: tuple[int, ...]
    ) -> None:
        if response.status_code in accepted:
            return
        if response.status_code in AUTH_FAILURE_STATUSES:
            raise InvalidCredentialsError({"instance": self.name})
        raise UnexpectedStatusError(response.status_code, {"instance": self.name})

    def _authenticate_basic(self, credentials: Credentials) -> None:
        response = self._login_request(
            "GET",
            self.login_url,
            auth=(credentials.username, credentials.password),
        )
        self._check_login_status(response, BASIC_LOGIN_OK)

    def _get_login_form_token(self) -> str:
        response = self._login_request("GET", self.login_url)

        # The token is also available as a cookie, but the form is authoritative
        match = FORM_TOKEN_RE.search(response.text)
        if match is None:
            raise FormTokenNotFoundError({"instance": self.name})

        return match.group(1)

    def _authenticate_form(self, credentials: Credentials) -> None:
        form_token = self._get_login_form_token()

        response = self._login_request(
            "POST",
            self.login_url,
            data={
                "user": credentials.username,
                "password": credentials.password,
                "referer": self.url,
                "__FORM_TOKEN": form_token,
            },
        )
        self._check_login_status(response, FORM_LOGIN_OK)

    def authenticate(self, username: str, password: str) -> None:
        """Log into the Trac instance.

        Args:
            username: Trac username
            password: Trac password

        Raises:
            AuthenticationError: If the login fails for any reason
            UnexpectedStatusError: If Trac answers with an unhandled status
            TooManyRedirectsError: If the login redirects endlessly
        """
        credentials = Credentials(username, password)
        self.session.reset()

        try:
            if self.auth_type == AuthType.BASIC:
                self._authenticate_basic(credentials)
            else:
                self._authenticate_form(credentials)
        except requests.RequestException as e:
            self.session.mark_failed()
            raise AuthenticationError(
                f"Error while sending login request: {e}", {"instance": self.name}
            ) from e
        except Exception:
            self.session.mark_failed()
            raise

        self.session.mark_authenticated(credentials)
        logger.info(f"Authenticated as {username} on Trac {self.name}")

    def _reauthenticate(self) -> None:
        credentials = self.session.credentials
        if credentials is None:
            raise AuthenticationError(
                "Session expired and no credentials to log in again",
                {"instance": self.name},
            )

        logger.info(f"Session expired on Trac {self.name}, authenticating again")
        self.authenticate(credentials.username, credentials.password)

    def _fetch(self, url: str) -> requests.Response:
        logger.info(f"GET {url}")
        try:
            return self._request("GET", url)
        except requests.RequestException as e:
            raise TicketFetchError(
                f"Error while sending ticket request: {e}", {"url": url}
            ) from e

    def get_ticket(self, ticket_id: str) -> Ticket:
        """Retrieve a ticket.

        An authorization failure triggers exactly one new login followed by
        one retry of the request.

        Args:
            ticket_id: Ticket number, as text

        Returns:
            The ticket fields, plus ``_url``

        Raises:
            TicketFetchError: If the request fails or stays unauthorized
            UnexpectedStatusError: If Trac answers with a status other than 200
            MalformedTicketError: If the CSV payload cannot be decoded
        """
        ticket_url = self.ticket_url(ticket_id)
        csv_url = f"{ticket_url}?format=csv"

        response = self._fetch(csv_url)

        if response.status_code in AUTH_FAILURE_STATUSES:
            try:
                self._reauthenticate()
            except (AuthenticationError, UnexpectedStatusError, TooManyRedirectsError) as e:
                raise TicketFetchError(
                    f"Error while authenticating again: {e}",
                    {"instance": self.name, "ticket": ticket_id},
                ) from e

            response = self._fetch(csv_url)

            if response.status_code in AUTH_FAILURE_STATUSES:
                raise TicketFetchError(
                    f"Still unauthorized after authenticating again "
                    f"(HTTP {response.status_code})",
                    {"instance": self.name, "ticket": ticket_id},
                )

        if response.status_code != 200:
            raise UnexpectedStatusError(
                response.status_code, {"instance": self.name, "ticket": ticket_id}
            )

        return parse_ticket_csv(response.content, ticket_url)
