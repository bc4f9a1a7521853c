"""qBittorrent Web API: login and the listen_port preference."""

import json
from dataclasses import dataclass
from typing import Iterable, Tuple

import requests

from .config import Config, Endpoint
from .errors import AuthenticationError, TransportError
from .logging_setup import get_logger
from .wire import MAX_PORT, decode_port, read_json, send

LOGIN_API = "/api/v2/auth/login"
GET_PREFERENCES_API = "/api/v2/app/preferences"
SET_PREFERENCES_API = "/api/v2/app/setPreferences"

logger = get_logger("qbittorrent")


@dataclass(frozen=True)
class SessionCookies:
    """Cookies handed out by the login endpoint, in the order they were set."""

    items: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_jar(cls, jar: Iterable) -> "SessionCookies":
        return cls(tuple((cookie.name, cookie.value) for cookie in jar))

    def as_dict(self) -> dict[str, str]:
        return dict(self.items)

    def names(self) -> list[str]:
        return [name for name, _ in self.items]

    def __len__(self) -> int:
        return len(self.items)


NO_COOKIES = SessionCookies()


def _check_status(response: requests.Response, method: str, url: str) -> None:
    if response.status_code == 403:
        raise AuthenticationError(
            f"{method} {url} was forbidden; check credentials or the local auth bypass",
            context={"url": url, "status": 403},
        )
    if response.status_code != 200:
        raise TransportError(
            f"{method} {url} returned {response.status_code}",
            context={"url": url, "status": response.status_code, "body": response.text[:200]},
        )


class QBittorrentSession:
    """Performs the single login and keeps the resulting cookies."""

    def __init__(self, endpoint: Endpoint, session: requests.Session, username: str, password: str) -> None:
        self.url = endpoint.base_url + LOGIN_API
        self.session = session
        self.username = username
        self.password = password
        self._logged_in = False

    @classmethod
    def from_config(cls, config: Config, session: requests.Session) -> "QBittorrentSession":
        return cls(config.qbittorrent, session, config.qbt_username, config.qbt_password)

    def login(self) -> SessionCookies:
        """
        Log in once and return the cookies to attach to every later request.

        With no username configured nothing is sent and NO_COOKIES is returned.
        Raises AuthenticationError when qBittorrent rejects the credentials and
        TransportError when the request itself fails.
        """
        if self._logged_in:
            raise RuntimeError("login() may only be called once per process")
        self._logged_in = True

        if not self.username:
            logger.info("no username configured, relying on qBittorrent's local auth bypass")
            return NO_COOKIES

        logger.info("logging into qbittorrent", extra={"url": self.url, "username": self.username})
        response = send(
            self.session,
            "POST",
            self.url,
            data={"username": self.username, "password": self.password},
        )
        if response.status_code != 200:
            raise AuthenticationError(
                f"login failed: {response.status_code} {response.reason}",
                context={"url": self.url, "status": response.status_code},
            )
        # Bad credentials still come back as 200, with "Fails." as the body
        if response.text.strip() == "Fails.":
            raise AuthenticationError(
                "login failed: invalid username or password",
                context={"url": self.url, "username": self.username},
            )

        cookies = SessionCookies.from_jar(response.cookies)
        logger.info("login successful", extra={"cookies": cookies.names()})
        return cookies


class QBittorrentClient:
    """Reads and writes the listen_port preference."""

    def __init__(self, endpoint: Endpoint, session: requests.Session) -> None:
        self.endpoint = endpoint
        self.session = session

    def get_listen_port(self, cookies: SessionCookies) -> int:
        url = self.endpoint.base_url + GET_PREFERENCES_API
        response = send(self.session, "GET", url, cookies=cookies.as_dict())
        _check_status(response, "GET", url)
        logger.debug("got qbittorrent preferences", extra={"status": response.status_code})
        return decode_port(read_json(response), "listen_port")

    def set_listen_port(self, cookies: SessionCookies, port: int) -> None:
        """Write a new listen_port. The port must be in 1..65535."""
        if not 1 <= port <= MAX_PORT:
            raise ValueError(f"refusing to set listen_port to {port}")

        url = self.endpoint.base_url + SET_PREFERENCES_API
        payload = {"json": json.dumps({"listen_port": port})}
        logger.debug("setting qbittorrent preferences", extra={"body": payload})
        response = send(
            self.session,
            "POST",
            url,
            data=payload,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            cookies=cookies.as_dict(),
        )
        _check_status(response, "POST", url)
        logger.info("successfully updated listen port", extra={"qbt_port": port})
