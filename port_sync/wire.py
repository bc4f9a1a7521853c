"""Request and decode helpers shared by the Gluetun and qBittorrent clients."""

from http.cookiejar import DefaultCookiePolicy
from typing import Any, Optional

import requests

from .errors import DecodeError, TransportError

MAX_PORT = 65535


class _RejectAllCookies(DefaultCookiePolicy):
    def set_ok(self, cookie, request):
        return False

    def return_ok(self, cookie, request):
        return False


def new_session() -> requests.Session:
    """
    A requests.Session whose jar never stores or sends cookies.

    Cookies only reach a server when passed explicitly with `cookies=`.
    """
    session = requests.Session()
    session.cookies.set_policy(_RejectAllCookies())
    return session


def send(session: requests.Session, method: str, url: str, **kwargs) -> requests.Response:
    """Issue a request, turning any requests failure into TransportError."""
    try:
        return session.request(method, url, **kwargs)
    except requests.RequestException as e:
        raise TransportError(
            f"{method} {url} failed: {e}",
            context={"method": method, "url": url},
            cause=e,
        ) from e


def read_json(response: requests.Response) -> dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        data = response.json()
    except ValueError as e:
        raise DecodeError(
            "response body is not valid JSON",
            context={"url": response.url, "body": response.text[:200]},
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise DecodeError(
            "response body is not a JSON object",
            context={"url": response.url, "body": response.text[:200]},
        )
    return data


def decode_port(data: dict[str, Any], field: str, default: Optional[int] = None) -> int:
    """
    Pull an unsigned 16-bit port out of `data[field]`.

    A missing or null field yields `default`, or a DecodeError when no
    default is given.
    """
    value = data.get(field)
    if value is None:
        if default is None:
            raise DecodeError(f"response is missing {field!r}", context={"body": data})
        return default
    # bool is an int subclass; true/false is not a port
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"{field!r} is not an integer", context={field: value})
    if not 0 <= value <= MAX_PORT:
        raise DecodeError(f"{field!r} is out of range", context={field: value})
    return value
