"""Configuration read from the environment once at startup."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass(frozen=True)
class Endpoint:
    """A host/port pair for one of the two services."""

    host: str
    port: int

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.address}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class Config:
    gluetun: Endpoint
    qbittorrent: Endpoint
    qbt_username: str = ""
    qbt_password: str = ""
    log_level: int = logging.INFO

    @property
    def auth_enabled(self) -> bool:
        # qBittorrent can whitelist local clients; no username means we rely on that
        return self.qbt_username != ""

    def log_config(self, logger: logging.Logger) -> None:
        """Log the loaded configuration without the password."""
        logger.info(
            "loaded configuration",
            extra={
                "gluetun": self.gluetun.address,
                "qbittorrent": self.qbittorrent.address,
                "qbt_username": self.qbt_username or None,
                "qbt_password": "***" if self.qbt_password else None,
                "log_level": logging.getLevelName(self.log_level),
            },
        )


def _get(env: Mapping[str, str], key: str, default: str) -> str:
    """Read a variable, treating an empty value as unset."""
    value = env.get(key, "")
    return value if value != "" else default


def _parse_host(key: str, value: str) -> str:
    # socket.create_connection IDNA-encodes the host; catch bad names here instead
    try:
        value.encode("idna")
    except UnicodeError as e:
        raise ConfigError(
            f"{key} is not a valid host name", context={key: value}, cause=e
        ) from e
    return value


def _parse_port(key: str, value: str) -> int:
    try:
        port = int(value)
    except ValueError as e:
        raise ConfigError(
            f"{key} must be an integer", context={key: value}, cause=e
        ) from e
    if not 1 <= port <= 65535:
        raise ConfigError(f"{key} must be between 1 and 65535", context={key: value})
    return port


def parse_log_level(value: str) -> int:
    try:
        return LOG_LEVELS[value.strip().upper()]
    except KeyError:
        raise ConfigError(
            f"invalid LOG_LEVEL: {value}",
            context={"allowed": sorted(LOG_LEVELS)},
        ) from None


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Build a Config from the environment.

    With no explicit mapping, a .env file in the working directory is loaded
    first; variables already set in the process environment take precedence.
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    return Config(
        gluetun=Endpoint(
            host=_parse_host(
                "GLUETUN_ADDRESS", _get(environ, "GLUETUN_ADDRESS", "localhost")
            ),
            port=_parse_port(
                "GLUETUN_API_PORT", _get(environ, "GLUETUN_API_PORT", "8000")
            ),
        ),
        qbittorrent=Endpoint(
            host=_parse_host("QBT_ADDRESS", _get(environ, "QBT_ADDRESS", "localhost")),
            port=_parse_port("QBT_API_PORT", _get(environ, "QBT_API_PORT", "8080")),
        ),
        qbt_username=_get(environ, "QBT_USERNAME", ""),
        qbt_password=_get(environ, "QBT_PASSWORD", ""),
        log_level=parse_log_level(_get(environ, "LOG_LEVEL", "INFO")),
    )
