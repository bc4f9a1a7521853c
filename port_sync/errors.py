"""Errors raised by the port sync components.

Nothing in the package exits the process on its own; every failure is one of
these exceptions and travels up to ``cli.main``.
"""

from typing import Any, Optional


class PortSyncError(Exception):
    """Base error with a message and structured context for the log record."""

    def __init__(
        self,
        message: str,
        *,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.__cause__ = cause

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ConfigError(PortSyncError):
    """An environment value or CLI option could not be used."""


class ConnectivityError(PortSyncError):
    """A dependent service did not accept a TCP connection."""


class TransportError(PortSyncError):
    """A request failed on the wire or came back with an unexpected status."""


class AuthenticationError(PortSyncError):
    """qBittorrent rejected the login or the session."""


class DecodeError(PortSyncError):
    """A response body was not the JSON we expected."""
