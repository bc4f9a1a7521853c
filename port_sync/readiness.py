"""Block until a service accepts TCP connections."""

import socket
import threading
from typing import Callable, Optional

from .config import Endpoint
from .errors import ConnectivityError
from .logging_setup import get_logger

POLL_INTERVAL = 1.0
CONNECT_TIMEOUT = 5.0

logger = get_logger("readiness")


def probe(endpoint: Endpoint, timeout: float = CONNECT_TIMEOUT) -> None:
    """Open and immediately close one connection; ConnectivityError if refused."""
    try:
        conn = socket.create_connection((endpoint.host, endpoint.port), timeout=timeout)
    except (OSError, UnicodeError) as e:
        raise ConnectivityError(
            f"failed to connect to {endpoint}",
            context={"address": endpoint.address, "err": str(e)},
            cause=e,
        ) from e
    conn.close()


def wait_for_endpoint(
    endpoint: Endpoint,
    stop_event: Optional[threading.Event] = None,
    poll_interval: float = POLL_INTERVAL,
    connect_timeout: float = CONNECT_TIMEOUT,
    probe_fn: Callable[[Endpoint, float], None] = probe,
) -> bool:
    """
    Poll `endpoint` until a connection succeeds.

    There is no overall deadline. Returns True once the endpoint is reachable,
    or False if `stop_event` was set while waiting.
    """
    stop_event = stop_event or threading.Event()
    attempt = 0
    while not stop_event.is_set():
        attempt += 1
        try:
            probe_fn(endpoint, connect_timeout)
        except ConnectivityError as e:
            logger.debug(
                "failed to connect",
                extra={"address": endpoint.address, "attempt": attempt, "err": e.context.get("err")},
            )
        else:
            logger.debug("endpoint is up", extra={"address": endpoint.address, "attempt": attempt})
            return True
        if stop_event.wait(poll_interval):
            break
    return False
