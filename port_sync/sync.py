"""The reconciliation loop that keeps qBittorrent's listen port on Gluetun's forwarded port."""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import Config, Endpoint
from .gluetun import GluetunClient
from .logging_setup import get_logger
from .qbittorrent import NO_COOKIES, QBittorrentClient, QBittorrentSession, SessionCookies
from .readiness import wait_for_endpoint

logger = get_logger("sync")


class Phase(Enum):
    CREATED = "created"
    WAITING_READY = "waiting_ready"
    AUTHENTICATING = "authenticating"
    SEEDING_STATE = "seeding_state"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass
class ReconciliationState:
    last_observed_forwarded_port: int
    last_applied_listen_port: int


class PortSync:
    """
    Startup sequence followed by a fixed-interval polling loop.

    Every collaborator is passed in, so tests can drive `start` and `tick`
    directly with fakes. Errors from any collaborator propagate unchanged.
    """

    def __init__(
        self,
        config: Config,
        gluetun: GluetunClient,
        qbittorrent: QBittorrentClient,
        auth: QBittorrentSession,
        interval: float = 1.0,
        stop_event: Optional[threading.Event] = None,
        wait_ready: Callable[[Endpoint, threading.Event], bool] = wait_for_endpoint,
    ) -> None:
        self.config = config
        self.gluetun = gluetun
        self.qbittorrent = qbittorrent
        self.auth = auth
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.wait_ready = wait_ready

        self.phase = Phase.CREATED
        self.cookies: SessionCookies = NO_COOKIES
        self.state: Optional[ReconciliationState] = None

    def _enter(self, phase: Phase) -> None:
        logger.debug("entering phase", extra={"phase": phase.value})
        self.phase = phase

    def start(self) -> bool:
        """
        Wait for both services, log in and seed the tracked ports.

        Returns False only when a stop was requested during the readiness wait.
        """
        self._enter(Phase.WAITING_READY)
        for name, endpoint in (
            ("qBittorrent", self.config.qbittorrent),
            ("Gluetun", self.config.gluetun),
        ):
            logger.info(f"Checking if {name} is up", extra={"address": endpoint.address})
            if not self.wait_ready(endpoint, self.stop_event):
                self._enter(Phase.STOPPED)
                return False

        self._enter(Phase.AUTHENTICATING)
        self.cookies = self.auth.login()

        self._enter(Phase.SEEDING_STATE)
        qbt_port = self.qbittorrent.get_listen_port(self.cookies)
        forwarded_port = self.gluetun.get_forwarded_port()
        self.state = ReconciliationState(
            last_observed_forwarded_port=forwarded_port,
            last_applied_listen_port=qbt_port,
        )
        logger.info("Current port set in qBittorrent", extra={"qbt_port": qbt_port})
        logger.info("Current forwarded port from Gluetun", extra={"forwarded_port": forwarded_port})

        self._enter(Phase.POLLING)
        return True

    def tick(self) -> bool:
        """Run one poll. Returns True when qBittorrent was updated."""
        if self.phase is not Phase.POLLING or self.state is None:
            raise RuntimeError("tick() called before start() completed")

        state = self.state
        port = self.gluetun.get_forwarded_port()

        if port != state.last_observed_forwarded_port:
            logger.info(
                "Forwarded port from Gluetun changed",
                extra={"previous_port": state.last_observed_forwarded_port, "forwarded_port": port},
            )
            state.last_observed_forwarded_port = port

        # Compare against what was applied, not what was observed, and never push 0
        if port == 0 or port == state.last_applied_listen_port:
            return False

        logger.info(
            "Updating qBittorrent port",
            extra={"qbt_port": state.last_applied_listen_port, "forwarded_port": port},
        )
        self.qbittorrent.set_listen_port(self.cookies, port)
        state.last_applied_listen_port = port
        return True

    def run(self) -> None:
        """Start, then tick every `interval` seconds until the stop event is set."""
        if not self.start():
            logger.info("stopped before startup completed")
            return

        logger.info(
            "starting the port-forward watcher",
            extra={"gluetun_url": self.gluetun.url, "interval": self.interval},
        )
        while not self.stop_event.wait(self.interval):
            self.tick()

        self._enter(Phase.STOPPED)
        logger.info("port-forward watcher stopped")

    def stop(self) -> None:
        self.stop_event.set()
