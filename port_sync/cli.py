"""Command line entry point: wiring, signal handling and the exit-code boundary."""

import argparse
import math
import re
import signal
import sys
import threading
from typing import Optional, Sequence

from .config import load_config
from .errors import ConfigError, PortSyncError
from .gluetun import GluetunClient
from .logging_setup import setup_logging
from .qbittorrent import QBittorrentClient, QBittorrentSession
from .sync import PortSync
from .wire import new_session

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """
    Parse a duration such as "1s", "500ms" or "1m30s" into seconds.

    A bare number is taken as seconds.
    """
    text = text.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos == 0 or pos != len(text):
            raise argparse.ArgumentTypeError(f"invalid duration: {text!r}") from None
    if not math.isfinite(seconds) or seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {text!r}")
    return seconds


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qbt-port-sync",
        description="Keep qBittorrent's listen port in sync with Gluetun's forwarded port",
    )
    _ = parser.add_argument(
        "--interval",
        type=parse_duration,
        default=1.0,
        help="how often to check the API, e.g. 1s, 500ms, 2m (default: 1s)",
    )
    return parser


def _install_signal_handlers(stop_event: threading.Event, logger) -> None:
    def handle(signum, frame):
        logger.info("received signal, shutting down", extra={"signal": signal.Signals(signum).name})
        stop_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config()
    except ConfigError as e:
        # logging is not configured yet, LOG_LEVEL itself may be the problem
        setup_logging().error(e.message, extra={"err": str(e)})
        return 1

    logger = setup_logging(config.log_level)
    config.log_config(logger)

    stop_event = threading.Event()
    _install_signal_handlers(stop_event, logger)

    # one session per service; login cookies must never reach Gluetun
    with new_session() as gluetun_session, new_session() as qbt_session:
        sync = PortSync(
            config,
            gluetun=GluetunClient(config.gluetun, gluetun_session),
            qbittorrent=QBittorrentClient(config.qbittorrent, qbt_session),
            auth=QBittorrentSession.from_config(config, qbt_session),
            interval=args.interval,
            stop_event=stop_event,
        )
        try:
            sync.run()
        except PortSyncError as e:
            logger.error(
                e.message,
                extra={"phase": sync.phase.value, "err": repr(e.__cause__ or e), "context": e.context},
            )
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
