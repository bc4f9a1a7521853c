import socket
import threading

import pytest

from port_sync.config import Endpoint
from port_sync.errors import ConnectivityError
from port_sync.readiness import probe, wait_for_endpoint


@pytest.fixture
def listener():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield Endpoint("127.0.0.1", sock.getsockname()[1])
    sock.close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return Endpoint("127.0.0.1", port)


def test_probe_succeeds_against_listener(listener):
    probe(listener, timeout=1.0)


def test_probe_refused(closed_port):
    with pytest.raises(ConnectivityError) as exc:
        probe(closed_port, timeout=1.0)
    assert exc.value.context["address"] == closed_port.address


def test_wait_returns_when_listener_is_up(listener):
    assert wait_for_endpoint(listener, poll_interval=0.01) is True


def test_wait_retries_until_reachable():
    attempts = []

    def flaky_probe(endpoint, timeout):
        attempts.append(timeout)
        if len(attempts) < 4:
            raise ConnectivityError("down")

    endpoint = Endpoint("qbittorrent", 8080)
    assert wait_for_endpoint(endpoint, poll_interval=0, probe_fn=flaky_probe) is True
    assert attempts == [5.0] * 4


def test_wait_stops_when_event_is_set():
    stop = threading.Event()
    attempts = []

    def never_up(endpoint, timeout):
        attempts.append(endpoint)
        if len(attempts) == 3:
            stop.set()
        raise ConnectivityError("down")

    assert wait_for_endpoint(Endpoint("gluetun", 8000), stop, poll_interval=0, probe_fn=never_up) is False
    assert len(attempts) == 3


def test_wait_with_stop_already_set_does_not_probe():
    stop = threading.Event()
    stop.set()

    def fail(endpoint, timeout):
        raise AssertionError("should not probe")

    assert wait_for_endpoint(Endpoint("gluetun", 8000), stop, probe_fn=fail) is False


def test_probe_unencodable_host_is_connectivity_error():
    with pytest.raises(ConnectivityError):
        probe(Endpoint("a" * 64, 8080), timeout=1.0)
