"""Read the forwarded port from Gluetun's control server."""

import requests

from .config import Endpoint
from .errors import TransportError
from .logging_setup import get_logger
from .wire import decode_port, read_json, send

PORT_FORWARD_API = "/v1/openvpn/portforwarded"

logger = get_logger("gluetun")


class GluetunClient:
    def __init__(self, endpoint: Endpoint, session: requests.Session) -> None:
        self.endpoint = endpoint
        self.session = session
        self.url = endpoint.base_url + PORT_FORWARD_API

    def get_forwarded_port(self) -> int:
        """
        Fetch the currently forwarded port. 0 means nothing is forwarded.

        One request, no retry: TransportError on network failure or a non-2xx
        status, DecodeError when the body is not {"port": <uint16>}.
        """
        logger.debug("fetching forwarded port", extra={"url": self.url})
        response = send(self.session, "GET", self.url)
        if not response.ok:
            raise TransportError(
                f"GET {self.url} returned {response.status_code}",
                context={"url": self.url, "status": response.status_code},
            )

        # Gluetun answers {"port":0} while the VPN has no forwarded port
        port = decode_port(read_json(response), "port", default=0)
        logger.debug("fetched forwarded port", extra={"forwarded_port": port})
        return port
