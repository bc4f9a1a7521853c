"""Shared fakes for the port sync tests. Nothing here touches the network."""

import logging

import pytest

from port_sync.config import Config, Endpoint
from port_sync.logging_setup import LOGGER_NAME

from .helpers import FakeSession


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def config():
    return Config(
        gluetun=Endpoint("gluetun", 8000),
        qbittorrent=Endpoint("qbittorrent", 8080),
        qbt_username="admin",
        qbt_password="adminadmin",
    )


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
