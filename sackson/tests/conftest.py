"""
Pytest fixtures for Sackson tests.
"""

import json

import pytest

from ..config import ClientConfig
from ..session.client import Connection, Renderer, SessionClient
from ..session.phase import PhaseController


class FakeConnection(Connection):
    """In-memory connection that records outbound frames."""

    def __init__(self):
        self.sent: list[str] = []
        self.message_handlers = []
        self.close_handlers = []

    def send(self, text):
        self.sent.append(text)

    def on_message(self, handler):
        self.message_handlers.append(handler)

    def on_close(self, handler):
        self.close_handlers.append(handler)

    def deliver(self, text):
        for handler in self.message_handlers:
            handler(text)

    def drop(self):
        for handler in self.close_handlers:
            handler()


class RecordingRenderer(Renderer):
    """Renderer that remembers every call."""

    def __init__(self):
        self.renders = []
        self.notices = []

    def render(self, phase, phase_data, enabled):
        self.renders.append((phase, phase_data, enabled))

    def notify(self, notice):
        self.notices.append(notice)


def envelope(typ, **par):
    """Build a server message the way the server sends it."""
    return json.dumps({"typ": typ, "par": par})


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig()


@pytest.fixture
def controller(config) -> PhaseController:
    return PhaseController(config)


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def client(connection, renderer, config) -> SessionClient:
    return SessionClient(connection, renderer, config)


@pytest.fixture
def in_game(client, connection):
    """A session past the lobby with a wallet and a known board."""
    connection.deliver(envelope("ctl", rol="ply"))
    connection.deliver(envelope(
        "upd",
        brd={"1A": "unincorporated", "2A": "unincorporated", "5C": "Tower"},
        cor=[
            {"nam": "Tower", "siz": 2, "prc": 300},
            {"nam": "Luxor", "siz": 0, "prc": 200},
        ],
        ply={"csh": 6000, "own": {"Tower": 3, "American": 2}},
        ebl=False,
    ))
    return client
