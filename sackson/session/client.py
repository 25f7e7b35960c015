"""
Session Client - Glue between a connection, the controller and a renderer.

The client owns exactly one connection for its whole life:

    connection --text--> decode --> PhaseController.handle --> renderer.render
    player --submit--> PhaseController.build_action --> encode --> connection

Nothing here is fatal. Bad messages are dropped and reported, rejected
actions are reported and never sent. Only a transport close freezes the
session, and it does so exactly once.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from ..config import ClientConfig
from ..errors import ActionRejected, IllegalTransition, ProtocolError
from ..protocol.codec import decode, encode
from ..protocol.messages import (
    ActionKind,
    ClientAction,
    ClientOutMessage,
    ErrorMessage,
    Phase,
)
from .phase import PhaseController, PhaseData

logger = logging.getLogger(__name__)


class Connection(ABC):
    """
    Transport capability consumed by the client.

    Implementations deliver inbound text frames in arrival order and call
    close handlers when the transport goes away.
    """

    @abstractmethod
    def send(self, text: str):
        """Queue one text frame for the server."""

    @abstractmethod
    def on_message(self, handler: Callable[[str], None]):
        """Register a handler for inbound text frames."""

    @abstractmethod
    def on_close(self, handler: Callable[[], None]):
        """Register a handler for transport close."""


class Renderer(ABC):
    """
    Presentation capability driven by the client.

    The client never touches markup; it hands over phase/data tuples and
    notices, and the renderer decides how to show them.
    """

    @abstractmethod
    def render(self, phase: Phase, phase_data: PhaseData, enabled: bool):
        """Draw the controls for a phase. Called once per transition."""

    def notify(self, notice: Notice):
        """Show a one-off notice (server error, rejected action, ...)."""


@dataclass(frozen=True)
class Notice:
    """
    Something the player should be told that is not a phase change.

    kind is one of:
        server_error    verbatim `err` from the server
        dropped         an inbound message we could not use
        rejected        a player action refused locally
        removed         the server took us out of the room
        closed          the connection went away
    """
    kind: str
    text: str
    code: str = ""
    details: dict[str, Any] = field(default_factory=dict)


class SessionClient:
    """
    One game session over one connection.

    Usage:
        client = SessionClient(connection, renderer)
        ...
        client.submit(ActionKind.PLAY_TILE, tile="5A")
    """

    def __init__(
        self,
        connection: Connection,
        renderer: Renderer,
        config: ClientConfig | None = None,
        controller: PhaseController | None = None,
    ):
        self.config = config or ClientConfig()
        self.connection = connection
        self.renderer = renderer
        self.controller = controller or PhaseController(self.config)
        self._closed = False

        connection.on_message(self.receive)
        connection.on_close(self.close)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def phase(self) -> Phase:
        return self.controller.phase

    def receive(self, raw: str | bytes):
        """Handle one inbound frame."""
        if self._closed:
            logger.debug("Ignoring message received after close")
            return

        try:
            message = decode(raw)
        except ProtocolError as e:
            logger.warning("Dropped %s: %s", e.code, e.message)
            self._notify(Notice(kind="dropped", text=e.message, code=e.code, details=e.details))
            return

        try:
            data = self.controller.handle(message)
        except IllegalTransition as e:
            logger.warning("Dropped %s: %s", e.code, e.message)
            self._notify(Notice(kind="dropped", text=e.message, code=e.code, details=e.details))
            return

        if isinstance(message, ErrorMessage):
            self._notify(Notice(kind="server_error", text=message.text, code=message.code))
        elif isinstance(message, ClientOutMessage):
            self._notify(Notice(kind="removed", text=message.reason, code=message.reason))

        if data is not None:
            self.renderer.render(data.phase, data, data.enabled)

    def submit(self, kind: ActionKind | str, **inputs) -> ClientAction:
        """
        Validate, encode and send one player action.

        Raises:
            ActionRejected: nothing was sent; the renderer was notified

        If the connection fails to send, the action is no longer in flight
        and the error propagates.
        """
        try:
            action = self.controller.build_action(kind, **inputs)
        except ActionRejected as e:
            logger.info("Rejected action: %s", e.message)
            self._notify(Notice(kind="rejected", text=e.message, code=e.code, details=e.details))
            raise

        try:
            self.connection.send(encode(action))
        except Exception:
            logger.warning("Sending '%s' failed", action.kind.value)
            self.controller.cancel_in_flight()
            raise
        return action

    def close(self):
        """
        Handle transport close. Idempotent.

        Freezes the controller and renders the frozen phase once with
        input disabled.
        """
        if self._closed:
            return
        self._closed = True

        if self.controller.freeze():
            data = self.controller.phase_data()
            self.renderer.render(data.phase, data, False)
            self._notify(Notice(kind="closed", text="Connection closed"))

    def _notify(self, notice: Notice):
        self.renderer.notify(notice)
