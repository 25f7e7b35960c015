"""
Session Module - One client session against the game server.

A session is:
- Created when the client joins a room
- Driven entirely by server messages
- Frozen when the connection closes

Sessions are EPHEMERAL: nothing is persisted, and no state is shared
between sessions. A new game means a new SessionClient.
"""

from .phase import PhaseController, PhaseData, coerce_count
from .client import SessionClient, Connection, Renderer, Notice

__all__ = [
    "PhaseController",
    "PhaseData",
    "coerce_count",
    "SessionClient",
    "Connection",
    "Renderer",
    "Notice",
]
