"""
State Module - Client-side mirrors of server state.

The server is authoritative. These stores only hold the last values it sent
and apply its partial updates in arrival order.
"""

from .board import BoardStore
from .corporations import Corporation, CorporationStore
from .player import PlayerStore

__all__ = [
    "BoardStore",
    "Corporation",
    "CorporationStore",
    "PlayerStore",
]
