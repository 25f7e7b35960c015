"""
Protocol Module - The unified wire contract.

One envelope for both directions: {"typ": ..., "par": {...}}.
The codec turns text into a closed union of server messages and turns
validated ClientActions back into text.
"""

from .messages import (
    Phase,
    ActionKind,
    Role,
    CellKind,
    Occupancy,
    Tile,
    CorporationPatch,
    Wallet,
    Rival,
    Directive,
    ErrorMessage,
    ControlMessage,
    RosterMessage,
    UpdateMessage,
    DirectiveMessage,
    ClientOutMessage,
    ServerMessage,
    ClientAction,
    corporation_id,
)
from .codec import decode, decode_action, encode

__all__ = [
    "Phase",
    "ActionKind",
    "Role",
    "CellKind",
    "Occupancy",
    "Tile",
    "CorporationPatch",
    "Wallet",
    "Rival",
    "Directive",
    "ErrorMessage",
    "ControlMessage",
    "RosterMessage",
    "UpdateMessage",
    "DirectiveMessage",
    "ClientOutMessage",
    "ServerMessage",
    "ClientAction",
    "corporation_id",
    "decode",
    "decode_action",
    "encode",
]
