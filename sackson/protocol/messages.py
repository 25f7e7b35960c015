"""
Protocol Messages - Decoded server messages and outbound client actions.

Server messages form a closed union:
    ErrorMessage | ControlMessage | RosterMessage | UpdateMessage
    | DirectiveMessage | ClientOutMessage

Each inbound message is handled by exactly one branch of the controller.
Client actions are a single tagged record (ClientAction) whose params are
kept in wire shape, so encoding them is lossless.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ..errors import IllegalTransition


class Phase(Enum):
    """Client session phases. Exactly one is active at a time."""
    LOBBY = "Lobby"
    WAITING_FOR_OPPONENTS = "WaitingForOpponents"
    PLAY_TILE = "PlayTile"
    FOUND_CORP = "FoundCorp"
    BUY_STOCK = "BuyStock"
    SELL_TRADE = "SellTrade"
    UNTIE_MERGE = "UntieMerge"
    END_GAME = "EndGame"
    SPECTATING = "Spectating"

    @classmethod
    def from_directive(cls, name: str) -> Phase:
        """
        Resolve the phase named by a directive's `sta` field.

        Raises:
            IllegalTransition: if the name is not a directive phase
        """
        for phase in DIRECTIVE_PHASES:
            if phase.value == name:
                return phase
        raise IllegalTransition(f"Directive names unknown phase '{name}'", phase=name)


DIRECTIVE_PHASES = (
    Phase.PLAY_TILE,
    Phase.FOUND_CORP,
    Phase.BUY_STOCK,
    Phase.SELL_TRADE,
    Phase.UNTIE_MERGE,
    Phase.END_GAME,
)


class ActionKind(Enum):
    """Outbound action kinds, valued by their wire `typ`."""
    START_GAME = "ini"
    PLAY_TILE = "ply"
    FOUND_CORPORATION = "ncp"
    BUY_STOCK = "buy"
    SELL_TRADE = "sel"
    UNTIE_MERGE = "unt"
    CLAIM_END = "end"


class Role(Enum):
    """Role assigned to this client by the server."""
    MANAGER = "mng"
    PLAYER = "ply"


class CellKind(Enum):
    """Board cell occupancy kinds, in the only order a cell may advance."""
    EMPTY = 0
    UNINCORPORATED = 1
    OWNED = 2


def corporation_id(name: str) -> str:
    """Stable corporation identity: 'Tower' and 'tower' are the same."""
    return name.strip().lower()


@dataclass(frozen=True)
class Occupancy:
    """Occupancy of one board cell."""
    kind: CellKind
    corporation: str | None = None

    EMPTY_WIRE = "empty"
    UNINCORPORATED_WIRE = "unincorporated"

    @classmethod
    def empty(cls) -> Occupancy:
        return cls(CellKind.EMPTY)

    @classmethod
    def unincorporated(cls) -> Occupancy:
        return cls(CellKind.UNINCORPORATED)

    @classmethod
    def owned(cls, corp: str) -> Occupancy:
        return cls(CellKind.OWNED, corporation_id(corp))

    @classmethod
    def from_wire(cls, value: str) -> Occupancy:
        """
        Parse a `brd` cell value.

        "empty" and "unincorporated" are literal; anything else names the
        owning corporation.
        """
        text = value.strip()
        if not text:
            raise ValueError("empty board cell value")
        lowered = text.lower()
        if lowered == cls.EMPTY_WIRE:
            return cls.empty()
        if lowered == cls.UNINCORPORATED_WIRE:
            return cls.unincorporated()
        return cls.owned(text)

    def to_wire(self) -> str:
        if self.kind is CellKind.EMPTY:
            return self.EMPTY_WIRE
        if self.kind is CellKind.UNINCORPORATED:
            return self.UNINCORPORATED_WIRE
        return self.corporation or ""

    def can_become(self, other: Occupancy) -> bool:
        """Check the Empty -> Unincorporated -> Owned ordering."""
        return other.kind.value >= self.kind.value

    def __str__(self) -> str:
        return self.to_wire()


@dataclass(frozen=True)
class Tile:
    """A tile in the player's hand."""
    coords: str
    playable: bool = True


@dataclass(frozen=True)
class CorporationPatch:
    """
    Partial corporation status from a `cor` entry.

    Only `name` is required; None means "not mentioned, keep".
    """
    name: str
    price: int | None = None
    majority_bonus: int | None = None
    minority_bonus: int | None = None
    remaining_shares: int | None = None
    size: int | None = None
    defunct: bool | None = None
    tied: bool | None = None

    @property
    def corporation_id(self) -> str:
        return corporation_id(self.name)


@dataclass(frozen=True)
class Wallet:
    """The local player's cash and shareholdings."""
    cash: int = 0
    shares: dict[str, int] = field(default_factory=dict)
    name: str | None = None

    def owned(self, corp: str) -> int:
        return self.shares.get(corporation_id(corp), 0)


@dataclass(frozen=True)
class Rival:
    """Public status of another player, used for standings."""
    name: str
    cash: int | None = None
    shares: dict[str, int] = field(default_factory=dict)
    enabled: bool | None = None


@dataclass(frozen=True)
class Directive:
    """
    Server instruction naming the phase the player must act in.

    `phase` is the raw `sta` value; the controller resolves it.
    Payload lists are None when the field was absent.
    """
    phase: str
    hand: tuple[Tile, ...] | None = None
    inactive: tuple[str, ...] | None = None
    buyable: tuple[str, ...] | None = None
    defunct: tuple[str, ...] | None = None
    tied: tuple[str, ...] | None = None


# =============================================================================
# Server messages
# =============================================================================

@dataclass(frozen=True)
class ErrorMessage:
    """Server-reported error. Surfaced verbatim, never changes phase."""
    text: str
    code: str = ""


@dataclass(frozen=True)
class ControlMessage:
    """Role assignment, optionally confirming the game has started."""
    role: Role
    started: bool = False


@dataclass(frozen=True)
class RosterMessage:
    """Players currently seated in the room."""
    player_count: int
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateMessage:
    """
    Partial status update.

    Every field is optional: None means "unchanged", an empty collection
    means "now empty".
    """
    board: dict[str, Occupancy] | None = None
    corporations: tuple[CorporationPatch, ...] | None = None
    wallet: Wallet | None = None
    hand: tuple[Tile, ...] | None = None
    enabled: bool | None = None
    directive: Directive | None = None
    rivals: tuple[Rival, ...] | None = None
    turn: int | None = None
    last_round: bool | None = None
    history: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DirectiveMessage:
    """An update that carries nothing but a directive and its payload."""
    directive: Directive


@dataclass(frozen=True)
class ClientOutMessage:
    """The server removed this client from the room."""
    reason: str


ServerMessage = Union[
    ErrorMessage,
    ControlMessage,
    RosterMessage,
    UpdateMessage,
    DirectiveMessage,
    ClientOutMessage,
]


# =============================================================================
# Client actions
# =============================================================================

@dataclass(frozen=True)
class ClientAction:
    """
    A validated player intent, ready to encode.

    Built by the PhaseController; the factories below produce the wire
    shape of each kind's params.
    """
    kind: ActionKind
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def start_game(cls, player_timeout: int | None = None) -> ClientAction:
        params = {} if player_timeout is None else {"pto": player_timeout}
        return cls(ActionKind.START_GAME, params)

    @classmethod
    def play_tile(cls, tile: str) -> ClientAction:
        return cls(ActionKind.PLAY_TILE, {"til": tile})

    @classmethod
    def found_corporation(cls, corp: str) -> ClientAction:
        return cls(ActionKind.FOUND_CORPORATION, {"cor": corp})

    @classmethod
    def buy_stock(cls, amounts: dict[str, int]) -> ClientAction:
        return cls(ActionKind.BUY_STOCK, {"cor": dict(amounts)})

    @classmethod
    def sell_trade(cls, operations: dict[str, tuple[int, int]]) -> ClientAction:
        """operations maps corporation -> (sell, trade)."""
        return cls(ActionKind.SELL_TRADE, {
            "cor": {
                corp: {"sel": sell, "tra": trade}
                for corp, (sell, trade) in operations.items()
            }
        })

    @classmethod
    def untie_merge(cls, corp: str) -> ClientAction:
        return cls(ActionKind.UNTIE_MERGE, {"cor": corp})

    @classmethod
    def claim_end(cls) -> ClientAction:
        return cls(ActionKind.CLAIM_END, {})
