"""
Message Codec - Text <-> typed messages for the unified envelope.

    decode(text)         -> ServerMessage     (server -> client)
    decode_action(text)  -> ClientAction      (client -> server, for replay/tests)
    encode(action)       -> text

Decoding never returns partial results. It either produces a message or
raises one of:
- MalformedMessage: not JSON, not an object, no `typ`, unknown `typ`
- VersionMismatch: legacy `det`/`cnt` params key, or a foreign `ver`
- InvalidPayload: known `typ`, but `par` is missing or has the wrong shape
"""

from __future__ import annotations
from typing import Any, Callable
import json
import logging

from pydantic import BaseModel, ValidationError

from ..errors import InvalidPayload, MalformedMessage, VersionMismatch
from .messages import (
    ActionKind,
    ClientAction,
    ClientOutMessage,
    ControlMessage,
    CorporationPatch,
    Directive,
    DirectiveMessage,
    ErrorMessage,
    Occupancy,
    Rival,
    Role,
    RosterMessage,
    ServerMessage,
    Tile,
    UpdateMessage,
    Wallet,
    corporation_id,
)
from .schemas import (
    DIRECTIVE_PAYLOADS,
    LEGACY_PARAMS_KEYS,
    PARAMS_KEY,
    PROTOCOL_VERSION,
    STATE_FIELDS,
    BuyStockParams,
    ClaimEndParams,
    ClientOutParams,
    ControlParams,
    CorporationChoiceParams,
    ErrorParams,
    HandEntryParams,
    PlayTileParams,
    RosterParams,
    SellTradeParams,
    StartGameParams,
    UpdateParams,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Server messages
# =============================================================================

def _error(params: ErrorParams) -> ErrorMessage:
    return ErrorMessage(text=params.cnt, code=params.cod)


def _control(params: ControlParams) -> ControlMessage:
    return ControlMessage(role=Role(params.rol), started=params.ini)


def _roster(params: RosterParams) -> RosterMessage:
    names = tuple(params.val)
    return RosterMessage(player_count=len(names), names=names)


def _client_out(params: ClientOutParams) -> ClientOutMessage:
    return ClientOutMessage(reason=params.rea)


def _tiles(entries) -> tuple[Tile, ...]:
    tiles = []
    for entry in entries:
        if isinstance(entry, HandEntryParams):
            tiles.append(Tile(coords=entry.coo, playable=entry.pyb))
        else:
            tiles.append(Tile(coords=entry))
    return tuple(tiles)


def _shares(own: dict[str, int]) -> dict[str, int]:
    return {corporation_id(corp): count for corp, count in own.items()}


def _board(cells: dict[str, str]) -> dict[str, Occupancy]:
    board = {}
    for coords, value in cells.items():
        try:
            board[coords] = Occupancy.from_wire(value)
        except ValueError:
            raise InvalidPayload(
                f"Board cell '{coords}' has an empty occupancy value", cell=coords
            )
    return board


def _directive(params: UpdateParams) -> Directive | None:
    if params.sta is None:
        return None

    required = DIRECTIVE_PAYLOADS.get(params.sta)
    if required is not None and getattr(params, required) is None:
        raise InvalidPayload(
            f"Directive '{params.sta}' is missing its '{required}' payload",
            phase=params.sta,
            field=required,
        )

    def names(values):
        return None if values is None else tuple(values)

    return Directive(
        phase=params.sta,
        hand=None if params.hnd is None else _tiles(params.hnd),
        inactive=names(params.ina),
        buyable=names(params.act),
        defunct=names(params.dfn),
        tied=names(params.tie),
    )


def _update(params: UpdateParams) -> UpdateMessage | DirectiveMessage:
    directive = _directive(params)

    carries_state = bool(STATE_FIELDS & params.model_fields_set)
    if directive is not None and not carries_state:
        return DirectiveMessage(directive=directive)

    corporations = None
    if params.cor is not None:
        corporations = tuple(
            CorporationPatch(
                name=entry.nam,
                price=entry.prc,
                majority_bonus=entry.maj,
                minority_bonus=entry.min,
                remaining_shares=entry.rem,
                size=entry.siz,
                defunct=entry.defunct,
                tied=entry.tie,
            )
            for entry in params.cor
        )

    wallet = None
    if params.ply is not None:
        wallet = Wallet(
            cash=params.ply.csh,
            shares=_shares(params.ply.own),
            name=params.ply.nam,
        )

    rivals = None
    if params.riv is not None:
        rivals = tuple(
            Rival(name=r.nam, cash=r.csh, shares=_shares(r.own), enabled=r.ebl)
            for r in params.riv
        )

    return UpdateMessage(
        board=None if params.brd is None else _board(params.brd),
        corporations=corporations,
        wallet=wallet,
        hand=None if params.hnd is None else _tiles(params.hnd),
        enabled=params.ebl,
        directive=directive,
        rivals=rivals,
        turn=params.trn,
        last_round=params.lst,
        history=None if params.his is None else tuple(params.his),
    )


SERVER_KINDS: dict[str, tuple[type[BaseModel], Callable[[Any], ServerMessage]]] = {
    "err": (ErrorParams, _error),
    "ctl": (ControlParams, _control),
    "add": (RosterParams, _roster),
    "upd": (UpdateParams, _update),
    "out": (ClientOutParams, _client_out),
}


# =============================================================================
# Client actions
# =============================================================================

CLIENT_KINDS: dict[str, tuple[type[BaseModel], Callable[[Any], ClientAction]]] = {
    ActionKind.START_GAME.value: (
        StartGameParams, lambda p: ClientAction.start_game(p.pto)
    ),
    ActionKind.PLAY_TILE.value: (
        PlayTileParams, lambda p: ClientAction.play_tile(p.til)
    ),
    ActionKind.FOUND_CORPORATION.value: (
        CorporationChoiceParams, lambda p: ClientAction.found_corporation(p.cor)
    ),
    ActionKind.BUY_STOCK.value: (
        BuyStockParams, lambda p: ClientAction.buy_stock(p.cor)
    ),
    ActionKind.SELL_TRADE.value: (
        SellTradeParams,
        lambda p: ClientAction.sell_trade(
            {corp: (op.sel, op.tra) for corp, op in p.cor.items()}
        ),
    ),
    ActionKind.UNTIE_MERGE.value: (
        CorporationChoiceParams, lambda p: ClientAction.untie_merge(p.cor)
    ),
    ActionKind.CLAIM_END.value: (
        ClaimEndParams, lambda p: ClientAction.claim_end()
    ),
}


# =============================================================================
# Envelope handling
# =============================================================================

def _read_envelope(raw: str | bytes, kinds: dict) -> tuple[str, Any]:
    """Parse the outer envelope and return (typ, par)."""
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessage(f"Message is not valid JSON: {e}")

    if not isinstance(envelope, dict):
        raise MalformedMessage("Message is not a JSON object")

    kind = envelope.get("typ")
    if not isinstance(kind, str):
        raise MalformedMessage("Message has no 'typ' discriminator")

    legacy = [key for key in LEGACY_PARAMS_KEYS if key in envelope]
    if legacy:
        raise VersionMismatch(
            f"Message uses legacy params key '{legacy[0]}', expected '{PARAMS_KEY}'",
            kind=kind,
        )

    version = envelope.get("ver", PROTOCOL_VERSION)
    if version != PROTOCOL_VERSION:
        raise VersionMismatch(
            f"Protocol version {version!r} is not supported", kind=kind
        )

    if kind not in kinds:
        raise MalformedMessage(f"Unknown message kind '{kind}'", kind=kind)

    if PARAMS_KEY not in envelope:
        raise InvalidPayload(f"'{kind}' message has no '{PARAMS_KEY}'", kind=kind)

    return kind, envelope[PARAMS_KEY]


def _validate(model: type[BaseModel], kind: str, params: Any) -> BaseModel:
    if not isinstance(params, dict):
        raise InvalidPayload(f"'{kind}' params must be an object", kind=kind)
    try:
        return model.model_validate(params)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidPayload(f"Invalid '{kind}' params: {problems}", kind=kind)


def decode(raw: str | bytes) -> ServerMessage:
    """
    Decode one server message.

    Raises:
        MalformedMessage, VersionMismatch, InvalidPayload
    """
    kind, params = _read_envelope(raw, SERVER_KINDS)
    model, build = SERVER_KINDS[kind]
    message = build(_validate(model, kind, params))
    logger.debug("Decoded %s message: %r", kind, message)
    return message


def decode_action(raw: str | bytes) -> ClientAction:
    """Decode one client action envelope (used for replays and round trips)."""
    kind, params = _read_envelope(raw, CLIENT_KINDS)
    model, build = CLIENT_KINDS[kind]
    return build(_validate(model, kind, params))


def encode(action: ClientAction) -> str:
    """Encode a validated action. Never fails for a ClientAction."""
    return json.dumps({"typ": action.kind.value, PARAMS_KEY: action.params})
