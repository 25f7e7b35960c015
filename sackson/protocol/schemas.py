"""
Pydantic Schemas for the wire protocol - the shape of every `par` object.

Envelope (both directions):
    {"typ": "<kind>", "par": {...}, "ver": 2}

`ver` is optional. Earlier revisions nested parameters under `det` or `cnt`;
those envelopes are rejected by the codec, never read.

Server kinds:  err, ctl, add, upd, out
Client kinds:  ini, ply, ncp, buy, sel, unt, end

Unknown fields are ignored so newer servers can add data without breaking
older clients. Known fields are strict: a string where a number belongs is
an InvalidPayload, not a coercion.
"""

from typing import Annotated, Any, Literal, Optional, Union
from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, StringConstraints,
)


PROTOCOL_VERSION = 2
PARAMS_KEY = "par"
LEGACY_PARAMS_KEYS = ("det", "cnt")

NonNegativeInt = Annotated[StrictInt, Field(ge=0)]
Name = Annotated[str, StringConstraints(strict=True, min_length=1)]


class WireModel(BaseModel):
    """Base for all `par` models."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# Server -> client
# =============================================================================

class ErrorParams(WireModel):
    """`err`: an action was refused or something failed server-side."""
    cnt: StrictStr = Field(..., description="Human-readable error text")
    cod: StrictStr = Field("", description="Machine-readable error code")


class ControlParams(WireModel):
    """`ctl`: role assignment; `ini` confirms the game has started."""
    rol: Literal["mng", "ply"]
    ini: StrictBool = False


class RosterParams(WireModel):
    """`add`: seated players, as a list of names or a name-keyed mapping."""
    val: Union[list[StrictStr], dict[StrictStr, Any]]


class HandEntryParams(WireModel):
    coo: Name
    pyb: StrictBool = True


class CorporationParams(WireModel):
    """One `cor` entry. Only `nam` is required."""
    nam: Name
    prc: Optional[NonNegativeInt] = None
    maj: Optional[NonNegativeInt] = None
    min: Optional[NonNegativeInt] = None
    rem: Optional[NonNegativeInt] = None
    siz: Optional[NonNegativeInt] = None
    defunct: Optional[StrictBool] = Field(None, alias="def")
    tie: Optional[StrictBool] = None


class WalletParams(WireModel):
    """`ply`: the receiving player's own status."""
    csh: NonNegativeInt
    own: dict[StrictStr, NonNegativeInt] = Field(default_factory=dict)
    nam: Optional[StrictStr] = None


class RivalParams(WireModel):
    nam: StrictStr
    csh: Optional[NonNegativeInt] = None
    own: dict[StrictStr, NonNegativeInt] = Field(default_factory=dict)
    ebl: Optional[StrictBool] = None


class UpdateParams(WireModel):
    """
    `upd`: partial game status plus an optional directive.

    State fields: brd, cor, ply, hnd, ebl, riv, trn, lst, his.
    Directive fields: sta and the payload its phase needs
    (hnd for PlayTile, ina for FoundCorp, act for BuyStock,
    dfn for SellTrade, tie for UntieMerge).
    """
    brd: Optional[dict[StrictStr, StrictStr]] = None
    cor: Optional[list[CorporationParams]] = None
    ply: Optional[WalletParams] = None
    hnd: Optional[list[Union[Name, HandEntryParams]]] = None
    ebl: Optional[StrictBool] = None
    riv: Optional[list[RivalParams]] = None
    trn: Optional[NonNegativeInt] = None
    lst: Optional[StrictBool] = None
    his: Optional[list[StrictStr]] = None

    sta: Optional[StrictStr] = None
    ina: Optional[list[Name]] = None
    act: Optional[list[Name]] = None
    dfn: Optional[list[Name]] = None
    tie: Optional[list[Name]] = None


class ClientOutParams(WireModel):
    """`out`: this client was removed from the room."""
    rea: StrictStr


# Fields that make an `upd` more than a bare directive.
STATE_FIELDS = frozenset({"brd", "cor", "ply", "ebl", "riv", "trn", "lst", "his"})

# Payload field each directive phase requires.
DIRECTIVE_PAYLOADS = {
    "PlayTile": "hnd",
    "FoundCorp": "ina",
    "BuyStock": "act",
    "SellTrade": "dfn",
    "UntieMerge": "tie",
    "EndGame": None,
}


# =============================================================================
# Client -> server
# =============================================================================

class StartGameParams(WireModel):
    pto: Optional[NonNegativeInt] = Field(None, description="Player timeout, seconds")


class PlayTileParams(WireModel):
    til: Name


class CorporationChoiceParams(WireModel):
    """`ncp` and `unt` both name a single corporation."""
    cor: Name


class BuyStockParams(WireModel):
    cor: dict[StrictStr, NonNegativeInt]


class SellTradeEntry(WireModel):
    sel: NonNegativeInt = 0
    tra: NonNegativeInt = 0


class SellTradeParams(WireModel):
    cor: dict[StrictStr, SellTradeEntry]


class ClaimEndParams(WireModel):
    pass
