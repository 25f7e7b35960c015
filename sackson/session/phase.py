"""
Phase Controller - The client state machine.

The controller owns the current phase and the state stores. It is the only
component that changes either:

    Lobby --ctl(ini)/first upd--> WaitingForOpponents | <directive phase>
    <active> --upd(ebl=false)--> Spectating
    Spectating --upd(ebl=true, sta=P)--> P
    <any> --sta=P--> P            (P in PlayTile, FoundCorp, BuyStock,
                                    SellTrade, UntieMerge)
    <any> --sta=EndGame--> EndGame (terminal)
    <any> --connection closed--> frozen

Updates are applied in a fixed order: board, corporations, wallet, hand,
rivals/markers, enabled flag, directive. The directive goes last so the
controls for the new phase are computed from the freshest state.

Outbound actions are built here and only here. An action is refused
locally when:
- the session is frozen (SessionFrozen)
- its kind is not enabled in the current phase (PhaseMismatch)
- another action is still waiting for the server (ActionInFlight)
- its inputs are malformed or out of range (InvalidActionInput)

No locking: the client feeds one event at a time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping
import inspect
import logging
import re

from ..config import ClientConfig
from ..errors import (
    ActionInFlight,
    InvalidActionInput,
    PhaseMismatch,
    SessionFrozen,
)
from ..protocol.messages import (
    ActionKind,
    ClientAction,
    ClientOutMessage,
    ControlMessage,
    Directive,
    DirectiveMessage,
    ErrorMessage,
    Phase,
    Role,
    RosterMessage,
    ServerMessage,
    UpdateMessage,
    corporation_id,
)
from ..state import BoardStore, CorporationStore, PlayerStore

logger = logging.getLogger(__name__)


# Action kinds each phase accepts. Lobby's start action also needs the
# manager role.
ACCEPTED_ACTIONS: dict[Phase, frozenset[ActionKind]] = {
    Phase.LOBBY: frozenset({ActionKind.START_GAME}),
    Phase.PLAY_TILE: frozenset({ActionKind.PLAY_TILE, ActionKind.CLAIM_END}),
    Phase.FOUND_CORP: frozenset({ActionKind.FOUND_CORPORATION}),
    Phase.BUY_STOCK: frozenset({ActionKind.BUY_STOCK}),
    Phase.SELL_TRADE: frozenset({ActionKind.SELL_TRADE}),
    Phase.UNTIE_MERGE: frozenset({ActionKind.UNTIE_MERGE}),
}

_INTEGER = re.compile(r"[+-]?\d+")


@dataclass
class PhaseData:
    """
    Everything a renderer needs to draw one phase.

    `choices` depends on the phase: playable tiles for PlayTile, eligible
    corporations for FoundCorp, biddable ones for BuyStock, owned defunct
    ones for SellTrade, tied ones for UntieMerge.
    """
    phase: Phase
    enabled: bool
    choices: list[str] = field(default_factory=list)
    allowed_actions: list[str] = field(default_factory=list)

    board: dict[str, str] = field(default_factory=dict)
    corporations: list[dict[str, Any]] = field(default_factory=list)
    player: dict[str, Any] = field(default_factory=dict)
    rivals: list[dict[str, Any]] = field(default_factory=list)

    player_count: int = 0
    players: list[str] = field(default_factory=list)
    is_manager: bool = False
    max_buy: int = 0
    turn: int | None = None
    last_round: bool = False
    history: list[str] = field(default_factory=list)


def coerce_count(raw: Any, label: str) -> int:
    """
    Coerce a raw share count from the UI to a non-negative int.

    Accepts ints, integral floats and decimal strings.

    Raises:
        InvalidActionInput: for anything else, or a negative value
    """
    if isinstance(raw, bool):
        value = None
    elif isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        value = int(raw) if raw.is_integer() else None
    elif isinstance(raw, str) and _INTEGER.fullmatch(raw.strip()):
        value = int(raw.strip())
    else:
        value = None

    if value is None:
        raise InvalidActionInput(f"{label} must be a whole number, got {raw!r}", value=raw)
    if value < 0:
        raise InvalidActionInput(f"{label} cannot be negative, got {value}", value=raw)
    return value


class PhaseController:
    """
    Client state machine for one game session.

    Usage:
        controller = PhaseController(config)

        data = controller.handle(decode(text))
        if data:
            renderer.render(data.phase, data, data.enabled)

        action = controller.build_action(ActionKind.BUY_STOCK, amounts={"tower": 2})
        connection.send(encode(action))
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self.board = BoardStore()
        self.corporations = CorporationStore()
        self.player = PlayerStore()

        self._phase = Phase.LOBBY
        self._choices: tuple[str, ...] = ()
        self._frozen = False
        self._in_flight: ClientAction | None = None

        self._role: Role | None = None
        self._roster: tuple[str, ...] = ()
        self._player_count = 0

        self._turn: int | None = None
        self._last_round = False
        self._history: tuple[str, ...] = ()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def choices(self) -> tuple[str, ...]:
        return self._choices

    @property
    def in_flight(self) -> ClientAction | None:
        return self._in_flight

    @property
    def is_manager(self) -> bool:
        return self._role is Role.MANAGER

    @property
    def player_count(self) -> int:
        return self._player_count

    def accepted_actions(self) -> frozenset[ActionKind]:
        """Action kinds the player may submit right now."""
        if self._frozen:
            return frozenset()
        if self._phase is Phase.LOBBY and not self.is_manager:
            return frozenset()
        return ACCEPTED_ACTIONS.get(self._phase, frozenset())

    @property
    def enabled(self) -> bool:
        return bool(self.accepted_actions())

    def phase_data(self) -> PhaseData:
        """Snapshot of the current phase for rendering."""
        return PhaseData(
            phase=self._phase,
            enabled=self.enabled,
            choices=list(self._choices),
            allowed_actions=sorted(kind.value for kind in self.accepted_actions()),
            board=self.board.snapshot(),
            corporations=self.corporations.snapshot(),
            player=self.player.snapshot(),
            rivals=[
                {"name": r.name, "cash": r.cash, "shares": dict(r.shares), "enabled": r.enabled}
                for r in self.player.rivals
            ],
            player_count=self._player_count,
            players=list(self._roster),
            is_manager=self.is_manager,
            max_buy=self.config.max_buy_per_turn,
            turn=self._turn,
            last_round=self._last_round,
            history=list(self._history),
        )

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def handle(self, message: ServerMessage) -> PhaseData | None:
        """
        Apply one decoded server message.

        Returns:
            PhaseData to render, or None when nothing needs redrawing
            (server errors, client-out notices, frozen session)

        Raises:
            IllegalTransition: the message was dropped; phase and stores
                are unchanged
        """
        if self._frozen:
            logger.info("Session frozen, ignoring %s", type(message).__name__)
            return None

        # Any server message acknowledges the action in flight.
        self._in_flight = None

        if isinstance(message, ErrorMessage):
            logger.info("Server error %s: %s", message.code or "-", message.text)
            return None
        elif isinstance(message, ControlMessage):
            self._on_control(message)
        elif isinstance(message, RosterMessage):
            self._on_roster(message)
        elif isinstance(message, UpdateMessage):
            self._on_update(message)
        elif isinstance(message, DirectiveMessage):
            self._on_directive(message.directive)
        elif isinstance(message, ClientOutMessage):
            logger.info("Removed from room: %s", message.reason)
            return None
        else:
            raise TypeError(f"Not a server message: {message!r}")

        return self.phase_data()

    def freeze(self) -> bool:
        """
        Stop accepting messages and actions for good.

        Returns:
            True the first time, False if already frozen
        """
        if self._frozen:
            return False
        self._frozen = True
        self._in_flight = None
        logger.debug("Session frozen in phase %s", self._phase.value)
        return True

    def cancel_in_flight(self):
        """Forget the pending action when it never reached the server."""
        self._in_flight = None

    def _on_control(self, message: ControlMessage):
        self._role = message.role
        if message.started and self._phase is Phase.LOBBY:
            self._enter(Phase.WAITING_FOR_OPPONENTS)

    def _on_roster(self, message: RosterMessage):
        self._roster = message.names
        self._player_count = message.player_count

    def _on_update(self, message: UpdateMessage):
        # Validate everything that can fail before touching any store.
        target = self._resolve(message.directive)
        if message.board is not None:
            self.board.check_patch(message.board)

        if message.board is not None:
            self.board.apply_patch(message.board)
            for corp_id in self.board.corporations_on_board():
                self.corporations.ensure(corp_id)
        if message.corporations is not None:
            self.corporations.apply(message.corporations)
        if message.wallet is not None:
            self.player.replace_wallet(
                message.wallet.cash, message.wallet.shares, message.wallet.name
            )
            for corp_id in message.wallet.shares:
                self.corporations.ensure(corp_id)
        self.player.replace_hand(message.hand)
        self.player.replace_rivals(message.rivals)
        if message.turn is not None:
            self._turn = message.turn
        if message.last_round is not None:
            self._last_round = message.last_round
        if message.history is not None:
            self._history = message.history

        self.player.set_enabled(message.enabled)
        self._advance(message.enabled, message.directive, target)

    def _on_directive(self, directive: Directive):
        target = self._resolve(directive)
        self.player.replace_hand(directive.hand)
        self._advance(None, directive, target)

    def _resolve(self, directive: Directive | None) -> Phase | None:
        if directive is None:
            return None
        return Phase.from_directive(directive.phase)

    def _advance(self, enabled: bool | None, directive: Directive | None, target: Phase | None):
        """Pick the next phase once the stores are current."""
        if self._phase is Phase.END_GAME:
            if target is not None and target is not Phase.END_GAME:
                logger.info("Game over, ignoring directive %s", target.value)
            return

        if target is Phase.END_GAME:
            self._enter(Phase.END_GAME)
        elif enabled is False:
            if self._phase is Phase.LOBBY:
                self._enter(Phase.WAITING_FOR_OPPONENTS)
            else:
                self._enter(Phase.SPECTATING)
        elif target is not None:
            # A directive without an explicit flag enables by implication.
            self.player.set_enabled(True)
            self._enter(target, self._populate(target, directive))
        elif self._phase is Phase.LOBBY:
            self._enter(Phase.WAITING_FOR_OPPONENTS)
        elif enabled and self._phase is Phase.SPECTATING:
            self._enter(Phase.WAITING_FOR_OPPONENTS)

    def _populate(self, phase: Phase, directive: Directive) -> tuple[str, ...]:
        """Selectable options for the phase a directive enters."""
        if phase is Phase.PLAY_TILE:
            return tuple(self.player.playable_tiles())
        if phase is Phase.FOUND_CORP:
            return tuple(self.corporations.eligible_to_found(directive.inactive or ()))
        if phase is Phase.BUY_STOCK:
            return self._registered(directive.buyable or ())
        if phase is Phase.SELL_TRADE:
            return tuple(
                corp_id for corp_id in self._registered(directive.defunct or ())
                if self.player.shares_of(corp_id) > 0
            )
        if phase is Phase.UNTIE_MERGE:
            return self._registered(directive.tied or ())
        return ()

    def _registered(self, names) -> tuple[str, ...]:
        ids: list[str] = []
        for name in names:
            corp_id = self.corporations.ensure(name).corporation_id
            if corp_id not in ids:
                ids.append(corp_id)
        return tuple(ids)

    def _enter(self, phase: Phase, choices: tuple[str, ...] = ()):
        if phase is not self._phase:
            logger.debug("Phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase
        self._choices = choices

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def build_action(self, kind: ActionKind | str, **inputs) -> ClientAction:
        """
        Validate player input and build the action to send.

        Inputs by kind:
            START_GAME          player_timeout (optional)
            PLAY_TILE           tile
            FOUND_CORPORATION   corporation
            BUY_STOCK           amounts: {corporation: count}
            SELL_TRADE          operations: {corporation: (sell, trade)}
            UNTIE_MERGE         corporation
            CLAIM_END           (none)

        The built action is marked in flight until the next server message.

        Raises:
            SessionFrozen, PhaseMismatch, ActionInFlight, InvalidActionInput
        """
        try:
            kind = ActionKind(kind)
        except ValueError:
            raise InvalidActionInput(f"Unknown action kind {kind!r}", kind=kind)

        if self._frozen:
            raise SessionFrozen("Connection closed, no further actions can be sent")

        if kind not in self.accepted_actions():
            raise PhaseMismatch(
                f"'{kind.value}' is not allowed in phase {self._phase.value}",
                kind=kind.value,
                phase=self._phase.value,
            )

        if self._in_flight is not None:
            raise ActionInFlight(
                f"Waiting for the server to answer '{self._in_flight.kind.value}'",
                kind=kind.value,
            )

        builders = {
            ActionKind.START_GAME: self._build_start,
            ActionKind.PLAY_TILE: self._build_play,
            ActionKind.FOUND_CORPORATION: self._build_found,
            ActionKind.BUY_STOCK: self._build_buy,
            ActionKind.SELL_TRADE: self._build_sell_trade,
            ActionKind.UNTIE_MERGE: self._build_untie,
            ActionKind.CLAIM_END: self._build_claim_end,
        }
        builder = builders[kind]
        try:
            inspect.signature(builder).bind(**inputs)
        except TypeError as e:
            raise InvalidActionInput(f"Bad inputs for '{kind.value}': {e}", kind=kind.value)
        action = builder(**inputs)

        self._in_flight = action
        logger.debug("Built %s action: %r", kind.value, action.params)
        return action

    def _build_start(self, player_timeout: Any = None) -> ClientAction:
        if player_timeout is None:
            return ClientAction.start_game()
        return ClientAction.start_game(coerce_count(player_timeout, "Player timeout"))

    def _build_play(self, tile: str) -> ClientAction:
        coords = str(tile).strip()
        if not self.player.holds_tile(coords):
            raise InvalidActionInput(f"Tile {coords} is not in hand", tile=coords)
        if coords not in self._choices:
            raise InvalidActionInput(f"Tile {coords} cannot be played", tile=coords)
        return ClientAction.play_tile(coords)

    def _choose_corporation(self, corporation: str) -> str:
        corp_id = corporation_id(str(corporation))
        if corp_id not in self._choices:
            raise InvalidActionInput(
                f"'{corporation}' is not a choice in phase {self._phase.value}",
                corporation=corporation,
            )
        return corp_id

    def _build_found(self, corporation: str) -> ClientAction:
        return ClientAction.found_corporation(self._choose_corporation(corporation))

    def _build_untie(self, corporation: str) -> ClientAction:
        return ClientAction.untie_merge(self._choose_corporation(corporation))

    def _build_buy(self, amounts: Mapping[str, Any]) -> ClientAction:
        if not isinstance(amounts, Mapping):
            raise InvalidActionInput(f"Buy amounts must be a mapping, got {amounts!r}")
        counts: dict[str, int] = {}
        for corporation, raw in amounts.items():
            corp_id = self._choose_corporation(corporation)
            count = coerce_count(raw, f"Shares of {corp_id}")
            if count:
                counts[corp_id] = counts.get(corp_id, 0) + count

        limit = self.config.max_buy_per_turn
        total = sum(counts.values())
        if total > limit:
            raise InvalidActionInput(
                f"Cannot buy {total} shares, the limit is {limit}",
                total=total,
                limit=limit,
            )
        return ClientAction.buy_stock(counts)

    def _build_sell_trade(self, operations: Mapping[str, Any]) -> ClientAction:
        if not isinstance(operations, Mapping):
            raise InvalidActionInput(f"Sell/trade operations must be a mapping, got {operations!r}")
        totals: dict[str, tuple[int, int]] = {}
        for corporation, operation in operations.items():
            corp_id = self._choose_corporation(corporation)
            try:
                raw_sell, raw_trade = operation
            except (TypeError, ValueError):
                raise InvalidActionInput(
                    f"Operation for {corp_id} must be (sell, trade), got {operation!r}"
                )
            sell = coerce_count(raw_sell, f"Shares of {corp_id} to sell")
            trade = coerce_count(raw_trade, f"Shares of {corp_id} to trade")
            prior_sell, prior_trade = totals.get(corp_id, (0, 0))
            totals[corp_id] = (prior_sell + sell, prior_trade + trade)

        # Limits apply to the combined order per corporation.
        result: dict[str, tuple[int, int]] = {}
        for corp_id, (sell, trade) in totals.items():
            owned = self.player.shares_of(corp_id)
            if sell + trade > owned:
                raise InvalidActionInput(
                    f"Cannot dispose of {sell + trade} shares of {corp_id}, only {owned} owned",
                    corporation=corp_id,
                )
            if sell or trade:
                result[corp_id] = (sell, trade)
        return ClientAction.sell_trade(result)

    def _build_claim_end(self) -> ClientAction:
        return ClientAction.claim_end()
