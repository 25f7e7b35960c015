"""
Player State Store - The local player's hand, wallet and enabled status.

Hand, wallet and rivals are replaced wholesale, never patched. Callers pass
None when the update did not mention a field; an empty collection means the
player now has nothing.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable

from ..protocol.messages import Rival, Tile, Wallet, corporation_id


@dataclass
class PlayerStore:
    """Private state of the player this client represents."""
    hand: tuple[Tile, ...] = ()
    wallet: Wallet = field(default_factory=Wallet)
    rivals: tuple[Rival, ...] = ()
    enabled: bool = False

    def replace_hand(self, tiles: Iterable[Tile] | None) -> bool:
        """Returns True if the hand was replaced."""
        if tiles is None:
            return False
        self.hand = tuple(tiles)
        return True

    def replace_wallet(
        self,
        cash: int | None,
        shares: dict[str, int] | None = None,
        name: str | None = None,
    ) -> bool:
        """
        Replace cash and shareholdings together.

        A None cash means the update carried no wallet; shares default to
        none held.
        """
        if cash is None:
            return False
        normalized = {
            corporation_id(corp): count
            for corp, count in (shares or {}).items()
        }
        self.wallet = Wallet(
            cash=cash,
            shares=normalized,
            name=name if name is not None else self.wallet.name,
        )
        return True

    def replace_rivals(self, rivals: Iterable[Rival] | None) -> bool:
        if rivals is None:
            return False
        self.rivals = tuple(rivals)
        return True

    def set_enabled(self, enabled: bool | None) -> bool:
        if enabled is None:
            return False
        self.enabled = enabled
        return True

    def playable_tiles(self) -> list[str]:
        return [tile.coords for tile in self.hand if tile.playable]

    def holds_tile(self, coords: str) -> bool:
        return any(tile.coords == coords for tile in self.hand)

    def shares_of(self, corp: str) -> int:
        return self.wallet.owned(corp)

    def snapshot(self) -> dict:
        return {
            "name": self.wallet.name,
            "cash": self.wallet.cash,
            "shares": dict(self.wallet.shares),
            "hand": [
                {"coords": t.coords, "playable": t.playable} for t in self.hand
            ],
            "enabled": self.enabled,
        }
