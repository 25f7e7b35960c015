"""
Tests for the state stores.

Tests:
- Board patches are monotonic, atomic and idempotent
- Corporations are registered implicitly and patched field by field
- Player hand and wallet are replaced wholesale
"""

import pytest

from ..errors import IllegalTransition
from ..protocol.messages import CorporationPatch, Occupancy, Rival, Tile
from ..state import BoardStore, CorporationStore, PlayerStore


class TestBoardStore:
    """Tests for BoardStore."""

    @pytest.fixture
    def board(self):
        board = BoardStore()
        board.apply_patch({
            "1A": Occupancy.unincorporated(),
            "2A": Occupancy.owned("Tower"),
        })
        return board

    def test_unseen_cells_are_empty(self):
        assert BoardStore().get("9I") == Occupancy.empty()

    def test_patch_keeps_unmentioned_cells(self, board):
        """A partial patch never erases cells it does not mention."""
        board.apply_patch({"3A": Occupancy.unincorporated()})
        assert len(board) == 3
        assert board.get("2A") == Occupancy.owned("tower")

    def test_patch_is_idempotent(self, board):
        """Applying the same patch twice changes nothing the second time."""
        patch = {"1A": Occupancy.owned("Luxor"), "4B": Occupancy.unincorporated()}
        assert sorted(board.apply_patch(patch)) == ["1A", "4B"]
        before = board.snapshot()

        assert board.apply_patch(patch) == []
        assert board.snapshot() == before

    def test_occupancy_advances(self, board):
        board.apply_patch({"1A": Occupancy.owned("Luxor")})
        assert board.get("1A") == Occupancy.owned("luxor")

    def test_merge_reassigns_owner(self, board):
        """Owned(x) -> Owned(y) is a merge, not a regression."""
        board.apply_patch({"2A": Occupancy.owned("Luxor")})
        assert board.get("2A") == Occupancy.owned("luxor")
        assert board.corporations_on_board() == ["luxor"]

    @pytest.mark.parametrize("cell,value", [
        ("1A", Occupancy.empty()),
        ("2A", Occupancy.unincorporated()),
        ("2A", Occupancy.empty()),
    ])
    def test_regression_rejected(self, board, cell, value):
        with pytest.raises(IllegalTransition) as exc:
            board.apply_patch({cell: value})
        assert exc.value.details["cell"] == cell

    def test_rejected_patch_is_atomic(self, board):
        """A patch with one bad cell leaves every cell untouched."""
        before = board.snapshot()
        with pytest.raises(IllegalTransition):
            board.apply_patch({
                "5E": Occupancy.unincorporated(),
                "2A": Occupancy.empty(),
            })
        assert board.snapshot() == before
        assert "5E" not in board

    def test_corporations_on_board(self, board):
        board.apply_patch({"3A": Occupancy.owned("Luxor"), "4A": Occupancy.owned("tower")})
        assert board.corporations_on_board() == ["tower", "luxor"]

    def test_snapshot_uses_wire_values(self, board):
        assert board.snapshot() == {"1A": "unincorporated", "2A": "tower"}


class TestCorporationStore:
    """Tests for CorporationStore."""

    def test_implicit_registration(self):
        """The first mention registers a corporation with defaults."""
        store = CorporationStore()
        corp = store.ensure("Tower")

        assert corp.corporation_id == "tower"
        assert corp.name == "Tower"
        assert corp.size == 0
        assert not corp.founded
        assert "TOWER" in store

    def test_id_only_mention_gets_display_name(self):
        assert CorporationStore().ensure("luxor").name == "Luxor"

    def test_registration_is_stable(self):
        store = CorporationStore()
        store.ensure("Tower")
        store.ensure("tower")
        assert len(store) == 1

    def test_patch_replaces_mentioned_fields(self):
        store = CorporationStore()
        store.apply([CorporationPatch(name="Tower", size=3, price=400)])
        changed = store.apply([CorporationPatch(name="Tower", price=500)])

        corp = store.get("tower")
        assert changed == ["tower"]
        assert corp.size == 3
        assert corp.price == 500

    def test_unchanged_patch_reports_nothing(self):
        store = CorporationStore()
        store.apply([CorporationPatch(name="Tower", size=3)])
        assert store.apply([CorporationPatch(name="Tower", size=3)]) == []

    def test_eligible_to_found_excludes_active(self):
        """Only size-0 corporations may be founded."""
        store = CorporationStore()
        store.apply([
            CorporationPatch(name="Tower", size=2),
            CorporationPatch(name="Luxor", size=0),
        ])
        eligible = store.eligible_to_found(["Tower", "Luxor", "American", "luxor"])
        assert eligible == ["luxor", "american"]

    def test_snapshot_order(self):
        store = CorporationStore()
        store.ensure("Tower")
        store.ensure("Luxor")
        assert [c["id"] for c in store.snapshot()] == ["tower", "luxor"]

    def test_size_of_unknown(self):
        assert CorporationStore().size_of("Imperial") == 0


class TestPlayerStore:
    """Tests for PlayerStore."""

    def test_none_keeps_hand(self):
        store = PlayerStore(hand=(Tile("5A"),))
        assert store.replace_hand(None) is False
        assert store.hand == (Tile("5A"),)

    def test_empty_hand_replaces(self):
        """An empty collection means the player now holds nothing."""
        store = PlayerStore(hand=(Tile("5A"),))
        assert store.replace_hand([]) is True
        assert store.hand == ()

    def test_wallet_replaced_wholesale(self):
        store = PlayerStore()
        store.replace_wallet(6000, {"Tower": 2, "Luxor": 1}, "ann")
        store.replace_wallet(5500, {"Tower": 3})

        assert store.wallet.cash == 5500
        assert store.shares_of("luxor") == 0
        assert store.shares_of("TOWER") == 3
        assert store.wallet.name == "ann"

    def test_playable_tiles(self):
        store = PlayerStore()
        store.replace_hand([Tile("5A"), Tile("6B", playable=False)])
        assert store.playable_tiles() == ["5A"]
        assert store.holds_tile("6B")

    def test_rivals_and_enabled(self):
        store = PlayerStore()
        assert store.replace_rivals([Rival(name="bob", cash=100)])
        assert store.set_enabled(None) is False
        assert store.set_enabled(True)
        assert store.enabled
        assert store.rivals[0].name == "bob"
