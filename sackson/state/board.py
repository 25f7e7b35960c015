"""
Board State Store - Last-known board ownership, patched incrementally.

Invariants:
- A coordinate, once seen, is never removed
- Occupancy only advances Empty -> Unincorporated -> Owned(x)
- Owned(x) -> Owned(y) is a merge and is allowed
- Patches are validated in full before any cell changes
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, Mapping
import logging

from ..errors import IllegalTransition
from ..protocol.messages import CellKind, Occupancy

logger = logging.getLogger(__name__)


@dataclass
class BoardStore:
    """Cell coordinate -> Occupancy."""
    _cells: dict[str, Occupancy] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, coords: str) -> bool:
        return coords in self._cells

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def get(self, coords: str) -> Occupancy:
        """Occupancy of a cell; unseen cells are empty."""
        return self._cells.get(coords, Occupancy.empty())

    def check_patch(self, patch: Mapping[str, Occupancy]):
        """
        Validate a patch without applying it.

        Raises:
            IllegalTransition: if any cell would move backward
        """
        for coords, new in patch.items():
            current = self.get(coords)
            if not current.can_become(new):
                raise IllegalTransition(
                    f"Cell {coords} cannot go from {current} to {new}",
                    cell=coords,
                    current=current.to_wire(),
                    proposed=new.to_wire(),
                )

    def apply_patch(self, patch: Mapping[str, Occupancy]) -> list[str]:
        """
        Merge a partial board onto the held map.

        Unmentioned cells keep their value. Applying the same patch twice
        is a no-op the second time.

        Returns:
            Coordinates whose occupancy actually changed
        """
        self.check_patch(patch)

        changed = []
        for coords, new in patch.items():
            if self._cells.get(coords) != new:
                changed.append(coords)
            self._cells[coords] = new

        if changed:
            logger.debug("Board patch changed %d cell(s)", len(changed))
        return changed

    def corporations_on_board(self) -> list[str]:
        """Corporation ids referenced by any cell, in first-seen order."""
        seen: dict[str, None] = {}
        for occ in self._cells.values():
            if occ.kind is CellKind.OWNED and occ.corporation:
                seen.setdefault(occ.corporation, None)
        return list(seen)

    def snapshot(self) -> dict[str, str]:
        """Wire-shaped copy for renderers."""
        return {coords: occ.to_wire() for coords, occ in self._cells.items()}
