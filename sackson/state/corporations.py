"""
Corporation status, one record per corporation in first-seen order.

Corporations are created the first time the server mentions them and are
never removed. A merged-away corporation simply goes back to size 0.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from ..protocol.messages import CorporationPatch, corporation_id


@dataclass(frozen=True)
class Corporation:
    """Last known status of a corporation."""
    corporation_id: str
    name: str
    size: int = 0
    price: int = 0
    majority_bonus: int = 0
    minority_bonus: int = 0
    remaining_shares: int | None = None
    defunct: bool = False
    tied: bool = False

    @property
    def founded(self) -> bool:
        return self.size > 0

    def patched(self, patch: CorporationPatch) -> Corporation:
        """Return a copy with the mentioned fields replaced."""
        changes = {
            "name": patch.name,
            "size": patch.size,
            "price": patch.price,
            "majority_bonus": patch.majority_bonus,
            "minority_bonus": patch.minority_bonus,
            "remaining_shares": patch.remaining_shares,
            "defunct": patch.defunct,
            "tied": patch.tied,
        }
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> dict:
        return {
            "id": self.corporation_id,
            "name": self.name,
            "size": self.size,
            "price": self.price,
            "majority_bonus": self.majority_bonus,
            "minority_bonus": self.minority_bonus,
            "remaining_shares": self.remaining_shares,
            "founded": self.founded,
            "defunct": self.defunct,
            "tied": self.tied,
        }


@dataclass
class CorporationStore:
    """Ordered corporation registry."""
    _corps: dict[str, Corporation] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._corps)

    def __iter__(self) -> Iterator[Corporation]:
        return iter(self._corps.values())

    def __contains__(self, name: str) -> bool:
        return corporation_id(name) in self._corps

    def get(self, name: str) -> Corporation | None:
        return self._corps.get(corporation_id(name))

    def ensure(self, name: str) -> Corporation:
        """Get a corporation, registering it implicitly on first reference."""
        corp_id = corporation_id(name)
        if corp_id not in self._corps:
            display = name.strip()
            if display == corp_id:
                display = display.capitalize()
            self._corps[corp_id] = Corporation(corporation_id=corp_id, name=display)
        return self._corps[corp_id]

    def apply(self, patches: Iterable[CorporationPatch]) -> list[str]:
        """
        Apply `cor` entries in order.

        Returns:
            Ids of corporations whose status changed
        """
        changed = []
        for patch in patches:
            current = self.ensure(patch.name)
            updated = current.patched(patch)
            if updated != current:
                self._corps[updated.corporation_id] = updated
                changed.append(updated.corporation_id)
        return changed

    def size_of(self, name: str) -> int:
        corp = self.get(name)
        return corp.size if corp else 0

    def eligible_to_found(self, names: Iterable[str]) -> list[str]:
        """Of the given corporations, the ids whose last known size is 0."""
        eligible = []
        for name in names:
            corp = self.ensure(name)
            if corp.size == 0 and corp.corporation_id not in eligible:
                eligible.append(corp.corporation_id)
        return eligible

    def snapshot(self) -> list[dict]:
        return [corp.to_dict() for corp in self._corps.values()]
