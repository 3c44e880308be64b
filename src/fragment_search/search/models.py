"""Search data models."""

from __future__ import annotations

from array import array
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Posting:
    """Occurrences of one term within one fragment.

    Term frequency is derived from ``len(positions)`` so the two can never
    disagree.
    """

    fragment_id: int
    positions: array

    @classmethod
    def of(cls, fragment_id: int, positions: Sequence[int]) -> Posting:
        return cls(fragment_id=fragment_id, positions=array("I", positions))

    @property
    def term_frequency(self) -> int:
        return len(self.positions)

    def title_frequency(self, title_length: int) -> int:
        """Count occurrences that fall inside the title position range."""

        count = 0
        for position in self.positions:
            if position >= title_length:
                break
            count += 1
        return count

    def to_list(self) -> list[Any]:
        """Compact ``[fragment_id, [positions...]]`` form used for persistence."""
        return [self.fragment_id, list(self.positions)]

    @classmethod
    def from_list(cls, data: Sequence[Any]) -> Posting:
        fragment_id, positions = data
        return cls.of(int(fragment_id), [int(pos) for pos in positions])
