from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from plotty.geometry import Perimeter


class DeletionOutcome(str, Enum):
    DELETED = "deleted"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Region:
    owner: int
    name: str
    perimeter: Perimeter

    def with_perimeter(self, perimeter: Perimeter) -> Region:
        return replace(self, perimeter=perimeter)

    def __str__(self) -> str:
        return f"`{self.name}` ({self.perimeter.size()}m²)"


def plot_name_for(owner_name: str, counter: int) -> str:
    """Default name of an owner's next plot, given their current counter value."""
    return f"{owner_name.replace('_', '').lower()}_plot_{counter + 1}"
