"""
Growth & Feed Records
=====================
Fish growth measurements and feeding events per device.

Biomass and condition are derived values: present only when both length
and weight are known, and recomputed whenever either changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any

from aquawatch.constants import CONDITION_GOOD_BELOW, CONDITION_POOR_BELOW
from aquawatch.enums import ConditionCategory


def calculate_biomass(length: float | None, weight: float | None) -> float | None:
    """Biomass in kg from length (cm) and weight (g); non-positive sides count as absent."""
    if length is None or weight is None or length <= 0 or weight <= 0:
        return None
    return round(length * weight / 1000, 3)


def calculate_condition(length: float | None, weight: float | None) -> ConditionCategory | None:
    """Condition category from Fulton's condition factor K = W / L^3 * 100."""
    if length is None or weight is None or length <= 0 or weight <= 0:
        return None
    k = weight / (length**3) * 100
    if k < CONDITION_POOR_BELOW:
        return ConditionCategory.POOR
    if k < CONDITION_GOOD_BELOW:
        return ConditionCategory.GOOD
    return ConditionCategory.EXCELLENT


@dataclass(frozen=True)
class GrowthRecord:
    """A single growth measurement for a device's stock."""

    id: int | None
    device_id: str
    measurement_date: date
    length: float | None = None  # cm
    weight: float | None = None  # g
    notes: str | None = None
    created_at: datetime | None = None
    biomass: float | None = field(init=False)  # kg
    condition: ConditionCategory | None = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "biomass", calculate_biomass(self.length, self.weight))
        object.__setattr__(self, "condition", calculate_condition(self.length, self.weight))

    def with_measurements(
        self,
        *,
        length: float | None = None,
        weight: float | None = None,
    ) -> GrowthRecord:
        """Return a copy with new length/weight; derived fields are recomputed."""
        return replace(
            self,
            length=self.length if length is None else length,
            weight=self.weight if weight is None else weight,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "measurement_date": self.measurement_date.isoformat(),
            "length": self.length,
            "weight": self.weight,
            "biomass": self.biomass,
            "condition": str(self.condition) if self.condition else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class FeedRecord:
    """A feeding event."""

    id: int | None
    device_id: str
    feed_name: str
    feed_type: str  # natural / artificial / other
    amount: float  # kg
    fed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "feed_name": self.feed_name,
            "feed_type": self.feed_type,
            "amount": self.amount,
            "fed_at": self.fed_at.isoformat(),
        }
