"""Tyre compound table and tyre selection policies.

The table is static data: pace delta relative to the hardest compound,
degradation per lap of age and the life limit before the cliff. The pit
rotation tables decide which compound a car leaves the pits on when nobody
chose one explicitly.
"""

from dataclasses import dataclass
from typing import Literal

CompoundId = Literal["C0", "C1", "C2", "C3", "C4", "C5", "INTER", "WET"]
CompoundType = Literal["Hard", "Medium", "Soft", "Inter", "Wet"]


class UnknownCompoundError(KeyError):
    """Raised when a compound id is not in the tyre table."""


@dataclass(frozen=True)
class TyreCompound:
    """Static characteristics of a tyre compound."""

    id: str
    name: str
    type: CompoundType
    base_pace_delta: float  # seconds vs the hardest compound
    deg_per_lap: float  # seconds lost per lap of age
    max_life: int  # laps before the cliff
    color: str


TYRE_COMPOUNDS: dict[str, TyreCompound] = {
    "C0": TyreCompound("C0", "C0-Hard", "Hard", 1.2, 0.03, 50, "#f0f0f0"),
    "C1": TyreCompound("C1", "C1-Hard", "Hard", 1.0, 0.05, 42, "#f0f0f0"),
    "C2": TyreCompound("C2", "C2-Medium", "Medium", 0.7, 0.07, 35, "#eab308"),
    "C3": TyreCompound("C3", "C3-Medium", "Medium", 0.4, 0.09, 28, "#eab308"),
    "C4": TyreCompound("C4", "C4-Soft", "Soft", 0.2, 0.12, 22, "#ef4444"),
    "C5": TyreCompound("C5", "C5-Soft", "Soft", 0.0, 0.16, 15, "#ef4444"),
    "INTER": TyreCompound("INTER", "Intermediate", "Inter", 5.0, 0.10, 30, "#22c55e"),
    "WET": TyreCompound("WET", "Wet", "Wet", 10.0, 0.10, 25, "#3b82f6"),
}

SOFTEST_DRY = "C5"
ATTACK_COMPOUND = "C4"
BALANCED_COMPOUND = "C3"
INTERMEDIATE = "INTER"
FULL_WET = "WET"

# Rain probability thresholds for the recommendation policy
WET_RAIN_THRESHOLD = 0.80
INTER_RAIN_THRESHOLD = 0.25


def get_compound(compound_id: str) -> TyreCompound:
    """Look up a compound, failing fast on unknown ids."""
    try:
        return TYRE_COMPOUNDS[compound_id]
    except KeyError:
        raise UnknownCompoundError(f"Unknown tyre compound: {compound_id!r}") from None


def next_compound(current: str, raining: bool = False) -> str:
    """Compound fitted at an autonomous pit stop.

    Softs step down to the C3, the C3 to the C2, and everything else goes
    back onto the C4. Rain overrides the table with intermediates.
    """
    get_compound(current)
    if raining:
        return INTERMEDIATE
    if current in ("C5", "C4"):
        return "C3"
    if current == "C3":
        return "C2"
    return "C4"


def hero_default_compound(current: str, raining: bool = False) -> str:
    """Compound fitted to the hero car when no tyre was chosen for the stop."""
    get_compound(current)
    if raining:
        return INTERMEDIATE
    return "C2" if current == "C3" else "C3"


def recommend_compound(rain_probability: float, air_temp: float) -> str:
    """Recommend a compound for the current conditions.

    Dry running always gets the softest compound: the recommendation targets
    single-lap pace, stint length is the caller's concern. ``air_temp`` is
    accepted for interface stability and currently unused.
    """
    if rain_probability >= WET_RAIN_THRESHOLD:
        return FULL_WET
    if rain_probability >= INTER_RAIN_THRESHOLD:
        return INTERMEDIATE
    return SOFTEST_DRY
