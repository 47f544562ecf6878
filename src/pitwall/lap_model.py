"""Stochastic lap time model.

A lap time is the track's reference pace plus the driver's base offset and
the compound's pace delta, plus six independent contributions:

- tyre degradation, super-linear once the tyre passes 70% of its life
- fuel load
- driver variance (Gaussian, wider for less consistent drivers)
- push laps (occasional bonus, larger for aggressive drivers)
- the cliff past the compound's max life
- a wet-weather penalty scaled by the driver's rain skill

Only the push lap and the driver variance can be negative.
"""

from typing import Optional

import numpy as np

from pitwall.models import Driver
from pitwall.tyres import TyreCompound

NONLINEAR_LIFE_FRACTION = 0.7
NONLINEAR_EXPONENT = 1.5
NONLINEAR_SCALE = 0.05
TYRE_MANAGEMENT_BASE = 2.1

FUEL_PENALTY_PER_KG = 0.035

VARIANCE_SCALE = 0.25
CONSISTENCY_BASE = 1.1

PUSH_PROBABILITY = 0.1
PUSH_BONUS = -0.3
PUSH_AGGRESSION_SCALE = -0.1

CLIFF_PENALTY_PER_LAP = 0.8
WET_PENALTY_MAX = 1.5


def degradation_multiplier(tyre_age: float, compound: TyreCompound) -> float:
    """Super-linear factor applied once the tyre passes 70% of its life."""
    threshold = compound.max_life * NONLINEAR_LIFE_FRACTION
    if tyre_age <= threshold:
        return 1.0
    return 1.0 + (tyre_age - threshold) ** NONLINEAR_EXPONENT * NONLINEAR_SCALE


def tyre_degradation(tyre_age: float, compound: TyreCompound, tyre_management: float) -> float:
    """Time lost to tyre wear.

    Good tyre managers (close to 1.0) lose a bit more than half of what the
    worst managers lose at the same age.
    """
    age = max(0.0, tyre_age)
    return (
        age
        * compound.deg_per_lap
        * (TYRE_MANAGEMENT_BASE - tyre_management)
        * degradation_multiplier(age, compound)
    )


def fuel_penalty(fuel_load_kg: float) -> float:
    return max(0.0, fuel_load_kg) * FUEL_PENALTY_PER_KG


def driver_variance(consistency: float, rng: np.random.Generator) -> float:
    """Zero-mean lap-to-lap noise; lower consistency widens the spread."""
    return float(rng.normal(0.0, VARIANCE_SCALE * (CONSISTENCY_BASE - consistency)))


def push_variance(aggression: float, rng: np.random.Generator) -> float:
    """Occasional push lap bonus.

    The random draw happens on every call so that the number of draws per
    lap does not depend on the outcome.
    """
    if rng.random() > 1.0 - PUSH_PROBABILITY:
        return PUSH_BONUS + (aggression - 0.5) * PUSH_AGGRESSION_SCALE
    return 0.0


def cliff_penalty(tyre_age: float, compound: TyreCompound) -> float:
    if tyre_age > compound.max_life:
        return (tyre_age - compound.max_life) * CLIFF_PENALTY_PER_LAP
    return 0.0


def wet_penalty(wet_weather_ability: float, is_raining: bool) -> float:
    if not is_raining:
        return 0.0
    return (1.0 - wet_weather_ability) * WET_PENALTY_MAX


def calculate_lap_time(
    driver: Driver,
    compound: TyreCompound,
    tyre_age: float,
    fuel_load_kg: float,
    track_base_pace: float,
    is_raining: bool,
    rng: np.random.Generator,
) -> float:
    """Calculate one lap time for a driver.

    Args:
        driver: Driver whose skills shape the lap
        compound: Compound the lap is driven on
        tyre_age: Laps already completed on this set
        fuel_load_kg: Fuel on board
        track_base_pace: Circuit reference lap time (seconds)
        is_raining: Whether the wet penalty applies
        rng: Random number generator

    Returns:
        Lap time in seconds
    """
    skills = driver.skills
    return (
        track_base_pace
        + skills.base_pace
        + compound.base_pace_delta
        + tyre_degradation(tyre_age, compound, skills.tyre_management)
        + fuel_penalty(fuel_load_kg)
        + driver_variance(skills.consistency, rng)
        + push_variance(skills.aggression, rng)
        + cliff_penalty(tyre_age, compound)
        + wet_penalty(skills.wet_weather_ability, is_raining)
    )


def theoretical_lap_time(
    circuit_base_pace: float,
    driver_base_pace: float,
    compound_delta: float,
) -> float:
    """Qualifying-style lap: no fuel, fresh tyres, no noise."""
    return circuit_base_pace + driver_base_pace + compound_delta


def format_lap_time(seconds: Optional[float]) -> str:
    """Format a lap time as ``m:ss.sss``."""
    if seconds is None or not np.isfinite(seconds) or seconds < 0:
        return "--:--.---"
    total = round(float(seconds), 3)
    minutes = int(total // 60)
    return f"{minutes}:{total - minutes * 60:06.3f}"
