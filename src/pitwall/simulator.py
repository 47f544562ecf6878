"""Lap-by-lap race state advancer.

Each call to ``advance_lap`` plays one lap for every driver and returns a new
``RaceState``. The hero driver only pits when the host application asks for
it; every other car runs an autonomous tyre-life threshold policy.
"""

import logging
from dataclasses import replace
from typing import Literal, Optional

import numpy as np
import pandas as pd

from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.lap_model import calculate_lap_time
from pitwall.models import Driver, RaceConfig, RaceState
from pitwall.tyres import get_compound, hero_default_compound, next_compound

logger = logging.getLogger(__name__)

TyreAlert = Literal["critical", "failure"]

# Fallback generator for calls without one; persists across ticks
_default_rng = np.random.default_rng()


def ai_pit_variance(driver_number: int) -> int:
    """Deterministic per-driver jitter on the AI pit threshold, in laps (-2..+2)."""
    return (driver_number % 5) - 2


def is_raining(state: RaceState, config: SimulationConfig = DEFAULT_CONFIG) -> bool:
    return state.rain_probability > config.rain_threshold


def fuel_load(total_laps: int, lap: int, config: SimulationConfig = DEFAULT_CONFIG) -> float:
    """Fuel on board (kg) for the given lap, never negative."""
    return max(0.0, (total_laps - lap) * config.fuel_burn_per_lap)


def position_shuffle(
    aggression: float,
    rng: np.random.Generator,
    config: SimulationConfig = DEFAULT_CONFIG,
) -> float:
    """Random gap change for a car on track; aggressive drivers drift forward."""
    return (
        rng.random() - config.shuffle_bias - aggression * config.shuffle_aggression_weight
    ) * config.shuffle_scale


def is_race_finished(state: RaceState, config: RaceConfig) -> bool:
    return state.current_lap > config.total_laps


def tyre_alert(driver: Driver, config: SimulationConfig = DEFAULT_CONFIG) -> Optional[TyreAlert]:
    """Tyre warning level for a car on track.

    Returns "failure" once the set reaches its max life, "critical" within the
    warning window before that, otherwise None.
    """
    if driver.status != "OnTrack":
        return None
    max_life = driver.compound.max_life
    if driver.tyre_age >= max_life:
        return "failure"
    if driver.tyre_age >= max_life - config.tyre_warning_laps:
        return "critical"
    return None


def advance_lap(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
    box_requested: bool = False,
    hero_next_compound: Optional[str] = None,
    rng: Optional[np.random.Generator] = None,
    sim_config: SimulationConfig = DEFAULT_CONFIG,
) -> tuple[RaceState, bool]:
    """Advance the race by one lap.

    The caller must stop calling once the race is finished; no bounds check
    is performed here.

    Args:
        state: Race state after the previous lap (not modified)
        config: Race configuration
        hero_id: Driver under external pit control
        box_requested: Whether the hero asked to pit this lap
        hero_next_compound: Compound for the hero's next stop, or None for
            the default choice
        rng: Random number generator; pass one for reproducible races,
            otherwise a module-wide unseeded generator is used
        sim_config: Simulation configuration

    Returns:
        Tuple of (new state, whether the hero's box request was consumed)
    """
    if rng is None:
        rng = _default_rng

    state.driver(hero_id)
    if hero_next_compound is not None:
        get_compound(hero_next_compound)

    next_lap = state.current_lap + 1
    raining = is_raining(state, sim_config)
    fuel = fuel_load(config.total_laps, next_lap, sim_config)
    base_pace = config.track_base_pace
    in_lap = sim_config.pit_in_lap_penalty
    box_processed = False

    updated: list[Driver] = []
    for d in state.drivers:
        if d.status == "DNF":
            updated.append(d)
            continue

        status = d.status
        stops = d.pit_stops
        tyre = d.current_tyre
        gap = d.gap_to_leader
        lap_age = d.tyre_age
        new_age = d.tyre_age + 1

        if d.id == hero_id:
            if status == "OnTrack" and box_requested:
                status = "Pit"
                box_processed = True
                gap += in_lap
                logger.debug(f"Lap {next_lap}: hero {d.id} boxes on {tyre} (age {d.tyre_age})")
            elif status == "Pit":
                status = "OnTrack"
                stops += 1
                lap_age = new_age = 0
                tyre = hero_next_compound or hero_default_compound(d.current_tyre, raining)
                gap += config.pit_loss_seconds - in_lap
        else:
            if status == "OnTrack":
                if d.tyre_age > d.compound.max_life + ai_pit_variance(d.number):
                    status = "Pit"
                    gap += in_lap
                    logger.debug(f"Lap {next_lap}: {d.id} boxes on {tyre} (age {d.tyre_age})")
            elif status == "Pit":
                status = "OnTrack"
                stops += 1
                lap_age = new_age = 0
                tyre = next_compound(d.current_tyre, raining)
                gap += config.pit_loss_seconds - in_lap

        if status == "OnTrack":
            lap_time = calculate_lap_time(
                d, get_compound(tyre), lap_age, fuel, base_pace, raining, rng
            )
            gap = max(0.0, gap + position_shuffle(d.skills.aggression, rng, sim_config))
        else:
            lap_time = base_pace + config.pit_loss_seconds

        updated.append(
            replace(
                d,
                status=status,
                pit_stops=stops,
                current_tyre=tyre,
                tyre_age=new_age,
                gap_to_leader=gap,
                lap_times=d.lap_times + (lap_time,),
            )
        )

    updated.sort(key=lambda d: (d.status == "DNF", d.gap_to_leader))

    running_gaps = [d.gap_to_leader for d in updated if d.status != "DNF"]
    leader_gap = min(running_gaps) if running_gaps else 0.0
    ordered = tuple(
        replace(
            d,
            position=i + 1,
            gap_to_leader=d.gap_to_leader if d.status == "DNF" else d.gap_to_leader - leader_gap,
        )
        for i, d in enumerate(updated)
    )

    rain = state.rain_probability + (rng.random() - 0.5) * sim_config.rain_walk_step
    new_state = replace(
        state,
        current_lap=next_lap,
        drivers=ordered,
        rain_probability=float(np.clip(rain, 0.0, 1.0)),
    )
    return new_state, box_processed


def classify_race(state: RaceState) -> pd.DataFrame:
    """Build the classification table for the current standings."""
    standings = state.standings()
    if not standings:
        return pd.DataFrame()

    winner_time = standings[0].total_time
    rows = []
    for d in standings:
        rows.append(
            {
                "Position": d.position,
                "Driver": d.name,
                "Team": d.team,
                "Compound": d.current_tyre,
                "Stops": d.pit_stops,
                "Status": d.status,
                "Total Time (s)": d.total_time,
                "Best Lap (s)": d.best_lap,
                "Gap to Leader (s)": d.gap_to_leader,
                "Gap to Winner (s)": d.total_time - winner_time,
            }
        )

    return pd.DataFrame(rows)
