"""Tyre performance projection per candidate strategy.

This is a presentation transform, not physics: it turns each strategy into
a lap-indexed 0-100 performance series that a chart can draw directly.
"""

import logging

import pandas as pd

from pitwall.models import StrategyOption
from pitwall.tyres import get_compound

logger = logging.getLogger(__name__)

ASSUMED_START_AGE = 5  # laps on the current set when the projection starts
PERFORMANCE_FLOOR_LOSS = 1.5  # seconds of accumulated wear that read as 0%


def outgoing_compound(target_compound: str) -> str:
    """Compound assumed before the stop: C4 when going to C3, otherwise C3."""
    return "C4" if target_compound == "C3" else "C3"


def tyre_performance(tyre_age: int, deg_per_lap: float) -> float:
    """Performance percentage for a set of the given age, floored at 0."""
    performance = 100.0 - (tyre_age * deg_per_lap / PERFORMANCE_FLOOR_LOSS) * 100.0
    return max(0.0, performance)


def project_degradation(
    current_lap: int,
    total_laps: int,
    strategies: list[StrategyOption],
) -> pd.DataFrame:
    """Project tyre performance for each strategy from now to the flag.

    Args:
        current_lap: First lap of the projection
        total_laps: Race length
        strategies: Candidate strategies

    Returns:
        DataFrame with a ``lap`` column and one performance column per
        strategy id (percent, one decimal)
    """
    rows = []
    for lap in range(current_lap, total_laps + 1):
        point = {"lap": lap}
        for strat in strategies:
            if lap < strat.pit_lap:
                age = (lap - current_lap) + ASSUMED_START_AGE
                compound = get_compound(outgoing_compound(strat.target_compound))
            else:
                age = lap - strat.pit_lap
                compound = get_compound(strat.target_compound)

            performance = tyre_performance(age, compound.deg_per_lap)
            if lap == strat.pit_lap:
                performance = 100.0
            point[strat.id] = round(performance, 1)
        rows.append(point)

    columns = ["lap"] + [s.id for s in strategies]
    df = pd.DataFrame(rows, columns=columns)
    logger.debug(f"Projected degradation for {len(strategies)} strategies over {len(df)} laps")
    return df
