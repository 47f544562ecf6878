"""Pit strategy candidates and strategy reports.

Three candidates are produced for the hero driver, always in the same order:
an aggressive undercut, the tyre-life optimal stop, and a weather hedge that
extends the stint waiting for rain. Ranking is positional; the first option
is the one recommended to the pit wall.
"""

import logging
from typing import Optional

from pitwall.models import ProjectionSummary, RaceConfig, RaceState, StrategyOption, StrategyReport
from pitwall.tyres import ATTACK_COMPOUND, BALANCED_COMPOUND, INTERMEDIATE, get_compound

logger = logging.getLogger(__name__)

UNDERCUT_LAPS_EARLY = 3
LIFE_MARGIN_LAPS = 2
WEATHER_HORIZON_LAPS = 10


def ideal_pit_lap(current_lap: int, total_laps: int, max_life: int, tyre_age: int) -> int:
    """Lap at which the current set reaches its life margin.

    Clamped to ``[current_lap + 1, total_laps - 1]``.
    """
    ideal = current_lap + (max_life - tyre_age - LIFE_MARGIN_LAPS)
    return max(current_lap + 1, min(ideal, total_laps - 1))


def generate_strategies(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
) -> list[StrategyOption]:
    """Generate the three candidate strategies for the hero driver.

    Deterministic: depends only on the hero's tyre state and the lap count.

    Args:
        state: Current race state
        config: Race configuration
        hero_id: Driver to plan for

    Returns:
        [Aggressive Undercut, Optimal Strategy, Extend for Weather]
    """
    hero = state.driver(hero_id)
    current_lap = state.current_lap
    stops = hero.pit_stops + 1

    pit_lap = ideal_pit_lap(current_lap, config.total_laps, hero.compound.max_life, hero.tyre_age)
    undercut_lap = max(current_lap + 1, pit_lap - UNDERCUT_LAPS_EARLY)
    weather_lap = current_lap + WEATHER_HORIZON_LAPS

    undercut = StrategyOption(
        id="strat_A",
        name="Aggressive Undercut",
        stops=stops,
        pit_lap=undercut_lap,
        target_compound=ATTACK_COMPOUND,
        risk_level="High",
        description=(
            f"Box Lap {undercut_lap}. Switch to {get_compound(ATTACK_COMPOUND).name} and attack."
        ),
    )

    optimal = StrategyOption(
        id="strat_B",
        name="Optimal Strategy",
        stops=stops,
        pit_lap=pit_lap,
        target_compound=BALANCED_COMPOUND,
        risk_level="Low",
        description=(
            f"Box Lap {pit_lap}. Switch to {get_compound(BALANCED_COMPOUND).name} "
            f"to go to the end."
        ),
    )

    weather = StrategyOption(
        id="strat_C",
        name="Extend for Weather",
        stops=stops,
        pit_lap=weather_lap,
        target_compound=INTERMEDIATE,
        risk_level="Medium",
        description=f"Stay out until Lap {weather_lap} waiting for rain.",
    )

    return [undercut, optimal, weather]


def build_strategy_report(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
    projection: ProjectionSummary,
    explanation: str = "",
    strategies: Optional[list[StrategyOption]] = None,
) -> StrategyReport:
    """Combine strategy candidates with a projection into a report.

    ``explanation`` is free text from an external narration service; the
    report is complete without it.
    """
    if strategies is None:
        strategies = generate_strategies(state, config, hero_id)

    report = StrategyReport(
        recommended_strategy_id=strategies[0].id,
        strategies=strategies,
        simulation_count=projection.iterations,
        win_probability=projection.win_probability,
        podium_probability=projection.podium_probability,
        avg_finish=projection.avg_finish,
        last_updated_lap=state.current_lap,
        explanation=explanation,
    )
    logger.info(
        f"Strategy report for {hero_id} at lap {state.current_lap}: "
        f"recommend {report.recommended_strategy_id}"
    )
    return report


def strategy_summary(report: StrategyReport) -> str:
    """Create a plain-text summary of a strategy report for the pit wall."""
    summary_lines = [
        "=" * 80,
        f"STRATEGY REPORT - LAP {report.last_updated_lap}",
        "=" * 80,
        "",
        f"Win Probability:    {report.win_probability:.1f}%",
        f"Podium Probability: {report.podium_probability:.1f}%",
        f"Average Finish:     P{report.avg_finish:.2f}",
        f"Simulations:        {report.simulation_count}",
        "",
        "CANDIDATE STRATEGIES:",
        "-" * 80,
    ]

    for rank, option in enumerate(report.strategies, 1):
        marker = " (recommended)" if option.id == report.recommended_strategy_id else ""
        summary_lines.append(f"\n{rank}. {option.name}{marker}")
        summary_lines.append(
            f"   Pit Lap: {option.pit_lap}  |  Compound: {option.target_compound}  "
            f"|  Risk: {option.risk_level}"
        )
        summary_lines.append(f"   {option.description}")

    if report.explanation:
        summary_lines.append("\n" + "-" * 80)
        summary_lines.append(report.explanation)

    summary_lines.append("\n" + "=" * 80)

    return "\n".join(summary_lines)
