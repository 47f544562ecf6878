"""Race session: the single tick driver for one race.

The host application owns the clock and calls ``tick`` once per simulated
lap. The session holds the authoritative ``RaceState`` reference, the hero's
pending box request, tyre alerts and the latest strategy report.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

import numpy as np

from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.data_loader import (
    DEFAULT_STARTING_TYRE,
    build_race_config,
    build_starting_grid,
    default_roster,
    initial_race_state,
)
from pitwall.models import Driver, RaceConfig, RaceState, StrategyReport
from pitwall.monte_carlo import ProjectionRunner, ProjectionTicket, run_projection
from pitwall.simulator import TyreAlert, advance_lap, is_race_finished, tyre_alert
from pitwall.strategy import build_strategy_report
from pitwall.tyres import get_compound, recommend_compound
from pitwall.weather import WeatherOracle, resolve_conditions

logger = logging.getLogger(__name__)


class RaceFinishedError(RuntimeError):
    """Raised when ticking a race that is over or halted."""


class RaceSession:
    """Drive one race lap by lap on behalf of a host application."""

    def __init__(
        self,
        config: RaceConfig,
        state: RaceState,
        hero_id: str,
        sim_config: SimulationConfig = DEFAULT_CONFIG,
        rng: Optional[np.random.Generator] = None,
    ):
        state.driver(hero_id)

        self.config = config
        self.state = state
        self.hero_id = hero_id
        self.sim_config = sim_config
        self._rng = rng if rng is not None else np.random.default_rng(sim_config.random_seed)

        self.box_requested = False
        self.hero_next_compound: Optional[str] = None
        self.tyre_alert: Optional[TyreAlert] = None
        self.critical_failure = False
        self.report: Optional[StrategyReport] = None
        self._runner: Optional[ProjectionRunner] = None

    @classmethod
    def start(
        cls,
        circuit_id: str,
        total_laps: int,
        hero_id: str,
        drivers: Optional[Iterable[Driver]] = None,
        hero_start_tyre: str = DEFAULT_STARTING_TYRE,
        race_start: Optional[datetime] = None,
        weather_oracle: Optional[WeatherOracle] = None,
        sim_config: SimulationConfig = DEFAULT_CONFIG,
        rng: Optional[np.random.Generator] = None,
    ) -> "RaceSession":
        """Set up a race: config, weather, qualifying and the starting grid."""
        if rng is None:
            rng = np.random.default_rng(sim_config.random_seed)

        config = build_race_config(circuit_id, total_laps, race_start)
        conditions = resolve_conditions(weather_oracle, circuit_id, race_start)
        roster = list(drivers) if drivers is not None else default_roster()
        grid = build_starting_grid(roster, hero_id, hero_start_tyre, rng, sim_config)
        state = initial_race_state(grid, conditions)

        logger.info(
            f"Race at {config.track_name}: {total_laps} laps, hero {hero_id} on {hero_start_tyre}, "
            f"rain {conditions.rain_probability:.0%}"
        )
        return cls(config, state, hero_id, sim_config, rng)

    @property
    def hero(self) -> Driver:
        return self.state.driver(self.hero_id)

    @property
    def finished(self) -> bool:
        return is_race_finished(self.state, self.config)

    def recommended_compound(self) -> str:
        return recommend_compound(self.state.rain_probability, self.state.air_temp)

    def request_box(self, compound: Optional[str] = None) -> bool:
        """Ask the hero to pit at the next tick, optionally on a chosen compound.

        Ignored while the hero is not on track (already in the pit lane or
        retired). Returns whether the request was accepted.
        """
        if compound is not None:
            get_compound(compound)
        if self.hero.status != "OnTrack":
            logger.info(f"Box request ignored: {self.hero_id} is {self.hero.status}")
            return False
        self.box_requested = True
        self.hero_next_compound = compound
        logger.info(f"Box request for {self.hero_id} on lap {self.state.current_lap}")
        return True

    def tick(self) -> RaceState:
        """Advance the race by one lap.

        Before advancing, the hero's tyres are checked. When they are past
        their life and the session is configured to halt, the race stops
        instead of advancing.
        """
        if self.finished:
            raise RaceFinishedError(f"Race finished after {self.config.total_laps} laps")
        if self.critical_failure:
            raise RaceFinishedError(f"Race halted: tyre failure for {self.hero_id}")

        hero = self.hero
        self.tyre_alert = tyre_alert(hero, self.sim_config)
        if self.tyre_alert == "failure" and self.sim_config.halt_on_tyre_failure:
            self.critical_failure = True
            logger.warning(
                f"Critical tyre failure for {self.hero_id} on lap {self.state.current_lap} "
                f"({hero.current_tyre}, {hero.tyre_age} laps)"
            )
            return self.state
        if self.tyre_alert == "critical":
            logger.warning(f"Tyres critical for {self.hero_id}: box now")

        self.state, box_processed = advance_lap(
            self.state,
            self.config,
            self.hero_id,
            self.box_requested,
            self.hero_next_compound,
            self._rng,
            self.sim_config,
        )
        if box_processed:
            self.box_requested = False
        if hero.status == "Pit" and self.hero.status == "OnTrack":
            self.hero_next_compound = None

        if self._runner is not None:
            self._runner.invalidate()

        return self.state

    def needs_report(self) -> bool:
        """Whether the strategy report is missing or due for a refresh."""
        if self.report is None:
            return True
        lap = self.state.current_lap
        return lap % self.sim_config.report_refresh_laps == 0 and self.report.last_updated_lap != lap

    def refresh_report(self, iterations: Optional[int] = None, explanation: str = "") -> StrategyReport:
        """Run a projection synchronously and rebuild the strategy report."""
        projection = run_projection(
            self.state, self.config, self.hero_id, iterations, self._rng, self.sim_config
        )
        self.report = build_strategy_report(
            self.state, self.config, self.hero_id, projection, explanation
        )
        return self.report

    def submit_projection(self, iterations: Optional[int] = None) -> ProjectionTicket:
        """Start a background projection; the next tick makes it stale."""
        if self._runner is None:
            seed = int(self._rng.integers(0, 2**31 - 1))
            self._runner = ProjectionRunner(self.config, self.hero_id, self.sim_config, seed)
        return self._runner.submit(self.state, iterations)

    def collect_report(
        self, ticket: ProjectionTicket, explanation: str = "", timeout: Optional[float] = None
    ) -> Optional[StrategyReport]:
        """Turn a background projection into the current report, unless stale."""
        if self._runner is None:
            raise RuntimeError("No projection has been submitted")
        projection = self._runner.collect(ticket, timeout)
        if projection is None:
            return None
        self.report = build_strategy_report(
            self.state, self.config, self.hero_id, projection, explanation
        )
        return self.report

    def run(
        self,
        box_laps: Optional[dict[int, Optional[str]]] = None,
        refresh_reports: bool = True,
        iterations: Optional[int] = None,
    ) -> RaceState:
        """Run the race to the flag (or a halt), boxing on the given laps.

        Args:
            box_laps: Mapping of lap -> compound (or None for the default
                choice) on which to request a box
            refresh_reports: Rebuild the strategy report when due
            iterations: Monte Carlo iterations per report

        Returns:
            Final race state
        """
        box_laps = box_laps or {}
        while not self.finished and not self.critical_failure:
            lap = self.state.current_lap
            if lap in box_laps:
                self.request_box(box_laps[lap])
            if refresh_reports and self.needs_report():
                self.refresh_report(iterations)
            self.tick()

        logger.info(
            f"Race over on lap {self.state.current_lap}: {self.hero_id} P{self.hero.position}"
        )
        return self.state

    def close(self) -> None:
        if self._runner is not None:
            self._runner.shutdown()
            self._runner = None
