"""Monte Carlo race outcome projection.

Runs many independent forward simulations from the current lap to the flag
and estimates the hero driver's chances of winning and finishing on the
podium. Every iteration works on its own copy of the field and its own
random generator, so iterations can run in any order or in parallel and
still produce the same aggregate for the same seed.
"""

import logging
import threading
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from itertools import repeat
from typing import Optional

import numpy as np
from tqdm import tqdm

from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.lap_model import calculate_lap_time
from pitwall.models import Driver, ProjectionSummary, RaceConfig, RaceState, SimulationResult
from pitwall.simulator import fuel_load, is_raining
from pitwall.tyres import get_compound, next_compound

logger = logging.getLogger(__name__)

_MAX_SEED = 2**63 - 1


@dataclass
class _SimCar:
    """Mutable per-iteration working copy of a driver."""

    driver: Driver
    gap: float
    tyre: str
    tyre_age: int
    stops: int
    retired: bool

    @classmethod
    def from_driver(cls, driver: Driver) -> "_SimCar":
        return cls(
            driver=driver,
            gap=driver.gap_to_leader,
            tyre=driver.current_tyre,
            tyre_age=driver.tyre_age,
            stops=driver.pit_stops,
            retired=driver.status == "DNF",
        )


def draw_iteration_seeds(rng: np.random.Generator, iterations: int) -> list[int]:
    """Draw one independent seed per iteration from the caller's generator."""
    return [int(s) for s in rng.integers(0, _MAX_SEED, size=iterations)]


def simulate_iteration(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
    seed: int,
    sim_config: SimulationConfig = DEFAULT_CONFIG,
) -> SimulationResult:
    """Simulate the rest of the race once.

    Pit decisions use a lighter policy than the live advancer: the hero boxes
    at 95% of the compound's life, other cars at a threshold re-drawn between
    90% and 110% of it on every lap.
    """
    rng = np.random.default_rng(seed)
    raining = is_raining(state, sim_config)
    base_pace = config.track_base_pace

    cars = [_SimCar.from_driver(d) for d in state.drivers]
    for car in cars:
        if not car.retired:
            car.gap += rng.normal(0.0, sim_config.start_gap_sigma)

    lap = state.current_lap
    while lap < config.total_laps:
        lap += 1
        fuel = fuel_load(config.total_laps, lap, sim_config)

        for car in cars:
            if car.retired:
                continue
            compound = get_compound(car.tyre)

            if car.driver.id == hero_id:
                box_threshold = compound.max_life * sim_config.hero_box_fraction
            else:
                box_threshold = compound.max_life * rng.uniform(
                    sim_config.ai_box_fraction_low, sim_config.ai_box_fraction_high
                )

            if car.tyre_age > box_threshold:
                car.gap += config.pit_loss_seconds
                car.stops += 1
                car.tyre = next_compound(car.tyre)
                car.tyre_age = 0
                car.gap -= sim_config.clean_air_discount
            else:
                lap_time = calculate_lap_time(
                    car.driver, compound, car.tyre_age, fuel, base_pace, raining, rng
                )
                car.gap += lap_time - base_pace

                if (
                    car.gap > sim_config.rubber_band_gap
                    and car.driver.skills.aggression > sim_config.rubber_band_aggression
                ):
                    car.gap -= sim_config.rubber_band_correction

                car.tyre_age += 1

    cars.sort(key=lambda c: (c.retired, c.gap))
    final_positions = {car.driver.id: rank + 1 for rank, car in enumerate(cars)}

    return SimulationResult(
        winner_id=cars[0].driver.id,
        podium=tuple(car.driver.id for car in cars[:3]),
        final_positions=final_positions,
    )


def summarize_results(
    results: list[SimulationResult],
    hero_id: str,
    from_lap: int,
) -> ProjectionSummary:
    """Aggregate iteration results into hero win/podium percentages."""
    iterations = len(results)
    if iterations == 0:
        return ProjectionSummary(
            results=[],
            win_probability=0.0,
            podium_probability=0.0,
            avg_finish=0.0,
            iterations=0,
            from_lap=from_lap,
        )

    wins = sum(1 for r in results if r.winner_id == hero_id)
    podiums = sum(1 for r in results if hero_id in r.podium)
    total_pos = sum(r.final_positions[hero_id] for r in results)

    return ProjectionSummary(
        results=results,
        win_probability=wins / iterations * 100.0,
        podium_probability=podiums / iterations * 100.0,
        avg_finish=total_pos / iterations,
        iterations=iterations,
        from_lap=from_lap,
    )


def run_projection(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
    iterations: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    sim_config: SimulationConfig = DEFAULT_CONFIG,
) -> ProjectionSummary:
    """Run a Monte Carlo projection from the current race state.

    Args:
        state: Current race state (not modified)
        config: Race configuration
        hero_id: Driver whose outcome is aggregated
        iterations: Number of simulations, defaults to ``sim_config.n_simulations``
        rng: Random number generator; seeds for every iteration are drawn from it
        sim_config: Simulation configuration

    Returns:
        ProjectionSummary with raw results and hero percentages
    """
    state.driver(hero_id)

    if iterations is None:
        iterations = sim_config.n_simulations
    if iterations <= 0:
        return summarize_results([], hero_id, state.current_lap)

    if rng is None:
        rng = np.random.default_rng(sim_config.random_seed)
    seeds = draw_iteration_seeds(rng, iterations)

    if sim_config.n_workers > 1:
        chunksize = max(1, iterations // (sim_config.n_workers * 4))
        with ProcessPoolExecutor(max_workers=sim_config.n_workers) as pool:
            results = list(
                pool.map(
                    simulate_iteration,
                    repeat(state),
                    repeat(config),
                    repeat(hero_id),
                    seeds,
                    repeat(sim_config),
                    chunksize=chunksize,
                )
            )
    else:
        iterator = seeds
        if sim_config.show_progress:
            iterator = tqdm(seeds, desc=f"Projecting from lap {state.current_lap}")
        results = [
            simulate_iteration(state, config, hero_id, seed, sim_config) for seed in iterator
        ]

    summary = summarize_results(results, hero_id, state.current_lap)
    logger.info(
        f"Completed {iterations} projections from lap {state.current_lap}: "
        f"win {summary.win_probability:.1f}%, podium {summary.podium_probability:.1f}%, "
        f"avg finish P{summary.avg_finish:.2f}"
    )
    return summary


@dataclass(frozen=True)
class ProjectionTicket:
    """Handle for a projection submitted to a ``ProjectionRunner``."""

    generation: int
    from_lap: int
    future: Future


class ProjectionRunner:
    """Runs projections in the background and discards superseded ones.

    Every submission (and every ``invalidate`` call, e.g. after a tick)
    starts a new generation. ``collect`` only returns a summary whose
    generation is still the latest; anything older is dropped.
    """

    def __init__(
        self,
        config: RaceConfig,
        hero_id: str,
        sim_config: SimulationConfig = DEFAULT_CONFIG,
        seed: Optional[int] = None,
    ):
        self.config = config
        self.hero_id = hero_id
        self.sim_config = sim_config
        self._rng = np.random.default_rng(sim_config.random_seed if seed is None else seed)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="projection")
        self._lock = threading.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def submit(self, state: RaceState, iterations: Optional[int] = None) -> ProjectionTicket:
        """Start a projection for ``state``, superseding any earlier one."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            seed = int(self._rng.integers(0, _MAX_SEED))

        future = self._executor.submit(
            run_projection,
            state,
            self.config,
            self.hero_id,
            iterations,
            np.random.default_rng(seed),
            self.sim_config,
        )
        logger.debug(f"Submitted projection generation {generation} from lap {state.current_lap}")
        return ProjectionTicket(generation=generation, from_lap=state.current_lap, future=future)

    def invalidate(self) -> None:
        """Mark every outstanding projection as stale."""
        with self._lock:
            self._generation += 1

    def is_current(self, ticket: ProjectionTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation

    def collect(
        self, ticket: ProjectionTicket, timeout: Optional[float] = None
    ) -> Optional[ProjectionSummary]:
        """Wait for a projection and return it unless it has been superseded."""
        summary = ticket.future.result(timeout=timeout)
        if not self.is_current(ticket):
            logger.info(
                f"Discarding stale projection from lap {ticket.from_lap} "
                f"(generation {ticket.generation})"
            )
            return None
        return summary

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ProjectionRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
