"""Value types shared by the simulation, projection and strategy modules.

Race state is immutable: the advancer and the projector build new values
with ``dataclasses.replace`` instead of editing drivers in place, so a caller
holding a ``RaceState`` never sees it change underneath them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from pitwall.tyres import TyreCompound, get_compound

DriverStatus = Literal["OnTrack", "Pit", "DNF"]
RiskLevel = Literal["Low", "Medium", "High"]


class UnknownDriverError(KeyError):
    """Raised when a driver id is not part of the race state."""


@dataclass(frozen=True)
class DriverSkills:
    """Skill attributes, fixed for the duration of a simulation."""

    base_pace: float = 0.0  # seconds, lower is faster
    consistency: float = 0.9  # 0-1
    tyre_management: float = 0.9  # 0-1, 1 = slowest degradation
    aggression: float = 0.5  # 0-1
    wet_weather_ability: float = 0.9  # 0-1, 1 = least time lost in rain


@dataclass(frozen=True)
class Driver:
    """A driver's identity, skills and race state."""

    id: str
    name: str
    team: str = ""
    number: int = 0
    color: str = "#ffffff"
    skills: DriverSkills = field(default_factory=DriverSkills)

    # Race state
    position: int = 0
    gap_to_leader: float = 0.0  # seconds
    current_tyre: str = "C3"
    tyre_age: int = 0
    lap_times: tuple[float, ...] = ()
    pit_stops: int = 0
    status: DriverStatus = "OnTrack"

    @property
    def compound(self) -> TyreCompound:
        return get_compound(self.current_tyre)

    @property
    def total_time(self) -> float:
        return float(sum(self.lap_times))

    @property
    def best_lap(self) -> Optional[float]:
        return min(self.lap_times) if self.lap_times else None


@dataclass(frozen=True)
class RaceConfig:
    """Race parameters, fixed for the whole race."""

    circuit_id: str
    total_laps: int
    track_length_km: float
    pit_loss_seconds: float = 24.0
    track_name: str = ""
    timezone: str = "UTC"
    race_start: Optional[datetime] = None
    base_lap_time: Optional[float] = None  # circuit reference pace, seconds

    @property
    def track_base_pace(self) -> float:
        """Reference lap time used by the lap model."""
        if self.base_lap_time is not None:
            return self.base_lap_time
        return self.track_length_km * 14.0


@dataclass(frozen=True)
class RaceState:
    """Snapshot of the race after a completed lap."""

    current_lap: int
    drivers: tuple[Driver, ...]
    track_temp: float = 34.0
    air_temp: float = 22.0
    rain_probability: float = 0.1
    safety_car_probability: float = 0.05
    is_safety_car: bool = False
    is_virtual_safety_car: bool = False

    def driver(self, driver_id: str) -> Driver:
        """Find a driver by id, failing fast when it is missing."""
        for d in self.drivers:
            if d.id == driver_id:
                return d
        raise UnknownDriverError(f"Driver {driver_id!r} is not in the race")

    def standings(self) -> list[Driver]:
        return sorted(self.drivers, key=lambda d: d.position)


@dataclass(frozen=True)
class StrategyOption:
    """A candidate pit strategy for the hero driver."""

    id: str
    name: str
    stops: int
    pit_lap: int
    target_compound: str
    risk_level: RiskLevel
    description: str
    estimated_race_time: float = 0.0  # reserved


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of one Monte Carlo iteration."""

    winner_id: str
    podium: tuple[str, ...]
    final_positions: dict[str, int]


@dataclass
class ProjectionSummary:
    """Aggregated Monte Carlo outcome for the hero driver."""

    results: list[SimulationResult]
    win_probability: float  # percent
    podium_probability: float  # percent
    avg_finish: float
    iterations: int
    from_lap: int


@dataclass
class StrategyReport:
    """Strategy options plus the projection they were evaluated against."""

    recommended_strategy_id: str
    strategies: list[StrategyOption]
    simulation_count: int
    win_probability: float
    podium_probability: float
    avg_finish: float
    last_updated_lap: int
    explanation: str = ""
