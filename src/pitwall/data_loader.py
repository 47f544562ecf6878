"""Race setup: circuit catalogue, driver rosters and the starting grid."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.models import Driver, DriverSkills, RaceConfig, RaceState
from pitwall.tyres import get_compound
from pitwall.weather import RaceConditions

logger = logging.getLogger(__name__)

DEFAULT_PIT_LOSS = 24.0  # seconds
DEFAULT_STARTING_TYRE = "C3"
STARTING_TYRE_AGE = 3  # sets used in qualifying
GRID_GAP = 0.5  # seconds between consecutive grid slots
QUALIFYING_SPREAD = 0.15  # +/- seconds of qualifying noise
SAFETY_CAR_PROBABILITY = 0.05


@dataclass(frozen=True)
class Circuit:
    """Circuit metadata."""

    id: str
    name: str
    location: str
    country: str
    length_km: float
    timezone: str
    base_lap_time: float  # approximate pole lap, seconds


CIRCUITS: dict[str, Circuit] = {
    c.id: c
    for c in [
        Circuit("bahrain", "Bahrain International Circuit", "Sakhir", "Bahrain", 5.412, "Asia/Bahrain", 91.0),
        Circuit("silverstone", "Silverstone Circuit", "Silverstone", "UK", 5.891, "Europe/London", 87.0),
        Circuit("monaco", "Circuit de Monaco", "Monte Carlo", "Monaco", 3.337, "Europe/Paris", 71.0),
        Circuit("spa", "Circuit de Spa-Francorchamps", "Stavelot", "Belgium", 7.004, "Europe/Brussels", 104.0),
        Circuit("monza", "Autodromo Nazionale Monza", "Monza", "Italy", 5.793, "Europe/Rome", 81.0),
        Circuit("suzuka", "Suzuka International Racing Course", "Suzuka", "Japan", 5.807, "Asia/Tokyo", 89.0),
        Circuit("cota", "Circuit of the Americas", "Austin, TX", "USA", 5.513, "America/Chicago", 94.0),
        Circuit("interlagos", "Autódromo José Carlos Pace", "São Paulo", "Brazil", 4.309, "America/Sao_Paulo", 70.0),
        Circuit("yas_marina", "Yas Marina Circuit", "Abu Dhabi", "UAE", 5.281, "Asia/Dubai", 84.0),
        Circuit("vegas", "Las Vegas Strip Circuit", "Las Vegas, NV", "USA", 6.201, "America/Los_Angeles", 93.0),
    ]
}

# Seed roster used when the host application does not supply one
_ROSTER_RECORDS = [
    ("ver", "Max Verstappen", "Red Bull Racing", 1, "#3671C6", 0.00, 0.98, 0.98, 0.95, 0.99),
    ("nor", "Lando Norris", "McLaren", 4, "#FF8000", 0.05, 0.95, 0.94, 0.85, 0.92),
    ("lec", "Charles Leclerc", "Ferrari", 16, "#E80020", 0.08, 0.94, 0.90, 0.90, 0.88),
    ("pia", "Oscar Piastri", "McLaren", 81, "#FF8000", 0.15, 0.93, 0.92, 0.80, 0.85),
    ("sai", "Carlos Sainz", "Ferrari", 55, "#E80020", 0.18, 0.95, 0.93, 0.88, 0.89),
    ("ham", "Lewis Hamilton", "Ferrari", 44, "#E80020", 0.12, 0.97, 0.99, 0.85, 0.98),
    ("rus", "George Russell", "Mercedes", 63, "#27F4D2", 0.20, 0.92, 0.90, 0.92, 0.87),
    ("alo", "Fernando Alonso", "Aston Martin", 14, "#229971", 0.35, 0.99, 0.98, 0.90, 0.93),
    ("alb", "Alex Albon", "Williams", 23, "#64C4FF", 0.60, 0.90, 0.85, 0.80, 0.85),
    ("tsu", "Yuki Tsunoda", "RB", 22, "#6692FF", 0.65, 0.85, 0.80, 0.88, 0.75),
]

ROSTER_COLUMNS = [
    "id",
    "name",
    "team",
    "number",
    "color",
    "base_pace",
    "consistency",
    "tyre_management",
    "aggression",
    "wet_weather_ability",
]

SKILL_COLUMNS = ROSTER_COLUMNS[5:]


def get_circuit(circuit_id: str) -> Circuit:
    """Look up a circuit by id."""
    try:
        return CIRCUITS[circuit_id]
    except KeyError:
        raise ValueError(f"Unknown circuit: {circuit_id!r}") from None


def default_roster_frame() -> pd.DataFrame:
    """Default driver roster as a DataFrame."""
    return pd.DataFrame(_ROSTER_RECORDS, columns=ROSTER_COLUMNS)


def drivers_from_frame(roster: pd.DataFrame) -> list[Driver]:
    """Build drivers from a roster DataFrame.

    Requires ``id`` and ``name`` columns plus the five skill columns; ``team``,
    ``number`` and ``color`` are optional presentation columns.
    """
    missing = [c for c in ["id", "name"] + SKILL_COLUMNS if c not in roster.columns]
    if missing:
        raise ValueError(f"Roster is missing columns: {missing}")

    drivers = []
    for row in roster.to_dict("records"):
        skills = DriverSkills(**{col: float(row[col]) for col in SKILL_COLUMNS})
        for col in SKILL_COLUMNS[1:]:
            if not 0.0 <= getattr(skills, col) <= 1.0:
                raise ValueError(f"Driver {row['id']}: {col} must be within [0, 1]")
        drivers.append(
            Driver(
                id=str(row["id"]),
                name=str(row["name"]),
                team=str(row.get("team", "")),
                number=int(row.get("number", 0)),
                color=str(row.get("color", "#ffffff")),
                skills=skills,
            )
        )

    logger.debug(f"Loaded {len(drivers)} drivers from roster")
    return drivers


def load_roster(path) -> list[Driver]:
    """Load a roster CSV exported by the host application."""
    logger.info(f"Loading roster: {path}")
    return drivers_from_frame(pd.read_csv(path))


def default_roster() -> list[Driver]:
    return drivers_from_frame(default_roster_frame())


def build_race_config(
    circuit_id: str,
    total_laps: int,
    race_start: Optional[datetime] = None,
    pit_loss_seconds: float = DEFAULT_PIT_LOSS,
) -> RaceConfig:
    """Create a race configuration for a catalogue circuit."""
    if total_laps < 1:
        raise ValueError("total_laps must be positive")

    circuit = get_circuit(circuit_id)
    return RaceConfig(
        circuit_id=circuit.id,
        track_name=circuit.name,
        total_laps=total_laps,
        pit_loss_seconds=pit_loss_seconds,
        track_length_km=circuit.length_km,
        timezone=circuit.timezone,
        race_start=race_start,
        base_lap_time=circuit.base_lap_time,
    )


def build_starting_grid(
    drivers: Iterable[Driver],
    hero_id: str,
    hero_start_tyre: str = DEFAULT_STARTING_TYRE,
    rng: Optional[np.random.Generator] = None,
    config: SimulationConfig = DEFAULT_CONFIG,
) -> tuple[Driver, ...]:
    """Run a quick qualifying and line the field up on the grid.

    Qualifying time is the driver's base pace plus uniform noise. Grid slots
    are spaced by a fixed gap; everyone starts on used C3s except the hero,
    who starts on the chosen compound.
    """
    if rng is None:
        rng = np.random.default_rng(config.random_seed)
    get_compound(hero_start_tyre)

    entrants = list(drivers)
    if hero_id not in {d.id for d in entrants}:
        raise ValueError(f"Hero driver {hero_id!r} is not in the roster")

    qualifying = [
        (d.skills.base_pace + rng.uniform(-QUALIFYING_SPREAD, QUALIFYING_SPREAD), d) for d in entrants
    ]
    qualifying.sort(key=lambda item: item[0])

    grid = tuple(
        replace(
            d,
            position=idx + 1,
            gap_to_leader=idx * GRID_GAP,
            current_tyre=hero_start_tyre if d.id == hero_id else DEFAULT_STARTING_TYRE,
            tyre_age=STARTING_TYRE_AGE,
            lap_times=(),
            pit_stops=0,
            status="OnTrack",
        )
        for idx, (_, d) in enumerate(qualifying)
    )

    logger.info(f"Grid: {', '.join(d.id for d in grid)}")
    return grid


def initial_race_state(
    grid: tuple[Driver, ...],
    conditions: RaceConditions,
) -> RaceState:
    """Race state at lights out."""
    return RaceState(
        current_lap=1,
        drivers=grid,
        track_temp=conditions.track_temp,
        air_temp=conditions.air_temp,
        rain_probability=conditions.rain_probability,
        safety_car_probability=SAFETY_CAR_PROBABILITY,
        is_safety_car=False,
        is_virtual_safety_car=False,
    )
