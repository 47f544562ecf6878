"""Adapter for the external weather oracle.

The oracle is any callable taking ``(circuit_id, race_start)`` and returning
a mapping with ``airTemp`` and ``rainProb`` (and optionally ``trackTemp``).
Resolution never fails: a missing oracle, an exception or an incomplete
answer falls back to caller-supplied defaults.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

WeatherOracle = Callable[[str, Optional[datetime]], Mapping[str, Any]]


@dataclass(frozen=True)
class RaceConditions:
    air_temp: float  # Celsius
    track_temp: float  # Celsius
    rain_probability: float  # 0-1


FALLBACK_CONDITIONS = RaceConditions(air_temp=22.0, track_temp=34.0, rain_probability=0.1)


def track_temp_offset(rain_probability: float) -> float:
    """Track temperature above air temperature for the given rain risk.

    Dry asphalt in the sun runs well above air temperature; cloud cover and
    rain bring it close to it.
    """
    if rain_probability >= 0.5:
        return 1.0
    if rain_probability >= 0.2:
        return 6.0
    return 12.0


def resolve_conditions(
    oracle: Optional[WeatherOracle],
    circuit_id: str,
    race_start: Optional[datetime] = None,
    fallback: RaceConditions = FALLBACK_CONDITIONS,
) -> RaceConditions:
    """Ask the oracle for race conditions, falling back on any failure."""
    if oracle is None:
        logger.info(f"No weather oracle configured for {circuit_id}, using fallback conditions")
        return fallback

    try:
        data = oracle(circuit_id, race_start) or {}
        air_temp = float(data.get("airTemp", fallback.air_temp))
        rain = min(1.0, max(0.0, float(data.get("rainProb", fallback.rain_probability))))
        track_temp = data.get("trackTemp")
        if track_temp is None:
            track_temp = air_temp + track_temp_offset(rain)
        track_temp = float(track_temp)
    except Exception as e:
        logger.warning(f"Weather oracle failed for {circuit_id}: {e}")
        return fallback

    return RaceConditions(air_temp=air_temp, track_temp=track_temp, rain_probability=rain)
