"""Tests for the stochastic lap time model."""

import numpy as np
import pytest

from pitwall.lap_model import (
    calculate_lap_time,
    cliff_penalty,
    degradation_multiplier,
    format_lap_time,
    fuel_penalty,
    push_variance,
    theoretical_lap_time,
    tyre_degradation,
    wet_penalty,
)
from pitwall.models import Driver, DriverSkills
from pitwall.tyres import get_compound


class _FixedDraw:
    """Generator stand-in returning a fixed uniform draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self):
        return self.value


def create_driver(**skills) -> Driver:
    return Driver(id="ver", name="Max Verstappen", skills=DriverSkills(**skills))


class TestDegradation:
    """Tests for tyre wear contributions."""

    def test_multiplier_flat_until_seventy_percent(self):
        """Multiplier is exactly 1.0 up to 70% of max life."""
        c3 = get_compound("C3")  # life 28, threshold 19.6

        assert degradation_multiplier(0, c3) == 1.0
        assert degradation_multiplier(19, c3) == 1.0
        assert degradation_multiplier(20, c3) > 1.0

    def test_multiplier_grows_super_linearly(self):
        """Wear past the threshold accelerates."""
        c3 = get_compound("C3")
        step1 = degradation_multiplier(22, c3) - degradation_multiplier(21, c3)
        step2 = degradation_multiplier(26, c3) - degradation_multiplier(25, c3)

        assert step2 > step1

    def test_better_tyre_management_loses_less(self):
        """Good tyre managers lose less time at the same age."""
        c4 = get_compound("C4")

        assert tyre_degradation(10, c4, 1.0) < tyre_degradation(10, c4, 0.5)
        assert tyre_degradation(0, c4, 0.5) == 0.0

    def test_cliff_penalty(self):
        """Cliff only applies past max life."""
        c3 = get_compound("C3")

        assert cliff_penalty(28, c3) == 0.0
        assert cliff_penalty(30, c3) == pytest.approx(1.6)


class TestPenalties:
    """Tests for fuel, wet and push contributions."""

    def test_fuel_penalty(self):
        assert fuel_penalty(100.0) == pytest.approx(3.5)
        assert fuel_penalty(-10.0) == 0.0

    def test_wet_penalty(self):
        """Wet penalty scales with lack of rain skill and is off when dry."""
        assert wet_penalty(0.9, True) == pytest.approx(0.15)
        assert wet_penalty(0.0, True) == pytest.approx(1.5)
        assert wet_penalty(0.5, False) == 0.0

    def test_push_lap_bonus(self):
        """A draw above 0.9 gives the push bonus, scaled by aggression."""
        assert push_variance(1.0, _FixedDraw(0.95)) == pytest.approx(-0.35)
        assert push_variance(0.5, _FixedDraw(0.95)) == pytest.approx(-0.3)
        assert push_variance(1.0, _FixedDraw(0.5)) == 0.0


class TestLapTime:
    """Tests for the full lap time calculation."""

    def test_reproducible_with_seed(self):
        """Same seed gives the same lap."""
        driver = create_driver()
        c3 = get_compound("C3")

        lap1 = calculate_lap_time(driver, c3, 10, 50.0, 91.0, False, np.random.default_rng(7))
        lap2 = calculate_lap_time(driver, c3, 10, 50.0, 91.0, False, np.random.default_rng(7))

        assert lap1 == lap2

    def test_cliff_slows_worn_tyres(self):
        """A set past its life is at least a cliff step slower than a fresh one."""
        driver = create_driver()
        c3 = get_compound("C3")
        fuel = (57 - 30) * 1.7

        worn = calculate_lap_time(driver, c3, 29, fuel, 91.0, False, np.random.default_rng(3))
        fresh = calculate_lap_time(driver, c3, 10, fuel, 91.0, False, np.random.default_rng(3))

        assert worn - fresh >= 0.8

    def test_close_to_reference_pace(self):
        """A consistent driver on fresh tyres and no fuel runs near base + delta."""
        driver = create_driver(base_pace=0.2, consistency=1.0)
        c5 = get_compound("C5")
        rng = np.random.default_rng(42)

        laps = [calculate_lap_time(driver, c5, 0, 0.0, 90.0, False, rng) for _ in range(50)]

        assert np.mean(laps) == pytest.approx(90.2, abs=0.1)

    def test_rain_slows_poor_wet_drivers(self):
        driver = create_driver(wet_weather_ability=0.2)
        c3 = get_compound("C3")

        dry = calculate_lap_time(driver, c3, 5, 20.0, 91.0, False, np.random.default_rng(1))
        wet = calculate_lap_time(driver, c3, 5, 20.0, 91.0, True, np.random.default_rng(1))

        assert wet - dry == pytest.approx(1.2)


class TestFormatting:
    """Tests for theoretical lap and lap time formatting."""

    def test_theoretical_lap(self):
        assert theoretical_lap_time(91.0, 0.05, 0.0) == pytest.approx(91.05)

    def test_format_lap_time(self):
        assert format_lap_time(91.5) == "1:31.500"
        assert format_lap_time(71.25) == "1:11.250"
        assert format_lap_time(59.9996) == "1:00.000"

    def test_format_invalid(self):
        assert format_lap_time(None) == "--:--.---"
        assert format_lap_time(float("nan")) == "--:--.---"
        assert format_lap_time(-1.0) == "--:--.---"
