"""Tests for the lap-by-lap race state advancer."""

import numpy as np
import pytest

from pitwall.config import SimulationConfig
from pitwall.models import Driver, DriverSkills, RaceConfig, RaceState, UnknownDriverError
from pitwall.simulator import (
    advance_lap,
    ai_pit_variance,
    classify_race,
    fuel_load,
    is_race_finished,
    tyre_alert,
)
from pitwall.tyres import UnknownCompoundError

RACE = RaceConfig(circuit_id="bahrain", total_laps=57, track_length_km=5.412, base_lap_time=91.0)


def create_driver(driver_id: str, position: int, **state) -> Driver:
    """Create a driver with neutral skills."""
    defaults = dict(
        number=position * 10 + 2,  # ai_pit_variance == 0
        position=position,
        gap_to_leader=(position - 1) * 0.5,
        current_tyre="C3",
        tyre_age=3,
    )
    defaults.update(state)
    return Driver(id=driver_id, name=driver_id.upper(), skills=DriverSkills(), **defaults)


def create_state(drivers, lap: int = 10, rain: float = 0.0) -> RaceState:
    return RaceState(current_lap=lap, drivers=tuple(drivers), rain_probability=rain)


def create_field(n: int = 6, **hero_state) -> RaceState:
    drivers = [create_driver("hero", 1, **hero_state)]
    drivers += [create_driver(f"d{i}", i) for i in range(2, n + 1)]
    return create_state(drivers)


class TestAdvanceLap:
    """Tests for a single lap of the advancer."""

    def test_positions_are_permutation(self):
        """Positions are 1..N, the leader has gap 0 and gaps are non-negative."""
        state = create_field(8)
        rng = np.random.default_rng(42)

        for _ in range(10):
            state, _ = advance_lap(state, RACE, "hero", rng=rng)
            assert sorted(d.position for d in state.drivers) == list(range(1, 9))
            assert all(d.gap_to_leader >= 0 for d in state.drivers)
            assert state.standings()[0].gap_to_leader == 0.0
            gaps = [d.gap_to_leader for d in state.drivers]
            assert gaps == sorted(gaps)

    def test_lap_counter_and_lap_times(self):
        state = create_field(4)
        new_state, box_processed = advance_lap(state, RACE, "hero", rng=np.random.default_rng(1))

        assert new_state.current_lap == 11
        assert box_processed is False
        assert all(len(d.lap_times) == 1 for d in new_state.drivers)
        assert all(d.tyre_age == 4 for d in new_state.drivers)

    def test_input_not_mutated(self):
        """Advancing returns a new state and leaves the old one alone."""
        state = create_field(4)
        before = state.drivers

        new_state, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(1))

        assert new_state is not state
        assert state.current_lap == 10
        assert state.drivers is before
        assert all(d.lap_times == () for d in state.drivers)

    def test_reproducible_with_seed(self):
        state = create_field(6)
        s1, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(9))
        s2, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(9))

        assert s1 == s2

    def test_unknown_hero_raises(self):
        with pytest.raises(UnknownDriverError):
            advance_lap(create_field(3), RACE, "nobody")

    def test_unknown_hero_compound_raises(self):
        with pytest.raises(UnknownCompoundError):
            advance_lap(create_field(3), RACE, "hero", True, "HYPERSOFT")

    def test_rain_stays_in_range(self):
        state = create_state([create_driver("hero", 1)], rain=1.0)
        rng = np.random.default_rng(5)

        for _ in range(20):
            state, _ = advance_lap(state, RACE, "hero", rng=rng)
            assert 0.0 <= state.rain_probability <= 1.0

    def test_successive_ticks_without_generator_vary(self):
        """Chained ticks without an explicit generator keep drawing new numbers."""
        state = create_state([create_driver("hero", 1), create_driver("d2", 2)], rain=0.5)
        deltas = []

        for _ in range(8):
            new_state, _ = advance_lap(state, RACE, "hero")
            deltas.append(new_state.rain_probability - state.rain_probability)
            state = new_state

        assert len(set(deltas)) > 1
        assert all(abs(d) <= 0.0251 for d in deltas)

    def test_worn_tyres_lose_cliff_time(self):
        """Same seed, worn set past its life laps at least 0.8s slower."""
        worn = create_state([create_driver("hero", 1, tyre_age=29)], lap=30)
        fresh = create_state([create_driver("hero", 1, tyre_age=10)], lap=30)

        worn_state, _ = advance_lap(worn, RACE, "hero", rng=np.random.default_rng(11))
        fresh_state, _ = advance_lap(fresh, RACE, "hero", rng=np.random.default_rng(11))

        worn_lap = worn_state.driver("hero").lap_times[-1]
        fresh_lap = fresh_state.driver("hero").lap_times[-1]
        assert worn_lap - fresh_lap >= 0.8
        assert worn_state.driver("hero").status == "OnTrack"


class TestHeroPitStops:
    """Tests for the externally controlled hero pit cycle."""

    def test_hero_never_pits_autonomously(self):
        """Hero stays out on tyres far past their life."""
        state = create_field(3, tyre_age=40)
        rng = np.random.default_rng(2)

        for _ in range(5):
            state, box_processed = advance_lap(state, RACE, "hero", rng=rng)
            hero = state.driver("hero")
            assert hero.status == "OnTrack"
            assert hero.pit_stops == 0
            assert box_processed is False

    def test_box_request_cycle(self):
        """Box: OnTrack -> Pit (request consumed) -> OnTrack on new tyres."""
        state = create_field(4, tyre_age=20)
        rng = np.random.default_rng(3)

        state, box_processed = advance_lap(state, RACE, "hero", True, None, rng)
        hero = state.driver("hero")
        assert box_processed is True
        assert hero.status == "Pit"
        assert hero.pit_stops == 0
        assert hero.lap_times[-1] == pytest.approx(91.0 + 24.0)

        state, box_processed = advance_lap(state, RACE, "hero", False, None, rng)
        hero = state.driver("hero")
        assert box_processed is False
        assert hero.status == "OnTrack"
        assert hero.pit_stops == 1
        assert hero.current_tyre == "C2"
        assert hero.tyre_age == 0

    def test_box_with_chosen_compound(self):
        state = create_field(3)
        rng = np.random.default_rng(4)

        state, _ = advance_lap(state, RACE, "hero", True, "C5", rng)
        state, _ = advance_lap(state, RACE, "hero", False, "C5", rng)

        assert state.driver("hero").current_tyre == "C5"

    def test_pit_stop_costs_time(self):
        """A stop drops the hero from the lead of a tightly packed field."""
        state = create_field(6)
        rng = np.random.default_rng(6)

        state, _ = advance_lap(state, RACE, "hero", True, None, rng)
        state, _ = advance_lap(state, RACE, "hero", False, None, rng)

        assert state.driver("hero").position == 6


class TestAIPitStops:
    """Tests for the autonomous rival pit policy."""

    def test_pit_variance(self):
        assert ai_pit_variance(0) == -2
        assert ai_pit_variance(4) == 2
        assert ai_pit_variance(7) == 0
        assert ai_pit_variance(44) == 2

    def test_ai_boxes_past_threshold(self):
        """Threshold is max life + variance; number 7 -> 28 laps on C3."""
        rival = create_driver("d2", 2, number=7, tyre_age=29)
        state = create_state([create_driver("hero", 1), rival])

        state, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(0))

        assert state.driver("d2").status == "Pit"

    def test_ai_stays_out_at_threshold(self):
        """Number 5 -> threshold 26 laps; age 26 is not past it."""
        rival = create_driver("d2", 2, number=5, tyre_age=26)
        state = create_state([create_driver("hero", 1), rival])

        state, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(0))

        assert state.driver("d2").status == "OnTrack"

    def test_ai_returns_on_rotation_compound(self):
        rival = create_driver("d2", 2, number=7, tyre_age=29)
        state = create_state([create_driver("hero", 1), rival])
        rng = np.random.default_rng(0)

        state, _ = advance_lap(state, RACE, "hero", rng=rng)
        state, _ = advance_lap(state, RACE, "hero", rng=rng)

        d2 = state.driver("d2")
        assert d2.status == "OnTrack"
        assert d2.current_tyre == "C2"
        assert d2.pit_stops == 1
        assert d2.tyre_age == 0

    def test_ai_fits_inters_in_rain(self):
        rival = create_driver("d2", 2, number=7, tyre_age=29)
        state = create_state([create_driver("hero", 1), rival], rain=0.9)
        rng = np.random.default_rng(0)

        state, _ = advance_lap(state, RACE, "hero", rng=rng)
        state, _ = advance_lap(state, RACE, "hero", rng=rng)

        assert state.driver("d2").current_tyre == "INTER"


class TestRetirements:
    """Tests for retired cars."""

    def test_dnf_passes_through_and_is_last(self):
        retired = create_driver("d2", 2, status="DNF", gap_to_leader=0.0, lap_times=(92.0,))
        state = create_state([create_driver("hero", 1), retired, create_driver("d3", 3)])

        state, _ = advance_lap(state, RACE, "hero", rng=np.random.default_rng(0))

        d2 = state.driver("d2")
        assert d2.position == 3
        assert d2.lap_times == (92.0,)
        assert d2.tyre_age == 3


class TestRaceHelpers:
    """Tests for alerts, fuel and classification."""

    def test_tyre_alert(self):
        assert tyre_alert(create_driver("hero", 1, tyre_age=24)) is None
        assert tyre_alert(create_driver("hero", 1, tyre_age=25)) == "critical"
        assert tyre_alert(create_driver("hero", 1, tyre_age=28)) == "failure"
        assert tyre_alert(create_driver("hero", 1, tyre_age=40, status="Pit")) is None

    def test_tyre_alert_window_configurable(self):
        config = SimulationConfig(tyre_warning_laps=5)
        assert tyre_alert(create_driver("hero", 1, tyre_age=23), config) == "critical"

    def test_fuel_load(self):
        assert fuel_load(57, 1) == pytest.approx(56 * 1.7)
        assert fuel_load(57, 57) == 0.0
        assert fuel_load(57, 60) == 0.0

    def test_race_finished(self):
        assert not is_race_finished(create_field(2), RACE)
        assert is_race_finished(create_state([create_driver("hero", 1)], lap=58), RACE)

    def test_classify_race(self):
        state = create_field(5)
        rng = np.random.default_rng(8)
        for _ in range(3):
            state, _ = advance_lap(state, RACE, "hero", rng=rng)

        df = classify_race(state)

        assert len(df) == 5
        assert list(df["Position"]) == [1, 2, 3, 4, 5]
        assert df["Gap to Leader (s)"].iloc[0] == 0.0
        assert {"Driver", "Compound", "Stops", "Status", "Best Lap (s)"} <= set(df.columns)
