"""Tests for race setup: circuits, rosters and the starting grid."""

import numpy as np
import pytest

from pitwall.data_loader import (
    GRID_GAP,
    SKILL_COLUMNS,
    build_race_config,
    build_starting_grid,
    default_roster,
    default_roster_frame,
    drivers_from_frame,
    get_circuit,
    initial_race_state,
    load_roster,
)
from pitwall.tyres import UnknownCompoundError
from pitwall.weather import FALLBACK_CONDITIONS


class TestCircuits:
    """Tests for the circuit catalogue and race config."""

    def test_get_circuit(self):
        monaco = get_circuit("monaco")
        assert monaco.length_km == pytest.approx(3.337)
        assert monaco.timezone == "Europe/Paris"

    def test_unknown_circuit(self):
        with pytest.raises(ValueError, match="Unknown circuit"):
            get_circuit("nurburgring")

    def test_build_race_config(self):
        config = build_race_config("bahrain", 57)

        assert config.total_laps == 57
        assert config.pit_loss_seconds == 24.0
        assert config.track_base_pace == 91.0
        assert config.track_name == "Bahrain International Circuit"

    def test_invalid_laps(self):
        with pytest.raises(ValueError):
            build_race_config("bahrain", 0)


class TestRoster:
    """Tests for roster loading and validation."""

    def test_default_roster(self):
        drivers = default_roster()

        assert len(drivers) == 10
        ver = next(d for d in drivers if d.id == "ver")
        assert ver.skills.consistency == 0.98
        assert ver.number == 1

    def test_missing_columns(self):
        df = default_roster_frame().drop(columns=["aggression"])

        with pytest.raises(ValueError, match="missing columns"):
            drivers_from_frame(df)

    def test_skill_out_of_range(self):
        df = default_roster_frame()
        df.loc[0, "consistency"] = 1.5

        with pytest.raises(ValueError, match="consistency"):
            drivers_from_frame(df)

    def test_optional_presentation_columns(self):
        df = default_roster_frame()[["id", "name"] + SKILL_COLUMNS]

        drivers = drivers_from_frame(df)

        assert drivers[0].team == ""
        assert drivers[0].number == 0

    def test_load_roster_csv(self, tmp_path):
        path = tmp_path / "roster.csv"
        default_roster_frame().head(3).to_csv(path, index=False)

        drivers = load_roster(path)

        assert [d.id for d in drivers] == ["ver", "nor", "lec"]


class TestStartingGrid:
    """Tests for qualifying and grid formation."""

    def test_grid_layout(self):
        grid = build_starting_grid(default_roster(), "ver", "C5", np.random.default_rng(42))

        assert [d.position for d in grid] == list(range(1, 11))
        assert [d.gap_to_leader for d in grid] == [i * GRID_GAP for i in range(10)]
        assert all(d.tyre_age == 3 for d in grid)
        assert all(d.status == "OnTrack" for d in grid)

    def test_hero_start_tyre(self):
        grid = build_starting_grid(default_roster(), "ham", "C5", np.random.default_rng(1))

        for d in grid:
            assert d.current_tyre == ("C5" if d.id == "ham" else "C3")

    def test_qualifying_follows_pace(self):
        """Pace gaps far larger than the noise decide the grid."""
        grid = build_starting_grid(default_roster(), "ver", rng=np.random.default_rng(0))
        order = [d.id for d in grid]

        assert order.index("ver") < order.index("tsu")
        assert order.index("nor") < order.index("alb")

    def test_unknown_hero(self):
        with pytest.raises(ValueError):
            build_starting_grid(default_roster(), "sch")

    def test_unknown_start_tyre(self):
        with pytest.raises(UnknownCompoundError):
            build_starting_grid(default_roster(), "ver", "C7")

    def test_initial_state(self):
        grid = build_starting_grid(default_roster(), "ver", rng=np.random.default_rng(0))
        state = initial_race_state(grid, FALLBACK_CONDITIONS)

        assert state.current_lap == 1
        assert state.air_temp == 22.0
        assert state.track_temp == 34.0
        assert state.rain_probability == 0.1
        assert state.safety_car_probability == 0.05
        assert not state.is_safety_car
