"""Configuration module for the Pitwall race strategy engine."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for race simulation and strategy projection.

    Holds the tunable constants of the lap-by-lap advancer and the Monte Carlo
    projector. Lap-time physics constants live in ``pitwall.lap_model``.
    """

    # Monte Carlo settings
    n_simulations: int = 200
    random_seed: int = 42
    n_workers: int = 1  # >1 runs iterations in a process pool
    show_progress: bool = False
    start_gap_sigma: float = 0.2  # seconds, per-iteration gap perturbation

    # Pit decision settings
    pit_in_lap_penalty: float = 4.5  # seconds lost on the in-lap
    hero_box_fraction: float = 0.95  # hero boxes past this share of max life
    ai_box_fraction_low: float = 0.9
    ai_box_fraction_high: float = 1.1
    clean_air_discount: float = 0.5  # seconds regained on pit exit

    # Race settings
    fuel_burn_per_lap: float = 1.7  # kg
    rain_threshold: float = 0.3  # rain probability above which the track is wet
    rain_walk_step: float = 0.05  # max swing of the rain random walk per lap

    # Position shuffle
    shuffle_bias: float = 0.45
    shuffle_aggression_weight: float = 0.02
    shuffle_scale: float = 0.8

    # Rubber band (keeps aggressive drivers from running away in projections)
    rubber_band_aggression: float = 0.9
    rubber_band_gap: float = 2.0  # seconds
    rubber_band_correction: float = 0.1  # seconds

    # Session settings
    report_refresh_laps: int = 5
    tyre_warning_laps: int = 3  # laps before max life that raise a warning
    halt_on_tyre_failure: bool = True

    # Output settings
    output_dir: Path = field(default_factory=lambda: Path("outputs"))
    plot_width: int = 1200
    plot_height: int = 600
    plot_theme: str = "plotly_dark"

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.output_dir = Path(self.output_dir)

        if self.n_simulations < 0:
            raise ValueError("n_simulations cannot be negative")
        if self.n_workers < 1:
            raise ValueError("n_workers must be at least 1")
        if self.start_gap_sigma < 0:
            raise ValueError("start_gap_sigma cannot be negative")
        if self.ai_box_fraction_low > self.ai_box_fraction_high:
            raise ValueError("ai_box_fraction_low must not exceed ai_box_fraction_high")
        if not 0.0 <= self.rain_threshold <= 1.0:
            raise ValueError("rain_threshold must be within [0, 1]")
        if self.report_refresh_laps < 1:
            raise ValueError("report_refresh_laps must be positive")

        logger.debug("Configuration initialized successfully")


DEFAULT_CONFIG = SimulationConfig()
