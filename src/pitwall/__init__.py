"""
Pitwall: Race Simulation + Pit Strategy Engine

A lap-by-lap race simulation and strategy engine for Formula 1 races with:
- Stochastic lap time model (tyre wear, fuel, driver skill, weather)
- Race state advancer with autonomous rival pit stops
- Monte Carlo projection of win and podium probability
- Candidate pit strategies and tyre performance projection
"""

__version__ = "0.1.0"

from pitwall import (
    config,
    data_loader,
    degradation,
    lap_model,
    models,
    monte_carlo,
    session,
    simulator,
    strategy,
    tyres,
    viz,
    weather,
)

__all__ = [
    "config",
    "data_loader",
    "degradation",
    "lap_model",
    "models",
    "monte_carlo",
    "session",
    "simulator",
    "strategy",
    "tyres",
    "viz",
    "weather",
]
