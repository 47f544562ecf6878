"""Visualization module for the Pitwall race strategy engine.

F1-themed plotly figures for the pit wall: tyre performance projections,
finishing-position distributions, the live gap chart and lap times.
"""

import logging
from collections import Counter

import pandas as pd
import plotly.graph_objects as go

from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.models import ProjectionSummary, RaceState, StrategyOption

logger = logging.getLogger(__name__)

F1_RED = "#FF1E1E"
F1_BLUE = "#1E90FF"
F1_GREEN = "#00D856"
F1_YELLOW = "#FFA800"
F1_PURPLE = "#9B4DFF"
F1_COLORS = [F1_RED, F1_BLUE, F1_GREEN, F1_YELLOW, F1_PURPLE]


def _apply_layout(fig: go.Figure, title: str, x_title: str, y_title: str, config: SimulationConfig) -> None:
    fig.update_layout(
        title=dict(text=title, font=dict(size=20, color="white")),
        xaxis=dict(title=x_title, gridcolor="rgba(255,255,255,0.1)", showgrid=True),
        yaxis=dict(title=y_title, gridcolor="rgba(255,255,255,0.1)", showgrid=True),
        template=config.plot_theme,
        width=config.plot_width,
        height=config.plot_height,
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        font=dict(color="white"),
    )


def plot_degradation_projection(
    projection: pd.DataFrame,
    strategies: list[StrategyOption],
    config: SimulationConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Plot projected tyre performance for each candidate strategy."""
    fig = go.Figure()

    for idx, strat in enumerate(strategies):
        if strat.id not in projection.columns:
            continue
        color = F1_COLORS[idx % len(F1_COLORS)]
        fig.add_trace(
            go.Scatter(
                x=projection["lap"],
                y=projection[strat.id],
                mode="lines",
                name=f"{strat.name} (L{strat.pit_lap} {strat.target_compound})",
                line=dict(width=3, color=color),
                hovertemplate="<b>%{fullData.name}</b><br>"
                + "Lap %{x}<br>"
                + "Performance: %{y:.1f}%<extra></extra>",
            )
        )

    _apply_layout(fig, "Tyre Performance Projection", "Lap", "Performance (%)", config)
    fig.update_layout(hovermode="x unified", yaxis_range=[0, 105])
    return fig


def plot_finish_distribution(
    summary: ProjectionSummary,
    hero_id: str,
    config: SimulationConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Plot how often the hero finished in each position across iterations."""
    counts = Counter(r.final_positions[hero_id] for r in summary.results)
    positions = sorted(counts)
    share = [counts[p] / summary.iterations * 100.0 for p in positions] if summary.iterations else []

    colors = [F1_GREEN if p == 1 else F1_BLUE if p <= 3 else F1_RED for p in positions]

    fig = go.Figure(
        go.Bar(
            x=[f"P{p}" for p in positions],
            y=share,
            marker=dict(color=colors, line=dict(color="white", width=1)),
            hovertemplate="<b>%{x}</b><br>%{y:.1f}% of simulations<extra></extra>",
        )
    )

    _apply_layout(
        fig,
        f"Projected Finish (win {summary.win_probability:.1f}%, "
        f"podium {summary.podium_probability:.1f}%)",
        "Finishing Position",
        "Share of Simulations (%)",
        config,
    )
    fig.update_layout(showlegend=False)
    return fig


def plot_gap_chart(
    state: RaceState,
    hero_id: str,
    config: SimulationConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Horizontal bar chart of gap to leader for the current standings."""
    standings = state.standings()

    fig = go.Figure(
        go.Bar(
            x=[d.gap_to_leader for d in standings],
            y=[f"P{d.position} {d.name}" for d in standings],
            orientation="h",
            marker=dict(color=[F1_RED if d.id == hero_id else d.color for d in standings]),
            text=[f"{d.current_tyre} ({d.tyre_age})" for d in standings],
            hovertemplate="<b>%{y}</b><br>Gap: +%{x:.3f}s<extra></extra>",
        )
    )

    _apply_layout(fig, f"Lap {state.current_lap} - Gap to Leader", "Gap (seconds)", "", config)
    fig.update_layout(yaxis=dict(autorange="reversed"), showlegend=False)
    return fig


def plot_lap_times(
    state: RaceState,
    driver_ids: list[str],
    config: SimulationConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Plot lap time traces for the selected drivers."""
    fig = go.Figure()

    for driver_id in driver_ids:
        driver = state.driver(driver_id)
        fig.add_trace(
            go.Scatter(
                x=list(range(1, len(driver.lap_times) + 1)),
                y=list(driver.lap_times),
                mode="lines+markers",
                name=driver.name,
                line=dict(width=2, color=driver.color),
            )
        )

    _apply_layout(fig, "Lap Times", "Lap", "Lap Time (seconds)", config)
    fig.update_layout(hovermode="x unified")
    return fig
