"""HTML strategy report generation."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Template

from pitwall import viz
from pitwall.config import DEFAULT_CONFIG, SimulationConfig
from pitwall.degradation import project_degradation
from pitwall.lap_model import format_lap_time
from pitwall.models import ProjectionSummary, RaceConfig, RaceState, StrategyReport
from pitwall.simulator import classify_race

logger = logging.getLogger(__name__)

HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>Strategy Report - {{ config.track_name }} Lap {{ report.last_updated_lap }}</title>
    <style>
        body { font-family: Arial; max-width: 1400px; margin: 0 auto; padding: 20px;
               background: #0f0f0f; color: #e0e0e0; }
        h1 { color: #ff1e1e; border-bottom: 3px solid #ff1e1e; }
        h2 { color: #1e90ff; margin-top: 30px; }
        .header { background: #1a1a1a; padding: 20px; border-radius: 10px; margin-bottom: 30px; }
        .recommendation { background: #1a3a1a; padding: 20px; border-radius: 10px;
                         border-left: 5px solid #00ff00; margin: 20px 0; }
        .plot { margin: 30px 0; text-align: center; }
        table { border-collapse: collapse; width: 100%; }
        th, td { padding: 6px 10px; border-bottom: 1px solid #333; text-align: left; }
        .assumptions { background: #2d1a1a; padding: 15px; border-radius: 5px;
                      border-left: 4px solid #ff6b6b; margin: 20px 0; }
    </style>
</head>
<body>
    <div class="header">
        <h1>Pitwall Strategy Report</h1>
        <h2>{{ config.track_name }}</h2>
        <p><strong>Lap:</strong> {{ report.last_updated_lap }} / {{ config.total_laps }}</p>
        <p><strong>Driver:</strong> {{ hero.name }} (P{{ hero.position }}, {{ hero.current_tyre }}, {{ hero.tyre_age }} laps)</p>
        <p><strong>Conditions:</strong> air {{ "%.1f"|format(state.air_temp) }}°C, track {{ "%.1f"|format(state.track_temp) }}°C, rain {{ "%.0f"|format(state.rain_probability * 100) }}%</p>
        <p><strong>Generated:</strong> {{ generation_time }}</p>
    </div>

    <div class="recommendation">
        <h3>Recommended Strategy</h3>
        <p><strong>{{ recommended.name }}</strong>: {{ recommended.description }}</p>
        <p>Win {{ "%.1f"|format(report.win_probability) }}% | Podium {{ "%.1f"|format(report.podium_probability) }}% | Avg finish P{{ "%.2f"|format(report.avg_finish) }}</p>
        {% if report.explanation %}<p>{{ report.explanation }}</p>{% endif %}
    </div>

    <h2>Candidate Strategies</h2>
    <table>
        <tr><th>#</th><th>Strategy</th><th>Pit Lap</th><th>Compound</th><th>Risk</th><th>Plan</th></tr>
        {% for s in report.strategies %}
        <tr><td>{{ loop.index }}</td><td>{{ s.name }}</td><td>{{ s.pit_lap }}</td><td>{{ s.target_compound }}</td><td>{{ s.risk_level }}</td><td>{{ s.description }}</td></tr>
        {% endfor %}
    </table>

    <h2>Tyre Performance Projection</h2>
    <div class="plot">{{ plot_degradation }}</div>

    {% if plot_finish %}
    <h2>Projected Finishing Position</h2>
    <div class="plot">{{ plot_finish }}</div>
    {% endif %}

    <h2>Gap to Leader</h2>
    <div class="plot">{{ plot_gaps }}</div>

    <h2>Classification</h2>
    {{ classification }}

    <div class="assumptions">
        <h3>Modeling Assumptions</h3>
        <ul>
            <li>Monte Carlo projection with {{ report.simulation_count }} iterations</li>
            <li>Pit lane loss: {{ config.pit_loss_seconds }}s</li>
            <li>Rival pit stops follow a tyre-life threshold policy</li>
            <li>No collisions, safety cars or corner-level dynamics modeled</li>
        </ul>
    </div>
</body>
</html>
"""


def generate_report(
    state: RaceState,
    config: RaceConfig,
    hero_id: str,
    report: StrategyReport,
    projection: Optional[ProjectionSummary] = None,
    sim_config: SimulationConfig = DEFAULT_CONFIG,
    output_path: Optional[Path] = None,
) -> str:
    """Generate an HTML strategy report."""
    logger.info("Generating HTML report...")

    hero = state.driver(hero_id)
    degradation = project_degradation(state.current_lap, config.total_laps, report.strategies)

    plot_deg = viz.plot_degradation_projection(degradation, report.strategies, sim_config).to_html(
        include_plotlyjs="cdn", div_id="deg_plot"
    )
    plot_gaps = viz.plot_gap_chart(state, hero_id, sim_config).to_html(
        include_plotlyjs=False, div_id="gap_plot"
    )
    plot_finish = ""
    if projection is not None and projection.iterations:
        plot_finish = viz.plot_finish_distribution(projection, hero_id, sim_config).to_html(
            include_plotlyjs=False, div_id="finish_plot"
        )

    classification = classify_race(state)
    if not classification.empty:
        for col in ["Total Time (s)", "Best Lap (s)"]:
            classification[col] = classification[col].map(format_lap_time)
    classification_html = classification.to_html(index=False, float_format="%.3f")

    recommended = next(
        s for s in report.strategies if s.id == report.recommended_strategy_id
    )

    template = Template(HTML_TEMPLATE)
    html = template.render(
        config=config,
        state=state,
        hero=hero,
        report=report,
        recommended=recommended,
        plot_degradation=plot_deg,
        plot_finish=plot_finish,
        plot_gaps=plot_gaps,
        classification=classification_html,
        generation_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html, encoding="utf-8")
        logger.info(f"Report saved to: {output_path}")

    return html
