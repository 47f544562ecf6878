"""Command-line interface for the Pitwall race strategy engine.

Commands:
- race: simulate a full race with scripted hero pit stops
- project: Monte Carlo projection from a given lap
- strategies: candidate strategies and tyre performance projection
- recommend: tyre recommendation for the given conditions
- theoretical: theoretical qualifying lap for a driver and compound
"""

import argparse
import json
import logging
import sys
import uuid
from typing import Optional

from pitwall import config as cfg
from pitwall import data_loader, degradation, lap_model, report, simulator, strategy, tyres
from pitwall.monte_carlo import run_projection
from pitwall.session import RaceSession

logger = logging.getLogger(__name__)


def parse_box_laps(values: Optional[list[str]]) -> dict[int, Optional[str]]:
    """Parse ``LAP`` or ``LAP:COMPOUND`` box instructions."""
    box_laps: dict[int, Optional[str]] = {}
    for value in values or []:
        lap_str, _, compound = value.partition(":")
        compound = compound.upper() or None
        if compound is not None:
            tyres.get_compound(compound)
        box_laps[int(lap_str)] = compound
    return box_laps


def _sim_config(args: argparse.Namespace) -> cfg.SimulationConfig:
    return cfg.SimulationConfig(
        n_simulations=args.n_sims,
        random_seed=args.seed,
        n_workers=getattr(args, "workers", 1),
        show_progress=getattr(args, "verbose", False),
        halt_on_tyre_failure=not getattr(args, "no_halt", False),
    )


def _start_session(args: argparse.Namespace, sim_config: cfg.SimulationConfig) -> RaceSession:
    drivers = data_loader.load_roster(args.roster) if args.roster else None
    return RaceSession.start(
        circuit_id=args.circuit,
        total_laps=args.laps,
        hero_id=args.driver,
        drivers=drivers,
        hero_start_tyre=args.start_tyre.upper(),
        sim_config=sim_config,
    )


def _advance_to(session: RaceSession, lap: int, box_laps: dict[int, Optional[str]]) -> None:
    """Tick the session without reports until it reaches ``lap``."""
    target = min(lap, session.config.total_laps)
    while session.state.current_lap < target and not session.critical_failure:
        current = session.state.current_lap
        if current in box_laps:
            session.request_box(box_laps[current])
        session.tick()


def run_race(args: argparse.Namespace) -> int:
    """Simulate a full race and write summary + report."""
    try:
        sim_config = _sim_config(args)
        session = _start_session(args, sim_config)
        box_laps = parse_box_laps(args.box)

        final_state = session.run(box_laps=box_laps, iterations=args.n_sims)
        classification = simulator.classify_race(final_state)

        print(f"\n{'='*80}")
        print(f"RACE RESULT: {session.config.track_name} ({session.config.total_laps} laps)")
        print(f"{'='*80}\n")
        if session.critical_failure:
            print(f"Race halted on lap {final_state.current_lap}: tyre failure for {args.driver}\n")
        print(classification.to_string(index=False))

        run_id = args.run_id or str(uuid.uuid4())[:8]
        output_dir = sim_config.output_dir / run_id
        output_dir.mkdir(parents=True, exist_ok=True)

        summary = {
            "circuit": session.config.circuit_id,
            "total_laps": session.config.total_laps,
            "driver": args.driver,
            "final_lap": final_state.current_lap,
            "critical_failure": session.critical_failure,
            "classification": classification.to_dict("records"),
        }
        json_path = output_dir / "summary.json"
        with open(json_path, "w") as f:
            json.dump(summary, f, indent=2, default=str)
        logger.info(f"Summary saved to: {json_path}")

        if session.report is not None:
            report.generate_report(
                final_state,
                session.config,
                args.driver,
                session.report,
                sim_config=sim_config,
                output_path=output_dir / "report.html",
            )

        logger.info(f"Race complete! Output: {output_dir}")
        session.close()
        return 0

    except Exception as e:
        logger.error(f"Race simulation failed: {e}", exc_info=args.verbose)
        return 1


def run_projection_command(args: argparse.Namespace) -> int:
    """Project the hero's race outcome from a given lap."""
    try:
        sim_config = _sim_config(args)
        session = _start_session(args, sim_config)
        _advance_to(session, args.lap, parse_box_laps(args.box))

        summary = run_projection(
            session.state, session.config, args.driver, args.n_sims, sim_config=sim_config
        )

        print(f"\n{'='*80}")
        print(f"PROJECTION: {args.driver} from lap {summary.from_lap} of {session.config.total_laps}")
        print(f"{'='*80}\n")
        print(f"Current Position:   P{session.hero.position}")
        print(f"Win Probability:    {summary.win_probability:.1f}%")
        print(f"Podium Probability: {summary.podium_probability:.1f}%")
        print(f"Average Finish:     P{summary.avg_finish:.2f}")
        print(f"Simulations:        {summary.iterations}")
        return 0

    except Exception as e:
        logger.error(f"Projection failed: {e}", exc_info=args.verbose)
        return 1


def run_strategies(args: argparse.Namespace) -> int:
    """Print candidate strategies and write an HTML report."""
    try:
        sim_config = _sim_config(args)
        session = _start_session(args, sim_config)
        _advance_to(session, args.lap, parse_box_laps(args.box))

        projection = run_projection(
            session.state, session.config, args.driver, args.n_sims, sim_config=sim_config
        )
        strategy_report = strategy.build_strategy_report(
            session.state, session.config, args.driver, projection
        )
        print(strategy.strategy_summary(strategy_report))

        perf = degradation.project_degradation(
            session.state.current_lap, session.config.total_laps, strategy_report.strategies
        )
        print("\nTyre performance (%):")
        print(perf.to_string(index=False))

        run_id = args.run_id or str(uuid.uuid4())[:8]
        output_dir = sim_config.output_dir / run_id
        report.generate_report(
            session.state,
            session.config,
            args.driver,
            strategy_report,
            projection,
            sim_config,
            output_dir / "report.html",
        )
        return 0

    except Exception as e:
        logger.error(f"Strategy generation failed: {e}", exc_info=args.verbose)
        return 1


def run_recommend(args: argparse.Namespace) -> int:
    compound = tyres.get_compound(tyres.recommend_compound(args.rain, args.air_temp))
    print(f"Recommended compound: {compound.name} ({compound.id})")
    return 0


def run_theoretical(args: argparse.Namespace) -> int:
    """Theoretical qualifying lap: low fuel, fresh tyres, no noise."""
    try:
        circuit = data_loader.get_circuit(args.circuit)
        compound = tyres.get_compound(args.compound.upper())
        drivers = {d.id: d for d in data_loader.default_roster()}
        if args.driver not in drivers:
            raise ValueError(f"Unknown driver: {args.driver}")

        seconds = lap_model.theoretical_lap_time(
            circuit.base_lap_time, drivers[args.driver].skills.base_pace, compound.base_pace_delta
        )
        print(f"{circuit.name} / {args.driver} / {compound.name}: {lap_model.format_lap_time(seconds)}")
        return 0

    except Exception as e:
        logger.error(f"Theoretical lap failed: {e}", exc_info=args.verbose)
        return 1


def _add_race_arguments(parser: argparse.ArgumentParser, with_lap: bool) -> None:
    parser.add_argument("--circuit", type=str, required=True, help="Circuit id (e.g. bahrain)")
    parser.add_argument("--laps", type=int, required=True, help="Race length in laps")
    parser.add_argument("--driver", type=str, required=True, help="Hero driver id (e.g. ver)")
    parser.add_argument("--start-tyre", type=str, default="C3", help="Hero starting compound")
    parser.add_argument("--roster", type=str, help="Roster CSV (defaults to the built-in grid)")
    parser.add_argument(
        "--box",
        type=str,
        action="append",
        metavar="LAP[:COMPOUND]",
        help="Box the hero on this lap (repeatable)",
    )
    if with_lap:
        parser.add_argument("--lap", type=int, default=1, help="Lap to project from")
    parser.add_argument("--n-sims", type=int, default=200, help="Monte Carlo iterations")
    parser.add_argument("--workers", type=int, default=1, help="Parallel projection workers")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--run-id", type=str, help="Custom run identifier")
    parser.add_argument(
        "--no-halt", action="store_true", help="Keep racing when the hero's tyres fail"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pitwall - race simulation and pit strategy engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full race, boxing on lap 20 for mediums
  pitwall race --circuit bahrain --laps 57 --driver ver --box 20:C2

  # Win/podium projection from lap 30
  pitwall project --circuit monza --laps 53 --driver lec --lap 30 --box 18 --n-sims 500

  # Strategy candidates
  pitwall strategies --circuit spa --laps 44 --driver nor --lap 12

  # Tyre recommendation
  pitwall recommend --rain 0.4 --air-temp 18
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    race_parser = subparsers.add_parser("race", help="Simulate a full race")
    _add_race_arguments(race_parser, with_lap=False)

    proj_parser = subparsers.add_parser("project", help="Project win/podium probability")
    _add_race_arguments(proj_parser, with_lap=True)

    strat_parser = subparsers.add_parser("strategies", help="Generate candidate strategies")
    _add_race_arguments(strat_parser, with_lap=True)

    rec_parser = subparsers.add_parser("recommend", help="Recommend a tyre for conditions")
    rec_parser.add_argument("--rain", type=float, required=True, help="Rain probability (0-1)")
    rec_parser.add_argument("--air-temp", type=float, default=22.0, help="Air temperature (C)")

    theo_parser = subparsers.add_parser("theoretical", help="Theoretical qualifying lap")
    theo_parser.add_argument("--circuit", type=str, required=True, help="Circuit id")
    theo_parser.add_argument("--driver", type=str, required=True, help="Driver id")
    theo_parser.add_argument("--compound", type=str, default="C5", help="Compound id")
    theo_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        logging.getLogger("pitwall").setLevel(logging.DEBUG)

    if args.command == "race":
        return run_race(args)
    elif args.command == "project":
        return run_projection_command(args)
    elif args.command == "strategies":
        return run_strategies(args)
    elif args.command == "recommend":
        return run_recommend(args)
    elif args.command == "theoretical":
        return run_theoretical(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
