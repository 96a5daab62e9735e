#!/usr/bin/env python3
"""
PLAYCHECK - Playability Check CLI

Usage:
    python -m tools.playability_cli game.json
    python -m tools.playability_cli game.json --trials 50 --max-steps 2000 --seed 7
    python -m tools.playability_cli game.json --report-only
    python -m tools.playability_cli game.json --json --output-dir ./output/game_042

Exit codes: 0 playable, 1 not playable, 2 script/configuration error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table

from config.errors import PlaycheckError
from config.script_schema import load_script_file
from config.settings import OUTPUT_DIR, PlaycheckConfig, configure_logging
from flows.playability_check import run_playability_check
from sim_engine.playability import SimulationConfig, generate_report

logger = logging.getLogger("playcheck.cli")
console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check whether a rule script is playable")
    parser.add_argument("script", type=str, help="Script or editor project JSON file")
    parser.add_argument("--trials", type=int, default=PlaycheckConfig.DEFAULT_NUM_TRIALS,
                        help="Number of simulated trials")
    parser.add_argument("--max-steps", type=int, default=PlaycheckConfig.DEFAULT_MAX_STEPS,
                        help="Tick limit per trial")
    parser.add_argument("--seed", type=int, default=PlaycheckConfig.DEFAULT_SEED,
                        help="Base random seed (trial i uses seed + i)")
    parser.add_argument("--output-dir", type=str, default=None)
    parser.add_argument("--save", action="store_true",
                        help="Write artifacts under OUTPUT_DIR/<script name>")
    parser.add_argument("--json", action="store_true", help="Print the verdict as JSON")
    parser.add_argument("--report-only", action="store_true",
                        help="Static analysis report only, no simulation")
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def _print_table(verdict: dict) -> None:
    sim = verdict["simulation"]
    table = Table(title="Playability")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Score", f"{verdict['score']}/100 ({verdict['rating']})")
    table.add_row("Clearable", "Yes" if sim["clearable"] else "No")
    table.add_row("Success rate", f"{sim['success_rate'] * 100:.0f}%")
    table.add_row("Difficulty", f"{sim['estimated_difficulty'] * 100:.0f}%")
    table.add_row("Steps (avg/min/max)",
                  f"{sim['average_steps']:.1f} / {sim['min_steps']} / {sim['max_steps']}")
    console.print(table)

    for issue in sim["issues"]:
        console.print(f"[yellow]⚠️  {issue}[/yellow]")
    for bug in sim["bugs"] + verdict["static_analysis"]["bugs"]:
        console.print(f"[red]🐞 {bug}[/red]")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        script = load_script_file(args.script)
        if args.report_only:
            print(generate_report(script))
            return 0
        config = SimulationConfig(max_steps=args.max_steps, num_trials=args.trials,
                                  random_seed=args.seed)
        output_dir = args.output_dir
        if output_dir is None and args.save:
            output_dir = OUTPUT_DIR / Path(args.script).stem
        verdict = run_playability_check(script, config, output_dir=output_dir,
                                        quiet=args.json)
    except PlaycheckError as e:
        logger.error(str(e))
        console.print(f"[red]❌ {e}[/red]")
        return 2

    if args.json:
        print(json.dumps(verdict, indent=2))
    else:
        _print_table(verdict)
    return 0 if verdict["playable"] else 1


if __name__ == "__main__":
    sys.exit(main())
