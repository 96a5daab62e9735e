"""
PLAYCHECK - Playability Check Flow

Runs the dynamic simulation and the static analysis over one script and
folds them into a single verdict for the publishing step.

Stages:
  Static Analysis → Simulation → Verdict → (optional) Artifacts

Artifacts written when an output directory is given:
  simulation_results.json, static_analysis.json, playability_report.txt
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from config.script_schema import Script, load_script
from config.settings import PlaycheckConfig
from sim_engine.playability import (
    SimulationConfig, analyze_clearability, calculate_playability_score, detect_bugs,
    generate_report, rating_for_score, verify_playability,
)

logger = logging.getLogger("playcheck.flow")
console = Console()


def emit(event_type: str, **data):
    """Emit structured log events for progress consumers."""
    payload = json.dumps({"event": event_type, **data})
    logger.info(f"[EMIT] {payload}")


def run_playability_check(script: Script | dict | str, config: Optional[SimulationConfig] = None,
                          output_dir: Optional[str | Path] = None, quiet: bool = False) -> dict:
    """Simulate + analyze one script and return the combined verdict.

    Args:
        script: Script model, dict, or JSON string
        config: Trial settings (defaults from PlaycheckConfig)
        output_dir: Where to write JSON/text artifacts; nothing is written if None
        quiet: Suppress console panels (logging still happens)
    """
    script = load_script(script)
    config = config or SimulationConfig()
    started = datetime.now().isoformat()

    if not quiet:
        console.print(Panel(
            f"[bold]🎮 Playability Check[/bold]\n\n"
            f"Rules: {len(script.rules)}\n"
            f"Trials: {config.num_trials}\n"
            f"Max Steps: {config.max_steps}\n"
            f"Seed: {config.random_seed if config.random_seed is not None else 'random'}",
            title="Playability Check Starting", border_style="cyan",
        ))

    # ══════════════════════════════════════════════════
    # STAGE 1: Static Analysis
    # ══════════════════════════════════════════════════
    emit("stage_start", name="Static Analysis", num=0)
    clearability = analyze_clearability(script)
    bugs = detect_bugs(script)
    score = calculate_playability_score(script)
    rating = rating_for_score(score)
    emit("stage_done", name="Static Analysis", score=score, bugs=len(bugs))

    # ══════════════════════════════════════════════════
    # STAGE 2: Simulation
    # ══════════════════════════════════════════════════
    emit("stage_start", name="Simulation", num=1)
    simulation = verify_playability(script, config)
    emit("stage_done", name="Simulation", clearable=simulation.clearable,
         success_rate=round(simulation.success_rate, 4))

    # ══════════════════════════════════════════════════
    # STAGE 3: Verdict
    # ══════════════════════════════════════════════════
    playable = simulation.clearable and score >= PlaycheckConfig.PASS_SCORE
    verdict = {
        "playable": playable,
        "score": score,
        "rating": rating,
        "pass_score": PlaycheckConfig.PASS_SCORE,
        "simulation": simulation.to_dict(),
        "static_analysis": {
            "clearability": clearability.to_dict(),
            "bugs": bugs,
        },
        "config": {
            "max_steps": config.max_steps,
            "num_trials": config.num_trials,
            "random_seed": config.random_seed,
        },
        "started_at": started,
        "completed_at": datetime.now().isoformat(),
    }
    if playable:
        logger.info(f"Playable: score {score}/100 ({rating}), "
                    f"success rate {simulation.success_rate * 100:.0f}%")
    else:
        logger.warning(f"Not playable: score {score}/100 ({rating}), "
                       f"clearable={simulation.clearable}")

    if not quiet:
        status = "[green]✅ PLAYABLE[/green]" if playable else "[red]❌ NOT PLAYABLE[/red]"
        console.print(Panel(
            f"{status}\n\n{simulation.summary()}\n  Score:       {score}/100 ({rating})",
            title="Playability Verdict", border_style="green" if playable else "red",
        ))

    # ══════════════════════════════════════════════════
    # STAGE 4: Artifacts
    # ══════════════════════════════════════════════════
    if output_dir is not None:
        od = Path(output_dir)
        od.mkdir(parents=True, exist_ok=True)
        (od / "simulation_results.json").write_text(simulation.to_json(), encoding="utf-8")
        (od / "static_analysis.json").write_text(
            json.dumps(verdict["static_analysis"] | {"score": score, "rating": rating}, indent=2),
            encoding="utf-8")
        (od / "playability_report.txt").write_text(generate_report(script), encoding="utf-8")
        verdict["output_dir"] = str(od)
        emit("artifacts_written", path=str(od))

    return verdict
