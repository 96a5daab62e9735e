"""
PLAYCHECK - Trial Aggregator

Runs the rule interpreter N times, each trial with its own random source,
and merges the per-trial outcomes into one SimulationResult.

Usage:
    from sim_engine.playability import SimulationConfig, verify_playability
    result = verify_playability(script, SimulationConfig(max_steps=500, num_trials=20, random_seed=7))
    print(result.summary())
"""

import logging
import random
import statistics

from config.errors import InvalidConfiguration
from config.script_schema import Script, load_script
from sim_engine.playability.base import SimulationConfig, SimulationResult, append_unique
from sim_engine.playability.interpreter import simulate_single_game

logger = logging.getLogger("playcheck.sim")


def trial_rng(config: SimulationConfig, trial_index: int) -> random.Random:
    """Independent random source for one trial (seed + i when seeded)."""
    if config.random_seed is None:
        return random.Random()
    return random.Random(config.random_seed + trial_index)


def aggregate_results(results: list[SimulationResult]) -> SimulationResult:
    """Merge trial results: OR for clearable, means for steps/difficulty,
    first-occurrence-ordered union for issues and bugs."""
    if not results:
        raise InvalidConfiguration("Cannot aggregate zero simulation results")

    all_steps = [r.average_steps for r in results]
    issues: list[str] = []
    bugs: list[str] = []
    for r in results:
        for issue in r.issues:
            append_unique(issues, issue)
        for bug in r.bugs:
            append_unique(bugs, bug)

    return SimulationResult(
        clearable=any(r.clearable for r in results),
        average_steps=statistics.mean(all_steps),
        min_steps=min(all_steps),
        max_steps=max(all_steps),
        success_rate=sum(1 for r in results if r.clearable) / len(results),
        estimated_difficulty=statistics.mean(r.estimated_difficulty for r in results),
        issues=issues,
        bugs=bugs,
        trials=len(results),
    )


def verify_playability(script: Script, config: SimulationConfig = None) -> SimulationResult:
    """Simulate ``config.num_trials`` independent games and aggregate them."""
    script = load_script(script)
    config = config or SimulationConfig()
    logger.info(f"Simulating gameplay: {len(script.rules)} rules, "
                f"{config.num_trials} trials x {config.max_steps} max steps")

    results = [
        simulate_single_game(script, config, rng=trial_rng(config, i))
        for i in range(config.num_trials)
    ]
    aggregated = aggregate_results(results)

    logger.info(f"Clearable: {'Yes' if aggregated.clearable else 'No'} | "
                f"success rate {aggregated.success_rate * 100:.0f}% | "
                f"difficulty {aggregated.estimated_difficulty * 100:.0f}%")
    if aggregated.issues:
        logger.warning(f"Issues found: {len(aggregated.issues)}")
    return aggregated
