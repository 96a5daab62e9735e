"""
PLAYCHECK - Playability Simulator

Replays author-defined rule scripts to estimate whether a mini-game can be
cleared, how hard it is, and whether its rules contain logical defects.

Usage:
    from config.script_schema import load_script_file
    from sim_engine.playability import SimulationConfig, verify_playability, generate_report
    script = load_script_file("game.json")
    result = verify_playability(script, SimulationConfig(max_steps=1000, num_trials=10))
    print(result.summary())
    print(generate_report(script))
"""

from sim_engine.playability.base import (
    ClearabilityResult, GameState, SimulationConfig, SimulationResult,
    estimate_difficulty_from_steps,
)
from sim_engine.playability.rules import check_condition, evaluate_rules, execute_action
from sim_engine.playability.interpreter import simulate_single_game
from sim_engine.playability.aggregator import aggregate_results, verify_playability
from sim_engine.playability.analyzer import (
    analyze_clearability, calculate_playability_score, check_infinite_loop_risk,
    detect_bugs, generate_report, rating_for_score,
)

__all__ = [
    "ClearabilityResult",
    "GameState",
    "SimulationConfig",
    "SimulationResult",
    "aggregate_results",
    "analyze_clearability",
    "calculate_playability_score",
    "check_condition",
    "check_infinite_loop_risk",
    "detect_bugs",
    "estimate_difficulty_from_steps",
    "evaluate_rules",
    "execute_action",
    "generate_report",
    "rating_for_score",
    "simulate_single_game",
    "verify_playability",
]
