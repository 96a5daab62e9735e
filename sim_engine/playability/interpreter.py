"""
PLAYCHECK - Rule Interpreter

Replays a rule script against a synthetic game state, one tick at a time,
until the game is won, lost, or runs out of steps.

Per tick:
  1. step / timer advance together
  2. every rule's condition is evaluated against the current state
  3. triggered actions run in script order, stopping early once the game ends
  4. with probability 0.10 a simulated player touches a random touch-rule
     target, running that rule's action without re-checking its condition
"""

import logging
import random
from typing import Callable, Optional

from config.script_schema import Rule, Script, load_script
from sim_engine.playability.base import (
    GameState, PLAYER_ACTION_PROBABILITY, SimulationConfig, SimulationResult,
    TIMEOUT_BUG, TIMEOUT_ISSUE, append_unique, estimate_difficulty_from_steps,
)
from sim_engine.playability.rules import evaluate_rules, execute_action

logger = logging.getLogger("playcheck.sim")


def run_rule_action(rule: Rule, state: GameState, rng, bugs: list) -> None:
    """Execute a rule's action; any fault is recorded as a bug, not raised."""
    try:
        execute_action(rule.action, state, rng, default_object_id=rule.target_object_id)
    except Exception as e:
        logger.debug(f"Rule {rule.id}: action {rule.action_type} failed: {e}")
        append_unique(bugs, f"Error executing action {rule.action_type}: {e}")


def simulate_player_action(script: Script, state: GameState, rng, bugs: list) -> Optional[Rule]:
    """Pretend the player touched something: fire one touch rule at random."""
    touch_rules = script.touch_rules
    if not touch_rules:
        return None
    rule = touch_rules[rng.randrange(len(touch_rules))]
    run_rule_action(rule, state, rng, bugs)
    return rule


def simulate_single_game(script: Script, config: SimulationConfig = None, rng=None,
                         on_tick: Callable[[GameState], None] = None) -> SimulationResult:
    """Run one trial to a terminal state.

    Args:
        script: Rules to replay (never mutated)
        config: max_steps bounds the loop; num_trials is ignored here
        rng: random.Random-compatible source; a fresh one seeded from
             config.random_seed is created when omitted
        on_tick: optional observer called with the state after every tick
    """
    script = load_script(script)
    config = config or SimulationConfig()
    if rng is None:
        rng = random.Random(config.random_seed)

    state = GameState()
    issues: list[str] = []
    bugs: list[str] = []

    while not state.terminated and state.step < config.max_steps:
        state.advance()

        for rule in evaluate_rules(script, state, rng):
            run_rule_action(rule, state, rng, bugs)
            if state.terminated:
                break

        if rng.random() < PLAYER_ACTION_PROBABILITY:
            simulate_player_action(script, state, rng, bugs)

        if on_tick is not None:
            on_tick(state)

    if state.step >= config.max_steps and not state.terminated:
        append_unique(issues, TIMEOUT_ISSUE)
        append_unique(bugs, TIMEOUT_BUG)

    return SimulationResult(
        clearable=state.won,
        average_steps=state.step,
        min_steps=state.step,
        max_steps=state.step,
        success_rate=1.0 if state.won else 0.0,
        estimated_difficulty=estimate_difficulty_from_steps(state.step),
        issues=issues,
        bugs=bugs,
        trials=1,
        final_state=state,
    )
