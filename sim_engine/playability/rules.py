"""
PLAYCHECK - Condition evaluation and action execution

Each condition / action type maps to one small handler. Conditions never
raise: a malformed condition simply does not hold. Actions may raise on
bad payloads (e.g. a non-numeric score delta); the interpreter records
those as bugs and keeps going.

The random source is always passed in explicitly so trials can be seeded
independently.
"""

import logging
import math
from typing import Optional

from config.script_schema import Action, ActionType, Condition, ConditionType, Rule, Script
from sim_engine.playability.base import COLLISION_PROBABILITY, GameState, TOUCH_PROBABILITY

logger = logging.getLogger("playcheck.sim")

DEFAULT_TIMER_THRESHOLD = 10
DEFAULT_SCORE_THRESHOLD = 100
DEFAULT_VARIABLE_THRESHOLD = 0
DEFAULT_OPERATOR = ">="
DEFAULT_RANDOM_VARIABLE = "random"
DEFAULT_RANDOM_RANGE = (0, 100)


def _or_default(value, default):
    return default if value is None else value


def compare(left, operator: str, right) -> bool:
    """Apply one of the supported comparison operators. Unknown → False."""
    try:
        if operator == ">=":
            return left >= right
        if operator == "<=":
            return left <= right
        if operator == "==":
            return strict_equals(left, right)
    except TypeError:
        logger.debug(f"Cannot compare {left!r} {operator} {right!r}")
    return False


def strict_equals(a, b) -> bool:
    """Equality that never treats a bool as the number 0/1."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


# ═══════════════════════════════════════════════════════════════
# Conditions
# ═══════════════════════════════════════════════════════════════

def _game_start(condition: Condition, state: GameState, rng) -> bool:
    return state.step == 1


def _timer(condition: Condition, state: GameState, rng) -> bool:
    # Level crossing: stays true every tick once the threshold is passed
    return compare(state.timer, ">=", _or_default(condition.value, DEFAULT_TIMER_THRESHOLD))


def _score(condition: Condition, state: GameState, rng) -> bool:
    return compare(state.score,
                   _or_default(condition.operator, DEFAULT_OPERATOR),
                   _or_default(condition.value, DEFAULT_SCORE_THRESHOLD))


def _touch(condition: Condition, state: GameState, rng) -> bool:
    return rng.random() < TOUCH_PROBABILITY


def _collision(condition: Condition, state: GameState, rng) -> bool:
    return rng.random() < COLLISION_PROBABILITY


def _object_state(condition: Condition, state: GameState, rng) -> bool:
    obj = state.object_states.get(condition.object_id) or {}
    return strict_equals(obj.get(condition.property_name), condition.value)


def _variable(condition: Condition, state: GameState, rng) -> bool:
    current = state.variables.get(condition.variable_name)
    return compare(_or_default(current, 0),
                   _or_default(condition.operator, DEFAULT_OPERATOR),
                   _or_default(condition.value, DEFAULT_VARIABLE_THRESHOLD))


CONDITION_CHECKS = {
    ConditionType.GAME_START.value: _game_start,
    ConditionType.TIMER.value: _timer,
    ConditionType.SCORE.value: _score,
    ConditionType.TOUCH.value: _touch,
    ConditionType.COLLISION.value: _collision,
    ConditionType.OBJECT_STATE.value: _object_state,
    ConditionType.VARIABLE.value: _variable,
}


def check_condition(condition: Optional[Condition], state: GameState, rng) -> bool:
    """Evaluate one condition. Missing or unknown conditions never hold."""
    if condition is None:
        return False
    check = CONDITION_CHECKS.get(condition.type)
    if check is None:
        return False
    return check(condition, state, rng)


def evaluate_rules(script: Script, state: GameState, rng) -> list[Rule]:
    """Rules whose condition holds right now, in script order."""
    return [rule for rule in script.rules if check_condition(rule.condition, state, rng)]


# ═══════════════════════════════════════════════════════════════
# Actions
# ═══════════════════════════════════════════════════════════════

def _win(action: Action, state: GameState, rng, object_id) -> None:
    state.won = True


def _game_over(action: Action, state: GameState, rng, object_id) -> None:
    state.game_over = True


def _change_score(action: Action, state: GameState, rng, object_id) -> None:
    state.score += _or_default(action.value, 0)


def _set_variable(action: Action, state: GameState, rng, object_id) -> None:
    if not action.variable_name:
        logger.debug("setVariable without variableName ignored")
        return
    state.variables[action.variable_name] = _or_default(action.value, 0)


def _increment_variable(action: Action, state: GameState, rng, object_id) -> None:
    name = action.variable_name
    if not name:
        logger.debug("incrementVariable without variableName ignored")
        return
    current = _or_default(state.variables.get(name), 0)
    state.variables[name] = current + _or_default(action.value, 1)


def _set_object_property(action: Action, state: GameState, rng, object_id) -> None:
    if not object_id or not action.property_name:
        logger.debug("setObjectProperty without target/property ignored")
        return
    state.object_states.setdefault(object_id, {})[action.property_name] = action.value


def _move(action: Action, state: GameState, rng, object_id) -> None:
    if not object_id:
        logger.debug("move without target ignored")
        return
    obj = state.object_states.setdefault(object_id, {"x": 0, "y": 0})
    delta = action.value if isinstance(action.value, dict) else {}
    obj["x"] = _or_default(obj.get("x"), 0) + _or_default(delta.get("x"), 0)
    obj["y"] = _or_default(obj.get("y"), 0) + _or_default(delta.get("y"), 0)


def _randomize(action: Action, state: GameState, rng, object_id) -> None:
    bounds = action.value if isinstance(action.value, dict) else {}
    low = _or_default(bounds.get("min"), DEFAULT_RANDOM_RANGE[0])
    high = _or_default(bounds.get("max"), DEFAULT_RANDOM_RANGE[1])
    name = _or_default(action.variable_name, DEFAULT_RANDOM_VARIABLE)
    state.variables[name] = rng.randint(math.ceil(low), math.floor(high))


ACTION_HANDLERS = {
    ActionType.WIN.value: _win,
    ActionType.GAME_OVER.value: _game_over,
    ActionType.CHANGE_SCORE.value: _change_score,
    ActionType.SET_VARIABLE.value: _set_variable,
    ActionType.INCREMENT_VARIABLE.value: _increment_variable,
    ActionType.SET_OBJECT_PROPERTY.value: _set_object_property,
    ActionType.MOVE.value: _move,
    ActionType.RANDOMIZE.value: _randomize,
}


def execute_action(action: Optional[Action], state: GameState, rng,
                   default_object_id: Optional[str] = None) -> None:
    """Apply one action to the state. Effects and unknown types are no-ops.

    ``default_object_id`` (the rule's targetObjectId) is used when the
    action itself names no target.
    """
    if action is None:
        return
    handler = ACTION_HANDLERS.get(action.type)
    if handler is None:
        return
    handler(action, state, rng, action.object_id or default_object_id)
