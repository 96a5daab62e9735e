#!/usr/bin/env python3
"""
PLAYCHECK - Unit Test Suite (schema, interpreter, aggregator)

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestInterpreter # run specific class

Test categories:
  TestScriptSchema  - loading, first-element narrowing, lenient types
  TestConditions    - per-type condition semantics and defaults
  TestActions       - per-type state mutation and defaults
  TestInterpreter   - tick loop, terminal states, player action, faults
  TestAggregator    - trial merging, seeding, configuration checks
"""

import json
import os
import random
import sys
import tempfile
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.errors import InvalidConfiguration, ScriptLoadError
from config.script_schema import (
    Action, ActionType, Condition, ConditionType, Script, load_script, load_script_file,
)
from config.settings import PlaycheckConfig
from sim_engine.playability import (
    GameState, SimulationConfig, SimulationResult, aggregate_results, check_condition,
    estimate_difficulty_from_steps, evaluate_rules, execute_action, simulate_single_game,
    verify_playability,
)
from sim_engine.playability.aggregator import trial_rng


def rule(cond: dict, act: dict, rule_id: str = "", **extra) -> dict:
    """Editor-format rule dict with one condition and one action."""
    data = {"conditions": [cond], "actions": [act], **extra}
    if rule_id:
        data["id"] = rule_id
    return data


def make_script(*rules) -> Script:
    return load_script({"rules": list(rules)})


class ScriptedRandom:
    """random.Random stand-in that replays fixed draws."""

    def __init__(self, draws=(), default=0.99, pick=0):
        self.draws = list(draws)
        self.default = default
        self.pick = pick
        self.ranges = []

    def random(self):
        return self.draws.pop(0) if self.draws else self.default

    def randrange(self, n):
        self.ranges.append(n)
        return self.pick

    def randint(self, a, b):
        return a


# ============================================================
# Schema
# ============================================================

class TestScriptSchema(unittest.TestCase):
    """Script loading and the first-condition / first-action narrowing."""

    def test_first_elements_are_kept(self):
        script = make_script({
            "id": "r1",
            "conditions": [{"type": "timer", "value": 3}, {"type": "touch"}],
            "actions": [{"type": "win"}, {"type": "gameOver"}],
        })
        r = script.rules[0]
        self.assertEqual(r.condition_type, "timer")
        self.assertEqual(r.condition.value, 3)
        self.assertEqual(r.action_type, "win")

    def test_triggers_conditions_format(self):
        script = make_script({
            "id": "r1",
            "triggers": {"operator": "AND", "conditions": [{"type": "touch"}]},
            "actions": [{"type": "changeScore", "value": 5}],
        })
        self.assertEqual(script.rules[0].condition_type, "touch")
        self.assertEqual(script.rules[0].action.value, 5)

    def test_project_wrapper_and_camel_case_fields(self):
        script = load_script({"script": {"rules": [rule(
            {"type": "objectState", "target": {"objectId": "door"}, "property": "open", "value": True},
            {"type": "setVariable", "variableName": "keys", "value": 2},
            targetObjectId="door",
        )]}})
        r = script.rules[0]
        self.assertEqual(r.condition.object_id, "door")
        self.assertEqual(r.condition.property_name, "open")
        self.assertEqual(r.action.variable_name, "keys")
        self.assertEqual(r.target_object_id, "door")

    def test_bare_string_target(self):
        script = make_script(rule({"type": "objectState", "target": "hero"}, {"type": "win"}))
        self.assertEqual(script.rules[0].condition.object_id, "hero")

    def test_empty_arrays_become_none(self):
        script = make_script({"id": "r1", "conditions": [], "actions": []})
        self.assertIsNone(script.rules[0].condition)
        self.assertIsNone(script.rules[0].action)
        self.assertIsNone(script.rules[0].condition_type)

    def test_unknown_types_are_accepted(self):
        script = make_script(rule({"type": "telepathy"}, {"type": "explode"}))
        self.assertEqual(script.rules[0].condition_type, "telepathy")
        self.assertEqual(script.rules[0].action_type, "explode")

    def test_missing_ids_are_numbered(self):
        script = make_script(rule({"type": "gameStart"}, {"type": "win"}),
                             rule({"type": "touch"}, {"type": "win"}, rule_id="tap"))
        self.assertEqual([r.id for r in script.rules], ["rule_1", "tap"])

    def test_enum_types_accepted(self):
        cond = Condition(type=ConditionType.TIMER, value=2)
        act = Action(type=ActionType.WIN)
        self.assertEqual(cond.type, "timer")
        self.assertEqual(act.type, "win")

    def test_json_string_source(self):
        text = json.dumps({"rules": [rule({"type": "gameStart"}, {"type": "win"})]})
        self.assertEqual(len(load_script(text).rules), 1)

    def test_invalid_json_raises(self):
        with self.assertRaises(ScriptLoadError):
            load_script("{not json")

    def test_non_object_raises(self):
        with self.assertRaises(ScriptLoadError):
            load_script("[1, 2, 3]")

    def test_invalid_rule_shape_raises(self):
        with self.assertRaises(ScriptLoadError):
            load_script({"rules": [42]})

    def test_numeric_names_are_read_as_strings(self):
        script = make_script(rule({"type": "variable", "variableName": 7, "operator": 3},
                                  {"type": 3, "variableName": 7, "property": 1, "target": 42},
                                  rule_id=5, targetObjectId=9))
        r = script.rules[0]
        self.assertEqual(r.id, "5")
        self.assertEqual(r.condition.variable_name, "7")
        self.assertEqual(r.condition.operator, "3")
        self.assertEqual(r.action_type, "3")
        self.assertEqual(r.action.property_name, "1")
        self.assertEqual(r.action.object_id, "42")
        self.assertEqual(r.target_object_id, "9")

    def test_malformed_fields_degrade_instead_of_raising(self):
        script = make_script(
            {"conditions": ["gameStart"], "actions": [{"type": ["win"]}]},
            rule({"type": "timer", "variableName": {"x": 1}, "target": [1, 2]},
                 {"type": "setVariable", "variableName": None}),
        )
        first, second = script.rules
        self.assertIsNone(first.condition)
        self.assertIsNone(first.action_type)
        self.assertIsNone(second.condition.variable_name)
        self.assertIsNone(second.condition.target)
        self.assertEqual(second.action_type, "setVariable")

    def test_load_script_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "game.json"
            path.write_text(json.dumps({"rules": [rule({"type": "gameStart"}, {"type": "win"})]}))
            self.assertEqual(load_script_file(path).rules[0].action_type, "win")
            with self.assertRaises(ScriptLoadError):
                load_script_file(Path(tmp) / "missing.json")

    def test_script_is_immutable(self):
        script = make_script(rule({"type": "gameStart"}, {"type": "win"}))
        with self.assertRaises(Exception):
            script.rules[0].id = "changed"


# ============================================================
# Conditions
# ============================================================

class TestConditions(unittest.TestCase):
    """Condition semantics, including defaults and chance gates."""

    def setUp(self):
        self.rng = ScriptedRandom()
        self.state = GameState()

    def check(self, **fields):
        return check_condition(Condition(**fields), self.state, self.rng)

    def test_game_start_only_on_first_tick(self):
        self.state.step = 1
        self.assertTrue(self.check(type="gameStart"))
        self.state.step = 2
        self.assertFalse(self.check(type="gameStart"))

    def test_timer_default_threshold(self):
        self.state.timer = 9
        self.assertFalse(self.check(type="timer"))
        self.state.timer = 10
        self.assertTrue(self.check(type="timer"))
        self.state.timer = 500
        self.assertTrue(self.check(type="timer"), "timer is level-triggered")

    def test_score_operators(self):
        self.state.score = 100
        self.assertTrue(self.check(type="score"))
        self.assertTrue(self.check(type="score", value=100, operator="=="))
        self.assertTrue(self.check(type="score", value=150, operator="<="))
        self.assertFalse(self.check(type="score", value=150, operator=">="))
        self.assertFalse(self.check(type="score", value=100, operator="!="))

    def test_variable_defaults_to_zero(self):
        self.assertTrue(self.check(type="variable", variableName="coins"))
        self.assertFalse(self.check(type="variable", variableName="coins", value=1))
        self.state.variables["coins"] = 3
        self.assertTrue(self.check(type="variable", variableName="coins", value=3, operator="=="))

    def test_object_state_strict_equality(self):
        self.state.object_states["door"] = {"open": True, "hp": 1}
        self.assertTrue(self.check(type="objectState", target="door", property="open", value=True))
        self.assertFalse(self.check(type="objectState", target="door", property="hp", value=True))
        self.assertFalse(self.check(type="objectState", target="door", property="open", value=1))
        self.assertFalse(self.check(type="objectState", target="gate", property="open", value=True))

    def test_non_numeric_threshold_is_false(self):
        self.assertFalse(self.check(type="score", value="lots"))

    def test_chance_gates_use_injected_rng(self):
        self.rng = ScriptedRandom([0.04, 0.06, 0.09, 0.11])
        self.assertTrue(self.check(type="touch"))
        self.assertFalse(self.check(type="touch"))
        self.assertTrue(self.check(type="collision"))
        self.assertFalse(self.check(type="collision"))

    def test_unknown_and_missing_conditions_are_false(self):
        self.assertFalse(self.check(type="telepathy"))
        self.assertFalse(self.check())
        self.assertFalse(check_condition(None, self.state, self.rng))

    def test_evaluate_rules_preserves_order(self):
        script = make_script(
            rule({"type": "timer", "value": 1}, {"type": "changeScore", "value": 1}, "a"),
            rule({"type": "score", "value": 5}, {"type": "win"}, "b"),
            rule({"type": "gameStart"}, {"type": "effect"}, "c"),
        )
        self.state.step = self.state.timer = 1
        self.assertEqual([r.id for r in evaluate_rules(script, self.state, self.rng)], ["a", "c"])


# ============================================================
# Actions
# ============================================================

class TestActions(unittest.TestCase):
    """Action semantics and defaults."""

    def setUp(self):
        self.state = GameState()
        self.rng = random.Random(3)

    def run_action(self, default_object_id=None, **fields):
        execute_action(Action(**fields), self.state, self.rng, default_object_id=default_object_id)

    def test_win_and_game_over(self):
        self.run_action(type="win")
        self.run_action(type="gameOver")
        self.assertTrue(self.state.won)
        self.assertTrue(self.state.game_over)

    def test_change_score_is_additive_and_unclamped(self):
        self.run_action(type="changeScore", value=10)
        self.run_action(type="changeScore", value=-25)
        self.run_action(type="changeScore")
        self.assertEqual(self.state.score, -15)

    def test_set_and_increment_variable(self):
        self.run_action(type="setVariable", variableName="lives")
        self.assertEqual(self.state.variables["lives"], 0)
        self.run_action(type="incrementVariable", variableName="lives")
        self.run_action(type="incrementVariable", variableName="lives", value=4)
        self.assertEqual(self.state.variables["lives"], 5)
        self.run_action(type="incrementVariable", variableName="coins")
        self.assertEqual(self.state.variables["coins"], 1)

    def test_set_object_property(self):
        self.run_action(type="setObjectProperty", target={"objectId": "door"},
                        property="open", value=True)
        self.assertEqual(self.state.object_states, {"door": {"open": True}})

    def test_rule_target_used_when_action_has_none(self):
        self.run_action(type="setObjectProperty", property="visible", value=False,
                        default_object_id="ghost")
        self.assertEqual(self.state.object_states["ghost"], {"visible": False})

    def test_move_is_relative(self):
        self.run_action(type="move", target="hero", value={"x": 3})
        self.run_action(type="move", target="hero", value={"x": 2, "y": -4})
        self.assertEqual(self.state.object_states["hero"], {"x": 5, "y": -4})

    def test_randomize_inclusive_range(self):
        for _ in range(200):
            self.run_action(type="randomize", variableName="roll", value={"min": 1, "max": 3})
            self.assertIn(self.state.variables["roll"], (1, 2, 3))
        self.run_action(type="randomize")
        self.assertTrue(0 <= self.state.variables["random"] <= 100)

    def test_effect_and_unknown_are_noops(self):
        before = self.state.to_dict()
        self.run_action(type="effect", value={"kind": "shake"})
        self.run_action(type="explode")
        execute_action(None, self.state, self.rng)
        self.assertEqual(self.state.to_dict(), before)

    def test_missing_names_are_noops(self):
        self.run_action(type="setVariable", value=3)
        self.run_action(type="setObjectProperty", property="open", value=True)
        self.run_action(type="move", value={"x": 1})
        self.assertEqual(self.state.variables, {})
        self.assertEqual(self.state.object_states, {})

    def test_bad_payload_raises(self):
        with self.assertRaises(TypeError):
            self.run_action(type="changeScore", value="ten")


# ============================================================
# Interpreter
# ============================================================

class TestInterpreter(unittest.TestCase):
    """Single-trial tick loop."""

    def test_game_start_win(self):
        script = make_script(rule({"type": "gameStart"}, {"type": "win"}))
        result = simulate_single_game(script, SimulationConfig(max_steps=10, num_trials=1))
        self.assertTrue(result.clearable)
        self.assertTrue(result.final_state.won)
        self.assertEqual(result.final_state.step, 1)
        self.assertEqual(result.success_rate, 1.0)
        self.assertEqual(result.estimated_difficulty, 0.1)

    def test_timer_game_over(self):
        script = make_script(rule({"type": "timer", "value": 5}, {"type": "gameOver"}))
        result = simulate_single_game(script, SimulationConfig(max_steps=100, num_trials=1))
        self.assertEqual(result.final_state.step, 5)
        self.assertTrue(result.final_state.game_over)
        self.assertFalse(result.final_state.won)
        self.assertFalse(result.clearable)
        self.assertEqual(result.bugs, [])

    def test_termination_bound_and_timeout(self):
        config = SimulationConfig(max_steps=50, num_trials=1)
        result = simulate_single_game(make_script(), config)
        self.assertEqual(result.final_state.step, 50)
        self.assertEqual(result.issues, ["Possible infinite loop - game did not end"])
        self.assertEqual(result.bugs, ["Game runs indefinitely without win/lose condition"])
        self.assertEqual(result.estimated_difficulty, 0.5)

    def test_step_never_exceeds_max_steps(self):
        script = make_script(rule({"type": "touch"}, {"type": "changeScore", "value": 1}),
                             rule({"type": "collision"}, {"type": "incrementVariable",
                                                          "variableName": "hits"}))
        for seed in range(20):
            config = SimulationConfig(max_steps=37, num_trials=1, random_seed=seed)
            self.assertLessEqual(simulate_single_game(script, config).final_state.step, 37)

    def test_timer_tracks_step_every_tick(self):
        seen = []
        script = make_script(rule({"type": "touch"}, {"type": "changeScore", "value": 1}))
        simulate_single_game(script, SimulationConfig(max_steps=60, num_trials=1, random_seed=1),
                             on_tick=lambda s: seen.append((s.step, s.timer)))
        self.assertEqual(len(seen), 60)
        self.assertTrue(all(step == timer for step, timer in seen))
        self.assertEqual([step for step, _ in seen], list(range(1, 61)))

    def test_game_start_fires_once(self):
        script = make_script(rule({"type": "gameStart"},
                                  {"type": "incrementVariable", "variableName": "starts"}))
        result = simulate_single_game(script, SimulationConfig(max_steps=30, num_trials=1))
        self.assertEqual(result.final_state.variables["starts"], 1)

    def test_score_driven_win_is_reached(self):
        script = make_script(
            rule({"type": "score", "value": 100, "operator": ">="}, {"type": "win"}),
            rule({"type": "timer", "value": 1}, {"type": "changeScore", "value": 50}),
        )
        result = simulate_single_game(script, SimulationConfig(max_steps=10, num_trials=1))
        self.assertTrue(result.clearable)
        self.assertEqual(result.final_state.step, 3)
        self.assertEqual(result.final_state.score, 100)

    def test_terminal_action_stops_remaining_rules(self):
        script = make_script(
            rule({"type": "gameStart"}, {"type": "win"}),
            rule({"type": "gameStart"}, {"type": "changeScore", "value": 10}),
        )
        result = simulate_single_game(script, SimulationConfig(max_steps=5, num_trials=1))
        self.assertEqual(result.final_state.score, 0)

    def test_player_action_fires_touch_rule(self):
        script = make_script(rule({"type": "touch"}, {"type": "win"}))
        # First draw: touch condition misses. Second draw: player acts.
        rng = ScriptedRandom([0.99, 0.0])
        result = simulate_single_game(script, SimulationConfig(max_steps=5, num_trials=1), rng=rng)
        self.assertTrue(result.clearable)
        self.assertEqual(result.final_state.step, 1)

    def test_player_action_picks_among_touch_rules_only(self):
        script = make_script(
            rule({"type": "touch"}, {"type": "changeScore", "value": 5}),
            rule({"type": "gameStart"}, {"type": "incrementVariable", "variableName": "starts"}),
            rule({"type": "touch"}, {"type": "changeScore", "value": 50}),
        )
        # Both touch conditions miss, then the player acts on the second touch rule
        rng = ScriptedRandom([0.99, 0.99, 0.0], pick=1)
        result = simulate_single_game(script, SimulationConfig(max_steps=1, num_trials=1), rng=rng)
        self.assertEqual(rng.ranges, [2])
        self.assertEqual(result.final_state.score, 50)
        self.assertEqual(result.final_state.variables, {"starts": 1})

    def test_action_fault_becomes_bug(self):
        script = make_script(
            rule({"type": "gameStart"}, {"type": "changeScore", "value": "ten"}),
            rule({"type": "timer", "value": 3}, {"type": "win"}),
        )
        result = simulate_single_game(script, SimulationConfig(max_steps=10, num_trials=1))
        self.assertTrue(result.clearable)
        self.assertEqual(result.final_state.step, 3)
        self.assertEqual(len(result.bugs), 1)
        self.assertTrue(result.bugs[0].startswith("Error executing action changeScore: "))

    def test_seeded_trials_are_reproducible(self):
        script = make_script(rule({"type": "touch"}, {"type": "win"}),
                             rule({"type": "collision"}, {"type": "randomize", "variableName": "r"}))
        config = SimulationConfig(max_steps=300, num_trials=1, random_seed=42)
        a = simulate_single_game(script, config)
        b = simulate_single_game(script, config)
        self.assertEqual(a.to_dict(), b.to_dict())

    def test_script_is_not_mutated(self):
        script = make_script(rule({"type": "gameStart"}, {"type": "setObjectProperty",
                                                          "target": "box", "property": "x",
                                                          "value": 1}))
        before = script.model_dump()
        simulate_single_game(script, SimulationConfig(max_steps=3, num_trials=1))
        self.assertEqual(script.model_dump(), before)

    def test_difficulty_buckets(self):
        cases = [(1, 0.1), (9, 0.1), (10, 0.3), (49, 0.3), (50, 0.5),
                 (99, 0.5), (100, 0.7), (199, 0.7), (200, 0.9), (1000, 0.9)]
        for steps, expected in cases:
            self.assertEqual(estimate_difficulty_from_steps(steps), expected, f"steps={steps}")


# ============================================================
# Aggregator
# ============================================================

def _result(clearable, steps, difficulty, issues=(), bugs=()):
    return SimulationResult(
        clearable=clearable, average_steps=steps, min_steps=steps, max_steps=steps,
        success_rate=1.0 if clearable else 0.0, estimated_difficulty=difficulty,
        issues=list(issues), bugs=list(bugs),
    )


class TestAggregator(unittest.TestCase):
    """Multi-trial merging and configuration checks."""

    def test_merge_rules(self):
        merged = aggregate_results([
            _result(False, 40, 0.3, issues=["a"], bugs=["x"]),
            _result(True, 4, 0.1, issues=["b", "a"]),
            _result(False, 120, 0.7, bugs=["y", "x"]),
            _result(True, 8, 0.1),
        ])
        self.assertTrue(merged.clearable)
        self.assertEqual(merged.success_rate, 0.5)
        self.assertEqual(merged.average_steps, 43)
        self.assertEqual(merged.min_steps, 4)
        self.assertEqual(merged.max_steps, 120)
        self.assertAlmostEqual(merged.estimated_difficulty, 0.3)
        self.assertEqual(merged.issues, ["a", "b"])
        self.assertEqual(merged.bugs, ["x", "y"])
        self.assertEqual(merged.trials, 4)
        self.assertIsNone(merged.final_state)

    def test_not_clearable_when_no_trial_wins(self):
        merged = aggregate_results([_result(False, 10, 0.3), _result(False, 20, 0.3)])
        self.assertFalse(merged.clearable)
        self.assertEqual(merged.success_rate, 0.0)

    def test_empty_results_rejected(self):
        with self.assertRaises(InvalidConfiguration):
            aggregate_results([])

    def test_union_semantics_across_trials(self):
        result = verify_playability(make_script(), SimulationConfig(max_steps=20, num_trials=5))
        self.assertEqual(result.bugs, ["Game runs indefinitely without win/lose condition"])
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.trials, 5)
        self.assertEqual(result.average_steps, 20)

    def test_malformed_rule_does_not_reject_script(self):
        for bad in ({"type": "setVariable", "variableName": 7}, {"type": 3}):
            script = {"rules": [rule({"type": "gameStart"}, {"type": "win"}),
                                rule({"type": "timer", "value": 1}, bad)]}
            result = verify_playability(script, SimulationConfig(max_steps=10, num_trials=2))
            self.assertTrue(result.clearable, bad)
            self.assertEqual(result.bugs, [])

    def test_game_start_win_aggregate(self):
        script = make_script(rule({"type": "gameStart"}, {"type": "win"}))
        result = verify_playability(script, SimulationConfig(max_steps=10, num_trials=1))
        self.assertTrue(result.clearable)
        self.assertEqual(result.success_rate, 1.0)
        self.assertEqual(result.estimated_difficulty, 0.1)
        self.assertEqual(result.min_steps, 1)

    def test_seeded_runs_reproducible(self):
        script = make_script(rule({"type": "touch"}, {"type": "win"}),
                             rule({"type": "collision"}, {"type": "gameOver"}))
        config = SimulationConfig(max_steps=200, num_trials=8, random_seed=11)
        self.assertEqual(verify_playability(script, config).to_dict(),
                         verify_playability(script, config).to_dict())

    def test_trial_rngs_are_independent(self):
        config = SimulationConfig(max_steps=10, num_trials=2, random_seed=5)
        a, b = trial_rng(config, 0), trial_rng(config, 1)
        self.assertIsNot(a, b)
        self.assertNotEqual([a.random() for _ in range(3)], [b.random() for _ in range(3)])
        self.assertEqual(trial_rng(config, 1).random(), random.Random(6).random())

    def test_invalid_configuration(self):
        for bad in [dict(max_steps=0), dict(max_steps=-5), dict(num_trials=0),
                    dict(num_trials=1.5), dict(max_steps=True), dict(random_seed="x")]:
            with self.assertRaises(InvalidConfiguration, msg=str(bad)):
                SimulationConfig(**bad)

    def test_invalid_configuration_is_value_error(self):
        with self.assertRaises(ValueError):
            SimulationConfig(num_trials=-1)

    def test_defaults_come_from_settings(self):
        config = SimulationConfig()
        self.assertEqual(config.max_steps, PlaycheckConfig.DEFAULT_MAX_STEPS)
        self.assertEqual(config.num_trials, PlaycheckConfig.DEFAULT_NUM_TRIALS)

    @unittest.skipIf(os.getenv("PLAYCHECK_MAX_STEPS") or os.getenv("PLAYCHECK_NUM_TRIALS"),
                     "environment overrides defaults")
    def test_builtin_defaults(self):
        self.assertEqual(PlaycheckConfig.DEFAULT_MAX_STEPS, 1000)
        self.assertEqual(PlaycheckConfig.DEFAULT_NUM_TRIALS, 10)

    def test_result_serialization(self):
        result = verify_playability(make_script(rule({"type": "gameStart"}, {"type": "win"})),
                                    SimulationConfig(max_steps=5, num_trials=3))
        data = json.loads(result.to_json())
        self.assertEqual(data["trials"], 3)
        self.assertTrue(data["clearable"])
        self.assertNotIn("final_state", data)
        self.assertIn("Clearable:   Yes", result.summary())


if __name__ == "__main__":
    unittest.main()
