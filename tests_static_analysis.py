#!/usr/bin/env python3
"""Static Analysis Tests

Tests for:
  A) analyze_clearability (win rules, score / variable reachability)
  B) detect_bugs + check_infinite_loop_risk
  C) calculate_playability_score (penalties, clamping)
  D) rating_for_score + generate_report
"""
import itertools
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

from config.script_schema import ActionType, ConditionType, Script, load_script
from sim_engine.playability import (
    analyze_clearability, calculate_playability_score, check_infinite_loop_risk,
    detect_bugs, generate_report, rating_for_score,
)


# ── Helpers ──
def script_of(*pairs) -> Script:
    """Build a script from (condition dict, action dict) pairs."""
    return load_script({"rules": [
        {"id": f"r{i}", "conditions": [cond], "actions": [act]}
        for i, (cond, act) in enumerate(pairs)
    ]})


GAME_START = {"type": "gameStart"}
TOUCH = {"type": "touch"}
WIN = {"type": "win"}
GAME_OVER = {"type": "gameOver"}


# ════════════════════════════════════════════════════════════════
# A) Clearability
# ════════════════════════════════════════════════════════════════

class TestClearability(unittest.TestCase):

    def test_no_win_condition(self):
        result = analyze_clearability(script_of((GAME_START, GAME_OVER)))
        self.assertFalse(result.has_win_condition)
        self.assertFalse(result.win_condition_reachable)
        self.assertFalse(result.has_required_actions)
        self.assertEqual(result.issues, ["No win condition defined"])

    def test_unvalidated_condition_types_are_reachable(self):
        result = analyze_clearability(script_of((TOUCH, WIN)))
        self.assertTrue(result.has_win_condition)
        self.assertTrue(result.win_condition_reachable)
        self.assertTrue(result.has_required_actions)
        self.assertEqual(result.issues, [])

    def test_score_win_needs_change_score(self):
        win_on_score = ({"type": "score", "value": 100}, WIN)
        result = analyze_clearability(script_of(win_on_score))
        self.assertFalse(result.win_condition_reachable)
        self.assertFalse(result.has_required_actions)
        self.assertEqual(result.issues, ["Win condition 1: No way to change score"])

        result = analyze_clearability(script_of(win_on_score, (TOUCH, {"type": "changeScore", "value": 10})))
        self.assertTrue(result.win_condition_reachable)
        self.assertEqual(result.issues, [])

    def test_variable_win_needs_writer_for_same_name(self):
        win_on_coins = ({"type": "variable", "variableName": "coins", "value": 5}, WIN)
        other = (TOUCH, {"type": "incrementVariable", "variableName": "gems"})
        result = analyze_clearability(script_of(win_on_coins, other))
        self.assertFalse(result.win_condition_reachable)
        self.assertEqual(result.issues, ['Win condition 1: Variable "coins" never changed'])

        for writer in ("setVariable", "incrementVariable"):
            same = (TOUCH, {"type": writer, "variableName": "coins", "value": 5})
            result = analyze_clearability(script_of(win_on_coins, same))
            self.assertTrue(result.win_condition_reachable, writer)

    def test_index_counts_win_rules_only(self):
        script = script_of(
            (TOUCH, {"type": "effect"}),
            (GAME_START, WIN),
            ({"type": "score"}, WIN),
        )
        result = analyze_clearability(script)
        self.assertEqual(result.issues, ["Win condition 2: No way to change score"])

    def test_win_rule_without_condition(self):
        script = load_script({"rules": [{"id": "w", "conditions": [], "actions": [WIN]}]})
        result = analyze_clearability(script)
        self.assertTrue(result.has_win_condition)
        self.assertTrue(result.win_condition_reachable)


# ════════════════════════════════════════════════════════════════
# B) Bugs
# ════════════════════════════════════════════════════════════════

class TestDetectBugs(unittest.TestCase):

    def test_empty_script(self):
        bugs = detect_bugs(script_of())
        self.assertIn("No rules defined", bugs)
        self.assertIn("Potential infinite loop detected", bugs)

    def test_single_duplicate_reported_at_second_index(self):
        script = script_of(
            (TOUCH, {"type": "changeScore", "value": 1}),
            (GAME_START, WIN),
            (TOUCH, {"type": "changeScore", "value": 5}),
        )
        dupes = [b for b in detect_bugs(script) if b.startswith("Duplicate")]
        self.assertEqual(dupes, ["Duplicate rule detected at index 2"])

    def test_duplicates_reported_per_repeat(self):
        script = script_of((TOUCH, WIN), (TOUCH, WIN), (TOUCH, WIN))
        self.assertEqual(detect_bugs(script), [
            "Duplicate rule detected at index 1",
            "Duplicate rule detected at index 2",
        ])

    def test_loop_risk_without_terminal_actions(self):
        script = script_of((TOUCH, {"type": "changeScore", "value": 1}))
        self.assertTrue(check_infinite_loop_risk(script))
        self.assertIn("Potential infinite loop detected", detect_bugs(script))

    def test_game_over_alone_removes_loop_risk(self):
        self.assertFalse(check_infinite_loop_risk(script_of((TOUCH, GAME_OVER))))

    def test_plain_dict_scripts_accepted(self):
        data = {"rules": [{"conditions": [GAME_START], "actions": [WIN]}]}
        self.assertEqual(detect_bugs({"rules": []}),
                         ["No rules defined", "Potential infinite loop detected"])
        self.assertTrue(analyze_clearability(data).has_win_condition)
        self.assertFalse(check_infinite_loop_risk(data))
        self.assertEqual(calculate_playability_score(data), calculate_playability_score(load_script(data)))
        self.assertIn("Playability Score: 80/100", generate_report(data))

    def test_timer_rule_short_circuits_loop_risk(self):
        script = script_of(({"type": "timer", "value": 5}, GAME_OVER))
        self.assertFalse(check_infinite_loop_risk(script))
        # even when the timer rule cannot end the game
        script = script_of(({"type": "timer", "value": 5}, {"type": "effect"}))
        self.assertFalse(check_infinite_loop_risk(script))
        self.assertEqual(detect_bugs(script), [])


# ════════════════════════════════════════════════════════════════
# C) Score
# ════════════════════════════════════════════════════════════════

class TestPlayabilityScore(unittest.TestCase):

    def test_empty_script_score(self):
        # -50 no win, -20 no actions, -10 two bugs, -20 too few rules
        self.assertEqual(calculate_playability_score(script_of()), 0)
        self.assertLessEqual(calculate_playability_score(script_of()), 30)

    def test_no_win_condition_at_most_fifty(self):
        script = script_of((TOUCH, GAME_OVER), ({"type": "timer"}, {"type": "changeScore"}))
        self.assertEqual(calculate_playability_score(script), 30)
        self.assertLessEqual(calculate_playability_score(script), 50)

    def test_clean_script_scores_full(self):
        script = script_of((GAME_START, WIN), (TOUCH, {"type": "changeScore", "value": 10}))
        self.assertEqual(calculate_playability_score(script), 100)

    def test_unreachable_win(self):
        script = script_of(({"type": "score", "value": 100}, WIN), (GAME_START, {"type": "effect"}))
        self.assertEqual(calculate_playability_score(script), 50)

    def test_single_rule_penalty(self):
        self.assertEqual(calculate_playability_score(script_of((GAME_START, WIN))), 80)

    def test_too_many_rules_penalty(self):
        pairs = itertools.product([c.value for c in ConditionType], [a.value for a in ActionType])
        script = script_of(*[({"type": c}, {"type": a}) for c, a in itertools.islice(pairs, 21)])
        self.assertEqual(len(script.rules), 21)
        self.assertEqual(detect_bugs(script), [])
        self.assertEqual(calculate_playability_score(script), 90)

    def test_score_is_clamped_at_zero(self):
        script = script_of(*[(TOUCH, {"type": "changeScore"})] * 25)
        self.assertEqual(calculate_playability_score(script), 0)


# ════════════════════════════════════════════════════════════════
# D) Rating + Report
# ════════════════════════════════════════════════════════════════

class TestReport(unittest.TestCase):

    def test_rating_thresholds(self):
        cases = [(100, "Excellent"), (80, "Excellent"), (79, "Good"), (60, "Good"),
                 (59, "Fair"), (40, "Fair"), (39, "Poor"), (0, "Poor")]
        for score, label in cases:
            self.assertEqual(rating_for_score(score), label, f"score={score}")

    def test_report_for_clean_script(self):
        script = script_of((GAME_START, WIN), (TOUCH, {"type": "changeScore", "value": 10}))
        report = generate_report(script)
        self.assertIn("Playability Analysis Report", report)
        self.assertIn("Has Win Condition: ✓", report)
        self.assertIn("Bugs Detected: 0", report)
        self.assertIn("Playability Score: 100/100", report)
        self.assertIn("Rating: Excellent", report)
        self.assertNotIn("Issues:", report)

    def test_report_lists_issues_and_bugs(self):
        report = generate_report(script_of())
        self.assertIn("Has Win Condition: ✗", report)
        self.assertIn("    - No win condition defined", report)
        self.assertIn("  - No rules defined", report)
        self.assertIn("Playability Score: 0/100", report)
        self.assertIn("Rating: Poor", report)

    def test_report_is_deterministic(self):
        script = script_of((TOUCH, WIN), (TOUCH, WIN), ({"type": "variable", "variableName": "k"}, WIN))
        self.assertEqual(generate_report(script), generate_report(script))


if __name__ == "__main__":
    unittest.main()
