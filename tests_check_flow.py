#!/usr/bin/env python3
"""Check Flow + CLI Tests

Tests for:
  A) run_playability_check verdict and artifacts
  B) tools.playability_cli exit codes and output modes
"""
import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))

from config.settings import PlaycheckConfig
from flows.playability_check import run_playability_check
from sim_engine.playability import SimulationConfig
from tools import playability_cli

PLAYABLE = {"rules": [
    {"id": "start", "conditions": [{"type": "gameStart"}], "actions": [{"type": "win"}]},
    {"id": "tap", "conditions": [{"type": "touch"}], "actions": [{"type": "changeScore", "value": 10}]},
]}

ENDLESS = {"rules": [
    {"id": "tap", "conditions": [{"type": "touch"}], "actions": [{"type": "changeScore", "value": 1}]},
]}


# ════════════════════════════════════════════════════════════════
# A) Flow
# ════════════════════════════════════════════════════════════════

class TestPlayabilityCheckFlow(unittest.TestCase):

    def test_playable_verdict(self):
        verdict = run_playability_check(PLAYABLE, SimulationConfig(max_steps=20, num_trials=3),
                                        quiet=True)
        self.assertTrue(verdict["playable"])
        self.assertEqual(verdict["score"], 100)
        self.assertEqual(verdict["rating"], "Excellent")
        self.assertEqual(verdict["simulation"]["success_rate"], 1.0)
        self.assertEqual(verdict["static_analysis"]["bugs"], [])
        self.assertNotIn("output_dir", verdict)

    def test_endless_verdict(self):
        verdict = run_playability_check(ENDLESS, SimulationConfig(max_steps=30, num_trials=2,
                                                                  random_seed=1), quiet=True)
        self.assertFalse(verdict["playable"])
        self.assertFalse(verdict["simulation"]["clearable"])
        self.assertIn("Game runs indefinitely without win/lose condition",
                      verdict["simulation"]["bugs"])
        self.assertIn("Potential infinite loop detected", verdict["static_analysis"]["bugs"])
        self.assertFalse(verdict["static_analysis"]["clearability"]["has_win_condition"])

    def test_pass_score_gate(self):
        with patch.object(PlaycheckConfig, "PASS_SCORE", 101):
            verdict = run_playability_check(PLAYABLE, SimulationConfig(max_steps=5, num_trials=1),
                                            quiet=True)
        self.assertFalse(verdict["playable"])
        self.assertTrue(verdict["simulation"]["clearable"])

    def test_artifacts_written(self):
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "game_001"
            verdict = run_playability_check(json.dumps(PLAYABLE),
                                            SimulationConfig(max_steps=5, num_trials=2),
                                            output_dir=out, quiet=True)
            self.assertEqual(verdict["output_dir"], str(out))
            sim = json.loads((out / "simulation_results.json").read_text(encoding="utf-8"))
            self.assertEqual(sim["trials"], 2)
            static = json.loads((out / "static_analysis.json").read_text(encoding="utf-8"))
            self.assertEqual(static["score"], 100)
            report = (out / "playability_report.txt").read_text(encoding="utf-8")
            self.assertIn("Playability Score: 100/100", report)

    def test_console_output_when_not_quiet(self):
        with patch("flows.playability_check.console") as console:
            run_playability_check(PLAYABLE, SimulationConfig(max_steps=5, num_trials=1))
        self.assertEqual(console.print.call_count, 2)


# ════════════════════════════════════════════════════════════════
# B) CLI
# ════════════════════════════════════════════════════════════════

class TestPlayabilityCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write(self, name, data) -> str:
        path = Path(self.tmp.name) / name
        path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
        return str(path)

    def run_cli(self, *argv):
        buf = io.StringIO()
        with redirect_stdout(buf), patch.object(playability_cli, "console"):
            code = playability_cli.main(list(argv))
        return code, buf.getvalue()

    def test_playable_json(self):
        code, out = self.run_cli(self.write("ok.json", PLAYABLE), "--json",
                                 "--trials", "2", "--max-steps", "10", "--seed", "3")
        self.assertEqual(code, 0)
        verdict = json.loads(out)
        self.assertTrue(verdict["playable"])
        self.assertEqual(verdict["config"], {"max_steps": 10, "num_trials": 2, "random_seed": 3})

    def test_not_playable_exit_code(self):
        code, _ = self.run_cli(self.write("endless.json", ENDLESS),
                               "--trials", "1", "--max-steps", "10")
        self.assertEqual(code, 1)

    def test_report_only(self):
        code, out = self.run_cli(self.write("ok.json", PLAYABLE), "--report-only")
        self.assertEqual(code, 0)
        self.assertIn("Playability Analysis Report", out)

    def test_missing_file(self):
        code, _ = self.run_cli(str(Path(self.tmp.name) / "nope.json"))
        self.assertEqual(code, 2)

    def test_bad_json(self):
        code, _ = self.run_cli(self.write("bad.json", "{oops"))
        self.assertEqual(code, 2)

    def test_invalid_trials(self):
        code, _ = self.run_cli(self.write("ok.json", PLAYABLE), "--trials", "0")
        self.assertEqual(code, 2)

    def test_output_dir(self):
        out = Path(self.tmp.name) / "artifacts"
        code, _ = self.run_cli(self.write("ok.json", PLAYABLE), "--json", "--trials", "1",
                               "--output-dir", str(out))
        self.assertEqual(code, 0)
        self.assertTrue((out / "playability_report.txt").exists())

    def test_save_uses_output_dir_setting(self):
        base = Path(self.tmp.name) / "output"
        with patch.object(playability_cli, "OUTPUT_DIR", base):
            code, _ = self.run_cli(self.write("level_3.json", PLAYABLE), "--json", "--trials", "1",
                                   "--save")
        self.assertEqual(code, 0)
        self.assertTrue((base / "level_3" / "simulation_results.json").exists())


if __name__ == "__main__":
    unittest.main()
