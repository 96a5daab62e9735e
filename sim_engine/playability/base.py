"""
PLAYCHECK - Playability Simulator data types

Game state, trial settings and the result records shared by the rule
interpreter, the trial aggregator and the static analyzer.
"""

import json
from dataclasses import dataclass, field
from typing import Optional

from config.errors import InvalidConfiguration
from config.settings import PlaycheckConfig


# Chance gates and player model (per tick / per evaluation)
TOUCH_PROBABILITY = 0.05
COLLISION_PROBABILITY = 0.10
PLAYER_ACTION_PROBABILITY = 0.10

TIMEOUT_ISSUE = "Possible infinite loop - game did not end"
TIMEOUT_BUG = "Game runs indefinitely without win/lose condition"


@dataclass
class GameState:
    """Mutable state owned by a single trial."""
    score: int = 0
    timer: int = 0                                      # ticks elapsed, == step
    variables: dict = field(default_factory=dict)       # name -> number
    object_states: dict = field(default_factory=dict)   # objectId -> {property: value}
    game_over: bool = False
    won: bool = False
    step: int = 0

    @property
    def terminated(self) -> bool:
        return self.won or self.game_over

    def advance(self) -> None:
        """Start a new tick. step and timer always move together."""
        self.step += 1
        self.timer += 1

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "timer": self.timer,
            "variables": dict(self.variables),
            "object_states": {k: dict(v) for k, v in self.object_states.items()},
            "game_over": self.game_over,
            "won": self.won,
            "step": self.step,
        }


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidConfiguration(f"{name} must be > 0, got {value}")
    return value


@dataclass
class SimulationConfig:
    """Trial loop settings. Defaults come from PlaycheckConfig."""
    max_steps: int = field(default_factory=lambda: PlaycheckConfig.DEFAULT_MAX_STEPS)
    num_trials: int = field(default_factory=lambda: PlaycheckConfig.DEFAULT_NUM_TRIALS)
    random_seed: Optional[int] = field(default_factory=lambda: PlaycheckConfig.DEFAULT_SEED)

    def __post_init__(self):
        _positive_int("max_steps", self.max_steps)
        _positive_int("num_trials", self.num_trials)
        if self.random_seed is not None and (
                isinstance(self.random_seed, bool) or not isinstance(self.random_seed, int)):
            raise InvalidConfiguration(f"random_seed must be an integer, got {self.random_seed!r}")


def estimate_difficulty_from_steps(steps: int) -> float:
    """Step function from terminal step count to a 0-1 difficulty."""
    if steps < 10:
        return 0.1
    elif steps < 50:
        return 0.3
    elif steps < 100:
        return 0.5
    elif steps < 200:
        return 0.7
    else:
        return 0.9


@dataclass
class SimulationResult:
    """Outcome of one trial, or of several trials merged together."""
    clearable: bool
    average_steps: float
    min_steps: float
    max_steps: float
    success_rate: float                  # 0-1
    estimated_difficulty: float          # 0-1
    issues: list[str] = field(default_factory=list)
    bugs: list[str] = field(default_factory=list)
    trials: int = 1
    final_state: Optional[GameState] = field(default=None, repr=False)   # single trials only

    def summary(self) -> str:
        lines = [
            f"  Clearable:   {'Yes' if self.clearable else 'No'}",
            f"  Success:     {self.success_rate * 100:.0f}% of {self.trials} trial(s)",
            f"  Difficulty:  {self.estimated_difficulty * 100:.0f}%",
            f"  Steps:       avg={self.average_steps:.1f} min={self.min_steps} max={self.max_steps}",
        ]
        if self.issues:
            lines.append(f"  Issues:      {len(self.issues)}")
        if self.bugs:
            lines.append(f"  Bugs:        {len(self.bugs)}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        data = {
            "clearable": self.clearable,
            "average_steps": round(self.average_steps, 2),
            "min_steps": self.min_steps,
            "max_steps": self.max_steps,
            "success_rate": round(self.success_rate, 4),
            "estimated_difficulty": round(self.estimated_difficulty, 4),
            "issues": list(self.issues),
            "bugs": list(self.bugs),
            "trials": self.trials,
        }
        if self.final_state is not None:
            data["final_state"] = self.final_state.to_dict()
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class ClearabilityResult:
    """Static (non-executing) view of whether the win condition can be met."""
    has_win_condition: bool
    win_condition_reachable: bool
    has_required_actions: bool
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "has_win_condition": self.has_win_condition,
            "win_condition_reachable": self.win_condition_reachable,
            "has_required_actions": self.has_required_actions,
            "issues": list(self.issues),
        }


def append_unique(items: list, item: str) -> None:
    """Set-union append that keeps first-occurrence order."""
    if item not in items:
        items.append(item)
