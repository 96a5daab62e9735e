"""
PLAYCHECK - Static Analyzer

Read-only passes over a rule script. Nothing here executes the rules:
  • analyze_clearability - is there a win rule, and can its precondition change?
  • detect_bugs - empty scripts, duplicate (condition, action) signatures, loop risk
  • calculate_playability_score - 0-100 score from the two passes above
  • generate_report - human-readable summary of all of it
"""

import logging

from config.script_schema import ActionType, ConditionType, Script, load_script
from sim_engine.playability.base import ClearabilityResult

logger = logging.getLogger("playcheck.analyzer")

NO_WIN_PENALTY = 50
UNREACHABLE_WIN_PENALTY = 30
MISSING_ACTIONS_PENALTY = 20
BUG_PENALTY = 5
TOO_FEW_RULES_PENALTY = 20
TOO_MANY_RULES_PENALTY = 10
MIN_RULES = 2
MAX_RULES = 20

VARIABLE_WRITERS = (ActionType.SET_VARIABLE.value, ActionType.INCREMENT_VARIABLE.value)

RATINGS = [
    (80, "Excellent", "⭐⭐⭐"),
    (60, "Good", "⭐⭐"),
    (40, "Fair", "⭐"),
    (0, "Poor", "❌"),
]


def _has_action(script: Script, action_type: str) -> bool:
    return any(rule.action_type == action_type for rule in script.rules)


# ═══════════════════════════════════════════════════════════════
# Clearability
# ═══════════════════════════════════════════════════════════════

def analyze_clearability(script: Script) -> ClearabilityResult:
    """Check that a win rule exists and that its precondition can be met.

    Only score and variable conditions are checked; any other trigger type
    is taken as reachable.
    """
    script = load_script(script)
    issues = []
    win_rules = [r for r in script.rules if r.action_type == ActionType.WIN.value]

    if not win_rules:
        issues.append("No win condition defined")
        return ClearabilityResult(
            has_win_condition=False,
            win_condition_reachable=False,
            has_required_actions=False,
            issues=issues,
        )

    reachable = True
    has_required_actions = True
    for n, win_rule in enumerate(win_rules, start=1):
        ctype = win_rule.condition_type

        if ctype == ConditionType.SCORE.value:
            if not _has_action(script, ActionType.CHANGE_SCORE.value):
                issues.append(f"Win condition {n}: No way to change score")
                reachable = False
                has_required_actions = False

        elif ctype == ConditionType.VARIABLE.value:
            name = win_rule.condition.variable_name
            changed = any(
                rule.action_type in VARIABLE_WRITERS and rule.action.variable_name == name
                for rule in script.rules
            )
            if not changed:
                issues.append(f'Win condition {n}: Variable "{name}" never changed')
                reachable = False
                has_required_actions = False

    return ClearabilityResult(
        has_win_condition=True,
        win_condition_reachable=reachable,
        has_required_actions=has_required_actions,
        issues=issues,
    )


# ═══════════════════════════════════════════════════════════════
# Bugs
# ═══════════════════════════════════════════════════════════════

def check_infinite_loop_risk(script: Script) -> bool:
    """True when nothing can ever end the game.

    Any timer-conditioned rule counts as proof the game ends, whatever that
    rule actually does.
    """
    script = load_script(script)
    if any(r.condition_type == ConditionType.TIMER.value for r in script.rules):
        return False
    has_win = _has_action(script, ActionType.WIN.value)
    has_game_over = _has_action(script, ActionType.GAME_OVER.value)
    return not has_win and not has_game_over


def detect_bugs(script: Script) -> list[str]:
    """Structural defects, in a stable order."""
    script = load_script(script)
    bugs = []

    if not script.rules:
        bugs.append("No rules defined")

    seen = set()
    for index, rule in enumerate(script.rules):
        signature = (rule.condition_type, rule.action_type)
        if signature in seen:
            bugs.append(f"Duplicate rule detected at index {index}")
        seen.add(signature)

    if check_infinite_loop_risk(script):
        bugs.append("Potential infinite loop detected")

    return bugs


# ═══════════════════════════════════════════════════════════════
# Score / Report
# ═══════════════════════════════════════════════════════════════

def calculate_playability_score(script: Script) -> int:
    """100-point score; see the *_PENALTY constants for deductions."""
    script = load_script(script)
    score = 100
    clearability = analyze_clearability(script)

    if not clearability.has_win_condition:
        score -= NO_WIN_PENALTY
    elif not clearability.win_condition_reachable:
        score -= UNREACHABLE_WIN_PENALTY

    if not clearability.has_required_actions:
        score -= MISSING_ACTIONS_PENALTY

    bugs = detect_bugs(script)
    score -= len(bugs) * BUG_PENALTY

    rule_count = len(script.rules)
    if rule_count < MIN_RULES:
        score -= TOO_FEW_RULES_PENALTY
    elif rule_count > MAX_RULES:
        score -= TOO_MANY_RULES_PENALTY

    score = max(0, min(100, score))
    logger.debug(f"Playability score {score} ({rule_count} rules, {len(bugs)} bugs)")
    return score


def _rating(score: int) -> tuple[str, str]:
    for threshold, label, badge in RATINGS:
        if score >= threshold:
            return label, badge
    return RATINGS[-1][1], RATINGS[-1][2]


def rating_for_score(score: int) -> str:
    """Excellent ≥80, Good ≥60, Fair ≥40, otherwise Poor."""
    return _rating(score)[0]


def _mark(ok: bool) -> str:
    return "✓" if ok else "✗"


def generate_report(script: Script) -> str:
    script = load_script(script)
    rule = "━" * 34
    lines = [rule, "🎮 Playability Analysis Report", rule, ""]

    clearability = analyze_clearability(script)
    lines.append("Clearability:")
    lines.append(f"  Has Win Condition: {_mark(clearability.has_win_condition)}")
    lines.append(f"  Win Reachable: {_mark(clearability.win_condition_reachable)}")
    lines.append(f"  Has Required Actions: {_mark(clearability.has_required_actions)}")
    if clearability.issues:
        lines.append("  Issues:")
        for issue in clearability.issues:
            lines.append(f"    - {issue}")
    lines.append("")

    bugs = detect_bugs(script)
    lines.append(f"Bugs Detected: {len(bugs)}")
    for bug in bugs:
        lines.append(f"  - {bug}")
    lines.append("")

    score = calculate_playability_score(script)
    lines.append(f"Playability Score: {score}/100")
    label, badge = _rating(score)
    lines.append(f"  Rating: {label} {badge}")
    lines.append(rule)
    return "\n".join(lines)
