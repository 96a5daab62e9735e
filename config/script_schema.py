"""
PLAYCHECK - Rule Script Schema

Typed models for the rule scripts the editor and the content generators
hand to the playability simulator. A script is an ordered list of rules;
each rule pairs one trigger condition with one action.

The editor stores ``conditions`` / ``actions`` as arrays (optionally nested
under ``triggers``). The simulator only ever looks at the first element of
each, so the models narrow those arrays to a single ``condition`` and a
single ``action`` when a rule is loaded. Extra conditions and actions are
dropped, not combined.

Unknown or missing ``type`` values are accepted on purpose: the simulator
treats them as a condition that never holds / an action that does nothing,
so a single bad rule cannot reject a whole script. Numeric names and type
tags are read as strings; a condition or action that is not an object, or a
name given as a list or object, is treated as missing.

Usage:
    from config.script_schema import load_script, load_script_file
    script = load_script({"rules": [{"id": "r1", "conditions": [{"type": "gameStart"}],
                                     "actions": [{"type": "win"}]}]})
    script = load_script_file("generated/game_042.json")
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from config.errors import ScriptLoadError


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class ConditionType(str, Enum):
    GAME_START   = "gameStart"
    TIMER        = "timer"
    SCORE        = "score"
    TOUCH        = "touch"          # chance gate, not real pointer input
    COLLISION    = "collision"      # chance gate
    OBJECT_STATE = "objectState"
    VARIABLE     = "variable"


class ActionType(str, Enum):
    WIN                 = "win"
    GAME_OVER           = "gameOver"
    CHANGE_SCORE        = "changeScore"
    SET_VARIABLE        = "setVariable"
    INCREMENT_VARIABLE  = "incrementVariable"
    SET_OBJECT_PROPERTY = "setObjectProperty"
    MOVE                = "move"
    RANDOMIZE           = "randomize"
    EFFECT              = "effect"          # visual only, no state change


COMPARISON_OPERATORS = (">=", "<=", "==")


def _plain_type(v):
    if isinstance(v, Enum):
        return v.value
    return v


def _scalar_str(v):
    """Names and type tags: numbers become strings, containers become None."""
    v = _plain_type(v)
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return None


# ═══════════════════════════════════════════════════════════════
# Condition / Action payloads
# ═══════════════════════════════════════════════════════════════

class Target(BaseModel):
    """Reference to a layout object."""
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    object_id: Optional[str] = Field(None, alias="objectId")

    @field_validator("object_id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return _scalar_str(v)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    type: Optional[str] = None
    value: Any = None
    variable_name: Optional[str] = Field(None, alias="variableName")
    target: Optional[Target] = None
    property_name: Optional[str] = Field(None, alias="property")

    @field_validator("type", "variable_name", "property_name", mode="before")
    @classmethod
    def _coerce_names(cls, v):
        return _scalar_str(v)

    @field_validator("target", mode="before")
    @classmethod
    def _bare_object_id(cls, v):
        # Older editor exports store the target as a bare object id
        if isinstance(v, (str, int, float)) and not isinstance(v, bool):
            return {"objectId": v}
        if v is not None and not isinstance(v, (dict, Target)):
            return None
        return v

    @property
    def object_id(self) -> Optional[str]:
        return self.target.object_id if self.target else None


class Condition(_Payload):
    """Trigger condition. Defaults per type are applied by the evaluator:
    timer ``value`` 10, score ``value`` 100, variable ``value`` 0,
    ``operator`` '>='."""
    operator: Optional[str] = None

    @field_validator("operator", mode="before")
    @classmethod
    def _coerce_operator(cls, v):
        return _scalar_str(v)


class Action(_Payload):
    """Rule action. ``value`` is a number for score/variable actions,
    ``{"x", "y"}`` for move and ``{"min", "max"}`` for randomize."""


# ═══════════════════════════════════════════════════════════════
# Rule / Script
# ═══════════════════════════════════════════════════════════════

def _first(items):
    if isinstance(items, (list, tuple)) and items:
        return items[0]
    return None


class Rule(BaseModel):
    """One (condition, action) pair. Built from the editor's array format
    by keeping only the first condition and the first action."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = ""
    condition: Optional[Condition] = None
    action: Optional[Action] = None
    target_object_id: Optional[str] = Field(None, alias="targetObjectId")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_rule_id(cls, v):
        return _scalar_str(v) or ""

    @field_validator("target_object_id", mode="before")
    @classmethod
    def _coerce_target_id(cls, v):
        return _scalar_str(v)

    @field_validator("condition", "action", mode="before")
    @classmethod
    def _drop_non_objects(cls, v):
        # A condition or action that is not an object behaves like a missing one
        if isinstance(v, (dict, _Payload)):
            return v
        return None

    @model_validator(mode="before")
    @classmethod
    def _narrow_to_first(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "condition" not in data:
            conditions = data.get("conditions")
            triggers = data.get("triggers")
            if conditions is None and isinstance(triggers, dict):
                conditions = triggers.get("conditions")
            data["condition"] = _first(conditions)
        if "action" not in data:
            data["action"] = _first(data.get("actions"))
        return data

    @property
    def condition_type(self) -> Optional[str]:
        return self.condition.type if self.condition else None

    @property
    def action_type(self) -> Optional[str]:
        return self.action.type if self.action else None


class Script(BaseModel):
    """Author-defined rule set plus the (opaque) object layout."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    rules: list[Rule] = Field(default_factory=list)
    layout: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_and_number(cls, data):
        if not isinstance(data, dict):
            return data
        # A full editor project nests the script under "script"
        if "rules" not in data and isinstance(data.get("script"), dict):
            data = data["script"]
        data = dict(data)
        rules = data.get("rules") or []
        numbered = []
        for i, rule in enumerate(rules):
            if isinstance(rule, dict) and not _scalar_str(rule.get("id")):
                rule = {**rule, "id": f"rule_{i + 1}"}
            numbered.append(rule)
        data["rules"] = numbered
        return data

    @property
    def touch_rules(self) -> list[Rule]:
        return [r for r in self.rules if r.condition_type == ConditionType.TOUCH.value]


# ═══════════════════════════════════════════════════════════════
# Loading
# ═══════════════════════════════════════════════════════════════

def load_script(source: Script | dict | str) -> Script:
    """Build a Script from a model, a dict, or a JSON string."""
    if isinstance(source, Script):
        return source
    if isinstance(source, str):
        try:
            source = json.loads(source)
        except json.JSONDecodeError as e:
            raise ScriptLoadError(f"Script is not valid JSON: {e}") from e
    if not isinstance(source, dict):
        raise ScriptLoadError(f"Script must be a JSON object, got {type(source).__name__}")
    try:
        return Script.model_validate(source)
    except ValidationError as e:
        raise ScriptLoadError(f"Invalid script: {e}") from e


def load_script_file(path: str | Path) -> Script:
    """Read a script (or a whole editor project) from a JSON file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScriptLoadError(f"Cannot read script file {path}: {e}") from e
    return load_script(text)
