"""
Rules module - the closed condition and effect vocabulary.

Conditions are pure predicates over WorldState; effects are pure
WorldState -> WorldState transitions.
"""

from inkwell.rules.conditions import (
    Condition,
    condition_adapter,
    evaluate_condition,
    evaluate_conditions,
)
from inkwell.rules.effects import (
    Effect,
    effect_adapter,
    apply_effect,
    apply_effects,
)

__all__ = [
    "Condition",
    "condition_adapter",
    "evaluate_condition",
    "evaluate_conditions",
    "Effect",
    "effect_adapter",
    "apply_effect",
    "apply_effects",
]
