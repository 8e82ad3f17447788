"""
Conditions - pure predicates over world state.

Each condition kind is its own small model tagged by a ``type`` literal.
The tags are the same names authors write after REQUIRE / IF in dialogue
scripts, so a parsed condition and its JSON form read identically:

    REQUIRE variableGreaterThan gold 10
    {"type": "variableGreaterThan", "variable": "gold", "value": 10}

Adding a condition kind means adding a model here, listing it in the
Condition union, and registering one evaluator in _EVALUATORS.
"""

from __future__ import annotations

from typing import Annotated, Callable, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from inkwell.core.dice import Dice
from inkwell.core.state import VariableValue, WorldState


class ConditionBase(BaseModel):
    """Base class for condition variants."""

    model_config = ConfigDict(frozen=True, extra='forbid')


class HasFlagCondition(ConditionBase):
    """hasFlag metBartender"""
    type: Literal['hasFlag'] = 'hasFlag'
    flag: str


class NotFlagCondition(ConditionBase):
    """notFlag doorLocked"""
    type: Literal['notFlag'] = 'notFlag'
    flag: str


class HasItemCondition(ConditionBase):
    """hasItem rusty_key"""
    type: Literal['hasItem'] = 'hasItem'
    item_id: str


class NotItemCondition(ConditionBase):
    """notItem rusty_key"""
    type: Literal['notItem'] = 'notItem'
    item_id: str


class VariableEqualsCondition(ConditionBase):
    """variableEquals gold 100 / variableEquals name John"""
    type: Literal['variableEquals'] = 'variableEquals'
    variable: str
    value: VariableValue


class VariableGreaterThanCondition(ConditionBase):
    """variableGreaterThan gold 10"""
    type: Literal['variableGreaterThan'] = 'variableGreaterThan'
    variable: str
    value: Union[int, float]


class VariableLessThanCondition(ConditionBase):
    """variableLessThan reputation 0"""
    type: Literal['variableLessThan'] = 'variableLessThan'
    variable: str
    value: Union[int, float]


class AtLocationCondition(ConditionBase):
    """atLocation tavern"""
    type: Literal['atLocation'] = 'atLocation'
    location_id: str


class QuestAtStageCondition(ConditionBase):
    """questAtStage odd_jobs started"""
    type: Literal['questAtStage'] = 'questAtStage'
    quest_id: str
    stage_id: str


class CharacterAtCondition(ConditionBase):
    """characterAt merchant market"""
    type: Literal['characterAt'] = 'characterAt'
    character_id: str
    location_id: str


class CharacterInPartyCondition(ConditionBase):
    """characterInParty jaheira"""
    type: Literal['characterInParty'] = 'characterInParty'
    character_id: str


class RelationshipAboveCondition(ConditionBase):
    """relationshipAbove bartender 5 (exclusive)"""
    type: Literal['relationshipAbove'] = 'relationshipAbove'
    character_id: str
    value: int


class RelationshipBelowCondition(ConditionBase):
    """relationshipBelow bartender 0 (exclusive)"""
    type: Literal['relationshipBelow'] = 'relationshipBelow'
    character_id: str
    value: int


class TimeIsCondition(ConditionBase):
    """
    timeIs 20 6

    Start hour inclusive, end hour exclusive. A start after the end wraps
    past midnight.
    """
    type: Literal['timeIs'] = 'timeIs'
    start_hour: int
    end_hour: int


class ItemAtCondition(ConditionBase):
    """itemAt sword armory"""
    type: Literal['itemAt'] = 'itemAt'
    item_id: str
    location_id: str


class RollCondition(ConditionBase):
    """
    roll 1 20 15

    Passes when a roll in [min, max] is at least ``threshold``. The roll is
    thrown away; use the ROLL effect to keep it.
    """
    type: Literal['roll'] = 'roll'
    min: int
    max: int
    threshold: int


Condition = Annotated[
    Union[
        HasFlagCondition,
        NotFlagCondition,
        HasItemCondition,
        NotItemCondition,
        VariableEqualsCondition,
        VariableGreaterThanCondition,
        VariableLessThanCondition,
        AtLocationCondition,
        QuestAtStageCondition,
        CharacterAtCondition,
        CharacterInPartyCondition,
        RelationshipAboveCondition,
        RelationshipBelowCondition,
        TimeIsCondition,
        ItemAtCondition,
        RollCondition,
    ],
    Field(discriminator='type'),
]

condition_adapter: TypeAdapter[Condition] = TypeAdapter(Condition)

_default_dice = Dice()


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _has_flag(c: HasFlagCondition, state: WorldState, dice: Dice) -> bool:
    return state.flags.get(c.flag) is True


def _not_flag(c: NotFlagCondition, state: WorldState, dice: Dice) -> bool:
    return state.flags.get(c.flag) is not True


def _has_item(c: HasItemCondition, state: WorldState, dice: Dice) -> bool:
    return c.item_id in state.inventory


def _not_item(c: NotItemCondition, state: WorldState, dice: Dice) -> bool:
    return c.item_id not in state.inventory


def _variable_equals(c: VariableEqualsCondition, state: WorldState, dice: Dice) -> bool:
    if c.variable not in state.variables:
        return False
    current = state.variables[c.variable]
    # A string never equals a number, even "5" and 5
    if _is_number(current) != _is_number(c.value):
        return False
    return current == c.value


def _variable_greater_than(c: VariableGreaterThanCondition, state: WorldState, dice: Dice) -> bool:
    current = state.variables.get(c.variable)
    return _is_number(current) and current > c.value


def _variable_less_than(c: VariableLessThanCondition, state: WorldState, dice: Dice) -> bool:
    current = state.variables.get(c.variable)
    return _is_number(current) and current < c.value


def _at_location(c: AtLocationCondition, state: WorldState, dice: Dice) -> bool:
    return state.current_location == c.location_id


def _quest_at_stage(c: QuestAtStageCondition, state: WorldState, dice: Dice) -> bool:
    stage = state.quest_progress.get(c.quest_id)
    return stage is not None and stage == c.stage_id


def _character_at(c: CharacterAtCondition, state: WorldState, dice: Dice) -> bool:
    character = state.characters.get(c.character_id)
    return character is not None and character.location == c.location_id


def _character_in_party(c: CharacterInPartyCondition, state: WorldState, dice: Dice) -> bool:
    character = state.characters.get(c.character_id)
    return character is not None and character.in_party


def _relationship_above(c: RelationshipAboveCondition, state: WorldState, dice: Dice) -> bool:
    character = state.characters.get(c.character_id)
    return character is not None and character.relationship > c.value


def _relationship_below(c: RelationshipBelowCondition, state: WorldState, dice: Dice) -> bool:
    character = state.characters.get(c.character_id)
    return character is not None and character.relationship < c.value


def _time_is(c: TimeIsCondition, state: WorldState, dice: Dice) -> bool:
    hour = state.current_time.hour
    if c.start_hour > c.end_hour:
        return hour >= c.start_hour or hour < c.end_hour
    return c.start_hour <= hour < c.end_hour


def _item_at(c: ItemAtCondition, state: WorldState, dice: Dice) -> bool:
    return state.item_locations.get(c.item_id) == c.location_id


def _roll(c: RollCondition, state: WorldState, dice: Dice) -> bool:
    return dice.roll(c.min, c.max) >= c.threshold


_EVALUATORS: dict[type, Callable[..., bool]] = {
    HasFlagCondition: _has_flag,
    NotFlagCondition: _not_flag,
    HasItemCondition: _has_item,
    NotItemCondition: _not_item,
    VariableEqualsCondition: _variable_equals,
    VariableGreaterThanCondition: _variable_greater_than,
    VariableLessThanCondition: _variable_less_than,
    AtLocationCondition: _at_location,
    QuestAtStageCondition: _quest_at_stage,
    CharacterAtCondition: _character_at,
    CharacterInPartyCondition: _character_in_party,
    RelationshipAboveCondition: _relationship_above,
    RelationshipBelowCondition: _relationship_below,
    TimeIsCondition: _time_is,
    ItemAtCondition: _item_at,
    RollCondition: _roll,
}


def evaluate_condition(
    condition: Condition,
    state: WorldState,
    dice: Optional[Dice] = None,
) -> bool:
    """
    Evaluate a single condition against the world state.

    Args:
        condition: Any Condition variant
        state: State to test
        dice: Randomness source for roll conditions

    Returns:
        True if the condition holds
    """
    evaluator = _EVALUATORS.get(type(condition))
    if evaluator is None:
        raise TypeError(f"Unknown condition: {condition!r}")
    return evaluator(condition, state, dice or _default_dice)


def evaluate_conditions(
    conditions: Iterable[Condition],
    state: WorldState,
    dice: Optional[Dice] = None,
) -> bool:
    """True when every condition passes. An empty list passes."""
    return all(evaluate_condition(c, state, dice) for c in conditions)
