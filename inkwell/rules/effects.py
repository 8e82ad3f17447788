"""
Effects - pure state transitions.

Like conditions, each effect kind is a tagged model. apply_effect() takes
a WorldState and returns a new one; the input is never modified. Containers
are rebuilt rather than mutated so a caller holding the old state keeps an
unchanged view of it.

apply_effects() folds a list left to right, so later effects observe the
results of earlier ones:

    ADD variable gold -5
    IF variableLessThan gold 0 ...
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Callable, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from inkwell.core.dice import Dice
from inkwell.core.state import INVENTORY, DialogueCursor, VariableValue, WorldState


logger = logging.getLogger(__name__)


class EffectBase(BaseModel):
    """Base class for effect variants."""

    model_config = ConfigDict(frozen=True, extra='forbid')


class SetFlagEffect(EffectBase):
    """SET flag metBartender"""
    type: Literal['setFlag'] = 'setFlag'
    flag: str


class ClearFlagEffect(EffectBase):
    """CLEAR flag doorLocked"""
    type: Literal['clearFlag'] = 'clearFlag'
    flag: str


class SetVariableEffect(EffectBase):
    """SET variable gold 100"""
    type: Literal['setVariable'] = 'setVariable'
    variable: str
    value: VariableValue


class AddVariableEffect(EffectBase):
    """ADD variable gold -50"""
    type: Literal['addVariable'] = 'addVariable'
    variable: str
    value: Union[int, float]


class AddItemEffect(EffectBase):
    """ADD item rusty_key"""
    type: Literal['addItem'] = 'addItem'
    item_id: str


class RemoveItemEffect(EffectBase):
    """REMOVE item rusty_key"""
    type: Literal['removeItem'] = 'removeItem'
    item_id: str


class MoveItemEffect(EffectBase):
    """MOVE item rusty_key cellar"""
    type: Literal['moveItem'] = 'moveItem'
    item_id: str
    location_id: str


class GoToLocationEffect(EffectBase):
    """GOTO location tavern"""
    type: Literal['goToLocation'] = 'goToLocation'
    location_id: str


class AdvanceTimeEffect(EffectBase):
    """ADVANCE time 2"""
    type: Literal['advanceTime'] = 'advanceTime'
    hours: int


class SetQuestStageEffect(EffectBase):
    """SET questStage odd_jobs started"""
    type: Literal['setQuestStage'] = 'setQuestStage'
    quest_id: str
    stage_id: str


class AddJournalEntryEffect(EffectBase):
    """ADD journalEntry tavern_discovery"""
    type: Literal['addJournalEntry'] = 'addJournalEntry'
    entry_id: str


class StartDialogueEffect(EffectBase):
    """START dialogue merchant_intro"""
    type: Literal['startDialogue'] = 'startDialogue'
    dialogue_id: str


class EndDialogueEffect(EffectBase):
    """END dialogue"""
    type: Literal['endDialogue'] = 'endDialogue'


class SetCharacterLocationEffect(EffectBase):
    """SET characterLocation merchant tavern"""
    type: Literal['setCharacterLocation'] = 'setCharacterLocation'
    character_id: str
    location_id: str


class AddToPartyEffect(EffectBase):
    """ADD toParty elisa"""
    type: Literal['addToParty'] = 'addToParty'
    character_id: str


class RemoveFromPartyEffect(EffectBase):
    """REMOVE fromParty elisa"""
    type: Literal['removeFromParty'] = 'removeFromParty'
    character_id: str


class SetRelationshipEffect(EffectBase):
    """SET relationship bartender 5"""
    type: Literal['setRelationship'] = 'setRelationship'
    character_id: str
    value: int


class AddRelationshipEffect(EffectBase):
    """ADD relationship bartender 1"""
    type: Literal['addRelationship'] = 'addRelationship'
    character_id: str
    value: int


class SetCharacterStatEffect(EffectBase):
    """SET characterStat elisa level 5"""
    type: Literal['setCharacterStat'] = 'setCharacterStat'
    character_id: str
    stat: str
    value: Any


class AddCharacterStatEffect(EffectBase):
    """ADD characterStat elisa health -10"""
    type: Literal['addCharacterStat'] = 'addCharacterStat'
    character_id: str
    stat: str
    value: Union[int, float]


class SetMapEnabledEffect(EffectBase):
    """SET mapEnabled false"""
    type: Literal['setMapEnabled'] = 'setMapEnabled'
    enabled: bool


class PlayMusicEffect(EffectBase):
    """MUSIC tension_theme.ogg (renderer-owned, leaves state untouched)"""
    type: Literal['playMusic'] = 'playMusic'
    track: str


class PlaySoundEffect(EffectBase):
    """SOUND door_slam.ogg"""
    type: Literal['playSound'] = 'playSound'
    sound: str


class NotifyEffect(EffectBase):
    """NOTIFY @quest.odd_jobs.started"""
    type: Literal['notify'] = 'notify'
    message: str


class PlayVideoEffect(EffectBase):
    """VIDEO intro.mp4"""
    type: Literal['playVideo'] = 'playVideo'
    file: str


class ShowInterludeEffect(EffectBase):
    """INTERLUDE chapter_one"""
    type: Literal['showInterlude'] = 'showInterlude'
    interlude_id: str


class RollEffect(EffectBase):
    """ROLL bluffRoll 1 20 - stores the result for later {bluffRoll} text."""
    type: Literal['roll'] = 'roll'
    variable: str
    min: int
    max: int


Effect = Annotated[
    Union[
        SetFlagEffect,
        ClearFlagEffect,
        SetVariableEffect,
        AddVariableEffect,
        AddItemEffect,
        RemoveItemEffect,
        MoveItemEffect,
        GoToLocationEffect,
        AdvanceTimeEffect,
        SetQuestStageEffect,
        AddJournalEntryEffect,
        StartDialogueEffect,
        EndDialogueEffect,
        SetCharacterLocationEffect,
        AddToPartyEffect,
        RemoveFromPartyEffect,
        SetRelationshipEffect,
        AddRelationshipEffect,
        SetCharacterStatEffect,
        AddCharacterStatEffect,
        SetMapEnabledEffect,
        PlayMusicEffect,
        PlaySoundEffect,
        NotifyEffect,
        PlayVideoEffect,
        ShowInterludeEffect,
        RollEffect,
    ],
    Field(discriminator='type'),
]

effect_adapter: TypeAdapter[Effect] = TypeAdapter(Effect)

_default_dice = Dice()


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _set_flag(e: SetFlagEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(flags={**state.flags, e.flag: True})


def _clear_flag(e: ClearFlagEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(flags={**state.flags, e.flag: False})


def _set_variable(e: SetVariableEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(variables={**state.variables, e.variable: e.value})


def _add_variable(e: AddVariableEffect, state: WorldState, dice: Dice) -> WorldState:
    current = state.variables.get(e.variable)
    # Missing or string values are overwritten by the delta
    value = current + e.value if _is_number(current) else e.value
    return state.with_changes(variables={**state.variables, e.variable: value})


def _add_item(e: AddItemEffect, state: WorldState, dice: Dice) -> WorldState:
    if e.item_id in state.inventory:
        return state
    return state.with_changes(
        inventory=[*state.inventory, e.item_id],
        item_locations={**state.item_locations, e.item_id: INVENTORY},
    )


def _remove_item(e: RemoveItemEffect, state: WorldState, dice: Dice) -> WorldState:
    if e.item_id not in state.inventory:
        return state
    return state.with_changes(
        inventory=[item for item in state.inventory if item != e.item_id],
    )


def _move_item(e: MoveItemEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(
        inventory=[item for item in state.inventory if item != e.item_id],
        item_locations={**state.item_locations, e.item_id: e.location_id},
    )


def _go_to_location(e: GoToLocationEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(current_location=e.location_id)


def _advance_time(e: AdvanceTimeEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(current_time=state.current_time.advanced(e.hours))


def _set_quest_stage(e: SetQuestStageEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(quest_progress={**state.quest_progress, e.quest_id: e.stage_id})


def _add_journal_entry(e: AddJournalEntryEffect, state: WorldState, dice: Dice) -> WorldState:
    if e.entry_id in state.unlocked_journal_entries:
        return state
    return state.with_changes(
        unlocked_journal_entries=[*state.unlocked_journal_entries, e.entry_id],
    )


def _start_dialogue(e: StartDialogueEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(dialogue=DialogueCursor(dialogue_id=e.dialogue_id))


def _end_dialogue(e: EndDialogueEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(dialogue=None)


def _set_character_location(e: SetCharacterLocationEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_character(e.character_id, location=e.location_id)


def _add_to_party(e: AddToPartyEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_character(e.character_id, in_party=True)


def _remove_from_party(e: RemoveFromPartyEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_character(e.character_id, in_party=False)


def _set_relationship(e: SetRelationshipEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_character(e.character_id, relationship=e.value)


def _add_relationship(e: AddRelationshipEffect, state: WorldState, dice: Dice) -> WorldState:
    character = state.characters.get(e.character_id)
    if character is None:
        return state
    return state.with_character(e.character_id, relationship=character.relationship + e.value)


def _set_character_stat(e: SetCharacterStatEffect, state: WorldState, dice: Dice) -> WorldState:
    character = state.characters.get(e.character_id)
    if character is None:
        return state
    return state.with_character(e.character_id, stats={**character.stats, e.stat: e.value})


def _add_character_stat(e: AddCharacterStatEffect, state: WorldState, dice: Dice) -> WorldState:
    character = state.characters.get(e.character_id)
    if character is None:
        return state
    current = character.stats.get(e.stat)
    value = current + e.value if _is_number(current) else e.value
    return state.with_character(e.character_id, stats={**character.stats, e.stat: value})


def _set_map_enabled(e: SetMapEnabledEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(map_enabled=e.enabled)


def _play_music(e: PlayMusicEffect, state: WorldState, dice: Dice) -> WorldState:
    return state


def _play_sound(e: PlaySoundEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(pending_sounds=[*state.pending_sounds, e.sound])


def _notify(e: NotifyEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(notifications=[*state.notifications, e.message])


def _play_video(e: PlayVideoEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(pending_video=e.file)


def _show_interlude(e: ShowInterludeEffect, state: WorldState, dice: Dice) -> WorldState:
    return state.with_changes(pending_interlude=e.interlude_id)


def _roll(e: RollEffect, state: WorldState, dice: Dice) -> WorldState:
    result = dice.roll(e.min, e.max)
    logger.debug(f"Rolled {result} ({e.min}-{e.max}) into '{e.variable}'")
    return state.with_changes(variables={**state.variables, e.variable: result})


_APPLIERS: dict[type, Callable[..., WorldState]] = {
    SetFlagEffect: _set_flag,
    ClearFlagEffect: _clear_flag,
    SetVariableEffect: _set_variable,
    AddVariableEffect: _add_variable,
    AddItemEffect: _add_item,
    RemoveItemEffect: _remove_item,
    MoveItemEffect: _move_item,
    GoToLocationEffect: _go_to_location,
    AdvanceTimeEffect: _advance_time,
    SetQuestStageEffect: _set_quest_stage,
    AddJournalEntryEffect: _add_journal_entry,
    StartDialogueEffect: _start_dialogue,
    EndDialogueEffect: _end_dialogue,
    SetCharacterLocationEffect: _set_character_location,
    AddToPartyEffect: _add_to_party,
    RemoveFromPartyEffect: _remove_from_party,
    SetRelationshipEffect: _set_relationship,
    AddRelationshipEffect: _add_relationship,
    SetCharacterStatEffect: _set_character_stat,
    AddCharacterStatEffect: _add_character_stat,
    SetMapEnabledEffect: _set_map_enabled,
    PlayMusicEffect: _play_music,
    PlaySoundEffect: _play_sound,
    NotifyEffect: _notify,
    PlayVideoEffect: _play_video,
    ShowInterludeEffect: _show_interlude,
    RollEffect: _roll,
}


def apply_effect(
    effect: Effect,
    state: WorldState,
    dice: Optional[Dice] = None,
) -> WorldState:
    """
    Apply one effect and return the resulting state.

    Args:
        effect: Any Effect variant
        state: State before the effect (left untouched)
        dice: Randomness source for roll effects

    Returns:
        The new state (may be ``state`` itself when nothing changed)
    """
    applier = _APPLIERS.get(type(effect))
    if applier is None:
        raise TypeError(f"Unknown effect: {effect!r}")
    return applier(effect, state, dice or _default_dice)


def apply_effects(
    effects: Iterable[Effect],
    state: WorldState,
    dice: Optional[Dice] = None,
) -> WorldState:
    """Apply effects in order; each one sees the result of the previous."""
    for effect in effects:
        state = apply_effect(effect, state, dice)
    return state
