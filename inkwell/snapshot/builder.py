"""
Snapshot builder.

build_snapshot() is a pure projection of (WorldState, ContentRegistry):
it resolves localization, filters choices by their conditions and joins
state ids to registry records. It never changes state.
"""

from __future__ import annotations

from typing import Callable, Optional

from inkwell.core.dice import Dice
from inkwell.core.state import CharacterState, WorldState
from inkwell.resources.registry import Character, ContentRegistry, Item
from inkwell.rules.conditions import evaluate_conditions
from inkwell.snapshot.localization import create_resolver
from inkwell.snapshot.models import (
    Snapshot,
    SnapshotCharacter,
    SnapshotChoice,
    SnapshotDialogue,
    SnapshotInterlude,
    SnapshotItem,
    SnapshotJournalEntry,
    SnapshotLocation,
    SnapshotMap,
    SnapshotMapLocation,
    SnapshotQuest,
)


Resolver = Callable[[str], str]

NARRATOR_NAME = "Narrator"
UI_PREFIX = "ui."


def build_snapshot(
    state: WorldState,
    registry: ContentRegistry,
    dice: Optional[Dice] = None,
) -> Snapshot:
    """
    Build the renderer view of ``state``.

    Args:
        state: Current world state
        registry: Content the state refers to
        dice: Randomness source for roll conditions on choices

    Returns:
        A fully resolved Snapshot
    """
    strings = registry.get_strings(state.current_locale)
    resolve = create_resolver(strings, state.variables)

    location_record = registry.get_location(state.current_location)
    dialogue, choices = _build_dialogue(state, registry, resolve, dice)

    return Snapshot(
        location=_build_location(state.current_location, registry, resolve),
        characters_here=[
            _build_character(character, char_state, resolve)
            for character, char_state in _characters(state, registry)
            if char_state.location == state.current_location and not char_state.in_party
        ],
        items_here=_build_items(
            [item_id for item_id, location_id in state.item_locations.items()
             if location_id == state.current_location],
            registry,
            resolve,
        ),
        dialogue=dialogue,
        choices=choices,
        party=[
            _build_character(character, char_state, resolve)
            for character, char_state in _characters(state, registry)
            if char_state.in_party
        ],
        inventory=_build_items(state.inventory, registry, resolve),
        quests=_build_quests(state, registry, resolve),
        journal=_build_journal(state, registry, resolve),
        notes=list(state.player_notes),
        variables=dict(state.variables),
        flags=dict(state.flags),
        time=state.current_time,
        map=_build_map(state, registry, resolve) if state.map_enabled else None,
        map_enabled=state.map_enabled,
        music=location_record.music if location_record else "",
        ambient=location_record.ambient if location_record else "",
        locale=state.current_locale,
        ui={
            key[len(UI_PREFIX):]: resolve(value)
            for key, value in strings.items()
            if key.startswith(UI_PREFIX)
        },
        notifications=[resolve(message) for message in state.notifications],
        pending_sounds=list(state.pending_sounds),
        pending_video=state.pending_video,
        pending_interlude=_build_interlude(state, registry, resolve),
    )


def _characters(state: WorldState, registry: ContentRegistry):
    for character_id, char_state in state.characters.items():
        character = registry.get_character(character_id)
        if character is not None:
            yield character, char_state


def _build_location(location_id: str, registry: ContentRegistry, resolve: Resolver) -> SnapshotLocation:
    location = registry.get_location(location_id)
    if location is None:
        return SnapshotLocation(
            id=location_id,
            name=location_id,
            description=f"Location not found: {location_id}",
        )
    return SnapshotLocation(
        id=location.id,
        name=resolve(location.name),
        description=resolve(location.description),
        banner=location.banner,
    )


def _build_character(character: Character, char_state: CharacterState, resolve: Resolver) -> SnapshotCharacter:
    return SnapshotCharacter(
        id=character.id,
        name=resolve(character.name),
        biography=resolve(character.biography),
        portrait=character.portrait,
        location=char_state.location,
        in_party=char_state.in_party,
        relationship=char_state.relationship,
        stats=dict(char_state.stats),
    )


def _build_item(item: Item, resolve: Resolver) -> SnapshotItem:
    return SnapshotItem(
        id=item.id,
        name=resolve(item.name),
        description=resolve(item.description),
        icon=item.icon,
        image=item.image,
        stats=dict(item.stats),
    )


def _build_items(item_ids: list[str], registry: ContentRegistry, resolve: Resolver) -> list[SnapshotItem]:
    items = []
    for item_id in item_ids:
        item = registry.get_item(item_id)
        if item is not None:
            items.append(_build_item(item, resolve))
    return items


def _build_journal(state: WorldState, registry: ContentRegistry, resolve: Resolver) -> list[SnapshotJournalEntry]:
    entries = []
    for entry_id in state.unlocked_journal_entries:
        entry = registry.get_journal_entry(entry_id)
        if entry is None:
            continue
        entries.append(SnapshotJournalEntry(
            id=entry.id,
            title=resolve(entry.title),
            text=resolve(entry.text),
            category=entry.category,
        ))
    return entries


def _build_dialogue(
    state: WorldState,
    registry: ContentRegistry,
    resolve: Resolver,
    dice: Optional[Dice],
) -> tuple[Optional[SnapshotDialogue], list[SnapshotChoice]]:
    cursor = state.dialogue
    if cursor is None:
        return None, []

    dialogue = registry.get_dialogue(cursor.dialogue_id)
    node = dialogue.get_node(cursor.node_id) if dialogue else None
    if node is None:
        return None, []

    speaker = registry.find_character(node.speaker) if node.speaker else None
    if node.speaker is None:
        speaker_name = NARRATOR_NAME
    elif speaker is not None:
        speaker_name = resolve(speaker.name)
    else:
        speaker_name = node.speaker

    portrait = node.portrait
    if portrait is None and speaker is not None and speaker.portrait:
        portrait = speaker.portrait

    snapshot_dialogue = SnapshotDialogue(
        dialogue_id=dialogue.id,
        node_id=node.id,
        speaker=node.speaker,
        speaker_name=speaker_name,
        text=resolve(node.text),
        portrait=portrait,
        voice=node.voice,
    )
    if cursor.choices is None:
        offered = [choice for choice in node.choices if evaluate_conditions(choice.conditions, state, dice)]
    else:
        offered = [choice for choice in node.choices if choice.id in cursor.choices]
    choices = [SnapshotChoice(id=choice.id, text=resolve(choice.text)) for choice in offered]
    return snapshot_dialogue, choices


def _build_quests(state: WorldState, registry: ContentRegistry, resolve: Resolver) -> list[SnapshotQuest]:
    quests = []
    for quest_id, stage_id in state.quest_progress.items():
        quest = registry.get_quest(quest_id)
        if quest is None:
            continue
        stage = quest.get_stage(stage_id)
        if stage is None:
            continue
        quests.append(SnapshotQuest(
            id=quest.id,
            name=resolve(quest.name),
            description=resolve(quest.description),
            current_stage=stage.id,
            current_stage_description=resolve(stage.description),
        ))
    return quests


def _build_map(state: WorldState, registry: ContentRegistry, resolve: Resolver) -> Optional[SnapshotMap]:
    # The map that shows the player, else the first one
    game_map = registry.map_containing(state.current_location)
    if game_map is None:
        game_map = next(iter(registry.maps.values()), None)
    if game_map is None:
        return None

    markers = []
    for marker in game_map.locations:
        location = registry.get_location(marker.id)
        markers.append(SnapshotMapLocation(
            id=marker.id,
            name=resolve(location.name) if location else marker.id,
            x=marker.x,
            y=marker.y,
            is_current=marker.id == state.current_location,
        ))

    return SnapshotMap(
        id=game_map.id,
        name=resolve(game_map.name),
        image=game_map.image,
        scale=game_map.scale,
        locations=markers,
    )


def _build_interlude(state: WorldState, registry: ContentRegistry, resolve: Resolver) -> Optional[SnapshotInterlude]:
    if state.pending_interlude is None:
        return None
    interlude = registry.get_interlude(state.pending_interlude)
    if interlude is None:
        return None
    return SnapshotInterlude(
        id=interlude.id,
        background=interlude.background,
        banner=interlude.banner,
        music=interlude.music,
        voice=interlude.voice,
        sounds=list(interlude.sounds),
        scroll=interlude.scroll,
        scroll_speed=interlude.scroll_speed,
        text=resolve(interlude.text),
    )
