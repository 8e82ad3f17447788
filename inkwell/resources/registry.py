"""
Content registry.

Holds the static, author-defined content of a game: locations, characters,
items, maps, quests, journal entries, interludes, compiled dialogues and
locale string tables. The registry is built once by a loader and is only
ever read by the engine.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from inkwell.dialog.model import Dialogue
from inkwell.dialog.parser import DialogueParser
from inkwell.rules.conditions import Condition
from inkwell.rules.effects import Effect


logger = logging.getLogger(__name__)


class ContentModel(BaseModel):
    """Base class for content records."""

    model_config = ConfigDict(frozen=True, extra='ignore')


class Location(ContentModel):
    id: str
    name: str = ""
    description: str = ""
    banner: str = ""
    music: str = ""
    ambient: str = ""


class Character(ContentModel):
    """
    A character definition.

    ``location`` and ``stats`` are starting values; the live values are kept
    in WorldState.characters. ``dialogue`` names the dialogue entered by
    talking to the character (empty for none).
    """
    id: str
    name: str = ""
    biography: str = ""
    portrait: str = ""
    location: str = ""
    dialogue: str = ""
    stats: dict[str, Any] = Field(default_factory=dict)


class Item(ContentModel):
    """An item. ``location`` is a location id, "inventory", or a character id."""
    id: str
    name: str = ""
    description: str = ""
    icon: str = ""
    image: str = ""
    location: str = ""
    stats: dict[str, Any] = Field(default_factory=dict)


class MapLocation(ContentModel):
    id: str
    x: float
    y: float


class GameMap(ContentModel):
    """
    A travel map.

    ``scale`` is in map pixels per in-game hour.
    """
    id: str
    name: str = ""
    image: str = ""
    scale: float = 1.0
    locations: list[MapLocation] = Field(default_factory=list)

    def get_marker(self, location_id: str) -> Optional[MapLocation]:
        for marker in self.locations:
            if marker.id == location_id:
                return marker
        return None


class QuestStage(ContentModel):
    id: str
    description: str = ""


class Quest(ContentModel):
    id: str
    name: str = ""
    description: str = ""
    stages: list[QuestStage] = Field(default_factory=list)

    def get_stage(self, stage_id: str) -> Optional[QuestStage]:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        return None


class JournalEntry(ContentModel):
    id: str
    title: str = ""
    text: str = ""
    category: str = ""


class Interlude(ContentModel):
    """
    A full-screen text scene, shown by an INTERLUDE effect or triggered on
    arrival at ``trigger_location`` when ``trigger_conditions`` pass.

    ``scroll_speed`` is in pixels per second.
    """
    id: str
    background: str = ""
    banner: Optional[str] = None
    music: Optional[str] = None
    voice: Optional[str] = None
    sounds: list[str] = Field(default_factory=list)
    scroll: bool = True
    scroll_speed: float = 30
    text: str = ""
    trigger_location: Optional[str] = None
    trigger_conditions: list[Condition] = Field(default_factory=list)
    effects: list[Effect] = Field(default_factory=list)


class ContentRegistry(BaseModel):
    """
    Read-only store of all game content, keyed by id.

    Usage:
        registry = ContentRegistry.from_dict({
            "locations": {"tavern": {"id": "tavern", "name": "@location.tavern"}},
            "locales": {"en": {"location.tavern": "The Salty Dog"}},
        })
        registry = registry.add_dialogue_source("intro", source)
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    locations: dict[str, Location] = Field(default_factory=dict)
    characters: dict[str, Character] = Field(default_factory=dict)
    items: dict[str, Item] = Field(default_factory=dict)
    maps: dict[str, GameMap] = Field(default_factory=dict)
    dialogues: dict[str, Dialogue] = Field(default_factory=dict)
    quests: dict[str, Quest] = Field(default_factory=dict)
    journal_entries: dict[str, JournalEntry] = Field(default_factory=dict)
    interludes: dict[str, Interlude] = Field(default_factory=dict)
    locales: dict[str, dict[str, str]] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentRegistry:
        """
        Build a registry from plain data.

        Each category may be given either as a mapping of id -> record or as
        a list of records carrying an ``id`` field. Records in a mapping take
        their key as id when they do not name one.
        """
        normalized: dict[str, Any] = {}
        for category, value in data.items():
            if category != 'locales':
                if isinstance(value, list):
                    value = {record['id']: record for record in value}
                else:
                    value = {
                        key: {'id': key, **record} if isinstance(record, dict) else record
                        for key, record in value.items()
                    }
            normalized[category] = value

        registry = cls.model_validate(normalized)
        logger.info(
            f"Loaded {len(registry.locations)} locations, "
            f"{len(registry.characters)} characters, "
            f"{len(registry.items)} items, "
            f"{len(registry.dialogues)} dialogues, "
            f"{len(registry.interludes)} interludes."
        )
        return registry

    def add_dialogue_source(self, dialogue_id: str, source: str) -> ContentRegistry:
        """
        Compile DSL source and return a registry that includes it.

        Raises:
            ParseError: If the source does not compile
        """
        dialogue = DialogueParser().parse_string(source, dialogue_id)
        return self.with_dialogue(dialogue)

    def add_dialogue_file(self, path: str | Path) -> ContentRegistry:
        """Compile a dialogue script file (id = file stem)."""
        dialogue = DialogueParser().parse_file(path)
        return self.with_dialogue(dialogue)

    def with_dialogue(self, dialogue: Dialogue) -> ContentRegistry:
        if dialogue.id in self.dialogues:
            logger.warning(f"Replacing dialogue '{dialogue.id}'")
        return self.model_copy(update={'dialogues': {**self.dialogues, dialogue.id: dialogue}})

    # Lookups

    def get_location(self, location_id: str) -> Optional[Location]:
        return self.locations.get(location_id)

    def get_character(self, character_id: str) -> Optional[Character]:
        return self.characters.get(character_id)

    def find_character(self, name: str) -> Optional[Character]:
        """Look a character up by id, ignoring case."""
        character = self.characters.get(name)
        if character is not None:
            return character
        lowered = name.lower()
        for character_id, character in self.characters.items():
            if character_id.lower() == lowered:
                return character
        return None

    def get_item(self, item_id: str) -> Optional[Item]:
        return self.items.get(item_id)

    def get_map(self, map_id: str) -> Optional[GameMap]:
        return self.maps.get(map_id)

    def get_dialogue(self, dialogue_id: str) -> Optional[Dialogue]:
        return self.dialogues.get(dialogue_id)

    def get_quest(self, quest_id: str) -> Optional[Quest]:
        return self.quests.get(quest_id)

    def get_journal_entry(self, entry_id: str) -> Optional[JournalEntry]:
        return self.journal_entries.get(entry_id)

    def get_interlude(self, interlude_id: str) -> Optional[Interlude]:
        return self.interludes.get(interlude_id)

    def get_strings(self, locale: str) -> dict[str, str]:
        """The flat string table for a locale (empty when unknown)."""
        return self.locales.get(locale, {})

    def map_containing(self, *location_ids: str) -> Optional[GameMap]:
        """First map that has a marker for every given location."""
        for game_map in self.maps.values():
            if all(game_map.get_marker(location_id) is not None for location_id in location_ids):
                return game_map
        return None
