"""
Resources module - static game content.
"""

from inkwell.resources.registry import (
    ContentRegistry,
    Location,
    Character,
    Item,
    GameMap,
    MapLocation,
    Quest,
    QuestStage,
    JournalEntry,
    Interlude,
)

__all__ = [
    "ContentRegistry",
    "Location",
    "Character",
    "Item",
    "GameMap",
    "MapLocation",
    "Quest",
    "QuestStage",
    "JournalEntry",
    "Interlude",
]
