"""
Inkwell

A narrative engine for branching, choice-driven stories.

Quick Start:
    from inkwell import ContentRegistry, Engine, GameConfig

    registry = ContentRegistry.from_dict(content)
    registry = registry.add_dialogue_source("bartender", source)

    engine = Engine(registry)
    snapshot = engine.new_game(GameConfig(start_location="tavern"))
    snapshot = engine.talk_to("bartender")
    snapshot = engine.select_choice(snapshot.choices[0].id)
"""

__version__ = "0.1.0"

# Re-export the public API for convenience
from inkwell.core import (
    Engine,
    DevTools,
    GameConfig,
    WorldState,
    GameTime,
    Dice,
    ScriptedDice,
    EventBus,
    Event,
    NarrativeEvent,
)
from inkwell.dialog import Dialogue, DialogueParser, ParseError, parse_dialogue
from inkwell.resources import ContentRegistry
from inkwell.save import SaveEnvelope, SaveFormatError, dumps, loads
from inkwell.snapshot import Snapshot, build_snapshot

__all__ = [
    # Core
    "Engine",
    "DevTools",
    "GameConfig",
    "WorldState",
    "GameTime",
    "Dice",
    "ScriptedDice",
    "EventBus",
    "Event",
    "NarrativeEvent",
    # Dialog
    "Dialogue",
    "DialogueParser",
    "ParseError",
    "parse_dialogue",
    # Content
    "ContentRegistry",
    # Save
    "SaveEnvelope",
    "SaveFormatError",
    "dumps",
    "loads",
    # Snapshot
    "Snapshot",
    "build_snapshot",
]
