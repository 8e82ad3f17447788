"""
Core module.

Exports:
- Engine: Dialogue traversal and world simulation
- DevTools: Debug commands for a running engine
- GameConfig: New-game starting conditions
- WorldState, GameTime, CharacterState, DialogueCursor, PlayerNote: State records
- Dice, ScriptedDice: Randomness sources
- EventBus, Event, NarrativeEvent: Event system
"""

from inkwell.core.state import (
    INVENTORY,
    CharacterState,
    DialogueCursor,
    GameTime,
    PlayerNote,
    WorldState,
)
from inkwell.core.config import GameConfig
from inkwell.core.dice import Dice, ScriptedDice
from inkwell.core.events import EventBus, Event, NarrativeEvent
from inkwell.core.engine import Engine
from inkwell.core.devtools import DevTools

__all__ = [
    # State
    "INVENTORY",
    "CharacterState",
    "DialogueCursor",
    "GameTime",
    "PlayerNote",
    "WorldState",
    # Setup
    "GameConfig",
    "Dice",
    "ScriptedDice",
    # Events
    "EventBus",
    "Event",
    "NarrativeEvent",
    # Engine
    "Engine",
    "DevTools",
]
