import os
import sys
import pytest

# Ensure inkwell can be imported without installing
sys.path.append(os.getcwd())


BARTENDER_SCRIPT = """
# The bartender of the Salty Dog
NODE start
  BARTENDER: @bartender.greeting
  CHOICE "Pour me a drink."
    REQUIRE variableGreaterThan gold 4
    ADD variable gold -5
    GOTO after
  END
  CHOICE "Anything to eat?"
    REQUIRE hasFlag kitchenOpen
    GOTO after
  END
  CHOICE @choice.leave
    GOTO location market
  END

NODE after
  BARTENDER: "That'll be five gold. Enjoy."
  GOTO farewell

NODE farewell
  NARRATOR: "The bartender turns back to the taps."
"""


@pytest.fixture
def content():
    """Plain content data, the shape a loader hands to ContentRegistry.from_dict."""
    return {
        "locations": {
            "tavern": {
                "name": "@location.tavern",
                "description": "A smoky room.",
                "banner": "tavern.png",
                "music": "tavern_theme.ogg",
                "ambient": "crowd.ogg",
            },
            "market": {
                "name": "Market",
                "description": "Stalls everywhere.",
            },
            "docks": {
                "name": "Docks",
            },
        },
        "characters": {
            "bartender": {
                "name": "@character.bartender",
                "biography": "Runs the tavern.",
                "portrait": "bartender.png",
                "location": "tavern",
                "dialogue": "bartender",
                "stats": {"strength": 3},
            },
            "merchant": {
                "name": "Merchant",
                "location": "market",
            },
        },
        "items": {
            "rusty_key": {
                "name": "Rusty Key",
                "description": "Opens something.",
                "location": "tavern",
            },
            "map_scroll": {
                "name": "Map",
                "location": "market",
            },
        },
        "maps": {
            "harbor": {
                "name": "Harbor Town",
                "image": "harbor.png",
                "scale": 10,
                "locations": [
                    {"id": "tavern", "x": 0, "y": 0},
                    {"id": "market", "x": 100, "y": 0},
                ],
            },
        },
        "quests": {
            "odd_jobs": {
                "name": "Odd Jobs",
                "description": "Help around town.",
                "stages": [
                    {"id": "started", "description": "Ask around for work."},
                    {"id": "done", "description": "Paid in full."},
                ],
            },
        },
        "journal_entries": {
            "salty_dog": {
                "title": "The Salty Dog",
                "text": "A tavern by the water.",
                "category": "places",
            },
        },
        "interludes": {
            "arrival": {
                "background": "docks.png",
                "text": "@interlude.arrival",
                "trigger_location": "docks",
                "trigger_conditions": [{"type": "notFlag", "flag": "sawArrival"}],
                "effects": [{"type": "setFlag", "flag": "sawArrival"}],
            },
        },
        "locales": {
            "en": {
                "location.tavern": "The Salty Dog",
                "character.bartender": "Bartender",
                "bartender.greeting": "Welcome, stranger. You have {gold} gold.",
                "choice.leave": "Leave",
                "interlude.arrival": "The fog lifts over the docks.",
                "ui.inventory": "Inventory",
            },
            "fr": {
                "location.tavern": "Le Chien Salé",
            },
        },
    }


@pytest.fixture
def registry(content):
    """Registry with the bartender dialogue compiled in."""
    from inkwell.resources.registry import ContentRegistry
    registry = ContentRegistry.from_dict(content)
    return registry.add_dialogue_source("bartender", BARTENDER_SCRIPT)


@pytest.fixture
def config():
    from inkwell.core.config import GameConfig
    from inkwell.core.state import GameTime
    return GameConfig(
        start_location="tavern",
        start_time=GameTime(day=1, hour=8),
        start_variables={"gold": 100},
    )


@pytest.fixture
def dice():
    """Scripted dice; tests replace the results they need."""
    from inkwell.core.dice import ScriptedDice
    return ScriptedDice([])


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from inkwell.core.events import EventBus
    return EventBus()


@pytest.fixture
def engine(registry, dice, event_bus):
    from inkwell.core.engine import Engine
    return Engine(registry, dice=dice, event_bus=event_bus)


@pytest.fixture
def state():
    """A small WorldState for rule tests."""
    from inkwell.core.state import CharacterState, GameTime, WorldState
    return WorldState(
        current_location="tavern",
        current_time=GameTime(day=1, hour=10),
        flags={"metBartender": True, "doorLocked": False},
        variables={"gold": 100, "name": "John", "ratio": 2.5},
        inventory=["rusty_key"],
        quest_progress={"odd_jobs": "started"},
        characters={
            "bartender": CharacterState(location="tavern", relationship=5, stats={"strength": 3}),
            "merchant": CharacterState(location="market", in_party=True),
        },
        item_locations={"rusty_key": "inventory", "map_scroll": "market"},
    )
