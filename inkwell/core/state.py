"""
World state - the single mutable record of a running game.

Every record here is a frozen pydantic model. The engine never edits a
state in place: each transition builds a new value with fresh containers
(see inkwell.rules.effects), so any reference handed out keeps observing
the version it was given.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


VariableValue = Union[int, float, str]

# Item location marker for items carried by the player
INVENTORY = "inventory"


class StateModel(BaseModel):
    """Base class for immutable state records."""

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
    )


class GameTime(StateModel):
    """In-game clock. Days are 1-based, hours run 0-23."""
    day: int = 1
    hour: int = 0

    @property
    def total_hours(self) -> int:
        return self.day * 24 + self.hour

    def advanced(self, hours: int) -> GameTime:
        """Return the time ``hours`` later, rolling over days."""
        total = self.total_hours + hours
        return GameTime(day=total // 24, hour=total % 24)


class CharacterState(StateModel):
    """Mutable per-character data."""
    location: str = ""
    in_party: bool = False
    relationship: int = 0
    stats: dict[str, Any] = Field(default_factory=dict)


class DialogueCursor(StateModel):
    """
    Position inside the active dialogue.

    ``node_id`` is None right after a startDialogue effect; the engine
    resolves it to the dialogue's start node.

    ``choices`` holds the ids of the choices offered at this node, decided
    once when the dialogue comes to rest there. None means not decided yet.
    """
    dialogue_id: str
    node_id: Optional[str] = None
    choices: Optional[list[str]] = None


class PlayerNote(StateModel):
    """A note written by the player."""
    id: str
    title: str
    text: str


class WorldState(StateModel):
    """
    Everything that changes during play. This is what gets saved.

    The last four fields are transient: they are reported by exactly one
    snapshot and then cleared.
    """
    current_location: str = ""
    current_time: GameTime = Field(default_factory=GameTime)
    flags: dict[str, bool] = Field(default_factory=dict)
    variables: dict[str, VariableValue] = Field(default_factory=dict)
    inventory: list[str] = Field(default_factory=list)
    quest_progress: dict[str, str] = Field(default_factory=dict)
    unlocked_journal_entries: list[str] = Field(default_factory=list)
    player_notes: list[PlayerNote] = Field(default_factory=list)
    dialogue: Optional[DialogueCursor] = None
    characters: dict[str, CharacterState] = Field(default_factory=dict)
    item_locations: dict[str, str] = Field(default_factory=dict)
    map_enabled: bool = True
    current_locale: str = "en"

    # Transient
    notifications: list[str] = Field(default_factory=list)
    pending_sounds: list[str] = Field(default_factory=list)
    pending_video: Optional[str] = None
    pending_interlude: Optional[str] = None

    @property
    def in_dialogue(self) -> bool:
        return self.dialogue is not None

    def with_changes(self, **changes: Any) -> WorldState:
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=changes)

    def with_character(self, character_id: str, **changes: Any) -> WorldState:
        """
        Return a copy with one character's sub-state replaced.

        Unknown characters leave the state untouched.
        """
        current = self.characters.get(character_id)
        if current is None:
            return self
        characters = dict(self.characters)
        characters[character_id] = current.model_copy(update=changes)
        return self.model_copy(update={'characters': characters})

    def cleared_transients(self) -> WorldState:
        """Return a copy with notifications, sounds, video and interlude reset."""
        return self.model_copy(update={
            'notifications': [],
            'pending_sounds': [],
            'pending_video': None,
            'pending_interlude': None,
        })
