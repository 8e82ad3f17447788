"""
Snapshot records - the renderer's complete view of one moment of play.

Everything here is already localized and condition-filtered: a renderer
never needs the registry or the raw WorldState.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from inkwell.core.state import GameTime, PlayerNote, VariableValue


class SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class SnapshotLocation(SnapshotModel):
    id: str
    name: str
    description: str
    banner: str = ""


class SnapshotCharacter(SnapshotModel):
    id: str
    name: str
    biography: str
    portrait: str
    location: str
    in_party: bool
    relationship: int
    stats: dict[str, Any] = Field(default_factory=dict)


class SnapshotItem(SnapshotModel):
    id: str
    name: str
    description: str
    icon: str
    image: str
    stats: dict[str, Any] = Field(default_factory=dict)


class SnapshotChoice(SnapshotModel):
    id: str
    text: str


class SnapshotDialogue(SnapshotModel):
    """The current line. ``speaker`` is None for narration."""
    dialogue_id: str
    node_id: str
    speaker: Optional[str]
    speaker_name: str
    text: str
    portrait: Optional[str] = None
    voice: Optional[str] = None


class SnapshotQuest(SnapshotModel):
    id: str
    name: str
    description: str
    current_stage: str
    current_stage_description: str


class SnapshotJournalEntry(SnapshotModel):
    id: str
    title: str
    text: str
    category: str


class SnapshotMapLocation(SnapshotModel):
    id: str
    name: str
    x: float
    y: float
    is_current: bool


class SnapshotMap(SnapshotModel):
    id: str
    name: str
    image: str
    scale: float
    locations: list[SnapshotMapLocation] = Field(default_factory=list)


class SnapshotInterlude(SnapshotModel):
    id: str
    background: str
    banner: Optional[str] = None
    music: Optional[str] = None
    voice: Optional[str] = None
    sounds: list[str] = Field(default_factory=list)
    scroll: bool = True
    scroll_speed: float = 30
    text: str = ""


class Snapshot(SnapshotModel):
    """
    Renderer-ready projection of WorldState + ContentRegistry.

    ``notifications``, ``pending_sounds``, ``pending_video`` and
    ``pending_interlude`` are reported by exactly one snapshot.
    """
    location: SnapshotLocation
    characters_here: list[SnapshotCharacter] = Field(default_factory=list)
    items_here: list[SnapshotItem] = Field(default_factory=list)
    dialogue: Optional[SnapshotDialogue] = None
    choices: list[SnapshotChoice] = Field(default_factory=list)
    party: list[SnapshotCharacter] = Field(default_factory=list)
    inventory: list[SnapshotItem] = Field(default_factory=list)
    quests: list[SnapshotQuest] = Field(default_factory=list)
    journal: list[SnapshotJournalEntry] = Field(default_factory=list)
    notes: list[PlayerNote] = Field(default_factory=list)
    variables: dict[str, VariableValue] = Field(default_factory=dict)
    flags: dict[str, bool] = Field(default_factory=dict)
    time: GameTime = Field(default_factory=GameTime)
    map: Optional[SnapshotMap] = None
    map_enabled: bool = True
    music: str = ""
    ambient: str = ""
    locale: str = "en"
    ui: dict[str, str] = Field(default_factory=dict)

    notifications: list[str] = Field(default_factory=list)
    pending_sounds: list[str] = Field(default_factory=list)
    pending_video: Optional[str] = None
    pending_interlude: Optional[SnapshotInterlude] = None

    @property
    def in_dialogue(self) -> bool:
        return self.dialogue is not None
