"""
Dialogue graph records - the parser's output.

Dialogues are immutable once compiled. They live in the content registry
and are read, never written, by the engine.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from inkwell.rules.conditions import Condition
from inkwell.rules.effects import Effect


class DialogueModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')


class ConditionalBranch(DialogueModel):
    """
    One IF block of a node.

    Taking the branch applies its effects, then moves to ``next``. A branch
    written with ``GOTO location`` carries no ``next``; its effects end the
    dialogue instead.
    """
    condition: Condition
    effects: list[Effect] = Field(default_factory=list)
    next: Optional[str] = None


class Choice(DialogueModel):
    """A player-selectable branch out of a node."""
    id: str
    text: str
    conditions: list[Condition] = Field(default_factory=list)
    effects: list[Effect] = Field(default_factory=list)
    next: Optional[str] = None


class DialogueNode(DialogueModel):
    """
    A single beat of a dialogue.

    Attributes:
        id: Unique within the dialogue
        speaker: Character id (lower case), or None for the narrator
        text: Literal text or an @localization key; may hold {variable} placeholders
        voice: Optional voice-over file
        portrait: Optional portrait override
        effects: Applied, in order, when the node is entered
        choices: Player choices, filtered by their conditions when the node is reached
        next: Unconditional follow-up node
        conditional_next: IF branches, tried in file order before ``next``
    """
    id: str
    speaker: Optional[str] = None
    text: str = ""
    voice: Optional[str] = None
    portrait: Optional[str] = None
    effects: list[Effect] = Field(default_factory=list)
    choices: list[Choice] = Field(default_factory=list)
    next: Optional[str] = None
    conditional_next: list[ConditionalBranch] = Field(default_factory=list)

    def get_choice(self, choice_id: str) -> Optional[Choice]:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


class Dialogue(DialogueModel):
    """
    A complete dialogue script.

    Attributes:
        id: Registry key
        start_node: Id of the first node in the source
        nodes: Nodes in source order
        trigger_location: Location that enters this dialogue automatically on arrival
        conditions: Extra conditions gating the automatic trigger
    """
    id: str
    start_node: str
    nodes: list[DialogueNode] = Field(default_factory=list)
    trigger_location: Optional[str] = None
    conditions: list[Condition] = Field(default_factory=list)

    def get_node(self, node_id: Optional[str]) -> Optional[DialogueNode]:
        """Get a node by id."""
        if node_id is None:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None
