"""
Narrative engine - turns player actions into new world states.

The engine owns the current WorldState and a read-only ContentRegistry.
Every public action follows the same shape:

    state = transition(state)       # conditions + effects, no side effects
    snapshot = build_snapshot(...)  # renderer view
    state = state.cleared_transients()
    return snapshot

Actions that are not valid right now (talking while already in a
dialogue, selecting a hidden choice, taking an item that is elsewhere)
are no-ops: they log at DEBUG and return the unchanged snapshot.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional

from inkwell.core.config import GameConfig
from inkwell.core.dice import Dice
from inkwell.core.events import EventBus, NarrativeEvent
from inkwell.core.state import (
    INVENTORY,
    CharacterState,
    DialogueCursor,
    PlayerNote,
    WorldState,
)
from inkwell.dialog.model import Dialogue, DialogueNode
from inkwell.resources.registry import ContentRegistry
from inkwell.rules.conditions import evaluate_condition, evaluate_conditions
from inkwell.rules.effects import Effect, apply_effects
from inkwell.save.manager import SaveEnvelope
from inkwell.snapshot.builder import build_snapshot
from inkwell.snapshot.models import Snapshot


logger = logging.getLogger(__name__)

# (dialogue id, node id)
Position = tuple[str, str]

NOTE_ID_PATTERN = re.compile(r'^note_(\d+)$')


class Engine:
    """
    Dialogue traversal and world simulation.

    The engine is either Idle (no active dialogue) or InDialogue. In a
    dialogue it rests on a node that shows choices or text; silent nodes
    are passed through by settle.

    Usage:
        engine = Engine(registry)
        snapshot = engine.new_game(GameConfig(start_location="tavern"))
        snapshot = engine.talk_to("bartender")
        snapshot = engine.select_choice(snapshot.choices[0].id)
    """

    MAX_SETTLE_STEPS = 1000
    MIN_TRAVEL_HOURS = 1

    def __init__(
        self,
        registry: ContentRegistry,
        state: Optional[WorldState] = None,
        dice: Optional[Dice] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._registry = registry
        self._state = state if state is not None else WorldState()
        self.dice = dice if dice is not None else Dice()
        self.event_bus = event_bus if event_bus is not None else EventBus()

    # Properties

    @property
    def state(self) -> WorldState:
        """The current world state. Immutable; actions replace it."""
        return self._state

    @property
    def registry(self) -> ContentRegistry:
        return self._registry

    @property
    def in_dialogue(self) -> bool:
        return self._state.in_dialogue

    # Lifecycle

    def new_game(self, config: GameConfig) -> Snapshot:
        """Start a new game from its starting conditions."""
        characters = {
            character_id: CharacterState(
                location=character.location,
                in_party=False,
                relationship=0,
                stats=dict(character.stats),
            )
            for character_id, character in self._registry.characters.items()
        }

        item_locations = {
            item_id: item.location
            for item_id, item in self._registry.items.items()
        }
        inventory: list[str] = []
        for item_id in config.start_inventory:
            if item_id not in inventory:
                inventory.append(item_id)
            item_locations[item_id] = INVENTORY

        self._state = WorldState(
            current_location=config.start_location,
            current_time=config.start_time,
            flags=dict(config.start_flags),
            variables=dict(config.start_variables),
            inventory=inventory,
            characters=characters,
            item_locations=item_locations,
            current_locale=config.locale,
        )

        logger.info(f"New game at '{config.start_location}'")
        self._publish(NarrativeEvent.GAME_STARTED, location_id=config.start_location)

        self._check_triggers()
        return self._snapshot()

    def save_game(self) -> SaveEnvelope:
        """Capture the current state in a save envelope."""
        envelope = SaveEnvelope.create(self._state)
        logger.info(f"Game saved at '{self._state.current_location}'")
        self._publish(NarrativeEvent.GAME_SAVED, timestamp=envelope.timestamp)
        return envelope

    def load_game(self, envelope: SaveEnvelope | dict[str, Any]) -> Snapshot:
        """
        Replace the current state with a saved one.

        Raises:
            SaveFormatError: If ``envelope`` is a dict that is not valid save data
        """
        if not isinstance(envelope, SaveEnvelope):
            envelope = SaveEnvelope.from_dict(envelope)

        self._state = envelope.state
        logger.info(f"Game loaded (saved {envelope.timestamp})")
        self._publish(NarrativeEvent.GAME_LOADED, timestamp=envelope.timestamp)
        return self._snapshot()

    def get_snapshot(self) -> Snapshot:
        """Current view without any change of state."""
        return self._snapshot()

    # Dialogue actions

    def talk_to(self, character_id: str) -> Snapshot:
        """Enter the dialogue of a character."""
        if self.in_dialogue:
            logger.debug(f"talk_to('{character_id}') ignored: already in a dialogue")
            return self._snapshot()

        character = self._registry.find_character(character_id)
        if character is None or not character.dialogue:
            logger.debug(f"talk_to('{character_id}') ignored: no dialogue for character")
            return self._snapshot()

        previous_location = self._state.current_location
        self._start_dialogue(character.dialogue)
        self._after_flow(previous_location)
        return self._snapshot()

    def select_choice(self, choice_id: str) -> Snapshot:
        """Pick one of the visible choices of the current node."""
        node = self._current_node()
        if node is None:
            logger.debug(f"select_choice('{choice_id}') ignored: not in a dialogue")
            return self._snapshot()

        choice = node.get_choice(choice_id)
        if choice is None or choice.id not in self._offered_choice_ids(node):
            logger.debug(f"select_choice('{choice_id}') ignored: choice not available")
            return self._snapshot()

        dialogue_id = self._state.dialogue.dialogue_id
        previous_location = self._state.current_location
        self._publish(
            NarrativeEvent.CHOICE_SELECTED,
            dialogue_id=dialogue_id,
            node_id=node.id,
            choice_id=choice.id,
        )

        self._state = apply_effects(choice.effects, self._state, self.dice)
        target = self._redirect(dialogue_id, choice.next)
        if target is None:
            self._finish_dialogue(dialogue_id)
        else:
            self._settle(target, entering=target[0] != dialogue_id)

        self._after_flow(previous_location)
        return self._snapshot()

    def continue_dialogue(self) -> Snapshot:
        """Advance past a node that shows no choices."""
        node = self._current_node()
        if node is None:
            logger.debug("continue_dialogue() ignored: not in a dialogue")
            return self._snapshot()

        if self._offered_choice_ids(node):
            logger.debug(f"continue_dialogue() ignored: node '{node.id}' is waiting for a choice")
            return self._snapshot()

        dialogue_id = self._state.dialogue.dialogue_id
        previous_location = self._state.current_location
        target = self._follow(dialogue_id, node)
        if target is None:
            self._finish_dialogue(dialogue_id)
        else:
            self._settle(target, entering=target[0] != dialogue_id)

        self._after_flow(previous_location)
        return self._snapshot()

    # World actions

    def take_item(self, item_id: str) -> Snapshot:
        """Pick up an item lying at the current location."""
        state = self._state
        if state.item_locations.get(item_id) != state.current_location:
            logger.debug(f"take_item('{item_id}') ignored: item is not here")
            return self._snapshot()

        inventory = state.inventory if item_id in state.inventory else [*state.inventory, item_id]
        self._state = state.with_changes(
            inventory=inventory,
            item_locations={**state.item_locations, item_id: INVENTORY},
        )
        self._publish(NarrativeEvent.ITEM_TAKEN, item_id=item_id)
        return self._snapshot()

    def travel_to(self, location_id: str) -> Snapshot:
        """
        Travel over the map.

        Travel time is the straight-line distance between the two map
        markers divided by the map scale (pixels per hour), rounded down,
        and never less than MIN_TRAVEL_HOURS.
        """
        state = self._state
        if not state.map_enabled:
            logger.debug(f"travel_to('{location_id}') ignored: map disabled")
            return self._snapshot()

        game_map = self._registry.map_containing(state.current_location, location_id)
        if game_map is None:
            logger.debug(f"travel_to('{location_id}') ignored: no map links both locations")
            return self._snapshot()

        origin = game_map.get_marker(state.current_location)
        destination = game_map.get_marker(location_id)
        distance = math.hypot(destination.x - origin.x, destination.y - origin.y)
        hours = self.travel_hours(distance, game_map.scale)

        if state.in_dialogue:
            self._finish_dialogue()

        state = self._state.with_changes(
            current_location=location_id,
            current_time=self._state.current_time.advanced(hours),
        )
        for character_id, character in state.characters.items():
            if character.in_party:
                state = state.with_character(character_id, location=location_id)
        self._state = state

        logger.debug(f"Travelled to '{location_id}' in {hours}h")
        self._publish(
            NarrativeEvent.LOCATION_CHANGED,
            location_id=location_id,
            hours=hours,
        )

        self._check_triggers()
        return self._snapshot()

    @classmethod
    def travel_hours(cls, distance: float, scale: float) -> int:
        """Whole hours needed to cover ``distance`` pixels at ``scale`` pixels/hour."""
        if scale <= 0:
            return cls.MIN_TRAVEL_HOURS
        return max(cls.MIN_TRAVEL_HOURS, math.floor(distance / scale))

    # Player actions

    def write_note(self, title: str, text: str) -> Snapshot:
        """Add a player note. Ids are note_1, note_2, ..."""
        highest = 0
        for note in self._state.player_notes:
            match = NOTE_ID_PATTERN.match(note.id)
            if match:
                highest = max(highest, int(match.group(1)))

        note = PlayerNote(id=f"note_{highest + 1}", title=title, text=text)
        self._state = self._state.with_changes(
            player_notes=[*self._state.player_notes, note],
        )
        self._publish(NarrativeEvent.NOTE_WRITTEN, note_id=note.id)
        return self._snapshot()

    def delete_note(self, note_id: str) -> Snapshot:
        notes = [note for note in self._state.player_notes if note.id != note_id]
        if len(notes) == len(self._state.player_notes):
            logger.debug(f"delete_note('{note_id}') ignored: no such note")
            return self._snapshot()

        self._state = self._state.with_changes(player_notes=notes)
        self._publish(NarrativeEvent.NOTE_DELETED, note_id=note_id)
        return self._snapshot()

    def set_locale(self, locale: str) -> Snapshot:
        if locale not in self._registry.locales:
            logger.debug(f"Locale '{locale}' has no strings; keys will show unresolved")
        self._state = self._state.with_changes(current_locale=locale)
        self._publish(NarrativeEvent.LOCALE_CHANGED, locale=locale)
        return self._snapshot()

    def apply(self, effects: list[Effect]) -> Snapshot:
        """
        Apply effects outside of any dialogue flow.

        START/END dialogue effects are honored, and a location change runs
        the arrival triggers.
        """
        cursor = self._state.dialogue
        previous_location = self._state.current_location
        self._state = apply_effects(effects, self._state, self.dice)

        current = self._state.dialogue
        if cursor is not None and current is None:
            self._finish_dialogue(cursor.dialogue_id)
        elif current is not None and current.node_id is None:
            target = self._redirect(current.dialogue_id, None)
            if target is None:
                self._finish_dialogue(current.dialogue_id)
            else:
                self._settle(target, entering=True)

        self._after_flow(previous_location)
        return self._snapshot()

    # Traversal

    def _current_node(self) -> Optional[DialogueNode]:
        cursor = self._state.dialogue
        if cursor is None:
            return None
        dialogue = self._registry.get_dialogue(cursor.dialogue_id)
        if dialogue is None:
            return None
        return dialogue.get_node(cursor.node_id)

    def _visible_choices(self, node: DialogueNode) -> list:
        return [
            choice for choice in node.choices
            if evaluate_conditions(choice.conditions, self._state, self.dice)
        ]

    def _offered_choice_ids(self, node: DialogueNode) -> list[str]:
        """Choices decided when the dialogue came to rest at ``node``."""
        cursor = self._state.dialogue
        if cursor.choices is None:
            return [choice.id for choice in self._visible_choices(node)]
        return cursor.choices

    def _start_dialogue(self, dialogue_id: str) -> bool:
        dialogue = self._registry.get_dialogue(dialogue_id)
        if dialogue is None:
            logger.debug(f"Dialogue '{dialogue_id}' not found")
            return False
        self._settle((dialogue.id, dialogue.start_node), entering=True)
        return True

    def _settle(self, position: Position, entering: bool = False) -> None:
        """
        Enter ``position`` and keep moving until the dialogue rests or ends.

        A node rests when it has visible choices or text. Silent nodes hand
        over to their follow-up straight away.
        """
        dialogue_id, node_id = position
        if entering:
            self._publish(NarrativeEvent.DIALOGUE_STARTED, dialogue_id=dialogue_id)

        for _ in range(self.MAX_SETTLE_STEPS):
            dialogue = self._registry.get_dialogue(dialogue_id)
            node = dialogue.get_node(node_id) if dialogue else None
            if node is None:
                logger.debug(f"Node '{node_id}' not found in '{dialogue_id}'; ending dialogue")
                self._finish_dialogue(dialogue_id)
                return

            self._state = self._state.with_changes(
                dialogue=DialogueCursor(dialogue_id=dialogue_id, node_id=node_id),
            )
            self._publish(NarrativeEvent.NODE_ENTERED, dialogue_id=dialogue_id, node_id=node_id)

            self._state = apply_effects(node.effects, self._state, self.dice)
            cursor = self._state.dialogue
            if cursor is None:
                self._finish_dialogue(dialogue_id)
                return
            if cursor.node_id is None:
                target = self._redirect(dialogue_id, None)
                if target is None:
                    self._finish_dialogue(dialogue_id)
                    return
                if target[0] != dialogue_id:
                    self._publish(NarrativeEvent.DIALOGUE_STARTED, dialogue_id=target[0])
                dialogue_id, node_id = target
                continue

            offered = [choice.id for choice in self._visible_choices(node)]
            if offered or node.text:
                self._state = self._state.with_changes(
                    dialogue=cursor.model_copy(update={'choices': offered}),
                )
                return

            target = self._follow(dialogue_id, node)
            if target is None:
                self._finish_dialogue(dialogue_id)
                return
            if target[0] != dialogue_id:
                self._publish(NarrativeEvent.DIALOGUE_STARTED, dialogue_id=target[0])
            dialogue_id, node_id = target

        logger.warning(
            f"Dialogue '{dialogue_id}' did not settle after {self.MAX_SETTLE_STEPS} steps; ending it"
        )
        self._finish_dialogue(dialogue_id)

    def _follow(self, dialogue_id: str, node: DialogueNode) -> Optional[Position]:
        """
        Resolve what comes after ``node``.

        IF branches are tried in file order; the first that passes has its
        effects applied and wins. Otherwise ``next`` is used. None means the
        dialogue ends.
        """
        for branch in node.conditional_next:
            if evaluate_condition(branch.condition, self._state, self.dice):
                self._state = apply_effects(branch.effects, self._state, self.dice)
                return self._redirect(dialogue_id, branch.next)
        if node.next is None:
            return None
        return (dialogue_id, node.next)

    def _redirect(self, dialogue_id: str, next_node: Optional[str]) -> Optional[Position]:
        """Where to go after effects ran, honoring START/END dialogue effects."""
        cursor = self._state.dialogue
        if cursor is None:
            return None
        if cursor.node_id is None:
            target = self._registry.get_dialogue(cursor.dialogue_id)
            if target is None:
                logger.debug(f"Dialogue '{cursor.dialogue_id}' not found")
                return None
            return (target.id, target.start_node)
        if next_node is None:
            return None
        return (dialogue_id, next_node)

    def _finish_dialogue(self, dialogue_id: Optional[str] = None) -> None:
        cursor = self._state.dialogue
        if cursor is not None:
            dialogue_id = cursor.dialogue_id
        self._state = self._state.with_changes(dialogue=None)
        self._publish(NarrativeEvent.DIALOGUE_ENDED, dialogue_id=dialogue_id)

    def _after_flow(self, previous_location: str) -> None:
        """Announce a location change made by effects, and trigger arrivals."""
        location_id = self._state.current_location
        if location_id == previous_location:
            return
        self._publish(NarrativeEvent.LOCATION_CHANGED, location_id=location_id, hours=0)
        if not self.in_dialogue:
            self._check_triggers()

    # Triggers

    def _check_triggers(self) -> None:
        """Enter the first dialogue, then show the first interlude, triggered here."""
        location_id = self._state.current_location

        if not self.in_dialogue:
            for dialogue in self._registry.dialogues.values():
                if self._is_triggered(dialogue, location_id):
                    logger.debug(f"Dialogue '{dialogue.id}' triggered at '{location_id}'")
                    self._start_dialogue(dialogue.id)
                    break

        for interlude in self._registry.interludes.values():
            if interlude.trigger_location != location_id:
                continue
            if not evaluate_conditions(interlude.trigger_conditions, self._state, self.dice):
                continue

            self._state = apply_effects(
                interlude.effects,
                self._state.with_changes(pending_interlude=interlude.id),
                self.dice,
            )
            self._publish(NarrativeEvent.INTERLUDE_TRIGGERED, interlude_id=interlude.id)

            cursor = self._state.dialogue
            if cursor is not None and cursor.node_id is None:
                target = self._redirect(cursor.dialogue_id, None)
                if target is None:
                    self._finish_dialogue(cursor.dialogue_id)
                else:
                    self._settle(target, entering=True)
            break

    def _is_triggered(self, dialogue: Dialogue, location_id: str) -> bool:
        if dialogue.trigger_location != location_id:
            return False
        return evaluate_conditions(dialogue.conditions, self._state, self.dice)

    # Output

    def _snapshot(self) -> Snapshot:
        snapshot = build_snapshot(self._state, self._registry, self.dice)
        self._state = self._state.cleared_transients()
        return snapshot

    def _publish(self, event_type: NarrativeEvent, **data: Any) -> None:
        self.event_bus.publish(event_type, **data)
