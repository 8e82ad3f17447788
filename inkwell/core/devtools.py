"""
Developer tools - poke at a running game while authoring content.

Every command goes through engine effects, so the world state stays
immutable and listeners on the event bus see the same events as in play.

Usage:
    tools = DevTools(engine)
    tools.set_flag("metBartender")
    tools.teleport("market")
    print(tools.inspect())
"""

from __future__ import annotations

import logging
from typing import Optional

from inkwell.core.engine import Engine
from inkwell.core.state import VariableValue
from inkwell.rules import effects as e
from inkwell.snapshot.models import Snapshot


logger = logging.getLogger(__name__)


class DevTools:
    """Debug commands bound to one engine."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # Flags and variables

    def set_flag(self, flag: str) -> Snapshot:
        logger.info(f"Flag set: {flag}")
        return self.engine.apply([e.SetFlagEffect(flag=flag)])

    def clear_flag(self, flag: str) -> Snapshot:
        logger.info(f"Flag cleared: {flag}")
        return self.engine.apply([e.ClearFlagEffect(flag=flag)])

    def set_variable(self, variable: str, value: VariableValue) -> Snapshot:
        logger.info(f"Variable set: {variable} = {value}")
        return self.engine.apply([e.SetVariableEffect(variable=variable, value=value)])

    def get_variable(self, variable: str) -> Optional[VariableValue]:
        return self.engine.state.variables.get(variable)

    # World

    def teleport(self, location_id: str) -> Snapshot:
        """Move the player without travel time, map checks or party."""
        if self.engine.registry.get_location(location_id) is None:
            logger.warning(f"Teleporting to unknown location: {location_id}")
        logger.info(f"Teleported to: {location_id}")
        return self.engine.apply([
            e.EndDialogueEffect(),
            e.GoToLocationEffect(location_id=location_id),
        ])

    def trigger_dialogue(self, dialogue_id: str) -> Snapshot:
        """Start a dialogue regardless of its trigger location or conditions."""
        if self.engine.registry.get_dialogue(dialogue_id) is None:
            logger.error(f"Dialogue not found: {dialogue_id}")
            return self.engine.get_snapshot()
        logger.info(f"Triggered dialogue: {dialogue_id}")
        return self.engine.apply([e.StartDialogueEffect(dialogue_id=dialogue_id)])

    def set_quest_stage(self, quest_id: str, stage_id: str) -> Snapshot:
        logger.info(f"Quest stage set: {quest_id} -> {stage_id}")
        return self.engine.apply([e.SetQuestStageEffect(quest_id=quest_id, stage_id=stage_id)])

    def add_item(self, item_id: str) -> Snapshot:
        logger.info(f"Item added: {item_id}")
        return self.engine.apply([e.AddItemEffect(item_id=item_id)])

    def remove_item(self, item_id: str) -> Snapshot:
        logger.info(f"Item removed: {item_id}")
        return self.engine.apply([e.RemoveItemEffect(item_id=item_id)])

    # Inspection

    def inspect(self) -> str:
        """Readable summary of the current state."""
        state = self.engine.state
        location = self.engine.registry.get_location(state.current_location)
        location_name = location.name if location else state.current_location
        set_flags = sorted(flag for flag, value in state.flags.items() if value)

        lines = [
            f"Location: {location_name} ({state.current_location})",
            f"Time: Day {state.current_time.day}, Hour {state.current_time.hour}",
            f"Flags: {', '.join(set_flags) or '-'}",
            f"Variables: {dict(state.variables)}",
            f"Inventory: {', '.join(state.inventory) or '-'}",
            f"Quests: {dict(state.quest_progress)}",
        ]
        if state.dialogue is not None:
            lines.append(f"Dialogue: {state.dialogue.dialogue_id} @ {state.dialogue.node_id}")
        return "\n".join(lines)
