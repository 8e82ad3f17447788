"""
Save/Load - versioned envelope around WorldState.

Provides:
- SaveEnvelope {version, timestamp, state}
- JSON (de)serialization with envelope schema validation
- Save integrity validation (checksum)
- Optional file slots

Only the state record is persisted. The content registry is rebuilt by the
loader, so a save stays small and survives content fixes.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar, Optional

import jsonschema
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inkwell.core.state import WorldState


logger = logging.getLogger(__name__)


class SaveFormatError(ValueError):
    """Raised when save data is malformed, corrupted or from an unknown version."""


ENVELOPE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SaveEnvelope",
    "type": "object",
    "required": ["version", "timestamp", "state"],
    "properties": {
        "version": {"type": "string"},
        "timestamp": {"type": "string"},
        "state": {
            "type": "object",
            "required": ["current_location", "current_time"],
            "properties": {
                "current_location": {"type": "string"},
                "current_time": {
                    "type": "object",
                    "required": ["day", "hour"],
                    "properties": {
                        "day": {"type": "integer"},
                        "hour": {"type": "integer", "minimum": 0, "maximum": 23},
                    },
                },
                "flags": {"type": "object", "additionalProperties": {"type": "boolean"}},
                "variables": {
                    "type": "object",
                    "additionalProperties": {"type": ["number", "string"]},
                },
                "inventory": {"type": "array", "items": {"type": "string"}, "uniqueItems": True},
            },
        },
        "checksum": {"type": "string"},
    },
    "additionalProperties": False,
}


def _now() -> str:
    return datetime.now().isoformat()


class SaveEnvelope(BaseModel):
    """
    A saved game.

    Usage:
        envelope = engine.save_game()
        text = dumps(envelope)
        ...
        engine.load_game(loads(text))
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    VERSION: ClassVar[str] = "1.0"
    SUPPORTED_VERSIONS: ClassVar[tuple[str, ...]] = ("1.0",)

    version: str = VERSION
    timestamp: str = Field(default_factory=_now)
    state: WorldState

    @classmethod
    def create(cls, state: WorldState) -> SaveEnvelope:
        return cls(version=cls.VERSION, timestamp=_now(), state=state)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SaveEnvelope:
        """
        Validate and build an envelope from plain data.

        Raises:
            SaveFormatError: On a malformed envelope, a bad checksum or an
                unsupported version
        """
        try:
            jsonschema.validate(instance=data, schema=ENVELOPE_SCHEMA)
        except jsonschema.ValidationError as e:
            raise SaveFormatError(f"Invalid save data: {e.message}") from e

        if data['version'] not in cls.SUPPORTED_VERSIONS:
            raise SaveFormatError(f"Unsupported save version: {data['version']}")

        checksum = data.get('checksum')
        if checksum and not verify_checksum(data, checksum):
            raise SaveFormatError("Save data corrupted: checksum mismatch")

        try:
            return cls(
                version=data['version'],
                timestamp=data['timestamp'],
                state=WorldState.model_validate(data['state']),
            )
        except ValidationError as e:
            raise SaveFormatError(f"Invalid save state: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode='json')


# Checksum validation

def calculate_checksum(data: dict) -> str:
    """Calculate checksum for save data."""
    json_str = json.dumps(data, sort_keys=True, separators=(',', ':'))
    hash_bytes = hashlib.sha256(json_str.encode('utf-8')).digest()
    return base64.b64encode(hash_bytes).decode('ascii')


def verify_checksum(data: dict, expected_checksum: str) -> bool:
    """Verify save data checksum."""
    data_copy = data.copy()
    data_copy.pop('checksum', None)
    return calculate_checksum(data_copy) == expected_checksum


def dumps(envelope: SaveEnvelope, indent: Optional[int] = 2) -> str:
    """Serialize an envelope to JSON, with a checksum."""
    save_dict = envelope.to_dict()
    save_dict['checksum'] = calculate_checksum(save_dict)
    return json.dumps(save_dict, indent=indent)


def loads(text: str) -> SaveEnvelope:
    """
    Deserialize an envelope from JSON.

    Raises:
        SaveFormatError: On invalid JSON or any envelope problem
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SaveFormatError(f"Save data is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SaveFormatError("Save data must be a JSON object")
    return SaveEnvelope.from_dict(data)


class SaveManager:
    """
    File-backed save slots.

    Usage:
        saves = SaveManager("saves")
        saves.save(engine.save_game(), slot=0)
        engine.load_game(saves.load(0))
    """

    MAX_SLOTS = 10

    def __init__(self, save_path: str | Path = "saves"):
        self.save_path = Path(save_path)
        self.save_path.mkdir(parents=True, exist_ok=True)

    def _get_slot_path(self, slot: int) -> Path:
        if not 0 <= slot < self.MAX_SLOTS:
            raise ValueError(f"Invalid save slot: {slot}")
        return self.save_path / f"save_{slot:02d}.json"

    def save(self, envelope: SaveEnvelope, slot: int) -> Path:
        path = self._get_slot_path(slot)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(dumps(envelope))
        logger.info(f"Saved game to slot {slot} ({path})")
        return path

    def load(self, slot: int) -> SaveEnvelope:
        """
        Raises:
            FileNotFoundError: If the slot is empty
            SaveFormatError: If the file is not a valid save
        """
        path = self._get_slot_path(slot)
        with open(path, 'r', encoding='utf-8') as f:
            envelope = loads(f.read())
        logger.info(f"Loaded game from slot {slot}")
        return envelope

    def has_save(self, slot: int) -> bool:
        return self._get_slot_path(slot).exists()

    def delete(self, slot: int) -> bool:
        path = self._get_slot_path(slot)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_slots(self) -> list[Optional[str]]:
        """Timestamp of each slot's save, or None for empty slots."""
        slots: list[Optional[str]] = []
        for slot in range(self.MAX_SLOTS):
            path = self._get_slot_path(slot)
            if not path.exists():
                slots.append(None)
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    slots.append(json.load(f).get('timestamp'))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Unreadable save in slot {slot}: {e}")
                slots.append(None)
        return slots
