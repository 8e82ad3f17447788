import json

import pytest
from inkwell.save.manager import (
    SaveEnvelope,
    SaveFormatError,
    SaveManager,
    calculate_checksum,
    dumps,
    loads,
    verify_checksum,
)


@pytest.fixture
def envelope(state):
    return SaveEnvelope.create(state)


@pytest.fixture
def saves(tmp_path):
    return SaveManager(tmp_path / "saves")


def test_envelope_round_trip(envelope, state):
    restored = loads(dumps(envelope))

    assert restored.version == "1.0"
    assert restored.timestamp == envelope.timestamp
    assert restored.state == state


def test_dumps_adds_checksum(envelope):
    data = json.loads(dumps(envelope))
    assert verify_checksum(data, data["checksum"])


def test_tampered_save_is_rejected(envelope):
    data = json.loads(dumps(envelope))
    data["state"]["variables"]["gold"] = 9999

    with pytest.raises(SaveFormatError, match="checksum"):
        SaveEnvelope.from_dict(data)


def test_unsupported_version(envelope):
    data = envelope.to_dict()
    data["version"] = "9.9"
    with pytest.raises(SaveFormatError, match="Unsupported save version"):
        SaveEnvelope.from_dict(data)


@pytest.mark.parametrize("mutate", [
    lambda data: data.pop("state"),
    lambda data: data["state"].pop("current_location"),
    lambda data: data["state"]["current_time"].update(hour=24),
    lambda data: data.update(extra=True),
    lambda data: data["state"].update(inventory=["a", "a"]),
])
def test_invalid_envelopes(envelope, mutate):
    data = envelope.to_dict()
    mutate(data)
    with pytest.raises(SaveFormatError):
        SaveEnvelope.from_dict(data)


def test_invalid_state_field(envelope):
    data = envelope.to_dict()
    data["state"]["mana"] = 5
    with pytest.raises(SaveFormatError, match="Invalid save state"):
        SaveEnvelope.from_dict(data)


def test_loads_rejects_garbage():
    with pytest.raises(SaveFormatError):
        loads("{not json")
    with pytest.raises(SaveFormatError):
        loads("[1, 2]")


def test_checksum_ignores_key_order():
    assert calculate_checksum({"a": 1, "b": 2}) == calculate_checksum({"b": 2, "a": 1})


def test_slots(saves, envelope):
    assert not saves.has_save(0)

    path = saves.save(envelope, 3)
    assert path.name == "save_03.json"
    assert saves.has_save(3)
    assert saves.load(3).state == envelope.state

    slots = saves.list_slots()
    assert len(slots) == SaveManager.MAX_SLOTS
    assert slots[3] == envelope.timestamp
    assert slots[0] is None


def test_delete(saves, envelope):
    saves.save(envelope, 1)
    assert saves.delete(1)
    assert not saves.has_save(1)
    assert not saves.delete(1)


def test_invalid_slot(saves, envelope):
    with pytest.raises(ValueError):
        saves.save(envelope, SaveManager.MAX_SLOTS)
    with pytest.raises(ValueError):
        saves.has_save(-1)


def test_empty_slot_raises(saves):
    with pytest.raises(FileNotFoundError):
        saves.load(0)
