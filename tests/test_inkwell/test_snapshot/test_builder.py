import pytest
from inkwell.core.dice import ScriptedDice
from inkwell.core.state import DialogueCursor, PlayerNote
from inkwell.snapshot.builder import build_snapshot


def test_location_and_people(state, registry):
    snapshot = build_snapshot(state, registry)

    assert snapshot.location.name == "The Salty Dog"
    assert snapshot.location.banner == "tavern.png"
    assert [c.id for c in snapshot.characters_here] == ["bartender"]
    assert snapshot.characters_here[0].name == "Bartender"
    assert snapshot.characters_here[0].relationship == 5
    assert [c.id for c in snapshot.party] == ["merchant"]


def test_party_members_are_not_listed_as_present(state, registry):
    state = state.with_character("bartender", in_party=True)
    snapshot = build_snapshot(state, registry)

    assert snapshot.characters_here == []
    assert {c.id for c in snapshot.party} == {"bartender", "merchant"}


def test_items(state, registry):
    snapshot = build_snapshot(state, registry)
    assert [i.id for i in snapshot.inventory] == ["rusty_key"]
    assert snapshot.inventory[0].name == "Rusty Key"
    assert snapshot.items_here == []

    snapshot = build_snapshot(state.with_changes(current_location="market"), registry)
    assert [i.id for i in snapshot.items_here] == ["map_scroll"]


def test_unknown_location(state, registry):
    snapshot = build_snapshot(state.with_changes(current_location="void"), registry)
    assert snapshot.location.name == "void"
    assert snapshot.location.description == "Location not found: void"
    assert snapshot.music == ""


def test_quests_and_journal(state, registry):
    state = state.with_changes(
        quest_progress={"odd_jobs": "started", "lost": "begun"},
        unlocked_journal_entries=["salty_dog", "missing"],
    )
    snapshot = build_snapshot(state, registry)

    assert len(snapshot.quests) == 1
    assert snapshot.quests[0].name == "Odd Jobs"
    assert snapshot.quests[0].current_stage_description == "Ask around for work."
    assert [entry.id for entry in snapshot.journal] == ["salty_dog"]


def test_quest_at_unknown_stage_is_skipped(state, registry):
    state = state.with_changes(quest_progress={"odd_jobs": "abandoned"})
    assert build_snapshot(state, registry).quests == []


def test_dialogue_view(state, registry):
    state = state.with_changes(dialogue=DialogueCursor(dialogue_id="bartender", node_id="start"))
    snapshot = build_snapshot(state, registry)

    assert snapshot.in_dialogue
    assert snapshot.dialogue.text == "Welcome, stranger. You have 100 gold."
    assert snapshot.dialogue.portrait == "bartender.png"
    assert [choice.id for choice in snapshot.choices] == [
        "start_choice_pour_me_a_drink_",
        "start_choice_choice_leave",
    ]


def test_choices_follow_conditions(state, registry):
    state = state.with_changes(
        dialogue=DialogueCursor(dialogue_id="bartender", node_id="start"),
        flags={"kitchenOpen": True},
        variables={"gold": 2},
    )
    snapshot = build_snapshot(state, registry)

    assert [choice.text for choice in snapshot.choices] == ["Anything to eat?", "Leave"]


def test_narrator_node(state, registry):
    state = state.with_changes(dialogue=DialogueCursor(dialogue_id="bartender", node_id="farewell"))
    dialogue = build_snapshot(state, registry).dialogue

    assert dialogue.speaker is None
    assert dialogue.speaker_name == "Narrator"
    assert dialogue.portrait is None


def test_speaker_without_character_uses_raw_name(state, registry):
    registry = registry.add_dialogue_source("ghost", "NODE start\n  GHOST: Boo\n")
    state = state.with_changes(dialogue=DialogueCursor(dialogue_id="ghost", node_id="start"))
    dialogue = build_snapshot(state, registry).dialogue

    assert dialogue.speaker_name == "ghost"
    assert dialogue.portrait is None


def test_dangling_cursor_shows_no_dialogue(state, registry):
    state = state.with_changes(dialogue=DialogueCursor(dialogue_id="bartender", node_id="gone"))
    snapshot = build_snapshot(state, registry)
    assert snapshot.dialogue is None
    assert snapshot.choices == []


def test_map(state, registry):
    snapshot = build_snapshot(state, registry)

    assert snapshot.map.id == "harbor"
    assert snapshot.map.scale == 10
    assert [(m.id, m.is_current) for m in snapshot.map.locations] == [
        ("tavern", True),
        ("market", False),
    ]
    assert snapshot.map.locations[0].name == "The Salty Dog"


def test_map_hidden_when_disabled(state, registry):
    snapshot = build_snapshot(state.with_changes(map_enabled=False), registry)
    assert snapshot.map is None
    assert snapshot.map_enabled is False


def test_off_map_location_falls_back_to_first_map(state, registry):
    snapshot = build_snapshot(state.with_changes(current_location="docks"), registry)
    assert snapshot.map.id == "harbor"
    assert not any(marker.is_current for marker in snapshot.map.locations)


def test_locale_and_ui(state, registry):
    snapshot = build_snapshot(state.with_changes(current_locale="fr"), registry)
    assert snapshot.location.name == "Le Chien Salé"
    assert snapshot.ui == {}

    snapshot = build_snapshot(state, registry)
    assert snapshot.ui == {"inventory": "Inventory"}


def test_transients_are_resolved(state, registry):
    state = state.with_changes(
        notifications=["@choice.leave", "Plain"],
        pending_sounds=["bell.ogg"],
        pending_interlude="arrival",
    )
    snapshot = build_snapshot(state, registry)

    assert snapshot.notifications == ["Leave", "Plain"]
    assert snapshot.pending_sounds == ["bell.ogg"]
    assert snapshot.pending_interlude.background == "docks.png"
    assert snapshot.pending_interlude.text == "The fog lifts over the docks."


def test_unknown_interlude_is_dropped(state, registry):
    snapshot = build_snapshot(state.with_changes(pending_interlude="nope"), registry)
    assert snapshot.pending_interlude is None


def test_notes_variables_and_flags(state, registry):
    state = state.with_changes(player_notes=[PlayerNote(id="note_1", title="T", text="x")])
    snapshot = build_snapshot(state, registry)

    assert snapshot.notes[0].title == "T"
    assert snapshot.variables["ratio"] == 2.5
    assert snapshot.flags == {"metBartender": True, "doorLocked": False}


def test_building_leaves_state_alone(state, registry):
    dump = state.model_dump()
    build_snapshot(state, registry, ScriptedDice([1]))
    assert state.model_dump() == dump


def test_snapshot_is_frozen(state, registry):
    from pydantic import ValidationError
    snapshot = build_snapshot(state, registry)
    with pytest.raises(ValidationError):
        snapshot.music = "other.ogg"


def test_quoted_at_text_is_shown_verbatim(state, registry):
    registry = registry.add_dialogue_source("sign", 'NODE start\n  NARRATOR: "@choice.leave"\n')
    state = state.with_changes(dialogue=DialogueCursor(dialogue_id="sign", node_id="start"))

    assert build_snapshot(state, registry).dialogue.text == "@choice.leave"


def test_decided_choices_are_shown_without_rolling(state, registry):
    state = state.with_changes(
        dialogue=DialogueCursor(
            dialogue_id="bartender",
            node_id="start",
            choices=["start_choice_anything_to_eat_"],
        ),
    )
    dice = ScriptedDice([5])
    snapshot = build_snapshot(state, registry, dice)

    assert [choice.text for choice in snapshot.choices] == ["Anything to eat?"]
    assert dice.rolls_made == 0
