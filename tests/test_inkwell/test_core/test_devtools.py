import logging

import pytest
from inkwell.core.devtools import DevTools


@pytest.fixture
def tools(engine, config):
    engine.new_game(config)
    return DevTools(engine)


def test_flags_and_variables(tools):
    snapshot = tools.set_flag("kitchenOpen")
    assert snapshot.flags["kitchenOpen"] is True

    snapshot = tools.clear_flag("kitchenOpen")
    assert snapshot.flags["kitchenOpen"] is False

    tools.set_variable("gold", 3)
    assert tools.get_variable("gold") == 3
    assert tools.get_variable("missing") is None


def test_teleport_skips_travel_time(tools):
    snapshot = tools.teleport("market")
    assert snapshot.location.id == "market"
    assert snapshot.time.hour == 8


def test_teleport_ends_dialogue(tools, engine):
    engine.talk_to("bartender")
    snapshot = tools.teleport("market")
    assert snapshot.dialogue is None


def test_teleport_runs_arrival_triggers(tools):
    snapshot = tools.teleport("docks")
    assert snapshot.pending_interlude.id == "arrival"


def test_teleport_to_unknown_location_warns(tools, caplog):
    with caplog.at_level(logging.WARNING):
        snapshot = tools.teleport("nowhere")
    assert snapshot.location.id == "nowhere"
    assert snapshot.location.description == "Location not found: nowhere"
    assert "unknown location" in caplog.text


def test_trigger_dialogue(tools):
    snapshot = tools.trigger_dialogue("bartender")
    assert snapshot.dialogue.dialogue_id == "bartender"
    assert snapshot.dialogue.node_id == "start"


def test_trigger_unknown_dialogue_logs_error(tools, caplog):
    snapshot = tools.trigger_dialogue("missing")
    assert snapshot.dialogue is None
    assert "Dialogue not found: missing" in caplog.text


def test_quests_and_items(tools):
    snapshot = tools.set_quest_stage("odd_jobs", "done")
    assert snapshot.quests[0].current_stage == "done"
    assert snapshot.quests[0].current_stage_description == "Paid in full."

    snapshot = tools.add_item("map_scroll")
    assert [item.id for item in snapshot.inventory] == ["map_scroll"]

    snapshot = tools.remove_item("map_scroll")
    assert snapshot.inventory == []


def test_inspect(tools, engine):
    tools.set_flag("metBartender")
    engine.talk_to("bartender")

    report = tools.inspect()

    assert "Location: @location.tavern (tavern)" in report
    assert "Time: Day 1, Hour 8" in report
    assert "Flags: metBartender" in report
    assert "Dialogue: bartender @ start" in report
