import pytest
from pydantic import ValidationError
from inkwell.dialog.parser import ParseError
from inkwell.resources.registry import ContentRegistry
from inkwell.rules.conditions import NotFlagCondition
from inkwell.rules.effects import SetFlagEffect


def test_from_dict_uses_keys_as_ids(registry):
    assert registry.get_location("tavern").id == "tavern"
    assert registry.get_location("tavern").music == "tavern_theme.ogg"
    assert registry.get_character("bartender").stats == {"strength": 3}
    assert registry.get_item("rusty_key").location == "tavern"
    assert registry.get_quest("odd_jobs").get_stage("done").description == "Paid in full."
    assert registry.get_journal_entry("salty_dog").category == "places"


def test_from_dict_accepts_lists():
    registry = ContentRegistry.from_dict({
        "locations": [{"id": "cave", "name": "Cave"}],
        "characters": [{"id": "hermit", "location": "cave"}],
    })
    assert registry.get_location("cave").name == "Cave"
    assert registry.get_character("hermit").location == "cave"


def test_interlude_rules_are_typed(registry):
    interlude = registry.get_interlude("arrival")
    assert interlude.trigger_conditions == [NotFlagCondition(flag="sawArrival")]
    assert interlude.effects == [SetFlagEffect(flag="sawArrival")]
    assert interlude.scroll is True
    assert interlude.scroll_speed == 30


def test_unknown_category_is_rejected():
    with pytest.raises(ValidationError):
        ContentRegistry.from_dict({"spells": {}})


def test_unknown_record_fields_are_ignored():
    registry = ContentRegistry.from_dict({"items": {"coin": {"name": "Coin", "weight": 0.1}}})
    assert registry.get_item("coin").name == "Coin"


def test_lookups_return_none_when_missing(registry):
    assert registry.get_location("moon") is None
    assert registry.get_character("ghost") is None
    assert registry.get_item("unicorn") is None
    assert registry.get_map("atlas") is None
    assert registry.get_dialogue("missing") is None
    assert registry.get_quest("missing") is None
    assert registry.get_interlude("missing") is None
    assert registry.get_strings("de") == {}


def test_find_character_ignores_case(registry):
    assert registry.find_character("BARTENDER").id == "bartender"
    assert registry.find_character("nobody") is None


def test_map_markers(registry):
    harbor = registry.get_map("harbor")
    assert harbor.scale == 10
    assert harbor.get_marker("market").x == 100
    assert harbor.get_marker("docks") is None


def test_map_containing(registry):
    assert registry.map_containing("tavern", "market").id == "harbor"
    assert registry.map_containing("tavern", "docks") is None


def test_add_dialogue_source_returns_new_registry(registry):
    extended = registry.add_dialogue_source("merchant", "NODE start\n  MERCHANT: Wares!\n")

    assert extended.get_dialogue("merchant").start_node == "start"
    assert registry.get_dialogue("merchant") is None


def test_add_dialogue_source_propagates_parse_errors(registry):
    with pytest.raises(ParseError):
        registry.add_dialogue_source("broken", "NODE a\n  NONSENSE here\n")


def test_add_dialogue_file(registry, tmp_path):
    path = tmp_path / "merchant.dlg"
    path.write_text("NODE start\n  MERCHANT: Wares!\n", encoding="utf-8")

    extended = registry.add_dialogue_file(path)
    assert extended.get_dialogue("merchant").get_node("start").speaker == "merchant"


def test_replacing_dialogue_warns(registry, caplog):
    registry.add_dialogue_source("bartender", "NODE start\n  BARTENDER: Closed.\n")
    assert "Replacing dialogue 'bartender'" in caplog.text


def test_registry_is_frozen(registry):
    with pytest.raises(ValidationError):
        registry.locales = {}
