"""
Tests for the navigation state machine and prompt validation.
"""

import tomllib

import pytest

from mod_repository import BUILTIN_MAPS
from navigation import PARENT, SETTINGS_FIELDS, Screen, parse_bool, parse_int
from tests.conftest import make_zip


def saved_config(config_store):
    with open(config_store.config_path, "rb") as f:
        return tomllib.load(f)


# ── parsers ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("text, expected", [("8", 8), ("0", 0), ("-3", -3), ("+12", 12)])
def test_parse_int(text, expected):
    assert parse_int(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "1.5", " 4", "1_000", "٣"])
def test_parse_int_rejects(text):
    with pytest.raises(ValueError):
        parse_int(text)


def test_parse_bool_literals():
    assert all(parse_bool(t) for t in ("1", "t", "T", "TRUE", "true", "True"))
    assert not any(parse_bool(f) for f in ("0", "f", "F", "FALSE", "false", "False"))
    for bad in ("yes", "tRuE", "", "2"):
        with pytest.raises(ValueError):
            parse_bool(bad)


# ── main menu ────────────────────────────────────────────────────────────────

def test_starts_on_main_menu(engine, surface):
    assert engine.screen is Screen.MAIN_MENU
    assert surface.last_labels == [
        "Add Mod", "Delete Mod", "Set Map", "Server Settings", "Update Server", "Quit",
    ]


def test_back_returns_to_main_from_every_submenu(engine):
    for label, screen in [
        ("Server Settings", Screen.SETTINGS_MENU),
        ("Delete Mod", Screen.REMOVE_MOD_MENU),
        ("Set Map", Screen.SET_MAP_MENU),
    ]:
        engine.select(label)
        assert engine.screen is screen
        assert PARENT[screen] is Screen.MAIN_MENU
        engine.select("Back")
        assert engine.screen is Screen.MAIN_MENU


def test_shortcut_keys(engine):
    assert engine.press("s")
    assert engine.screen is Screen.SETTINGS_MENU
    assert engine.press("b")
    assert engine.screen is Screen.MAIN_MENU
    assert not engine.press("z")


def test_update_runs_in_background_without_navigation(engine, surface):
    shown = len(surface.menus)
    engine.select("Update Server")

    assert engine.updates == [1]
    assert engine.screen is Screen.MAIN_MENU
    assert len(surface.menus) == shown


def test_quit(engine, surface):
    engine.select("Quit")
    assert surface.quit_called


# ── add mod ──────────────────────────────────────────────────────────────────

def test_add_mod_ingests_chosen_file(engine, surface, mods_dir, tmp_path, events):
    source = make_zip(tmp_path / "picked.zip", ["levels/picked/info.json"])
    surface.picked_file = str(source)

    engine.select("Add Mod")

    assert engine.screen is Screen.MAIN_MENU
    assert (mods_dir / "picked.zip").exists()
    assert "Imported picked.zip" in events.lines()

    engine.select("Set Map")
    assert "/levels/picked/info.json" in surface.last_labels


def test_add_mod_cancelled(engine, surface, events):
    surface.picked_file = None
    engine.select("Add Mod")

    assert engine.screen is Screen.MAIN_MENU
    assert events.lines()[-1] == "No mod file selected"


# ── settings ─────────────────────────────────────────────────────────────────

def test_settings_menu_lists_every_field(engine, surface):
    engine.select("Server Settings")
    assert surface.last_labels == ["Back"] + [f.label for f in SETTINGS_FIELDS]


def test_max_players_valid(engine, config_store, surface):
    engine.select("Server Settings")
    engine.select("Max Players")

    assert engine.screen is Screen.PROMPT
    assert surface.prompts[-1].expects_integer

    engine.submit("16")

    assert engine.screen is Screen.SETTINGS_MENU
    assert config_store.config.General.MaxPlayers == 16
    assert saved_config(config_store)["General"]["MaxPlayers"] == 16


def test_max_players_rejects_non_number(engine, config_store, events):
    engine.select("Server Settings")
    engine.select("Max Players")
    engine.submit("abc")

    assert "That is not a number" in events.lines()
    assert config_store.config.General.MaxPlayers == 8
    assert saved_config(config_store)["General"]["MaxPlayers"] == 8
    assert engine.screen is Screen.SETTINGS_MENU


def test_port_out_of_range_is_discarded(engine, config_store, events):
    engine.select("Server Settings")
    engine.select("Server Port")
    engine.submit("70000")

    assert config_store.config.General.Port == 30814
    assert events.lines()[-1].startswith("Invalid value for Port")
    assert engine.screen is Screen.SETTINGS_MENU


def test_private_boolean_prompt(engine, config_store, events):
    engine.select("Server Settings")
    engine.select("Set to Private")
    engine.submit("maybe")

    assert "That is not a true false statement" in events.lines()
    assert config_store.config.General.Private is True

    engine.select("Set to Private")
    engine.submit("false")
    assert config_store.config.General.Private is False
    assert saved_config(config_store)["General"]["Private"] is False


def test_misc_settings(engine, config_store):
    engine.select("Server Settings")
    engine.select("Skip Updates")
    engine.submit("true")

    assert config_store.config.Misc.ImScaredOfUpdates is True
    assert saved_config(config_store)["Misc"]["ImScaredOfUpdates"] is True


def test_text_settings_echo_except_auth_key(engine, config_store, events):
    engine.select("Server Settings")
    engine.select("Server Name")
    engine.submit("Sunday Cruise")
    assert config_store.config.General.Name == "Sunday Cruise"
    assert "Sunday Cruise" in events.lines()

    engine.select("Auth Key")
    engine.submit("secret-key")
    assert config_store.config.General.AuthKey == "secret-key"
    assert "secret-key" not in events.text()


def test_submit_without_prompt_is_ignored(engine, config_store):
    before = config_store.config.model_copy(deep=True)
    engine.submit("42")

    assert engine.screen is Screen.MAIN_MENU
    assert config_store.config == before


# ── set map ──────────────────────────────────────────────────────────────────

def test_set_map_menu_lists_catalog(engine, surface, mods_dir):
    make_zip(mods_dir / "mymap.zip", ["levels/mymap/info.json"])

    engine.select("Set Map")

    labels = surface.last_labels
    assert labels[:2] == ["Back", "Custom Map"]
    assert labels[2:16] == list(BUILTIN_MAPS)
    assert labels[16] == "/levels/mymap/info.json"


def test_choose_map(engine, config_store):
    engine.select("Set Map")
    engine.select("/levels/italy/info.json")

    assert engine.screen is Screen.MAIN_MENU
    assert config_store.config.General.Map == "/levels/italy/info.json"
    assert saved_config(config_store)["General"]["Map"] == "/levels/italy/info.json"


def test_custom_map(engine, config_store, events):
    engine.select("Set Map")
    engine.select("Custom Map")
    engine.submit("not/a/map")

    assert engine.screen is Screen.SET_MAP_MENU
    assert config_store.config.General.Map == "/levels/gridmap_v2/info.json"
    assert events.lines()[-1].startswith("That is not a map path")

    engine.select("Custom Map")
    engine.submit("/levels/secret_track/info.json")
    assert engine.screen is Screen.MAIN_MENU
    assert config_store.config.General.Map == "/levels/secret_track/info.json"


def test_menus_rebuild_without_duplicates(engine, surface, mods_dir):
    engine.select("Set Map")
    first = list(surface.last_labels)
    engine.select("Back")
    engine.select("Set Map")
    assert surface.last_labels == first

    make_zip(mods_dir / "late.zip", ["levels/late/info.json"])
    engine.select("Back")
    engine.select("Set Map")
    assert surface.last_labels == first + ["/levels/late/info.json"]


# ── delete mod ───────────────────────────────────────────────────────────────

def test_remove_menu_lists_mods_with_tags(engine, mods_dir):
    make_zip(mods_dir / "cars.zip", ["vehicles/car1/data.json"])
    make_zip(mods_dir / "scripts.zip", ["lua/main.lua"])

    engine.select("Delete Mod")

    assert [(i.label, i.description) for i in engine.items] == [
        ("Back", "Go back"),
        ("cars.zip", "Mod, Vehicles"),
        ("scripts.zip", "Mod"),
    ]


def test_remove_mod_confirmed(engine, config_store, mods_dir):
    make_zip(mods_dir / "cars.zip", ["vehicles/car1/data.json"])
    config_store.set_map("/levels/utah/info.json")

    engine.select("Delete Mod")
    engine.select("cars.zip")
    assert engine.screen is Screen.PROMPT
    engine.submit("true")

    assert not (mods_dir / "cars.zip").exists()
    assert engine.screen is Screen.MAIN_MENU
    # Deleting a mod never resets the configured map
    assert config_store.config.General.Map == "/levels/utah/info.json"


def test_remove_mod_declined(engine, mods_dir, events):
    make_zip(mods_dir / "cars.zip", ["vehicles/car1/data.json"])

    engine.select("Delete Mod")
    engine.select("cars.zip")
    engine.submit("false")

    assert (mods_dir / "cars.zip").exists()
    assert "Kept cars.zip" in events.lines()
    assert engine.screen is Screen.MAIN_MENU


def test_remove_mod_invalid_answer_returns_to_list(engine, mods_dir, events):
    make_zip(mods_dir / "cars.zip", ["vehicles/car1/data.json"])

    engine.select("Delete Mod")
    engine.select("cars.zip")
    engine.submit("sure")

    assert (mods_dir / "cars.zip").exists()
    assert "That is not a true false statement" in events.lines()
    assert engine.screen is Screen.REMOVE_MOD_MENU


def test_remove_active_map_mod_warns(engine, config_store, mods_dir, events):
    make_zip(mods_dir / "mymap.zip", ["levels/mymap/info.json"])
    engine.select("Set Map")
    engine.select("/levels/mymap/info.json")

    engine.select("Delete Mod")
    engine.select("mymap.zip")
    engine.submit("true")

    assert config_store.config.General.Map == "/levels/mymap/info.json"
    assert any(line.startswith("Warning: the configured map") for line in events.lines())
