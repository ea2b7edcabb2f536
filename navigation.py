"""
BeamMP Server Console - Navigation Engine

Modal menu/prompt state machine. Exactly one screen is active; submenus
return to their parent through a fixed table rather than a history stack.
The engine never draws anything itself, it asks a UI surface to.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Literal, Optional, Protocol

from pydantic import ValidationError

from mod_repository import ModRepository, is_map_identifier
from server_config import ConfigStore, Section, first_error

_log = logging.getLogger(__name__)


class Screen(Enum):
    MAIN_MENU = "Main Menu"
    SETTINGS_MENU = "Server Settings"
    REMOVE_MOD_MENU = "Delete Mod"
    SET_MAP_MENU = "Set Map"
    PROMPT = "Prompt"


PARENT = {
    Screen.SETTINGS_MENU: Screen.MAIN_MENU,
    Screen.REMOVE_MOD_MENU: Screen.MAIN_MENU,
    Screen.SET_MAP_MENU: Screen.MAIN_MENU,
}


@dataclass
class MenuItem:
    label: str
    description: str = ""
    shortcut: str = ""
    action: Optional[Callable[[], None]] = None


@dataclass
class Prompt:
    label: str
    expects_integer: bool
    on_submit: Callable[[str], None]
    echo: bool = True


class UiSurface(Protocol):
    def show_menu(self, screen: Screen, items: list[MenuItem]) -> None: ...

    def show_prompt(self, prompt: Prompt) -> None: ...

    def pick_file(self, on_chosen: Callable[[Optional[str]], None]) -> None: ...

    def quit(self) -> None: ...


# ── Input Parsing ─────────────────────────────────────────────────────

FieldKind = Literal["text", "int", "bool"]

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
_TRUE_LITERALS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_LITERALS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_int(text: str) -> int:
    if not _INT_RE.match(text):
        raise ValueError(f"invalid integer: {text!r}")
    return int(text)


def parse_bool(text: str) -> bool:
    if text in _TRUE_LITERALS:
        return True
    if text in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean: {text!r}")


_PARSERS: dict[FieldKind, Callable[[str], Any]] = {
    "text": str,
    "int": parse_int,
    "bool": parse_bool,
}

_PARSE_ERRORS: dict[FieldKind, str] = {
    "int": "That is not a number",
    "bool": "That is not a true false statement",
}


@dataclass(frozen=True)
class SettingField:
    label: str
    description: str
    shortcut: str
    section: Section
    key: str
    kind: FieldKind
    prompt: str
    secret: bool = False


SETTINGS_FIELDS = (
    SettingField(
        "Auth Key", "Grab one from https://keymaster.beammp.com/login", "a",
        "General", "AuthKey", "text",
        "Enter your auth key (Right click or Ctrl+Shift+V to paste)", secret=True,
    ),
    SettingField("Server Name", "Shown in the server browser", "n",
                 "General", "Name", "text", "Enter your server name"),
    SettingField("Server Description", "Shown in the server browser", "d",
                 "General", "Description", "text", "Enter your server description"),
    SettingField("Max Players", "Players allowed at once", "p",
                 "General", "MaxPlayers", "int", "Enter your Max players"),
    SettingField("Max Cars", "Cars allowed per player", "c",
                 "General", "MaxCars", "int", "Enter your Max Cars"),
    SettingField("Set to Private", "Hide from the server browser", "u",
                 "General", "Private", "bool", "Set to private? (true/false)"),
    SettingField("Server Tags", "For the server browser", "t",
                 "General", "Tags", "text", "Enter your server tags"),
    SettingField("Server Port", "Port players connect to", "o",
                 "General", "Port", "int", "Enter your server port"),
    SettingField("Log Chat", "Write player chat to the server log", "l",
                 "General", "LogChat", "bool", "Log chat? (true/false)"),
    SettingField("Debug Mode", "Verbose server logging", "g",
                 "General", "Debug", "bool", "Enable debug logging? (true/false)"),
    SettingField("Skip Updates", "Don't let the server check for updates", "k",
                 "Misc", "ImScaredOfUpdates", "bool", "Skip server update checks? (true/false)"),
    SettingField("Send Errors", "Report server errors to BeamMP", "e",
                 "Misc", "SendErrors", "bool", "Send error reports? (true/false)"),
    SettingField("Error Report Notice", "Show the error-reporting message", "r",
                 "Misc", "SendErrorsShowMessage", "bool",
                 "Show error reporting message? (true/false)"),
)


# ── Engine ────────────────────────────────────────────────────────────


class NavigationEngine:
    """
    Owns the current screen and sequences every operator action.

    Not re-entrant: a prompt continuation runs to completion (including the
    transition it picks) before the next input is handled.
    """

    def __init__(
        self,
        repository: ModRepository,
        config_store: ConfigStore,
        log: Callable[[str], None],
        surface: UiSurface,
        *,
        on_update: Optional[Callable[[], None]] = None,
    ):
        self.repository = repository
        self.config_store = config_store
        self.log = log
        self.surface = surface
        self._on_update = on_update

        self.screen = Screen.MAIN_MENU
        self.prompt: Optional[Prompt] = None
        self.items: list[MenuItem] = []

    def start(self) -> None:
        self.main_menu()

    # ── Transitions ───────────────────────────────────────────────────

    def _show(self, screen: Screen, items: list[MenuItem]) -> None:
        self.screen = screen
        self.prompt = None
        self.items = items
        self.surface.show_menu(screen, items)

    def enter(self, screen: Screen) -> None:
        {
            Screen.MAIN_MENU: self.main_menu,
            Screen.SETTINGS_MENU: self.settings_menu,
            Screen.REMOVE_MOD_MENU: self.remove_mod_menu,
            Screen.SET_MAP_MENU: self.set_map_menu,
        }[screen]()

    def back(self) -> None:
        self.enter(PARENT.get(self.screen, Screen.MAIN_MENU))

    def _back_item(self) -> MenuItem:
        return MenuItem("Back", "Go back", "b", self.back)

    def open_prompt(
        self,
        label: str,
        expects_integer: bool,
        on_submit: Callable[[str], None],
        *,
        echo: bool = True,
    ) -> Prompt:
        self.prompt = Prompt(label, expects_integer, on_submit, echo)
        self.screen = Screen.PROMPT
        self.items = []
        self.surface.show_prompt(self.prompt)
        return self.prompt

    # ── Input ─────────────────────────────────────────────────────────

    def activate(self, index: int) -> None:
        item = self.items[index]
        if item.action:
            item.action()

    def select(self, label: str) -> None:
        for i, item in enumerate(self.items):
            if item.label == label:
                self.activate(i)
                return
        raise KeyError(f"No item {label!r} on {self.screen.value}")

    def press(self, key: str) -> bool:
        """Activate the item bound to a shortcut key, if any."""
        for i, item in enumerate(self.items):
            if item.shortcut and item.shortcut == key:
                self.activate(i)
                return True
        return False

    def submit(self, text: str) -> None:
        if self.prompt is None:
            _log.warning("Submit with no prompt open on %s", self.screen.value)
            return
        prompt = self.prompt
        self.log(text if prompt.echo else "*" * len(text))
        prompt.on_submit(text)

    # ── Main Menu ─────────────────────────────────────────────────────

    def main_menu(self) -> None:
        self._show(Screen.MAIN_MENU, [
            MenuItem("Add Mod", "Imports a mod zip file", "a", self.add_mod),
            MenuItem("Delete Mod", "Deletes a mod from the server", "d", self.remove_mod_menu),
            MenuItem("Set Map", "Sets the map for the server", "m", self.set_map_menu),
            MenuItem("Server Settings", "Change Server Settings", "s", self.settings_menu),
            MenuItem("Update Server", "Updates the server", "u", self.update_server),
            MenuItem("Quit", "Select to exit", "q", self.quit),
        ])

    def add_mod(self) -> None:
        self.surface.pick_file(self._on_mod_file_chosen)

    def _on_mod_file_chosen(self, path: Optional[str]) -> None:
        if not path:
            self.log("No mod file selected")
            return
        self.repository.ingest(path)

    def update_server(self) -> None:
        if self._on_update is None:
            self.log("Server updates are disabled")
            return
        self._on_update()

    def quit(self) -> None:
        self.surface.quit()

    # ── Delete Mod ────────────────────────────────────────────────────

    def remove_mod_menu(self) -> None:
        items = [self._back_item()]
        for mod in self.repository.list_mods():
            items.append(MenuItem(
                mod.filename, mod.tag_summary, "", partial(self._confirm_remove, mod.filename)
            ))
        self._show(Screen.REMOVE_MOD_MENU, items)

    def _confirm_remove(self, filename: str) -> None:
        self.open_prompt(
            f"Delete {filename}? (true/false)", False, partial(self._remove_submitted, filename)
        )

    def _remove_submitted(self, filename: str, text: str) -> None:
        try:
            confirmed = parse_bool(text)
        except ValueError:
            self.log(_PARSE_ERRORS["bool"])
            self.remove_mod_menu()
            return

        if not confirmed:
            self.log(f"Kept {filename}")
        elif self.repository.remove_mod(filename):
            current = self.config_store.config.General.Map
            if current not in self.repository.list_maps():
                self.log(f"Warning: the configured map {current} is no longer installed")
        self.main_menu()

    # ── Set Map ───────────────────────────────────────────────────────

    def set_map_menu(self) -> None:
        items = [
            self._back_item(),
            MenuItem("Custom Map", "Type a /levels/<name>/info.json path", "c", self._custom_map),
        ]
        for map_id in self.repository.list_maps():
            items.append(MenuItem(
                map_id, f"Change the map to {map_id}", "", partial(self._choose_map, map_id)
            ))
        self._show(Screen.SET_MAP_MENU, items)

    def _choose_map(self, map_id: str) -> None:
        try:
            self.config_store.set_map(map_id)
        except ValidationError as e:
            self.log(f"Invalid value for Map: {first_error(e)}")
        else:
            self.log(f"Map set to {map_id}")
        self.main_menu()

    def _custom_map(self) -> None:
        self.open_prompt("Enter the map path", False, self._custom_map_submitted)

    def _custom_map_submitted(self, text: str) -> None:
        map_id = text.strip()
        if not is_map_identifier(map_id):
            self.log("That is not a map path like /levels/<name>/info.json")
            self.set_map_menu()
            return
        self._choose_map(map_id)

    # ── Settings ──────────────────────────────────────────────────────

    def settings_menu(self) -> None:
        items = [self._back_item()]
        for f in SETTINGS_FIELDS:
            items.append(MenuItem(f.label, f.description, f.shortcut, partial(self._edit_setting, f)))
        self._show(Screen.SETTINGS_MENU, items)

    def _edit_setting(self, f: SettingField) -> None:
        self.open_prompt(
            f.prompt, f.kind == "int", partial(self._setting_submitted, f), echo=not f.secret
        )

    def _setting_submitted(self, f: SettingField, text: str) -> None:
        try:
            value = _PARSERS[f.kind](text)
        except ValueError:
            self.log(_PARSE_ERRORS[f.kind])
        else:
            self._apply(f.section, f.key, value)
        self.settings_menu()

    def _apply(self, section: Section, key: str, value: Any) -> None:
        try:
            self.config_store.set_value(section, key, value)
        except ValidationError as e:
            self.log(f"Invalid value for {key}: {first_error(e)}")
