"""
Shared fixtures and helpers for the BeamMP Server Console test suite.
"""

import zipfile
from pathlib import Path

import pytest

from event_log import EventLog
from mod_repository import ModRepository
from navigation import NavigationEngine
from server_config import CONFIG_FILENAME, ConfigStore


def make_zip(path: Path, members) -> Path:
    """Create a zip at ``path`` from {archive_path: content} (or a list of names)."""
    if not isinstance(members, dict):
        members = {name: "" for name in members}
    with zipfile.ZipFile(path, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return path


def run_now(func, *args):
    """Synchronous stand-in for provisioning.spawn_thread."""
    func(*args)


class FakeSurface:
    """Records what the engine asks the UI to show."""

    def __init__(self):
        self.menus = []
        self.prompts = []
        self.picked_file = None
        self.quit_called = False

    def show_menu(self, screen, items):
        self.menus.append((screen, [item.label for item in items]))

    def show_prompt(self, prompt):
        self.prompts.append(prompt)

    def pick_file(self, on_chosen):
        on_chosen(self.picked_file)

    def quit(self):
        self.quit_called = True

    @property
    def last_labels(self):
        return self.menus[-1][1]


@pytest.fixture
def server_dir(tmp_path):
    """A provisioned server root: Resources/Client and Resources/Server exist."""
    root = tmp_path / "server"
    (root / "Resources" / "Client").mkdir(parents=True)
    (root / "Resources" / "Server").mkdir()
    return root


@pytest.fixture
def mods_dir(server_dir):
    return server_dir / "Resources" / "Client"


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def repository(server_dir, events):
    return ModRepository(server_dir, log_callback=events.append)


@pytest.fixture
def config_store(server_dir, events):
    store = ConfigStore(server_dir / CONFIG_FILENAME, log_callback=events.append)
    store.create_default()
    return store


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def engine(repository, config_store, events, surface):
    updates = []
    nav = NavigationEngine(
        repository, config_store, events.append, surface, on_update=lambda: updates.append(1)
    )
    nav.updates = updates
    nav.start()
    return nav
