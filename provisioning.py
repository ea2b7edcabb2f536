"""
BeamMP Server Console - Provisioning

One-time startup checks plus the two background tasks: fetching the server
binary and creating the resource folder tree. Background tasks report only
through the event log; nothing waits for them.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

import requests

from mod_repository import CLIENT_DIRNAME, RESOURCES_DIRNAME, SERVER_DIRNAME
from server_config import CONFIG_FILENAME, ConfigStore

SERVER_BINARY = "BeamMP-Server.exe"
SERVER_RELEASE_URL = (
    "https://github.com/BeamMP/BeamMP-Server/releases/latest/download/BeamMP-Server.exe"
)

_CHUNK_SIZE = 256 * 1024

LogFn = Callable[[str], None]
SpawnFn = Callable[..., object]

_log = logging.getLogger(__name__)


class StartupError(Exception):
    """Startup cannot continue (the config file could not be created)."""


def spawn_thread(func, *args) -> threading.Thread:
    """Run ``func(*args)`` on a daemon thread and return immediately."""
    t = threading.Thread(target=func, args=args, daemon=True)
    t.start()
    return t


# ── Background Tasks ──────────────────────────────────────────────────


def download_server(dest: str | Path, log: LogFn, url: str = SERVER_RELEASE_URL) -> bool:
    """Fetch the server binary into ``dest``.

    A failed transfer leaves whatever was written so far in place.
    """
    dest = Path(dest)
    log("Updating server...")
    try:
        with requests.get(url, stream=True, timeout=60) as resp:
            resp.raise_for_status()
            try:
                out = open(dest, "wb")
            except OSError as e:
                log(f"Failed to update server: Could not create file ({e})")
                return False
            with out:
                for chunk in resp.iter_content(_CHUNK_SIZE):
                    out.write(chunk)
    except requests.RequestException as e:
        _log.warning("Server download from %s failed: %s", url, e)
        log("Failed to update server: Network Error")
        return False
    except OSError as e:
        log(f"Failed to update server: Could not write to file ({e})")
        return False

    log("Server is up-to-date")
    return True


def provision_resources(server_dir: str | Path, log: LogFn) -> bool:
    """Create Resources/, Resources/Client/ and Resources/Server/."""
    resources = Path(server_dir) / RESOURCES_DIRNAME
    log("Server resource folder not found, making one.")
    try:
        resources.mkdir()
    except OSError as e:
        _log.error("mkdir %s failed: %s", resources, e)
        log("Could not make Resources folder")
        return False

    for sub in (CLIENT_DIRNAME, SERVER_DIRNAME):
        try:
            (resources / sub).mkdir()
        except OSError as e:
            _log.error("mkdir %s failed: %s", resources / sub, e)
            log("Failed making server resources folder, delete it and try again")
            return False

    log("Created server resources folder")
    return True


# ── Startup ───────────────────────────────────────────────────────────


class ServerSetup:
    """Startup sequence for one server directory."""

    def __init__(
        self,
        server_dir: str | Path,
        log: LogFn,
        *,
        spawn: SpawnFn = spawn_thread,
        server_url: str = SERVER_RELEASE_URL,
    ):
        self.server_dir = Path(server_dir)
        self.log = log
        self.spawn = spawn
        self.server_url = server_url

    @property
    def binary_path(self) -> Path:
        return self.server_dir / SERVER_BINARY

    @property
    def config_path(self) -> Path:
        return self.server_dir / CONFIG_FILENAME

    def start_update(self) -> None:
        self.spawn(download_server, self.binary_path, self.log, self.server_url)

    def run(self, config_store: ConfigStore, *, check_binary: bool = True) -> None:
        """Binary check, resource tree check, then config create-or-load.

        Raises ``StartupError`` if a missing config file cannot be created.
        """
        if check_binary and not self.binary_path.exists():
            self.start_update()

        if not (self.server_dir / RESOURCES_DIRNAME).exists():
            self.spawn(provision_resources, self.server_dir, self.log)

        if not config_store.exists():
            try:
                config_store.create_default()
            except OSError as e:
                self.log("Could not create config file")
                raise StartupError(f"Could not create {config_store.config_path}: {e}") from e
        else:
            config_store.load()
