"""
BeamMP Server Console - Mod Repository

Handles archive classification, the mod and map catalogs, and importing or
deleting mod archives in the server's client resource folder.
"""

from __future__ import annotations

import errno
import logging
import os
import re
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional

_log = logging.getLogger(__name__)

RESOURCES_DIRNAME = "Resources"
CLIENT_DIRNAME = "Client"
SERVER_DIRNAME = "Server"
ARCHIVE_EXTENSION = ".zip"

TAG_MOD = "Mod"
TAG_MAP = "Map"
TAG_VEHICLES = "Vehicles"

# The game client only knows these by identifier, so the literals and their
# order are fixed.
BUILTIN_MAPS = (
    "/levels/gridmap_v2/info.json",
    "/levels/johnson_valley/info.json",
    "/levels/automation_test_track/info.json",
    "/levels/east_coast_usa/info.json",
    "/levels/hirochi_raceway/info.json",
    "/levels/italy/info.json",
    "/levels/jungle_rock_island/info.json",
    "/levels/industrial/info.json",
    "/levels/small_island/info.json",
    "/levels/smallgrid/info.json",
    "/levels/utah/info.json",
    "/levels/west_coast_usa/info.json",
    "/levels/driver_training/info.json",
    "/levels/derby/info.json",
)

_LEVELS_RE = re.compile(r"^levels(?:/|$)")
_VEHICLES_RE = re.compile(r"^vehicles(?:/|$)")
_LEVEL_INFO_RE = re.compile(r"^levels/[^/]+/info\.json$")
MAP_ID_RE = re.compile(r"^/levels/[^/]+/info\.json$")

IngestFailure = Literal[
    "move_failed",
    "source_unreadable",
    "destination_uncreatable",
    "copy_failed",
    "source_not_removed",
]


@dataclass
class ModEntry:
    """One archive in the client resource folder."""

    filename: str
    path: Path
    tags: list[str] = field(default_factory=lambda: [TAG_MOD])

    @property
    def tag_summary(self) -> str:
        return ", ".join(self.tags)


@dataclass
class IngestResult:
    ok: bool
    filename: str
    failure: IngestFailure | None = None
    message: str = ""


# ── Archive Inspection ────────────────────────────────────────────────


def _list_archive_names(filepath: Path) -> list[str]:
    with zipfile.ZipFile(filepath, "r") as zf:
        return [n.replace("\\", "/") for n in zf.namelist()]


def inspect_archive(
    filepath: str | Path, log: Optional[Callable[[str], None]] = None
) -> list[str]:
    """Return the content tags of a mod archive, ``Mod`` first.

    An archive that cannot be opened is still a mod; it just gets no
    further tags.
    """
    tags = [TAG_MOD]
    try:
        names = _list_archive_names(Path(filepath))
    except (OSError, zipfile.BadZipFile) as e:
        _log.warning("Could not open %s: %s", filepath, e)
        if log:
            log(f"Found a mod, but couldn't open it! ({Path(filepath).name})")
        return tags

    for name in names:
        if TAG_MAP not in tags and _LEVELS_RE.match(name):
            tags.append(TAG_MAP)
        if TAG_VEHICLES not in tags and _VEHICLES_RE.match(name):
            tags.append(TAG_VEHICLES)
    return tags


def is_map_identifier(text: str) -> bool:
    return bool(MAP_ID_RE.match(text))


# ── Repository ────────────────────────────────────────────────────────


class ModRepository:
    """
    Mod storage for one server installation.

    Nothing is cached: every listing re-reads the directory and re-opens the
    archives, so results always reflect what is on disk.
    """

    def __init__(
        self,
        server_dir: str | Path,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.server_dir = Path(server_dir)
        self.resources_dir = self.server_dir / RESOURCES_DIRNAME
        self.mods_dir = self.resources_dir / CLIENT_DIRNAME
        self._log_cb = log_callback or print

    def log(self, msg: str):
        self._log_cb(msg)

    # ── Mod Catalog ───────────────────────────────────────────────────

    def _archive_files(self) -> list[Path]:
        """Mod archives in storage, sorted by filename."""
        try:
            candidates = sorted(self.mods_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            _log.error("Cannot list %s: %s", self.mods_dir, e)
            self.log("Error! Can't browse mods!")
            return []
        return [
            f for f in candidates
            if f.name.lower().endswith(ARCHIVE_EXTENSION) and f.is_file()
        ]

    def list_mods(self) -> list[ModEntry]:
        return [
            ModEntry(filename=f.name, path=f, tags=inspect_archive(f, self.log))
            for f in self._archive_files()
        ]

    # ── Map Catalog ───────────────────────────────────────────────────

    def list_maps(self) -> list[str]:
        maps = list(BUILTIN_MAPS)
        seen = set(maps)

        for path in self._archive_files():
            try:
                names = _list_archive_names(path)
            except (OSError, zipfile.BadZipFile) as e:
                _log.warning("Skipping maps in %s: %s", path.name, e)
                self.log(f"Found a mod, but couldn't open it! ({path.name})")
                continue

            for name in names:
                if not _LEVEL_INFO_RE.match(name):
                    continue
                map_id = "/" + name
                if map_id not in seen:
                    seen.add(map_id)
                    maps.append(map_id)

        return maps

    # ── Ingestion ─────────────────────────────────────────────────────

    def ingest(self, source: str | Path) -> IngestResult:
        """Move an archive into mod storage.

        A cross-device move falls back to copy-then-delete; any other move
        error is reported without a fallback.
        """
        source = Path(source)
        filename = source.name
        target = self.mods_dir / filename
        self.log(f"Importing {source}")

        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                return self._ingest_failed(filename, "move_failed", str(e))
            _log.info("Cross-device move of %s, copying instead", source)
            result = self._copy_then_delete(source, target)
            if result is not None:
                return result

        self.log(f"Imported {filename}")
        return IngestResult(ok=True, filename=filename)

    def _copy_then_delete(self, source: Path, target: Path) -> IngestResult | None:
        filename = source.name
        try:
            src = open(source, "rb")
        except OSError as e:
            return self._ingest_failed(filename, "source_unreadable", f"Couldn't open mod file: {e}")

        with src:
            try:
                dst = open(target, "wb")
            except OSError as e:
                return self._ingest_failed(
                    filename, "destination_uncreatable", f"Couldn't make mod file: {e}"
                )
            try:
                with dst:
                    shutil.copyfileobj(src, dst)
            except OSError as e:
                # Don't leave a truncated archive behind for the catalog to pick up
                target.unlink(missing_ok=True)
                return self._ingest_failed(filename, "copy_failed", f"Couldn't copy mod: {e}")

        try:
            source.unlink()
        except OSError as e:
            return self._ingest_failed(
                filename, "source_not_removed", f"Couldn't remove source file: {e}"
            )
        return None

    def _ingest_failed(self, filename: str, failure: IngestFailure, message: str) -> IngestResult:
        self.log(message)
        return IngestResult(ok=False, filename=filename, failure=failure, message=message)

    # ── Removal ───────────────────────────────────────────────────────

    def remove_mod(self, filename: str) -> bool:
        if not filename or Path(filename).name != filename:
            self.log(f"Refusing to delete {filename!r}: not a mod archive name")
            return False

        target = self.mods_dir / filename
        try:
            target.unlink()
        except OSError as e:
            self.log(f"Couldn't delete {filename}: {e}")
            return False

        self.log(f"Deleted {filename}")
        return True
