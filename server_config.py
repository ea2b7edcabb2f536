"""
Server configuration for BeamMP Server Console.

``ServerConfig.toml`` holds two tables, ``[General]`` and ``[Misc]``. The
BeamMP server reads the same file, so the key names are part of its contract
and are kept verbatim (hence the capitalised field names).

Example:

    [General]
    Name = "BeamMP Server"
    Port = 30814
    AuthKey = ""
    LogChat = true
    Tags = "Freeroam"
    Debug = false
    Private = true
    MaxCars = 1
    MaxPlayers = 8
    Map = "/levels/gridmap_v2/info.json"
    Description = "BeamMP Default Description"
    ResourceFolder = "Resources"

    [Misc]
    ImScaredOfUpdates = false
    SendErrorsShowMessage = true
    SendErrors = true
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Callable, Literal, Optional

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILENAME = "ServerConfig.toml"
DEFAULT_MAP = "/levels/gridmap_v2/info.json"

Section = Literal["General", "Misc"]
SECTIONS: tuple[Section, ...] = ("General", "Misc")

_log = logging.getLogger(__name__)


class GeneralConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    Name: str = "BeamMP Server"
    Port: int = Field(default=30814, ge=1, le=65535)
    AuthKey: str = ""
    LogChat: bool = True
    Tags: str = "Freeroam"
    Debug: bool = False
    Private: bool = True
    MaxCars: int = Field(default=1, ge=0)
    MaxPlayers: int = Field(default=8, ge=1)
    Map: str = DEFAULT_MAP
    Description: str = "BeamMP Default Description"
    ResourceFolder: str = "Resources"


class MiscConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    ImScaredOfUpdates: bool = False
    SendErrorsShowMessage: bool = True
    SendErrors: bool = True


class ServerConfig(BaseModel):
    """In-memory mirror of ServerConfig.toml."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    General: GeneralConfig = Field(default_factory=GeneralConfig)
    Misc: MiscConfig = Field(default_factory=MiscConfig)


class ConfigStore:
    """
    Owns the single ServerConfig instance and its file.

    Every setter validates, assigns and persists synchronously, so the file
    on disk never lags the in-memory values by more than one operation.
    """

    def __init__(
        self,
        config_path: str | Path,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.config_path = Path(config_path)
        self.config = ServerConfig()
        self._log_cb = log_callback or print

    def log(self, msg: str):
        self._log_cb(msg)

    def exists(self) -> bool:
        return self.config_path.is_file()

    # ── Load / Save ───────────────────────────────────────────────────

    def create_default(self) -> None:
        """Write a fresh file with the default values.

        Raises ``OSError`` if the file cannot be written; at startup this is
        the one unrecoverable condition.
        """
        self.config = ServerConfig()
        self.config_path.write_text(self.dumps(), encoding="utf-8")
        self.log("Created New Config")

    def load(self) -> ServerConfig:
        """Overlay the file's values onto the current instance.

        Unknown tables/keys are ignored, missing keys keep their current
        value and keys with invalid values are reported and skipped.
        """
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            self.log(f"Error opening config file: {e}")
            return self.config
        except tomllib.TOMLDecodeError as e:
            self.log(f"Error reading config file, using defaults: {e}")
            return self.config

        for section_name in SECTIONS:
            raw = data.get(section_name)
            if not isinstance(raw, dict):
                continue
            section = getattr(self.config, section_name)
            known = type(section).model_fields
            for key, value in raw.items():
                if key not in known:
                    _log.debug("Ignoring unknown config key %s.%s", section_name, key)
                    continue
                try:
                    setattr(section, key, value)
                except ValidationError as e:
                    self.log(
                        f"Ignoring invalid value for {section_name}.{key}: "
                        f"{first_error(e)}"
                    )

        self.log("Loaded Config")
        return self.config

    def dumps(self) -> str:
        return tomli_w.dumps(self.config.model_dump())

    def save(self) -> bool:
        try:
            self.config_path.write_text(self.dumps(), encoding="utf-8")
        except OSError as e:
            self.log(f"Error writing config file. {e}")
            return False
        self.log("Wrote Config")
        return True

    # ── Setters ───────────────────────────────────────────────────────

    def set_value(self, section: Section, key: str, value: Any) -> None:
        """Assign one field and persist.

        Raises ``pydantic.ValidationError`` (nothing is changed or written)
        when the value is rejected by the model.
        """
        setattr(getattr(self.config, section), key, value)
        self.save()

    def set_map(self, map_id: str) -> None:
        self.set_value("General", "Map", map_id)


def first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    return errors[0]["msg"] if errors else str(exc)
