"""Configuration constants and settings for subnotes."""

import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from loguru import logger

NOTE_EXTENSION = ".md"

DEFAULT_NOTES_FOLDER = "notes"

# Settings file location. First file found is used.
SETTINGS_FILES: list[Path] = [
    Path("~/.config/subnotes/settings.json").expanduser(),
    Path("~/.subnotes.json").expanduser(),
]

# Vault root candidates when none is configured. First existing directory is used.
DEFAULT_ROOT_DIRECTORIES: list[Path] = [
    Path("~/.local/share/subnotes").expanduser(),
    Path("~/notes-vault").expanduser(),
]


@dataclass(frozen=True)
class Settings:
    """User settings.

    Attributes:
        root: Vault root directory.
        notes_folder: Folder below root holding the subnote files (the scope).
        template_path: Optional template file, relative to root, copied into new notes.
    """

    root: Path
    notes_folder: str = DEFAULT_NOTES_FOLDER
    template_path: str = ""

    @property
    def notes_dir(self) -> Path:
        return self.root / self.notes_folder


def resolve_root_directory() -> Path:
    """Return the first existing default root, or the first candidate."""
    for candidate in DEFAULT_ROOT_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DEFAULT_ROOT_DIRECTORIES[0]


def _find_settings_file() -> Path | None:
    for path in SETTINGS_FILES:
        if path.is_file():
            return path
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a JSON file, then apply environment overrides.

    Unknown keys in the file are ignored. Environment variables
    SUBNOTES_ROOT, SUBNOTES_FOLDER and SUBNOTES_TEMPLATE win over the file.
    """
    settings = Settings(root=resolve_root_directory())

    settings_file = path or _find_settings_file()
    if settings_file is not None and settings_file.is_file():
        data = json.loads(settings_file.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            msg = f"Settings file {settings_file} must contain a JSON object"
            raise ValueError(msg)
        if "root" in data:
            settings = replace(settings, root=Path(data["root"]).expanduser())
        # Empty folder falls back to the default, like the settings tab did.
        if data.get("notes_folder"):
            settings = replace(settings, notes_folder=str(data["notes_folder"]))
        if "template_path" in data:
            settings = replace(settings, template_path=str(data["template_path"] or ""))
        logger.debug("Loaded settings from {}", settings_file)

    if root_env := os.environ.get("SUBNOTES_ROOT"):
        settings = replace(settings, root=Path(root_env).expanduser())
    if folder_env := os.environ.get("SUBNOTES_FOLDER"):
        settings = replace(settings, notes_folder=folder_env)
    if (template_env := os.environ.get("SUBNOTES_TEMPLATE")) is not None:
        settings = replace(settings, template_path=template_env)

    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write settings as JSON. Returns the file written."""
    target = path or SETTINGS_FILES[0]
    target.parent.mkdir(parents=True, exist_ok=True)
    data = asdict(settings)
    data["root"] = str(settings.root)
    target.write_text(json.dumps(data, sort_keys=True, indent=4) + "\n", encoding="utf-8")
    return target
