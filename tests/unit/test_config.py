"""Tests for settings loading."""

import json
from pathlib import Path

import pytest

from subnotes import config
from subnotes.config import Settings, load_settings, save_settings


def test_defaults_without_settings_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "DEFAULT_ROOT_DIRECTORIES", [tmp_path / "missing", tmp_path])

    settings = load_settings()
    assert settings == Settings(root=tmp_path)
    assert settings.notes_dir == tmp_path / "notes"


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"root": str(tmp_path), "notes_folder": "papers", "template_path": "t.md", "extra": 1}),
        encoding="utf-8",
    )

    settings = load_settings(path)
    assert settings == Settings(root=tmp_path, notes_folder="papers", template_path="t.md")


def test_empty_folder_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"root": str(tmp_path), "notes_folder": ""}), encoding="utf-8")

    assert load_settings(path).notes_folder == "notes"


def test_non_object_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError, match="JSON object"):
        load_settings(path)


def test_environment_overrides_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"root": "/elsewhere", "notes_folder": "papers"}), encoding="utf-8")
    monkeypatch.setenv("SUBNOTES_ROOT", str(tmp_path))
    monkeypatch.setenv("SUBNOTES_FOLDER", "inbox")
    monkeypatch.setenv("SUBNOTES_TEMPLATE", "templates/note.md")

    settings = load_settings(path)
    assert settings.root == tmp_path
    assert settings.notes_folder == "inbox"
    assert settings.template_path == "templates/note.md"


def test_save_then_load(tmp_path: Path) -> None:
    original = Settings(root=tmp_path / "vault", notes_folder="papers", template_path="t.md")
    written = save_settings(original, tmp_path / "conf" / "settings.json")

    assert written.is_file()
    assert load_settings(written) == original
