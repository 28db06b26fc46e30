"""Shared test fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from subnotes import config
from subnotes.app import AppContext
from subnotes.config import Settings
from tests.unit.fakes import PAPER_NOTES, FakeStorage


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never read the user's real settings file or environment."""
    monkeypatch.setattr(config, "SETTINGS_FILES", [])
    for name in ("SUBNOTES_ROOT", "SUBNOTES_FOLDER", "SUBNOTES_TEMPLATE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def paper_storage() -> FakeStorage:
    return FakeStorage.with_notes(*PAPER_NOTES)


@pytest.fixture
def paper_app(paper_storage: FakeStorage, tmp_path: Path) -> Iterator[AppContext]:
    with AppContext(Settings(root=tmp_path), storage=paper_storage) as app:
        yield app


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """A vault root with a populated notes folder on disk."""
    notes = tmp_path / "notes"
    notes.mkdir()
    for name in PAPER_NOTES:
        (notes / name).write_text("", encoding="utf-8")
    return tmp_path
