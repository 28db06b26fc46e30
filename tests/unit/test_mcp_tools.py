"""Tests for MCP tool core functions."""

from subnotes.app import AppContext
from subnotes.mcp.server import (
    subnotes_create,
    subnotes_delete,
    subnotes_move,
    subnotes_note_context,
    subnotes_plan_delete,
    subnotes_plan_move,
    subnotes_tree,
    subnotes_valid_targets,
)
from tests.unit.fakes import FakeStorage


def test_subnotes_tree_markdown(paper_app: AppContext) -> None:
    result = subnotes_tree(paper_app)
    assert result["root_count"] == 2
    assert result["orphans"] == []
    assert "collisions" not in result
    assert "        - 2.1.1 Architecture\n" in result["content"]


def test_subnotes_tree_json_respects_max_depth(paper_app: AppContext) -> None:
    result = subnotes_tree(paper_app, output_format="json", max_depth=1)
    related = result["roots"][1]
    assert related["level"] == "2"
    esrgan = related["children"][0]
    assert esrgan["title"] == "ESRGAN"
    assert esrgan["child_count"] == 1
    assert "children" not in esrgan


def test_subnotes_tree_reports_orphans_and_collisions(paper_storage: FakeStorage, paper_app: AppContext) -> None:
    paper_storage.add("5.1. Lost.md")
    paper_storage.add("1.1. Duplicate.md")
    paper_app.refresh()

    result = subnotes_tree(paper_app)
    assert [o["filename"] for o in result["orphans"]] == ["5.1. Lost.md"]
    assert result["collisions"] == {"1.1": ["1.1. Background.md", "1.1. Duplicate.md"]}


def test_subnotes_note_context(paper_app: AppContext) -> None:
    result = subnotes_note_context(paper_app, note="Motivation")
    assert result["note"]["level"] == "1.2"
    assert result["breadcrumbs"] == "Intro"
    assert [s["title"] for s in result["siblings_before"]] == ["Background"]
    assert result["siblings_after"] == []
    assert result["children"] == []

    nested = subnotes_note_context(paper_app, note="2.1.1")
    assert nested["breadcrumbs"] == "Related > ESRGAN"


def test_subnotes_note_context_unknown(paper_app: AppContext) -> None:
    assert "error" in subnotes_note_context(paper_app, note="Nope")


def test_subnotes_plan_move_changes_nothing(paper_app: AppContext, paper_storage: FakeStorage) -> None:
    result = subnotes_plan_move(paper_app, source="Motivation", target="Related")
    assert result["target_level"] == "2.2"
    assert result["renames"] == [{"phase": "move", "from": "1.2. Motivation.md", "to": "2.2. Motivation.md"}]
    assert result["count"] == 1
    assert paper_storage.mutating_calls() == []


def test_subnotes_plan_move_invalid_mode(paper_app: AppContext) -> None:
    result = subnotes_plan_move(paper_app, source="Motivation", target="Related", mode="inside")
    assert "Invalid mode" in result["error"]


def test_subnotes_move(paper_app: AppContext, paper_storage: FakeStorage) -> None:
    result = subnotes_move(paper_app, source="Background", target="Related", mode="after")
    assert result["success"] is True
    assert result["target_level"] == "3"
    assert "3. Background.md" in paper_storage.filenames()


def test_subnotes_move_rejects_cycle(paper_app: AppContext, paper_storage: FakeStorage) -> None:
    result = subnotes_move(paper_app, source="Related", target="ESRGAN")
    assert "descendant" in result["error"]
    assert paper_storage.mutating_calls() == []


def test_subnotes_plan_delete_and_delete(paper_app: AppContext, paper_storage: FakeStorage) -> None:
    plan = subnotes_plan_delete(paper_app, note="Related")
    assert plan["count"] == 3
    assert [n["title"] for n in plan["notes"]] == ["Architecture", "ESRGAN", "Related"]
    assert paper_storage.mutating_calls() == []

    result = subnotes_delete(paper_app, note="Related")
    assert result == {"success": True, "count": 3}
    assert paper_storage.filenames() == ["1. Intro.md", "1.1. Background.md", "1.2. Motivation.md"]


def test_subnotes_create(paper_app: AppContext) -> None:
    result = subnotes_create(paper_app, title="Appendix")
    assert result["note"]["filename"] == "3. Appendix.md"

    child = subnotes_create(paper_app, title="Figures", parent="Appendix")
    assert child["note"]["level"] == "3.1"


def test_subnotes_create_invalid_title(paper_app: AppContext) -> None:
    assert "error" in subnotes_create(paper_app, title="a/b")


def test_subnotes_tree_counts_every_placed_note(paper_app: AppContext) -> None:
    assert subnotes_tree(paper_app)["note_count"] == 6


def test_subnotes_valid_targets(paper_app: AppContext) -> None:
    result = subnotes_valid_targets(paper_app, note="ESRGAN")
    assert [t["title"] for t in result["targets"]] == ["Intro", "Background", "Motivation", "Related"]
    assert result["count"] == 4

    assert subnotes_valid_targets(paper_app, note="Intro")["targets"] == []
    assert "error" in subnotes_valid_targets(paper_app, note="Nope")
