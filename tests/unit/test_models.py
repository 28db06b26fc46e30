"""Tests for domain models."""

from subnotes.models.note import DeletePlan, DocumentRecord, HierarchyNode, MoveMode, MovePlan, RenameOp


def _record(**overrides: object) -> DocumentRecord:
    fields: dict = {"identity": "a", "filename": "2.1. ESRGAN.md", "path": (2, 1), "name_title": "ESRGAN"}
    fields.update(overrides)
    return DocumentRecord(**fields)


def test_display_title_prefers_metadata() -> None:
    assert _record().display_title == "ESRGAN"
    assert _record(meta_title="Enhanced SRGAN").display_title == "Enhanced SRGAN"


def test_depth_and_node_path() -> None:
    record = _record()
    assert record.depth == 2
    assert HierarchyNode(record).path == (2, 1)


def test_move_mode_from_string() -> None:
    assert MoveMode("before") is MoveMode.BEFORE


def test_plans() -> None:
    record = _record()
    assert MovePlan(source=record, target_path=(2, 1), mode=MoveMode.CHILD).is_noop
    op = RenameOp(
        identity="a", old_path=(2, 1), new_path=(3,), old_filename=record.filename, new_filename="3. ESRGAN.md"
    )
    assert not MovePlan(source=record, target_path=(3,), mode=MoveMode.AFTER, ops=(op,)).is_noop
    assert op.phase == "move"
    assert DeletePlan(anchor=record, records=(record,)).count == 1
