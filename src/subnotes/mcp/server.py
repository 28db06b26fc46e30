"""MCP server exposing the subnote hierarchy and its move/create/delete operations."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from subnotes.app import AppContext
from subnotes.config import load_settings
from subnotes.core.path.codec import format_level
from subnotes.core.tree.builder import iter_nodes
from subnotes.core.tree.markdown import render_forest_as_markdown
from subnotes.core.tree.navigation import get_breadcrumbs, get_children, get_siblings
from subnotes.errors import SubnotesError
from subnotes.models.note import DocumentRecord, HierarchyNode, MoveMode, MovePlan


def _record_dict(record: DocumentRecord) -> dict[str, Any]:
    return {
        "id": record.identity,
        "title": record.display_title,
        "level": format_level(record.path),
        "filename": record.filename,
    }


def _plan_dict(plan: MovePlan) -> dict[str, Any]:
    return {
        "source": _record_dict(plan.source),
        "mode": plan.mode.value,
        "target_level": format_level(plan.target_path),
        "renames": [
            {"phase": op.phase, "from": op.old_filename, "to": op.new_filename} for op in plan.ops
        ],
        "count": len(plan.ops),
    }


def _node_dict(node: HierarchyNode, remaining_depth: int | None) -> dict[str, Any]:
    entry = _record_dict(node.record)
    entry["child_count"] = len(node.children)
    if remaining_depth is None or remaining_depth > 0:
        next_depth = None if remaining_depth is None else remaining_depth - 1
        entry["children"] = [_node_dict(c, next_depth) for c in node.children]
    return entry


# --- Core functions (testable without MCP context) ---


def subnotes_tree(
    app: AppContext,
    *,
    output_format: str = "markdown",
    max_depth: int | None = None,
) -> dict[str, Any]:
    """Return the note hierarchy as markdown or structured JSON.

    Args:
        output_format: "markdown" or "json".
        max_depth: Max levels below each root (None = unlimited).
    """
    forest = app.forest
    result: dict[str, Any] = {
        "root_count": len(forest.roots),
        "note_count": sum(1 for _ in iter_nodes(forest)),
        "orphans": [_record_dict(r) for r in forest.orphans],
    }
    if forest.collisions:
        result["collisions"] = {
            format_level(path): [r.filename for r in group] for path, group in forest.collisions.items()
        }
    if output_format == "markdown":
        result["content"] = render_forest_as_markdown(forest, max_depth=max_depth)
    else:
        result["roots"] = [_node_dict(root, max_depth) for root in forest.roots]
    return result


def subnotes_note_context(app: AppContext, *, note: str, sibling_count: int = 3) -> dict[str, Any]:
    """Get a note with breadcrumbs, siblings, and children."""
    try:
        record = app.resolve(note)
    except SubnotesError as e:
        return {"error": str(e)}
    records = app.records
    before, after = get_siblings(records, record, count=sibling_count)
    return {
        "note": _record_dict(record),
        "breadcrumbs": " > ".join(c.title for c in get_breadcrumbs(records, record.path)),
        "siblings_before": [_record_dict(s) for s in before],
        "siblings_after": [_record_dict(s) for s in after],
        "children": [_record_dict(c) for c in get_children(records, record.path)],
    }


def subnotes_valid_targets(app: AppContext, *, note: str) -> dict[str, Any]:
    """List the notes that note may be moved under as a child."""
    try:
        targets = app.valid_targets(note)
    except SubnotesError as e:
        return {"error": str(e)}
    return {"targets": [_record_dict(r) for r in targets], "count": len(targets)}


def subnotes_plan_move(app: AppContext, *, source: str, target: str, mode: str = "child") -> dict[str, Any]:
    """Compute the renames for a move without applying them.

    Args:
        source: Note to move (id, filename, level, or title).
        target: Reference note.
        mode: "child", "before" or "after".
    """
    try:
        plan = app.plan_move(source, target, MoveMode(mode))
    except ValueError:
        return {"error": f"Invalid mode '{mode}'. Expected child, before or after."}
    except SubnotesError as e:
        return {"error": str(e)}
    return _plan_dict(plan)


def subnotes_move(app: AppContext, *, source: str, target: str, mode: str = "child") -> dict[str, Any]:
    """Move a note (with its subtree) and apply the renames."""
    try:
        plan = app.move(source, target, MoveMode(mode))
    except ValueError:
        return {"error": f"Invalid mode '{mode}'. Expected child, before or after."}
    except SubnotesError as e:
        return {"error": str(e)}
    return {"success": True, **_plan_dict(plan)}


def subnotes_plan_delete(app: AppContext, *, note: str) -> dict[str, Any]:
    """List every note a deletion would remove, in deletion order."""
    try:
        plan = app.plan_delete(note)
    except SubnotesError as e:
        return {"error": str(e)}
    return {
        "anchor": _record_dict(plan.anchor),
        "notes": [_record_dict(r) for r in plan.records],
        "count": plan.count,
    }


def subnotes_delete(app: AppContext, *, note: str) -> dict[str, Any]:
    """Delete a note and all its descendants."""
    try:
        count = app.delete(note)
    except SubnotesError as e:
        return {"error": str(e)}
    return {"success": True, "count": count}


def subnotes_create(app: AppContext, *, title: str, parent: str | None = None) -> dict[str, Any]:
    """Create a note as the last child of parent, or as a new root."""
    try:
        record = app.create(title, parent)
    except SubnotesError as e:
        return {"error": str(e)}
    return {"success": True, "note": _record_dict(record)}


# --- MCP Server Setup ---


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Open the notes folder on startup, release it on shutdown."""
    with AppContext(load_settings()) as app:
        logger.info("Serving notes from {}", app.settings.notes_dir)
        yield app


mcp_server = FastMCP(
    "subnotes",
    instructions="""\
Notes form a hierarchy encoded in their filenames: "2.1. Title.md" is the first
child of "2. Title.md". Moving, creating or deleting notes renames files.

## Best Practice
1. Call subnotes_tree_tool to see the hierarchy and note levels.
2. subnotes_valid_targets_tool lists where a note can be moved as a child.
3. Before moving, call subnotes_plan_move_tool and check the renames.
4. Before deleting, call subnotes_plan_delete_tool; deletion removes the whole subtree.

Notes can be referenced by id, filename, dotted level (e.g. "2.1") or title.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> AppContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def subnotes_tree_tool(
    ctx: Context,
    output_format: str = "markdown",
    max_depth: int | None = None,
) -> dict[str, Any]:
    """Show the note hierarchy.

    Args:
        output_format: "markdown" (human-readable) or "json" (structured).
        max_depth: Max levels below each root (None = unlimited).
    """
    return subnotes_tree(_ctx(ctx), output_format=output_format, max_depth=max_depth)


@mcp_server.tool()
async def subnotes_note_context_tool(ctx: Context, note: str, sibling_count: int = 3) -> dict[str, Any]:
    """Get a note with its breadcrumbs, siblings and children.

    Args:
        note: Note id, filename, dotted level or title.
        sibling_count: Siblings before/after to include.
    """
    return subnotes_note_context(_ctx(ctx), note=note, sibling_count=sibling_count)


@mcp_server.tool()
async def subnotes_valid_targets_tool(ctx: Context, note: str) -> dict[str, Any]:
    """List the notes a note can become a child of. Root notes have none.

    Args:
        note: Note id, filename, dotted level or title.
    """
    return subnotes_valid_targets(_ctx(ctx), note=note)


@mcp_server.tool()
async def subnotes_plan_move_tool(ctx: Context, source: str, target: str, mode: str = "child") -> dict[str, Any]:
    """Preview the renames needed to move a note. Nothing is changed.

    Args:
        source: Note to move.
        target: Reference note.
        mode: "child" (last child of target), "before" or "after" (sibling of target).
    """
    return subnotes_plan_move(_ctx(ctx), source=source, target=target, mode=mode)


@mcp_server.tool()
async def subnotes_move_tool(ctx: Context, source: str, target: str, mode: str = "child") -> dict[str, Any]:
    """Move a note with its subtree, renumbering siblings as needed.

    Args:
        source: Note to move.
        target: Reference note.
        mode: "child" (last child of target), "before" or "after" (sibling of target).
    """
    return subnotes_move(_ctx(ctx), source=source, target=target, mode=mode)


@mcp_server.tool()
async def subnotes_plan_delete_tool(ctx: Context, note: str) -> dict[str, Any]:
    """Preview which notes a deletion removes. Nothing is changed.

    Args:
        note: Note id, filename, dotted level or title.
    """
    return subnotes_plan_delete(_ctx(ctx), note=note)


@mcp_server.tool()
async def subnotes_delete_tool(ctx: Context, note: str) -> dict[str, Any]:
    """Delete a note and its whole subtree.

    Args:
        note: Note id, filename, dotted level or title.
    """
    return subnotes_delete(_ctx(ctx), note=note)


@mcp_server.tool()
async def subnotes_create_tool(ctx: Context, title: str, parent: str | None = None) -> dict[str, Any]:
    """Create a note as the last child of parent (or a new root if omitted).

    Args:
        title: Title for the new note's filename.
        parent: Parent note id, filename, dotted level or title.
    """
    return subnotes_create(_ctx(ctx), title=title, parent=parent)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from subnotes.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
