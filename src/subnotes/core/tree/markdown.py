"""Render note forests as markdown outlines."""

import io

from subnotes.core.path.codec import format_level
from subnotes.models.note import Forest, HierarchyNode


def render_subtree_as_markdown(
    node: HierarchyNode,
    *,
    max_depth: int | None = None,
    show_levels: bool = True,
) -> str:
    """Render a node and its descendants as an indented bullet list.

    Args:
        node: The root node to start rendering from.
        max_depth: Max levels below the start node to include (None = unlimited).
        show_levels: Prefix each entry with its dotted level path.

    Returns:
        Markdown string with bullet-list hierarchy.
    """
    out = io.StringIO()
    _write_node(out, node, 0, max_depth, show_levels)
    return out.getvalue()


def render_forest_as_markdown(
    forest: Forest,
    *,
    max_depth: int | None = None,
    show_levels: bool = True,
) -> str:
    """Render every root group, one after another."""
    if not forest.roots:
        return "No subnotes found\n"
    return "".join(
        render_subtree_as_markdown(root, max_depth=max_depth, show_levels=show_levels)
        for root in forest.roots
    )


def _write_node(
    out: io.StringIO,
    node: HierarchyNode,
    relative_depth: int,
    max_depth: int | None,
    show_levels: bool,
) -> None:
    indent = "    " * relative_depth
    label = node.record.display_title
    if show_levels:
        label = f"{format_level(node.path)} {label}"
    out.write(f"{indent}- {label}\n")

    if max_depth is not None and relative_depth >= max_depth:
        # Truncation indicator when children are cut off by max_depth
        if node.children:
            child_indent = "    " * (relative_depth + 1)
            noun = "child" if len(node.children) == 1 else "children"
            out.write(f"{child_indent}- ... ({len(node.children)} more {noun})\n")
        return

    for child in node.children:
        _write_node(out, child, relative_depth + 1, max_depth, show_levels)
