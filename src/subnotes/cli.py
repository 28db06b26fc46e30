"""CLI for subnotes (tree, create, move, targets, delete, migrate, config, MCP server)."""

import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from subnotes.app import AppContext
from subnotes.config import Settings, load_settings, save_settings
from subnotes.core.migrate import apply_migration, plan_migration
from subnotes.core.path.codec import format_level
from subnotes.core.tree.markdown import render_forest_as_markdown
from subnotes.errors import StorageError, SubnotesError
from subnotes.logging_config import configure_logging
from subnotes.models.note import MoveMode
from subnotes.storage.folder import FolderStorage

app = typer.Typer(help="Subnotes: a note hierarchy kept in dotted filenames.")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    root: Annotated[
        Path | None,
        typer.Option("--root", "-r", help="Vault root directory"),
    ] = None,
    folder: Annotated[
        str | None,
        typer.Option("--folder", "-f", help="Notes folder below the root"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose)
    settings = load_settings()
    if root is not None:
        settings = replace(settings, root=root.expanduser())
    if folder:
        settings = replace(settings, notes_folder=folder)
    ctx.obj = settings


def _open_app(ctx: typer.Context) -> AppContext:
    """Open the notes folder, exiting if it doesn't exist."""
    settings: Settings = ctx.obj
    try:
        return AppContext(settings).open()
    except StorageError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


def _fail(error: SubnotesError) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(1)


@app.command()
def tree(
    ctx: typer.Context,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the note hierarchy."""
    from subnotes.mcp.server import subnotes_tree

    with _open_app(ctx) as subnotes:
        if output_json:
            result = subnotes_tree(subnotes, output_format="json", max_depth=max_depth)
            typer.echo(json.dumps(result, indent=2))
            return

        forest = subnotes.forest
        typer.echo(render_forest_as_markdown(forest, max_depth=max_depth), nl=False)
        if forest.orphans:
            typer.echo(f"\n{len(forest.orphans)} hidden note(s) without a complete ancestor chain:")
            for record in forest.orphans:
                typer.echo(f"  {record.filename}")
        for path, group in forest.collisions.items():
            typer.echo(f"\nWarning: level {format_level(path)} is shared by: ", nl=False)
            typer.echo(", ".join(r.filename for r in group))


@app.command()
def create(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Title of the new note"),
    parent: Annotated[
        str | None,
        typer.Option("--parent", "-p", help="Parent note (id, filename, level or title)"),
    ] = None,
) -> None:
    """Create a note as the last child of --parent, or as a new root."""
    with _open_app(ctx) as subnotes:
        try:
            record = subnotes.create(title, parent)
        except SubnotesError as e:
            raise _fail(e) from e
        typer.echo(f"Created subnote: {record.filename}")


@app.command()
def move(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Note to move"),
    target: str = typer.Argument(..., help="Reference note"),
    mode: MoveMode = typer.Option(MoveMode.CHILD, "--mode", "-m", help="child, before or after"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show the planned renames"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Move a note with its subtree relative to TARGET."""
    from subnotes.mcp.server import subnotes_move, subnotes_plan_move

    with _open_app(ctx) as subnotes:
        if output_json:
            run = subnotes_plan_move if dry_run else subnotes_move
            result = run(subnotes, source=source, target=target, mode=mode.value)
            typer.echo(json.dumps(result, indent=2))
            if "error" in result:
                raise typer.Exit(1)
            return

        try:
            plan = subnotes.plan_move(source, target, mode)
            if plan.is_noop:
                typer.echo("Nothing to do.")
                return
            for op in plan.ops:
                typer.echo(f"  {op.phase:<5}  {op.old_filename} -> {op.new_filename}")
            if dry_run:
                return
            subnotes.move(source, target, mode)
        except SubnotesError as e:
            raise _fail(e) from e
        typer.echo(f"Moved {plan.source.display_title} to level {format_level(plan.target_path)}")


@app.command()
def targets(
    ctx: typer.Context,
    note: str = typer.Argument(..., help="Note to be moved"),
) -> None:
    """List the notes NOTE can be moved under as a child."""
    with _open_app(ctx) as subnotes:
        try:
            found = subnotes.valid_targets(note)
        except SubnotesError as e:
            raise _fail(e) from e
        if not found:
            typer.echo("No valid parents (root notes can only be reordered among roots).")
            return
        for record in found:
            typer.echo(f"  {format_level(record.path):<8} {record.display_title}")


@app.command()
def delete(
    ctx: typer.Context,
    note: str = typer.Argument(..., help="Note to delete with its subtree"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list what would be deleted"),
) -> None:
    """Delete a note and all of its descendants."""
    with _open_app(ctx) as subnotes:
        try:
            plan = subnotes.plan_delete(note)
        except SubnotesError as e:
            raise _fail(e) from e

        typer.echo(f"{plan.count} note(s) will be deleted:")
        for record in plan.records:
            typer.echo(f"  {record.filename}")
        if dry_run:
            return
        if not yes and not typer.confirm("Delete these notes?"):
            raise typer.Abort()

        try:
            count = subnotes.delete(note)
        except SubnotesError as e:
            raise _fail(e) from e
        typer.echo(f"Deleted {count} note(s)")


@app.command()
def migrate(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show the planned renames"),
) -> None:
    """Rename legacy timestamp notes (202401151030.2.md) to dotted levels."""
    settings: Settings = ctx.obj
    try:
        storage = FolderStorage(settings.root, settings.notes_folder)
        plan = plan_migration(storage.list_documents())
    except StorageError as e:
        raise _fail(e) from e

    for group in plan.skipped_groups:
        typer.echo(f"Skipping {group}: no root note")
    if not plan.renames:
        typer.echo("No legacy notes found.")
        return
    for rename in plan.renames:
        typer.echo(f"  {rename.old_filename} -> {rename.new_filename}")
    if dry_run:
        return

    try:
        count = apply_migration(storage, plan)
    except SubnotesError as e:
        raise _fail(e) from e
    typer.echo(f"Migrated {count} note(s)")


@app.command()
def config(
    ctx: typer.Context,
    template: Annotated[
        str | None,
        typer.Option("--template", "-t", help="Template file for new notes, relative to the root"),
    ] = None,
    save: bool = typer.Option(False, "--save", help="Write the settings to the settings file"),
) -> None:
    """Show the effective settings, optionally saving them."""
    settings: Settings = ctx.obj
    if template is not None:
        settings = replace(settings, template_path=template)
    typer.echo(f"root:          {settings.root}")
    typer.echo(f"notes_folder:  {settings.notes_folder}")
    typer.echo(f"template_path: {settings.template_path or '-'}")
    if save:
        path = save_settings(settings)
        typer.echo(f"Saved settings to {path}")


@app.command()
def serve(ctx: typer.Context) -> None:
    """Start the MCP server (stdio transport)."""
    from subnotes.mcp.server import run_mcp_server

    # The server lifespan loads settings itself; pass CLI overrides through.
    settings: Settings = ctx.obj
    os.environ["SUBNOTES_ROOT"] = str(settings.root)
    os.environ["SUBNOTES_FOLDER"] = settings.notes_folder

    run_mcp_server()
