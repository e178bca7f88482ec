"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.table import Table

from .appctx import AppContext
from .domain.models import FolderItem, item_kind, item_name, item_path
from .domain.services.paging import page_count
from .library.transfer import parse_import
from .errors import ImportValidationError, LaunchGridError, SettingsError, SourceError

app = typer.Typer(help="Paged launcher grid for installed applications")
source_app = typer.Typer(help="Manage custom application sources")
title_app = typer.Typer(help="Manage custom application titles")
app.add_typer(source_app, name="source")
app.add_typer(title_app, name="title")

DataDirOption = typer.Option(None, "--data-dir", help="Override the settings and layout directory")
_QT_APP = None


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (SourceError, ImportValidationError, SettingsError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except LaunchGridError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _open_context(data_dir: Optional[Path]) -> AppContext:
    global _QT_APP
    from PySide6.QtCore import QCoreApplication

    # Signals and timers need an application object even without a UI.
    if QCoreApplication.instance() is None:
        _QT_APP = QCoreApplication([])
    context = AppContext(data_dir=data_dir)
    context.layout.load_layout()
    return context


def _finish(context: AppContext) -> None:
    context.layout.save_now()
    context.close()


@app.command()
@_handle_errors
def scan(
    reset: bool = typer.Option(False, "--reset", help="Discard the saved order and sort by name"),
    data_dir: Optional[Path] = DataDirOption,
) -> None:
    """Scan the application directories and update the saved layout."""

    context = _open_context(data_dir)
    try:
        if reset:
            context.layout.reset_layout(blocking=True)
        else:
            context.layout.scan_applications(preserve_order=True, blocking=True)
        layout = context.layout
        print(
            f"[green]Scanned {len(layout.apps)} applications "
            f"across {layout.page_count} pages[/green]"
        )
    finally:
        _finish(context)


@app.command()
@_handle_errors
def show(data_dir: Optional[Path] = DataDirOption) -> None:
    """Print the saved layout page by page."""

    context = _open_context(data_dir)
    try:
        layout = context.layout
        capacity = layout.page_capacity
        items = layout.items
        for page in range(page_count(len(items), capacity)):
            table = Table(title=f"Page {page + 1}")
            table.add_column("Slot", justify="right")
            table.add_column("Kind")
            table.add_column("Name")
            table.add_column("Path")
            for index, item in enumerate(items[page * capacity:(page + 1) * capacity]):
                kind = item_kind(item)
                if kind == "empty":
                    continue
                detail = item_path(item) or ""
                if isinstance(item, FolderItem):
                    detail = ", ".join(app.name for app in item.folder.apps)
                table.add_row(str(index), kind, item_name(item), detail)
            print(table)
        if not items:
            print("[yellow]Layout is empty; run `launchgrid scan` first[/yellow]")
    finally:
        context.close()


@app.command("export")
@_handle_errors
def export_command(
    destination: Path = typer.Argument(..., help="JSON file to write"),
    data_dir: Optional[Path] = DataDirOption,
) -> None:
    """Write the layout as a JSON document."""

    context = _open_context(data_dir)
    try:
        payload = context.layout.export_layout()
        destination.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"[green]Exported {len(payload['pages'])} slots to {destination}[/green]")
    finally:
        context.close()


@app.command("import")
@_handle_errors
def import_command(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to read"),
    data_dir: Optional[Path] = DataDirOption,
) -> None:
    """Replace the layout with an exported JSON document."""

    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ImportValidationError(f"Could not read {source}: {exc}") from exc
    payload = parse_import(text)
    context = _open_context(data_dir)
    try:
        result = context.layout.import_layout(payload)
        if not result.ok:
            raise ImportValidationError(result.reason)
        print(f"[green]{result.reason}[/green]")
    finally:
        _finish(context)


@app.command()
@_handle_errors
def hide(path: str, data_dir: Optional[Path] = DataDirOption) -> None:
    """Hide an application from the grid."""

    context = _open_context(data_dir)
    try:
        if context.layout.hide_app(path):
            print(f"[green]Hidden {path}[/green]")
        else:
            print(f"[yellow]{path} is already hidden[/yellow]")
    finally:
        _finish(context)


@app.command()
@_handle_errors
def unhide(path: str, data_dir: Optional[Path] = DataDirOption) -> None:
    """Show a previously hidden application again."""

    context = _open_context(data_dir)
    try:
        if context.layout.unhide_app(path):
            print(f"[green]Restored {path}[/green]")
        else:
            print(f"[yellow]{path} is not hidden[/yellow]")
    finally:
        _finish(context)


@app.command()
@_handle_errors
def grid(
    columns: int = typer.Argument(..., help="Columns per page"),
    rows: int = typer.Argument(..., help="Rows per page"),
    data_dir: Optional[Path] = DataDirOption,
) -> None:
    """Change the page geometry; values are clamped to the supported range."""

    context = _open_context(data_dir)
    try:
        context.layout.set_grid_geometry(columns, rows)
        print(f"[green]Grid is {context.layout.columns}x{context.layout.rows}[/green]")
    finally:
        _finish(context)


@source_app.command("add")
@_handle_errors
def source_add(path: Path, data_dir: Optional[Path] = DataDirOption) -> None:
    """Add a directory to scan for applications."""

    context = _open_context(data_dir)
    try:
        if context.layout.add_custom_source(str(path), rescan=True, blocking=True):
            print(f"[green]Added source {path}[/green]")
        else:
            print(f"[yellow]{path} is already a source[/yellow]")
    finally:
        _finish(context)


@source_app.command("remove")
@_handle_errors
def source_remove(path: Path, data_dir: Optional[Path] = DataDirOption) -> None:
    """Remove a custom source and everything found under it."""

    context = _open_context(data_dir)
    try:
        if context.layout.remove_custom_source(str(path), rescan=True, blocking=True):
            print(f"[green]Removed source {path}[/green]")
        else:
            print(f"[yellow]{path} is not a source[/yellow]")
    finally:
        _finish(context)


@source_app.command("list")
@_handle_errors
def source_list(data_dir: Optional[Path] = DataDirOption) -> None:
    """List the configured custom sources."""

    context = _open_context(data_dir)
    try:
        sources = context.layout.custom_sources()
        for source in sources:
            print(source)
        if not sources:
            print("[yellow]No custom sources configured[/yellow]")
    finally:
        context.close()


@title_app.command("set")
@_handle_errors
def title_set(path: str, title: str, data_dir: Optional[Path] = DataDirOption) -> None:
    """Override the displayed name of an application."""

    context = _open_context(data_dir)
    try:
        context.layout.set_custom_title(path, title)
        print(f"[green]{path} is now shown as {title}[/green]")
    finally:
        _finish(context)


@title_app.command("clear")
@_handle_errors
def title_clear(path: str, data_dir: Optional[Path] = DataDirOption) -> None:
    """Restore the bundle's own name."""

    context = _open_context(data_dir)
    try:
        context.layout.clear_custom_title(path)
        print(f"[green]Cleared custom title for {path}[/green]")
    finally:
        _finish(context)


if __name__ == "__main__":  # pragma: no cover
    app()
