"""dualsub cache command — inspect, prune and export the local translation store."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from dualsub.core.config import load_config
from dualsub.stores.local import SqliteTranslationStore
from dualsub.utils.console import console


def cache(
    prune: Annotated[
        Optional[int],
        typer.Option("--prune", help="Delete the N oldest cached translations.", min=1),
    ] = None,
    export: Annotated[
        Optional[Path],
        typer.Option("--export", "-e", help="Write cached translations to a text file."),
    ] = None,
    video_id: Annotated[
        Optional[str],
        typer.Option("--video-id", help="Only export translations for this video."),
    ] = None,
) -> None:
    """Show the local translation store, optionally pruning or exporting it."""
    config = load_config()
    path = config.store.local_path.expanduser()
    store = SqliteTranslationStore(path, config.store.local_max_entries)
    try:
        asyncio.run(_run(store, prune, export, video_id))
    finally:
        store.close()
    console.print(f"[dim]Store: {path}[/dim]")


async def _run(
    store: SqliteTranslationStore,
    prune: int | None,
    export: Path | None,
    video_id: str | None,
) -> None:
    from dualsub.recorder.export import to_txt

    if prune:
        deleted = await store.prune_oldest(prune)
        console.print(f"[green]Pruned {deleted} entries.[/green]")

    count = await store.count()
    console.print(f"[bold]Cached translations:[/bold] {count} / {store.max_entries}")

    if export is not None:
        records = await store.records(video_id)
        export.parent.mkdir(parents=True, exist_ok=True)
        export.write_text(to_txt(records), encoding="utf-8")
        console.print(f"[green]Exported {len(records)} records:[/green] {export}")
