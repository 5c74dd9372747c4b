"""dualsub play command — simulated dual-subtitle playback over a subtitle file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape

from dualsub.core.config import DualSubConfig, load_config
from dualsub.core.models import CaptionFrame
from dualsub.utils.console import console


def play(
    subtitle_file: Annotated[
        Path,
        typer.Argument(help="Primary subtitle file (SRT, VTT, ASS)."),
    ],
    secondary: Annotated[
        Optional[Path],
        typer.Option("--secondary", "-s", help="Secondary-language subtitle file."),
    ] = None,
    video_id: Annotated[
        Optional[str],
        typer.Option("--video-id", help="Video id used for cache keys (default: file stem)."),
    ] = None,
    start: Annotated[
        float,
        typer.Option("--from", help="Start time in seconds.", min=0.0),
    ] = 0.0,
    end: Annotated[
        Optional[float],
        typer.Option("--to", help="Stop time in seconds (default: last cue)."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="LiteLLM model string (e.g. ollama_chat/qwen3:8b)."),
    ] = None,
    target: Annotated[
        Optional[str],
        typer.Option("--target", "-t", help="Translation target language code."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option(help="Secondary line provider: llm or native."),
    ] = None,
    speed: Annotated[
        float,
        typer.Option("--speed", help="Playback speed multiplier.", min=0.01),
    ] = 1.0,
    export: Annotated[
        Optional[Path],
        typer.Option("--export", "-e", help="Write recorded captions to this file (.srt/.vtt/.txt)."),
    ] = None,
) -> None:
    """Play a subtitle file against a simulated clock, printing both caption lines.

    Translations are resolved through the cache exactly as during real
    playback, so repeated runs reuse what earlier runs generated.
    """
    from dualsub.core.languages import validate_language
    from dualsub.subtitles.source import FileCueSource
    from dualsub.translation.client import ensure_ollama_model

    if target:
        try:
            validate_language(target)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
    if provider and provider not in ("llm", "native"):
        console.print(f"[red]Unknown provider:[/red] {provider} (expected llm or native)")
        raise typer.Exit(1)

    for path in (subtitle_file, secondary):
        if path is not None and not path.is_file():
            console.print(f"[red]File not found:[/red] {path}")
            raise typer.Exit(1)

    config = load_config(
        **{
            "translation.model": model,
            "translation.target_lang": target,
            "translation.provider": provider,
        }
    )

    tracks = {config.display.primary_lang: subtitle_file}
    if secondary is not None:
        tracks[config.display.secondary_lang] = secondary
    elif config.translation.provider == "native":
        console.print("[yellow]Native provider without --secondary: no second line.[/yellow]")

    if config.translation.provider == "llm":
        ensure_ollama_model(config.translation.model)

    console.print(f"[bold]Playing:[/bold] {subtitle_file.name}")
    console.print(
        f"  Translation: {config.translation.provider} "
        f"({config.translation.model} -> {config.translation.target_lang})"
    )

    asyncio.run(
        _simulate(
            config,
            FileCueSource(tracks),
            video_id or subtitle_file.stem,
            start=start,
            end=end,
            speed=speed,
            export=export,
        )
    )


def _print_frame(frame: CaptionFrame) -> None:
    from dualsub.recorder.export import format_srt_time

    stamp = f"[dim]{format_srt_time(frame.time)}[/dim]"
    lines = frame.lines
    if not lines:
        console.print(stamp)
        return
    console.print(f"{stamp} {escape(lines[0])}")
    for line in lines[1:]:
        tag = f" [dim]({frame.secondary_source})[/dim]" if frame.secondary_source else ""
        console.print(f"{' ' * 12} [cyan]{escape(line)}[/cyan]{tag}")


async def _simulate(
    config: DualSubConfig,
    cue_source,
    video_id: str,
    start: float,
    end: float | None,
    speed: float,
    export: Path | None,
) -> None:
    from dualsub.playback.orchestrator import Orchestrator
    from dualsub.recorder.export import save_intervals
    from dualsub.stores.local import SqliteTranslationStore
    from dualsub.stores.remote import PocketBaseStore
    from dualsub.translation.client import LiteLLMGenerator

    local_store = SqliteTranslationStore(config.store.local_path, config.store.local_max_entries)
    remote_store = PocketBaseStore.from_config(config.store) if config.remote_enabled else None

    loop = asyncio.get_running_loop()
    origin = loop.time()
    last_lines: list[str] = []

    def clock() -> float:
        return start + (loop.time() - origin) * speed

    def on_frame(frame: CaptionFrame) -> None:
        nonlocal last_lines
        if frame.lines != last_lines:
            last_lines = frame.lines
            _print_frame(frame)

    orchestrator = Orchestrator(
        config,
        cue_source,
        LiteLLMGenerator(config.translation),
        local_store,
        remote_store,
        clock=clock,
        on_frame=on_frame,
    )

    try:
        await orchestrator.load_video(video_id)
        if not orchestrator.primary.cues:
            console.print("[yellow]No cues to play.[/yellow]")
            return
        if end is None:
            end = orchestrator.primary.cues[-1].end
        if end <= start:
            console.print(f"[red]Nothing to play between {start:.1f}s and {end:.1f}s[/red]")
            return

        origin = loop.time()
        stop = asyncio.Event()
        loop.call_later((end - start) / speed, stop.set)
        await orchestrator.run(stop)
        await orchestrator.drain()

        intervals = await orchestrator.export()
        console.print(f"\n[green]Recorded {len(intervals)} caption intervals.[/green]")
        if export is not None:
            save_intervals(intervals, export)
            console.print(f"[green]Export saved:[/green] {export}")
    finally:
        local_store.close()
        if remote_store is not None:
            await remote_store.aclose()
