"""DualSub CLI entry point."""

from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from dualsub import __version__
from dualsub.cli.cache import cache
from dualsub.cli.languages import languages
from dualsub.cli.play import play

app = typer.Typer(
    name="dualsub",
    help="DualSub — Dual-language captions with cached machine translation.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dualsub {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """DualSub — Dual-language captions with cached machine translation."""
    # API keys (GEMINI_API_KEY, OPENAI_API_KEY, ...) may live in .env;
    # shell exports take precedence.
    load_dotenv(override=False)


app.command("play")(play)
app.command("languages")(languages)
app.command("cache")(cache)
