"""dualsub languages command — list known language codes."""

from __future__ import annotations

from rich.table import Table

from dualsub.core.languages import LANGUAGE_NAMES, language_aliases
from dualsub.utils.console import console


def languages() -> None:
    """List language codes accepted for tracks and translation targets."""
    table = Table(title=f"Supported Languages ({len(LANGUAGE_NAMES)})")
    table.add_column("Code", style="bold cyan", width=8)
    table.add_column("Language", width=24)
    table.add_column("Also accepted", width=16)

    for code in sorted(LANGUAGE_NAMES):
        aliases = language_aliases(code)
        table.add_row(code, LANGUAGE_NAMES[code].title(), ", ".join(aliases) or "-")

    console.print(table)
    console.print(
        "\n[dim]Regional variants share a group (en-US = en). Simplified and "
        "Traditional Chinese (zh-Hans, zh-Hant) and Cantonese (yue) are distinct. "
        "Captions whose source and target share a group are shown untranslated.[/dim]"
    )
