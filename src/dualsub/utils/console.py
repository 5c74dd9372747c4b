"""Shared Rich console used for all user-facing output and warnings."""

from rich.console import Console

console = Console()
