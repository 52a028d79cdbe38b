from __future__ import annotations

from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from hotelier.config import Settings
from hotelier.domain.models import Venue


def print_settings(settings: Settings, console: Console | None = None) -> None:
    """
    Render the effective configuration as a rich table.

    Each row shows the setting, the environment variable that overrides it,
    and the value in effect.
    """
    console = console or Console()
    table = Table(title="HOTELIER Settings", box=box.ROUNDED)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Env", style="magenta")
    table.add_column("Value", justify="right", style="green")

    for name, field in Settings.model_fields.items():
        table.add_row(name, field.alias or "", str(getattr(settings, name)))

    console.print(table)


def print_ranking(venues: Sequence[Venue], title: str, console: Console | None = None) -> None:
    """
    Render scored hotels, in the order given, as a rich table.
    """
    console = console or Console()

    if not venues:
        console.print("[yellow]No hotels to display.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, caption="Score = 0.4 quality + 0.3 quantity + 0.3 actuality")
    table.add_column("#", justify="right", style="blue")
    table.add_column("City", style="cyan", no_wrap=True)
    table.add_column("Hotel", style="bold")
    table.add_column("Score", justify="right", style="bold green")
    table.add_column("Rate", justify="right", style="yellow")
    table.add_column("Reviews", justify="right", style="magenta")

    for position, venue in enumerate(venues, start=1):
        table.add_row(
            str(position),
            venue.city,
            venue.name,
            f"{venue.score:.3f}",
            f"{venue.rate:.2f}",
            f"{venue.review_count:,}",
        )

    console.print(table)


__all__ = ["print_ranking", "print_settings"]
