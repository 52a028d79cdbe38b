"""
Hotel store generation script for local HOTELIER runs.

Implements deterministic pseudo-random hotel generation and writes the result
through the same record store the server reads, so the file always matches the
persisted schema.
"""

from __future__ import annotations

import random
import sys
import time
from pathlib import Path
from typing import List

import typer

from hotelier.config import get_settings
from hotelier.domain.models import Ratings, Venue
from hotelier.infrastructure.record_store import RecordStore

app = typer.Typer(help="Generate a synthetic hotel store for the HOTELIER server.")

CITIES = [
    "Ancona",
    "Aosta",
    "Bari",
    "Bologna",
    "Cagliari",
    "Campobasso",
    "Catanzaro",
    "Firenze",
    "Genova",
    "L'Aquila",
    "Milano",
    "Napoli",
    "Palermo",
    "Perugia",
    "Potenza",
    "Roma",
    "Torino",
    "Trento",
    "Trieste",
    "Venezia",
]
SERVICES = [
    "TV in camera",
    "Palestra",
    "Cancellazione gratuita",
    "Colazione inclusa",
    "Parcheggio",
    "Piscina",
    "Wi-Fi gratuito",
    "Animali ammessi",
]


def _generate_venues(per_city: int, seed: int) -> List[Venue]:
    """
    Build `per_city` hotels for each city with empty aggregates and no reviews.

    Ids are 1-based and follow city order, so the same arguments always give
    the same file.
    """
    rng = random.Random(seed)
    venues: List[Venue] = []
    for city in CITIES:
        for n in range(1, per_city + 1):
            venue_id = len(venues) + 1
            name = f"Hotel {city} {n}"
            venues.append(
                Venue(
                    id=venue_id,
                    name=name,
                    description=f"Un ridente hotel a {city}, in via della Rosa, {rng.randint(1, 200)}",
                    city=city,
                    phone=f"{rng.randint(300, 399)}-{rng.randint(1_000_000, 9_999_999)}",
                    services=sorted(rng.sample(SERVICES, rng.randint(1, 4))),
                    rate=0.0,
                    ratings=Ratings(),
                )
            )
    return venues


@app.command()
def main(
    per_city: int = typer.Option(
        5,
        "--per-city",
        "-n",
        help="Number of hotels to generate for each city.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Hotel store path (default from HOTELS_FILE).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing, non-empty hotel store.",
    ),
) -> None:
    """
    Generate a hotel store with every supported city.
    """
    settings = get_settings()
    store = RecordStore(output or settings.venues_path, Venue, atomic=settings.atomic_writes)
    if not force and store.load_all():
        typer.echo(f"{store.path} already holds hotels; pass --force to overwrite.", err=True)
        raise typer.Exit(code=1)

    start = time.perf_counter()
    venues = _generate_venues(per_city, seed)
    store.save_all(venues)
    duration = time.perf_counter() - start
    typer.echo(
        f"Wrote {len(venues):,} hotels in {len(CITIES)} cities -> {store.path} "
        f"(seed={seed}) in {duration:.2f}s"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
