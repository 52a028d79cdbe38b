from __future__ import annotations

import sys
from typing import Optional

import typer

from hotelier.config import get_settings
from hotelier.domain.errors import HotelierError
from hotelier.domain.models import Venue, utcnow
from hotelier.infrastructure.record_store import RecordStore
from hotelier.orchestrator import ScheduleOrchestrator, ServerContext
from hotelier.reporter import print_ranking, print_settings
from hotelier.services.ranking import rescore, select_leaders
from hotelier.utils.logging import configure_logging

app = typer.Typer(help="HOTELIER review-aggregation server.")


@app.command()
def serve(
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Override the listening port (default from settings).",
    ),
) -> None:
    """
    Run the server until an idle timeout or SIGINT/SIGTERM.
    """
    settings = get_settings()
    if port is not None:
        settings = settings.model_copy(update={"port": port})
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    server = ScheduleOrchestrator(ServerContext.from_settings(settings))
    try:
        server.bind()
    except HotelierError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    server.install_signal_handlers()
    host, bound_port = server.address
    typer.echo(f"HOTELIER listening on {host}:{bound_port} (env={settings.app_env}).")
    server.serve_forever()


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    print_settings(get_settings())


@app.command()
def rank(
    city: Optional[str] = typer.Option(
        None,
        "--city",
        "-c",
        help="Rank every hotel of one city instead of listing each city's leader.",
    ),
) -> None:
    """
    Score the hotel store offline and print the ranking; nothing is written back.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)
    try:
        venues = RecordStore(settings.venues_path, Venue).load_all()
    except HotelierError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    rescore(venues, utcnow())

    if city:
        selected = sorted(
            (venue for venue in venues if venue.in_city(city)),
            key=lambda venue: venue.score,
            reverse=True,
        )
        title = f"Ranking for {city}"
    else:
        by_id = {venue.id: venue for venue in venues}
        selected = [by_id[entry.venue_id] for entry in select_leaders(venues).values()]
        title = "1st ranked Hotel per city"
    print_ranking(selected, title)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
