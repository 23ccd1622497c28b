# -*- coding: utf-8 -*-
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from keen.client import Master, Reader, Writer
from keen.config import load_settings
from keen.constants import CONFIG, EXIT_CODE_FAILURE
from keen.errors import KeenError
from keen.transport import Response

LOG = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="keen",
    help="Publish events to and query the Keen API.",
    no_args_is_help=True,
    add_completion=False,
)


class AppState:
    def __init__(self) -> None:
        self.config_path: Path = CONFIG
        self.environment: Optional[str] = None


def configure_logger(debug: bool) -> None:
    level = logging.CRITICAL

    if debug:
        level = logging.DEBUG

    logging.basicConfig(format="%(asctime)s %(name)s => %(message)s", level=level)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    config: Path = typer.Option(
        CONFIG, "--config", help="Path to the config.ini file.", show_default=True
    ),
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        help="Client environment. 'test' lifts the queue interval limits.",
    ),
) -> None:
    configure_logger(debug)

    state = AppState()
    state.config_path = config
    state.environment = environment
    ctx.obj = state

    LOG.debug("Using config file %s", config)


def _settings(ctx: typer.Context):
    state: AppState = ctx.obj
    return load_settings(config_path=state.config_path, environment=state.environment)


def _print_response(response: Response) -> None:
    style = "green" if response.is_success else "red"
    console.print(f"[{style}]HTTP {response.status_code}[/{style}]")

    try:
        console.print_json(response.body)
    except (ValueError, TypeError):
        console.print(response.body, markup=False)

    if not response.is_success:
        raise typer.Exit(code=EXIT_CODE_FAILURE)


def _fail(error: KeenError) -> typer.Exit:
    console.print(f"[red]{error.message}[/red]")
    return typer.Exit(code=error.get_exit_code())


@app.command()
def projects(ctx: typer.Context) -> None:
    """
    List the projects visible to the master key.
    """
    try:
        with Master(settings=_settings(ctx)) as client:
            response = client.get_projects()
    except KeenError as e:
        raise _fail(e)

    _print_response(response)


@app.command()
def count(
    ctx: typer.Context,
    collection: str = typer.Argument(..., help="Event collection to count."),
    timeframe: Optional[str] = typer.Option(None, help="e.g. this_week."),
    filters: Optional[str] = typer.Option(None, help="Filters as a JSON list."),
    group_by: Optional[str] = typer.Option(None, "--group-by"),
) -> None:
    """
    Count the events of a collection.
    """
    try:
        with Reader(settings=_settings(ctx)) as client:
            response = client.count(
                collection, filters=filters, timeframe=timeframe, group_by=group_by
            )
    except KeenError as e:
        raise _fail(e)

    _print_response(response)


@app.command("add-event")
def add_event(
    ctx: typer.Context,
    collection: str = typer.Argument(..., help="Target event collection."),
    event: str = typer.Argument(..., help="The event as a JSON object."),
) -> None:
    """
    Publish a single event right away.
    """
    try:
        json.loads(event)
    except ValueError as e:
        console.print(f"[red]Event is not valid JSON: {e}[/red]")
        raise typer.Exit(code=EXIT_CODE_FAILURE)

    try:
        with Writer(settings=_settings(ctx)) as client:
            response = client.add_event(collection, event)
    except KeenError as e:
        raise _fail(e)

    _print_response(response)


@app.command()
def queue(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="File with one JSON event per line."
    ),
    collection: str = typer.Option(..., "--collection", "-c"),
) -> None:
    """
    Queue the events of a file and ship them in batches.
    """
    queued = 0

    try:
        client = Writer(settings=_settings(ctx))
    except KeenError as e:
        raise _fail(e)

    try:
        with file.open(encoding="utf-8") as lines:
            for line in lines:
                line = line.strip()
                if not line:
                    continue
                client.queue_event(collection, line)
                queued += 1

        result = client.send_queued_events()
    except KeenError as e:
        raise _fail(e)
    finally:
        client.shutdown()

    console.print(
        f"Queued {queued} events, sent {result.sent} in {result.batches} batches"
    )

    if client.queued:
        console.print(
            f"[yellow]{client.queued} events could not be delivered[/yellow]"
        )
        raise typer.Exit(code=EXIT_CODE_FAILURE)


def cli() -> None:
    app()
