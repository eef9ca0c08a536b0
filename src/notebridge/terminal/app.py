# SPDX-License-Identifier: MIT

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from notebridge import configuration as app_configuration
from notebridge.configuration import validate_configuration
from notebridge.repository.configuration import CONFIGURATION_REPO
from notebridge.repository.metadata import MetadataRepository
from notebridge.session import SyncSession
from notebridge.terminal import configuration
from notebridge.terminal.custom_typer import AliasedTyperGroup
from notebridge.view.report import records_report, sync_results_report

app = typer.Typer(
    cls=AliasedTyperGroup,
    help="Notebridge - Sync note archives into a markdown vault",
    no_args_is_help=True,
)
app.add_typer(configuration.app, name="config, c")


@app.command("sync, s")
def sync(
    paths: Annotated[
        list[Path],
        typer.Argument(help=".note archives to sync", exists=True, dir_okay=False),
    ],
    vault: Annotated[
        Optional[Path],
        typer.Option("--vault", "-v", help="Vault folder (defaults to vault_path)"),
    ] = None,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", min=1, help="Notes synced in parallel"),
    ] = 1,
) -> None:
    """
    Sync note archives into the vault.
    """
    console = Console()
    config = CONFIGURATION_REPO.get_config()

    vault_path = vault or (Path(config["vault_path"]) if config["vault_path"] else None)
    if vault_path is None:
        console.print("[red]No vault given: pass --vault or set vault_path[/red]")
        raise typer.Exit(code=1)

    problems = validate_configuration(config)
    if problems:
        for problem in problems:
            console.print(f"[red]{problem}[/red]")
        raise typer.Exit(code=1)

    with SyncSession(vault_path, config, app_configuration.DATA_PATH) as session:
        results = session.sync_batch(paths, workers)

    sync_results_report(console, results)
    if any(not result["success"] for result in results):
        raise typer.Exit(code=1)


@app.command("records, r")
def records() -> None:
    """
    List tracked notes.
    """
    repository = MetadataRepository(app_configuration.DATA_NOTE_RECORDS_PATH)
    all_records = sorted(repository.get_all(), key=lambda record: record["note_path"])
    records_report(Console(), all_records)


def run() -> None:
    app()
