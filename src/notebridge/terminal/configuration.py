# SPDX-License-Identifier: MIT

from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from notebridge import configuration
from notebridge.repository.configuration import CONFIGURATION_REPO
from notebridge.terminal.custom_typer import AliasedTyperGroup

app = typer.Typer(cls=AliasedTyperGroup, no_args_is_help=True)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "✓ Enabled" if value else "✗ Disabled"
    if value is None:
        return "None"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def _configuration_table(title: Optional[str] = None) -> Table:
    config = CONFIGURATION_REPO.get_config()

    table = Table(title=title)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("config_path", str(CONFIGURATION_REPO.path))
    table.add_row("vault_path", _format_value(config["vault_path"]))
    table.add_row("data_path", str(configuration.DATA_PATH))
    table.add_row("log_level", config["log_level"])
    table.add_row("memo_package_names", _format_value(config.get("memo_package_names")))
    for section in ("handwritten", "ebook", "memo", "daily"):
        for key, value in config[section].items():  # type: ignore[literal-required]
            table.add_row(f"{section}.{key}", _format_value(value))
    return table


@app.command("view, v")
def view() -> None:
    """Display current configuration settings."""
    Console().print(_configuration_table())


@app.command("set, s")
def set(
    vault_path: Annotated[
        Optional[str],
        typer.Option("--vault-path", help="Vault folder notes are synced into"),
    ] = None,
    remove_vault_path: Annotated[
        bool, typer.Option("--remove-vault-path", help="Unset the vault folder")
    ] = False,
    data_path: Annotated[
        Optional[str],
        typer.Option(
            "--data-path",
            help="Directory for the note records file (None = user data directory)",
        ),
    ] = None,
    remove_data_path: Annotated[
        bool,
        typer.Option(
            "--remove-data-path",
            help="Reset data path to None (use the user data directory)",
        ),
    ] = False,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """
    Update configuration settings.
    """
    CONFIGURATION_REPO.update_config(
        vault_path=vault_path,
        remove_vault_path=remove_vault_path,
        data_path=data_path,
        remove_data_path=remove_data_path,
        log_level=log_level,
    )

    console = Console()
    console.print("[green]Configuration updated successfully![/green]\n")
    console.print(_configuration_table("Updated Configuration"))
