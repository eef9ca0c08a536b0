# SPDX-License-Identifier: MIT

from rich import box
from rich.console import Console
from rich.table import Table

from notebridge.model.note_record import NoteRecord
from notebridge.model.processor import ProcessorResult
from notebridge.time import datetime_to_display_str


def sync_results_report(console: Console, results: list[ProcessorResult]) -> None:
    table = Table(box=box.SIMPLE)
    table.add_column("source")
    table.add_column("module")
    table.add_column("status")
    table.add_column("paths", justify="right")
    table.add_column("problems")

    for result in results:
        status = "[green]ok[/green]" if result["success"] else "[red]failed[/red]"
        problems = result["errors"] + result["warnings"]
        table.add_row(
            result["source_name"],
            result["module"] or "",
            status,
            str(len(result["created_paths"])),
            "\n".join(problems),
        )

    console.print(table)

    failed = sum(1 for result in results if not result["success"])
    console.print(f"{len(results) - failed} synced, {failed} failed")


def records_report(
    console: Console,
    records: list[NoteRecord],
    columns: list[str] = [
        "note_id",
        "module",
        "note_name",
        "note_path",
        "creation_time",
        "last_modified",
        "pages",
    ],
) -> None:
    table = Table(box=box.SIMPLE)
    for column in columns:
        table.add_column(column)

    for record in records:
        row = []
        for column in columns:
            column_value = ""
            if column in ("creation_time", "last_modified"):
                value = record[column]  # type: ignore[literal-required]
                column_value = datetime_to_display_str(value) if value is not None else ""
            elif column == "pages":
                column_value = str(len(record["pages"]))
            else:
                column_value = str(record[column] or "")  # type: ignore[literal-required]
            row.append(column_value)
        table.add_row(*row)

    console.print(table)
