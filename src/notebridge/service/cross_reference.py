# SPDX-License-Identifier: MIT

from typing import Optional

import pendulum

from notebridge.exceptions import NoteSyncError
from notebridge.locks import NoteLocks
from notebridge.log import get_logger
from notebridge.model.note_record import NoteRecord
from notebridge.model.sub_format import SubFormat
from notebridge.repository.metadata import MetadataRepository
from notebridge.service.merge import SECTION_SEPARATOR
from notebridge.vault import Vault, join_path

logger = get_logger(__name__)

RELATED_NOTES_HEADING = "## Related Notes"
NO_RELATED_NOTES_PLACEHOLDER = "*No related notes found for this date*"

MODULE_HEADINGS: dict[str, str] = {
    SubFormat.HANDWRITTEN: "Handwritten Notes",
    SubFormat.EBOOK: "Reading Notes",
    SubFormat.MEMO: "Memos",
}


def note_link(note_path: str) -> str:
    target = note_path[:-3] if note_path.endswith(".md") else note_path
    return f"- [[{target}]]"


def daily_note_id(date: pendulum.Date) -> str:
    return f"daily:{date.format('YYYY-MM-DD')}"


def daily_note_path(daily_folder: str, date: pendulum.Date) -> str:
    return join_path(daily_folder, f"{date.format('YYYY-MM-DD')}.md")


def render_related_notes(records: list[NoteRecord]) -> str:
    """Render the body of a daily note's related notes section, grouped by module."""
    sections: list[str] = []
    for module, heading in MODULE_HEADINGS.items():
        links = [
            note_link(record["note_path"])
            for record in records
            if record["module"] == module
        ]
        if links:
            sections.append(f"### {heading}\n\n" + "\n".join(links))
    if not sections:
        return NO_RELATED_NOTES_PLACEHOLDER
    return "\n\n".join(sections)


def _is_section_end(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("## ") or stripped == SECTION_SEPARATOR


def insert_link(content: str, link_line: str, heading: str) -> Optional[str]:
    """
    Insert `link_line` under `### heading` in the related notes section.

    Returns None when the link is already present.
    """
    lines = content.split("\n")
    if any(line.strip() == link_line for line in lines):
        return None

    sub_heading = f"### {heading}"

    start = next(
        (i for i, line in enumerate(lines) if line.strip() == RELATED_NOTES_HEADING),
        None,
    )
    if start is None:
        while lines and not lines[-1].strip():
            lines.pop()
        lines += ["", RELATED_NOTES_HEADING, "", sub_heading, "", link_line, ""]
        return "\n".join(lines)

    end = start + 1
    while end < len(lines) and not _is_section_end(lines[end]):
        end += 1

    section = [
        line
        for line in lines[start + 1 : end]
        if line.strip() != NO_RELATED_NOTES_PLACEHOLDER
    ]

    heading_index = next(
        (i for i, line in enumerate(section) if line.strip() == sub_heading), None
    )
    if heading_index is None:
        while section and not section[-1].strip():
            section.pop()
        section += ["", sub_heading, "", link_line]
    else:
        insert_at = heading_index + 1
        while insert_at < len(section) and not section[insert_at].strip():
            insert_at += 1
        while insert_at < len(section) and section[insert_at].startswith("- "):
            insert_at += 1
        if insert_at == heading_index + 1:
            section.insert(insert_at, "")
            insert_at += 1
        section.insert(insert_at, link_line)

    while section and not section[0].strip():
        section.pop(0)
    while section and not section[-1].strip():
        section.pop()
    section = [""] + section + [""]

    return "\n".join(lines[: start + 1] + section + lines[end:])


class CrossReferenceLinker:
    """Best-effort backlinks from date-indexed daily notes to synced notes."""

    def __init__(
        self,
        vault: Vault,
        store: MetadataRepository,
        locks: NoteLocks,
        daily_folder: str,
    ) -> None:
        self.vault = vault
        self.store = store
        self.locks = locks
        self.daily_folder = daily_folder

    def find_related_notes(self, date: pendulum.Date) -> list[NoteRecord]:
        return [
            record
            for record in self.store.find_by_date(date)
            if record["module"] in MODULE_HEADINGS
        ]

    def add_link_to_daily_note(self, record: NoteRecord) -> bool:
        """
        Link `record` from the daily note of its creation date.

        Never raises: failures are logged and reported as False.
        """
        heading = MODULE_HEADINGS.get(record["module"])
        if heading is None or record["creation_time"] is None or not self.daily_folder:
            return False

        date = record["creation_time"].in_tz("UTC").date()
        daily_path = daily_note_path(self.daily_folder, date)
        try:
            with self.locks.for_note(daily_note_id(date)):
                if not self.vault.is_file(daily_path):
                    return False
                content = self.vault.read(daily_path)
                updated = insert_link(content, note_link(record["note_path"]), heading)
                if updated is None:
                    return False
                self.vault.write(daily_path, updated)
        except (NoteSyncError, OSError) as e:
            logger.warning("Could not link %s from %s: %s", record["note_path"], daily_path, e)
            return False

        logger.info("Linked %s from %s", record["note_path"], daily_path)
        return True
