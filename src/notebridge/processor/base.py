# SPDX-License-Identifier: MIT

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import pendulum

from notebridge import time
from notebridge.archive import NoteArchive
from notebridge.configuration import Configuration
from notebridge.exceptions import NoteSyncError
from notebridge.locks import NoteLocks
from notebridge.log import get_logger
from notebridge.model.note_record import NoteRecord
from notebridge.model.processor import ProcessorResult, SourceMetadata
from notebridge.model.sub_format import SubFormatTag
from notebridge.repository.metadata import MetadataRepository
from notebridge.service.cross_reference import CrossReferenceLinker
from notebridge.service.merge import normalize_document, preserve
from notebridge.service.rename import RenameDetector
from notebridge.service.render import TemplateResolver, TemplateVariables, render
from notebridge.vault import Vault, from_note_relative, join_path

logger = get_logger(__name__)


class ProcessorContext:
    """
    Collaborators shared by the module processors of one sync session.

    Owned by the session and discarded with it.
    """

    def __init__(
        self,
        vault: Vault,
        store: MetadataRepository,
        config: Configuration,
        templates: TemplateResolver,
        locks: NoteLocks,
    ) -> None:
        self.vault = vault
        self.store = store
        self.config = config
        self.templates = templates
        self.locks = locks
        self.renames = RenameDetector(vault, store)
        self.cross_references = CrossReferenceLinker(
            vault, store, locks, config["daily"]["daily_folder"]
        )


def get_result_template(
    source: SourceMetadata, module: Optional[SubFormatTag]
) -> ProcessorResult:
    return {
        "success": False,
        "module": module,
        "source_name": source["name"],
        "created_paths": [],
        "errors": [],
        "warnings": [],
    }


def yaml_scalar(value: Any) -> str:
    """Quote a value for direct substitution into a YAML header line."""
    return json.dumps(value, ensure_ascii=False)


def embed(path: str) -> str:
    return f"![[{path}]]" if path else ""


def timestamp_variables(
    created: Optional[pendulum.DateTime], modified: Optional[pendulum.DateTime]
) -> TemplateVariables:
    return {
        "created": time.datetime_to_display_str(created) if created else "",
        "modified": time.datetime_to_display_str(modified) if modified else "",
        "date_tag": time.datetime_to_date_str(created) if created else "",
    }


def datetime_from_millis_optional(millis: Optional[int]) -> Optional[pendulum.DateTime]:
    if millis is None:
        return None
    return time.datetime_from_epoch_millis(millis)


def link_target(path: str) -> str:
    return path[:-3] if path.endswith(".md") else path


def rewrite_links(content: str, moves: list[tuple[str, str]]) -> str:
    """Point `[[target]]` and `![[target]]` links at moved documents and files."""
    for old_path, new_path in moves:
        for old, new in ((link_target(old_path), link_target(new_path)), (old_path, new_path)):
            content = content.replace(f"[[{old}]]", f"[[{new}]]")
            content = content.replace(f"[[{old}|", f"[[{new}|")
    return content


def rewrite_headings(content: str, old_name: str, new_name: str) -> str:
    """Rename top-level headings that open with a note's previous display name."""
    old_heading = f"# {old_name}"
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if line == old_heading or line.startswith(old_heading + ","):
            lines[i] = f"# {new_name}" + line[len(old_heading) :]
    return "\n".join(lines)


def read_json_entry(archive: NoteArchive, name: str, expected: type) -> Any:
    value = archive.read_json(name)
    if not isinstance(value, expected):
        raise NoteSyncError(
            f"Entry '{name}' in '{archive.source_name}' has unexpected shape"
        )
    return value


class ModuleProcessor(ABC):
    module: SubFormatTag

    def __init__(self, context: ProcessorContext) -> None:
        self.context = context

    @abstractmethod
    def process(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult: ...

    def render_document(
        self,
        custom_template: Optional[str],
        default_template: str,
        variables: TemplateVariables,
        moment: Optional[pendulum.DateTime],
    ) -> str:
        template = self.context.templates.resolve(custom_template, default_template)
        return render(template, variables, moment)

    def write_or_merge(
        self,
        path: str,
        fresh_document: str,
        attachments_folder: str,
        result: ProcessorResult,
    ) -> None:
        """Create the document at `path`, or merge into the one already there."""
        vault = self.context.vault
        if vault.is_file(path):
            existing = vault.read(path)
            merged = preserve(existing, fresh_document, attachments_folder)
            if merged["merged_document"] != existing:
                vault.write(path, merged["merged_document"])
                logger.info("Merged %s", path)
            else:
                logger.debug("Unchanged %s", path)
        else:
            vault.write(path, normalize_document(fresh_document))
            logger.info("Created %s", path)
        result["created_paths"].append(path)

    def write_attachment(
        self,
        folder: str,
        name: str,
        data: bytes,
        result: ProcessorResult,
        superseded: Optional[str] = None,
    ) -> str:
        """
        Write attachment bytes. `superseded` names the file this attachment
        replaces, as recorded by the note's previous sync; it is deleted.
        """
        vault = self.context.vault
        path = join_path(folder, name)
        if not vault.is_file(path) or vault.read_binary(path) != data:
            vault.write_binary(path, data)
        result["created_paths"].append(path)

        if superseded and superseded != path:
            try:
                if vault.is_file(superseded):
                    vault.delete(superseded)
                    logger.debug("Deleted superseded attachment %s", superseded)
            except (NoteSyncError, OSError) as e:
                logger.warning("Failed to delete superseded %s: %s", superseded, e)
        return path

    def previous_attachments(self, note_id: str) -> dict[int, str]:
        """Vault paths of the page images recorded by the note's last sync."""
        match = self.context.store.find_by_note_id(note_id)
        if match is None:
            return {}
        note_path = match["record"]["note_path"]
        return {
            page["page"]: from_note_relative(note_path, page["image"])
            for page in match["record"]["pages"]
        }

    def reconcile_identity(
        self,
        note_id: str,
        expected_path: str,
        note_name: str,
        source: SourceMetadata,
        result: ProcessorResult,
    ) -> bool:
        """
        Move a previously synced note to `expected_path` if its name changed.

        Returns False when the note must not be processed any further.
        """
        rename = self.context.renames.reconcile(
            note_id, expected_path, note_name, source["external_file_id"]
        )
        result["warnings"] += rename["warnings"]
        if not rename["success"]:
            result["errors"] += rename["errors"]
            return False
        return True

    def check_monotonic(self, note_id: str, last_modified: Optional[int]) -> None:
        match = self.context.store.find_by_note_id(note_id)
        if match is None or last_modified is None:
            return
        previous = match["record"]["last_modified"]
        if previous is not None and time.datetime_to_epoch_millis(previous) > last_modified:
            logger.warning(
                "Note %s synced with an older timestamp than recorded (%s < %s)",
                note_id,
                time.datetime_to_iso_str(time.datetime_from_epoch_millis(last_modified)),
                time.datetime_to_iso_str(previous),
            )

    def save_record(self, record: NoteRecord) -> None:
        self.context.store.set(record["note_path"], record)

    def link_from_daily_note(self, record: NoteRecord) -> None:
        self.context.cross_references.add_link_to_daily_note(record)

    def relocate_documents(
        self,
        moves: list[tuple[str, str]],
        primary_path: str,
        result: ProcessorResult,
        old_name: Optional[str] = None,
        new_name: Optional[str] = None,
    ) -> None:
        """
        Move documents written under a previous slug, best effort, and point
        the links in the primary document at their new paths. When the
        display name changed, headings carrying the old name are renamed in
        every document of the note.
        """
        vault = self.context.vault
        moved: list[tuple[str, str]] = []
        for old_path, new_path in moves:
            try:
                if vault.is_file(old_path) and not vault.exists(new_path):
                    vault.rename(old_path, new_path)
                    moved.append((old_path, new_path))
                    logger.debug("Relocated %s -> %s", old_path, new_path)
            except (NoteSyncError, OSError) as e:
                result["warnings"].append(f"Failed to relocate {old_path}: {e}")
                logger.warning("Failed to relocate %s: %s", old_path, e)

        renamed = bool(old_name and new_name and old_name != new_name)
        documents = [primary_path]
        if renamed:
            documents += [new for _, new in moves if new.endswith(".md") and new != primary_path]

        for path in documents:
            try:
                if not vault.is_file(path):
                    continue
                content = vault.read(path)
                rewritten = content
                if path == primary_path:
                    rewritten = rewrite_links(rewritten, moved)
                if renamed:
                    rewritten = rewrite_headings(rewritten, old_name, new_name)
                if rewritten != content:
                    vault.write(path, rewritten)
            except (NoteSyncError, OSError) as e:
                result["warnings"].append(f"Failed to update {path}: {e}")
                logger.warning("Failed to update %s: %s", path, e)
