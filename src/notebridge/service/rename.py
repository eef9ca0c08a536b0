# SPDX-License-Identifier: MIT

import re
from copy import deepcopy
from typing import Optional

from notebridge.exceptions import NoteSyncError
from notebridge.log import get_logger
from notebridge.model.note_record import NoteRecord, NoteRecordMatch
from notebridge.model.rename import ImagePathUpdate, RenameResult, RenameState
from notebridge.repository.metadata import MetadataRepository
from notebridge.service.filename import slugify
from notebridge.vault import (
    Vault,
    file_name,
    file_stem,
    from_note_relative,
    join_path,
    parent_folder,
    to_note_relative,
)

logger = get_logger(__name__)

PAGED_ATTACHMENT_PATTERN = re.compile(
    r"^(?P<slug>[^/]+)-page-(?P<page>\d+)-(?P<timestamp>\d+)(?P<extension>\.\w+)$"
)
SINGLE_ATTACHMENT_PATTERN = re.compile(
    r"^(?P<slug>[^/]+)-image-(?P<timestamp>\d+)(?P<extension>\.\w+)$"
)


def renamed_attachment_name(name: str, old_slug: str, new_slug: str) -> Optional[str]:
    """
    Return the attachment file name under `new_slug`, or None when the name
    follows neither attachment pattern or belongs to a different slug.
    """
    paged = PAGED_ATTACHMENT_PATTERN.match(name)
    if paged is not None:
        if paged.group("slug") != old_slug:
            return None
        return (
            f"{new_slug}-page-{paged.group('page')}-"
            f"{paged.group('timestamp')}{paged.group('extension')}"
        )

    single = SINGLE_ATTACHMENT_PATTERN.match(name)
    if single is not None:
        if single.group("slug") != old_slug:
            return None
        return f"{new_slug}-image-{single.group('timestamp')}{single.group('extension')}"

    return None


def superseded_variant_pattern(name: str, slug: str) -> Optional[re.Pattern[str]]:
    """
    Pattern matching older variants of an attachment for `slug`: same page
    (or single image) with any timestamp.
    """
    paged = PAGED_ATTACHMENT_PATTERN.match(name)
    if paged is not None:
        return re.compile(
            rf"^{re.escape(slug)}-page-{paged.group('page')}-\d+\.\w+$"
        )
    if SINGLE_ATTACHMENT_PATTERN.match(name) is not None:
        return re.compile(rf"^{re.escape(slug)}-image-\d+\.\w+$")
    return None


def rewrite_embeds(content: str, updates: list[ImagePathUpdate]) -> str:
    for update in updates:
        content = content.replace(f"![[{update['old']}]]", f"![[{update['new']}]]")
        content = content.replace(f"![[{update['old']}|", f"![[{update['new']}|")
    return content


def record_slug(record: NoteRecord) -> str:
    return slugify(record.get("note_name") or file_stem(record["note_path"]))


class RenameDetector:
    """
    Reconcile a note's previously recorded output path with the path the
    current sync wants to write, relocating the document, its attachments
    and its record when they differ.
    """

    def __init__(self, vault: Vault, store: MetadataRepository) -> None:
        self.vault = vault
        self.store = store

    def detect(
        self, note_id: str, expected_path: str
    ) -> tuple[RenameState, Optional[NoteRecordMatch]]:
        match = self.store.find_by_note_id(note_id)
        if match is None:
            return "no_prior_record", None
        if match["record"]["note_path"] == expected_path:
            return "path_matches", match
        return "path_mismatch", match

    def reconcile(
        self,
        note_id: str,
        expected_path: str,
        note_name: str,
        external_file_id: Optional[str],
    ) -> RenameResult:
        state, match = self.detect(note_id, expected_path)
        logger.debug("Identity of note %s: %s", note_id, state)

        if match is None or state == "path_matches":
            return {
                "success": True,
                "state": state,
                "old_path": match["path"] if match is not None else None,
                "new_path": expected_path,
                "updated_image_paths": [],
                "errors": [],
                "warnings": [],
            }

        return self.rename(match, expected_path, note_name, external_file_id)

    def rename(
        self,
        match: NoteRecordMatch,
        new_path: str,
        new_note_name: str,
        external_file_id: Optional[str],
    ) -> RenameResult:
        record = match["record"]
        old_path = match["path"]
        result: RenameResult = {
            "success": False,
            "state": "rename_in_progress",
            "old_path": old_path,
            "new_path": new_path,
            "updated_image_paths": [],
            "errors": [],
            "warnings": [],
        }
        logger.info("Renaming note %s: %s -> %s", record["note_id"], old_path, new_path)

        if not self.vault.is_file(old_path):
            result["state"] = "rename_failed"
            result["errors"].append(f"Old document not found: {old_path}")
            logger.error("Cannot rename %s: old document not found", old_path)
            return result
        if self.vault.exists(new_path):
            result["state"] = "rename_failed"
            result["errors"].append(f"Target document already exists: {new_path}")
            logger.error("Cannot rename %s: %s already exists", old_path, new_path)
            return result

        old_slug = record_slug(record)
        new_slug = slugify(new_note_name)

        updates: list[ImagePathUpdate] = []
        if old_slug != new_slug:
            updates = self.__rename_attachments(record, old_slug, new_slug, result)
        else:
            logger.debug("Slug '%s' unchanged, keeping attachment names", old_slug)
        result["updated_image_paths"] = updates

        try:
            content = self.vault.read(old_path)
            rewritten = rewrite_embeds(content, updates)
            self.vault.rename(old_path, new_path)
        except (NoteSyncError, OSError) as e:
            result["state"] = "rename_failed"
            result["errors"].append(f"Failed to rename {old_path} to {new_path}: {e}")
            logger.error("Failed to rename %s to %s: %s", old_path, new_path, e)
            if updates:
                # Attachments already moved, keep the record pointing at them
                self.store.set(old_path, self.__remapped_record(record, old_path, updates))
            return result

        if updates and rewritten != content:
            self.vault.write(new_path, rewritten)

        new_record = self.__remapped_record(record, new_path, updates)
        new_record["note_name"] = new_note_name
        if external_file_id is not None:
            new_record["external_file_id"] = external_file_id
        self.store.rename(old_path, new_path, new_record)

        self.__cleanup_superseded(updates, old_slug, result)

        result["success"] = True
        result["state"] = "rename_complete"
        logger.info(
            "Renamed %s -> %s (%d attachments)", old_path, new_path, len(updates)
        )
        return result

    def __rename_attachments(
        self,
        record: NoteRecord,
        old_slug: str,
        new_slug: str,
        result: RenameResult,
    ) -> list[ImagePathUpdate]:
        updates: list[ImagePathUpdate] = []
        for page in record["pages"]:
            old_attachment = from_note_relative(record["note_path"], page["image"])
            new_name = renamed_attachment_name(file_name(old_attachment), old_slug, new_slug)
            if new_name is None:
                continue
            new_attachment = join_path(parent_folder(old_attachment), new_name)
            try:
                self.vault.rename(old_attachment, new_attachment)
            except (NoteSyncError, OSError) as e:
                result["warnings"].append(
                    f"Failed to rename attachment {old_attachment}: {e}"
                )
                logger.warning("Failed to rename attachment %s: %s", old_attachment, e)
                continue
            updates.append({"old": old_attachment, "new": new_attachment})
        return updates

    def __remapped_record(
        self, record: NoteRecord, note_path: str, updates: list[ImagePathUpdate]
    ) -> NoteRecord:
        moved = {update["old"]: update["new"] for update in updates}
        new_record = deepcopy(record)
        new_record["note_path"] = note_path
        for page in new_record["pages"]:
            attachment = from_note_relative(record["note_path"], page["image"])
            page["image"] = to_note_relative(note_path, moved.get(attachment, attachment))
        return new_record

    def __cleanup_superseded(
        self, updates: list[ImagePathUpdate], old_slug: str, result: RenameResult
    ) -> None:
        for update in updates:
            folder = parent_folder(update["old"])
            pattern = superseded_variant_pattern(file_name(update["old"]), old_slug)
            if pattern is None:
                continue
            try:
                for child in self.vault.list_children(folder):
                    if pattern.match(file_name(child)):
                        self.vault.delete(child)
                        logger.debug("Deleted superseded attachment %s", child)
            except (NoteSyncError, OSError) as e:
                result["warnings"].append(f"Cleanup in {folder} failed: {e}")
                logger.warning("Cleanup in %s failed: %s", folder, e)
