# SPDX-License-Identifier: MIT

import re
from typing import Optional

from notebridge import time
from notebridge.archive import NoteArchive
from notebridge.exceptions import MissingEntryError, NoteSyncError
from notebridge.log import get_logger
from notebridge.model.archive import HeaderInfo, ModuleNotesBean, NoteListEntry
from notebridge.model.note_record import PageAttachment
from notebridge.model.processor import ProcessorResult, SourceMetadata
from notebridge.model.sub_format import SubFormat
from notebridge.processor.base import (
    ModuleProcessor,
    datetime_from_millis_optional,
    embed,
    get_result_template,
    read_json_entry,
    timestamp_variables,
    yaml_scalar,
)
from notebridge.service.classifier import MEMO_HEADER_SUFFIX
from notebridge.service.filename import sanitize_document_name, slugify
from notebridge.service.merge import LineMatcher, normalize_document, rewrite_matching_lines
from notebridge.template.document import get_memo_template
from notebridge.template.note_record import get_note_record_template
from notebridge.vault import file_stem, join_path, to_note_relative

logger = get_logger(__name__)

NOTES_SUFFIX = "_NotesBean.json"
NOTE_LIST_SUFFIX = "_NoteList.json"
RESOURCES_FOLDER = "resources"

MEMO_IMAGE_EMBED_PATTERN = re.compile(r"!\[\[[^\]]*-image-\d+\.\w+\]\]")


def is_modified_line(line: str) -> bool:
    return line.startswith("modified:")


def is_memo_image_line(line: str) -> bool:
    return MEMO_IMAGE_EMBED_PATTERN.search(line) is not None


# Lines a re-sync may change in a memo document, everything else is left alone
MEMO_LINE_MATCHERS: list[LineMatcher] = [is_modified_line, is_memo_image_line]


def first_page(note_list: list[NoteListEntry]) -> Optional[NoteListEntry]:
    pages = [entry for entry in note_list if entry.get("id")]
    if not pages:
        return None
    return min(pages, key=lambda entry: entry.get("pageOrder") or 0)


class MemoProcessor(ModuleProcessor):
    """
    Convert a short memo into a single document with one image.

    An existing memo document is updated by rewriting only its modified
    timestamp and image lines, falling back to a full merge when those
    lines cannot be found.
    """

    module = SubFormat.MEMO

    def process(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult:
        result = get_result_template(source, self.module)
        config = self.context.config["memo"]

        header_entry = archive.find_suffix(MEMO_HEADER_SUFFIX)
        if header_entry is None:
            raise MissingEntryError(f"*{MEMO_HEADER_SUFFIX}", archive.source_name)
        notes_entry = archive.find_suffix(NOTES_SUFFIX)
        if notes_entry is None:
            raise MissingEntryError(f"*{NOTES_SUFFIX}", archive.source_name)

        header: HeaderInfo = read_json_entry(archive, header_entry, dict)
        notes_bean: ModuleNotesBean = read_json_entry(archive, notes_entry, dict)
        note_list_entry = archive.find_suffix(NOTE_LIST_SUFFIX)
        note_list: list[NoteListEntry] = (
            [
                entry
                for entry in read_json_entry(archive, note_list_entry, list)
                if isinstance(entry, dict)
            ]
            if note_list_entry
            else []
        )

        note_name = (
            notes_bean.get("noteName")
            or notes_bean.get("fileName")
            or file_stem(source["name"])
        )
        slug = slugify(note_name)
        logger.debug(
            "Memo %s from %s %s",
            note_name,
            header.get("packageName"),
            header.get("appVersion") or "",
        )
        note_id = str(
            notes_bean.get("noteId")
            or notes_bean.get("id")
            or source["external_file_id"]
            or f"{self.module}:{slug}"
        )
        created_ms = (
            time.source_timestamp_to_millis(notes_bean.get("createTime"))
            or time.source_timestamp_to_millis(notes_bean.get("creationTime"))
            or source["last_modified"]
        )
        modified_ms = (
            time.source_timestamp_to_millis(notes_bean.get("lastModifiedTime"))
            or source["last_modified"]
            or created_ms
        )
        created = datetime_from_millis_optional(created_ms)
        modified = datetime_from_millis_optional(modified_ms)

        memo_path = join_path(config["memos_folder"], f"{sanitize_document_name(note_name)}.md")
        resources_folder = join_path(config["memos_folder"], RESOURCES_FOLDER)

        with self.context.locks.for_note(note_id):
            self.check_monotonic(note_id, modified_ms)
            previous = self.context.store.find_by_note_id(note_id)
            if not self.reconcile_identity(note_id, memo_path, note_name, source, result):
                return result
            if previous is not None and previous["record"]["note_name"] != note_name:
                self.relocate_documents(
                    [], memo_path, result, previous["record"]["note_name"], note_name
                )

            image_path = ""
            page = first_page(note_list) if config["extract_images"] else None
            if page is not None:
                image_path = self.__write_image(
                    archive,
                    page,
                    resources_folder,
                    slug,
                    modified_ms or 0,
                    self.previous_attachments(note_id).get(1),
                    result,
                )

            fresh = self.render_document(
                config["memo_template"],
                get_memo_template(),
                {
                    "note_id_yaml": yaml_scalar(note_id),
                    "external_file_id_yaml": yaml_scalar(source["external_file_id"]),
                    "note_name": note_name,
                    "note_slug": slug,
                    "memo_image": embed(image_path),
                    **timestamp_variables(created, modified),
                },
                created,
            )
            self.__write_memo(memo_path, fresh, resources_folder, result)

            record = get_note_record_template(note_id, memo_path, note_name, self.module)
            record["external_file_id"] = source["external_file_id"]
            record["creation_time"] = created
            record["last_modified"] = modified
            pages: list[PageAttachment] = []
            if image_path:
                pages.append({"page": 1, "image": to_note_relative(memo_path, image_path)})
            record["pages"] = pages
            self.save_record(record)

        self.link_from_daily_note(record)
        result["success"] = not result["errors"]
        return result

    def __write_image(
        self,
        archive: NoteArchive,
        page: NoteListEntry,
        resources_folder: str,
        slug: str,
        modified_ms: int,
        superseded: Optional[str],
        result: ProcessorResult,
    ) -> str:
        image_entry = f"{page['id']}.png"
        if not archive.exists(image_entry):
            image_entry = archive.find_suffix(f"/{image_entry}") or ""
        if not image_entry:
            result["warnings"].append(f"Memo image {page['id']}.png not found")
            logger.warning("Memo image %s.png not found in %s", page["id"], archive.source_name)
            return ""
        try:
            return self.write_attachment(
                resources_folder,
                f"{slug}-image-{modified_ms}.png",
                archive.read(image_entry),
                result,
                superseded,
            )
        except (NoteSyncError, OSError) as e:
            result["warnings"].append(f"Memo image not extracted: {e}")
            logger.warning("Memo image not extracted: %s", e)
            return ""

    def __write_memo(
        self, path: str, fresh: str, resources_folder: str, result: ProcessorResult
    ) -> None:
        vault = self.context.vault
        if not vault.is_file(path):
            self.write_or_merge(path, fresh, resources_folder, result)
            return

        existing = vault.read(path)
        rewritten = rewrite_matching_lines(
            existing, normalize_document(fresh), MEMO_LINE_MATCHERS
        )
        if rewritten is None:
            logger.debug("Memo lines not found in %s, merging instead", path)
            self.write_or_merge(path, fresh, resources_folder, result)
            return

        if rewritten != existing:
            vault.write(path, rewritten)
            logger.info("Updated %s", path)
        result["created_paths"].append(path)
