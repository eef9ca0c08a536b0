# SPDX-License-Identifier: MIT

import json
from typing import Any, Optional

from notebridge import time
from notebridge.archive import NoteArchive
from notebridge.configuration import HandwrittenConfig
from notebridge.exceptions import NoteSyncError
from notebridge.log import get_logger
from notebridge.model.archive import HandwrittenNotesBean
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
from notebridge.service.classifier import HANDWRITTEN_METADATA
from notebridge.service.cross_reference import note_link
from notebridge.service.filename import sanitize_document_name, slugify
from notebridge.service.rename import record_slug
from notebridge.template.document import (
    get_handwritten_annotation_template,
    get_handwritten_highlight_template,
    get_handwritten_index_template,
    get_handwritten_page_template,
)
from notebridge.template.note_record import get_note_record_template
from notebridge.vault import file_stem, join_path, to_note_relative

logger = get_logger(__name__)

LAYOUT_TEXT_ENTRY = "LayoutText.json"
# Vendor spelling
THUMBNAIL_ENTRY = "thumbnai.png"
RESOURCES_FOLDER = "resources"


def page_image_entry(page_number: int) -> str:
    return f"{page_number}.png"


def stroke_entry(page_number: int) -> str:
    return f"PATH_{page_number}.json"


def count_strokes(stroke_data: Any) -> tuple[int, int]:
    """Return (stroke count, point count) for a page's stroke data."""
    if not isinstance(stroke_data, list):
        return 0, 0
    point_count = sum(len(stroke) for stroke in stroke_data if isinstance(stroke, list))
    return len(stroke_data), point_count


def page_document_name(slug: str, page_number: int) -> str:
    return f"{slug}-page-{page_number}.md"


def highlight_document_name(slug: str, page_number: int) -> str:
    return f"{slug}-page-{page_number}-highlight.md"


def annotation_document_name(slug: str, page_number: int) -> str:
    return f"{slug}-page-{page_number}-annotation.md"


def thumbnail_name(slug: str) -> str:
    return f"{slug}-thumbnail.png"


class HandwrittenProcessor(ModuleProcessor):
    """
    Convert a handwritten notebook into one document per page, optional
    highlight and annotation documents, and an index document that is
    tracked as the note's primary output.
    """

    module = SubFormat.HANDWRITTEN

    def process(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult:
        result = get_result_template(source, self.module)
        config = self.context.config["handwritten"]

        # Everything required is read before anything is written
        notes_bean: HandwrittenNotesBean = read_json_entry(
            archive, HANDWRITTEN_METADATA, dict
        )
        layout_text = self.__read_layout_text(archive, result)

        note_name = notes_bean.get("noteName") or file_stem(source["name"])
        slug = slugify(note_name)
        total_pages = notes_bean.get("pageCount") or 0
        created_ms = (
            time.source_timestamp_to_millis(notes_bean.get("createTime"))
            or source["last_modified"]
        )
        modified_ms = (
            time.source_timestamp_to_millis(notes_bean.get("lastModifiedTime"))
            or source["last_modified"]
            or created_ms
        )
        note_id = str(
            notes_bean.get("noteId")
            or source["external_file_id"]
            or f"{self.module}:{slug}"
        )
        created = datetime_from_millis_optional(created_ms)
        modified = datetime_from_millis_optional(modified_ms)

        index_path = join_path(
            config["pages_folder"], f"{sanitize_document_name(note_name)}.md"
        )
        resources_folder = join_path(config["pages_folder"], RESOURCES_FOLDER)

        variables = {
            "note_id_yaml": yaml_scalar(note_id),
            "external_file_id_yaml": yaml_scalar(source["external_file_id"]),
            "note_name": note_name,
            "note_slug": slug,
            "total_pages": total_pages,
            **timestamp_variables(created, modified),
        }

        with self.context.locks.for_note(note_id):
            self.check_monotonic(note_id, modified_ms)

            if config["create_index"]:
                previous = self.context.store.find_by_note_id(note_id)
                if not self.reconcile_identity(
                    note_id, index_path, note_name, source, result
                ):
                    return result
                if previous is not None:
                    old_slug = record_slug(previous["record"])
                    old_name = previous["record"]["note_name"]
                    if old_slug != slug or old_name != note_name:
                        self.__relocate_derived_documents(
                            config,
                            old_slug,
                            slug,
                            total_pages,
                            index_path,
                            old_name,
                            note_name,
                            result,
                        )
            superseded_images = self.previous_attachments(note_id)

            if config["sources_folder"]:
                self.write_attachment(
                    config["sources_folder"], f"{slug}.note", archive.data, result
                )

            thumbnail_path = ""
            if config["include_thumbnail"] and archive.exists(THUMBNAIL_ENTRY):
                try:
                    thumbnail_path = self.write_attachment(
                        resources_folder,
                        thumbnail_name(slug),
                        archive.read(THUMBNAIL_ENTRY),
                        result,
                    )
                except (NoteSyncError, OSError) as e:
                    result["warnings"].append(f"Thumbnail not extracted: {e}")
                    logger.warning("Thumbnail of %s not extracted: %s", note_name, e)

            pages: list[PageAttachment] = []
            for page_number in range(1, total_pages + 1):
                try:
                    image_path = self.__process_page(
                        archive,
                        config,
                        page_number,
                        modified_ms or 0,
                        layout_text,
                        variables,
                        superseded_images.get(page_number),
                        result,
                    )
                except (NoteSyncError, OSError) as e:
                    result["errors"].append(f"Error processing page {page_number}: {e}")
                    logger.error("Page %d of %s failed: %s", page_number, note_name, e)
                    continue
                if image_path:
                    pages.append(
                        {
                            "page": page_number,
                            "image": to_note_relative(index_path, image_path),
                        }
                    )

            if not config["create_index"]:
                result["success"] = not result["errors"]
                return result

            file_links = [
                note_link(path) for path in result["created_paths"] if path.endswith(".md")
            ]
            fresh = self.render_document(
                config["index_template"],
                get_handwritten_index_template(),
                {
                    **variables,
                    "thumbnail": embed(thumbnail_path),
                    "file_links": "\n".join(file_links),
                },
                created,
            )
            self.write_or_merge(index_path, fresh, resources_folder, result)

            record = get_note_record_template(note_id, index_path, note_name, self.module)
            record["external_file_id"] = source["external_file_id"]
            record["creation_time"] = created
            record["last_modified"] = modified
            record["pages"] = pages
            self.save_record(record)

        self.link_from_daily_note(record)
        result["success"] = not result["errors"]
        return result

    def __read_layout_text(
        self, archive: NoteArchive, result: ProcessorResult
    ) -> Optional[Any]:
        if not archive.exists(LAYOUT_TEXT_ENTRY):
            return None
        try:
            layout_text = archive.read_json(LAYOUT_TEXT_ENTRY)
        except NoteSyncError as e:
            result["warnings"].append(str(e))
            logger.warning("Ignoring layout text: %s", e)
            return None
        return layout_text or None

    def __process_page(
        self,
        archive: NoteArchive,
        config: HandwrittenConfig,
        page_number: int,
        modified_ms: int,
        layout_text: Optional[Any],
        variables: dict[str, Any],
        superseded_image: Optional[str],
        result: ProcessorResult,
    ) -> str:
        """Write every document derived from one page, returning its image path."""
        slug = variables["note_slug"]
        resources_folder = join_path(config["pages_folder"], RESOURCES_FOLDER)
        page_variables = {**variables, "page_number": page_number}
        moment = datetime_from_millis_optional(modified_ms or None)

        image_path = ""
        if config["extract_images"] and archive.exists(page_image_entry(page_number)):
            image_path = self.write_attachment(
                resources_folder,
                f"{slug}-page-{page_number}-{modified_ms}.png",
                archive.read(page_image_entry(page_number)),
                result,
                superseded_image,
            )
        page_variables["page_image"] = embed(image_path)

        if archive.exists(stroke_entry(page_number)) and config["highlights_folder"]:
            stroke_count, point_count = count_strokes(
                archive.read_json(stroke_entry(page_number))
            )
            fresh = self.render_document(
                config["highlight_template"],
                get_handwritten_highlight_template(),
                {
                    **page_variables,
                    "stroke_count": stroke_count,
                    "point_count": point_count,
                },
                moment,
            )
            self.write_or_merge(
                join_path(
                    config["highlights_folder"],
                    highlight_document_name(slug, page_number),
                ),
                fresh,
                resources_folder,
                result,
            )

        if layout_text is not None and config["annotations_folder"]:
            fresh = self.render_document(
                config["annotation_template"],
                get_handwritten_annotation_template(),
                {
                    **page_variables,
                    "text_content": json.dumps(layout_text, indent=2, ensure_ascii=False),
                },
                moment,
            )
            self.write_or_merge(
                join_path(
                    config["annotations_folder"],
                    annotation_document_name(slug, page_number),
                ),
                fresh,
                resources_folder,
                result,
            )

        fresh = self.render_document(
            config["page_template"],
            get_handwritten_page_template(),
            page_variables,
            moment,
        )
        self.write_or_merge(
            join_path(config["pages_folder"], page_document_name(slug, page_number)),
            fresh,
            resources_folder,
            result,
        )
        return image_path

    def __relocate_derived_documents(
        self,
        config: HandwrittenConfig,
        old_slug: str,
        new_slug: str,
        total_pages: int,
        index_path: str,
        old_name: str,
        new_name: str,
        result: ProcessorResult,
    ) -> None:
        """Move per-page documents written under the previous slug, best effort."""
        moves: list[tuple[str, str]] = [
            (
                join_path(config["pages_folder"], RESOURCES_FOLDER, thumbnail_name(old_slug)),
                join_path(config["pages_folder"], RESOURCES_FOLDER, thumbnail_name(new_slug)),
            )
        ]
        for page_number in range(1, total_pages + 1):
            for folder, name in (
                (config["pages_folder"], page_document_name),
                (config["highlights_folder"], highlight_document_name),
                (config["annotations_folder"], annotation_document_name),
            ):
                if folder:
                    moves.append(
                        (
                            join_path(folder, name(old_slug, page_number)),
                            join_path(folder, name(new_slug, page_number)),
                        )
                    )

        self.relocate_documents(moves, index_path, result, old_name, new_name)
