# SPDX-License-Identifier: MIT

from typing import Any, Optional

from notebridge import time
from notebridge.archive import NoteArchive
from notebridge.configuration import EbookConfig
from notebridge.exceptions import MissingEntryError, NoteSyncError
from notebridge.log import get_logger
from notebridge.model.archive import BookBean, PageTextAnnotation, ReadNoteBean
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
from notebridge.service.cross_reference import note_link
from notebridge.service.filename import sanitize_document_name, slugify
from notebridge.service.rename import record_slug
from notebridge.template.document import (
    get_ebook_annotation_template,
    get_ebook_book_template,
    get_ebook_highlight_template,
)
from notebridge.template.note_record import get_note_record_template
from notebridge.vault import file_name, file_stem, join_path, to_note_relative

logger = get_logger(__name__)

HIGHLIGHTS_SUFFIX = "_PageTextAnnotation.json"
BOOK_SUFFIX = "_BookBean.json"
READ_NOTES_SUFFIX = "_ReadNoteBean.json"
EPUB_SUFFIX = ".epub"
RESOURCES_FOLDER = "resources"


def highlight_document_name(book_slug: str, number: int) -> str:
    return f"{book_slug}-highlight-{number}.md"


def annotation_document_name(book_slug: str, number: int) -> str:
    return f"{book_slug}-annotation-{number}.md"


def quote_lines(text: str) -> str:
    lines = text.splitlines() or [""]
    return "\n".join(f"> {line}".rstrip() for line in lines)


def chapter_location(chapter_name: Optional[str], root_chapter_name: Optional[str]) -> str:
    if root_chapter_name and chapter_name and root_chapter_name != chapter_name:
        return f"{root_chapter_name} / {chapter_name}"
    return chapter_name or root_chapter_name or ""


def resolve_book_name(
    highlights: list[PageTextAnnotation],
    book_bean: BookBean,
    annotations: list[ReadNoteBean],
    source_name: str,
) -> str:
    """Book title from highlights, then book metadata, then annotations."""
    for candidate in (
        highlights[0].get("bookName") if highlights else None,
        book_bean.get("bookName"),
        annotations[0].get("bookName") if annotations else None,
    ):
        if candidate:
            return candidate
    return file_stem(source_name)


def _dicts(items: list[Any]) -> list[Any]:
    return [item for item in items if isinstance(item, dict)]


class EbookProcessor(ModuleProcessor):
    """
    Convert e-book reading notes into highlight documents, annotation
    documents with their overlay image, and a book document tracked as the
    note's primary output.
    """

    module = SubFormat.EBOOK

    def process(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult:
        result = get_result_template(source, self.module)
        config = self.context.config["ebook"]

        highlights_entry = archive.find_suffix(HIGHLIGHTS_SUFFIX)
        book_entry = archive.find_suffix(BOOK_SUFFIX)
        read_notes_entry = archive.find_suffix(READ_NOTES_SUFFIX)
        if highlights_entry is None and book_entry is None and read_notes_entry is None:
            raise MissingEntryError(f"*{HIGHLIGHTS_SUFFIX}", archive.source_name)

        highlights: list[PageTextAnnotation] = (
            _dicts(read_json_entry(archive, highlights_entry, list))
            if highlights_entry
            else []
        )
        book_bean: BookBean = (
            read_json_entry(archive, book_entry, dict) if book_entry else {}
        )
        annotations: list[ReadNoteBean] = (
            _dicts(read_json_entry(archive, read_notes_entry, list))
            if read_notes_entry
            else []
        )

        book_name = resolve_book_name(highlights, book_bean, annotations, source["name"])
        book_slug = slugify(book_name)
        note_id = str(
            book_bean.get("bookId")
            or (annotations[0].get("bookId") if annotations else None)
            or source["external_file_id"]
            or f"{self.module}:{book_slug}"
        )

        timestamps = [
            millis
            for millis in (
                [time.source_timestamp_to_millis(h.get("createTime")) for h in highlights]
                + [time.source_timestamp_to_millis(a.get("upDataTime")) for a in annotations]
            )
            if millis is not None
        ]
        created_ms = min(timestamps) if timestamps else source["last_modified"]
        modified_ms = max(timestamps) if timestamps else source["last_modified"]
        created = datetime_from_millis_optional(created_ms)
        modified = datetime_from_millis_optional(modified_ms)

        book_folder = config["highlights_folder"] or config["annotations_folder"]
        book_path = join_path(book_folder, f"{sanitize_document_name(book_name)}.md")
        resources_folder = join_path(config["annotations_folder"], RESOURCES_FOLDER)

        variables = {
            "note_id_yaml": yaml_scalar(note_id),
            "external_file_id_yaml": yaml_scalar(source["external_file_id"]),
            "book_name": book_name,
            "book_name_yaml": yaml_scalar(book_name),
            "book_slug": book_slug,
            "total_pages": (highlights[0].get("pageCount") if highlights else None) or 0,
            **timestamp_variables(created, modified),
        }

        with self.context.locks.for_note(note_id):
            self.check_monotonic(note_id, modified_ms)

            if config["create_index"]:
                previous = self.context.store.find_by_note_id(note_id)
                if not self.reconcile_identity(
                    note_id, book_path, book_name, source, result
                ):
                    return result
                if previous is not None:
                    old_slug = record_slug(previous["record"])
                    old_name = previous["record"]["note_name"]
                    if old_slug != book_slug or old_name != book_name:
                        self.__relocate_derived_documents(
                            config,
                            old_slug,
                            book_slug,
                            len(highlights),
                            len(annotations),
                            book_path,
                            old_name,
                            book_name,
                            result,
                        )
            superseded_images = self.previous_attachments(note_id)

            epub_path = self.__copy_epub(archive, config, book_slug, result)
            chapter_source = self.__chapter_source(epub_path, book_bean)

            highlight_paths: list[str] = []
            if config["highlights_folder"]:
                for number, highlight in enumerate(highlights, 1):
                    try:
                        highlight_paths.append(
                            self.__write_highlight(
                                config, number, highlight, chapter_source, variables, result
                            )
                        )
                    except (NoteSyncError, OSError) as e:
                        result["errors"].append(f"Error processing highlight {number}: {e}")
                        logger.error("Highlight %d of %s failed: %s", number, book_name, e)

            annotation_paths: list[str] = []
            pages: list[PageAttachment] = []
            if config["process_annotations"] and config["annotations_folder"]:
                for number, annotation in enumerate(annotations, 1):
                    try:
                        document_path, image_path = self.__write_annotation(
                            archive,
                            config,
                            number,
                            annotation,
                            modified_ms or 0,
                            variables,
                            superseded_images.get(number),
                            result,
                        )
                    except (NoteSyncError, OSError) as e:
                        result["errors"].append(f"Error processing annotation {number}: {e}")
                        logger.error("Annotation %d of %s failed: %s", number, book_name, e)
                        continue
                    annotation_paths.append(document_path)
                    if image_path:
                        pages.append(
                            {"page": number, "image": to_note_relative(book_path, image_path)}
                        )

            if not config["create_index"]:
                result["success"] = not result["errors"]
                return result

            fresh = self.render_document(
                config["book_template"],
                get_ebook_book_template(),
                {
                    **variables,
                    "source_link": f"[[{epub_path}]]" if epub_path else "",
                    "highlight_links": "\n".join(note_link(p) for p in highlight_paths),
                    "annotation_links": "\n".join(note_link(p) for p in annotation_paths),
                },
                created,
            )
            self.write_or_merge(book_path, fresh, resources_folder, result)

            record = get_note_record_template(note_id, book_path, book_name, self.module)
            record["external_file_id"] = source["external_file_id"]
            record["creation_time"] = created
            record["last_modified"] = modified
            record["pages"] = pages
            self.save_record(record)

        self.link_from_daily_note(record)
        result["success"] = not result["errors"]
        return result

    def __copy_epub(
        self,
        archive: NoteArchive,
        config: EbookConfig,
        book_slug: str,
        result: ProcessorResult,
    ) -> str:
        """Copy the bundled book to the sources folder, never overwriting a copy."""
        epub_entry = archive.find_suffix(EPUB_SUFFIX)
        if epub_entry is None or not config["sources_folder"]:
            return ""

        epub_path = join_path(config["sources_folder"], f"{book_slug}.epub")
        vault = self.context.vault
        if vault.exists(epub_path):
            logger.debug("Keeping existing %s", epub_path)
            return epub_path
        try:
            vault.write_binary(epub_path, archive.read(epub_entry))
        except (NoteSyncError, OSError) as e:
            result["warnings"].append(f"Book file not copied: {e}")
            logger.warning("Book file %s not copied: %s", epub_path, e)
            return ""
        result["created_paths"].append(epub_path)
        return epub_path

    def __chapter_source(self, epub_path: str, book_bean: BookBean) -> Optional[str]:
        if epub_path:
            return epub_path
        book_path = book_bean.get("bookPath")
        if book_path:
            return f"file://{book_path}"
        return None

    def __write_highlight(
        self,
        config: EbookConfig,
        number: int,
        highlight: PageTextAnnotation,
        chapter_source: Optional[str],
        variables: dict[str, Any],
        result: ProcessorResult,
    ) -> str:
        chapter_name = chapter_location(
            highlight.get("chapterName"), highlight.get("rootChapterName")
        )
        chapter_link = ""
        if chapter_source:
            anchor = highlight.get("chapterLinkUri")
            target = f"{chapter_source}#{anchor}" if anchor else chapter_source
            chapter_link = f"[{variables['book_name']}]({target})"

        created = datetime_from_millis_optional(
            time.source_timestamp_to_millis(highlight.get("createTime"))
        )
        fresh = self.render_document(
            config["highlight_template"],
            get_ebook_highlight_template(),
            {
                **variables,
                **timestamp_variables(created, created),
                "chapter_name": chapter_name,
                "chapter_name_yaml": yaml_scalar(chapter_name),
                "page_index": highlight.get("pageIndex") or 0,
                "quoted_text": quote_lines(highlight.get("rawText") or ""),
                "chapter_link": chapter_link,
                "highlight_number": number,
            },
            created,
        )
        path = join_path(
            config["highlights_folder"],
            highlight_document_name(variables["book_slug"], number),
        )
        self.write_or_merge(
            path, fresh, join_path(config["annotations_folder"], RESOURCES_FOLDER), result
        )
        return path

    def __write_annotation(
        self,
        archive: NoteArchive,
        config: EbookConfig,
        number: int,
        annotation: ReadNoteBean,
        fallback_ms: int,
        variables: dict[str, Any],
        superseded_image: Optional[str],
        result: ProcessorResult,
    ) -> tuple[str, str]:
        """Write one annotation document, returning its path and its image path."""
        book_slug = variables["book_slug"]
        resources_folder = join_path(config["annotations_folder"], RESOURCES_FOLDER)
        updated_ms = time.source_timestamp_to_millis(annotation.get("upDataTime")) or fallback_ms
        updated = datetime_from_millis_optional(updated_ms or None)

        image_path = ""
        image_entry = self.__annotation_image_entry(archive, annotation)
        if image_entry is not None:
            try:
                image_path = self.write_attachment(
                    resources_folder,
                    f"{book_slug}-page-{number}-{updated_ms}.png",
                    archive.read(image_entry),
                    result,
                    superseded_image,
                )
            except (NoteSyncError, OSError) as e:
                result["warnings"].append(f"Annotation {number} image not extracted: {e}")
                logger.warning("Annotation %d image not extracted: %s", number, e)

        chapter_name = chapter_location(annotation.get("title"), annotation.get("rootChapterName"))
        summary = annotation.get("sumary") or ""
        fresh = self.render_document(
            config["annotation_template"],
            get_ebook_annotation_template(),
            {
                **variables,
                **timestamp_variables(updated, updated),
                "title": annotation.get("title") or f"{variables['book_name']}, annotation {number}",
                "chapter_name_yaml": yaml_scalar(chapter_name),
                "page_index": annotation.get("pageIndex") or 0,
                "annotation_image": embed(image_path),
                "summary": quote_lines(summary) if summary else "",
                "annotation_id": annotation.get("id") or number,
            },
            updated,
        )
        path = join_path(
            config["annotations_folder"], annotation_document_name(book_slug, number)
        )
        self.write_or_merge(path, fresh, resources_folder, result)
        return path, image_path

    def __annotation_image_entry(
        self, archive: NoteArchive, annotation: ReadNoteBean
    ) -> Optional[str]:
        """Overlay image of an annotation, falling back to the page image."""
        for key in ("noteImagePath", "pageImage"):
            stored_path = annotation.get(key)
            if stored_path:
                entry = archive.find_suffix(file_name(stored_path))
                if entry is not None:
                    return entry
        return None

    def __relocate_derived_documents(
        self,
        config: EbookConfig,
        old_slug: str,
        new_slug: str,
        highlight_count: int,
        annotation_count: int,
        book_path: str,
        old_name: str,
        new_name: str,
        result: ProcessorResult,
    ) -> None:
        moves: list[tuple[str, str]] = []
        if config["highlights_folder"]:
            moves += [
                (
                    join_path(config["highlights_folder"], highlight_document_name(old_slug, n)),
                    join_path(config["highlights_folder"], highlight_document_name(new_slug, n)),
                )
                for n in range(1, highlight_count + 1)
            ]
        if config["annotations_folder"]:
            moves += [
                (
                    join_path(config["annotations_folder"], annotation_document_name(old_slug, n)),
                    join_path(config["annotations_folder"], annotation_document_name(new_slug, n)),
                )
                for n in range(1, annotation_count + 1)
            ]
        self.relocate_documents(moves, book_path, result, old_name, new_name)
