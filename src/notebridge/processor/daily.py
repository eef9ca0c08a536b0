# SPDX-License-Identifier: MIT

import pendulum

from notebridge import time
from notebridge.archive import NoteArchive
from notebridge.exceptions import NoteSyncError
from notebridge.log import get_logger
from notebridge.model.archive import ModuleNotesBean, NoteListEntry
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
from notebridge.service.classifier import parse_daily_date
from notebridge.service.cross_reference import (
    daily_note_id,
    daily_note_path,
    render_related_notes,
)
from notebridge.service.filename import slugify
from notebridge.template.document import get_daily_template
from notebridge.template.note_record import get_note_record_template
from notebridge.vault import from_note_relative, join_path, to_note_relative

logger = get_logger(__name__)

NOTES_SUFFIX = "_NotesBean.json"
NOTE_LIST_SUFFIX = "_NoteList.json"
RESOURCES_FOLDER = "resources"


class DailyProcessor(ModuleProcessor):
    """
    Convert a daily journal into the dated document for that day.

    The date always comes from the archive's name. The document lists the
    notes created on that day, which other processors keep up to date.
    """

    module = SubFormat.DAILY

    def process(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult:
        result = get_result_template(source, self.module)
        config = self.context.config["daily"]

        date = parse_daily_date(source["name"])
        if date is None:
            raise NoteSyncError(f"No journal date in archive name '{source['name']}'")

        notes_entry = archive.find_suffix(NOTES_SUFFIX)
        notes_bean: ModuleNotesBean = (
            read_json_entry(archive, notes_entry, dict) if notes_entry else {}
        )
        note_list_entry = archive.find_suffix(NOTE_LIST_SUFFIX)
        note_list: list[NoteListEntry] = (
            [
                entry
                for entry in read_json_entry(archive, note_list_entry, list)
                if isinstance(entry, dict) and entry.get("id")
            ]
            if note_list_entry
            else []
        )
        note_list.sort(key=lambda entry: entry.get("pageOrder") or 0)

        date_string = date.format("YYYY-MM-DD")
        slug = slugify(date_string)
        note_id = daily_note_id(date)
        note_path = daily_note_path(config["daily_folder"], date)
        resources_folder = join_path(config["daily_folder"], RESOURCES_FOLDER)
        moment = pendulum.datetime(date.year, date.month, date.day, tz="UTC")

        created_ms = (
            time.source_timestamp_to_millis(notes_bean.get("createTime"))
            or source["last_modified"]
        )
        modified_ms = (
            time.source_timestamp_to_millis(notes_bean.get("lastModifiedTime"))
            or source["last_modified"]
            or created_ms
        )
        created = datetime_from_millis_optional(created_ms)
        modified = datetime_from_millis_optional(modified_ms)

        with self.context.locks.for_note(note_id):
            self.check_monotonic(note_id, modified_ms)
            if not self.reconcile_identity(note_id, note_path, date_string, source, result):
                return result

            superseded_images = self.previous_attachments(note_id)
            pages: list[PageAttachment] = []
            for page_number, entry in enumerate(note_list, 1):
                image_entry = f"{entry['id']}.png"
                if not archive.exists(image_entry):
                    result["warnings"].append(f"Page image {image_entry} not found")
                    logger.warning(
                        "Page image %s not found in %s", image_entry, archive.source_name
                    )
                    continue
                try:
                    image_path = self.write_attachment(
                        resources_folder,
                        f"{slug}-page-{page_number}-{modified_ms or 0}.png",
                        archive.read(image_entry),
                        result,
                        superseded_images.get(page_number),
                    )
                except (NoteSyncError, OSError) as e:
                    result["warnings"].append(f"Page {page_number} image not extracted: {e}")
                    logger.warning("Page %d image not extracted: %s", page_number, e)
                    continue
                pages.append(
                    {"page": page_number, "image": to_note_relative(note_path, image_path)}
                )

            related_notes = render_related_notes(
                self.context.cross_references.find_related_notes(date)
            )
            fresh = self.render_document(
                config["daily_template"],
                get_daily_template(),
                {
                    "note_id_yaml": yaml_scalar(note_id),
                    "date_string": date_string,
                    "total_pages": len(pages),
                    "last_tab_yaml": yaml_scalar(notes_bean.get("lastTab")),
                    "page_images": "\n\n".join(
                        embed(from_note_relative(note_path, page["image"]))
                        for page in pages
                    ),
                    "related_notes": related_notes,
                    **timestamp_variables(created, modified),
                },
                moment,
            )
            self.write_or_merge(note_path, fresh, resources_folder, result)

            record = get_note_record_template(note_id, note_path, date_string, self.module)
            record["external_file_id"] = source["external_file_id"]
            record["creation_time"] = created
            record["last_modified"] = modified
            record["pages"] = pages
            self.save_record(record)

        result["success"] = not result["errors"]
        return result
