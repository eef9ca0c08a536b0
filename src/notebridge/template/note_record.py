# SPDX-License-Identifier: MIT

from notebridge.model.note_record import NoteRecord
from notebridge.model.sub_format import SubFormatTag


def get_note_record_template(
    note_id: str, note_path: str, note_name: str, module: SubFormatTag
) -> NoteRecord:
    return {
        "note_id": note_id,
        "external_file_id": None,
        "note_path": note_path,
        "note_name": note_name,
        "module": module,
        "creation_time": None,
        "last_modified": None,
        "pages": [],
    }
