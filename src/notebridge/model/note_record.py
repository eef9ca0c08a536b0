# SPDX-License-Identifier: MIT

from typing import Optional, TypedDict

import pendulum


class PageAttachment(TypedDict):
    page: int
    # Relative to the folder holding the note document
    image: str


class NoteRecord(TypedDict):
    note_id: str
    external_file_id: Optional[str]
    note_path: str
    note_name: str
    module: str
    creation_time: Optional[pendulum.DateTime]
    last_modified: Optional[pendulum.DateTime]
    pages: list[PageAttachment]


class NoteRecordMatch(TypedDict):
    path: str
    record: NoteRecord
