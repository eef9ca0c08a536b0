# SPDX-License-Identifier: MIT

import os
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional, cast

import pendulum
from yaml import dump, load

try:
    from yaml import CDumper as Dumper
    from yaml import CLoader as Loader  # noqa: F401
except ImportError:
    from yaml import Dumper, Loader  # type: ignore[assignment]

from notebridge import time
from notebridge.log import get_logger
from notebridge.model.note_record import NoteRecord, NoteRecordMatch

logger = get_logger(__name__)


class MetadataRepository:
    """
    Persistent mapping of generated-document path to NoteRecord.

    A secondary index keeps note_id lookups constant time. Records are
    loaded lazily on first access and written back by `flush`, which
    replaces the data file in one step so an interrupted flush leaves the
    previous file intact.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._records: Optional[dict[str, NoteRecord]] = None
        self._note_id_index: dict[str, str] = {}
        self._lock = threading.RLock()
        self.is_dirty = False

    @property
    def records(self) -> dict[str, NoteRecord]:
        if self._records is None:
            self.__load_data()
        if self._records is None:
            raise ValueError()
        return self._records

    def __load_data(self) -> None:
        records: dict[str, NoteRecord] = {}
        if self.path.is_file():
            data = load(self.path.read_text(encoding="utf-8"), Loader=Loader)
            raw_records = (data or {}).get("records") or []
            for raw_record in raw_records:
                record = self.__convert_record_for_deserialization(raw_record)
                records[record["note_path"]] = record
        self._records = records
        self._note_id_index = {
            record["note_id"]: path for path, record in records.items()
        }
        logger.debug("Loaded %d note records from %s", len(records), self.path)

    def __save_data(self, records: dict[str, NoteRecord]) -> None:
        serializable_records = [
            self.__convert_record_for_serialization(record)
            for record in deepcopy(list(records.values()))
        ]
        records_data = {"records": serializable_records}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary_path = self.path.with_name(self.path.name + ".tmp")
        temporary_path.write_text(
            dump(records_data, Dumper=Dumper, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        os.replace(temporary_path, self.path)

    def flush(self) -> bool:
        with self._lock:
            if self._records is not None and self.is_dirty:
                self.__save_data(self._records)
                self.is_dirty = False
                return True
            return False

    def __convert_record_for_serialization(self, record: NoteRecord) -> dict[str, Any]:
        serializable_record = cast(dict[str, Any], record)
        serializable_record["creation_time"] = time.datetime_to_iso_str_optional(
            serializable_record["creation_time"]
        )
        serializable_record["last_modified"] = time.datetime_to_iso_str_optional(
            serializable_record["last_modified"]
        )
        return serializable_record

    def __convert_record_for_deserialization(self, record: dict[str, Any]) -> NoteRecord:
        deserializable_record = record
        deserializable_record["creation_time"] = time.datetime_from_str_optional(
            deserializable_record.get("creation_time")
        )
        deserializable_record["last_modified"] = time.datetime_from_str_optional(
            deserializable_record.get("last_modified")
        )
        deserializable_record["pages"] = deserializable_record.get("pages") or []
        return cast(NoteRecord, deserializable_record)

    def get(self, path: str) -> Optional[NoteRecord]:
        with self._lock:
            record = self.records.get(path)
            return deepcopy(record) if record is not None else None

    def get_all(self) -> list[NoteRecord]:
        with self._lock:
            return [deepcopy(record) for record in self.records.values()]

    def find_by_note_id(self, note_id: str) -> Optional[NoteRecordMatch]:
        with self._lock:
            records = self.records
            path = self._note_id_index.get(note_id)
            if path is None or path not in records:
                return None
            return {"path": path, "record": deepcopy(records[path])}

    def find_by_date(self, date: pendulum.Date) -> list[NoteRecord]:
        """Return records whose source creation time falls on `date` (UTC)."""
        with self._lock:
            matches = [
                deepcopy(record)
                for record in self.records.values()
                if record["creation_time"] is not None
                and record["creation_time"].in_tz("UTC").date() == date
            ]
        return sorted(matches, key=lambda record: record["note_path"])

    def set(self, path: str, record: NoteRecord) -> None:
        with self._lock:
            records = self.records
            stored = deepcopy(record)
            stored["note_path"] = path

            # A note_id lives at exactly one path
            previous_path = self._note_id_index.get(stored["note_id"])
            if previous_path is not None and previous_path != path:
                records.pop(previous_path, None)

            # A path holds exactly one note_id
            displaced = records.get(path)
            if displaced is not None and displaced["note_id"] != stored["note_id"]:
                logger.warning(
                    "Note %s replaces note %s at %s",
                    stored["note_id"],
                    displaced["note_id"],
                    path,
                )
                self._note_id_index.pop(displaced["note_id"], None)

            records[path] = stored
            self._note_id_index[stored["note_id"]] = path
            self.is_dirty = True

    def delete(self, path: str) -> None:
        with self._lock:
            record = self.records.pop(path, None)
            if record is None:
                return
            if self._note_id_index.get(record["note_id"]) == path:
                del self._note_id_index[record["note_id"]]
            self.is_dirty = True

    def rename(self, old_path: str, new_path: str, record: NoteRecord) -> None:
        """Move a record to a new path as one step: delete then insert."""
        with self._lock:
            self.delete(old_path)
            self.set(new_path, record)
            logger.debug("Moved note record %s -> %s", old_path, new_path)
