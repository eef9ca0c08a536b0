# SPDX-License-Identifier: MIT

import io
import json
import zipfile
from types import TracebackType
from typing import Any, Optional, Self

from notebridge.exceptions import MissingEntryError, NoteSyncError


class NoteArchive:
    """
    Read-only view over a note archive.

    Entry names are matched exactly; `find_suffix` is used for the entries
    whose names are prefixed with a note-specific identifier.
    """

    def __init__(self, data: bytes, source_name: str) -> None:
        self.source_name = source_name
        self.data = data
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data), "r")
        except zipfile.BadZipFile as e:
            raise NoteSyncError(f"Corrupt note archive '{source_name}': {e}") from e
        self._names = [
            info.filename for info in self._zip.infolist() if not info.is_dir()
        ]

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def names(self) -> list[str]:
        return list(self._names)

    def exists(self, name: str) -> bool:
        return name in self._names

    def find_suffix(self, suffix: str) -> Optional[str]:
        for name in self._names:
            if name.endswith(suffix):
                return name
        return None

    def read(self, name: str) -> bytes:
        if name not in self._names:
            raise MissingEntryError(name, self.source_name)
        try:
            return self._zip.read(name)
        except (zipfile.BadZipFile, OSError) as e:
            raise NoteSyncError(f"Failed to read '{name}' from '{self.source_name}': {e}") from e

    def read_json(self, name: str) -> Any:
        raw = self.read(name)
        try:
            return json.loads(raw.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise NoteSyncError(
                f"Entry '{name}' in '{self.source_name}' is not valid JSON: {e}"
            ) from e
