# SPDX-License-Identifier: MIT


class NoteSyncError(Exception):
    """Base class for failures that abort the sync of a single note."""


class UnrecognizedFormatError(NoteSyncError):
    def __init__(self, source_name: str, entry_names: list[str]) -> None:
        self.source_name = source_name
        self.entry_names = entry_names
        preview = ", ".join(entry_names[:5])
        if len(entry_names) > 5:
            preview += ", ..."
        super().__init__(
            f"Unrecognized note format for '{source_name}' (entries: {preview or 'none'})"
        )


class MissingEntryError(NoteSyncError):
    def __init__(self, entry_name: str, context: str) -> None:
        self.entry_name = entry_name
        self.context = context
        super().__init__(f"Required entry '{entry_name}' missing from {context}")


class DocumentNotFoundError(NoteSyncError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document not found: {path}")


class DocumentExistsError(NoteSyncError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document already exists: {path}")
