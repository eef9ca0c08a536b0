# SPDX-License-Identifier: MIT

import hashlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import TracebackType
from typing import Optional, Self

from notebridge import configuration
from notebridge.archive import NoteArchive
from notebridge.configuration import Configuration
from notebridge.exceptions import NoteSyncError
from notebridge.locks import NoteLocks
from notebridge.log import get_logger
from notebridge.model.processor import ProcessorResult, SourceMetadata
from notebridge.processor.base import ProcessorContext, get_result_template
from notebridge.processor.router import ModuleRouter
from notebridge.repository.metadata import MetadataRepository
from notebridge.service.render import TemplateResolver
from notebridge.vault import Vault

logger = get_logger(__name__)


def external_file_id_for(path: Path) -> str:
    """Transport identifier for a local file: changes whenever the file is renamed."""
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()
    return digest[:16]


class SyncSession:
    """
    Everything one sync run needs, created at its start and discarded at its end.

    The metadata store is flushed after every note, so a crash between
    notes keeps every record written so far.
    """

    def __init__(
        self,
        vault_path: Path,
        config: Configuration,
        data_path: Optional[Path] = None,
    ) -> None:
        records_path = (
            data_path / "note_records.yaml"
            if data_path is not None
            else configuration.DATA_NOTE_RECORDS_PATH
        )
        self.config = config
        self.vault = Vault(vault_path)
        self.store = MetadataRepository(records_path)
        self.templates = TemplateResolver(self.vault)
        self.locks = NoteLocks()
        self.context = ProcessorContext(
            self.vault, self.store, config, self.templates, self.locks
        )
        self.router = ModuleRouter(self.context)

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
        self.store.flush()
        self.templates.clear()

    def sync_archive(self, data: bytes, source: SourceMetadata) -> ProcessorResult:
        try:
            with NoteArchive(data, source["name"]) as archive:
                result = self.router.route(archive, source)
        except NoteSyncError as e:
            logger.error("%s", e)
            result = get_result_template(source, None)
            result["errors"].append(str(e))
        self.store.flush()
        return result

    def sync_file(
        self, path: Path, external_file_id: Optional[str] = None
    ) -> ProcessorResult:
        source: SourceMetadata = {
            "name": path.name,
            "external_file_id": external_file_id or external_file_id_for(path),
            "last_modified": None,
        }
        try:
            data = path.read_bytes()
            source["last_modified"] = int(path.stat().st_mtime * 1000)
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            result = get_result_template(source, None)
            result["errors"].append(f"Cannot read {path}: {e}")
            return result
        return self.sync_archive(data, source)

    def sync_batch(self, paths: list[Path], workers: int = 1) -> list[ProcessorResult]:
        """Sync every path, returning results in the order of `paths`."""
        logger.info("Syncing %d notes with %d worker(s)", len(paths), workers)
        if workers <= 1:
            return [self.sync_file(path) for path in paths]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.sync_file, paths))
