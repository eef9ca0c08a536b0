"""Pytest configuration and shared fixtures."""

import io
import json
import zipfile
from pathlib import Path
from typing import Any, Callable

import pytest

from notebridge.configuration import Configuration, get_default_configuration
from notebridge.locks import NoteLocks
from notebridge.model.processor import SourceMetadata
from notebridge.processor.base import ProcessorContext
from notebridge.repository.metadata import MetadataRepository
from notebridge.service.render import TemplateResolver
from notebridge.vault import Vault


def build_archive(entries: dict[str, Any]) -> bytes:
    """Zip `entries` in memory: bytes are stored as-is, str as UTF-8, anything else as JSON."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            if isinstance(content, bytes):
                data = content
            elif isinstance(content, str):
                data = content.encode("utf-8")
            else:
                data = json.dumps(content).encode("utf-8")
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def archive_builder() -> Callable[[dict[str, Any]], bytes]:
    """Build note archives from a mapping of entry name to content."""
    return build_archive


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def vault(vault_root: Path) -> Vault:
    return Vault(vault_root)


@pytest.fixture
def data_path(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(data_path: Path) -> MetadataRepository:
    return MetadataRepository(data_path / "note_records.yaml")


@pytest.fixture
def config() -> Configuration:
    return get_default_configuration()


@pytest.fixture
def context(vault: Vault, store: MetadataRepository, config: Configuration) -> ProcessorContext:
    return ProcessorContext(vault, store, config, TemplateResolver(vault), NoteLocks())


@pytest.fixture
def make_source() -> Callable[..., SourceMetadata]:
    def _make_source(
        name: str, external_file_id: str = "ext-1", last_modified: int | None = None
    ) -> SourceMetadata:
        return {
            "name": name,
            "external_file_id": external_file_id,
            "last_modified": last_modified,
        }

    return _make_source


@pytest.fixture
def vault_snapshot(vault_root: Path) -> Callable[[], dict[str, bytes]]:
    """Capture every file in the vault as relative path -> bytes."""

    def _snapshot() -> dict[str, bytes]:
        return {
            path.relative_to(vault_root).as_posix(): path.read_bytes()
            for path in sorted(vault_root.rglob("*"))
            if path.is_file()
        }

    return _snapshot
