"""Tests for SyncSession."""

from pathlib import Path

from notebridge.repository.metadata import MetadataRepository
from notebridge.session import SyncSession, external_file_id_for

HANDWRITTEN = {
    "NotesBean.json": {
        "noteId": "N1",
        "noteName": "Trip",
        "pageCount": 1,
        "createTime": 1_700_000_000_000,
        "lastModifiedTime": 1_700_000_500_000,
    },
    "1.png": b"page",
}


def write_archive(directory: Path, name: str, data: bytes) -> Path:
    path = directory / name
    path.write_bytes(data)
    return path


def test_external_file_id_is_stable(tmp_path):
    path = tmp_path / "Trip.note"

    assert external_file_id_for(path) == external_file_id_for(path)
    assert external_file_id_for(path) != external_file_id_for(tmp_path / "Other.note")
    assert len(external_file_id_for(path)) == 16


class TestSyncSession:
    """Test suite for SyncSession."""

    def test_second_sync_leaves_vault_untouched(
        self, tmp_path, vault_root, data_path, config, archive_builder, vault_snapshot
    ):
        """Test syncing the same archive twice yields byte-identical documents."""
        archive = write_archive(tmp_path, "Trip.note", archive_builder(HANDWRITTEN))

        with SyncSession(vault_root, config, data_path) as session:
            first = session.sync_file(archive)
        after_first = vault_snapshot()
        with SyncSession(vault_root, config, data_path) as session:
            second = session.sync_file(archive)

        assert first["success"] is True
        assert second["success"] is True
        assert vault_snapshot() == after_first
        assert first["created_paths"] == second["created_paths"]

    def test_records_flushed_after_each_note(
        self, tmp_path, vault_root, data_path, config, archive_builder
    ):
        archive = write_archive(tmp_path, "Trip.note", archive_builder(HANDWRITTEN))
        session = SyncSession(vault_root, config, data_path)

        session.sync_file(archive)

        records = MetadataRepository(data_path / "note_records.yaml").get_all()
        assert [record["note_id"] for record in records] == ["N1"]
        assert records[0]["external_file_id"] == external_file_id_for(archive)

    def test_corrupt_archive(self, tmp_path, vault_root, data_path, config, vault_snapshot):
        archive = write_archive(tmp_path, "Broken.note", b"not a zip")

        with SyncSession(vault_root, config, data_path) as session:
            result = session.sync_file(archive)

        assert result["success"] is False
        assert result["module"] is None
        assert "Corrupt note archive" in result["errors"][0]
        assert vault_snapshot() == {}

    def test_unreadable_file(self, tmp_path, vault_root, data_path, config):
        with SyncSession(vault_root, config, data_path) as session:
            result = session.sync_file(tmp_path / "missing.note")

        assert result["success"] is False
        assert result["source_name"] == "missing.note"

    def test_batch_keeps_input_order(
        self, tmp_path, vault_root, data_path, config, archive_builder, vault
    ):
        """Test parallel syncing reports results in the order of the inputs."""
        paths = []
        for number in range(1, 7):
            entries = {
                **HANDWRITTEN,
                "NotesBean.json": {**HANDWRITTEN["NotesBean.json"], "noteId": f"N{number}", "noteName": f"Note {number}"},
            }
            paths.append(write_archive(tmp_path, f"note-{number}.note", archive_builder(entries)))
        paths.append(write_archive(tmp_path, "junk.note", archive_builder({"readme.txt": "x"})))

        with SyncSession(vault_root, config, data_path) as session:
            results = session.sync_batch(paths, workers=3)

        assert [result["source_name"] for result in results] == [path.name for path in paths]
        assert [result["success"] for result in results] == [True] * 6 + [False]
        for number in range(1, 7):
            assert vault.is_file(f"Notes/Handwritten/Note {number}.md")
        stored = MetadataRepository(data_path / "note_records.yaml").get_all()
        assert sorted(record["note_id"] for record in stored) == [f"N{n}" for n in range(1, 7)]
