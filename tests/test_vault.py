"""Tests for the vault document store and path helpers."""

import pytest

from notebridge.exceptions import DocumentExistsError, DocumentNotFoundError, NoteSyncError
from notebridge.vault import from_note_relative, join_path, to_note_relative


def test_join_path_skips_empty_segments():
    assert join_path("Notes/", "", "/resources", "a.png") == "Notes/resources/a.png"


@pytest.mark.parametrize(
    "note_path,path,expected",
    [
        ("Notes/Trip.md", "Notes/resources/a.png", "resources/a.png"),
        ("Notes/Trip.md", "Other/a.png", "/Other/a.png"),
        ("Trip.md", "resources/a.png", "resources/a.png"),
    ],
)
def test_note_relative_paths(note_path, path, expected):
    assert to_note_relative(note_path, path) == expected
    assert from_note_relative(note_path, expected) == path


class TestVault:
    def test_write_creates_folders(self, vault):
        vault.write("A/B/c.md", "text")

        assert vault.read("A/B/c.md") == "text"
        assert vault.list_children("A/B") == ["A/B/c.md"]
        assert vault.list_children("A") == []

    def test_rename(self, vault):
        vault.write("a.md", "x")
        vault.write("b.md", "y")

        with pytest.raises(DocumentExistsError):
            vault.rename("a.md", "b.md")
        with pytest.raises(DocumentNotFoundError):
            vault.rename("missing.md", "c.md")

        vault.rename("a.md", "Moved/a.md")
        assert not vault.exists("a.md")
        assert vault.read("Moved/a.md") == "x"

    def test_ensure_folder(self, vault, vault_root):
        vault.ensure_folder("A/B")
        vault.ensure_folder("")

        assert (vault_root / "A" / "B").is_dir()
        assert vault.list_children("A/B") == []

    def test_undecodable_document(self, vault):
        vault.write_binary("bad.md", b"# day \xff\xfe\n")

        with pytest.raises(NoteSyncError, match="not valid UTF-8"):
            vault.read("bad.md")
        assert vault.read_binary("bad.md") == b"# day \xff\xfe\n"

    def test_missing_documents(self, vault):
        with pytest.raises(DocumentNotFoundError):
            vault.read("missing.md")
        with pytest.raises(DocumentNotFoundError):
            vault.delete("missing.md")

    def test_paths_cannot_escape(self, vault):
        with pytest.raises(NoteSyncError):
            vault.write("../outside.md", "x")
        with pytest.raises(NoteSyncError):
            vault.read("/etc/passwd")
