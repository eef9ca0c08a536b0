"""Tests for note identity reconciliation and renames."""

import re

from notebridge.service.rename import (
    RenameDetector,
    renamed_attachment_name,
    rewrite_embeds,
    superseded_variant_pattern,
)
from notebridge.template.note_record import get_note_record_template


def seed_note(vault, store, note_path="Notes/Foo.md", note_name="Foo"):
    vault.write(
        note_path,
        "# Foo\n\n![[Notes/resources/foo-page-1-1700000000.png]]\n\n"
        "![[Notes/resources/foo-page-1-1700000000.png|200]]\n",
    )
    vault.write_binary("Notes/resources/foo-page-1-1700000000.png", b"foo")
    vault.write_binary("Notes/resources/unrelated-page-1-1700000000.png", b"other")
    record = get_note_record_template("N1", note_path, note_name, "handwritten")
    record["external_file_id"] = "ext-old"
    record["pages"] = [
        {"page": 1, "image": "resources/foo-page-1-1700000000.png"},
        {"page": 2, "image": "resources/unrelated-page-1-1700000000.png"},
    ]
    store.set(note_path, record)


class TestAttachmentNames:
    """Test suite for attachment naming helpers."""

    def test_paged_rename_keeps_suffix(self):
        assert (
            renamed_attachment_name("foo-page-3-1700000000.png", "foo", "bar")
            == "bar-page-3-1700000000.png"
        )

    def test_single_rename_keeps_suffix(self):
        assert renamed_attachment_name("foo-image-42.jpg", "foo", "bar") == "bar-image-42.jpg"

    def test_other_slug_untouched(self):
        assert renamed_attachment_name("unrelated-page-1-1700000000.png", "foo", "bar") is None
        assert renamed_attachment_name("cover.png", "foo", "bar") is None

    def test_superseded_pattern(self):
        pattern = superseded_variant_pattern("foo-page-2-200.png", "foo")
        assert isinstance(pattern, re.Pattern)
        assert pattern.match("foo-page-2-100.png")
        assert not pattern.match("foo-page-3-100.png")
        assert not pattern.match("foo-bar-page-2-100.png")

    def test_rewrite_embeds_is_exact(self):
        content = "![[a/foo.png]] ![[a/foo.png|100]] [[a/foo.png]] a/foo.png"
        rewritten = rewrite_embeds(content, [{"old": "a/foo.png", "new": "a/bar.png"}])
        assert rewritten == "![[a/bar.png]] ![[a/bar.png|100]] [[a/foo.png]] a/foo.png"


class TestRenameDetector:
    """Test suite for RenameDetector."""

    def test_no_prior_record(self, vault, store):
        result = RenameDetector(vault, store).reconcile("N1", "Notes/New.md", "New", "ext")
        assert result["success"] is True
        assert result["state"] == "no_prior_record"

    def test_path_matches(self, vault, store):
        seed_note(vault, store)
        result = RenameDetector(vault, store).reconcile("N1", "Notes/Foo.md", "Foo", "ext")
        assert result["state"] == "path_matches"
        assert vault.is_file("Notes/Foo.md")

    def test_rename_preserves_identity(self, vault, store):
        """Test a renamed note ends with exactly one record, at the new path."""
        seed_note(vault, store)

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", "ext-new")

        assert result["success"] is True
        assert result["state"] == "rename_complete"
        assert [record["note_path"] for record in store.get_all()] == ["Notes/Bar.md"]
        record = store.get("Notes/Bar.md")
        assert record["note_id"] == "N1"
        assert record["note_name"] == "Bar"
        assert record["external_file_id"] == "ext-new"
        assert store.get("Notes/Foo.md") is None
        assert not vault.exists("Notes/Foo.md")

    def test_attachment_rename_scoping(self, vault, store):
        """Test only attachments carrying the old slug are renamed."""
        seed_note(vault, store)

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert vault.is_file("Notes/resources/bar-page-1-1700000000.png")
        assert not vault.exists("Notes/resources/foo-page-1-1700000000.png")
        assert vault.is_file("Notes/resources/unrelated-page-1-1700000000.png")
        assert result["updated_image_paths"] == [
            {
                "old": "Notes/resources/foo-page-1-1700000000.png",
                "new": "Notes/resources/bar-page-1-1700000000.png",
            }
        ]
        pages = store.get("Notes/Bar.md")["pages"]
        assert pages[0]["image"] == "resources/bar-page-1-1700000000.png"
        assert pages[1]["image"] == "resources/unrelated-page-1-1700000000.png"
        assert store.get("Notes/Bar.md")["external_file_id"] == "ext-old"

    def test_embeds_rewritten(self, vault, store):
        seed_note(vault, store)

        RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        content = vault.read("Notes/Bar.md")
        assert "![[Notes/resources/bar-page-1-1700000000.png]]" in content
        assert "![[Notes/resources/bar-page-1-1700000000.png|200]]" in content
        assert "foo-page-1" not in content

    def test_same_slug_moves_document_only(self, vault, store):
        """Test attachments keep their names when the slug does not change."""
        seed_note(vault, store)

        result = RenameDetector(vault, store).reconcile("N1", "Archive/Foo.md", "Foo", None)

        assert result["success"] is True
        assert result["updated_image_paths"] == []
        assert vault.is_file("Archive/Foo.md")
        assert vault.is_file("Notes/resources/foo-page-1-1700000000.png")
        page = store.get("Archive/Foo.md")["pages"][0]
        assert page["image"] == "/Notes/resources/foo-page-1-1700000000.png"

    def test_missing_old_document_fails(self, vault, store):
        """Test a missing old document aborts without touching anything."""
        seed_note(vault, store)
        vault.delete("Notes/Foo.md")

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert result["success"] is False
        assert result["state"] == "rename_failed"
        assert "Old document not found" in result["errors"][0]
        assert not vault.exists("Notes/Bar.md")
        assert vault.is_file("Notes/resources/foo-page-1-1700000000.png")
        assert store.find_by_note_id("N1")["path"] == "Notes/Foo.md"

    def test_existing_target_fails(self, vault, store):
        seed_note(vault, store)
        vault.write("Notes/Bar.md", "someone else's note\n")

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert result["success"] is False
        assert vault.read("Notes/Bar.md") == "someone else's note\n"
        assert vault.is_file("Notes/Foo.md")

    def test_undecodable_old_document_keeps_record_current(self, vault, store):
        """Test a document that cannot be read fails the rename with the moved attachments recorded."""
        seed_note(vault, store)
        vault.write_binary("Notes/Foo.md", b"# Foo \xff\xfe\n")

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert result["success"] is False
        assert result["state"] == "rename_failed"
        assert not vault.exists("Notes/Bar.md")
        match = store.find_by_note_id("N1")
        assert match["path"] == "Notes/Foo.md"
        assert match["record"]["pages"][0]["image"] == "resources/bar-page-1-1700000000.png"

    def test_missing_attachment_is_a_warning(self, vault, store):
        """Test one failed attachment does not stop the document rename."""
        seed_note(vault, store)
        vault.delete("Notes/resources/foo-page-1-1700000000.png")

        result = RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert result["success"] is True
        assert result["warnings"]
        assert vault.is_file("Notes/Bar.md")

    def test_superseded_variants_cleaned_up(self, vault, store):
        """Test older variants of a renamed attachment are deleted."""
        seed_note(vault, store)
        vault.write_binary("Notes/resources/foo-page-1-1600000000.png", b"older")

        RenameDetector(vault, store).reconcile("N1", "Notes/Bar.md", "Bar", None)

        assert not vault.exists("Notes/resources/foo-page-1-1600000000.png")
        assert vault.is_file("Notes/resources/unrelated-page-1-1700000000.png")
