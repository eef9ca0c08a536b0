"""Tests for merging fresh renders into existing documents."""

from notebridge.service.merge import (
    USER_ATTACHMENTS_HEADING,
    USER_NOTES_HEADING,
    frontmatter_value,
    normalize_document,
    parse_frontmatter,
    preserve,
    rewrite_matching_lines,
)

FRESH = """---
note_id: "N1"
created: 2024-03-05 10:00
modified: 2024-03-05 12:00
total_pages: 5
tags:
  - notebridge/handwritten
  - 2024-03-05
---

# Trip, page 1

![[Notes/resources/trip-page-1-1700.png]]

> [!note] Notes
> *Add your notes here*
> ^page-1-notes
"""


def merge(existing, fresh=FRESH, folder="Notes/resources"):
    return preserve(existing, fresh, folder)["merged_document"]


class TestParseFrontmatter:
    """Test suite for header parsing."""

    def test_parses_header(self):
        frontmatter = parse_frontmatter(FRESH)
        assert frontmatter_value(frontmatter, "total_pages") == 5
        assert frontmatter_value(frontmatter, "author") is None
        assert FRESH[frontmatter["end_index"] :].lstrip().startswith("# Trip")

    def test_without_header(self):
        frontmatter = parse_frontmatter("# Just a body\n")
        assert frontmatter["parsed"] == {}
        assert frontmatter["end_index"] == 0

    def test_invalid_yaml_is_empty(self):
        frontmatter = parse_frontmatter("---\nkey: [unclosed\n---\nbody\n")
        assert frontmatter["parsed"] == {}


class TestHeaderMerge:
    """Test suite for header property precedence."""

    def test_user_property_carried_forward(self):
        """Test a property only the existing header has survives."""
        existing = normalize_document(FRESH).replace(
            "total_pages: 5", 'total_pages: 5\nauthor: "Jane"'
        )
        merged = parse_frontmatter(merge(existing))
        assert merged["parsed"]["author"] == "Jane"

    def test_system_property_from_fresh(self):
        """Test system properties always take the fresh value."""
        existing = normalize_document(FRESH).replace("total_pages: 5", "total_pages: 3")
        merged = parse_frontmatter(merge(existing))
        assert merged["parsed"]["total_pages"] == 5

    def test_system_property_absent_from_fresh_is_dropped(self):
        """Test stale system properties are not carried forward."""
        existing = normalize_document(FRESH).replace(
            "total_pages: 5", "total_pages: 5\nexternal_file_id: old-id"
        )
        merged = parse_frontmatter(merge(existing))
        assert "external_file_id" not in merged["parsed"]

    def test_tags_union_drops_superseded_date_tag(self):
        """Test existing date tags give way to the fresh one, other tags stay."""
        existing = "---\ntags:\n  - 2024-01-01\n  - project-x\n---\n\nbody\n"
        fresh = "---\ntags:\n  - 2024-03-05\n---\n\nbody\n"

        tags = [str(tag) for tag in parse_frontmatter(merge(existing, fresh))["parsed"]["tags"]]

        assert "2024-03-05" in tags
        assert "project-x" in tags
        assert "2024-01-01" not in tags


class TestBodyMerge:
    """Test suite for preserving user-added body content."""

    def test_user_paragraph_preserved(self):
        """Test a paragraph absent from the fresh render lands in the notes section."""
        existing = normalize_document(FRESH) + "\nMy own thoughts about the trip.\n"

        merged = merge(existing)

        notes_section = merged.split(USER_NOTES_HEADING, 1)[1]
        assert "My own thoughts about the trip." in notes_section
        assert "\n---\n\n" + USER_NOTES_HEADING in merged

    def test_placeholder_is_not_preserved(self):
        """Test the template placeholder never counts as user content."""
        existing = normalize_document(FRESH).replace(
            "![[Notes/resources/trip-page-1-1700.png]]",
            "![[Notes/resources/trip-page-1-1700.png]]\n\n*Add your notes here*",
        )
        assert USER_NOTES_HEADING not in merge(existing)

    def test_user_attachment_preserved_verbatim(self):
        """Test an embed the user added is kept with its original syntax."""
        existing = normalize_document(FRESH) + "\n![[Inbox/sketch.jpg|300]]\n"

        merged = merge(existing)

        attachments_section = merged.split(USER_ATTACHMENTS_HEADING, 1)[1]
        assert "![[Inbox/sketch.jpg|300]]" in attachments_section

    def test_module_attachment_not_preserved(self):
        """Test stale embeds from the module's own folder are dropped."""
        existing = normalize_document(FRESH).replace(
            "trip-page-1-1700.png", "trip-page-1-1600.png"
        )
        merged = merge(existing)
        assert "trip-page-1-1600.png" not in merged
        assert USER_NOTES_HEADING not in merged

    def test_callout_contents_preserved(self):
        """Test text written inside a tracked callout stays in the callout."""
        existing = normalize_document(FRESH).replace(
            "> *Add your notes here*", "> Remember the ferry times"
        )

        merged = merge(existing)

        assert "> [!note] Notes\n> Remember the ferry times\n> ^page-1-notes" in merged
        assert USER_NOTES_HEADING not in merged

    def test_fresh_body_wins(self):
        """Test generated lines come from the fresh render."""
        existing = normalize_document(FRESH.replace("# Trip, page 1", "# Old title, page 1"))
        merged = merge(existing)
        assert "# Trip, page 1" in merged
        assert "Old title" in merged.split(USER_NOTES_HEADING, 1)[1]


class TestIdempotence:
    """Test suite for repeated merges."""

    def test_unchanged_document_is_stable(self):
        normalized = normalize_document(FRESH)
        assert merge(normalized) == normalized

    def test_merge_of_merge_is_noop(self):
        """Test user content does not nest deeper on every cycle."""
        existing = (
            normalize_document(FRESH)
            + "\nMy own thoughts.\n\nSecond paragraph.\n\n![[Inbox/photo.png]]\n"
        )

        once = merge(existing)
        twice = merge(once)
        thrice = merge(twice)

        assert once == twice == thrice
        assert once.count(USER_NOTES_HEADING) == 1
        assert once.count("My own thoughts.") == 1

    def test_horizontal_rule_in_user_notes_is_kept(self):
        existing = normalize_document(FRESH) + "\nmy para\n---\nmore\n"

        once = merge(existing)
        twice = merge(once)

        assert once == twice
        assert "my para\n---\nmore" in twice
        assert twice.count(USER_NOTES_HEADING) == 1

    def test_stats(self):
        existing = normalize_document(FRESH).replace(
            "total_pages: 5", "total_pages: 5\nauthor: Jane"
        ) + "\nA note.\n"

        stats = preserve(existing, FRESH, "Notes/resources")["stats"]

        assert stats["preserved_text_blocks"] == 1
        assert stats["preserved_callout_blocks"] == 1
        assert "author" in stats["preserved_properties"]


class TestRewriteMatchingLines:
    """Test suite for the in-place line rewrite."""

    def test_only_matching_lines_change(self):
        existing = "modified: old\nkeep me\n![[a-image-1.png]]\n"
        fresh = "modified: new\nother\n![[a-image-2.png]]\n"

        rewritten = rewrite_matching_lines(
            existing,
            fresh,
            [lambda line: line.startswith("modified:"), lambda line: line.startswith("![[")],
        )

        assert rewritten == "modified: new\nkeep me\n![[a-image-2.png]]\n"

    def test_missing_line_returns_none(self):
        assert (
            rewrite_matching_lines("keep\n", "modified: x\n", [lambda line: line.startswith("modified:")])
            is None
        )
