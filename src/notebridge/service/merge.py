# SPDX-License-Identifier: MIT

"""
Reconcile a freshly rendered document with the document already on disk.

The fresh render always wins for the body and for system-managed header
properties. Anything a person added to the existing document (header
properties, paragraphs, embeds, callout contents) is carried forward, with
free-standing additions collected into a reserved "Your Notes" section at
the end of the document. Running the merge again on its own output with
the same fresh render returns that output unchanged.
"""

import re
from typing import Any, Callable, Optional, TypeAlias

import yaml
from yaml import dump, load

try:
    from yaml import CDumper as Dumper
    from yaml import CLoader as Loader  # noqa: F401
except ImportError:
    from yaml import Dumper, Loader  # type: ignore[assignment]

from notebridge.log import get_logger
from notebridge.model.document import (
    AttachmentReference,
    AttachmentType,
    CalloutBlock,
    MergeResult,
    ParsedFrontmatter,
    UserAddedContent,
)

logger = get_logger(__name__)

SYSTEM_PROPERTIES = frozenset(
    {"created", "modified", "total_pages", "external_file_id", "note_id"}
)
DATE_TAG_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TEMPLATE_PLACEHOLDERS = frozenset({"*Add your notes here*"})

USER_NOTES_HEADING = "## Your Notes"
USER_ATTACHMENTS_HEADING = "### Your Attachments"
SECTION_SEPARATOR = "---"

EMBED_PATTERN = re.compile(r"!\[\[([^\]]+)\]\]|\[\[([^\]]+)\]\]")
CALLOUT_START_PATTERN = re.compile(r"^> \[!(\w+)\](.*)$")
BLOCK_ID_PATTERN = re.compile(r"^> \^(.+)$")
BLANK_RUN_PATTERN = re.compile(r"\n\s*\n(?:\s*\n)+")

IMAGE_EXTENSION_PATTERN = re.compile(r"\.(png|jpg|jpeg|gif|webp|svg|bmp)$")
AUDIO_EXTENSION_PATTERN = re.compile(r"\.(mp3|mp4|m4a|wav|ogg|webm)$")
FILE_EXTENSION_PATTERN = re.compile(r"\.(pdf|doc|docx|xls|xlsx|ppt|pptx|zip)$")


def parse_frontmatter(content: str) -> ParsedFrontmatter:
    empty: ParsedFrontmatter = {"raw": "", "parsed": {}, "end_index": 0}

    if not content.startswith("---"):
        return empty

    closing_index = content.find("\n---", 3)
    if closing_index == -1:
        return empty

    raw = content[4:closing_index].strip()
    end_index = closing_index + 4

    try:
        parsed = load(raw, Loader=Loader) if raw else {}
    except yaml.YAMLError as e:
        logger.warning("Unparseable frontmatter, treating as empty: %s", e)
        parsed = {}
    if not isinstance(parsed, dict):
        parsed = {}

    return {"raw": raw, "parsed": parsed, "end_index": end_index}


def frontmatter_value(frontmatter: ParsedFrontmatter, key: str) -> Optional[Any]:
    """Return the header property `key`, or None when the header lacks it."""
    if key not in frontmatter["parsed"]:
        return None
    return frontmatter["parsed"][key]


def extract_body(content: str, end_index: int) -> str:
    return content[end_index:].strip()


def dump_header(header: dict[str, Any]) -> str:
    return dump(
        header,
        Dumper=Dumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    ).strip()


def attachment_type(path: str) -> AttachmentType:
    lower = path.lower()
    if IMAGE_EXTENSION_PATTERN.search(lower):
        return "image"
    if AUDIO_EXTENSION_PATTERN.search(lower):
        return "audio"
    if FILE_EXTENSION_PATTERN.search(lower):
        return "file"
    return "link"


def extract_attachments(text: str) -> list[AttachmentReference]:
    attachments: list[AttachmentReference] = []
    for match in EMBED_PATTERN.finditer(text):
        path = match.group(1) or match.group(2)
        attachments.append(
            {"type": attachment_type(path), "path": path, "full_match": match.group(0)}
        )
    return attachments


def is_module_attachment(path: str, attachments_folder: str) -> bool:
    """Check whether an embed points into the module's own attachments folder."""
    if not attachments_folder:
        return False
    normalized_path = path.lower()
    normalized_folder = attachments_folder.lower().strip("/")
    last_segment = normalized_folder.split("/")[-1]
    return (
        normalized_path.startswith(normalized_folder + "/")
        or normalized_path.startswith(last_segment + "/")
        or ("/" + normalized_folder + "/") in normalized_path
    )


def _is_embed_only(trimmed_line: str) -> bool:
    return (
        EMBED_PATTERN.search(trimmed_line) is not None
        and EMBED_PATTERN.sub("", trimmed_line).strip() == ""
    )


def _scan_callout(lines: list[str], start: int) -> tuple[int, Optional[CalloutBlock]]:
    """
    Read the callout starting at `lines[start]`.

    Returns the index just past the callout and, when it ends in a block id
    line, the parsed block.
    """
    match = CALLOUT_START_PATTERN.match(lines[start])
    if match is None:
        return start + 1, None

    inner_lines: list[str] = []
    block_id: Optional[str] = None
    index = start + 1
    while index < len(lines):
        id_match = BLOCK_ID_PATTERN.match(lines[index])
        if id_match:
            block_id = id_match.group(1).strip()
            index += 1
            break
        if lines[index].startswith(">"):
            inner_lines.append(lines[index])
            index += 1
        else:
            break

    if block_id is None:
        return index, None

    return index, {
        "block_id": block_id,
        "callout_type": match.group(1),
        "callout_title": match.group(2).strip(),
        "callout_lines": inner_lines,
        "full_match": "\n".join(lines[start:index]),
    }


def extract_callout_blocks(body: str) -> dict[str, CalloutBlock]:
    blocks: dict[str, CalloutBlock] = {}
    lines = body.split("\n")
    index = 0
    while index < len(lines):
        if CALLOUT_START_PATTERN.match(lines[index]):
            index, block = _scan_callout(lines, index)
            if block is not None:
                blocks[block["block_id"]] = block
        else:
            index += 1
    return blocks


def remove_callout_blocks(body: str) -> str:
    lines = body.split("\n")
    result: list[str] = []
    index = 0
    while index < len(lines):
        if CALLOUT_START_PATTERN.match(lines[index]):
            end, block = _scan_callout(lines, index)
            if block is None:
                result.extend(lines[index:end])
            index = end
        else:
            result.append(lines[index])
            index += 1
    return "\n".join(result)


def merge_callout_blocks(
    fresh_body: str, preserved: dict[str, CalloutBlock]
) -> tuple[str, int]:
    """Swap the inner lines of tracked fresh callouts for the preserved ones."""
    lines = fresh_body.split("\n")
    result: list[str] = []
    preserved_count = 0
    index = 0
    while index < len(lines):
        if not CALLOUT_START_PATTERN.match(lines[index]):
            result.append(lines[index])
            index += 1
            continue

        end, block = _scan_callout(lines, index)
        if block is not None and block["block_id"] in preserved:
            result.append(lines[index])
            result.extend(preserved[block["block_id"]]["callout_lines"])
            result.append(lines[end - 1])
            preserved_count += 1
        else:
            result.extend(lines[index:end])
        index = end

    return "\n".join(result), preserved_count


def merge_headers(
    existing: dict[str, Any], fresh: dict[str, Any]
) -> tuple[dict[str, Any], list[str]]:
    merged: dict[str, Any] = dict(fresh)
    preserved_properties: list[str] = []

    for key, value in existing.items():
        if key in SYSTEM_PROPERTIES:
            continue

        if key == "tags":
            fresh_tags = _as_tag_list(fresh.get("tags"))
            existing_tags = _as_tag_list(value)
            fresh_tag_strings = {str(tag) for tag in fresh_tags}
            has_fresh_date_tag = any(
                DATE_TAG_PATTERN.match(str(tag)) for tag in fresh_tags
            )

            merged_tags = list(fresh_tags)
            seen = set(fresh_tag_strings)
            for tag in existing_tags:
                tag_string = str(tag)
                if has_fresh_date_tag and DATE_TAG_PATTERN.match(tag_string):
                    continue
                if tag_string in seen:
                    continue
                merged_tags.append(tag)
                seen.add(tag_string)
                preserved_properties.append(f"tags.{tag_string}")

            if "tags" in fresh or merged_tags:
                merged["tags"] = merged_tags
            else:
                merged["tags"] = value
        elif key not in fresh:
            merged[key] = value
            preserved_properties.append(key)

    return merged, preserved_properties


def _as_tag_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _split_user_notes_section(
    body: str,
) -> tuple[str, str, list[AttachmentReference]]:
    """
    Separate a previously emitted "Your Notes" section from the rest.

    Returns the remaining content, the section's text and the embeds
    listed under its attachments sub-heading.
    """
    main_lines: list[str] = []
    notes_lines: list[str] = []
    attachments: list[AttachmentReference] = []
    in_notes = False
    in_attachments = False

    for line in body.split("\n"):
        trimmed = line.strip()

        if trimmed == USER_NOTES_HEADING:
            # Drop the separator emitted in front of the section
            while main_lines and not main_lines[-1].strip():
                main_lines.pop()
            if main_lines and main_lines[-1].strip() == SECTION_SEPARATOR:
                main_lines.pop()
            in_notes = True
            in_attachments = False
            continue

        if in_notes and trimmed == USER_ATTACHMENTS_HEADING:
            in_attachments = True
            continue

        if not in_notes:
            main_lines.append(line)
        elif in_attachments and _is_embed_only(trimmed):
            attachments.extend(extract_attachments(trimmed))
        else:
            notes_lines.append(line)

    return "\n".join(main_lines), "\n".join(notes_lines), attachments


def find_user_added_content(
    existing_body: str, fresh_body: str, attachments_folder: str
) -> UserAddedContent:
    """
    Collect paragraphs and embeds of the existing body that the fresh body lacks.

    A line is considered generated when the same trimmed line occurs
    anywhere in the fresh body; contiguous runs of other lines form one
    block. Tracked callout blocks are handled by `merge_callout_blocks`.
    """
    text_blocks: list[str] = []
    attachments: list[AttachmentReference] = []
    seen_attachments: set[str] = set()

    def add_block(lines: list[str]) -> None:
        block = "\n".join(lines).strip()
        if block and block not in text_blocks:
            text_blocks.append(block)

    def add_attachment(attachment: AttachmentReference) -> None:
        if attachment["full_match"] not in seen_attachments:
            seen_attachments.add(attachment["full_match"])
            attachments.append(attachment)

    main_content, notes_text, section_attachments = _split_user_notes_section(
        remove_callout_blocks(existing_body)
    )
    add_block([notes_text])
    for attachment in section_attachments:
        add_attachment(attachment)

    fresh_lines = {
        line.strip() for line in fresh_body.split("\n") if line.strip()
    }
    fresh_paths = {
        attachment["path"].lower() for attachment in extract_attachments(fresh_body)
    }

    current_block: list[str] = []
    for line in main_content.split("\n"):
        trimmed = line.strip()

        if trimmed in TEMPLATE_PLACEHOLDERS:
            add_block(current_block)
            current_block = []
            continue

        if trimmed and _is_embed_only(trimmed) and trimmed not in fresh_lines:
            add_block(current_block)
            current_block = []
            for attachment in extract_attachments(trimmed):
                if attachment["path"].lower() in fresh_paths:
                    continue
                if is_module_attachment(attachment["path"], attachments_folder):
                    continue
                add_attachment(attachment)
            continue

        if trimmed and trimmed not in fresh_lines:
            current_block.append(line)
        elif not trimmed and current_block:
            current_block.append(line)
        elif current_block:
            add_block(current_block)
            current_block = []

    add_block(current_block)

    return {"text_blocks": text_blocks, "attachments": attachments}


def build_merged_document(
    header: dict[str, Any], body: str, additions: UserAddedContent
) -> str:
    parts: list[str] = []
    if header:
        parts += ["---", dump_header(header), "---", ""]
    parts.append(body.strip())

    if additions["text_blocks"] or additions["attachments"]:
        parts += ["", SECTION_SEPARATOR, "", USER_NOTES_HEADING, ""]
        for block in additions["text_blocks"]:
            parts += [block, ""]
        if additions["attachments"]:
            parts += [USER_ATTACHMENTS_HEADING, ""]
            parts += [attachment["full_match"] for attachment in additions["attachments"]]
            parts.append("")

    return "\n".join(parts).rstrip("\n") + "\n"


def preserve(
    existing_document: str, fresh_document: str, attachments_folder: str
) -> MergeResult:
    existing_frontmatter = parse_frontmatter(existing_document)
    fresh_frontmatter = parse_frontmatter(fresh_document)

    merged_header, preserved_properties = merge_headers(
        existing_frontmatter["parsed"], fresh_frontmatter["parsed"]
    )

    existing_body = extract_body(existing_document, existing_frontmatter["end_index"])
    fresh_body = BLANK_RUN_PATTERN.sub(
        "\n\n", extract_body(fresh_document, fresh_frontmatter["end_index"])
    )

    existing_blocks = extract_callout_blocks(existing_body)
    additions = find_user_added_content(existing_body, fresh_body, attachments_folder)
    merged_body, preserved_callouts = merge_callout_blocks(fresh_body, existing_blocks)

    merged_document = build_merged_document(merged_header, merged_body, additions)

    if additions["text_blocks"] or additions["attachments"] or preserved_properties:
        logger.debug(
            "Merge kept %d text blocks, %d attachments, %d callouts, properties: %s",
            len(additions["text_blocks"]),
            len(additions["attachments"]),
            preserved_callouts,
            ", ".join(preserved_properties) or "none",
        )

    return {
        "merged_document": merged_document,
        "stats": {
            "preserved_text_blocks": len(additions["text_blocks"]),
            "preserved_attachments": len(additions["attachments"]),
            "preserved_callout_blocks": preserved_callouts,
            "preserved_properties": preserved_properties,
        },
    }


def normalize_document(fresh_document: str) -> str:
    """Bring a freshly rendered document into the exact shape a merge emits."""
    return preserve("", fresh_document, "")["merged_document"]


LineMatcher: TypeAlias = Callable[[str], bool]


def rewrite_matching_lines(
    existing_document: str, fresh_document: str, matchers: list[LineMatcher]
) -> Optional[str]:
    """
    Replace, for each matcher, the first matching existing line with the
    first matching fresh line, leaving every other line byte-identical.

    Returns None when some matcher finds no line in either document, so
    the caller can fall back to a full merge.
    """
    existing_lines = existing_document.split("\n")
    fresh_lines = fresh_document.split("\n")

    for matcher in matchers:
        existing_index = next(
            (i for i, line in enumerate(existing_lines) if matcher(line)), None
        )
        fresh_line = next((line for line in fresh_lines if matcher(line)), None)
        if existing_index is None or fresh_line is None:
            return None
        existing_lines[existing_index] = fresh_line

    return "\n".join(existing_lines)
