# SPDX-License-Identifier: MIT

from typing import Any, Literal, TypeAlias, TypedDict

AttachmentType: TypeAlias = Literal["image", "audio", "file", "link"]


class ParsedFrontmatter(TypedDict):
    raw: str
    parsed: dict[str, Any]
    end_index: int


class AttachmentReference(TypedDict):
    type: AttachmentType
    path: str
    full_match: str


class UserAddedContent(TypedDict):
    text_blocks: list[str]
    attachments: list[AttachmentReference]


class CalloutBlock(TypedDict):
    block_id: str
    callout_type: str
    callout_title: str
    callout_lines: list[str]
    full_match: str


class MergeStats(TypedDict):
    preserved_text_blocks: int
    preserved_attachments: int
    preserved_callout_blocks: int
    preserved_properties: list[str]


class MergeResult(TypedDict):
    merged_document: str
    stats: MergeStats
