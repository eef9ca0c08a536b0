# SPDX-License-Identifier: MIT

import re


def slugify(name: str) -> str:
    """
    Derive the filesystem-safe slug used to namespace a note's attachments.

    Rules:
    - Lowercase
    - Every run of characters outside a-z and 0-9 becomes one hyphen
    - Strip leading/trailing hyphens
    - Fallback to "note" if empty
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    if not slug:
        slug = "note"
    return slug


def sanitize_document_name(name: str) -> str:
    """
    Sanitize a display name for use as a document filename (no extension).

    Rules:
    - Remove invalid filename chars
    - Collapse whitespace
    - Max 100 chars
    - Unicode allowed
    """
    name = re.sub(r'[<>:"/\\|?*#^\[\]]', "", name)
    name = re.sub(r"\s+", " ", name).strip()
    name = name.strip(".")
    name = name[:100].strip()
    if not name:
        name = "note"
    return name
