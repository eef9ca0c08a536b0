# SPDX-License-Identifier: MIT

from typing import Optional, TypedDict

from notebridge.model.sub_format import SubFormatTag


class SourceMetadata(TypedDict):
    """Describes where an archive came from, as reported by the transport."""

    name: str
    external_file_id: Optional[str]
    # Epoch milliseconds reported by the transport, used when the archive has none
    last_modified: Optional[int]


class ProcessorResult(TypedDict):
    success: bool
    module: Optional[SubFormatTag]
    source_name: str
    created_paths: list[str]
    errors: list[str]
    warnings: list[str]
