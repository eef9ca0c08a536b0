# SPDX-License-Identifier: MIT

from typing import Literal, Optional, TypeAlias, TypedDict

RenameState: TypeAlias = Literal[
    "no_prior_record",
    "path_matches",
    "path_mismatch",
    "rename_in_progress",
    "rename_complete",
    "rename_failed",
]


class ImagePathUpdate(TypedDict):
    old: str
    new: str


class RenameResult(TypedDict):
    success: bool
    state: RenameState
    old_path: Optional[str]
    new_path: str
    updated_image_paths: list[ImagePathUpdate]
    errors: list[str]
    warnings: list[str]
