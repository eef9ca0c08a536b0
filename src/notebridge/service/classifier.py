# SPDX-License-Identifier: MIT

import re
from typing import Optional

import pendulum

from notebridge.archive import NoteArchive
from notebridge.exceptions import NoteSyncError, UnrecognizedFormatError
from notebridge.log import get_logger
from notebridge.model.sub_format import SubFormat, SubFormatTag

logger = get_logger(__name__)

DAILY_FILENAME_PATTERN = re.compile(r"(?:^|/)day_(\d{4})_(\d{1,2})_(\d{1,2})\.note$")

EBOOK_SUFFIXES = (
    "_BookBean.json",
    "_ReadNoteBean.json",
    "_PageTextAnnotation.json",
    ".epub",
)
MEMO_HEADER_SUFFIX = "_HeaderInfo.json"
MEMO_SUFFIXES = ("_NotesBean.json", "_NoteList.json")
HANDWRITTEN_METADATA = "NotesBean.json"

DEFAULT_MEMO_PACKAGE_NAMES = ("com.wisky.memo",)


def parse_daily_date(source_name: str) -> Optional[pendulum.Date]:
    """
    Parse the journal date from a `day_YYYY_M_D.note` archive name.

    Returns None when the name does not follow the pattern or the date
    is not a real calendar date.
    """
    match = DAILY_FILENAME_PATTERN.search(source_name)
    if match is None:
        return None
    year, month, day = (int(group) for group in match.groups())
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return pendulum.date(year, month, day)
    except ValueError:
        return None


def classify_entries(
    entry_names: list[str],
    source_name: str,
    package_name: Optional[str] = None,
    memo_package_names: tuple[str, ...] = DEFAULT_MEMO_PACKAGE_NAMES,
) -> SubFormatTag:
    """
    Determine the sub-format of an archive from its entry names.

    The archive's own name decides the daily-journal format. Otherwise
    exactly one family of metadata entries must be present; an archive
    matching several families, or none, is rejected.
    """
    if parse_daily_date(source_name) is not None:
        return SubFormat.DAILY

    has_ebook = any(name.endswith(EBOOK_SUFFIXES) for name in entry_names)
    has_memo = (
        package_name is not None
        and package_name in memo_package_names
        and any(name.endswith(MEMO_HEADER_SUFFIX) for name in entry_names)
        and any(name.endswith(MEMO_SUFFIXES) for name in entry_names)
    )
    has_handwritten = HANDWRITTEN_METADATA in entry_names

    matched: list[SubFormatTag] = []
    if has_ebook:
        matched.append(SubFormat.EBOOK)
    if has_memo:
        matched.append(SubFormat.MEMO)
    if has_handwritten:
        matched.append(SubFormat.HANDWRITTEN)

    if len(matched) != 1:
        if len(matched) > 1:
            logger.warning(
                "Archive %s matches several formats: %s",
                source_name,
                ", ".join(matched),
            )
        raise UnrecognizedFormatError(source_name, entry_names)

    return matched[0]


def read_package_name(archive: NoteArchive) -> Optional[str]:
    header_entry = archive.find_suffix(MEMO_HEADER_SUFFIX)
    if header_entry is None:
        return None
    try:
        header = archive.read_json(header_entry)
    except NoteSyncError as e:
        logger.warning("Unreadable header in %s: %s", archive.source_name, e)
        return None
    if not isinstance(header, dict):
        return None
    package_name = header.get("packageName")
    return package_name if isinstance(package_name, str) else None


def classify(
    archive: NoteArchive,
    memo_package_names: tuple[str, ...] = DEFAULT_MEMO_PACKAGE_NAMES,
) -> SubFormatTag:
    sub_format = classify_entries(
        archive.names(),
        archive.source_name,
        read_package_name(archive),
        memo_package_names,
    )
    logger.info("Classified %s as %s", archive.source_name, sub_format)
    return sub_format
