# SPDX-License-Identifier: MIT

from typing import Literal, TypeAlias

SubFormatTag: TypeAlias = Literal["handwritten", "ebook", "memo", "daily"]


class SubFormat:
    HANDWRITTEN: SubFormatTag = "handwritten"
    EBOOK: SubFormatTag = "ebook"
    MEMO: SubFormatTag = "memo"
    DAILY: SubFormatTag = "daily"
