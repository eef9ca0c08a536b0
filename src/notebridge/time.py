# SPDX-License-Identifier: MIT

from typing import Any, Optional, cast

import pendulum

# Source timestamps above this are milliseconds, below are seconds
_MILLIS_THRESHOLD = 100_000_000_000


def datetime_from_epoch_millis(millis: int) -> pendulum.DateTime:
    return pendulum.from_timestamp(millis / 1000, tz="UTC")


def datetime_to_epoch_millis(datetime: pendulum.DateTime) -> int:
    return int(round(datetime.timestamp() * 1000))


def datetime_to_iso_str(datetime: pendulum.DateTime) -> str:
    return datetime.isoformat()


def datetime_to_iso_str_optional(
    datetime: Optional[pendulum.DateTime],
) -> Optional[str]:
    if datetime is None:
        return None
    return datetime_to_iso_str(datetime)


def datetime_from_str(datetime: str) -> pendulum.DateTime:
    return cast(pendulum.DateTime, pendulum.parse(datetime))


def datetime_from_str_optional(datetime: Optional[str]) -> Optional[pendulum.DateTime]:
    if datetime is None:
        return None
    return datetime_from_str(datetime)


def datetime_to_display_str(datetime: pendulum.DateTime) -> str:
    return datetime.in_tz("UTC").format("YYYY-MM-DD HH:mm")


def datetime_to_date_str(datetime: pendulum.DateTime) -> str:
    return datetime.in_tz("UTC").format("YYYY-MM-DD")


def source_timestamp_to_millis(value: Any) -> Optional[int]:
    """
    Normalize a timestamp found in archive metadata to epoch milliseconds.

    Archives carry timestamps as epoch milliseconds, epoch seconds, numeric
    strings or ISO 8601 strings depending on the producing module. Returns
    None when the value is missing or cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            return None
        if stripped.lstrip("-").isdigit():
            number = int(stripped)
        else:
            try:
                parsed = pendulum.parse(stripped, tz="UTC")
            except ValueError:
                return None
            if not isinstance(parsed, pendulum.DateTime):
                return None
            return datetime_to_epoch_millis(parsed)
    else:
        return None

    if number <= 0:
        return None
    if number < _MILLIS_THRESHOLD:
        return number * 1000
    return number
