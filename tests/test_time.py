"""Tests for timestamp helpers."""

import pytest

from notebridge.service.filename import sanitize_document_name, slugify
from notebridge.time import datetime_to_display_str, datetime_from_epoch_millis, source_timestamp_to_millis


@pytest.mark.parametrize(
    "value,expected",
    [
        (1_700_000_000_000, 1_700_000_000_000),
        (1_700_000_000, 1_700_000_000_000),
        ("1700000000", 1_700_000_000_000),
        ("2023-11-14T22:13:20Z", 1_700_000_000_000),
        (None, None),
        ("", None),
        ("soon", None),
        (0, None),
        (True, None),
    ],
)
def test_source_timestamp_to_millis(value, expected):
    assert source_timestamp_to_millis(value) == expected


def test_display_is_utc():
    assert datetime_to_display_str(datetime_from_epoch_millis(1_700_000_000_000)) == "2023-11-14 22:13"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Trip to Rome", "trip-to-rome"),
        ("  Über--Note!! ", "ber-note"),
        ("???", "note"),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_sanitize_document_name():
    assert sanitize_document_name('Plan: "A/B"  #1?') == "Plan AB 1"
    assert sanitize_document_name("...") == "note"
    assert len(sanitize_document_name("x" * 150)) == 100
