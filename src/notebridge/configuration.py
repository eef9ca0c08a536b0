# SPDX-License-Identifier: MIT

from pathlib import Path
from typing import NotRequired, Optional, TypedDict

from yaml import load

try:
    from yaml import CLoader as Loader
except ImportError:
    from yaml import Loader  # type: ignore[assignment]
import platformdirs

APP_NAME = "notebridge"

CONFIG_PATH = platformdirs.user_config_path(APP_NAME)
APP_CONFIG_PATH = CONFIG_PATH / "config.yaml"

# These will be set dynamically by load_data_path_configuration()
DATA_PATH: Path = platformdirs.user_data_path(APP_NAME)
DATA_NOTE_RECORDS_PATH: Path = DATA_PATH / "note_records.yaml"


class HandwrittenConfig(TypedDict):
    pages_folder: str
    highlights_folder: str
    annotations_folder: str
    sources_folder: Optional[str]
    page_template: Optional[str]
    highlight_template: Optional[str]
    annotation_template: Optional[str]
    index_template: Optional[str]
    extract_images: bool
    include_thumbnail: bool
    create_index: bool


class EbookConfig(TypedDict):
    highlights_folder: str
    annotations_folder: str
    sources_folder: Optional[str]
    highlight_template: Optional[str]
    annotation_template: Optional[str]
    book_template: Optional[str]
    process_annotations: bool
    create_index: bool


class MemoConfig(TypedDict):
    memos_folder: str
    memo_template: Optional[str]
    extract_images: bool


class DailyConfig(TypedDict):
    daily_folder: str
    daily_template: Optional[str]


class Configuration(TypedDict):
    vault_path: Optional[str]
    data_path: Optional[str]
    log_level: str
    handwritten: HandwrittenConfig
    ebook: EbookConfig
    memo: MemoConfig
    daily: DailyConfig
    memo_package_names: NotRequired[list[str]]


def get_default_handwritten_config() -> HandwrittenConfig:
    return {
        "pages_folder": "Notes/Handwritten",
        "highlights_folder": "Notes/Handwritten/Highlights",
        "annotations_folder": "Notes/Handwritten/Annotations",
        "sources_folder": None,
        "page_template": None,
        "highlight_template": None,
        "annotation_template": None,
        "index_template": None,
        "extract_images": True,
        "include_thumbnail": True,
        "create_index": True,
    }


def get_default_ebook_config() -> EbookConfig:
    return {
        "highlights_folder": "Notes/Reading/Highlights",
        "annotations_folder": "Notes/Reading/Annotations",
        "sources_folder": "Notes/Reading/Sources",
        "highlight_template": None,
        "annotation_template": None,
        "book_template": None,
        "process_annotations": True,
        "create_index": True,
    }


def get_default_memo_config() -> MemoConfig:
    return {
        "memos_folder": "Notes/Memos",
        "memo_template": None,
        "extract_images": True,
    }


def get_default_daily_config() -> DailyConfig:
    return {
        "daily_folder": "Notes/Daily",
        "daily_template": None,
    }


def get_default_configuration() -> Configuration:
    return {
        "vault_path": None,
        "data_path": None,
        "log_level": "INFO",
        "handwritten": get_default_handwritten_config(),
        "ebook": get_default_ebook_config(),
        "memo": get_default_memo_config(),
        "daily": get_default_daily_config(),
        "memo_package_names": ["com.wisky.memo"],
    }


def validate_configuration(config: Configuration) -> list[str]:
    """
    Return a list of problems with the configuration, empty when usable.

    Only checks that every module has somewhere to write its output.
    """
    problems: list[str] = []
    if not config["handwritten"]["pages_folder"]:
        problems.append("handwritten.pages_folder must not be empty")
    if (
        not config["ebook"]["highlights_folder"]
        and not config["ebook"]["annotations_folder"]
    ):
        problems.append(
            "ebook.highlights_folder or ebook.annotations_folder must be set"
        )
    if not config["memo"]["memos_folder"]:
        problems.append("memo.memos_folder must not be empty")
    if not config["daily"]["daily_folder"]:
        problems.append("daily.daily_folder must not be empty")
    return problems


def load_data_path_configuration() -> None:
    """
    Load the configuration and set the DATA_PATH variables dynamically.

    This must be called after the config file exists and before the
    metadata repository is instantiated.
    """
    global DATA_PATH, DATA_NOTE_RECORDS_PATH

    if not APP_CONFIG_PATH.is_file():
        # Config doesn't exist yet, use defaults
        return

    config: Optional[Configuration] = load(APP_CONFIG_PATH.read_text(), Loader=Loader)
    if config is None:
        return
    data_path_setting = config.get("data_path")

    if data_path_setting is not None:
        DATA_PATH = Path(data_path_setting)
        DATA_NOTE_RECORDS_PATH = DATA_PATH / "note_records.yaml"
