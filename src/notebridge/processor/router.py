# SPDX-License-Identifier: MIT

from notebridge.archive import NoteArchive
from notebridge.exceptions import NoteSyncError, UnrecognizedFormatError
from notebridge.log import get_logger
from notebridge.model.processor import ProcessorResult, SourceMetadata
from notebridge.model.sub_format import SubFormat, SubFormatTag
from notebridge.processor.base import ModuleProcessor, ProcessorContext, get_result_template
from notebridge.processor.daily import DailyProcessor
from notebridge.processor.ebook import EbookProcessor
from notebridge.processor.handwritten import HandwrittenProcessor
from notebridge.processor.memo import MemoProcessor
from notebridge.service.classifier import DEFAULT_MEMO_PACKAGE_NAMES, classify

logger = get_logger(__name__)


class ModuleRouter:
    """
    Classify an archive and hand it to the processor for its sub-format.

    Never raises: every failure becomes a result with success set to False.
    """

    def __init__(self, context: ProcessorContext) -> None:
        self.context = context
        self.processors: dict[SubFormatTag, ModuleProcessor] = {
            SubFormat.HANDWRITTEN: HandwrittenProcessor(context),
            SubFormat.EBOOK: EbookProcessor(context),
            SubFormat.MEMO: MemoProcessor(context),
            SubFormat.DAILY: DailyProcessor(context),
        }
        self.memo_package_names = tuple(
            context.config.get("memo_package_names") or DEFAULT_MEMO_PACKAGE_NAMES
        )

    def route(self, archive: NoteArchive, source: SourceMetadata) -> ProcessorResult:
        try:
            sub_format = classify(archive, self.memo_package_names)
        except UnrecognizedFormatError as e:
            logger.error("%s", e)
            result = get_result_template(source, None)
            result["errors"].append(str(e))
            return result

        processor = self.processors[sub_format]
        try:
            result = processor.process(archive, source)
        except NoteSyncError as e:
            logger.error("Failed to sync %s: %s", source["name"], e)
            result = get_result_template(source, sub_format)
            result["errors"].append(str(e))
            return result
        except Exception as e:
            logger.exception("Unexpected failure while syncing %s", source["name"])
            result = get_result_template(source, sub_format)
            result["errors"].append(f"Unexpected error: {e}")
            return result

        if result["success"]:
            logger.info(
                "Synced %s (%s, %d paths)",
                source["name"],
                sub_format,
                len(result["created_paths"]),
            )
        else:
            logger.warning("Synced %s with errors: %s", source["name"], "; ".join(result["errors"]))
        return result
