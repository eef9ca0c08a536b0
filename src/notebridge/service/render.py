# SPDX-License-Identifier: MIT

import re
from typing import Any, Optional, TypeAlias

import pendulum

from notebridge.exceptions import NoteSyncError
from notebridge.log import get_logger
from notebridge.vault import Vault

logger = get_logger(__name__)

TemplateVariables: TypeAlias = dict[str, Any]

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([\w.]+)(?::([^}]*))?\s*\}\}")
DEFAULT_DATE_FORMAT = "YYYY-MM-DD"


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, pendulum.DateTime):
        return value.format("YYYY-MM-DD HH:mm")
    if isinstance(value, (list, tuple)):
        return ", ".join(_format_value(item) for item in value)
    return str(value)


def render(
    template: str,
    variables: TemplateVariables,
    moment: Optional[pendulum.DateTime] = None,
) -> str:
    """
    Fill `{{name}}` placeholders from `variables`.

    `{{date}}` and `{{date:FORMAT}}` render `moment` with a pendulum format
    string. Unknown names render empty.
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        date_format = match.group(2)

        if name == "date" and "date" not in variables:
            if moment is None:
                return ""
            return moment.format((date_format or DEFAULT_DATE_FORMAT).strip())

        value = variables.get(name)
        if date_format is not None and isinstance(value, pendulum.DateTime):
            return value.format(date_format.strip())
        return _format_value(value)

    return PLACEHOLDER_PATTERN.sub(substitute, template)


class TemplateResolver:
    """Resolve user template overrides stored in the vault, cached per session."""

    def __init__(self, vault: Vault) -> None:
        self.vault = vault
        self._cache: dict[str, Optional[str]] = {}

    def resolve(self, custom_path: Optional[str], default: str) -> str:
        if not custom_path:
            return default

        if custom_path not in self._cache:
            try:
                self._cache[custom_path] = self.vault.read(custom_path)
            except NoteSyncError as e:
                logger.warning(
                    "Template %s unavailable, using default: %s", custom_path, e
                )
                self._cache[custom_path] = None

        cached = self._cache[custom_path]
        return cached if cached is not None else default

    def clear(self) -> None:
        self._cache.clear()
