# SPDX-License-Identifier: MIT

from copy import deepcopy
from pathlib import Path
from typing import Optional

from yaml import dump, load

try:
    from yaml import CDumper as Dumper
    from yaml import CLoader as Loader  # noqa: F401
except ImportError:
    from yaml import Dumper, Loader  # type: ignore[assignment]

from notebridge import configuration


class ConfigurationRepository:
    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._config: Optional[configuration.Configuration] = None
        self.is_dirty = False

    @property
    def path(self) -> Path:
        if self._path is not None:
            return self._path
        return configuration.APP_CONFIG_PATH

    @property
    def config(self) -> configuration.Configuration:
        if self._config is None:
            self.__load_data()
        if self._config is None:
            raise ValueError()
        return self._config

    def __load_data(self) -> None:
        self._config = load(self.path.read_text(), Loader=Loader)

        if self._config is None:
            raise ValueError()

        defaults = configuration.get_default_configuration()

        # Migration: Add top-level fields if they don't exist
        if "vault_path" not in self._config:
            self._config["vault_path"] = defaults["vault_path"]
        if "data_path" not in self._config:
            self._config["data_path"] = defaults["data_path"]
        if "log_level" not in self._config:
            self._config["log_level"] = defaults["log_level"]
        if "memo_package_names" not in self._config:
            self._config["memo_package_names"] = defaults["memo_package_names"]

        # Migration: Add module sections and any of their missing keys
        for section in ("handwritten", "ebook", "memo", "daily"):
            if self._config.get(section) is None:
                self._config[section] = defaults[section]  # type: ignore[literal-required]
                continue
            for key, value in defaults[section].items():  # type: ignore[literal-required]
                if key not in self._config[section]:  # type: ignore[literal-required]
                    self._config[section][key] = value  # type: ignore[literal-required]

    def __save_data(self, config: configuration.Configuration) -> None:
        self.path.write_text(dump(config, Dumper=Dumper, sort_keys=False))

    def flush(self) -> None:
        if self._config is not None and self.is_dirty:
            self.__save_data(self._config)
            self.is_dirty = False

    def get_config(self) -> configuration.Configuration:
        return deepcopy(self.config)

    def update_config(
        self,
        vault_path: Optional[str] = None,
        remove_vault_path: bool = False,
        data_path: Optional[str] = None,
        remove_data_path: bool = False,
        log_level: Optional[str] = None,
    ) -> None:
        self.is_dirty = True

        if vault_path is not None:
            self.config["vault_path"] = vault_path
        if remove_vault_path:
            self.config["vault_path"] = None
        if data_path is not None:
            self.config["data_path"] = data_path
        if remove_data_path:
            self.config["data_path"] = None
        if log_level is not None:
            self.config["log_level"] = log_level.upper()


CONFIGURATION_REPO = ConfigurationRepository()
