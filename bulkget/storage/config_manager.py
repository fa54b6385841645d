"""
Manages loading and validation of the optional INI defaults file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bulkget.exceptions import ConfigurationError
from bulkget.models.config import DownloadConfig

log = logging.getLogger(__name__)

BOOLEAN_KEYS = {"overwrite", "random_wait"}
INTEGER_KEYS = {"connections", "wait"}


class ConfigManager:
    """
    Builds the run configuration from an optional INI file and CLI options.

    The file holds defaults in its [DEFAULT] section, for example:

        [DEFAULT]
        connections = 4
        dest_dir = ~/Downloads
        wait = 2
        random_wait = true
    """

    def __init__(self, config_file_path: Path | None = None):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> DownloadConfig:
        """
        Loads the INI file (if any), applies CLI overrides, and validates it.

        Args:
            cli_options: Options provided via the command line. Only keys with
                an explicit value should be present.

        Returns:
            A validated DownloadConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or
            validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path is not None:
            self._read()
            config_from_file = self._get_config_as_dict()

        if cli_options:
            config_from_file.update(cli_options)

        try:
            return DownloadConfig(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def _read(self) -> None:
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'."
            )
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        known_keys = DownloadConfig.get_ini_keys()
        config: dict[str, Any] = {}

        for key in section:
            if key not in known_keys:
                log.warning(f"[yellow]Ignoring unknown configuration key '{key}'.[/yellow]")
                continue
            try:
                if key in BOOLEAN_KEYS:
                    config[key] = section.getboolean(key)
                elif key in INTEGER_KEYS:
                    config[key] = section.getint(key)
                else:
                    config[key] = section.get(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for '{key}' in configuration file: {e}"
                ) from e

        if "dest_dir" in config:
            config["dest_dir"] = str(Path(config["dest_dir"]).expanduser())
        return config
