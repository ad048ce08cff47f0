"""
INI persistence for `OggifyConfig`, including upgrades of older files.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from oggify.exceptions import ConfigurationError
from oggify.models.config import OggifyConfig

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


def _validated(settings: dict[str, Any]) -> OggifyConfig:
    try:
        return OggifyConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed:\n{e}") from e


def _ini_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class ConfigManager:
    """
    Owns one config file. Only the `DEFAULT` section is used, with one key
    per persisted `OggifyConfig` field.
    """

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def _write(self, parser: configparser.ConfigParser) -> None:
        with open(self.config_file_path, "w", encoding="utf-8") as fp:
            parser.write(fp)

    def _read(self) -> configparser.SectionProxy:
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Config file not found: '{self.config_file_path}'. "
                "Run 'oggify init' to create one."
            )
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Cannot parse '{self.config_file_path}': {e}") from e
        return self._parser[SECTION]

    def load_config(self, cli_options: dict[str, Any] | None = None) -> OggifyConfig:
        """
        Reads the file, fills in keys added since it was written, then
        layers `cli_options` on top and validates the result.

        Raises:
            ConfigurationError: If the file is missing, unparsable, holds a
            value of the wrong type, or fails validation.
        """
        section = self._read()
        if self._add_missing_keys(section):
            log.info("[yellow]Added new settings to the configuration file.[/yellow]")

        try:
            settings = self._typed_values(section)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e
        settings.update(cli_options or {})
        settings["config_path"] = str(self.config_file_path.parent)
        return _validated(settings)

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Validates `settings` and writes every persisted key, using defaults for
        the ones not given.

        Raises:
            ConfigurationError: If validation or writing fails.
        """
        config = _validated(settings)
        parser = configparser.ConfigParser(interpolation=None)
        parser[SECTION] = {
            key: _ini_value(getattr(config, key))
            for key in sorted(OggifyConfig.get_ini_keys())
        }
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            self._write(parser)
        except OSError as e:
            raise ConfigurationError(f"Cannot write '{self.config_file_path}': {e}") from e

    @staticmethod
    def _typed_values(section: configparser.SectionProxy) -> dict[str, Any]:
        """Converts each persisted key according to its field type."""
        getters = {float: section.getfloat, bool: section.getboolean}
        values = {}
        for key in OggifyConfig.get_ini_keys():
            annotation = OggifyConfig.model_fields[key].annotation
            getter = getters.get(annotation, section.get)
            values[key] = getter(key)
        return values

    def _add_missing_keys(self, section: configparser.SectionProxy) -> bool:
        """Writes defaults for keys the file lacks. Returns True if any were added."""
        defaults = OggifyConfig()
        missing = sorted(OggifyConfig.get_ini_keys() - set(section))
        if not missing:
            return False

        for key in missing:
            section[key] = _ini_value(getattr(defaults, key))
            log.debug(f"Config upgrade: {key} = {section[key]}")
        try:
            self._write(self._parser)
        except OSError as e:
            log.error(f"Could not save the upgraded configuration file: {e}")
            return False
        return True

    def get_config_as_dict(self) -> dict[str, Any]:
        """Returns the raw strings stored in the file."""
        return dict(self._read())
