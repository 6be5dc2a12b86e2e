"""
Blog core settings provider
"""

import os
import sys
import json
import functools
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import pydantic_settings
from pydantic.fields import FieldInfo
from pydantic_settings import PydanticBaseSettingsSource, SettingsConfigDict

from .schemas import config


SETTINGS_CREATE_NONEXISTENT: bool = False
"""
switch to create a new configuration file if no existing file has been found
"""

SETTINGS_EXIT_ON_ERROR: bool = False
"""
switch to call ``exit(1)`` for a missing config file (use all defaults otherwise)
"""

SETTINGS_LOG_ERROR_FUNCTION: Optional[Callable[[str], Any]] = functools.partial(print, file=sys.stderr)
"""
optional function to accept log messages on failure
"""

SETTINGS_LOG_INFO_FUNCTION: Optional[Callable[[str], Any]] = None
"""
optional function to accept log messages when creating a new configuration file
"""

CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]


class JsonConfigFileSource(PydanticBaseSettingsSource):
    """
    Settings source reading the first JSON config file found in ``CONFIG_PATHS``
    """

    def __init__(self, settings_cls: Type[pydantic_settings.BaseSettings]):
        super().__init__(settings_cls)
        self._data: Optional[Dict[str, Any]] = None

    @property
    def data(self) -> Dict[str, Any]:
        if self._data is None:
            self._data = read_settings_from_file()
        return self._data

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self.data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {k: v for k, v in self.data.items() if k in self.settings_cls.model_fields}


class Settings(pydantic_settings.BaseSettings, config.CoreConfig):
    """
    Blog core settings

    Do not change most of the settings at runtime, since this might lead to unspecified
    behavior. Always restart the server after changing the config file. Values are
    taken from keyword arguments first, then from environment variables (nested
    sections are separated by ``__``, e.g. ``STORE__BACKEND=couchdb``), then from
    a ``.env`` file, then from the JSON config file and finally from the defaults.
    """

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[pydantic_settings.BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, dotenv_settings, file_secret_settings, JsonConfigFileSource(settings_cls)


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_core_config()
    with open(p, "w") as f:
        json.dump(conf.model_dump(mode="json"), f, indent=4)
    SETTINGS_LOG_INFO_FUNCTION and SETTINGS_LOG_INFO_FUNCTION(f"A new config file has been created as {p!r}.")
    return conf


def read_settings_from_file() -> Dict[str, Any]:
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            with open(path, "r", encoding="UTF-8") as file:
                return json.load(file)

    if SETTINGS_CREATE_NONEXISTENT:
        return store_configuration().model_dump(mode="json")

    if SETTINGS_EXIT_ON_ERROR:
        if SETTINGS_LOG_ERROR_FUNCTION:
            SETTINGS_LOG_ERROR_FUNCTION(
                "No config file found! Use the 'init' command to create a basic configuration "
                "file or set the environment variable 'CONFIG_PATH' to an existing config file."
            )
        sys.exit(1)
    return {}


def get_default_core_config() -> config.CoreConfig:
    return config.CoreConfig()
