"""
kafka_resources - configuration validation

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from kafka_resources.constants import DEFAULT_FLUSH_TIMEOUT_S, DEFAULT_PROBE_PAYLOAD, DEFAULT_TOPOLOGY_FILE
from kafka_resources.typing import FlushPolarity
from pathlib import Path
from pydantic import ValidationError
from pydantic_settings import BaseSettings, JsonConfigSettingsSource, PydanticBaseSettingsSource, SettingsConfigDict

import logging

LOG = logging.getLogger(__name__)


class InvalidConfiguration(Exception):
    pass


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="kafka_resources_",
        env_ignore_empty=True,
        env_nested_delimiter="__",
        validate_assignment=True,
    )

    topology_file: str = DEFAULT_TOPOLOGY_FILE
    log_handler: str | None = "stdout"
    log_level: str = "INFO"
    log_format: str = "%(name)-20s\t%(threadName)s\t%(levelname)-8s\t%(message)s"
    probe_payload: str = DEFAULT_PROBE_PAYLOAD
    probe_flush_timeout: float = DEFAULT_FLUSH_TIMEOUT_S
    probe_flush_polarity: FlushPolarity = FlushPolarity.remaining_is_failure
    verify_connection: bool = False
    listener_timeout: float = 1.0
    listener_workers: int = 2

    def set_config_defaults(self, new_config: Mapping[str, object] | None = None) -> Config:
        config = deepcopy(self)
        if new_config:
            for key, value in new_config.items():
                try:
                    setattr(config, key, value)
                except ValidationError as exc:
                    raise InvalidConfiguration(f"Config {key!r} has an invalid value {value!r}: {exc}") from exc

        validate_config(config)
        return config


def validate_config(config: Config) -> None:
    if not config.probe_payload:
        raise InvalidConfiguration("Config 'probe_payload' must not be empty")

    # No operation in the resolution pass may block indefinitely.
    if config.probe_flush_timeout <= 0:
        raise InvalidConfiguration(
            f"Config 'probe_flush_timeout' must be a positive number of seconds, got {config.probe_flush_timeout}"
        )

    if config.listener_timeout <= 0:
        raise InvalidConfiguration(f"Config 'listener_timeout' must be positive, got {config.listener_timeout}")

    if config.listener_workers < 1:
        raise InvalidConfiguration(f"Config 'listener_workers' must be at least 1, got {config.listener_workers}")


def read_config(config_file: Path | str | None = None) -> Config:
    """Returns validated settings.

    Environment variables take precedence over the optional JSON settings file.
    """
    if config_file is None:
        config = Config()
    else:
        json_file = Path(config_file)
        if not json_file.is_file():
            raise InvalidConfiguration(f"Settings file {str(json_file)!r} does not exist")

        class FileConfig(Config):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls: type[BaseSettings],
                init_settings: PydanticBaseSettingsSource,
                env_settings: PydanticBaseSettingsSource,
                dotenv_settings: PydanticBaseSettingsSource,
                file_secret_settings: PydanticBaseSettingsSource,
            ) -> tuple[PydanticBaseSettingsSource, ...]:
                return (
                    init_settings,
                    env_settings,
                    JsonConfigSettingsSource(settings_cls=settings_cls, json_file=json_file),
                    dotenv_settings,
                    file_secret_settings,
                )

        config = FileConfig()

    validate_config(config)
    return config
