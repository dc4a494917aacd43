"""
kafka_resources - logging setup

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from collections.abc import Mapping
from kafka_resources.config import Config

import logging
import sys

HANDLER_NAME = "kafka-resources"

# Settings and cluster fields whose values never reach a log record.
SECRET_MARKERS = ("password", "secret", "token")


def configure_logging(*, config: Config) -> None:
    root_handler: logging.Handler | None = None
    level = config.log_level.upper()

    log_handler = config.log_handler
    match log_handler:
        case "stdout" | None:
            root_handler = logging.StreamHandler(stream=sys.stdout)
        case "stderr":
            root_handler = logging.StreamHandler(stream=sys.stderr)
        case "systemd":
            from systemd import journal

            root_handler = journal.JournalHandler(SYSLOG_IDENTIFIER=HANDLER_NAME)
        case _:
            logging.basicConfig(level=level, format=config.log_format)
            logging.getLogger().setLevel(level)
            logging.warning("Log handler %s not recognized, root handler not set.", log_handler)

    if root_handler is not None:
        root_handler.setFormatter(logging.Formatter(config.log_format))
        root_handler.setLevel(level)
        root_handler.set_name(name=HANDLER_NAME)
        logging.root.addHandler(root_handler)

    logging.root.setLevel(level)


def mask_secrets(values: Mapping[str, object]) -> dict[str, object]:
    return {key: "****" if any(marker in key for marker in SECRET_MARKERS) else value for key, value in values.items()}


def log_config_without_secrets(config: Config) -> None:
    logging.log(logging.DEBUG, "Config %r", mask_secrets(config.model_dump()))
