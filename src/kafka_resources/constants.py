"""
kafka_resources - constants

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""
from typing import Final

DEFAULT_TOPOLOGY_FILE: Final = "kafka.conf"
DEFAULT_PROBE_PAYLOAD: Final = "test"
DEFAULT_FLUSH_TIMEOUT_S: Final = 10.0

DEFAULT_BROKERS: Final = "localhost"
DEFAULT_CLIENT_ID: Final = "asterisk"
DEFAULT_PORT: Final = 1883

TOPIC_NAME_MAX_LENGTH: Final = 249
VERIFY_CONNECTION_ATTEMPTS: Final = 3
