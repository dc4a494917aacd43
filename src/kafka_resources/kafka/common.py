"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from aiokafka.errors import (
    for_code,
    IllegalStateError,
    KafkaTimeoutError,
    KafkaUnavailableError,
    UnknownTopicOrPartitionError,
)
from confluent_kafka.error import KafkaError, KafkaException
from typing import NoReturn


def translate_from_kafkaerror(error: KafkaError) -> Exception:
    """Translate a `KafkaError` from `confluent_kafka` to a friendlier exception.

    `aiokafka.errors.for_code` maps the error code to a domain specific error class.
    Error codes internal to librdkafka are negative and handled separately.
    """
    code = error.code()
    if code in (
        KafkaError._NOENT,
        KafkaError._UNKNOWN_PARTITION,
        KafkaError._UNKNOWN_TOPIC,
    ):
        return UnknownTopicOrPartitionError()
    if code == KafkaError._TIMED_OUT:
        return KafkaTimeoutError()
    if code == KafkaError._STATE:
        return IllegalStateError()
    if code == KafkaError._RESOLVE:
        return KafkaUnavailableError()

    return for_code(code)(error.str())


def raise_from_kafkaexception(exc: KafkaException) -> NoReturn:
    """Raises an `aiokafka` error in place of the wrapped `KafkaError`."""
    raise translate_from_kafkaerror(exc.args[0]) from exc
