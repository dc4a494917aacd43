"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from enum import Enum, unique


class StrEnum(str, Enum):
    def __str__(self) -> str:
        return str(self.value)


@unique
class EntityKind(StrEnum):
    cluster = "cluster"
    producer = "producer"
    consumer = "consumer"
    topic = "topic"


@unique
class SecurityProtocol(StrEnum):
    plaintext = "plaintext"
    ssl = "ssl"
    sasl_plaintext = "sasl_plaintext"
    sasl_ssl = "sasl_ssl"


@unique
class SaslMechanism(StrEnum):
    plain = "PLAIN"
    gssapi = "GSSAPI"
    scram_sha_256 = "SCRAM-SHA-256"
    scram_sha_512 = "SCRAM-SHA-512"
    oauthbearer = "OAUTHBEARER"


@unique
class LifecycleEvent(StrEnum):
    created = "created"
    updated = "updated"
    deleted = "deleted"
    loaded = "loaded"


@unique
class FlushPolarity(StrEnum):
    """How the probe interprets the result of the bounded flush.

    `remaining_is_failure` treats messages still queued after the flush as a
    failed probe. `success_is_failure` reproduces the historical behaviour where
    a fully drained queue was reported as an error.
    """

    remaining_is_failure = "remaining_is_failure"
    success_is_failure = "success_is_failure"
