"""
kafka_resources - broker client adapter

The resolution engine only talks to the client library through `KafkaClient`.
librdkafka owns topic handles and per-topic opaque pointers; `confluent_kafka`
exposes neither, so both are modelled here: a `TopicHandle` carries the opaque
value handed in at creation time and every delivery report for a message sent
through it is passed back to the connection's delivery callback together with
that value.

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from aiokafka.errors import AuthenticationFailedError, NoBrokersAvailable
from collections.abc import Callable, Hashable
from confluent_kafka import Message, Producer
from confluent_kafka.error import KafkaError, KafkaException
from functools import partial
from kafka_resources.constants import TOPIC_NAME_MAX_LENGTH, VERIFY_CONNECTION_ATTEMPTS
from kafka_resources.errors import ConfigRejected, ConnectionClosedError, ConnectionOpenRejected, TopicHandleRejected
from kafka_resources.kafka.common import raise_from_kafkaexception
from kafka_resources.typing import SaslMechanism, SecurityProtocol
from threading import Lock
from typing import Final

import confluent_kafka
import logging
import re

LOG = logging.getLogger(__name__)

ClientConfig = dict[str, str]
DeliveryCallback = Callable[[Hashable, "KafkaError | None", "Message | None"], None]

_LEGAL_TOPIC_NAME: Final = re.compile(r"^[a-zA-Z0-9._-]+$")


def _validate_brokers(value: str) -> None:
    if not [broker for broker in value.split(",") if broker.strip()]:
        raise ConfigRejected("Broker list must not be empty")


def _validate_security_protocol(value: str) -> None:
    allowed = [protocol.value for protocol in SecurityProtocol]
    if value.lower() not in allowed:
        raise ConfigRejected(f"Invalid value {value!r} for configuration property, expected one of: {', '.join(allowed)}")


def _validate_sasl_mechanism(value: str) -> None:
    allowed = [mechanism.value for mechanism in SaslMechanism]
    if value.upper() not in allowed:
        raise ConfigRejected(f"Unsupported value {value!r} for configuration property, expected one of: {', '.join(allowed)}")


def _accept_any(value: str) -> None:
    pass


CONFIG_PROPERTIES: Final[dict[str, Callable[[str], None]]] = {
    "bootstrap.servers": _validate_brokers,
    "security.protocol": _validate_security_protocol,
    "sasl.mechanism": _validate_sasl_mechanism,
    "sasl.username": _accept_any,
    "sasl.password": _accept_any,
    "client.id": _accept_any,
}


def validate_topic_name(name: str) -> None:
    if not name:
        raise TopicHandleRejected("Topic name must not be empty")
    if name in (".", ".."):
        raise TopicHandleRejected(f"Topic name {name!r} is reserved")
    if len(name) > TOPIC_NAME_MAX_LENGTH:
        raise TopicHandleRejected(f"Topic name is longer than {TOPIC_NAME_MAX_LENGTH} characters")
    if not _LEGAL_TOPIC_NAME.match(name):
        raise TopicHandleRejected(f"Topic name {name!r} contains characters other than ASCII alphanumerics, '.', '_' and '-'")


def _on_delivery_callback(
    on_delivery: DeliveryCallback,
    opaque: Hashable,
    error: KafkaError | None,
    msg: Message | None,
) -> None:
    on_delivery(opaque, error, msg)


class ProducerHandle:
    """An open producer-mode connection."""

    def __init__(self, producer: Producer, on_delivery: DeliveryCallback) -> None:
        self.producer: Producer | None = producer
        self.on_delivery = on_delivery
        self.errors: set[KafkaError] = set()
        self._lock = Lock()

    @property
    def closed(self) -> bool:
        return self.producer is None

    def error_callback(self, error: KafkaError) -> None:
        with self._lock:
            self.errors.add(error)

    def get_producer(self) -> Producer:
        producer = self.producer
        if producer is None:
            raise ConnectionClosedError("Producer connection is closed")
        return producer


class TopicHandle:
    def __init__(self, connection: ProducerHandle, name: str, opaque: Hashable) -> None:
        self.connection = connection
        self.name = name
        self.opaque = opaque
        self.destroyed = False

    def __repr__(self) -> str:
        return f"TopicHandle(name={self.name!r}, opaque={self.opaque!r}, destroyed={self.destroyed})"


class KafkaClient:
    def __init__(self, *, verify_connection: bool = False) -> None:
        self.verify_connection = verify_connection

    def version(self) -> str:
        return confluent_kafka.libversion()[0]

    def new_config(self) -> ClientConfig:
        return {}

    def set_config(self, config: ClientConfig, name: str, value: str) -> None:
        validator = CONFIG_PROPERTIES.get(name)
        if validator is None:
            raise ConfigRejected(f"No such configuration property: {name!r}")
        validator(value)
        config[name] = value

    def open(self, config: ClientConfig, on_delivery: DeliveryCallback) -> ProducerHandle:
        handle: ProducerHandle | None = None

        def error_callback(error: KafkaError) -> None:
            if handle is not None:
                handle.error_callback(error)

        try:
            producer = Producer({**config, "error_cb": error_callback})
        except (KafkaException, ValueError, TypeError) as exc:
            raise ConnectionOpenRejected(str(exc)) from exc

        handle = ProducerHandle(producer, on_delivery)
        # Any client in the `confluent_kafka` library needs `poll` called to
        # trigger the registered callbacks.
        producer.poll(0.0)
        if self.verify_connection:
            try:
                self._verify_connection(handle)
            except (NoBrokersAvailable, AuthenticationFailedError) as exc:
                self.close(handle)
                raise ConnectionOpenRejected(f"{exc.__class__.__name__}: {exc}") from exc
        return handle

    def _verify_connection(self, handle: ProducerHandle) -> None:
        """Attempts to call `list_topics` a few times.

        Instantiating a client doesn't surface connection errors in the calling
        thread, listing topics is the cheapest synchronous call that does.
        """
        producer = handle.get_producer()
        for _ in range(VERIFY_CONNECTION_ATTEMPTS):
            try:
                producer.list_topics(timeout=1)
            except KafkaException as exc:
                producer.poll(0.0)
                LOG.info("Could not establish connection due to errors: %s", handle.errors)
                if any(error.code() == KafkaError._AUTHENTICATION for error in handle.errors):
                    raise AuthenticationFailedError() from exc
                continue
            else:
                break
        else:
            raise NoBrokersAvailable()

    def close(self, handle: ProducerHandle) -> None:
        if handle.closed:
            LOG.warning("Producer connection %r closed twice", handle)
            return
        LOG.debug("Destroying producer %r", handle.producer)
        # librdkafka destroys the instance once the last reference is gone.
        handle.producer = None

    def create_topic_handle(self, handle: ProducerHandle, name: str, opaque: Hashable) -> TopicHandle:
        if handle.closed:
            raise TopicHandleRejected("Producer connection is closed")
        validate_topic_name(name)
        return TopicHandle(handle, name, opaque)

    def destroy_topic_handle(self, topic_handle: TopicHandle) -> None:
        LOG.debug("Destroying %r", topic_handle)
        topic_handle.destroyed = True

    def produce(self, topic_handle: TopicHandle, payload: bytes) -> None:
        if topic_handle.destroyed:
            raise ConnectionClosedError(f"Topic handle for {topic_handle.name!r} is destroyed")
        connection = topic_handle.connection
        producer = connection.get_producer()
        try:
            producer.produce(
                topic_handle.name,
                value=payload,
                on_delivery=partial(_on_delivery_callback, connection.on_delivery, topic_handle.opaque),
            )
        except KafkaException as exc:
            raise_from_kafkaexception(exc)

    def flush(self, handle: ProducerHandle, timeout: float) -> int:
        """Blocks until the queue is drained or `timeout` expires.

        Returns the number of messages still queued.
        """
        return handle.get_producer().flush(timeout)
