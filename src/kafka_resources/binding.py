"""
kafka_resources - topic bindings

A binding materializes one topic against one live producer connection. The
client library needs a way back to the binding when it reports delivery of a
message. It is given an integer key into a `BindingRegistry` rather than the
binding itself, the registry only keeps weak references. The binding stays the
sole strong owner of its topic handle and of its counted reference on the
connection.

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from collections.abc import Hashable
from confluent_kafka import Message
from confluent_kafka.error import KafkaError
from kafka_resources.connection import ClusterConnection
from kafka_resources.errors import BindError, ConnectionClosedError, ProbeError, TopicHandleRejected
from kafka_resources.kafka.client import KafkaClient, TopicHandle
from kafka_resources.kafka.common import translate_from_kafkaerror
from kafka_resources.models import Topic
from kafka_resources.typing import FlushPolarity
from threading import Lock
from types import TracebackType

import aiokafka.errors as Errors
import itertools
import logging
import weakref

LOG = logging.getLogger(__name__)


def flush_failed(remaining: int, polarity: FlushPolarity) -> bool:
    """Whether a flush that left `remaining` messages queued fails the probe."""
    if polarity is FlushPolarity.success_is_failure:
        return remaining == 0
    return remaining > 0


class BindingRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._keys = itertools.count(1)
        self._bindings: dict[int, weakref.ref[TopicBinding]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)

    def register(self, binding: TopicBinding) -> int:
        with self._lock:
            key = next(self._keys)
            self._bindings[key] = weakref.ref(binding)
        return key

    def unregister(self, key: int) -> None:
        with self._lock:
            self._bindings.pop(key, None)

    def resolve(self, key: Hashable) -> TopicBinding | None:
        with self._lock:
            ref = self._bindings.get(key)  # type: ignore[call-overload]
        return ref() if ref is not None else None

    def on_delivery(self, opaque: Hashable, error: KafkaError | None, msg: Message | None) -> None:
        """Delivery report callback, may run on a client library thread."""
        binding = self.resolve(opaque)
        if binding is None:
            LOG.debug("Delivery report for released binding %r: %s", opaque, error)
            return
        binding.delivery_report(error, msg)


class TopicBinding:
    def __init__(self, topic: Topic, connection: ClusterConnection, client: KafkaClient, registry: BindingRegistry) -> None:
        self.topic = topic
        self.connection = connection
        self.client = client
        self.registry = registry
        self.key: int | None = None
        self.handle: TopicHandle | None = None
        self.delivered = 0
        self.delivery_errors: list[Exception] = []
        self._lock = Lock()
        self._released = False

    def __repr__(self) -> str:
        return f"TopicBinding(topic={self.topic.id!r}, key={self.key!r}, released={self._released})"

    def __enter__(self) -> TopicBinding:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self._released

    def delivery_report(self, error: KafkaError | None, msg: Message | None) -> None:
        with self._lock:
            if error is not None:
                self.delivery_errors.append(translate_from_kafkaerror(error))
            else:
                self.delivered += 1
        if error is not None:
            LOG.info("Kafka topic %s delivery error: %s", self.topic.id, error)

    def failed_deliveries(self) -> list[Exception]:
        with self._lock:
            return list(self.delivery_errors)

    def release(self) -> None:
        with self._lock:
            if self._released:
                LOG.warning("Binding for topic %s released twice", self.topic.id)
                return
            self._released = True

        # Topic handle, then the back-reference, then the connection reference.
        try:
            if self.handle is not None:
                self.client.destroy_topic_handle(self.handle)
        finally:
            try:
                if self.key is not None:
                    self.registry.unregister(self.key)
            finally:
                self.connection.release()


class TopicBinder:
    def __init__(
        self,
        client: KafkaClient,
        registry: BindingRegistry,
        *,
        payload: bytes,
        flush_timeout: float,
        flush_polarity: FlushPolarity = FlushPolarity.remaining_is_failure,
    ) -> None:
        self.client = client
        self.registry = registry
        self.payload = payload
        self.flush_timeout = flush_timeout
        self.flush_polarity = flush_polarity

    def bind(self, connection: ClusterConnection, topic: Topic) -> TopicBinding:
        try:
            connection.acquire()
        except ConnectionClosedError as exc:
            raise BindError(str(exc)) from exc

        binding = TopicBinding(topic, connection, self.client, self.registry)
        binding.key = self.registry.register(binding)
        try:
            binding.handle = self.client.create_topic_handle(connection.handle, topic.topic_name, binding.key)
        except TopicHandleRejected as exc:
            self.registry.unregister(binding.key)
            connection.release()
            raise BindError(str(exc)) from exc

        LOG.debug("Bound topic %s (%s) to producer %s", topic.id, topic.topic_name, connection.producer_id)
        return binding

    def probe(self, binding: TopicBinding) -> None:
        """Sends the canary payload and flushes the connection.

        Raises `ProbeError` when the send, the bounded flush or the delivery fails.
        """
        if binding.released or binding.handle is None:
            raise ProbeError(f"Binding for topic {binding.topic.id!r} is released")

        try:
            self.client.produce(binding.handle, self.payload)
        except (Errors.KafkaError, BufferError, ConnectionClosedError) as exc:
            raise ProbeError(f"Unable to produce message: {exc.__class__.__name__} {exc}") from exc

        try:
            remaining = binding.connection.flush(self.flush_timeout)
        except ConnectionClosedError as exc:
            raise ProbeError(str(exc)) from exc

        if flush_failed(remaining, self.flush_polarity):
            raise ProbeError(f"Flush finished with {remaining} message(s) queued ({self.flush_polarity})")

        errors = binding.failed_deliveries()
        if errors:
            raise ProbeError(f"Delivery failed: {errors[-1].__class__.__name__} {errors[-1]}")
