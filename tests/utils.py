"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""
from __future__ import annotations

from collections.abc import Hashable
from confluent_kafka.error import KafkaError
from kafka_resources.errors import ConnectionOpenRejected, TopicHandleRejected
from kafka_resources.kafka.client import ClientConfig, DeliveryCallback, KafkaClient, ProducerHandle, TopicHandle
from kafka_resources.models import Cluster, Consumer, Producer, Topic
from kafka_resources.store import EntityStore
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import textwrap


class FakeKafkaClient(KafkaClient):
    """Records every library call, configuration validation is the real one."""

    def __init__(self) -> None:
        super().__init__(verify_connection=False)
        self.calls: list[tuple[str, Any]] = []
        self.opened_configs: list[ClientConfig] = []
        self.open_error: str | None = None
        self.rejected_topics: set[str] = set()
        self.produce_error: Exception | None = None
        self.delivery_error: KafkaError | None = None
        self.flush_remaining = 0
        self._pending: list[TopicHandle] = []

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        return self.call_names().count(name)

    def open(self, config: ClientConfig, on_delivery: DeliveryCallback) -> ProducerHandle:
        self.calls.append(("open", dict(config)))
        if self.open_error is not None:
            raise ConnectionOpenRejected(self.open_error)
        self.opened_configs.append(dict(config))
        return ProducerHandle(MagicMock(name="Producer"), on_delivery)

    def close(self, handle: ProducerHandle) -> None:
        self.calls.append(("close", handle))
        super().close(handle)

    def create_topic_handle(self, handle: ProducerHandle, name: str, opaque: Hashable) -> TopicHandle:
        self.calls.append(("create_topic_handle", name))
        if name in self.rejected_topics:
            raise TopicHandleRejected(f"Topic {name!r} rejected")
        return super().create_topic_handle(handle, name, opaque)

    def destroy_topic_handle(self, topic_handle: TopicHandle) -> None:
        self.calls.append(("destroy_topic_handle", topic_handle.name))
        super().destroy_topic_handle(topic_handle)

    def produce(self, topic_handle: TopicHandle, payload: bytes) -> None:
        self.calls.append(("produce", (topic_handle.name, payload)))
        if self.produce_error is not None:
            raise self.produce_error
        self._pending.append(topic_handle)

    def flush(self, handle: ProducerHandle, timeout: float) -> int:
        self.calls.append(("flush", timeout))
        pending, self._pending = self._pending, []
        for topic_handle in pending:
            handle.on_delivery(topic_handle.opaque, self.delivery_error, None)
        return self.flush_remaining


def cluster(entity_id: str = "main", **fields: Any) -> Cluster:
    return Cluster(id=entity_id, **fields)


def producer(entity_id: str, cluster_id: str) -> Producer:
    return Producer(id=entity_id, cluster_id=cluster_id)


def consumer(entity_id: str, cluster_id: str) -> Consumer:
    return Consumer(id=entity_id, cluster_id=cluster_id)


def topic(entity_id: str, topic_name: str | None = None, *, producer_id: str = "", consumer_id: str = "") -> Topic:
    return Topic(id=entity_id, topic_name=topic_name or entity_id, producer_id=producer_id, consumer_id=consumer_id)


def populated_store(*entities: Cluster | Producer | Consumer | Topic) -> EntityStore:
    store = EntityStore()
    for entity in entities:
        store.create(entity)
    return store


def write_topology(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf8")
    return path
