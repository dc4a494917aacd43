"""
kafka_resources - module lifecycle

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from kafka_resources.binding import BindingRegistry, TopicBinder
from kafka_resources.config import Config
from kafka_resources.connection import ClusterConnectionFactory, ConnectionConfigBuilder
from kafka_resources.errors import ModuleLoadDeclined, StoreOpenError
from kafka_resources.kafka.client import KafkaClient
from kafka_resources.lifecycle import ProducerLifecycleBus
from kafka_resources.report import ResolutionReport
from kafka_resources.resolver import TopologyResolver
from kafka_resources.store import EntityStore
from kafka_resources.typing import EntityKind

import logging

LOG = logging.getLogger(__name__)


class KafkaResourceModule:
    """Owns the entity store and the producer observer for the process lifetime."""

    def __init__(
        self,
        *,
        config: Config,
        client: KafkaClient,
        registry: BindingRegistry,
        lifecycle_bus: ProducerLifecycleBus,
    ) -> None:
        self.config = config
        self.client = client
        self.registry = registry
        self.lifecycle_bus = lifecycle_bus
        self.store: EntityStore | None = None

    def load(self) -> ResolutionReport:
        store = EntityStore(self.config.topology_file)
        store.add_observer(EntityKind.producer, self.lifecycle_bus)
        try:
            store.load()
        except StoreOpenError as exc:
            LOG.error("Failed to open Kafka entity store: %s", exc)
            store.remove_observer(EntityKind.producer, self.lifecycle_bus)
            raise ModuleLoadDeclined(str(exc)) from exc

        self.store = store
        return self.resolve()

    def reload(self) -> ResolutionReport | None:
        """Re-reads the topology and resolves it again.

        Returns `None` when the topology can not be read, the previously loaded
        entities stay in place and nothing is resolved.
        """
        store = self._get_store()
        try:
            store.reload()
        except StoreOpenError as exc:
            LOG.error("Failed to reload Kafka entity store, keeping the current topology: %s", exc)
            return None
        return self.resolve()

    def unload(self) -> None:
        store = self._get_store()
        store.remove_observer(EntityKind.producer, self.lifecycle_bus)
        self.lifecycle_bus.close()
        self.store = None

    def resolve(self) -> ResolutionReport:
        return self.create_resolver(self._get_store()).resolve_all()

    def create_resolver(self, store: EntityStore) -> TopologyResolver:
        builder = ConnectionConfigBuilder(self.client)
        factory = ClusterConnectionFactory(self.client, builder, self.registry.on_delivery)
        binder = TopicBinder(
            self.client,
            self.registry,
            payload=self.config.probe_payload.encode("utf8"),
            flush_timeout=self.config.probe_flush_timeout,
            flush_polarity=self.config.probe_flush_polarity,
        )
        return TopologyResolver(store, builder, factory, binder)

    def version(self) -> str:
        return self.client.version()

    def _get_store(self) -> EntityStore:
        if self.store is None:
            raise ModuleLoadDeclined("Kafka resource module is not loaded")
        return self.store
