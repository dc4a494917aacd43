"""
kafka_resources - topology resolution

Walks clusters, then the producers and consumers of each cluster, then the
topics of each producer and consumer. Failures are recorded in the report and
never stop the walk over sibling entities.

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from kafka_resources.binding import TopicBinder
from kafka_resources.connection import ClusterConnection, ClusterConnectionFactory, ConnectionConfigBuilder
from kafka_resources.errors import BindError, ConfigError, OpenError, ProbeError, RetrievalError, StoreError, UnresolvedReference
from kafka_resources.models import Cluster, Consumer, Entity, Producer, Topic
from kafka_resources.report import ResolutionReport
from kafka_resources.store import EntityStore
from kafka_resources.typing import EntityKind
from typing import cast

import logging

LOG = logging.getLogger(__name__)


class TopologyResolver:
    def __init__(
        self,
        store: EntityStore,
        builder: ConnectionConfigBuilder,
        factory: ClusterConnectionFactory,
        binder: TopicBinder,
    ) -> None:
        self.store = store
        self.builder = builder
        self.factory = factory
        self.binder = binder

    def resolve_all(self) -> ResolutionReport:
        report = ResolutionReport()

        clusters = cast(list[Cluster], self.store.retrieve_all(EntityKind.cluster))
        self._check_references({cluster.id for cluster in clusters}, report)

        for cluster in clusters:
            self._process_cluster(cluster, report)

        LOG.info(
            "Topology resolved: %d succeeded, %d failed",
            len(report.successes),
            len(report.failures),
        )
        return report

    def _retrieve(self, kind: EntityKind, **fields: str) -> list[Entity]:
        try:
            return self.store.retrieve_by_fields(kind, **fields)
        except StoreError as exc:
            raise RetrievalError(f"Unable to retrieve {kind} entities: {exc}") from exc

    def _check_references(self, cluster_ids: set[str], report: ResolutionReport) -> None:
        known: dict[EntityKind, set[str]] = {}
        for kind in (EntityKind.producer, EntityKind.consumer):
            entities = self.store.retrieve_all(kind)
            known[kind] = {entity.id for entity in entities}
            for entity in cast(list[Producer | Consumer], entities):
                if entity.cluster_id not in cluster_ids:
                    LOG.warning("Kafka %s %s references unknown cluster %s", kind, entity.id, entity.cluster_id)
                    report.record_failure(kind, entity.id, UnresolvedReference(EntityKind.cluster, entity.cluster_id))

        for topic in cast(list[Topic], self.store.retrieve_all(EntityKind.topic)):
            for kind, reference in ((EntityKind.producer, topic.producer_id), (EntityKind.consumer, topic.consumer_id)):
                if reference and reference not in known[kind]:
                    LOG.warning("Kafka topic %s references unknown %s %s", topic.id, kind, reference)
                    report.record_failure(EntityKind.topic, topic.id, UnresolvedReference(kind, reference))

    def _process_cluster(self, cluster: Cluster, report: ResolutionReport) -> None:
        LOG.debug("Kafka cluster at %s: brokers=%s client_id=%s", cluster.id, cluster.brokers, cluster.client_id)

        try:
            producers = cast(list[Producer], self._retrieve(EntityKind.producer, cluster_id=cluster.id))
        except RetrievalError as exc:
            LOG.warning("Unable to retrieve producers from cluster %s: %s", cluster.id, exc)
            report.record_failure(EntityKind.cluster, cluster.id, exc)
        else:
            for producer in producers:
                self._process_producer(cluster, producer, report)

        try:
            consumers = cast(list[Consumer], self._retrieve(EntityKind.consumer, cluster_id=cluster.id))
        except RetrievalError as exc:
            LOG.warning("Unable to retrieve consumers from cluster %s: %s", cluster.id, exc)
            report.record_failure(EntityKind.cluster, cluster.id, exc)
        else:
            for consumer in consumers:
                self._process_consumer(cluster, consumer, report)

    def _process_producer(self, cluster: Cluster, producer: Producer, report: ResolutionReport) -> None:
        LOG.debug("Process Kafka producer %s on cluster %s", producer.id, cluster.id)

        try:
            topics = cast(list[Topic], self._retrieve(EntityKind.topic, producer_id=producer.id))
        except RetrievalError as exc:
            LOG.warning("Unable to retrieve topics from producer %s at cluster %s: %s", producer.id, cluster.id, exc)
            report.record_failure(EntityKind.producer, producer.id, exc, parent_id=cluster.id)
            return

        if not topics:
            LOG.debug("Kafka producer %s has no topics, not connecting", producer.id)
            return

        try:
            connection = self.factory.open(cluster, producer.id)
        except (ConfigError, OpenError) as exc:
            LOG.error("Kafka cluster '%s': unable to create producer '%s' because %s", cluster.id, producer.id, exc)
            report.record_failure(EntityKind.producer, producer.id, exc, parent_id=cluster.id)
            return

        with connection:
            for topic in topics:
                self._process_producer_topic(connection, topic, report)

    def _process_producer_topic(self, connection: ClusterConnection, topic: Topic, report: ResolutionReport) -> None:
        LOG.debug("Process Kafka topic %s for producer %s", topic.id, connection.producer_id)

        try:
            binding = self.binder.bind(connection, topic)
        except BindError as exc:
            LOG.error("Unable to create producer topic '%s' because %s", topic.id, exc)
            report.record_failure(EntityKind.topic, topic.id, exc, parent_id=connection.producer_id)
            return

        with binding:
            try:
                self.binder.probe(binding)
            except ProbeError as exc:
                LOG.error("Kafka producer topic %s got error: %s", topic.id, exc)
                report.record_failure(EntityKind.topic, topic.id, exc, parent_id=connection.producer_id)
                return

        report.record_success(EntityKind.topic, topic.id, parent_id=connection.producer_id)

    def _process_consumer(self, cluster: Cluster, consumer: Consumer, report: ResolutionReport) -> None:
        LOG.debug("Process Kafka consumer %s on cluster %s", consumer.id, cluster.id)

        # Only checks the cluster settings are usable, no consumer connection is opened.
        try:
            config = self.builder.build(cluster)
        except ConfigError as exc:
            LOG.error("Kafka cluster '%s': unusable configuration for consumer '%s': %s", cluster.id, consumer.id, exc)
            report.record_failure(EntityKind.consumer, consumer.id, exc, parent_id=cluster.id)
            return
        config.clear()

        try:
            topics = cast(list[Topic], self._retrieve(EntityKind.topic, consumer_id=consumer.id))
        except RetrievalError as exc:
            LOG.warning("Unable to retrieve topics from consumer %s at cluster %s: %s", consumer.id, cluster.id, exc)
            report.record_failure(EntityKind.consumer, consumer.id, exc, parent_id=cluster.id)
            return

        for topic in topics:
            LOG.debug("Process Kafka topic %s for consumer %s on cluster %s", topic.id, consumer.id, cluster.id)
            report.record_success(EntityKind.topic, topic.id, parent_id=consumer.id)
