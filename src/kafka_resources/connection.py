"""
kafka_resources - cluster connections

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from kafka_resources.errors import ConfigError, ConfigRejected, ConnectionClosedError, ConnectionOpenRejected, OpenError
from kafka_resources.kafka.client import ClientConfig, DeliveryCallback, KafkaClient, ProducerHandle
from kafka_resources.models import Cluster
from kafka_resources.typing import SecurityProtocol
from threading import Lock
from types import TracebackType
from typing import Final

import logging

LOG = logging.getLogger(__name__)

# Entity field -> client property, in the order they are applied.
CLUSTER_CONFIG_FIELDS: Final = (
    ("brokers", "bootstrap.servers"),
    ("security_protocol", "security.protocol"),
    ("sasl_mechanism", "sasl.mechanism"),
    ("sasl_username", "sasl.username"),
    ("sasl_password", "sasl.password"),
    ("client_id", "client.id"),
)

_SSL_PROTOCOLS: Final = (SecurityProtocol.ssl.value, SecurityProtocol.sasl_ssl.value)


class ConnectionConfigBuilder:
    def __init__(self, client: KafkaClient) -> None:
        self.client = client

    def build(self, cluster: Cluster) -> ClientConfig:
        """Returns the client configuration for `cluster`.

        Raises `ConfigError` naming the first field the client library rejected,
        no partially built configuration escapes this method.
        """
        config = self.client.new_config()
        for field, name in CLUSTER_CONFIG_FIELDS:
            try:
                self.client.set_config(config, name, getattr(cluster, field))
            except ConfigRejected as exc:
                config.clear()
                raise ConfigError(field, str(exc)) from exc

        if cluster.use_ssl and cluster.security_protocol.lower() not in _SSL_PROTOCOLS:
            LOG.warning(
                "Kafka cluster %s: ssl is enabled but security protocol is %s",
                cluster.id,
                cluster.security_protocol,
            )
        return config


class ClusterConnection:
    """One open producer connection with counted ownership.

    The opener holds the initial reference. Topic bindings take one more each
    for as long as they use the connection. The broker connection is closed when
    the last reference is released.
    """

    def __init__(self, client: KafkaClient, handle: ProducerHandle, *, cluster_id: str, producer_id: str) -> None:
        self.client = client
        self.handle = handle
        self.cluster_id = cluster_id
        self.producer_id = producer_id
        self._lock = Lock()
        self._refcount = 1

    def __repr__(self) -> str:
        return f"ClusterConnection(cluster={self.cluster_id!r}, producer={self.producer_id!r}, refcount={self._refcount})"

    def __enter__(self) -> ClusterConnection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def refcount(self) -> int:
        with self._lock:
            return self._refcount

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._refcount == 0

    def acquire(self) -> ClusterConnection:
        with self._lock:
            if self._refcount == 0:
                raise ConnectionClosedError(f"Connection for producer {self.producer_id!r} is closed")
            self._refcount += 1
        return self

    def release(self) -> None:
        with self._lock:
            if self._refcount == 0:
                raise ConnectionClosedError(f"Connection for producer {self.producer_id!r} released too many times")
            self._refcount -= 1
            last = self._refcount == 0
        if last:
            LOG.debug("Closing connection of producer %s on cluster %s", self.producer_id, self.cluster_id)
            self.client.close(self.handle)

    def close(self) -> None:
        """Drops the opener's reference."""
        self.release()

    def flush(self, timeout: float) -> int:
        if self.closed:
            raise ConnectionClosedError(f"Connection for producer {self.producer_id!r} is closed")
        return self.client.flush(self.handle, timeout)


class ClusterConnectionFactory:
    def __init__(self, client: KafkaClient, builder: ConnectionConfigBuilder, on_delivery: DeliveryCallback) -> None:
        self.client = client
        self.builder = builder
        self.on_delivery = on_delivery

    def open(self, cluster: Cluster, producer_id: str) -> ClusterConnection:
        """Opens a producer connection to `cluster`.

        Raises `ConfigError` or `OpenError`, the caller owns the returned
        connection and must close it exactly once.
        """
        config = self.builder.build(cluster)
        try:
            handle = self.client.open(config, self.on_delivery)
        except ConnectionOpenRejected as exc:
            config.clear()
            raise OpenError(str(exc)) from exc
        return ClusterConnection(self.client, handle, cluster_id=cluster.id, producer_id=producer_id)
