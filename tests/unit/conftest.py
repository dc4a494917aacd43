"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""
from kafka_resources.binding import BindingRegistry, TopicBinder
from kafka_resources.connection import ClusterConnectionFactory, ConnectionConfigBuilder
from kafka_resources.resolver import TopologyResolver
from kafka_resources.store import EntityStore
from kafka_resources.typing import FlushPolarity
from tests.utils import FakeKafkaClient
from typing import Callable

import pytest


@pytest.fixture(name="fake_client")
def fixture_fake_client() -> FakeKafkaClient:
    return FakeKafkaClient()


@pytest.fixture(name="registry")
def fixture_registry() -> BindingRegistry:
    return BindingRegistry()


@pytest.fixture(name="builder")
def fixture_builder(fake_client: FakeKafkaClient) -> ConnectionConfigBuilder:
    return ConnectionConfigBuilder(fake_client)


@pytest.fixture(name="factory")
def fixture_factory(
    fake_client: FakeKafkaClient, builder: ConnectionConfigBuilder, registry: BindingRegistry
) -> ClusterConnectionFactory:
    return ClusterConnectionFactory(fake_client, builder, registry.on_delivery)


@pytest.fixture(name="binder")
def fixture_binder(fake_client: FakeKafkaClient, registry: BindingRegistry) -> TopicBinder:
    return TopicBinder(
        fake_client,
        registry,
        payload=b"test",
        flush_timeout=10.0,
        flush_polarity=FlushPolarity.remaining_is_failure,
    )


@pytest.fixture(name="make_resolver")
def fixture_make_resolver(
    builder: ConnectionConfigBuilder, factory: ClusterConnectionFactory, binder: TopicBinder
) -> Callable[[EntityStore], TopologyResolver]:
    def make(store: EntityStore) -> TopologyResolver:
        return TopologyResolver(store, builder, factory, binder)

    return make
