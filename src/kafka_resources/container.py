"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from dependency_injector import containers, providers
from kafka_resources.binding import BindingRegistry
from kafka_resources.config import Config
from kafka_resources.kafka.client import KafkaClient
from kafka_resources.lifecycle import ProducerLifecycleBus
from kafka_resources.module import KafkaResourceModule


class KafkaResourcesContainer(containers.DeclarativeContainer):
    config = providers.Singleton(Config)

    kafka_client = providers.Singleton(KafkaClient, verify_connection=config.provided.verify_connection)

    binding_registry = providers.Singleton(BindingRegistry)

    lifecycle_bus = providers.Singleton(
        ProducerLifecycleBus,
        timeout=config.provided.listener_timeout,
        workers=config.provided.listener_workers,
    )

    module = providers.Singleton(
        KafkaResourceModule,
        config=config,
        client=kafka_client,
        registry=binding_registry,
        lifecycle_bus=lifecycle_bus,
    )
