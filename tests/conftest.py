"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""
from kafka_resources.container import KafkaResourcesContainer

import pytest


@pytest.fixture(name="kafka_resources_container")
def fixture_kafka_resources_container() -> KafkaResourcesContainer:
    return KafkaResourcesContainer()
