"""
kafka_resources - topology entity models

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from kafka_resources.constants import DEFAULT_BROKERS, DEFAULT_CLIENT_ID, DEFAULT_PORT
from kafka_resources.typing import EntityKind, SaslMechanism, SecurityProtocol
from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    kind: ClassVar[EntityKind]

    id: str = Field(min_length=1)


class Cluster(Entity):
    kind: ClassVar[EntityKind] = EntityKind.cluster

    # Validated by the client library, rejections become a ConfigError.
    brokers: str = DEFAULT_BROKERS
    security_protocol: str = SecurityProtocol.plaintext.value
    sasl_mechanism: str = SaslMechanism.plain.value
    sasl_username: str = ""
    sasl_password: str = Field(default="", repr=False)
    client_id: str = DEFAULT_CLIENT_ID
    port: int = Field(default=DEFAULT_PORT, ge=0)
    use_ssl: bool = Field(default=False, alias="ssl")

    @property
    def broker_list(self) -> list[str]:
        return [broker.strip() for broker in self.brokers.split(",") if broker.strip()]


class Producer(Entity):
    kind: ClassVar[EntityKind] = EntityKind.producer

    cluster_id: str = Field(alias="cluster")


class Consumer(Entity):
    kind: ClassVar[EntityKind] = EntityKind.consumer

    cluster_id: str = Field(alias="cluster")


class Topic(Entity):
    kind: ClassVar[EntityKind] = EntityKind.topic

    topic_name: str = Field(alias="topic", min_length=1)
    producer_id: str = Field(default="", alias="producer")
    consumer_id: str = Field(default="", alias="consumer")


ENTITY_MODELS: dict[EntityKind, type[Entity]] = {
    EntityKind.cluster: Cluster,
    EntityKind.producer: Producer,
    EntityKind.consumer: Consumer,
    EntityKind.topic: Topic,
}
