"""
kafka_resources - in memory entity store

Holds the cluster, producer, consumer and topic definitions read from a
`kafka.conf` style file. Every section is one entity, its `type` key selects
the entity kind:

    [main]
    type = cluster
    brokers = b1:9092,b2:9092

    [events]
    type = producer
    cluster = main

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from collections.abc import Iterable
from kafka_resources.errors import InvalidEntity, StoreError, StoreOpenError
from kafka_resources.models import ENTITY_MODELS, Entity
from kafka_resources.typing import EntityKind
from pathlib import Path
from pydantic import ValidationError
from threading import RLock
from typing import Protocol

import configparser
import logging

LOG = logging.getLogger(__name__)

# Section headers never span lines, so every header in the file is an entity.
_NO_DEFAULT_SECTION = "\n"


class EntityObserver(Protocol):
    def created(self, entity: Entity) -> None: ...

    def updated(self, entity: Entity) -> None: ...

    def deleted(self, entity: Entity) -> None: ...

    def loaded(self, kind: EntityKind) -> None: ...


def parse_entity(entity_id: str, values: dict[str, str]) -> Entity:
    values = dict(values)
    type_name = values.pop("type", None)
    if type_name is None:
        raise InvalidEntity(f"Section {entity_id!r} has no 'type'")
    try:
        kind = EntityKind(type_name.strip())
    except ValueError as exc:
        raise InvalidEntity(f"Section {entity_id!r} has unknown type {type_name!r}") from exc
    try:
        return ENTITY_MODELS[kind].model_validate({"id": entity_id, **values})
    except ValidationError as exc:
        raise InvalidEntity(f"Invalid {kind} {entity_id!r}: {exc}") from exc


def read_entities(path: Path) -> dict[EntityKind, dict[str, Entity]]:
    parser = configparser.ConfigParser(interpolation=None, default_section=_NO_DEFAULT_SECTION)
    try:
        with path.open(encoding="utf8") as fp:
            parser.read_file(fp)
    except (OSError, UnicodeDecodeError, configparser.Error) as exc:
        raise StoreOpenError(f"Unable to read {str(path)!r}: {exc}") from exc

    entities: dict[EntityKind, dict[str, Entity]] = {kind: {} for kind in EntityKind}
    for section in parser.sections():
        try:
            entity = parse_entity(section, dict(parser.items(section, raw=True)))
        except InvalidEntity as exc:
            LOG.error("Skipping entity: %s", exc)
            continue
        entities[entity.kind][entity.id] = entity
    return entities


class EntityStore:
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._lock = RLock()
        self._entities: dict[EntityKind, dict[str, Entity]] = {kind: {} for kind in EntityKind}
        self._observers: dict[EntityKind, list[EntityObserver]] = {kind: [] for kind in EntityKind}

    @classmethod
    def open(cls, path: Path | str) -> EntityStore:
        store = cls(path)
        store.load()
        return store

    def load(self) -> None:
        if self.path is None:
            raise StoreOpenError("Entity store has no backing file")
        entities = read_entities(self.path)
        with self._lock:
            previous = self._entities
            self._entities = entities
        LOG.info(
            "Loaded %s from %s",
            ", ".join(f"{len(entities[kind])} {kind}(s)" for kind in EntityKind),
            self.path,
        )
        self._emit_changes(previous, entities)

    def reload(self) -> None:
        self.load()

    def _emit_changes(
        self,
        previous: dict[EntityKind, dict[str, Entity]],
        current: dict[EntityKind, dict[str, Entity]],
    ) -> None:
        for kind in EntityKind:
            old, new = previous[kind], current[kind]
            for entity_id, entity in new.items():
                if entity_id not in old:
                    self._notify(kind, "created", entity)
                elif old[entity_id] != entity:
                    self._notify(kind, "updated", entity)
            for entity_id, entity in old.items():
                if entity_id not in new:
                    self._notify(kind, "deleted", entity)
            self._notify(kind, "loaded", kind)

    def create(self, entity: Entity) -> None:
        with self._lock:
            objects = self._entities[entity.kind]
            if entity.id in objects:
                raise StoreError(f"{entity.kind} {entity.id!r} already exists")
            objects[entity.id] = entity
        self._notify(entity.kind, "created", entity)

    def update(self, entity: Entity) -> None:
        with self._lock:
            objects = self._entities[entity.kind]
            if entity.id not in objects:
                raise StoreError(f"{entity.kind} {entity.id!r} does not exist")
            objects[entity.id] = entity
        self._notify(entity.kind, "updated", entity)

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        with self._lock:
            entity = self._entities[kind].pop(entity_id, None)
        if entity is None:
            raise StoreError(f"{kind} {entity_id!r} does not exist")
        self._notify(kind, "deleted", entity)

    def retrieve_all(self, kind: EntityKind) -> list[Entity]:
        with self._lock:
            return list(self._entities[kind].values())

    def retrieve_by_id(self, kind: EntityKind, entity_id: str) -> Entity | None:
        with self._lock:
            return self._entities[kind].get(entity_id)

    def retrieve_by_fields(self, kind: EntityKind, **fields: str) -> list[Entity]:
        model = ENTITY_MODELS[kind]
        unknown = [name for name in fields if name not in model.model_fields]
        if unknown:
            raise StoreError(f"Unknown {kind} field(s): {', '.join(unknown)}")
        return [
            entity
            for entity in self.retrieve_all(kind)
            if all(getattr(entity, name) == value for name, value in fields.items())
        ]

    def add_observer(self, kind: EntityKind, observer: EntityObserver) -> None:
        with self._lock:
            self._observers[kind].append(observer)

    def remove_observer(self, kind: EntityKind, observer: EntityObserver) -> None:
        with self._lock:
            try:
                self._observers[kind].remove(observer)
            except ValueError:
                LOG.warning("Observer %r was not registered for %s", observer, kind)

    def observers(self, kind: EntityKind) -> Iterable[EntityObserver]:
        with self._lock:
            return tuple(self._observers[kind])

    def _notify(self, kind: EntityKind, method: str, argument: Entity | EntityKind) -> None:
        # Observers are called outside the lock, they may query the store.
        for observer in self.observers(kind):
            try:
                getattr(observer, method)(argument)
            except Exception:  # pylint: disable=broad-except
                LOG.exception("Observer %r failed on %s %s", observer, kind, method)
