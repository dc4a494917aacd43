"""
kafka_resources - producer lifecycle notifications

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from kafka_resources.models import Entity, Producer
from kafka_resources.typing import EntityKind, LifecycleEvent
from threading import Lock

import logging
import time

LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class LifecycleNotification:
    event: LifecycleEvent
    producer: Producer | None = None
    kind: EntityKind | None = None


Listener = Callable[[LifecycleNotification], None]


class ProducerLifecycleBus:
    """Store observer for producer entities.

    Every event is logged. Additional listeners run on a small worker pool so the
    store's caller never waits on them, a listener is called once per event and
    never retried.
    """

    def __init__(self, *, timeout: float = 1.0, workers: int = 2) -> None:
        self.timeout = timeout
        self._lock = Lock()
        self._listeners: list[Listener] = []
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="producer-lifecycle")
        self._closed = False

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.remove(listener)

    def created(self, entity: Entity) -> None:
        self.notify(LifecycleNotification(event=LifecycleEvent.created, producer=_as_producer(entity)))

    def updated(self, entity: Entity) -> None:
        self.notify(LifecycleNotification(event=LifecycleEvent.updated, producer=_as_producer(entity)))

    def deleted(self, entity: Entity) -> None:
        self.notify(LifecycleNotification(event=LifecycleEvent.deleted, producer=_as_producer(entity)))

    def loaded(self, kind: EntityKind) -> None:
        self.notify(LifecycleNotification(event=LifecycleEvent.loaded, kind=kind))

    def notify(self, notification: LifecycleNotification) -> None:
        producer_id = notification.producer.id if notification.producer is not None else None
        LOG.debug(
            "on_producer_%s %s",
            notification.event,
            producer_id if producer_id is not None else notification.kind,
            extra={"event": notification.event.value, "producer_id": producer_id},
        )

        with self._lock:
            if self._closed:
                return
            listeners = list(self._listeners)
            for listener in listeners:
                future = self._executor.submit(self._run_listener, listener, notification)
                future.add_done_callback(_log_listener_failure)

    def _run_listener(self, listener: Listener, notification: LifecycleNotification) -> None:
        start_time = time.monotonic()
        listener(notification)
        elapsed = time.monotonic() - start_time
        if elapsed > self.timeout:
            LOG.warning(
                "Lifecycle listener %r took %.2fs for %s, limit is %.2fs", listener, elapsed, notification.event, self.timeout
            )

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)


def _as_producer(entity: Entity) -> Producer:
    if not isinstance(entity, Producer):
        raise TypeError(f"Expected a producer, got {entity.kind} {entity.id!r}")
    return entity


def _log_listener_failure(future: Future[None]) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOG.error("Lifecycle listener failed", exc_info=exc)
