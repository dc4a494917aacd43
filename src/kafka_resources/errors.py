"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kafka_resources.typing import EntityKind


class ResolutionError(Exception):
    """Base for the failures recorded in a resolution report."""

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause


class ConfigError(ResolutionError):
    def __init__(self, field: str, cause: str) -> None:
        super().__init__(cause)
        self.field = field

    def __str__(self) -> str:
        return f"{self.field}: {self.cause}"


class OpenError(ResolutionError):
    pass


class BindError(ResolutionError):
    pass


class ProbeError(ResolutionError):
    pass


class RetrievalError(ResolutionError):
    pass


class UnresolvedReference(ResolutionError):
    def __init__(self, kind: EntityKind, reference: str) -> None:
        super().__init__(f"{kind} {reference!r} does not exist")
        self.kind = kind
        self.reference = reference


class ConfigRejected(Exception):
    pass


class ConnectionOpenRejected(Exception):
    pass


class TopicHandleRejected(Exception):
    pass


class ConnectionClosedError(Exception):
    pass


class StoreError(Exception):
    pass


class StoreOpenError(StoreError):
    pass


class InvalidEntity(StoreError):
    pass


class ModuleLoadDeclined(Exception):
    pass
