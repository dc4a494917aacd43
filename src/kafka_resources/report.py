"""
kafka_resources - resolution report

Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from __future__ import annotations

from dataclasses import dataclass, field
from kafka_resources.errors import ResolutionError
from kafka_resources.typing import EntityKind


@dataclass(frozen=True, slots=True, kw_only=True)
class Outcome:
    kind: EntityKind
    entity_id: str
    parent_id: str | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def signature(self) -> tuple[str, str, str | None, str | None, str | None]:
        if self.error is None:
            return (self.kind.value, self.entity_id, self.parent_id, None, None)
        return (self.kind.value, self.entity_id, self.parent_id, self.error.__class__.__name__, self.error.cause)


@dataclass
class ResolutionReport:
    outcomes: list[Outcome] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionReport):
            return NotImplemented
        return self.summary() == other.summary()

    __hash__ = None  # type: ignore[assignment]

    def record_success(self, kind: EntityKind, entity_id: str, *, parent_id: str | None = None) -> None:
        self.outcomes.append(Outcome(kind=kind, entity_id=entity_id, parent_id=parent_id))

    def record_failure(
        self,
        kind: EntityKind,
        entity_id: str,
        error: ResolutionError,
        *,
        parent_id: str | None = None,
    ) -> None:
        self.outcomes.append(Outcome(kind=kind, entity_id=entity_id, parent_id=parent_id, error=error))

    @property
    def successes(self) -> list[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failures(self) -> list[Outcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def failures_for(self, entity_id: str) -> list[Outcome]:
        return [outcome for outcome in self.failures if outcome.entity_id == entity_id]

    def summary(self) -> frozenset[tuple[str, str, str | None, str | None, str | None]]:
        return frozenset(outcome.signature() for outcome in self.outcomes)

    def format(self) -> str:
        lines = [f"{len(self.successes)} succeeded, {len(self.failures)} failed"]
        for outcome in sorted(self.outcomes, key=lambda o: (o.kind.value, o.entity_id, o.parent_id or "")):
            parent = f" (via {outcome.parent_id})" if outcome.parent_id else ""
            if outcome.error is None:
                lines.append(f"  ok      {outcome.kind} {outcome.entity_id}{parent}")
            else:
                lines.append(
                    f"  FAILED  {outcome.kind} {outcome.entity_id}{parent}: {outcome.error.__class__.__name__} {outcome.error}"
                )
        return "\n".join(lines)
