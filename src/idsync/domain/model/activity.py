"""Run bookkeeping: run profiles, watermarks and the per-run activity log."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idsync.domain.model.entity import Entity, utc_now

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from idsync.domain.model.enums import ExecutionItemErrorType, ObjectChangeType, RunType


@dataclass(frozen=True, slots=True, kw_only=True)
class RunProfile:
    """Descriptor of one run handed over by the scheduler."""

    connected_system_id: int
    run_type: RunType
    page_size: int = 500

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")


@dataclass(eq=False, kw_only=True)
class SyncWatermark:
    """Completion time of the last finished sync for a connected system."""

    connected_system_id: int
    completed_at: datetime


@dataclass(slots=True, kw_only=True)
class ExecutionItem:
    """Outcome of processing one object during a run."""

    change_type: ObjectChangeType | None = None
    error_type: ExecutionItemErrorType | None = None
    message: str | None = None
    connected_system_object_id: UUID | None = None
    object_type: str | None = None
    external_id: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error_type is not None


@dataclass(eq=False, kw_only=True)
class Activity(Entity):
    run_type: RunType
    connected_system_id: int | None = None
    started: datetime = field(default_factory=utc_now)
    completed: datetime | None = None
    cancelled: bool = False
    items: list[ExecutionItem] = field(default_factory=list["ExecutionItem"])

    def record(self, item: ExecutionItem) -> ExecutionItem:
        self.items.append(item)
        return item

    def finish(self, now: datetime, *, cancelled: bool = False) -> None:
        self.completed = now
        self.cancelled = cancelled

    @property
    def errors(self) -> list[ExecutionItem]:
        return [item for item in self.items if item.is_error]

    def error_counts(self) -> Counter[ExecutionItemErrorType]:
        return Counter(item.error_type for item in self.items if item.error_type is not None)

    def change_counts(self) -> Counter[ObjectChangeType]:
        return Counter(item.change_type for item in self.items if item.change_type is not None)

    def summary(self) -> str:
        changes = ", ".join(f"{kind}={count}" for kind, count in sorted(self.change_counts().items()))
        errors = ", ".join(f"{kind}={count}" for kind, count in sorted(self.error_counts().items()))
        return (
            f"{self.run_type} items={len(self.items)} "
            f"changes=[{changes}] errors=[{errors}] cancelled={self.cancelled}"
        )
