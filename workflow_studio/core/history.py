"""Append-only log of finished execution records with aggregate queries."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from workflow_studio.core.models import ExecutionRecord, ExecutionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistorySummary:
    """Aggregates shown above the execution list."""

    total_executions: int
    successful: int
    failed: int
    success_rate: float  # percentage, 0-100
    avg_duration_ms: float

    @property
    def formatted_success_rate(self) -> str:
        return f"{self.success_rate:.1f}%"


class ExecutionHistoryStore:
    """Finished runs, most recent first.

    Records are only ever prepended; nothing is updated in place. With
    ``max_records`` set, the oldest records fall off the end.

    USAGE:
        history = ExecutionHistoryStore()
        history.append(record)
        recent = history.list(limit=10)
        rate = history.success_rate()
    """

    def __init__(self, max_records: int | None = None, default_limit: int = 50):
        if max_records is not None and max_records <= 0:
            raise ValueError(f"max_records must be positive, got {max_records}")
        self._records: deque[ExecutionRecord] = deque(maxlen=max_records)
        self.default_limit = default_limit

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: ExecutionRecord) -> None:
        if not record.is_finished:
            raise ValueError(
                f"Only finished runs can be recorded; {record.id} is '{record.status.value}'"
            )
        if any(r.id == record.id for r in self._records):
            raise ValueError(f"Execution {record.id} is already recorded")
        self._records.appendleft(record)
        logger.debug(f"Recorded execution {record.id} ({record.status.value})")

    def list(self, limit: int | None = None) -> list[ExecutionRecord]:
        """The most recent ``limit`` records, newest first."""
        if limit is None:
            limit = self.default_limit
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        return [r for _, r in zip(range(limit), self._records)]

    def get(self, execution_id: str) -> ExecutionRecord | None:
        for record in self._records:
            if record.id == execution_id:
                return record
        return None

    def for_workflow(self, workflow_id: str, limit: int | None = None) -> list[ExecutionRecord]:
        matches = [r for r in self._records if r.workflow_id == workflow_id]
        return matches if limit is None else matches[:limit]

    def failures(self, limit: int = 5) -> list[ExecutionRecord]:
        return [r for r in self._records if r.status == ExecutionStatus.FAILED][:limit]

    # ── Aggregates ──

    def success_rate(self) -> float:
        """Percentage of successful runs; 0 when empty."""
        total = len(self._records)
        if total == 0:
            return 0.0
        successful = sum(1 for r in self._records if r.status == ExecutionStatus.SUCCESS)
        return successful / total * 100

    def average_duration(self) -> float:
        """Mean ``duration_ms`` over all records; 0 when empty."""
        if not self._records:
            return 0.0
        return sum(r.duration_ms for r in self._records) / len(self._records)

    def summary(self) -> HistorySummary:
        successful = sum(1 for r in self._records if r.status == ExecutionStatus.SUCCESS)
        return HistorySummary(
            total_executions=len(self._records),
            successful=successful,
            failed=len(self._records) - successful,
            success_rate=self.success_rate(),
            avg_duration_ms=self.average_duration(),
        )

    def clear(self) -> int:
        """Remove every record. Returns how many were removed."""
        removed = len(self._records)
        self._records.clear()
        logger.info(f"Execution history cleared ({removed} records)")
        return removed
