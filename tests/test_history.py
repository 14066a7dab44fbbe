"""Tests for ExecutionHistoryStore ordering, limits and aggregates."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from workflow_studio.core.history import ExecutionHistoryStore
from workflow_studio.core.models import ExecutionRecord

# =============================================================================
# Append and List Tests
# =============================================================================


class TestAppendAndList:
    """Tests for recording and listing runs."""

    def test_most_recent_first(self, history, record_factory):
        for i in range(3):
            history.append(record_factory(f"run-{i}"))

        assert [r.id for r in history.list()] == ["run-2", "run-1", "run-0"]

    def test_limit(self, history, record_factory):
        for i in range(5):
            history.append(record_factory(f"run-{i}"))

        assert [r.id for r in history.list(limit=2)] == ["run-4", "run-3"]
        assert history.list(limit=0) == []
        with pytest.raises(ValueError):
            history.list(limit=-1)

    def test_default_limit(self, record_factory):
        history = ExecutionHistoryStore(default_limit=2)
        for i in range(4):
            history.append(record_factory(f"run-{i}"))

        assert len(history.list()) == 2
        assert len(history) == 4

    def test_unfinished_record_rejected(self, history):
        record = ExecutionRecord(id="run-x", started_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        with pytest.raises(ValueError, match="finished"):
            history.append(record)
        assert len(history) == 0

    def test_duplicate_record_rejected(self, history, record_factory):
        history.append(record_factory("run-1"))
        with pytest.raises(ValueError):
            history.append(record_factory("run-1"))

    def test_max_records_drops_oldest(self, record_factory):
        history = ExecutionHistoryStore(max_records=2)
        for i in range(3):
            history.append(record_factory(f"run-{i}"))

        assert [r.id for r in history.list()] == ["run-2", "run-1"]
        assert history.get("run-0") is None

    def test_invalid_max_records(self):
        with pytest.raises(ValueError):
            ExecutionHistoryStore(max_records=0)


# =============================================================================
# Query Tests
# =============================================================================


class TestQueries:
    """Tests for lookups and filters."""

    def test_get(self, history, record_factory):
        record = record_factory("run-1")
        history.append(record)

        assert history.get("run-1") == record
        assert history.get("missing") is None

    def test_for_workflow(self, history, record_factory):
        history.append(record_factory("a1", workflow_id="a"))
        history.append(record_factory("b1", workflow_id="b"))
        history.append(record_factory("a2", workflow_id="a"))

        assert [r.id for r in history.for_workflow("a")] == ["a2", "a1"]
        assert [r.id for r in history.for_workflow("a", limit=1)] == ["a2"]

    def test_failures(self, history, record_factory):
        history.append(record_factory("ok", "success"))
        history.append(record_factory("bad", "failed"))

        assert [r.id for r in history.failures()] == ["bad"]


# =============================================================================
# Aggregate Tests
# =============================================================================


class TestAggregates:
    """Tests for success rate and average duration."""

    def test_empty_history(self, history):
        assert history.success_rate() == 0
        assert history.average_duration() == 0
        summary = history.summary()
        assert summary.total_executions == 0
        assert summary.formatted_success_rate == "0.0%"

    def test_two_of_three_successful(self, history, record_factory):
        history.append(record_factory("r1", "success", duration_ms=100))
        history.append(record_factory("r2", "success", duration_ms=200))
        history.append(record_factory("r3", "failed", duration_ms=600))

        assert history.success_rate() == pytest.approx(66.666, rel=1e-3)
        assert history.average_duration() == pytest.approx(300)

        summary = history.summary()
        assert summary.successful == 2
        assert summary.failed == 1
        assert summary.formatted_success_rate == "66.7%"

    def test_clear(self, history, record_factory):
        history.append(record_factory("r1"))
        history.append(record_factory("r2"))

        assert history.clear() == 2
        assert len(history) == 0
        assert history.list() == []
