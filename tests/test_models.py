"""Tests for core data models and enums.

This module tests the Pydantic models used throughout the studio:
- Position arithmetic
- Node validation (ids, connection de-duplication)
- NodeResult helpers
- ExecutionRecord lifecycle transitions and wire form
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from workflow_studio.core.models import (
    ExecutionRecord,
    ExecutionStatus,
    Node,
    NodeResult,
    NodeTemplate,
    NodeType,
    Position,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# Position and Node Tests
# =============================================================================


class TestPosition:
    """Tests for Position arithmetic."""

    def test_subtract_and_add(self):
        """Positions subtract and add component-wise."""
        a = Position(x=10, y=20)
        b = Position(x=3, y=5)

        assert a - b == Position(x=7, y=15)
        assert (a - b) + b == a


class TestNodeModel:
    """Tests for Node data model."""

    def test_node_creation(self):
        """Node can be created with required fields and defaults."""
        node = Node(id="n1", type=NodeType.ACTION, category="HTTP", name="HTTP Request")

        assert node.position == Position(x=0, y=0)
        assert node.config == {}
        assert node.connections == []
        assert not node.is_trigger

    def test_empty_id_rejected(self):
        """Node ids must be non-empty."""
        with pytest.raises(ValidationError):
            Node(id="  ", type=NodeType.ACTION, category="HTTP", name="x")

    def test_connections_deduplicated_in_order(self):
        """Duplicate connection targets collapse, keeping first occurrence order."""
        node = Node(
            id="n1",
            type=NodeType.TRIGGER,
            category="Time",
            name="Schedule",
            connections=["b", "a", "b"],
        )

        assert node.connections == ["b", "a"]
        assert node.is_trigger

    def test_wire_form_is_camel_case(self):
        """Templates dump with camelCase keys and accept either spelling."""
        template = NodeTemplate(
            name="Webhook", category="HTTP", type="trigger", defaultConfig={"url": ""}
        )

        assert template.default_config == {"url": ""}
        assert "defaultConfig" in template.model_dump(by_alias=True)


class TestNodeResult:
    """Tests for NodeResult helpers."""

    def test_ok_and_fail(self):
        assert NodeResult.ok({"a": 1}) == NodeResult(success=True, output={"a": 1})
        failed = NodeResult.fail("nope")
        assert not failed.success
        assert failed.error == "nope"


# =============================================================================
# ExecutionRecord Tests
# =============================================================================


class TestExecutionRecord:
    """Tests for the ExecutionRecord lifecycle."""

    def _pending(self) -> ExecutionRecord:
        return ExecutionRecord(id="run-1", workflow_id="wf-1", started_at=T0, nodes_total=3)

    def test_defaults(self):
        """New records start pending with a manual trigger."""
        record = self._pending()

        assert record.status == ExecutionStatus.PENDING
        assert record.trigger == "manual"
        assert record.finished_at is None
        assert not record.is_finished

    def test_success_transition(self):
        """pending -> running -> success computes duration from timestamps."""
        record = self._pending().mark_running().mark_progress(2)
        finished = record.mark_finished(T0 + timedelta(milliseconds=1500), 3)

        assert finished.status == ExecutionStatus.SUCCESS
        assert finished.duration_ms == 1500
        assert finished.nodes_executed == 3
        assert finished.error is None
        assert finished.is_finished

    def test_failed_transition(self):
        """Finishing with an error yields a failed record."""
        record = self._pending().mark_running()
        finished = record.mark_finished(T0 + timedelta(seconds=1), 2, "Node failed")

        assert finished.status == ExecutionStatus.FAILED
        assert finished.error == "Node failed"
        assert finished.nodes_executed == 2

    def test_transitions_return_copies(self):
        """Records are frozen; transitions never mutate the original."""
        pending = self._pending()
        running = pending.mark_running()

        assert pending.status == ExecutionStatus.PENDING
        assert running.status == ExecutionStatus.RUNNING
        with pytest.raises(ValidationError):
            pending.status = ExecutionStatus.FAILED

    def test_terminal_records_reject_transitions(self):
        """A finished record cannot be restarted or finished again."""
        finished = self._pending().mark_running().mark_finished(T0, 0)

        with pytest.raises(ValueError):
            finished.mark_running()
        with pytest.raises(ValueError):
            finished.mark_finished(T0, 0)

    def test_finish_requires_running(self):
        """A pending record cannot jump straight to finished."""
        with pytest.raises(ValueError):
            self._pending().mark_finished(T0, 0)

    def test_to_dict_wire_form(self):
        """The reporting form uses camelCase keys and ISO timestamps."""
        data = self._pending().mark_running().mark_finished(T0 + timedelta(seconds=2), 3).to_dict()

        assert data["status"] == "success"
        assert data["durationMs"] == 2000
        assert data["nodesExecuted"] == 3
        assert data["nodesTotal"] == 3
        assert data["workflowId"] == "wf-1"
        assert data["startedAt"].startswith("2024-01-01T00:00:00")


class TestExecutionStatus:
    """Tests for ExecutionStatus enum."""

    @pytest.mark.parametrize(
        "status,terminal",
        [
            (ExecutionStatus.PENDING, False),
            (ExecutionStatus.RUNNING, False),
            (ExecutionStatus.SUCCESS, True),
            (ExecutionStatus.FAILED, True),
        ],
    )
    def test_is_terminal(self, status, terminal):
        assert status.is_terminal is terminal
