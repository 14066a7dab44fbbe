# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the workflow studio test suite.

This module provides foundational fixtures used across all test modules:
- Catalogs with deterministic node ids
- Small sample graphs (single trigger, linear chain, cycle)
- A controllable clock for execution timing
- Studio config files on disk

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
    All fixtures in this file are automatically available in test modules.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.engine import ExecutorRegistry
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.history import ExecutionHistoryStore
from workflow_studio.core.models import ExecutionRecord, Node, NodeResult, NodeType, Position


# =============================================================================
# Node Factories
# =============================================================================


def make_node(
    node_id: str,
    node_type: NodeType = NodeType.ACTION,
    connections: list[str] | None = None,
    **config,
) -> Node:
    """Build a node with sensible defaults for tests."""
    return Node(
        id=node_id,
        type=node_type,
        category="Test",
        name=node_id.upper(),
        position=Position(x=0, y=0),
        config=config,
        connections=connections or [],
    )


class FakeClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, step_ms: int = 100):
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = timedelta(milliseconds=step_ms)

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


def make_record(
    record_id: str,
    status: str = "success",
    duration_ms: int = 100,
    workflow_id: str = "wf-1",
) -> ExecutionRecord:
    """Finished execution record for history tests."""
    started = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return ExecutionRecord(
        id=record_id,
        workflow_id=workflow_id,
        status=status,
        started_at=started,
        finished_at=started + timedelta(milliseconds=duration_ms),
        duration_ms=duration_ms,
        nodes_executed=1,
        nodes_total=1,
        error=None if status == "success" else "boom",
    )


# =============================================================================
# Catalog and Graph Fixtures
# =============================================================================


@pytest.fixture
def catalog() -> NodeCatalog:
    """Built-in catalog producing node_1, node_2, ... ids."""
    counter = itertools.count(1)
    return NodeCatalog(id_factory=lambda: f"node_{next(counter)}")


@pytest.fixture
def graph() -> WorkflowGraph:
    """Empty workflow graph with a fixed id."""
    return WorkflowGraph(id="wf-1", name="Test Workflow")


@pytest.fixture
def chain_graph() -> WorkflowGraph:
    """trigger -> a -> b, all connected in a line."""
    g = WorkflowGraph(id="wf-chain", name="Chain")
    g.add_node(make_node("b"))
    g.add_node(make_node("a", connections=["b"]))
    g.add_node(make_node("trigger", NodeType.TRIGGER, connections=["a"]))
    return g


@pytest.fixture
def cycle_graph() -> WorkflowGraph:
    """trigger -> a -> b -> a."""
    g = WorkflowGraph(id="wf-cycle", name="Cycle")
    g.add_node(make_node("a"))
    g.add_node(make_node("b", connections=["a"]))
    g.connect("a", "b")
    g.add_node(make_node("trigger", NodeType.TRIGGER, connections=["a"]))
    return g


# =============================================================================
# Execution Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def history() -> ExecutionHistoryStore:
    return ExecutionHistoryStore()


@pytest.fixture
def succeed_registry() -> ExecutorRegistry:
    """Registry with a succeeding executor for every node type."""

    async def succeed(node, context):
        return NodeResult.ok({"id": node.id})

    registry = ExecutorRegistry()
    for node_type in NodeType:
        registry.register(succeed, node_type)
    return registry


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Studio config YAML overriding a few defaults."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "canvas": {"default_spacing": 200, "default_origin": {"x": 50, "y": 60}},
                "config_fields": {"enum_options": {"method": ["GET", "POST"], "format": ["pdf", "docx"]}},
                "history": {"default_limit": 10, "max_records": 3},
                "execution": {"default_trigger": "schedule"},
            }
        )
    )
    return path


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def node_factory():
    """Expose ``make_node`` to test modules."""
    return make_node


@pytest.fixture
def record_factory():
    """Expose ``make_record`` to test modules."""
    return make_record
