"""Workflow graph model: nodes, outgoing connections, and mutation rules.

Nodes live in an id-keyed map so deleting one never shifts references held
by other nodes, the canvas, or the config editor. Every mutation validates
first and writes last: a rejected operation leaves the graph untouched.

Invariants:
- node ids are unique and never reused after deletion
- every id in any node's ``connections`` names a node in this graph
- ``connections`` holds each target at most once

Cycles are permitted. The execution engine guards against them.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Iterable
from typing import Any

import networkx as nx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_serializer,
    field_validator,
)

from workflow_studio.core.errors import (
    DuplicateNodeError,
    InvalidNodeUpdateError,
    NodeNotFoundError,
    SelfConnectionError,
)
from workflow_studio.core.models import Node, NodeType, Position, WireModel

logger = logging.getLogger(__name__)

# Fields a partial update may touch; id/type/connections change only via
# dedicated operations.
UPDATABLE_FIELDS = frozenset({"name", "position", "config"})


class NodeUpdate(BaseModel):
    """Validated partial update for ``WorkflowGraph.update_node``."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    position: Position | None = None
    config: dict[str, Any] | None = None


class WorkflowGraph(WireModel):
    """The full editable graph owned by one workflow."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Untitled Workflow"
    description: str = ""
    nodes: dict[str, Node] = Field(default_factory=dict)
    is_active: bool = False
    execution_count: int = Field(default=0, ge=0)

    _retired_ids: set[str] = PrivateAttr(default_factory=set)

    @field_validator("nodes", mode="before")
    @classmethod
    def nodes_from_list(cls, v: Any) -> Any:
        """Accept the wire form (a list of nodes) as well as an id-keyed map."""
        if isinstance(v, list):
            keyed: dict[str, Any] = {}
            for item in v:
                if isinstance(item, Node):
                    node_id = item.id
                elif isinstance(item, dict):
                    node_id = item.get("id")
                else:
                    raise ValueError(f"Node entries must be objects, got {type(item).__name__}")
                if node_id in keyed:
                    raise ValueError(f"Duplicate node id: '{node_id}'")
                keyed[node_id] = item
            return keyed
        return v

    @field_validator("nodes")
    @classmethod
    def check_node_keys(cls, v: dict[str, Node]) -> dict[str, Node]:
        for key, node in v.items():
            if key != node.id:
                raise ValueError(f"Node keyed as '{key}' has id '{node.id}'")
        for node in v.values():
            for target in node.connections:
                if target not in v:
                    raise ValueError(f"Node '{node.id}' connects to unknown node '{target}'")
                if target == node.id:
                    raise ValueError(f"Node '{node.id}' connects to itself")
        return v

    @field_serializer("nodes")
    def nodes_to_list(self, nodes: dict[str, Node]) -> list[Node]:
        return list(nodes.values())

    # ── Queries ──

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get_node(self, node_id: str) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def find_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def trigger_nodes(self) -> list[Node]:
        """Trigger nodes in insertion order."""
        return [n for n in self.nodes.values() if n.type == NodeType.TRIGGER]

    def incoming(self, node_id: str) -> list[str]:
        """Ids of nodes with an edge into ``node_id``."""
        return [n.id for n in self.nodes.values() if node_id in n.connections]

    def edges(self) -> list[tuple[str, str]]:
        return [(n.id, target) for n in self.nodes.values() for target in n.connections]

    def edge_count(self) -> int:
        return sum(len(n.connections) for n in self.nodes.values())

    @property
    def retired_ids(self) -> frozenset[str]:
        """Ids of deleted nodes. They are rejected by ``add_node``."""
        return frozenset(self._retired_ids)

    # ── Mutations ──

    def add_node(self, node: Node) -> Node:
        """Insert a node. Its connections must already reference existing nodes."""
        if node.id in self.nodes:
            raise DuplicateNodeError(node.id)
        if node.id in self._retired_ids:
            raise DuplicateNodeError(node.id, retired=True)
        for target in node.connections:
            if target == node.id:
                raise SelfConnectionError(node.id)
            if target not in self.nodes:
                raise NodeNotFoundError(target)

        self.nodes[node.id] = node
        logger.debug(f"Graph {self.id}: added node {node.id} ({node.type.value})")
        return node

    def update_node(self, node_id: str, fields: dict[str, Any]) -> Node:
        """Merge name, position and/or config into an existing node.

        The node object is replaced, not mutated in place, so a failed
        validation leaves the graph exactly as it was.
        """
        node = self.get_node(node_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidNodeUpdateError(
                f"Cannot update {sorted(unknown)} on node '{node_id}'; "
                f"updatable fields are {sorted(UPDATABLE_FIELDS)}"
            )
        try:
            update = NodeUpdate.model_validate(fields)
        except ValidationError as e:
            raise InvalidNodeUpdateError(f"Invalid update for node '{node_id}': {e}") from e

        changes = {
            key: getattr(update, key)
            for key in update.model_fields_set
            if getattr(update, key) is not None
        }
        if "config" in changes:
            changes["config"] = copy.deepcopy(changes["config"])
        if not changes:
            return node

        try:
            updated = Node.model_validate({**node.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidNodeUpdateError(f"Invalid update for node '{node_id}': {e}") from e

        self.nodes[node_id] = updated
        logger.debug(f"Graph {self.id}: updated node {node_id} ({', '.join(sorted(changes))})")
        return updated

    def delete_node(self, node_id: str) -> Node:
        """Remove a node and strip it from every other node's connections."""
        removed = self.get_node(node_id)

        rewired = {
            other.id: other.model_copy(
                update={"connections": [t for t in other.connections if t != node_id]}
            )
            for other in self.nodes.values()
            if other.id != node_id and node_id in other.connections
        }

        del self.nodes[node_id]
        self.nodes.update(rewired)
        self._retired_ids.add(node_id)
        logger.debug(
            f"Graph {self.id}: deleted node {node_id}, "
            f"removed {len(rewired)} inbound connection(s)"
        )
        return removed

    def retire_ids(self, node_ids: Iterable[str]) -> None:
        """Mark ids as used by deleted nodes, e.g. when reloading a saved graph."""
        node_ids = set(node_ids)
        live = sorted(node_ids & self.nodes.keys())
        if live:
            raise DuplicateNodeError(live[0])
        self._retired_ids |= node_ids

    def connect(self, from_id: str, to_id: str) -> bool:
        """Add an edge from ``from_id`` to ``to_id``.

        Idempotent: returns False when the edge already exists. No cycle
        check is performed.
        """
        if from_id == to_id:
            raise SelfConnectionError(from_id)
        source = self.get_node(from_id)
        self.get_node(to_id)

        if to_id in source.connections:
            return False

        self.nodes[from_id] = source.model_copy(
            update={"connections": [*source.connections, to_id]}
        )
        logger.debug(f"Graph {self.id}: connected {from_id} -> {to_id}")
        return True

    def disconnect(self, from_id: str, to_id: str) -> bool:
        """Remove an edge. Returns False when it did not exist."""
        source = self.get_node(from_id)
        if to_id not in source.connections:
            return False
        self.nodes[from_id] = source.model_copy(
            update={"connections": [t for t in source.connections if t != to_id]}
        )
        logger.debug(f"Graph {self.id}: disconnected {from_id} -> {to_id}")
        return True

    # ── Snapshots & analysis ──

    def snapshot(self) -> WorkflowGraph:
        """Deep, independent copy for the execution engine."""
        return self.model_copy(deep=True)

    def to_networkx(self) -> nx.DiGraph:
        G = nx.DiGraph()
        for node in self.nodes.values():
            G.add_node(node.id, type=node.type.value)
        G.add_edges_from(self.edges())
        return G

    def reachable_from_triggers(self) -> set[str]:
        """Ids of triggers plus every node reachable from one."""
        G = self.to_networkx()
        reachable: set[str] = set()
        for trigger in self.trigger_nodes():
            reachable.add(trigger.id)
            reachable |= nx.descendants(G, trigger.id)
        return reachable

    def validate_graph(self) -> list[str]:
        """Non-fatal structural warnings (empty list = clean)."""
        warnings: list[str] = []
        if not self.nodes:
            return ["Workflow has no nodes"]

        if not self.trigger_nodes():
            warnings.append("Workflow has no trigger node")

        G = self.to_networkx()
        if len(self.nodes) > 1:
            for node in self.nodes.values():
                if G.degree(node.id) == 0:
                    warnings.append(f"Node '{node.name}' ({node.id}) is disconnected (no edges)")

        if self.trigger_nodes():
            reachable = self.reachable_from_triggers()
            for node in self.nodes.values():
                if node.id not in reachable and G.degree(node.id) > 0:
                    warnings.append(
                        f"Node '{node.name}' ({node.id}) is not reachable from any trigger"
                    )

        MAX_CYCLES_TO_REPORT = 10
        for count, cycle in enumerate(nx.simple_cycles(G), start=1):
            if count > MAX_CYCLES_TO_REPORT:
                warnings.append(f"More than {MAX_CYCLES_TO_REPORT} cycles; not all reported")
                break
            warnings.append(f"Cycle: {' -> '.join(cycle)} (each node runs at most once per run)")

        return warnings
