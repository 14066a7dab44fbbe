"""Canvas interaction: drag, connect and select, translated into graph edits.

Transient UI state lives in an explicit ``CanvasInteractionState`` value.
The controller never stores it: every handler takes the current state and
returns the next one, so each editing session owns its own state and two
sessions over different graphs can never observe each other.

Event handling is synchronous. A handler that mutates the graph does so
before returning; there is no queued or batched update.

Connection geometry (anchors and the cubic curve between them) is a pure
function of the two node positions and is kept out of the graph model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.config import CanvasSettings
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import Node, NodeTemplate, Position

logger = logging.getLogger(__name__)


class PointerTarget(str, Enum):
    """What the pointer is over when an event fires."""

    NODE_BODY = "node_body"
    NODE_CONTROL = "node_control"  # settings/delete buttons on the node header
    OUTGOING_ANCHOR = "outgoing_anchor"
    INCOMING_ANCHOR = "incoming_anchor"
    CANVAS = "canvas"


class PointerAction(str, Enum):
    PRESS = "press"
    MOVE = "move"
    RELEASE = "release"
    CLICK = "click"
    LEAVE = "leave"  # pointer left the canvas


@dataclass(frozen=True)
class PointerEvent:
    """One low-level pointer event from the rendering surface."""

    action: PointerAction
    position: Position
    target: PointerTarget = PointerTarget.CANVAS
    node_id: str | None = None


@dataclass(frozen=True)
class CanvasInteractionState:
    """Transient, UI-only state for one editing session. Never persisted."""

    dragging_node_id: str | None = None
    drag_offset: Position = field(default_factory=Position)
    pending_connection_source_id: str | None = None
    selected_node_id: str | None = None

    @property
    def is_dragging(self) -> bool:
        return self.dragging_node_id is not None

    @property
    def is_connecting(self) -> bool:
        return self.pending_connection_source_id is not None


# ── Geometry ──


@dataclass(frozen=True)
class ConnectionPath:
    """Cubic Bézier from a source's outgoing anchor to a target's incoming anchor."""

    source_id: str
    target_id: str
    start: Position
    control1: Position
    control2: Position
    end: Position

    def point_at(self, t: float) -> Position:
        """Point on the curve for ``0 <= t <= 1``."""
        if not 0.0 <= t <= 1.0:
            raise ValueError(f"t must be within [0, 1], got {t}")
        u = 1.0 - t
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return Position(
            x=a * self.start.x + b * self.control1.x + c * self.control2.x + d * self.end.x,
            y=a * self.start.y + b * self.control1.y + c * self.control2.y + d * self.end.y,
        )

    def svg_path(self) -> str:
        def fmt(p: Position) -> str:
            return f"{p.x:g} {p.y:g}"

        return (
            f"M {fmt(self.start)} "
            f"C {fmt(self.control1)}, {fmt(self.control2)}, {fmt(self.end)}"
        )


def outgoing_anchor(position: Position, settings: CanvasSettings) -> Position:
    return Position(x=position.x + settings.node_width, y=position.y + settings.anchor_y_offset)


def incoming_anchor(position: Position, settings: CanvasSettings) -> Position:
    return Position(x=position.x, y=position.y + settings.anchor_y_offset)


def connection_path(source: Node, target: Node, settings: CanvasSettings) -> ConnectionPath:
    """Curve between two nodes; both control points sit on the horizontal midpoint."""
    start = outgoing_anchor(source.position, settings)
    end = incoming_anchor(target.position, settings)
    mid_x = (start.x + end.x) / 2
    return ConnectionPath(
        source_id=source.id,
        target_id=target.id,
        start=start,
        control1=Position(x=mid_x, y=start.y),
        control2=Position(x=mid_x, y=end.y),
        end=end,
    )


def connection_paths(graph: WorkflowGraph, settings: CanvasSettings) -> list[ConnectionPath]:
    return [
        connection_path(graph.nodes[source], graph.nodes[target], settings)
        for source, target in graph.edges()
    ]


# ── Controller ──


class CanvasController:
    """Applies pointer gestures to a WorkflowGraph.

    USAGE:
        controller = CanvasController(graph)
        state = CanvasInteractionState()
        state = controller.press_node(state, node_id, pointer)
        state = controller.move_pointer(state, pointer)
        state = controller.release(state, pointer)
    """

    def __init__(self, graph: WorkflowGraph, settings: CanvasSettings | None = None):
        self.graph = graph
        self.settings = settings or CanvasSettings()

    # ── Placement ──

    def next_position(self) -> Position:
        """Auto-placement slot for the next node: a vertical column below the origin."""
        origin = self.settings.default_origin
        return Position(
            x=origin.x,
            y=origin.y + len(self.graph.nodes) * self.settings.default_spacing,
        )

    def add_from_template(
        self,
        catalog: NodeCatalog,
        template: NodeTemplate,
        position: Position | None = None,
    ) -> Node:
        node = catalog.instantiate(template, position or self.next_position())
        return self.graph.add_node(node)

    # ── Dragging ──

    def press_node(
        self,
        state: CanvasInteractionState,
        node_id: str,
        pointer: Position,
        on_control: bool = False,
    ) -> CanvasInteractionState:
        """Press on a node body starts a drag; presses on its controls do not."""
        if on_control:
            return state
        node = self.graph.get_node(node_id)
        return replace(
            state,
            dragging_node_id=node_id,
            drag_offset=pointer - node.position,
        )

    def move_pointer(
        self, state: CanvasInteractionState, pointer: Position
    ) -> CanvasInteractionState:
        """Move the dragged node so it stays under the pointer. No bounds clamping."""
        if state.dragging_node_id is None:
            return state
        if state.dragging_node_id not in self.graph:
            logger.debug(f"Drag target {state.dragging_node_id} vanished; ending drag")
            return replace(state, dragging_node_id=None, drag_offset=Position())

        self.graph.update_node(
            state.dragging_node_id, {"position": pointer - state.drag_offset}
        )
        return state

    def end_drag(self, state: CanvasInteractionState) -> CanvasInteractionState:
        if state.dragging_node_id is None:
            return state
        return replace(state, dragging_node_id=None, drag_offset=Position())

    # ── Connecting ──

    def press_outgoing_anchor(
        self, state: CanvasInteractionState, node_id: str
    ) -> CanvasInteractionState:
        self.graph.get_node(node_id)
        return replace(state, pending_connection_source_id=node_id)

    def release_on_incoming_anchor(
        self, state: CanvasInteractionState, node_id: str
    ) -> CanvasInteractionState:
        """Complete a pending connection onto ``node_id``.

        Releasing onto the source's own anchor cancels the gesture.
        """
        source = state.pending_connection_source_id
        cleared = replace(self.end_drag(state), pending_connection_source_id=None)
        if source is None or source == node_id:
            return cleared

        self.graph.connect(source, node_id)
        return cleared

    def release(
        self, state: CanvasInteractionState, pointer: Position | None = None
    ) -> CanvasInteractionState:
        """Release anywhere else: ends a drag and cancels a pending connection."""
        if state.pending_connection_source_id is not None:
            logger.debug(f"Connection from {state.pending_connection_source_id} cancelled")
        return replace(self.end_drag(state), pending_connection_source_id=None)

    # ── Selection ──

    def select(self, state: CanvasInteractionState, node_id: str) -> CanvasInteractionState:
        """Make ``node_id`` the single active node."""
        self.graph.get_node(node_id)
        return replace(state, selected_node_id=node_id)

    def clear_selection(self, state: CanvasInteractionState) -> CanvasInteractionState:
        return replace(state, selected_node_id=None)

    def selected_node(self, state: CanvasInteractionState) -> Node | None:
        if state.selected_node_id is None:
            return None
        return self.graph.find_node(state.selected_node_id)

    # ── Deletion ──

    def delete_node(self, state: CanvasInteractionState, node_id: str) -> CanvasInteractionState:
        """Delete a node and drop any transient state that points at it."""
        self.graph.delete_node(node_id)
        changes: dict = {}
        if state.selected_node_id == node_id:
            changes["selected_node_id"] = None
        if state.dragging_node_id == node_id:
            changes["dragging_node_id"] = None
            changes["drag_offset"] = Position()
        if state.pending_connection_source_id == node_id:
            changes["pending_connection_source_id"] = None
        return replace(state, **changes) if changes else state

    # ── Event dispatch ──

    def handle(self, state: CanvasInteractionState, event: PointerEvent) -> CanvasInteractionState:
        """Route a raw pointer event to the matching gesture handler."""
        if event.action == PointerAction.PRESS:
            if event.target == PointerTarget.OUTGOING_ANCHOR and event.node_id:
                return self.press_outgoing_anchor(state, event.node_id)
            if event.target in (PointerTarget.NODE_BODY, PointerTarget.NODE_CONTROL) and event.node_id:
                return self.press_node(
                    state,
                    event.node_id,
                    event.position,
                    on_control=event.target == PointerTarget.NODE_CONTROL,
                )
            return state

        if event.action == PointerAction.MOVE:
            return self.move_pointer(state, event.position)

        if event.action == PointerAction.RELEASE:
            if event.target == PointerTarget.INCOMING_ANCHOR and event.node_id:
                return self.release_on_incoming_anchor(state, event.node_id)
            return self.release(state, event.position)

        if event.action == PointerAction.LEAVE:
            return self.release(state, event.position)

        if event.action == PointerAction.CLICK and event.node_id:
            return self.select(state, event.node_id)

        return state
