"""Per-node configuration editing.

Each config field is classified once, when an editor opens, into a tagged
kind that drives both the editor widget and validation:

- BOOLEAN: toggled on/off
- ENUM:    a string field with a known option list (e.g. HTTP ``method``)
- LIST:    edited as JSON text, must parse to a list
- OBJECT:  edited as JSON text, must parse to an object
- TEXT:    everything else; numeric values must stay numeric

A structured-text edit that does not parse is held on the field as
pending text with an error. The field keeps its last valid value, a save
writes that value, and closing the editor discards the pending text.
Saves always replace the node's whole config in one graph update.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from workflow_studio.core.config import ConfigFieldSettings
from workflow_studio.core.errors import ConfigFieldError
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import Node

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    BOOLEAN = "boolean"
    ENUM = "enum"
    LIST = "list"
    OBJECT = "object"
    TEXT = "text"


def classify_field(key: str, value: Any, settings: ConfigFieldSettings) -> FieldKind:
    """Tag a config value by shape. ``bool`` is checked before numbers."""
    if isinstance(value, bool):
        return FieldKind.BOOLEAN
    if isinstance(value, list):
        return FieldKind.LIST
    if isinstance(value, dict):
        return FieldKind.OBJECT
    if isinstance(value, str) and key in settings.enum_options:
        return FieldKind.ENUM
    return FieldKind.TEXT


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ConfigField:
    """Editor state for one config key."""

    key: str
    kind: FieldKind
    value: Any
    options: list[str] = field(default_factory=list)
    pending_text: str | None = None
    error: str | None = None
    committed_value: Any = None

    def __post_init__(self) -> None:
        self.committed_value = copy.deepcopy(self.value)

    @property
    def is_pending(self) -> bool:
        """True while an unparseable edit is being held."""
        return self.pending_text is not None

    @property
    def is_dirty(self) -> bool:
        return self.is_pending or self.value != self.committed_value

    def render_text(self) -> str:
        """Text shown in the editor: pending text wins over the stored value."""
        if self.pending_text is not None:
            return self.pending_text
        if self.kind in (FieldKind.LIST, FieldKind.OBJECT):
            return json.dumps(self.value, indent=2)
        if self.kind == FieldKind.BOOLEAN:
            return "Enabled" if self.value else "Disabled"
        return "" if self.value is None else str(self.value)

    # ── Editing ──

    def toggle(self) -> None:
        if self.kind != FieldKind.BOOLEAN:
            raise ConfigFieldError(self.key, f"cannot toggle a {self.kind.value} field")
        self.value = not self.value

    def choose(self, option: str) -> None:
        if self.kind != FieldKind.ENUM:
            raise ConfigFieldError(self.key, f"cannot choose an option on a {self.kind.value} field")
        if option not in self.options:
            raise ConfigFieldError(self.key, f"'{option}' is not one of {self.options}")
        self.value = option

    def edit_text(self, raw: str) -> bool:
        """Apply a text edit. Returns False when the edit is held as pending."""
        if self.kind == FieldKind.BOOLEAN:
            lowered = raw.strip().lower()
            if lowered in ("true", "enabled", "on", "1"):
                return self._accept(True)
            if lowered in ("false", "disabled", "off", "0"):
                return self._accept(False)
            return self._hold(raw, "expected true or false")

        if self.kind == FieldKind.ENUM:
            if raw not in self.options:
                return self._hold(raw, f"expected one of {self.options}")
            return self._accept(raw)

        if self.kind in (FieldKind.LIST, FieldKind.OBJECT):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                return self._hold(raw, f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})")
            expected = list if self.kind == FieldKind.LIST else dict
            if not isinstance(parsed, expected):
                return self._hold(raw, f"expected a JSON {'array' if expected is list else 'object'}")
            return self._accept(parsed)

        if _is_number(self.committed_value):
            try:
                number = int(raw) if isinstance(self.committed_value, int) else float(raw)
            except ValueError:
                try:
                    number = float(raw)
                except ValueError:
                    return self._hold(raw, "expected a number")
            return self._accept(number)

        return self._accept(raw)

    def discard_pending(self) -> bool:
        """Drop held text. Returns True if there was something to drop."""
        had_pending = self.is_pending
        self.pending_text = None
        self.error = None
        return had_pending

    def mark_committed(self) -> None:
        self.committed_value = copy.deepcopy(self.value)

    def _accept(self, value: Any) -> bool:
        self.value = value
        self.pending_text = None
        self.error = None
        return True

    def _hold(self, raw: str, message: str) -> bool:
        self.pending_text = raw
        self.error = message
        logger.debug(f"Config field '{self.key}' held as pending: {message}")
        return False


class NodeConfigEditor:
    """Draft of one node's name and config, opened from a NodeConfigStore."""

    def __init__(self, node: Node, settings: ConfigFieldSettings):
        self.node_id = node.id
        self.node_type = node.type
        self.category = node.category
        self.original_name = node.name
        self.name = node.name
        self._hidden = set(settings.hidden_fields)
        self.fields: dict[str, ConfigField] = {}
        for key, value in node.config.items():
            kind = classify_field(key, value, settings)
            options = settings.enum_options.get(key, []) if kind == FieldKind.ENUM else []
            self.fields[key] = ConfigField(
                key=key, kind=kind, value=copy.deepcopy(value), options=list(options)
            )

    def field(self, key: str) -> ConfigField:
        try:
            return self.fields[key]
        except KeyError:
            raise ConfigFieldError(key, "no such field on this node") from None

    def visible_fields(self) -> list[ConfigField]:
        """Fields shown in the main form; hidden ones (description) are edited apart."""
        return [f for k, f in self.fields.items() if k not in self._hidden]

    @property
    def description(self) -> str | None:
        f = self.fields.get("description")
        return None if f is None else f.value

    def rename(self, name: str) -> None:
        if not name.strip():
            raise ConfigFieldError("name", "node name cannot be empty")
        self.name = name

    def pending_fields(self) -> list[str]:
        return [k for k, f in self.fields.items() if f.is_pending]

    def errors(self) -> dict[str, str]:
        return {k: f.error for k, f in self.fields.items() if f.error}

    @property
    def is_dirty(self) -> bool:
        return self.name != self.original_name or any(f.is_dirty for f in self.fields.values())

    def draft_config(self) -> dict[str, Any]:
        """Complete config built from every field's last valid value."""
        return {k: copy.deepcopy(f.value) for k, f in self.fields.items()}

    def discard_pending(self) -> list[str]:
        return [k for k, f in self.fields.items() if f.discard_pending()]

    def mark_committed(self) -> None:
        self.original_name = self.name
        for f in self.fields.values():
            f.mark_committed()


class NodeConfigStore:
    """Opens editors for nodes and commits their drafts into the graph.

    At most one editor is active at a time; it follows the canvas selection.
    """

    def __init__(self, graph: WorkflowGraph, settings: ConfigFieldSettings | None = None):
        self.graph = graph
        self.settings = settings or ConfigFieldSettings()
        self._active: NodeConfigEditor | None = None

    @property
    def active(self) -> NodeConfigEditor | None:
        return self._active

    def classify(self, config: Mapping[str, Any]) -> dict[str, FieldKind]:
        return {key: classify_field(key, value, self.settings) for key, value in config.items()}

    def open(self, node_id: str) -> NodeConfigEditor:
        """Open an editor for ``node_id``, closing (and discarding) any other."""
        if self._active is not None and self._active.node_id == node_id:
            return self._active
        if self._active is not None:
            self.close()
        self._active = NodeConfigEditor(self.graph.get_node(node_id), self.settings)
        return self._active

    def close(self) -> list[str]:
        """Close the active editor. Returns keys whose pending edits were discarded."""
        if self._active is None:
            return []
        discarded = self._active.discard_pending()
        if discarded:
            logger.info(
                f"Discarded unsaved edits on node {self._active.node_id}: {', '.join(discarded)}"
            )
        self._active = None
        return discarded

    def commit(self, require_valid: bool = False) -> Node:
        """Save the active editor's draft.

        Fields holding pending text contribute their last valid value and
        stay pending (and unsaved) in the editor. With ``require_valid``,
        any pending field aborts the commit instead.
        """
        editor = self._active
        if editor is None:
            raise ConfigFieldError("*", "no editor is open")

        pending = editor.pending_fields()
        if require_valid and pending:
            key = pending[0]
            raise ConfigFieldError(key, editor.fields[key].error or "pending edit")

        updates: dict[str, Any] = {"config": editor.draft_config()}
        if editor.name != editor.original_name:
            updates["name"] = editor.name
        node = self.graph.update_node(editor.node_id, updates)
        editor.mark_committed()
        logger.debug(f"Committed config for node {editor.node_id}")
        return node

    def save(self, node_id: str, config: Mapping[str, Any]) -> Node:
        """Replace a node's config wholesale in a single graph update."""
        if not isinstance(config, Mapping):
            raise ConfigFieldError("*", f"config must be a mapping, got {type(config).__name__}")
        return self.graph.update_node(node_id, {"config": copy.deepcopy(dict(config))})

    def forget(self, node_id: str) -> None:
        """Drop the active editor when its node has been deleted."""
        if self._active is not None and self._active.node_id == node_id:
            self._active = None
