"""Graph serialization for the persistence collaborator.

Wire shape::

    {id, name, description, isActive, executionCount,
     nodes: [{id, type, category, name, position: {x, y}, config, connections}]}

A graph that has had nodes deleted also carries ``retiredIds`` so a reloaded
graph keeps rejecting those ids.

Round-trips are lossless: node order, connection order and config values
(booleans, numbers, strings, lists, nested objects) all survive.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from workflow_studio.core.errors import DuplicateNodeError, SerializationError
from workflow_studio.core.graph import WorkflowGraph

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
RETIRED_IDS_KEY = "retiredIds"


def graph_to_dict(graph: WorkflowGraph) -> dict[str, Any]:
    data = graph.model_dump(mode="json", by_alias=True)
    if graph.retired_ids:
        data[RETIRED_IDS_KEY] = sorted(graph.retired_ids)
    return data


def graph_from_dict(data: Any) -> WorkflowGraph:
    if not isinstance(data, dict):
        raise SerializationError(f"Workflow payload must be an object, got {type(data).__name__}")
    data = dict(data)
    retired = data.pop(RETIRED_IDS_KEY, [])
    if not isinstance(retired, list) or not all(isinstance(i, str) for i in retired):
        raise SerializationError(f"'{RETIRED_IDS_KEY}' must be a list of node ids")

    try:
        graph = WorkflowGraph.model_validate(data)
    except ValidationError as e:
        raise SerializationError(f"Invalid workflow payload: {e}") from e

    try:
        graph.retire_ids(retired)
    except DuplicateNodeError as e:
        raise SerializationError(f"Retired node id '{e.node_id}' is still in use") from e
    return graph


def graph_to_json(graph: WorkflowGraph, indent: int | None = 2) -> str:
    return json.dumps(graph_to_dict(graph), indent=indent)


def graph_from_json(text: str) -> WorkflowGraph:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid workflow JSON: {e}") from e
    return graph_from_dict(data)


def graph_to_yaml(graph: WorkflowGraph) -> str:
    return yaml.safe_dump(graph_to_dict(graph), sort_keys=False)


def graph_from_yaml(text: str) -> WorkflowGraph:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SerializationError(f"Invalid workflow YAML: {e}") from e
    return graph_from_dict(data)


def load_graph(path: Path) -> WorkflowGraph:
    """Read a workflow file; the format follows the file suffix."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SerializationError(f"Cannot read workflow file {path}: {e}") from e

    if path.suffix.lower() in YAML_SUFFIXES:
        graph = graph_from_yaml(text)
    else:
        graph = graph_from_json(text)
    logger.debug(f"Loaded workflow {graph.id} ({len(graph.nodes)} nodes) from {path}")
    return graph


def save_graph(graph: WorkflowGraph, path: Path) -> None:
    if path.suffix.lower() in YAML_SUFFIXES:
        text = graph_to_yaml(graph)
    else:
        text = graph_to_json(graph)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info(f"Workflow saved: {graph.name} ({graph.id}) -> {path}")
