"""Node catalog: the static registry of templates users pick nodes from.

Built-in templates cover the five node types. Additional templates can be
loaded from a YAML file shaped like::

    templates:
      - name: Discord Message
        category: Communication
        type: integration
        description: Post to a Discord channel
        default_config: {webhook_url: "", content: ""}
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from workflow_studio.core.errors import ConfigError
from workflow_studio.core.models import Node, NodeTemplate, NodeType, Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateGroup:
    """Display metadata for one node type in the catalog sidebar."""

    type: NodeType
    title: str
    description: str


TEMPLATE_GROUPS: dict[NodeType, TemplateGroup] = {
    NodeType.TRIGGER: TemplateGroup(NodeType.TRIGGER, "Triggers", "Start your workflow"),
    NodeType.ACTION: TemplateGroup(NodeType.ACTION, "Actions", "Perform operations"),
    NodeType.CONDITION: TemplateGroup(NodeType.CONDITION, "Conditions", "Control flow logic"),
    NodeType.TRANSFORM: TemplateGroup(NodeType.TRANSFORM, "Transform", "Modify data"),
    NodeType.INTEGRATION: TemplateGroup(
        NodeType.INTEGRATION, "Integrations", "Connect with services"
    ),
}


def _t(type_: NodeType, name: str, category: str, description: str, **config) -> NodeTemplate:
    return NodeTemplate(
        name=name,
        category=category,
        type=type_,
        description=description,
        default_config=config,
    )


BUILTIN_TEMPLATES: list[NodeTemplate] = [
    # Triggers
    _t(NodeType.TRIGGER, "Webhook", "HTTP", "Trigger via HTTP webhook", url="", method="POST"),
    _t(NodeType.TRIGGER, "Schedule", "Time", "Run on a schedule", cron="0 9 * * *"),
    _t(NodeType.TRIGGER, "Database Change", "Database", "When database record changes",
       table="", event="insert"),
    _t(NodeType.TRIGGER, "Email Received", "Email", "When email is received", mailbox=""),
    _t(NodeType.TRIGGER, "Form Submit", "Forms", "When form is submitted", formId=""),
    _t(NodeType.TRIGGER, "File Upload", "Storage", "When file is uploaded", bucket=""),
    # Actions
    _t(NodeType.ACTION, "Send Email", "Email", "Send an email message", to="", subject="", body=""),
    _t(NodeType.ACTION, "HTTP Request", "HTTP", "Make API call", url="", method="GET"),
    _t(NodeType.ACTION, "Database Insert", "Database", "Insert database record", table="", data={}),
    _t(NodeType.ACTION, "Create File", "Storage", "Create/upload file", path="", content=""),
    _t(NodeType.ACTION, "Send Notification", "Notifications", "Push notification",
       title="", message=""),
    _t(NodeType.ACTION, "Generate Document", "Documents", "Create document",
       template="", format="pdf"),
    # Conditions
    _t(NodeType.CONDITION, "If/Else", "Logic", "Conditional branching",
       condition="", operator="equals"),
    _t(NodeType.CONDITION, "Switch", "Logic", "Multiple conditions", cases=[]),
    _t(NodeType.CONDITION, "Filter", "Logic", "Filter items", field="", operator="contains"),
    _t(NodeType.CONDITION, "Loop", "Logic", "Iterate over items", items=[]),
    # Transforms
    _t(NodeType.TRANSFORM, "Map Data", "Data", "Transform data structure", mapping={}),
    _t(NodeType.TRANSFORM, "Parse JSON", "Data", "Parse JSON string", path=""),
    _t(NodeType.TRANSFORM, "Format Date", "Data", "Format date/time", format="YYYY-MM-DD"),
    _t(NodeType.TRANSFORM, "Calculate", "Math", "Perform calculation", expression=""),
    _t(NodeType.TRANSFORM, "Merge Objects", "Data", "Combine objects", sources=[]),
    _t(NodeType.TRANSFORM, "Extract Text", "Text", "Extract from text", pattern=""),
    # Integrations
    _t(NodeType.INTEGRATION, "Stripe Payment", "Payments", "Process payment",
       amount=0, currency="usd"),
    _t(NodeType.INTEGRATION, "Slack Message", "Communication", "Send Slack message",
       channel="", text=""),
    _t(NodeType.INTEGRATION, "Google Sheets", "Spreadsheets", "Update spreadsheet",
       sheetId="", range=""),
    _t(NodeType.INTEGRATION, "Notion Page", "Productivity", "Create/update page", databaseId=""),
    _t(NodeType.INTEGRATION, "Twilio SMS", "Communication", "Send SMS", to="", body=""),
    _t(NodeType.INTEGRATION, "SendGrid Email", "Email", "Send via SendGrid", to="", template=""),
]


def generate_node_id() -> str:
    """Fresh node id. Random, so ids are never reused after deletion."""
    return f"node_{uuid.uuid4().hex[:12]}"


class TemplateSearch:
    """Lazy, restartable view over templates matching a query.

    Each ``iter()`` starts a fresh pass over the catalog; nothing is
    filtered until iteration begins.
    """

    def __init__(self, templates: list[NodeTemplate], query: str):
        self._templates = templates
        self._needle = query.strip().lower()

    def matches(self, template: NodeTemplate) -> bool:
        if not self._needle:
            return True
        return self._needle in template.name.lower() or self._needle in template.category.lower()

    def __iter__(self) -> Iterator[NodeTemplate]:
        return (t for t in self._templates if self.matches(t))


class NodeCatalog:
    """Registry of node templates.

    USAGE:
        catalog = NodeCatalog()
        for template in catalog.search("email"):
            ...
        node = catalog.instantiate(template, Position(x=100, y=220))
    """

    def __init__(
        self,
        templates: Iterable[NodeTemplate] | None = None,
        id_factory: Callable[[], str] = generate_node_id,
    ):
        self._templates: list[NodeTemplate] = list(
            BUILTIN_TEMPLATES if templates is None else templates
        )
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[NodeTemplate]:
        return iter(self._templates)

    @property
    def templates(self) -> list[NodeTemplate]:
        return list(self._templates)

    def register(self, template: NodeTemplate) -> None:
        """Add a template. A template with the same type and name is replaced."""
        self._templates[:] = [
            t for t in self._templates
            if not (t.type == template.type and t.name == template.name)
        ]
        self._templates.append(template)

    def get(self, name: str, type_: NodeType | None = None) -> NodeTemplate | None:
        """Look up a template by (case-insensitive) name, optionally scoped by type."""
        lowered = name.lower()
        for t in self._templates:
            if t.name.lower() == lowered and (type_ is None or t.type == type_):
                return t
        return None

    def search(self, query: str = "") -> TemplateSearch:
        """Case-insensitive substring match on template name and category."""
        return TemplateSearch(self._templates, query)

    def grouped(self, query: str = "") -> list[tuple[TemplateGroup, list[NodeTemplate]]]:
        """Matching templates grouped by node type, empty groups dropped."""
        results = list(self.search(query))
        groups = []
        for node_type, group in TEMPLATE_GROUPS.items():
            members = [t for t in results if t.type == node_type]
            if members:
                groups.append((group, members))
        return groups

    def instantiate(self, template: NodeTemplate, position: Position) -> Node:
        """Create a node from a template with a fresh id.

        The default config is deep-copied so edits never leak back into the
        template. The template description is carried into the config
        unless the defaults already define one.
        """
        config = copy.deepcopy(template.default_config)
        if template.description and "description" not in config:
            config["description"] = template.description
        return Node(
            id=self._id_factory(),
            type=template.type,
            category=template.category,
            name=template.name,
            position=position.model_copy(),
            config=config,
        )

    # ── Loading ──

    def load_yaml(self, path: Path) -> int:
        """Register templates from a YAML file. Returns how many were loaded."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read node templates {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        entries = data.get("templates", []) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ConfigError(f"{path}: 'templates' must be a list")

        loaded = 0
        for index, entry in enumerate(entries):
            try:
                template = NodeTemplate.model_validate(entry)
            except ValidationError as e:
                raise ConfigError(f"{path}: template #{index} is invalid: {e}") from e
            self.register(template)
            loaded += 1

        logger.info(f"Loaded {loaded} node templates from {path}")
        return loaded

    @classmethod
    def from_yaml(cls, path: Path, include_builtin: bool = True) -> NodeCatalog:
        catalog = cls() if include_builtin else cls(templates=[])
        catalog.load_yaml(path)
        return catalog
