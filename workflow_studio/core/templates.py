"""Workflow template gallery.

Templates seed a new workflow. Most start blank; a template may carry
preset nodes (by catalog template name) chained in order from the first.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from workflow_studio.core.catalog import NodeCatalog
from workflow_studio.core.config import CanvasSettings
from workflow_studio.core.errors import TemplateNotFoundError
from workflow_studio.core.graph import WorkflowGraph
from workflow_studio.core.models import Position

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class WorkflowCategory:
    id: str
    name: str


@dataclass(frozen=True)
class WorkflowTemplate:
    id: str
    name: str
    description: str
    category: str
    preset_nodes: tuple[str, ...] = field(default_factory=tuple)


WORKFLOW_CATEGORIES: list[WorkflowCategory] = [
    WorkflowCategory("hr", "Human Resources"),
    WorkflowCategory("sales", "Sales & CRM"),
    WorkflowCategory("marketing", "Marketing"),
    WorkflowCategory("finance", "Finance & Accounting"),
    WorkflowCategory("operations", "Operations"),
    WorkflowCategory("customer", "Customer Service"),
    WorkflowCategory("it", "IT & Development"),
    WorkflowCategory("custom", "Custom Workflow"),
]

WORKFLOW_TEMPLATES: list[WorkflowTemplate] = [
    WorkflowTemplate("blank", "Blank Workflow",
                     "Start from scratch with an empty canvas", "custom"),
    WorkflowTemplate("hr-onboarding", "Employee Onboarding",
                     "Automate new employee onboarding tasks and document collection", "hr",
                     ("Form Submit", "Generate Document", "Send Email")),
    WorkflowTemplate("hr-leave", "Leave Request Management",
                     "Handle employee leave requests with approval workflow", "hr",
                     ("Form Submit", "If/Else", "Send Notification")),
    WorkflowTemplate("sales-lead", "Lead Qualification",
                     "Automatically qualify and route new sales leads", "sales",
                     ("Webhook", "Filter", "Slack Message")),
    WorkflowTemplate("sales-follow", "Follow-up Automation",
                     "Send automated follow-ups to prospects and customers", "sales",
                     ("Schedule", "Send Email")),
    WorkflowTemplate("marketing-email", "Email Campaign",
                     "Create and manage automated email marketing campaigns", "marketing",
                     ("Schedule", "Map Data", "SendGrid Email")),
    WorkflowTemplate("marketing-social", "Social Media Posting",
                     "Schedule and automate social media content publishing", "marketing"),
    WorkflowTemplate("finance-invoice", "Invoice Processing",
                     "Automate invoice creation, sending, and payment tracking", "finance",
                     ("Database Change", "Generate Document", "Send Email")),
    WorkflowTemplate("finance-expense", "Expense Approval",
                     "Manage expense submissions and approval workflows", "finance",
                     ("Form Submit", "If/Else", "Send Notification")),
    WorkflowTemplate("ops-inventory", "Inventory Management",
                     "Track inventory levels and trigger reorder notifications", "operations",
                     ("Schedule", "Filter", "Send Notification")),
    WorkflowTemplate("ops-task", "Task Assignment",
                     "Automatically assign and track operational tasks", "operations"),
    WorkflowTemplate("customer-ticket", "Support Ticket Routing",
                     "Automatically categorize and route customer support tickets", "customer",
                     ("Email Received", "Switch", "Slack Message")),
    WorkflowTemplate("customer-feedback", "Feedback Collection",
                     "Gather and analyze customer feedback automatically", "customer",
                     ("Form Submit", "Google Sheets")),
    WorkflowTemplate("it-deploy", "Deployment Pipeline",
                     "Automate code deployment and testing workflows", "it",
                     ("Webhook", "HTTP Request", "Slack Message")),
    WorkflowTemplate("it-backup", "Backup & Monitoring",
                     "Schedule automated backups and system health checks", "it",
                     ("Schedule", "HTTP Request", "Send Notification")),
]


def filter_templates(query: str = "", category: str = ALL_CATEGORIES) -> list[WorkflowTemplate]:
    """Templates in ``category`` whose name or description contains ``query``."""
    needle = query.strip().lower()
    return [
        t for t in WORKFLOW_TEMPLATES
        if (category == ALL_CATEGORIES or t.category == category)
        and (needle in t.name.lower() or needle in t.description.lower())
    ]


def get_template(template_id: str) -> WorkflowTemplate:
    for template in WORKFLOW_TEMPLATES:
        if template.id == template_id:
            return template
    raise TemplateNotFoundError(f"Workflow template '{template_id}' not found")


def graph_from_template(
    template: WorkflowTemplate,
    catalog: NodeCatalog | None = None,
    settings: CanvasSettings | None = None,
) -> WorkflowGraph:
    """Build a new graph from a gallery template, chaining its preset nodes."""
    catalog = catalog or NodeCatalog()
    settings = settings or CanvasSettings()
    graph = WorkflowGraph(
        name=template.name if template.id != "blank" else "Untitled Workflow",
        description=template.description if template.id != "blank" else "",
    )

    previous_id: str | None = None
    for index, template_name in enumerate(template.preset_nodes):
        node_template = catalog.get(template_name)
        if node_template is None:
            raise TemplateNotFoundError(
                f"Workflow template '{template.id}' references unknown node '{template_name}'"
            )
        position = Position(
            x=settings.default_origin.x,
            y=settings.default_origin.y + index * settings.default_spacing,
        )
        node = graph.add_node(catalog.instantiate(node_template, position))
        if previous_id is not None:
            graph.connect(previous_id, node.id)
        previous_id = node.id
    return graph
