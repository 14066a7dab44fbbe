"""CLI UI components for terminal-based workflow visualization.

This package provides rich terminal UI capabilities for:
- Visualizing workflow graphs as trees and topological levels
- Tabular node and execution record views
"""

from workflow_studio.cli_ui.graph_renderer import NodeTableRenderer, TerminalGraphRenderer

__all__ = [
    "TerminalGraphRenderer",
    "NodeTableRenderer",
]
