"""Workflow Studio - visual workflow builder core.

Node catalog, editable workflow graphs, canvas interaction, per-node
configuration, and a cancellable execution engine with run history.
"""

__version__ = "0.1.0"
