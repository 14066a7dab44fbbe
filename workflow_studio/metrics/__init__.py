"""Execution history reporting."""
