"""
Core routing logic.

This subpackage provides the model catalog, prompt management, the
auto and search fallback strategies, and the router that dispatches
requests between them.
"""

__all__ = [
    "catalog",
    "prompts",
    "auto_mode",
    "search",
    "router",
]
