"""
chatrouter package root.

This package provides configuration loading, the response router with
its auto and search modes, and the provider callers for Google Gemini,
OpenRouter and SambaNova.
"""

__all__ = [
    "config",
    "core",
    "events",
    "models",
]
