"""
Provider callers.

`base.py` holds the shared message and error types, `sse.py` decodes
streamed `data:` lines, and each provider module wraps one API. The
OpenRouter and SambaNova callers share the OpenAI-compatible
implementation.
"""

__all__ = [
    "base",
    "sse",
    "gemini_provider",
    "openai_compatible_provider",
    "openrouter_provider",
    "sambanova_provider",
]
