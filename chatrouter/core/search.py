"""
Search mode: answers grounded in live Google Search results.

The primary path asks Gemini models that support the `google_search`
tool and appends the collected sources to the answer. Without Google
keys, or when every grounded attempt fails, the question is answered
from model knowledge through SambaNova or OpenRouter instead.
"""

from __future__ import annotations

from typing import Any, Generator, List, Sequence
from urllib.parse import urlparse

from chatrouter.core.catalog import SEARCH_FALLBACK_SAMBA_MODELS, SEARCH_MODELS, get_model_short_name
from chatrouter.core.prompts import PromptManager
from chatrouter.events import Reset, log_entry
from chatrouter.models.base import (
    CancellationError,
    ConfigurationError,
    ExhaustedError,
    FatalProviderError,
    GenerationResult,
    GroundingSource,
    Message,
    ProviderError,
    SearchUnavailableError,
    check_cancelled,
    key_hint,
)
from chatrouter.models.gemini_provider import GeminiOutput, GeminiProvider
from chatrouter.models.openrouter_provider import OpenRouterProvider
from chatrouter.models.sambanova_provider import SambaNovaProvider

# Rendering code looks for these exact markers.
SOURCES_START = "<!--SOURCES-->"
SOURCES_END = "<!--/SOURCES-->"


def source_title(source: GroundingSource) -> str:
    if source.title:
        return source.title
    return urlparse(source.url).hostname or source.url


def format_sources(sources: Sequence[GroundingSource]) -> str:
    """Render sources as the marker-wrapped Markdown link list."""
    if not sources:
        return ""
    lines = "".join(f"- [{source_title(s)}]({s.url})\n" for s in sources)
    return f"\n\n{SOURCES_START}\n{lines}{SOURCES_END}"


def search_with_google(
    gemini: GeminiProvider,
    messages: Sequence[Message],
    system_prompt: str,
    signal: Any = None,
) -> Generator[Any, None, GeminiOutput]:
    keys = gemini.shuffled_keys()
    failures: List[str] = []

    for model in SEARCH_MODELS:
        for key in keys:
            check_cancelled(signal)
            hint = key_hint(key)
            yield log_entry("info", f"🔍 Searching via {model} {hint}")
            try:
                output = yield from gemini.search_attempt(messages, model, key, system_prompt, signal)
            except (CancellationError, SearchUnavailableError):
                raise
            except ProviderError as exc:
                err_msg = str(exc)
                failures.append(f"{model} {hint}: {err_msg[:80]}")
                yield log_entry("warn", f"Search {model} {hint}: {err_msg[:80]}")
                continue

            yield log_entry(
                "info",
                f"✓ Search OK: {len(output.text)} chars, {len(output.sources)} sources",
            )
            return output

    raise ExhaustedError("Google Search failed with all keys/models", failures)


def search_fallback(
    config: Any,
    sambanova: SambaNovaProvider,
    openrouter: OpenRouterProvider,
    messages: Sequence[Message],
    prompt: str,
    signal: Any = None,
) -> Generator[Any, None, GenerationResult]:
    """
    Answer from training knowledge only.

    SambaNova is tried across a short model list first, then the first
    configured OpenRouter model.
    """
    failures: List[str] = []

    if sambanova.api_key:
        for model in SEARCH_FALLBACK_SAMBA_MODELS:
            check_cancelled(signal)
            yield log_entry("info", f"📝 Fallback via SambaNova {model}")
            try:
                yield Reset()
                result = yield from sambanova.stream(messages, model, prompt, signal)
                return result
            except CancellationError:
                raise
            except ProviderError as exc:
                err_msg = str(exc)
                failures.append(f"{model}: {err_msg[:80]}")
                yield log_entry("warn", f"Fallback {model} failed: {err_msg[:80]}")

    if openrouter.api_key and config.openrouter_models:
        check_cancelled(signal)
        model = config.openrouter_models[0]
        yield log_entry("info", f"📝 Fallback via OpenRouter {get_model_short_name(model)}")
        yield Reset()
        result = yield from openrouter.stream(messages, model, prompt, signal)
        return result

    if failures:
        raise ExhaustedError(
            "AI Search fallback failed with all models.\n\n" + "\n".join(failures), failures
        )
    raise ConfigurationError(
        "AI Search requires Google API keys (for web search) or SambaNova/OpenRouter keys "
        "(for knowledge-based answers). Add keys to the config."
    )


def run_search_mode(
    config: Any,
    prompts: PromptManager,
    gemini: GeminiProvider,
    sambanova: SambaNovaProvider,
    openrouter: OpenRouterProvider,
    messages: Sequence[Message],
    signal: Any = None,
) -> Generator[Any, None, GenerationResult]:
    query = messages[-1].content if messages else ""
    if not query.strip():
        raise FatalProviderError("Empty query")

    yield log_entry("info", "🔍 AI Search starting...")

    if gemini.keys:
        try:
            yield Reset()
            output = yield from search_with_google(
                gemini, messages, prompts.get_search_system_prompt(), signal
            )
            return GenerationResult(
                text=output.text + format_sources(output.sources),
                images=[],
                truncated=output.truncated,
            )
        except (CancellationError, SearchUnavailableError):
            raise
        except ProviderError as exc:
            yield log_entry("warn", f"Google Search failed: {str(exc)[:80]}, trying fallback...")

    yield log_entry("info", "📝 Web search unavailable — using knowledge-based answer")
    result = yield from search_fallback(
        config, sambanova, openrouter, messages, prompts.get_search_fallback_prompt(), signal
    )
    return result
