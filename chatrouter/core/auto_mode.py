"""
Auto mode: try a list of models until one answers.

Candidates are attempted strictly in order. A transient failure moves
on to the next model; any other failure, or cancellation, ends the
whole chain.
"""

from __future__ import annotations

import random
from typing import Any, Generator, List, Sequence

from chatrouter.core.catalog import OPENROUTER, SAMBANOVA, AutoStrategy, get_model_short_name
from chatrouter.events import Reset, log_entry
from chatrouter.models.base import (
    BaseProvider,
    CancellationError,
    ConfigurationError,
    ExhaustedError,
    GenerationResult,
    Message,
    ProviderError,
    TransientProviderError,
    check_cancelled,
)


def resolve_candidates(strategy: AutoStrategy, config: Any, rng: random.Random) -> List[str]:
    """
    Build the ordered candidate list for a strategy.

    OpenRouter strategies use the configured OpenRouter models in a
    random order; the others use the strategy's own fixed list.
    """
    provider = strategy.config.provider
    if provider == OPENROUTER:
        models = list(config.openrouter_models)
        if not models:
            raise ConfigurationError(
                "No OpenRouter models configured. Add models under providers.openrouter.models."
            )
        return rng.sample(models, len(models))

    models = list(strategy.config.models)
    if not models:
        if provider == SAMBANOVA:
            raise ConfigurationError("No SambaNova models configured.")
        raise ConfigurationError(f"No models configured for {strategy.config.label}.")
    return models


def run_auto_mode(
    strategy: AutoStrategy,
    candidates: Sequence[str],
    provider: BaseProvider,
    messages: Sequence[Message],
    system_prompt: str,
    signal: Any = None,
) -> Generator[Any, None, GenerationResult]:
    total = len(candidates)
    errors: List[str] = []

    yield log_entry("info", f"🔄 Auto [{strategy.config.label}] — {total} model(s) to try")

    for index, model in enumerate(candidates, start=1):
        check_cancelled(signal)
        name = get_model_short_name(model)
        yield log_entry("info", f"Auto: trying {name} ({index}/{total})")

        try:
            yield Reset()
            result = yield from provider.stream(messages, model, system_prompt, signal)
            return result
        except CancellationError:
            raise
        except ProviderError as exc:
            err_msg = str(exc)
            errors.append(f"{name}: {err_msg[:80]}")
            if not isinstance(exc, TransientProviderError):
                yield log_entry("error", f"Auto: {name} non-retryable error: {err_msg[:80]}")
                raise
            yield log_entry("warn", f"Auto: {name} failed, trying next...")

    yield log_entry("error", f"Auto: all {total} models failed")
    raise ExhaustedError(
        f"Auto mode: all {total} models failed. Check API keys or try later.\n\n" + "\n".join(errors),
        errors,
    )
