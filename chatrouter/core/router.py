"""
Response routing.

The router resolves the requested model identifier once and hands the
request to search mode, auto mode, or a single provider caller. It has
no retry logic of its own.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Callable, Generator, Iterator, Optional, Sequence

import httpx
import requests

from chatrouter.core.auto_mode import resolve_candidates, run_auto_mode
from chatrouter.core.catalog import (
    GOOGLE,
    OPENROUTER,
    SAMBANOVA,
    AutoStrategy,
    GoogleModel,
    SambaNovaModel,
    resolve_model,
)
from chatrouter.core.prompts import PromptManager
from chatrouter.core.search import run_search_mode
from chatrouter.events import Done, Event, Failed, ImageDelta, LogEntry, Reset, TextDelta
from chatrouter.models.base import (
    BaseProvider,
    CancellationError,
    GenerationResult,
    Message,
    ProviderError,
    check_cancelled,
)
from chatrouter.models.gemini_provider import GeminiProvider
from chatrouter.models.openrouter_provider import OpenRouterProvider
from chatrouter.models.sambanova_provider import SambaNovaProvider


class ResponseRouter:
    """
    ResponseRouter dispatches generation requests to the right strategy.

    Args:
        config: The AppConfig with credentials and model lists.
        rng: Source of randomness for key and model shuffling.
        clock: Returns the current time for date-aware prompts.
        session: `requests` session used for Gemini calls.
        http_client: `httpx` client used by the OpenAI SDK.
    """

    def __init__(
        self,
        config: Any,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        session: Optional[requests.Session] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.prompts = PromptManager(config, clock=clock)
        self.gemini = GeminiProvider.from_config(config, session=session, rng=self.rng)
        self.openrouter = OpenRouterProvider.from_config(config, http_client=http_client)
        self.sambanova = SambaNovaProvider.from_config(config, http_client=http_client)
        self.providers = {
            GOOGLE: self.gemini,
            OPENROUTER: self.openrouter,
            SAMBANOVA: self.sambanova,
        }

    def _generate(
        self, messages: Sequence[Message], model: str, signal: Any
    ) -> Generator[Event, None, GenerationResult]:
        check_cancelled(signal)
        route = resolve_model(model)
        system_prompt = self.prompts.build_effective_system_prompt()

        if isinstance(route, AutoStrategy):
            if route.is_search:
                result = yield from run_search_mode(
                    self.config,
                    self.prompts,
                    self.gemini,
                    self.sambanova,
                    self.openrouter,
                    messages,
                    signal,
                )
                return result
            candidates = resolve_candidates(route, self.config, self.rng)
            auto_provider = self.providers[route.config.provider]
            result = yield from run_auto_mode(
                route, candidates, auto_provider, messages, system_prompt, signal
            )
            return result

        provider: BaseProvider
        if isinstance(route, GoogleModel):
            provider = self.gemini
        elif isinstance(route, SambaNovaModel):
            provider = self.sambanova
        else:
            provider = self.openrouter
        result = yield from provider.stream(messages, route.name, system_prompt, signal)
        return result

    def iter_events(
        self, messages: Sequence[Message], model: str, signal: Any = None
    ) -> Iterator[Event]:
        """
        Generate a response as an ordered stream of events.

        The stream always ends with exactly one `Done` or `Failed` event.
        """
        try:
            result = yield from self._generate(messages, model, signal)
        except (ProviderError, CancellationError) as exc:
            yield Failed(exc)
            return
        yield Done(result)

    def generate(
        self,
        messages: Sequence[Message],
        model: str,
        on_chunk: Optional[Callable[[str], None]] = None,
        on_reset_content: Optional[Callable[[], None]] = None,
        add_log: Optional[Callable[[LogEntry], None]] = None,
        signal: Any = None,
        on_image: Optional[Callable[[str], None]] = None,
    ) -> GenerationResult:
        """
        Generate a response, reporting progress through callbacks.

        Raises:
            ProviderError: If generation fails.
            CancellationError: If the signal fired.
        """
        for event in self.iter_events(messages, model, signal):
            if isinstance(event, TextDelta):
                if on_chunk is not None:
                    on_chunk(event.text)
            elif isinstance(event, ImageDelta):
                if on_image is not None:
                    on_image(event.data_uri)
            elif isinstance(event, Reset):
                if on_reset_content is not None:
                    on_reset_content()
            elif isinstance(event, LogEntry):
                if add_log is not None:
                    add_log(event)
            elif isinstance(event, Failed):
                raise event.error
            elif isinstance(event, Done):
                return event.result
        raise RuntimeError("Event stream ended without a result.")


def generate_response(
    messages: Sequence[Message],
    model: str,
    config: Any,
    on_chunk: Callable[[str], None],
    on_reset_content: Callable[[], None],
    add_log: Callable[[LogEntry], None],
    signal: Any = None,
    **router_kwargs: Any,
) -> GenerationResult:
    """
    Generate a response for `messages` with the requested model or auto mode.

    Extra keyword arguments are passed to `ResponseRouter`.
    """
    router = ResponseRouter(config, **router_kwargs)
    return router.generate(
        messages,
        model,
        on_chunk=on_chunk,
        on_reset_content=on_reset_content,
        add_log=add_log,
        signal=signal,
    )
