"""
Base types shared by all provider callers.

Defines the chat message and result containers, the provider error
taxonomy together with the keyword predicate that decides which
failures are transient, and the common base class every provider
caller implements.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Generator, List, Optional, Sequence, Tuple

RETRYABLE_PATTERN = re.compile(
    r"429|500|503|overloaded|quota|rate.?limit|capacity|unavailable|keys? failed|exhausted",
    re.IGNORECASE,
)

# data:<mime>;base64,<payload>
DATA_URI_PATTERN = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class Message:
    """
    A single chat turn as handed over by the surrounding application.

    `images` holds inline images as data-URIs. The UI flags are carried
    along untouched; providers never look at them.
    """

    role: str
    content: str
    images: Tuple[str, ...] = ()
    model: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    is_streaming: bool = False
    is_error: bool = False


@dataclass
class GenerationResult:
    """
    Aggregated output of one call.

    `truncated` is set when the stream broke after some content had
    already been produced and the partial output was kept.
    """

    text: str
    images: List[str] = field(default_factory=list)
    truncated: bool = False


@dataclass(frozen=True)
class GroundingSource:
    title: str
    url: str


class ProviderError(Exception):
    """Raised when a provider fails to execute a request."""


class ConfigurationError(ProviderError):
    """A credential or model list needed for the call is missing."""


class TransientProviderError(ProviderError):
    """Rate limit, overload, quota or 5xx: the next candidate may succeed."""


class FatalProviderError(ProviderError):
    """Any other provider failure; aborts the whole call."""


class SearchUnavailableError(FatalProviderError):
    """Web search grounding is not available for this key or location."""


class ExhaustedError(TransientProviderError):
    """Every candidate in a fallback list failed."""

    def __init__(self, message: str, failures: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.failures = list(failures)


class CancellationError(Exception):
    """The caller's cancellation signal fired. Never retried."""

    def __init__(self, message: str = "Request aborted") -> None:
        super().__init__(message)


def is_retryable_error(message: str) -> bool:
    return bool(RETRYABLE_PATTERN.search(message))


def error_from_message(message: str) -> ProviderError:
    """
    Build the provider error matching a failure message.

    Messages that look transient become `TransientProviderError`,
    everything else `FatalProviderError`.
    """
    if is_retryable_error(message):
        return TransientProviderError(message)
    return FatalProviderError(message)


def check_cancelled(signal: Any) -> None:
    if signal is not None and signal.is_set():
        raise CancellationError()


def parse_data_uri(uri: str) -> Optional[Tuple[str, str]]:
    """Split a base64 data-URI into (mime type, payload), or None."""
    match = DATA_URI_PATTERN.match(uri)
    if match is None:
        return None
    return match.group(1), match.group(2)


def key_hint(key: str) -> str:
    return f"...{key[-6:]}"


class BaseProvider:
    """
    Abstract base class for provider callers.

    `stream` is a generator: it yields events (text and image deltas,
    resets, log entries) while the response arrives and returns the
    final `GenerationResult` as its value, so orchestration code can
    chain callers with `result = yield from provider.stream(...)`.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def stream(
        self,
        messages: Sequence[Message],
        model: str,
        system_prompt: str,
        signal: Any = None,
    ) -> Generator[Any, None, GenerationResult]:
        raise NotImplementedError
