"""
Google Gemini provider implementation.

Talks to the Generative Language REST API directly with `requests`,
streaming `streamGenerateContent` as server-sent events. Several API
keys can be configured; each call walks through them in a random
order until one of them produces a response.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional, Sequence

import requests

from chatrouter.events import ImageDelta, Reset, TextDelta, log_entry
from chatrouter.models.base import (
    BaseProvider,
    CancellationError,
    ConfigurationError,
    ExhaustedError,
    GenerationResult,
    GroundingSource,
    Message,
    ProviderError,
    SearchUnavailableError,
    TransientProviderError,
    check_cancelled,
    error_from_message,
    key_hint,
    parse_data_uri,
)
from chatrouter.models.sse import iter_cancellable, iter_json_events

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

SEARCH_UNAVAILABLE_MARKERS = ("not supported", "FAILED_PRECONDITION")


class StreamInterrupted(Exception):
    """An error object or a prompt block arrived inside the stream."""


@dataclass
class GeminiOutput:
    text: str = ""
    images: List[str] = field(default_factory=list)
    sources: List[GroundingSource] = field(default_factory=list)
    truncated: bool = False

    @property
    def has_content(self) -> bool:
        return bool(self.text or self.images)

    def to_result(self) -> GenerationResult:
        return GenerationResult(text=self.text, images=list(self.images), truncated=self.truncated)


def is_image_capable_model(model: str) -> bool:
    return "image" in model


def is_search_unavailable(message: str) -> bool:
    return any(marker in message for marker in SEARCH_UNAVAILABLE_MARKERS)


class GeminiProvider(BaseProvider):
    """
    GeminiProvider streams chat completions from Gemini with key rotation.
    """

    def __init__(
        self,
        keys: Sequence[str],
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        super().__init__(name="google")
        self.keys = [k for k in keys if k]
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "GeminiProvider":
        return cls(keys=config.google_keys, **kwargs)

    def shuffled_keys(self) -> List[str]:
        return self.rng.sample(self.keys, len(self.keys))

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def build_contents(messages: Sequence[Message]) -> List[Dict[str, Any]]:
        """
        Convert chat messages into Gemini `contents` turns.

        Inline images come first in each turn, followed by the text part.
        Gemini rejects empty text parts, so an empty message becomes " ".
        """
        contents: List[Dict[str, Any]] = []
        for msg in messages:
            parts: List[Dict[str, Any]] = []
            for image in msg.images:
                parsed = parse_data_uri(image)
                if parsed is not None:
                    mime_type, data = parsed
                    parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
            parts.append({"text": msg.content or " "})
            role = "model" if msg.role == "assistant" else "user"
            contents.append({"role": role, "parts": parts})
        return contents

    def build_request_body(
        self, messages: Sequence[Message], model: str, system_prompt: str
    ) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": 1.0, "maxOutputTokens": 65536}
        if is_image_capable_model(model):
            generation_config["responseModalities"] = ["TEXT", "IMAGE"]
        return {
            "contents": self.build_contents(messages),
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "generationConfig": generation_config,
        }

    def build_search_body(self, messages: Sequence[Message], system_prompt: str) -> Dict[str, Any]:
        return {
            "contents": self.build_contents(messages),
            "tools": [{"google_search": {}}],
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 8192},
        }

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def _open(self, model: str, key: str, body: Dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}/models/{model}:streamGenerateContent"
        try:
            response = self.session.post(
                url,
                params={"key": key, "alt": "sse"},
                json=body,
                headers={"Content-Type": "application/json"},
                stream=True,
            )
        except requests.RequestException as exc:
            raise error_from_message(f"Gemini request failed: {exc}") from exc

        if response.status_code >= 300:
            error_text = response.text[:200]
            response.close()
            raise error_from_message(f"HTTP {response.status_code}: {error_text}")
        return response

    def _read(self, response: requests.Response, signal: Any) -> Generator[Any, None, GeminiOutput]:
        output = GeminiOutput()
        seen_urls = set()
        try:
            # Byte lines: decoded lines would also split on U+2028 inside JSON strings.
            lines = iter_cancellable(response.iter_lines(), signal, response.close)
            for data in iter_json_events(lines, signal):
                error = data.get("error")
                if error:
                    if isinstance(error, dict):
                        err_msg = str(error.get("message") or error)
                        code = error.get("code") or ""
                    else:
                        err_msg, code = str(error), ""
                    raise StreamInterrupted(f"Stream error {code}: {err_msg[:200]}")

                candidates = data.get("candidates") or []
                if not candidates:
                    block_reason = (data.get("promptFeedback") or {}).get("blockReason")
                    if block_reason:
                        raise StreamInterrupted(f"Prompt blocked: {block_reason}")
                    continue

                candidate = candidates[0] or {}
                for part in (candidate.get("content") or {}).get("parts") or []:
                    text = part.get("text")
                    if text:
                        output.text += text
                        yield TextDelta(text)
                    inline = part.get("inlineData")
                    if inline:
                        uri = f"data:{inline.get('mimeType')};base64,{inline.get('data')}"
                        output.images.append(uri)
                        yield ImageDelta(uri)

                grounding = candidate.get("groundingMetadata") or {}
                for chunk in grounding.get("groundingChunks") or []:
                    web = chunk.get("web") or {}
                    url = web.get("uri")
                    if url and url not in seen_urls:
                        seen_urls.add(url)
                        output.sources.append(GroundingSource(title=web.get("title") or "", url=url))
                queries = grounding.get("webSearchQueries")
                if queries:
                    yield log_entry("info", f"🔎 Search queries: {' | '.join(queries)}")
        except StreamInterrupted as exc:
            if not output.has_content:
                raise error_from_message(str(exc)) from exc
            output.truncated = True
            yield log_entry("warn", "Stream interrupted with partial content")
        except requests.RequestException as exc:
            if not output.has_content:
                raise error_from_message(f"Gemini stream failed: {exc}") from exc
            output.truncated = True
            yield log_entry("warn", "Stream interrupted with partial content")
        finally:
            response.close()
        return output

    def attempt(
        self,
        model: str,
        key: str,
        body: Dict[str, Any],
        signal: Any = None,
    ) -> Generator[Any, None, GeminiOutput]:
        """
        Run a single streamed request with one key.

        Emits `Reset` as soon as the request is accepted so that output
        left over from an earlier key is discarded by the consumer.
        """
        check_cancelled(signal)
        response = self._open(model, key, body)
        yield Reset()
        output = yield from self._read(response, signal)
        return output

    def stream(
        self,
        messages: Sequence[Message],
        model: str,
        system_prompt: str,
        signal: Any = None,
    ) -> Generator[Any, None, GenerationResult]:
        if not self.keys:
            raise ConfigurationError("No Google API keys configured. Add them to the config.")

        keys = self.shuffled_keys()
        total = len(keys)
        failures: List[str] = []
        body = self.build_request_body(messages, model, system_prompt)

        yield log_entry("info", f"→ Gemini [{model}] — {total} key(s)")

        for index, key in enumerate(keys, start=1):
            check_cancelled(signal)
            hint = key_hint(key)
            yield log_entry("info", f"Key {hint} ({index}/{total})")
            try:
                output = yield from self.attempt(model, key, body, signal)
                if not output.has_content:
                    raise TransientProviderError("Empty response from model")
            except CancellationError:
                raise
            except ProviderError as exc:
                err_msg = str(exc)
                failures.append(f"{hint}: {err_msg[:100]}")
                yield log_entry("warn", f"Key {hint} failed: {err_msg[:80]}")
                if not isinstance(exc, TransientProviderError):
                    raise
                continue

            if not output.truncated:
                imgs = f", {len(output.images)} imgs" if output.images else ""
                yield log_entry("info", f"← OK via {hint} ({len(output.text)} chars{imgs})")
            return output.to_result()

        yield log_entry("error", f"All {total} keys exhausted for {model}")
        raise ExhaustedError(f"All {total} keys failed for {model}.", failures)

    def search_attempt(
        self,
        messages: Sequence[Message],
        model: str,
        key: str,
        system_prompt: str,
        signal: Any = None,
    ) -> Generator[Any, None, GeminiOutput]:
        """
        One grounded request using the `google_search` tool.

        Raises `SearchUnavailableError` when Google reports that search
        is not available for the key's location.
        """
        body = self.build_search_body(messages, system_prompt)
        try:
            output = yield from self.attempt(model, key, body, signal)
        except ProviderError as exc:
            if is_search_unavailable(str(exc)):
                raise SearchUnavailableError(str(exc)) from exc
            raise
        if not output.has_content:
            raise TransientProviderError("Empty search response")
        return output
