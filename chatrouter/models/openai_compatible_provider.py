"""
OpenAI-compatible provider implementation.

Both OpenRouter and SambaNova expose the Chat Completions API. The
official `openai` SDK is used for transport and authentication with a
custom base URL; the streamed body is read as raw `data:` lines so that
malformed keep-alive lines can be skipped instead of aborting the
stream.
"""

from __future__ import annotations

from typing import Any, Dict, Generator, List, Optional, Sequence

import httpx
import openai
from openai import OpenAI

from chatrouter.events import TextDelta, log_entry
from chatrouter.models.base import (
    BaseProvider,
    ConfigurationError,
    GenerationResult,
    Message,
    check_cancelled,
    error_from_message,
)
from chatrouter.models.sse import iter_byte_lines, iter_cancellable, iter_json_events


class OpenAICompatibleProvider(BaseProvider):
    """
    Streams chat completions from an OpenAI-compatible endpoint.

    Uses a single bearer token; there is no key rotation. Retries are
    disabled in the SDK because fallback is decided by the caller.
    """

    label = "OpenAI"

    def __init__(
        self,
        name: str,
        api_key: str,
        base_url: str,
        default_headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(name=name)
        self.api_key = api_key
        self.base_url = base_url
        self.default_headers = default_headers or {}
        self.http_client = http_client

    def _client(self) -> OpenAI:
        if not self.api_key:
            raise ConfigurationError(f"No {self.label} API key. Add it to the config.")
        return OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            default_headers=self.default_headers,
            max_retries=0,
            http_client=self.http_client,
        )

    def display_model(self, model: str) -> str:
        return model

    @staticmethod
    def build_messages(messages: Sequence[Message], system_prompt: str) -> List[Dict[str, Any]]:
        """
        Convert chat messages to the Chat Completions format.

        A system entry comes first. User turns with images use mixed
        text / image_url content blocks; everything else is plain text.
        """
        result: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        for msg in messages:
            if msg.role == "user" and msg.images:
                content: List[Dict[str, Any]] = [
                    {"type": "text", "text": msg.content or "Describe this image"}
                ]
                for image in msg.images:
                    content.append({"type": "image_url", "image_url": {"url": image}})
                result.append({"role": "user", "content": content})
            else:
                role = "assistant" if msg.role == "assistant" else "user"
                result.append({"role": role, "content": msg.content})
        return result

    def stream(
        self,
        messages: Sequence[Message],
        model: str,
        system_prompt: str,
        signal: Any = None,
    ) -> Generator[Any, None, GenerationResult]:
        client = self._client()
        check_cancelled(signal)
        yield log_entry("info", f"→ {self.label} [{self.display_model(model)}]")

        text = ""
        truncated = False
        try:
            with client.chat.completions.with_streaming_response.create(
                model=model,
                messages=self.build_messages(messages, system_prompt),
                stream=True,
            ) as response:
                try:
                    lines = iter_cancellable(
                        iter_byte_lines(response.iter_bytes()), signal, response.close
                    )
                    for data in iter_json_events(lines, signal):
                        choices = data.get("choices") or []
                        if not choices:
                            continue
                        delta = (choices[0] or {}).get("delta") or {}
                        chunk = delta.get("content")
                        if chunk:
                            text += chunk
                            yield TextDelta(chunk)
                except httpx.HTTPError as exc:
                    if not text:
                        raise error_from_message(f"{self.label} stream failed: {exc}") from exc
                    truncated = True
                    yield log_entry("warn", "Stream interrupted with partial content")
        except openai.APIStatusError as exc:
            raise error_from_message(
                f"{self.label} {exc.status_code}: {exc.response.text[:200]}"
            ) from exc
        except openai.APIError as exc:
            raise error_from_message(f"{self.label} request failed: {exc}") from exc

        if not truncated:
            yield log_entry("info", f"← {self.label} OK ({len(text)} chars)")
        return GenerationResult(text=text, images=[], truncated=truncated)
