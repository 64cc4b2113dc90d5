"""
Pytest configuration and fixtures for the test suite.
"""
import io
import json
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import requests

from chatrouter.config import AppConfig
from chatrouter.events import LogEntry, Reset, TextDelta


def sse_lines(*events: Any) -> List[str]:
    """Frame each event as a `data:` line followed by a blank line."""
    lines: List[str] = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}")
        lines.append("")
    return lines


def gemini_text(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def openai_delta(text: str) -> Dict[str, Any]:
    return {"choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}]}


class FakeResponse:
    """Stands in for a streamed `requests.Response`."""

    def __init__(
        self,
        status_code: int = 200,
        lines: Optional[List[str]] = None,
        text: str = "",
        fail_after: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.lines = lines or []
        self.text = text
        self.fail_after = fail_after
        self.encoding: Optional[str] = None
        self.closed = False

    def iter_lines(self, decode_unicode: bool = False):
        for index, line in enumerate(self.lines):
            if self.fail_after is not None and index >= self.fail_after:
                raise requests.ConnectionError("Connection reset by peer")
            yield line

    def close(self) -> None:
        self.closed = True


class StallingResponse(FakeResponse):
    """
    Serves its lines, then hangs like a silent server until closed.
    """

    def __init__(self, lines: List[str], stall_seconds: float = 10.0) -> None:
        super().__init__(lines=lines)
        self.stall_seconds = stall_seconds
        self.released = threading.Event()

    def iter_lines(self, decode_unicode: bool = False):
        yield from self.lines
        self.released.wait(self.stall_seconds)

    def close(self) -> None:
        super().close()
        self.released.set()


def raw_response(body: bytes, status_code: int = 200) -> requests.Response:
    """A real `requests.Response` reading `body` as its raw stream."""
    response = requests.Response()
    response.status_code = status_code
    response.raw = io.BytesIO(body)
    return response


class FakeSession:
    """
    Records Gemini POSTs and answers them through `handler`.

    `handler(model, key, body)` returns a FakeResponse.
    """

    def __init__(self, handler: Callable[[str, str, Dict[str, Any]], FakeResponse]) -> None:
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, params=None, json=None, headers=None, stream=False, **kwargs):
        model = url.rsplit("/models/", 1)[1].split(":")[0]
        key = params["key"]
        self.calls.append(
            {"url": url, "model": model, "key": key, "body": json, "params": params, "kwargs": kwargs}
        )
        return self.handler(model, key, json)

    @property
    def keys_tried(self) -> List[str]:
        return [c["key"] for c in self.calls]


class IdentityRng:
    """Shuffling policy that keeps the original order."""

    def sample(self, population, k):
        return list(population)[:k]


def openai_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def openai_stream_response(*events: Any, done: bool = True) -> httpx.Response:
    lines = sse_lines(*events)
    if done:
        lines += ["data: [DONE]", ""]
    return httpx.Response(
        200,
        content="\n".join(lines).encode("utf-8"),
        headers={"content-type": "text/event-stream"},
    )


def fresh(response: httpx.Response) -> httpx.Response:
    """Copy a canned response so it can be served more than once."""
    return httpx.Response(response.status_code, content=response.content, headers=response.headers)


def drive(gen):
    """Run a provider/strategy generator to completion: (events, result)."""
    events = []
    while True:
        try:
            events.append(next(gen))
        except StopIteration as stop:
            return events, stop.value


def drive_until_error(gen):
    """Run a generator that is expected to raise: (events, exception)."""
    events = []
    try:
        while True:
            events.append(next(gen))
    except StopIteration:
        raise AssertionError("generator finished without raising")
    except Exception as exc:  # noqa: BLE001
        return events, exc


def log_messages(events, level: Optional[str] = None) -> List[str]:
    return [
        e.message for e in events if isinstance(e, LogEntry) and (level is None or e.level == level)
    ]


def text_of(events) -> str:
    return "".join(e.text for e in events if isinstance(e, TextDelta))


def resets(events) -> int:
    return sum(1 for e in events if isinstance(e, Reset))


@pytest.fixture
def identity_rng():
    return IdentityRng()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 14, 30)


@pytest.fixture
def app_config():
    return AppConfig(
        google_keys=["google-key-aaaaaa", "google-key-bbbbbb", "google-key-cccccc"],
        openrouter_key="or-key",
        samba_key="samba-key",
        system_prompt="Be helpful.",
        openrouter_models=["vendor/model-a:free", "vendor/model-b:free"],
    )

