"""
Decoding of newline-delimited `data:` event streams.

All three providers frame their streamed output as lines of the form
`data: <json>`. This module turns the raw response body into the JSON
payloads and lets a cancellation signal abort a read that is stuck
waiting on the network.
"""

import json
import queue
import threading
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

from chatrouter.models.base import check_cancelled

DONE_SENTINEL = "[DONE]"

# How often a blocked read looks at the cancellation signal, in seconds.
CANCEL_POLL_INTERVAL = 0.05

_LINE, _ERROR, _END = range(3)


def iter_byte_lines(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """
    Split a byte stream on `\\n` (with an optional `\\r` before it).

    Text-mode line splitting also breaks on U+2028, U+2029 and U+0085,
    which JSON allows unescaped inside strings, so lines are cut at the
    byte level and decoded afterwards.
    """
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for line in lines:
            yield line.rstrip(b"\r")
    if buffer:
        yield buffer.rstrip(b"\r")


def iter_cancellable(
    lines: Iterable[Any],
    signal: Any = None,
    close: Optional[Callable[[], None]] = None,
) -> Iterator[Any]:
    """
    Read `lines` on a background thread so that cancellation is prompt.

    A stalled stream blocks the reading thread, not the caller: while
    waiting for the next line the signal is polled, and once it is set
    `close` is called to release the connection and `CancellationError`
    is raised. Errors raised while reading are re-raised in the caller.
    """
    if signal is None:
        yield from lines
        return

    inbox: "queue.Queue" = queue.Queue()
    stopped = threading.Event()

    def reader() -> None:
        try:
            for line in lines:
                if stopped.is_set():
                    return
                inbox.put((_LINE, line))
        except Exception as exc:  # handed over to the consuming thread
            inbox.put((_ERROR, exc))
        finally:
            inbox.put((_END, None))

    thread = threading.Thread(target=reader, name="chatrouter-stream-reader", daemon=True)
    thread.start()
    try:
        while True:
            if signal.is_set():
                if close is not None:
                    close()
                check_cancelled(signal)
            try:
                kind, item = inbox.get(timeout=CANCEL_POLL_INTERVAL)
            except queue.Empty:
                continue
            if kind == _LINE:
                yield item
            elif kind == _ERROR:
                raise item
            else:
                return
    finally:
        stopped.set()


def iter_data_payloads(lines: Iterable[Any], signal: Any = None) -> Iterator[str]:
    """
    Yield the payload of every `data:` line, skipping blanks and `[DONE]`.
    """
    for line in lines:
        check_cancelled(signal)
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        if not line.startswith("data: "):
            continue
        payload = line[6:].strip()
        if not payload or payload == DONE_SENTINEL:
            continue
        yield payload


def iter_json_events(lines: Iterable[Any], signal: Any = None) -> Iterator[Dict[str, Any]]:
    """
    Yield each `data:` payload decoded as a JSON object.

    Lines that are not valid JSON objects are skipped; some providers
    interleave keep-alive or comment lines with the real events.
    """
    for payload in iter_data_payloads(lines, signal):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            yield data
