"""
Events produced while a response is generated.

A call emits a single ordered stream of these events instead of
driving several independent callbacks. Log entries are mirrored to
the standard `logging` module as they are created.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Union

from chatrouter.models.base import GenerationResult

logger = logging.getLogger("chatrouter")

LOG_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ImageDelta:
    data_uri: str


@dataclass(frozen=True)
class Reset:
    """Content emitted by an earlier attempt must be discarded."""


@dataclass(frozen=True)
class LogEntry:
    level: str
    message: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Done:
    result: GenerationResult


@dataclass(frozen=True)
class Failed:
    error: BaseException


Event = Union[TextDelta, ImageDelta, Reset, LogEntry, Done, Failed]


def log_entry(level: str, message: str) -> LogEntry:
    """Create a log event and forward it to the package logger."""
    logger.log(LOG_LEVELS.get(level, logging.INFO), message)
    return LogEntry(level=level, message=message)
