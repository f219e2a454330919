"""
Structured logging setup for the market maker.

Every bot event is a JSON object passed as the log message (see log_event).
The console shows it through rich; the log file gets one flat JSON line per
record, with the event's own fields merged in next to the timestamp and
level, written by a background thread so the event loop never blocks on
disk.
"""

from __future__ import annotations

import atexit
import json
import logging
import queue
import sys
import threading
import time
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from rich.logging import RichHandler

LOGGER_NAME = "mmbot"

# Feed-level events that can fire on every websocket message.
DEFAULT_THROTTLED_EVENTS = frozenset({
    "mid_missing",
    "mid_parse_error",
    "feed_unknown_channel",
})


def _event_payload(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    """The record's message decoded as an event dict, or None for plain text."""
    try:
        data = json.loads(record.getMessage())
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


class JsonFormatter(logging.Formatter):
    """One JSON line per record; event fields are lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "ts": record.created,
            "ts_iso": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        event = _event_payload(record)
        if event is None:
            line["msg"] = record.getMessage()
        else:
            for key, value in event.items():
                line.setdefault(key, value)
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, separators=(",", ":"), default=str)


_STOP = object()


class BackgroundHandler(logging.Handler):
    """
    Hands records to a writer thread that feeds `target`.

    emit() never blocks: when the queue is full the record is dropped and
    counted. close() drains what is queued, then closes `target`.
    """

    def __init__(self, target: logging.Handler, max_queue_size: int = 10000, name: str = "log-writer"):
        super().__init__()
        self._target = target
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._dropped = 0
        self._closed = False
        self._thread = threading.Thread(target=self._drain, daemon=True, name=name)
        self._thread.start()
        atexit.register(self.close)

    @property
    def dropped(self) -> int:
        return self._dropped

    def emit(self, record: logging.LogRecord) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(record)
        except queue.Full:
            self._dropped += 1

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            self._target.handle(item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Blocking put: the stop marker must not be lost to a full queue.
        self._queue.put(_STOP)
        self._thread.join(timeout=2.0)
        if self._dropped:
            sys.stderr.write(f"[logging] dropped {self._dropped} records (queue full)\n")
        self._target.close()
        super().close()


class EventThrottle(logging.Filter):
    """
    Pass the first record of a throttled event per coin, then drop repeats
    of that (event, coin) pair for `cooldown_sec`. Dropped repeats are
    counted per pair.
    """

    def __init__(self, cooldown_sec: float = 30.0, events: Optional[Iterable[str]] = None):
        super().__init__()
        self._cooldown = cooldown_sec
        self._events: FrozenSet[str] = frozenset(events) if events is not None else DEFAULT_THROTTLED_EVENTS
        self._last_pass: Dict[Tuple[str, str], float] = {}
        self._suppressed: Dict[Tuple[str, str], int] = {}

    def suppressed(self, event: str, coin: str = "") -> int:
        return self._suppressed.get((event, coin), 0)

    def filter(self, record: logging.LogRecord) -> bool:
        data = _event_payload(record)
        if data is None or data.get("event") not in self._events:
            return True

        key = (data["event"], str(data.get("coin", "")))
        now = time.monotonic()
        last = self._last_pass.get(key)
        if last is not None and now - last < self._cooldown:
            self._suppressed[key] = self._suppressed.get(key, 0) + 1
            return False
        self._last_pass[key] = now
        return True


def _console_handler(level: int, throttle: bool) -> logging.Handler:
    handler = RichHandler(show_time=True, show_level=True, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    if throttle:
        handler.addFilter(EventThrottle())
    return handler


def _file_handler(path: str, level: int, background: bool) -> logging.Handler:
    handler: logging.Handler = logging.FileHandler(path)
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level)
    if background:
        handler = BackgroundHandler(handler)
        handler.setLevel(level)
    return handler


def build_logger(
    name: str = LOGGER_NAME,
    level: int | str = logging.INFO,
    file_path: Optional[str] = "mmbot.log",
    async_file: bool = True,
    throttle_warnings: bool = True,
) -> logging.Logger:
    """
    Configure and return the process logger.

    Args:
        name: Logger name
        level: Minimum level, as an int or a level name
        file_path: JSON-lines log file; None disables file output
        async_file: Write the file from a background thread
        throttle_warnings: Drop console repeats of noisy feed events

    Calling it again for the same name only changes the levels.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.addHandler(_console_handler(level, throttle_warnings))
    if file_path:
        logger.addHandler(_file_handler(file_path, level, async_file))
    logger.propagate = False
    return logger


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **data: Any) -> None:
    """
    Log `event` with `data` as one JSON message.

        log_event(log, "fill", coin="ETH", side="bought", sz=0.1)
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, json.dumps({"event": event, **data}, default=str))
