"""Session event logging.

Every event is one dict: ``kind``, ``session_id``, a timestamp, a trace id
plus free-form fields. The console always gets a short human line. With
``ENABLE_FILE_LOGS`` set, a rotating JSON-lines file and a rotating human file
are written next to each other.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Dict

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "0") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview.jsonl")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

SUMMARY_FIELDS = ("section", "state", "source", "intent", "transform", "outcome", "asked", "ms", "error")

_logger = logging.getLogger("interview.events")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False


class HumanEventFormatter(logging.Formatter):  # One readable line per event
    def __init__(self) -> None:
        super().__init__("[%(asctime)s] %(levelname)s %(name)s :: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        event: Dict[str, Any] = getattr(record, "event", {})
        parts = [f"session={event.get('session_id')}", f"kind={event.get('kind')}"]
        parts.extend(f"{key}={event[key]}" for key in SUMMARY_FIELDS if key in event)
        record.message = " ".join(parts)
        return super().formatMessage(record)


class JsonEventFormatter(logging.Formatter):  # Raw event dict as a JSON line
    def format(self, record: logging.LogRecord) -> str:
        event = dict(getattr(record, "event", {}))
        event["level"] = record.levelname
        return json.dumps(event, ensure_ascii=False, default=str)


def _rotating(path: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(formatter)
    return handler


def _human_path(path: str) -> str:
    root, _ = os.path.splitext(path)
    return f"{root}-human.log"


def _ensure_handlers() -> None:
    if _logger.handlers:
        return

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(HumanEventFormatter())
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return

    directory = os.path.dirname(LOG_FILE)
    if directory:
        os.makedirs(directory, exist_ok=True)
    _logger.addHandler(_rotating(LOG_FILE, JsonEventFormatter()))
    _logger.addHandler(_rotating(_human_path(LOG_FILE), HumanEventFormatter()))


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Record one session event on every configured handler."""

    _ensure_handlers()
    event: Dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
        **fields,
    }
    _logger.log(level, kind, extra={"event": event})


__all__ = ["JsonEventFormatter", "HumanEventFormatter", "log_event"]
