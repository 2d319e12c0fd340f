"""Interview record store: the persistence collaborator used by the engine."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Mapping, Optional, Protocol

from .sqlite import get_conn


class InterviewNotFoundError(LookupError):
    """Raised when no interview record exists for a session id."""

    def __init__(self, interview_id: str) -> None:
        super().__init__(f"interview not found: {interview_id}")
        self.interview_id = interview_id


class InterviewStore(Protocol):
    def get(self, interview_id: str) -> Dict[str, Any]: ...

    def patch(self, interview_id: str, partial: Mapping[str, Any]) -> Dict[str, Any]: ...


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class SqliteInterviewStore:
    """Stores each interview as one JSON document keyed by its id."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self._db_path = db_path

    def create(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        interview_id = str(record.get("id") or "").strip()
        if not interview_id:
            raise ValueError("interview record requires an id")
        timestamp = _now()
        stored = {**record, "id": interview_id, "createdAt": timestamp, "updatedAt": timestamp}
        with get_conn(self._db_path) as conn:
            conn.execute(
                """INSERT OR REPLACE INTO interviews (id, record_json, created_at, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (interview_id, json.dumps(stored, default=str), timestamp, timestamp),
            )
        return stored

    def get(self, interview_id: str) -> Dict[str, Any]:
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT record_json FROM interviews WHERE id = ?", (interview_id,)).fetchone()
        if row is None:
            raise InterviewNotFoundError(interview_id)
        return json.loads(row[0])

    def patch(self, interview_id: str, partial: Mapping[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``partial`` into the stored record and return the result."""

        timestamp = _now()
        with get_conn(self._db_path) as conn:
            row = conn.execute("SELECT record_json FROM interviews WHERE id = ?", (interview_id,)).fetchone()
            if row is None:
                raise InterviewNotFoundError(interview_id)
            merged = {**json.loads(row[0]), **dict(partial), "id": interview_id, "updatedAt": timestamp}
            conn.execute(
                "UPDATE interviews SET record_json = ?, updated_at = ? WHERE id = ?",
                (json.dumps(merged, default=str), timestamp, interview_id),
            )
        return merged


__all__ = ["InterviewNotFoundError", "InterviewStore", "SqliteInterviewStore"]
