import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.registry import clear_models
from config.settings import settings
from storage.migrate import migrate


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def empty_registry():
    clear_models()
    yield
    clear_models()


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))


def failing_llm(*_args, **_kwargs):
    raise RuntimeError("reasoning service unavailable")


INTERVIEW_RECORD = {
    "id": "room-1",
    "candidateName": "Dana",
    "interviewerName": "Priya",
    "jobTitle": "Backend Engineer",
    "durationMinutes": 45,
    "cv": {"originalName": "dana_platform_lead.pdf"},
    "positionSnapshot": {
        "role_title": "Senior Backend Engineer",
        "role_family": "backend",
        "level": "senior",
        "interview_round_type": "technical",
        "must_haves": ["Node.js", "System Design"],
        "focus_areas": ["ownership", "Distributed Systems"],
        "notes_for_interviewer": "Owns payments API\nOn-call rotation lead",
    },
}


@pytest.fixture
def interview_record():
    return {**INTERVIEW_RECORD, "positionSnapshot": dict(INTERVIEW_RECORD["positionSnapshot"])}


@pytest.fixture
def broken_llm():
    return failing_llm
