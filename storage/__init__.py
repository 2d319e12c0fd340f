"""Persistence collaborator for interview records."""
from .interviews import InterviewNotFoundError, InterviewStore, SqliteInterviewStore
from .migrate import migrate
from .sqlite import get_conn

__all__ = ["InterviewNotFoundError", "InterviewStore", "SqliteInterviewStore", "get_conn", "migrate"]
