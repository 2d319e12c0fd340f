"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interviews.db")

    DEFAULT_DURATION_MINUTES: int = 45
    MAX_PROBES_PER_TOPIC: int = Field(default=2, ge=1)
    MUST_HAVE_SWEEP_RATIO: float = Field(default=0.8, ge=0.0, le=1.0)
    QUESTION_MAX_CHARS: int = Field(default=420, ge=40)
    TRANSCRIPT_TAIL: int = 10
    EVIDENCE_TAIL: int = 8
    PERSIST_TRANSCRIPT_TAIL: int = 80
    PERSIST_WAIT_SECONDS: float = 10.0

    REASONING_MODEL: str = "gpt-4o-mini"
    CONTROLLER_MODEL: str = ""
    ANALYZER_MODEL: str = ""
    FINAL_EVAL_MODEL: str = ""
    CONTROLLER_TEMPERATURE: float = 0.15
    ANALYZER_TEMPERATURE: float = 0.1
    FINAL_EVAL_TEMPERATURE: float = 0.05

    AGENT_TYPE: str = "classic"
    BOT_NAME: str = "Interview Agent"
    REALTIME_SCREENING_BOT_NAME: str = "Realtime Screening Agent"
    REALTIME_SCREENING_MODEL: str = "gpt-realtime-mini"
    REALTIME_SCREENING_FALLBACK_MODEL: str = "gpt-4o-mini"
    SCREENING_MAX_MINUTES: int = 10

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")

    def model_for(self, override: str) -> str:
        """Return the per-pipeline model override or the shared default."""
        return override.strip() or self.REASONING_MODEL


settings = Settings()
