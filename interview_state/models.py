from __future__ import annotations  # Session state models for the interview scheduler

from datetime import datetime, timezone
from typing import Dict, List, Literal

from pydantic import BaseModel, Field

Section = Literal["intro", "core", "deep_dive", "wrap_up", "completed"]
AnswerQuality = Literal["strong", "partial", "weak", "unclear"]

SECTION_ORDER: tuple[str, ...] = ("intro", "core", "deep_dive", "wrap_up", "completed")
BASE_COMPETENCIES: tuple[str, ...] = (
    "technical_depth",
    "problem_solving",
    "communication",
    "system_design",
    "ownership",
)

FOLLOWUP_QUEUE_CAP = 8
DEFER_QUEUE_CAP = 12


def utc_now() -> datetime:  # Timezone-aware wall clock
    return datetime.now(timezone.utc)


class MustHaveStatus(BaseModel):  # Coverage record for one required skill
    covered: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence_ids: List[str] = Field(default_factory=list)
    last_updated_at: datetime = Field(default_factory=utc_now)


class CompetencyStatus(BaseModel):  # Running score for one competency
    score: float = Field(default=0.0, ge=0.0, le=5.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence_ids: List[str] = Field(default_factory=list)
    observations: int = Field(default=0, ge=0)


class QueueItem(BaseModel):  # Pending follow-up or deferred probe
    skill: str
    reason: str
    priority: int = Field(default=3, ge=1, le=5)
    created_at: datetime = Field(default_factory=utc_now)


class EvidenceItem(BaseModel):  # Citation target for coverage and competency updates
    id: str
    ts: datetime
    competency: str = "technical_depth"
    must_have: str = ""
    snippet: str = ""
    assessment: AnswerQuality = "partial"


class Contradiction(BaseModel):  # Flagged inconsistency across answers
    type: str = "consistency"
    description: str = ""
    severity: Literal["low", "medium", "high"] = "low"
    evidence_ids: List[str] = Field(default_factory=list)
    ts: datetime = Field(default_factory=utc_now)


class QualityStats(BaseModel):  # Histogram of answer classifications
    strong: int = 0
    partial: int = 0
    weak: int = 0
    unclear: int = 0


class SessionState(BaseModel):  # Mutable per-interview scheduler state
    section: Section = "intro"
    total_time_budget_seconds: int = Field(ge=300)
    time_remaining: int = Field(ge=0)
    must_have_coverage: Dict[str, MustHaveStatus] = Field(default_factory=dict)
    competency_scores: Dict[str, CompetencyStatus] = Field(default_factory=dict)
    followup_queue: List[QueueItem] = Field(default_factory=list)
    defer_queue: List[QueueItem] = Field(default_factory=list)
    evidence_log: List[EvidenceItem] = Field(default_factory=list)
    contradictions: List[Contradiction] = Field(default_factory=list)
    answer_quality_stats: QualityStats = Field(default_factory=QualityStats)
    last_answer_summary: str = ""
    asked_questions: int = Field(default=0, ge=0)
    answered_turns: int = Field(default=0, ge=0)
    topic_probe_counts: Dict[str, int] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class CoverageStatus(BaseModel):  # Aggregate must-have coverage
    covered: int
    total: int
    pct: float
    uncovered: List[str] = Field(default_factory=list)


class MustHaveSummary(BaseModel):
    must_have: str
    covered: bool
    confidence: float


class CompetencySummary(BaseModel):
    competency: str
    score: float
    confidence: float


class CoverageSummary(BaseModel):  # Prompt-friendly view of coverage and queues
    must_have: List[MustHaveSummary] = Field(default_factory=list)
    competency: List[CompetencySummary] = Field(default_factory=list)
    followup_queue_count: int = 0
    defer_queue_count: int = 0


__all__ = [
    "AnswerQuality",
    "BASE_COMPETENCIES",
    "CompetencyStatus",
    "CompetencySummary",
    "Contradiction",
    "CoverageStatus",
    "CoverageSummary",
    "DEFER_QUEUE_CAP",
    "EvidenceItem",
    "FOLLOWUP_QUEUE_CAP",
    "MustHaveStatus",
    "MustHaveSummary",
    "QualityStats",
    "QueueItem",
    "SECTION_ORDER",
    "Section",
    "SessionState",
    "utc_now",
]
