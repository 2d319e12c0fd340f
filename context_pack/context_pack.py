from __future__ import annotations  # Immutable interview context built from the stored interview record

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from interview_state.models import utc_now

TAG_MAX_CHARS = 60
RESPONSIBILITY_LINES = 8

_CV_SIGNAL_RULES = (
    (("ml", "ai"), "ml_delivery"),
    (("lead", "manager"), "leadership_scope"),
    (("platform", "infra"), "platform_engineering"),
)


def norm_tag(value: Any) -> str:  # Lower-case tag with underscores for whitespace
    return re.sub(r"\s+", "_", str(value or "").strip().lower())[:TAG_MAX_CHARS]


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


class CvAttachment(BaseModel):  # Uploaded CV metadata
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    original_name: str = Field(default="", alias="originalName")


class PositionSnapshot(BaseModel):  # Role definition frozen at scheduling time
    model_config = ConfigDict(extra="ignore")

    role_title: str = ""
    role_family: str = ""
    level: str = ""
    interview_round_type: str = ""
    must_haves: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    notes_for_interviewer: str = ""
    duration_minutes: Optional[float] = None

    @field_validator("must_haves", "focus_areas", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> List[str]:
        return [str(item) for item in _as_list(value) if item is not None]


class InterviewRecord(BaseModel):  # Externally supplied interview record
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    candidate_name: str = Field(default="", alias="candidateName")
    interviewer_name: str = Field(default="", alias="interviewerName")
    job_title: str = Field(default="", alias="jobTitle")
    notes: str = ""
    duration_minutes: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("durationMinutes", "duration_minutes"),
        serialization_alias="durationMinutes",
    )
    cv: Optional[CvAttachment] = None
    position_snapshot: PositionSnapshot = Field(default_factory=PositionSnapshot, alias="positionSnapshot")

    @field_validator("position_snapshot", mode="before")
    @classmethod
    def _default_snapshot(cls, value: Any) -> Any:
        return value if value is not None else {}

    @field_validator("candidate_name", "interviewer_name", "job_title", "notes", mode="before")
    @classmethod
    def _default_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def resolved_duration(self, default_minutes: float) -> float:
        """Position snapshot duration wins over the record's, then the configured default."""

        for value in (self.position_snapshot.duration_minutes, self.duration_minutes):
            if value is not None and value > 0:
                return float(value)
        return float(default_minutes)


class ContextPack(BaseModel):  # Read-only role and candidate context for one session
    model_config = ConfigDict(frozen=True)

    role_title: str = "Software Engineer"
    role_family: str = "full_stack"
    level: str = "mid"
    interview_round_type: str = "standard"
    must_haves: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    cv_signals: List[str] = Field(default_factory=list)
    candidate_name: str = "Candidate"
    interviewer_name: str = "Interviewer"
    generated_at: datetime = Field(default_factory=utc_now)


def extract_responsibilities(notes: str) -> List[str]:
    lines = [line.strip() for line in re.split(r"\n+", str(notes or ""))]
    return [line for line in lines if line][:RESPONSIBILITY_LINES]


def derive_cv_signals(record: InterviewRecord) -> List[str]:
    name = (record.cv.original_name if record.cv else "").lower()
    if not name:
        return []
    return [signal for needles, signal in _CV_SIGNAL_RULES if any(needle in name for needle in needles)]


def _tags(values: List[str]) -> List[str]:
    tags: List[str] = []
    for value in values:
        tag = norm_tag(value)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def build_context_pack(record: InterviewRecord | Dict[str, Any], *, now: Optional[datetime] = None) -> ContextPack:
    """Derive the Context Pack; blank fields fall back to neutral defaults."""

    if not isinstance(record, InterviewRecord):
        record = InterviewRecord.model_validate(record)
    position = record.position_snapshot
    return ContextPack(
        role_title=position.role_title or record.job_title or "Software Engineer",
        role_family=position.role_family or "full_stack",
        level=position.level or "mid",
        interview_round_type=position.interview_round_type or "standard",
        must_haves=_tags(position.must_haves),
        focus_areas=_tags(position.focus_areas),
        responsibilities=extract_responsibilities(position.notes_for_interviewer or record.notes),
        cv_signals=derive_cv_signals(record),
        candidate_name=record.candidate_name or "Candidate",
        interviewer_name=record.interviewer_name or "Interviewer",
        generated_at=now or utc_now(),
    )


__all__ = [
    "ContextPack",
    "CvAttachment",
    "InterviewRecord",
    "PositionSnapshot",
    "build_context_pack",
    "derive_cv_signals",
    "extract_responsibilities",
    "norm_tag",
]
