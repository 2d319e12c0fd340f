from __future__ import annotations  # Validated records crossing the reasoning-call boundary

from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from .models import AnswerQuality, Section

QuestionIntent = Literal[
    "behavioral_star_l",
    "technical_validation",
    "deep_dive",
    "clarification",
    "wrapup",
    "candidate_questions",
]
AnswerFormat = Literal["STAR-L", "steps+tradeoffs", "short_fact", "walkthrough"]
Recommendation = Literal["strong_hire", "hire", "hold", "no_hire"]
Severity = Literal["low", "medium", "high"]

QUESTION_INTENTS: tuple[str, ...] = (
    "behavioral_star_l",
    "technical_validation",
    "deep_dive",
    "clarification",
    "wrapup",
    "candidate_questions",
)
ANSWER_FORMATS: tuple[str, ...] = ("STAR-L", "steps+tradeoffs", "short_fact", "walkthrough")
RECOMMENDATIONS: tuple[str, ...] = ("strong_hire", "hire", "hold", "no_hire")
ANSWER_QUALITIES: tuple[str, ...] = ("strong", "partial", "weak", "unclear")
SEVERITIES: tuple[str, ...] = ("low", "medium", "high")
STAR_L_LETTERS: tuple[str, ...] = ("S", "T", "A", "R", "L")


class ControllerPlan(BaseModel):  # Next question decided by the controller or the fallback bank
    section: Section
    question: str
    question_intent: QuestionIntent = "technical_validation"
    expected_answer_format: AnswerFormat = "steps+tradeoffs"
    probes: List[str] = Field(default_factory=list, max_length=4)
    must_haves_targeted: List[str] = Field(default_factory=list, max_length=3)
    timebox_seconds: int = Field(default=120, ge=30, le=240)
    rationale: str = ""
    end_interview: bool = False


class MustHaveUpdate(BaseModel):
    must_have: str
    covered: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence_ids: List[str] = Field(default_factory=list)


class CompetencyUpdate(BaseModel):
    competency: str
    score: float = Field(default=0.0, ge=0.0, le=5.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence_ids: List[str] = Field(default_factory=list)


class EvidenceEntry(BaseModel):
    competency: str = "technical_depth"
    must_have: str = ""
    snippet: str = ""
    assessment: AnswerQuality = "partial"


class QueueCandidate(BaseModel):
    skill: str
    reason: str
    priority: int = Field(default=3, ge=1, le=5)


class ContradictionFlag(BaseModel):
    type: str = "consistency"
    description: str = ""
    severity: Severity = "low"
    evidence_ids: List[str] = Field(default_factory=list)


class VaguenessFlag(BaseModel):
    reason: str
    evidence_ids: List[str] = Field(default_factory=list)


class AnalyzerResult(BaseModel):  # Signals extracted from one candidate answer
    must_have_updates: List[MustHaveUpdate] = Field(default_factory=list)
    competency_updates: List[CompetencyUpdate] = Field(default_factory=list)
    evidence: List[EvidenceEntry] = Field(default_factory=list)
    followup_queue: List[QueueCandidate] = Field(default_factory=list)
    defer_queue: List[QueueCandidate] = Field(default_factory=list)
    contradictions: List[ContradictionFlag] = Field(default_factory=list)
    vagueness_flags: List[VaguenessFlag] = Field(default_factory=list)
    star_l_completeness: Dict[str, bool] = Field(
        default_factory=lambda: {letter: False for letter in STAR_L_LETTERS}
    )
    answer_summary_1line: str = ""
    answer_quality: AnswerQuality = "partial"

    def missing_star_l(self) -> List[str]:  # Letters absent from the answer, in S-T-A-R-L order
        return [letter for letter in STAR_L_LETTERS if not self.star_l_completeness.get(letter, False)]


class CompetencyVerdict(BaseModel):
    competency: str
    score: float = Field(default=0.0, ge=0.0, le=5.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class MustHaveVerdict(BaseModel):
    must_have: str
    covered: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class FinalEvaluation(BaseModel):  # Evidence-based verdict for the whole session
    overall_weighted_score: float = Field(ge=0.0, le=4.0)
    confidence: float = Field(ge=0.0, le=1.0)
    competency_scores: List[CompetencyVerdict] = Field(default_factory=list)
    must_have_coverage: List[MustHaveVerdict] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    recommendation: Recommendation = "hold"
    summary: str = ""


__all__ = [
    "ANSWER_FORMATS",
    "ANSWER_QUALITIES",
    "AnalyzerResult",
    "AnswerFormat",
    "CompetencyUpdate",
    "CompetencyVerdict",
    "ContradictionFlag",
    "ControllerPlan",
    "EvidenceEntry",
    "FinalEvaluation",
    "MustHaveUpdate",
    "MustHaveVerdict",
    "QUESTION_INTENTS",
    "QueueCandidate",
    "QuestionIntent",
    "RECOMMENDATIONS",
    "Recommendation",
    "SEVERITIES",
    "STAR_L_LETTERS",
    "Severity",
    "VaguenessFlag",
]
