from __future__ import annotations  # Records owned by the turn orchestrator

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from context_pack import ContextPack
from interview_state.models import SessionState, utc_now
from interview_state.schemas import ControllerPlan, FinalEvaluation, Recommendation

EngineStatus = Literal["awaiting_consent", "interviewing", "finalized"]
TurnRole = Literal["assistant", "candidate"]


class EngineStateError(RuntimeError):  # Engine method called out of lifecycle order
    pass


class TranscriptTurn(BaseModel):  # One spoken line in the session transcript
    role: TurnRole
    by: str
    text: str
    ts: datetime = Field(default_factory=utc_now)
    section: str = "intro"


class FinalRecord(BaseModel):  # Terminal record written to the interview store
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Literal["completed"] = "completed"
    meeting_actual_end: datetime = Field(default_factory=utc_now)
    summary_feedback: str
    detailed_feedback: str
    rubric_score: float = Field(ge=0.0, le=10.0)
    interview_score: int = Field(ge=0, le=100)
    recommendation: Recommendation
    next_steps: str
    evaluation: FinalEvaluation


class EngineSnapshot(BaseModel):  # Everything needed to resume an engine without recomputation
    session_id: str
    status: EngineStatus
    agent_type: str
    context_pack: ContextPack
    state: SessionState
    transcript: List[TranscriptTurn] = Field(default_factory=list)
    last_plan: Optional[ControllerPlan] = None
    last_question: str = ""
    final_record: Optional[FinalRecord] = None


__all__ = [
    "EngineSnapshot",
    "EngineStateError",
    "EngineStatus",
    "FinalRecord",
    "TranscriptTurn",
]
