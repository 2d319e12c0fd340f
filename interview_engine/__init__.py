"""Turn orchestrator for live structured interviews."""
from .consent import classify_consent
from .engine import InterviewEngine, closing_statement, display_scores
from .models import EngineSnapshot, EngineStateError, FinalRecord, TranscriptTurn
from .persistence import SnapshotWriter
from .transforms import apply_question_transforms, derive_forced_followup, single_question
from .variants import AgentType, JoinActions, ModelSelection, create_agent_variant

__all__ = [
    "AgentType",
    "EngineSnapshot",
    "EngineStateError",
    "FinalRecord",
    "InterviewEngine",
    "JoinActions",
    "ModelSelection",
    "SnapshotWriter",
    "TranscriptTurn",
    "apply_question_transforms",
    "classify_consent",
    "closing_statement",
    "create_agent_variant",
    "derive_forced_followup",
    "display_scores",
    "single_question",
]
