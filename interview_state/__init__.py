"""Session state, schemas and the deterministic interview state machine."""
from .coverage import coverage_status, coverage_summary
from .machine import (
    apply_analyzer_result,
    apply_deterministic_gates,
    complete_session,
    consume_defer,
    consume_followup,
    create_initial_state,
    elapsed_ratio,
    get_topic_probe_count,
    increment_topic_probe_count,
    recalc_time_remaining,
    register_question_asked,
)
from .models import (
    SECTION_ORDER,
    CoverageStatus,
    CoverageSummary,
    QueueItem,
    Section,
    SessionState,
    utc_now,
)
from .schemas import AnalyzerResult, ControllerPlan, FinalEvaluation

__all__ = [
    "AnalyzerResult",
    "ControllerPlan",
    "CoverageStatus",
    "CoverageSummary",
    "FinalEvaluation",
    "QueueItem",
    "SECTION_ORDER",
    "Section",
    "SessionState",
    "apply_analyzer_result",
    "apply_deterministic_gates",
    "complete_session",
    "consume_defer",
    "consume_followup",
    "coverage_status",
    "coverage_summary",
    "create_initial_state",
    "elapsed_ratio",
    "get_topic_probe_count",
    "increment_topic_probe_count",
    "recalc_time_remaining",
    "register_question_asked",
    "utc_now",
]
