"""Deterministic interview state machine.

Owns every mutation of :class:`SessionState`: creation, answer-derived signal
merging, queue consumption, per-topic probe counters and the section gates.
Callers pass the state in explicitly; nothing here keeps module-level state.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar

from .coverage import coverage_status
from .models import (
    BASE_COMPETENCIES,
    DEFER_QUEUE_CAP,
    FOLLOWUP_QUEUE_CAP,
    SECTION_ORDER,
    CompetencyStatus,
    Contradiction,
    EvidenceItem,
    MustHaveStatus,
    QueueItem,
    SessionState,
    utc_now,
)
from .schemas import AnalyzerResult, QueueCandidate

MIN_BUDGET_SECONDS = 300
COVERED_CONFIDENCE = 0.72
CONTRADICTIONS_PER_CALL = 6
EVIDENCE_SNIPPET_CHARS = 320
CONTRADICTION_CHARS = 260
SUMMARY_CHARS = 220

WRAP_UP_SAFETY_SECONDS = 240
CORE_HOLD_ELAPSED_RATIO = 0.8
CORE_EXIT_COVERAGE = 0.85
CORE_EXIT_QUESTIONS = 7
DEEP_DIVE_EXIT_SECONDS = 420
DEEP_DIVE_EXIT_QUESTIONS = 11
COMPLETION_QUESTIONS = 13

T = TypeVar("T")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _norm_key(value: str) -> str:
    return "_".join(str(value or "").strip().lower().split())


def _resolve_key(mapping: Mapping[str, T], name: str) -> Optional[str]:
    key = str(name or "").strip()
    if not key:
        return None
    if key in mapping:
        return key
    wanted = _norm_key(key)
    for candidate in mapping:
        if _norm_key(candidate) == wanted:
            return candidate
    return None


def _union(existing: Sequence[str], *extra: Iterable[str]) -> List[str]:
    merged = list(existing)
    seen = set(merged)
    for group in extra:
        for item in group:
            value = str(item or "").strip()
            if value and value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def create_initial_state(
    duration_minutes: float,
    must_haves: Iterable[str],
    focus_areas: Iterable[str],
    *,
    now: Optional[datetime] = None,
) -> SessionState:
    """Build a fresh session state; the budget floors at five minutes."""

    stamp = now or utc_now()
    budget = max(MIN_BUDGET_SECONDS, int(round(float(duration_minutes or 0) * 60)))
    coverage = {}
    for item in must_haves:
        key = str(item or "").strip()
        if key and key not in coverage:
            coverage[key] = MustHaveStatus(last_updated_at=stamp)
    competencies = {name: CompetencyStatus() for name in _union(BASE_COMPETENCIES, focus_areas)}
    return SessionState(
        section="intro",
        total_time_budget_seconds=budget,
        time_remaining=budget,
        must_have_coverage=coverage,
        competency_scores=competencies,
        started_at=stamp,
        updated_at=stamp,
    )


def elapsed_ratio(state: SessionState) -> float:
    budget = max(MIN_BUDGET_SECONDS, state.total_time_budget_seconds)
    return 1.0 - state.time_remaining / budget


def recalc_time_remaining(state: SessionState, now: Optional[datetime] = None) -> int:
    """Recompute remaining seconds from wall-clock time since ``started_at``."""

    current = now or utc_now()
    elapsed = max(0.0, (current - state.started_at).total_seconds())
    budget = max(MIN_BUDGET_SECONDS, state.total_time_budget_seconds)
    state.time_remaining = int(_clamp(budget - int(elapsed + 0.5), 0, budget))
    return state.time_remaining


def _merge_queue(queue: List[QueueItem], candidates: Iterable[QueueCandidate], cap: int, stamp: datetime) -> List[QueueItem]:
    merged = list(queue)
    for candidate in candidates:
        skill = candidate.skill.strip()
        reason = candidate.reason.strip()
        if not skill or not reason:
            continue
        merged.append(
            QueueItem(
                skill=skill,
                reason=reason,
                priority=int(_clamp(candidate.priority, 1, 5)),
                created_at=stamp,
            )
        )
    merged.sort(key=lambda item: item.priority, reverse=True)
    return merged[:cap]


def apply_analyzer_result(state: SessionState, result: AnalyzerResult, now: Optional[datetime] = None) -> SessionState:
    """Fold one analyzed candidate answer into the session state.

    Every call counts as one candidate turn: competency observations and
    ``answered_turns`` advance on each call, so applying the same result twice
    double-counts it. Evidence ids are merged with set semantics.
    """

    stamp = now or utc_now()

    new_ids: List[str] = []
    for entry in result.evidence:
        evidence_id = f"ev_{len(state.evidence_log) + 1}"
        state.evidence_log.append(
            EvidenceItem(
                id=evidence_id,
                ts=stamp,
                competency=entry.competency or "technical_depth",
                must_have=entry.must_have,
                snippet=entry.snippet[:EVIDENCE_SNIPPET_CHARS],
                assessment=entry.assessment,
            )
        )
        new_ids.append(evidence_id)

    for update in result.must_have_updates:
        key = _resolve_key(state.must_have_coverage, update.must_have)
        if key is None:
            continue
        target = state.must_have_coverage[key]
        target.confidence = max(target.confidence, _clamp(update.confidence, 0.0, 1.0))
        target.covered = update.covered or target.covered or target.confidence >= COVERED_CONFIDENCE
        target.evidence_ids = _union(target.evidence_ids, update.evidence_ids, new_ids)
        target.last_updated_at = stamp

    for update in result.competency_updates:
        key = _resolve_key(state.competency_scores, update.competency)
        if key is None:
            continue
        target = state.competency_scores[key]
        score = _clamp(update.score, 0.0, 5.0)
        if target.observations <= 0:
            target.score = score
        else:
            target.score = round((target.score * target.observations + score) / (target.observations + 1), 2)
        target.observations += 1
        target.confidence = max(target.confidence, _clamp(update.confidence, 0.0, 1.0))
        target.evidence_ids = _union(target.evidence_ids, update.evidence_ids, new_ids)

    state.followup_queue = _merge_queue(state.followup_queue, result.followup_queue, FOLLOWUP_QUEUE_CAP, stamp)
    state.defer_queue = _merge_queue(state.defer_queue, result.defer_queue, DEFER_QUEUE_CAP, stamp)

    for flag in result.contradictions[:CONTRADICTIONS_PER_CALL]:
        state.contradictions.append(
            Contradiction(
                type=flag.type or "consistency",
                description=flag.description[:CONTRADICTION_CHARS],
                severity=flag.severity,
                evidence_ids=_union([], flag.evidence_ids),
                ts=stamp,
            )
        )

    stats = state.answer_quality_stats
    setattr(stats, result.answer_quality, getattr(stats, result.answer_quality) + 1)

    state.last_answer_summary = result.answer_summary_1line[:SUMMARY_CHARS]
    state.answered_turns += 1
    recalc_time_remaining(state, stamp)
    state.updated_at = stamp
    return state


def consume_followup(state: SessionState) -> Optional[QueueItem]:
    if not state.followup_queue:
        return None
    return state.followup_queue.pop(0)


def consume_defer(state: SessionState) -> Optional[QueueItem]:
    if not state.defer_queue:
        return None
    return state.defer_queue.pop(0)


def increment_topic_probe_count(state: SessionState, topic: str) -> int:
    key = str(topic or "").strip().lower()
    if not key:
        return 0
    state.topic_probe_counts[key] = state.topic_probe_counts.get(key, 0) + 1
    return state.topic_probe_counts[key]


def get_topic_probe_count(state: SessionState, topic: str) -> int:
    key = str(topic or "").strip().lower()
    if not key:
        return 0
    return int(state.topic_probe_counts.get(key, 0))


def register_question_asked(state: SessionState, now: Optional[datetime] = None) -> None:
    state.asked_questions += 1
    state.updated_at = now or utc_now()


def _advance(state: SessionState, target: str) -> None:  # Forward-only section move
    if SECTION_ORDER.index(target) > SECTION_ORDER.index(state.section):
        state.section = target  # type: ignore[assignment]


def apply_deterministic_gates(state: SessionState, now: Optional[datetime] = None) -> str:
    """Evaluate the section gates and return the resulting section.

    Rules, first match wins: time safety valve to ``wrap_up``; ``intro`` to
    ``core`` after the first question; ``core`` holds while late in the budget
    with coverage gaps; ``core`` to ``deep_dive`` on coverage or question count;
    ``deep_dive`` to ``wrap_up`` on time or question count. Independently,
    ``wrap_up`` completes after the question cap. ``completed`` is terminal.
    """

    recalc_time_remaining(state, now)
    if state.section == "completed":
        return state.section

    coverage = coverage_status(state)
    ratio = elapsed_ratio(state)

    if state.time_remaining <= WRAP_UP_SAFETY_SECONDS:
        _advance(state, "wrap_up")
    elif state.section == "intro" and state.asked_questions >= 1:
        _advance(state, "core")
    elif state.section == "core" and ratio >= CORE_HOLD_ELAPSED_RATIO and coverage.pct < 1:
        pass  # stays in core; sweep prompts close the gaps
    elif state.section == "core" and (coverage.pct >= CORE_EXIT_COVERAGE or state.asked_questions >= CORE_EXIT_QUESTIONS):
        _advance(state, "deep_dive")
    elif state.section == "deep_dive" and (
        state.time_remaining <= DEEP_DIVE_EXIT_SECONDS or state.asked_questions >= DEEP_DIVE_EXIT_QUESTIONS
    ):
        _advance(state, "wrap_up")

    if state.section == "wrap_up" and state.asked_questions >= COMPLETION_QUESTIONS:
        _advance(state, "completed")
    return state.section


def complete_session(state: SessionState, now: Optional[datetime] = None) -> None:
    """Move to ``completed``; only forward moves are applied."""

    _advance(state, "completed")
    state.updated_at = now or utc_now()


__all__ = [
    "COVERED_CONFIDENCE",
    "apply_analyzer_result",
    "apply_deterministic_gates",
    "complete_session",
    "consume_defer",
    "consume_followup",
    "create_initial_state",
    "elapsed_ratio",
    "get_topic_probe_count",
    "increment_topic_probe_count",
    "recalc_time_remaining",
    "register_question_asked",
]
