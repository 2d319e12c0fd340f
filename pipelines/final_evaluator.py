from __future__ import annotations  # Final evaluator pipeline producing the session verdict

import logging
from textwrap import dedent
from typing import Any, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from config.registry import FINAL_EVALUATOR_KEY
from config.settings import Settings, settings as default_settings
from context_pack import ContextPack
from interview_state.coverage import coverage_summary
from interview_state.models import SessionState
from interview_state.schemas import RECOMMENDATIONS, CompetencyVerdict, FinalEvaluation, MustHaveVerdict
from llm_gateway import ReasoningCall, reasoning_runnable
from .toolkit import as_number, clamp, clean_strings, clean_text, resolve_llm, tail, to_json, transcript_lines, valid_items

logger = logging.getLogger(__name__)

BASELINE_STRENGTH = "Showed baseline technical communication and problem-solving intent."

FINAL_GUIDANCE = dedent(
    """
    You are the Final Evaluator for a structured technical interview.
    Return JSON only.
    Inputs are already structured; prioritize consistency and evidence defensibility.
    """
).strip()

FINAL_SCHEMA = dedent(
    """
    {{
      "overall_weighted_score": 0..4,
      "confidence": 0..1,
      "competency_scores": [{{"competency":"string","score":0..4,"confidence":0..1}}],
      "must_have_coverage": [{{"must_have":"string","covered":boolean,"confidence":0..1}}],
      "strengths": string[],
      "risks": string[],
      "recommendation": "strong_hire|hire|hold|no_hire",
      "summary": "string"
    }}
    """
).strip()

FINAL_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", FINAL_GUIDANCE),
        (
            "human",
            (
                "Position config: {position}\n"
                "Candidate: {candidate}\n"
                "Final state summary: {final_state}\n"
                "Must-have coverage: {must_have_coverage}\n"
                "Competency coverage: {competency_coverage}\n"
                "Contradictions: {contradictions}\n"
                "Answer quality stats: {quality_stats}\n"
                "Evidence log: {evidence_log}\n"
                "Transcript summary: {transcript}\n\n"
                "Output schema:\n" + FINAL_SCHEMA
            ),
        ),
    ]
)


def recommend(score: float, confidence: float) -> str:  # Fixed recommendation thresholds
    if score >= 3.6 and confidence >= 0.6:
        return "strong_hire"
    if score >= 3.0:
        return "hire"
    if score < 2.2:
        return "no_hire"
    return "hold"


def fallback_evaluation(context_pack: ContextPack, state: SessionState) -> FinalEvaluation:
    """Average the competencies that received at least one observation."""

    verdicts = [
        CompetencyVerdict(
            competency=name,
            score=clamp(status.score, 0.0, 5.0),
            confidence=clamp(status.confidence, 0.0, 1.0),
        )
        for name, status in state.competency_scores.items()
    ]
    observed = [status for status in state.competency_scores.values() if status.observations > 0]
    if observed:
        mean_score = sum(status.score for status in observed) / len(observed)
        mean_confidence = sum(status.confidence for status in observed) / len(observed)
    else:
        mean_score = mean_confidence = 0.0
    overall = round(clamp(mean_score, 0.0, 4.0), 2)
    confidence = round(clamp(mean_confidence, 0.0, 1.0), 2)

    coverage = [
        MustHaveVerdict(must_have=name, covered=status.covered, confidence=clamp(status.confidence, 0.0, 1.0))
        for name, status in state.must_have_coverage.items()
    ]
    return FinalEvaluation(
        overall_weighted_score=overall,
        confidence=confidence,
        competency_scores=verdicts,
        must_have_coverage=coverage,
        strengths=[BASELINE_STRENGTH],
        risks=[f"Uncovered must-have: {item.must_have}" for item in coverage if not item.covered],
        recommendation=recommend(overall, confidence),
        summary=f"Final evaluation generated for {context_pack.candidate_name} against {context_pack.role_title}.",
    )


def _bounded(value: Any, low: float, high: float, fallback: float) -> float:
    number = as_number(value)
    return fallback if number is None else clamp(number, low, high)


def _strings(value: Any, fallback: List[str]) -> List[str]:
    return clean_strings(value) if isinstance(value, list) else list(fallback)


def sanitize_final_output(raw: Any, fallback: FinalEvaluation) -> FinalEvaluation:
    if not isinstance(raw, dict) or not raw:
        return fallback

    competencies = raw.get("competency_scores")
    coverage = raw.get("must_have_coverage")
    recommendation = clean_text(raw.get("recommendation"))
    return FinalEvaluation(
        overall_weighted_score=_bounded(raw.get("overall_weighted_score"), 0.0, 4.0, fallback.overall_weighted_score),
        confidence=_bounded(raw.get("confidence"), 0.0, 1.0, fallback.confidence),
        competency_scores=(
            valid_items(competencies, CompetencyVerdict, bounds={"score": (0.0, 5.0), "confidence": (0.0, 1.0)})
            if isinstance(competencies, list)
            else list(fallback.competency_scores)
        ),
        must_have_coverage=(
            valid_items(coverage, MustHaveVerdict, bounds={"confidence": (0.0, 1.0)})
            if isinstance(coverage, list)
            else list(fallback.must_have_coverage)
        ),
        strengths=_strings(raw.get("strengths"), fallback.strengths),
        risks=_strings(raw.get("risks"), fallback.risks),
        recommendation=recommendation if recommendation in RECOMMENDATIONS else fallback.recommendation,
        summary=clean_text(raw.get("summary")) or fallback.summary,
    )


def run_final_evaluator(
    context_pack: ContextPack,
    state: SessionState,
    *,
    transcript: Sequence[Any] = (),
    llm: Optional[ReasoningCall] = None,
    settings: Optional[Settings] = None,
) -> FinalEvaluation:
    cfg = settings or default_settings
    fallback = fallback_evaluation(context_pack, state)
    summary = coverage_summary(state)
    try:
        call = resolve_llm(llm, FINAL_EVALUATOR_KEY)
        chain = FINAL_PROMPT | reasoning_runnable(
            call,
            model=cfg.model_for(cfg.FINAL_EVAL_MODEL),
            temperature=cfg.FINAL_EVAL_TEMPERATURE,
        )
        raw = chain.invoke(
            {
                "position": to_json(context_pack),
                "candidate": context_pack.candidate_name,
                "final_state": to_json({"section": state.section, "time_remaining": state.time_remaining}),
                "must_have_coverage": to_json(summary.must_have),
                "competency_coverage": to_json(summary.competency),
                "contradictions": to_json(state.contradictions),
                "quality_stats": to_json(state.answer_quality_stats),
                "evidence_log": to_json(state.evidence_log),
                "transcript": to_json(transcript_lines(tail(transcript, cfg.PERSIST_TRANSCRIPT_TAIL))),
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Final evaluator call failed, using deterministic verdict: %s", exc)
        return fallback
    return sanitize_final_output(raw, fallback)


__all__ = [
    "FINAL_PROMPT",
    "fallback_evaluation",
    "recommend",
    "run_final_evaluator",
    "sanitize_final_output",
]
