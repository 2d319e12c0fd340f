"""Controller pipeline: decides the next interviewer question.

The deterministic plan from the fallback bank is computed first; one reasoning
call then proposes a plan that is merged into it field by field.
"""
from __future__ import annotations

import logging
from textwrap import dedent
from typing import Any, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from config.registry import CONTROLLER_KEY
from config.settings import Settings, settings as default_settings
from context_pack import ContextPack
from fallback_bank import build_fallback_question
from interview_state.coverage import coverage_summary
from interview_state.models import SECTION_ORDER, QueueItem, SessionState
from interview_state.schemas import ANSWER_FORMATS, QUESTION_INTENTS, ControllerPlan
from llm_gateway import ReasoningCall, reasoning_runnable
from .toolkit import as_number, clamp, clean_strings, clean_text, resolve_llm, tail, to_json, transcript_lines

logger = logging.getLogger(__name__)

CONTROLLER_GUIDANCE = dedent(
    """
    You are the Interview Controller for a professional technical interview.
    Return JSON only.
    Rules:
    1) Ask exactly one question in this turn.
    2) Respect section and timebox.
    3) Enforce STAR-L for behavioral evidence.
    4) Prioritize uncovered must-haves and blocking follow-ups.
    5) Keep wording concise for spoken conversation.
    """
).strip()

CONTROLLER_SCHEMA = dedent(
    """
    {{
      "section": "intro|core|deep_dive|wrap_up|completed",
      "question": "string",
      "question_intent": "behavioral_star_l|technical_validation|deep_dive|clarification|wrapup|candidate_questions",
      "expected_answer_format": "STAR-L|steps+tradeoffs|short_fact|walkthrough",
      "probes": ["string"],
      "must_haves_targeted": ["string"],
      "timebox_seconds": number,
      "rationale": "string",
      "end_interview": boolean
    }}
    """
).strip()

CONTROLLER_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", CONTROLLER_GUIDANCE),
        (
            "human",
            (
                "Context pack: {context_pack}\n"
                "State: {state}\n"
                "Coverage summary: {coverage}\n"
                "Open followups: {open_followups}\n"
                "Followup hint: {followup_hint}\n"
                "Evidence tail: {evidence_tail}\n"
                "Transcript tail: {transcript_tail}\n\n"
                "Output schema:\n" + CONTROLLER_SCHEMA
            ),
        ),
    ]
)


def fallback_plan(context_pack: ContextPack, state: SessionState) -> ControllerPlan:
    uncovered = [name for name, status in state.must_have_coverage.items() if not status.covered]
    return build_fallback_question(context_pack.role_family, state.section, state.asked_questions, uncovered)


def sanitize_controller_output(raw: Any, fallback: ControllerPlan) -> ControllerPlan:
    """Merge a raw controller payload into ``fallback`` one field at a time."""

    if not isinstance(raw, dict) or not raw:
        return fallback

    section = clean_text(raw.get("section"))
    intent = clean_text(raw.get("question_intent"))
    answer_format = clean_text(raw.get("expected_answer_format"))
    probes = raw.get("probes")
    targeted = raw.get("must_haves_targeted")
    timebox = as_number(raw.get("timebox_seconds"))
    end_interview = raw.get("end_interview")

    return ControllerPlan(
        section=section if section in SECTION_ORDER else fallback.section,
        question=clean_text(raw.get("question")) or fallback.question,
        question_intent=intent if intent in QUESTION_INTENTS else fallback.question_intent,
        expected_answer_format=answer_format if answer_format in ANSWER_FORMATS else fallback.expected_answer_format,
        probes=clean_strings(probes, 4) if isinstance(probes, list) else list(fallback.probes),
        must_haves_targeted=clean_strings(targeted, 3) if isinstance(targeted, list) else list(fallback.must_haves_targeted),
        timebox_seconds=int(clamp(round(timebox), 30, 240)) if timebox is not None else fallback.timebox_seconds,
        rationale=clean_text(raw.get("rationale")) or fallback.rationale,
        end_interview=end_interview if isinstance(end_interview, bool) else fallback.end_interview,
    )


def run_controller(
    context_pack: ContextPack,
    state: SessionState,
    *,
    transcript: Sequence[Any] = (),
    open_followups: Sequence[QueueItem] = (),
    followup_hint: Optional[str] = None,
    llm: Optional[ReasoningCall] = None,
    settings: Optional[Settings] = None,
) -> ControllerPlan:
    """Return the next question plan; never raises."""

    cfg = settings or default_settings
    fallback = fallback_plan(context_pack, state)
    try:
        call = resolve_llm(llm, CONTROLLER_KEY)
        chain = CONTROLLER_PROMPT | reasoning_runnable(
            call,
            model=cfg.model_for(cfg.CONTROLLER_MODEL),
            temperature=cfg.CONTROLLER_TEMPERATURE,
        )
        raw = chain.invoke(
            {
                "context_pack": to_json(context_pack),
                "state": to_json(
                    {
                        "section": state.section,
                        "time_remaining": state.time_remaining,
                        "asked_questions": state.asked_questions,
                    }
                ),
                "coverage": to_json(coverage_summary(state)),
                "open_followups": to_json(list(open_followups)),
                "followup_hint": followup_hint or "none",
                "evidence_tail": to_json(tail(state.evidence_log, cfg.EVIDENCE_TAIL)),
                "transcript_tail": to_json(transcript_lines(tail(transcript, cfg.TRANSCRIPT_TAIL))),
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Controller call failed, using fallback question: %s", exc)
        return fallback
    return sanitize_controller_output(raw, fallback)


__all__ = ["CONTROLLER_PROMPT", "fallback_plan", "run_controller", "sanitize_controller_output"]
