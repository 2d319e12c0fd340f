"""Analyzer pipeline: extracts structured signals from one candidate answer."""
from __future__ import annotations

import logging
import re
from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from config.registry import ANALYZER_KEY
from config.settings import Settings, settings as default_settings
from context_pack import ContextPack
from interview_state.models import SessionState
from interview_state.schemas import (
    ANSWER_QUALITIES,
    STAR_L_LETTERS,
    AnalyzerResult,
    CompetencyUpdate,
    ContradictionFlag,
    ControllerPlan,
    EvidenceEntry,
    MustHaveUpdate,
    QueueCandidate,
    VaguenessFlag,
)
from llm_gateway import ReasoningCall, reasoning_runnable
from .toolkit import clamp, clean_text, resolve_llm, to_json, valid_items

logger = logging.getLogger(__name__)

SHORT_ANSWER_WORDS = 24
STRONG_ANSWER_WORDS = 120
PARTIAL_ANSWER_WORDS = 50
FALLBACK_MUST_HAVES = 8
FALLBACK_FOLLOWUPS = 3
SUMMARY_CHARS = 220

STAR_L_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    "S": re.compile(r"(situation|context|scenario)", re.IGNORECASE),
    "T": re.compile(r"(task|goal|objective|problem)", re.IGNORECASE),
    "A": re.compile(r"(i did|implemented|built|designed|decided|approach)", re.IGNORECASE),
    "R": re.compile(r"(result|impact|improved|reduced|increased|latency|cost|accuracy)", re.IGNORECASE),
    "L": re.compile(r"(learn|lesson|next time|would change|retrospective)", re.IGNORECASE),
}

ANALYZER_GUIDANCE = dedent(
    """
    You are the Answer Analyzer.
    Return JSON only.
    Responsibilities:
    1) Extract structured signals from the answer.
    2) Update must-have coverage.
    3) Emit evidence entries.
    4) Emit follow-up/defer queues.
    5) Evaluate STAR-L completeness for applicable intents.
    6) Flag contradictions and vagueness.
    """
).strip()

ANALYZER_SCHEMA = dedent(
    """
    {{
      "must_have_updates": [{{"must_have":"string","covered":boolean,"confidence":0..1,"evidence_ids":string[]}}],
      "competency_updates": [{{"competency":"string","score":0..5,"confidence":0..1,"evidence_ids":string[]}}],
      "evidence": [{{"competency":"string","must_have":"string","snippet":"string","assessment":"strong|partial|weak|unclear"}}],
      "followup_queue": [{{"skill":"string","reason":"string","priority":1..5}}],
      "defer_queue": [{{"skill":"string","reason":"string","priority":1..5}}],
      "star_l_completeness": {{"S":boolean,"T":boolean,"A":boolean,"R":boolean,"L":boolean}},
      "contradictions": [{{"type":"string","description":"string","severity":"low|medium|high","evidence_ids":string[]}}],
      "vagueness_flags": [{{"reason":"string","evidence_ids":string[]}}],
      "answer_summary_1line": "string",
      "answer_quality": "strong|partial|weak|unclear"
    }}
    """
).strip()

ANALYZER_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", ANALYZER_GUIDANCE),
        (
            "human",
            (
                "Context pack: {context_pack}\n"
                "Section: {section}\n"
                "Question meta: {question_meta}\n"
                "Question: {question}\n"
                "Answer: {answer}\n\n"
                "Output schema:\n" + ANALYZER_SCHEMA
            ),
        ),
    ]
)


def _mentions(text: str, skill: str) -> bool:
    needle = skill.lower()
    return needle in text or needle.replace("_", " ") in text


def fallback_analysis(answer: str, must_haves: Sequence[str], question_intent: str = "technical_validation") -> AnalyzerResult:
    """Lexical heuristics over the raw answer: word counts and STAR-L keywords."""

    text = str(answer or "")
    lowered = text.lower()
    words = len(lowered.split())

    updates = []
    for skill in list(must_haves)[:FALLBACK_MUST_HAVES]:
        covered = _mentions(lowered, str(skill))
        updates.append(MustHaveUpdate(must_have=str(skill), covered=covered, confidence=0.72 if covered else 0.24))

    star = {letter: bool(STAR_L_PATTERNS[letter].search(text)) for letter in STAR_L_LETTERS}

    if words > STRONG_ANSWER_WORDS:
        quality = "strong"
    elif words > PARTIAL_ANSWER_WORDS:
        quality = "partial"
    else:
        quality = "weak"

    followups: List[QueueCandidate] = []
    if question_intent == "behavioral_star_l":
        if not star["R"]:
            followups.append(QueueCandidate(skill="results", reason="Missing measurable result", priority=5))
        if not star["L"]:
            followups.append(QueueCandidate(skill="learning", reason="Missing explicit learning", priority=4))
    if words < SHORT_ANSWER_WORDS:
        followups.append(
            QueueCandidate(skill="depth", reason="Answer too brief; request deeper technical detail.", priority=4)
        )

    return AnalyzerResult(
        must_have_updates=updates,
        competency_updates=[
            CompetencyUpdate(competency="technical_depth", score=clamp(int(words / 25 + 0.5), 1, 5), confidence=0.52),
            CompetencyUpdate(
                competency="communication",
                score={"strong": 4, "partial": 3}.get(quality, 2),
                confidence=0.5,
            ),
        ],
        evidence=[EvidenceEntry(competency="technical_depth", snippet=text[:240], assessment=quality)],
        followup_queue=followups[:FALLBACK_FOLLOWUPS],
        vagueness_flags=[VaguenessFlag(reason="very_short_answer")] if words < SHORT_ANSWER_WORDS else [],
        star_l_completeness=star,
        answer_summary_1line=text[:140],
        answer_quality=quality,
    )


def _merge_list(raw: Dict[str, Any], field: str, fallback: List[Any], schema, bounds=None) -> List[Any]:
    value = raw.get(field)
    if not isinstance(value, list):
        return list(fallback)
    return valid_items(value, schema, bounds=bounds)


def sanitize_analyzer_output(raw: Any, fallback: AnalyzerResult) -> AnalyzerResult:
    """Validate each analyzer field on its own, substituting the fallback field when invalid."""

    if not isinstance(raw, dict) or not raw:
        return fallback

    star = raw.get("star_l_completeness")
    if isinstance(star, dict):
        star_l = {
            letter: star[letter] if isinstance(star.get(letter), bool) else fallback.star_l_completeness.get(letter, False)
            for letter in STAR_L_LETTERS
        }
    else:
        star_l = dict(fallback.star_l_completeness)

    quality = clean_text(raw.get("answer_quality"))
    summary = clean_text(raw.get("answer_summary_1line"))

    return AnalyzerResult(
        must_have_updates=_merge_list(raw, "must_have_updates", fallback.must_have_updates, MustHaveUpdate, {"confidence": (0.0, 1.0)}),
        competency_updates=_merge_list(
            raw, "competency_updates", fallback.competency_updates, CompetencyUpdate, {"score": (0.0, 5.0), "confidence": (0.0, 1.0)}
        ),
        evidence=_merge_list(raw, "evidence", fallback.evidence, EvidenceEntry),
        followup_queue=_merge_list(raw, "followup_queue", fallback.followup_queue, QueueCandidate, {"priority": (1, 5)}),
        defer_queue=_merge_list(raw, "defer_queue", fallback.defer_queue, QueueCandidate, {"priority": (1, 5)}),
        contradictions=_merge_list(raw, "contradictions", fallback.contradictions, ContradictionFlag),
        vagueness_flags=_merge_list(raw, "vagueness_flags", fallback.vagueness_flags, VaguenessFlag),
        star_l_completeness=star_l,
        answer_summary_1line=(summary or fallback.answer_summary_1line)[:SUMMARY_CHARS],
        answer_quality=quality if quality in ANSWER_QUALITIES else fallback.answer_quality,
    )


def run_analyzer(
    context_pack: ContextPack,
    state: SessionState,
    *,
    question: str,
    answer: str,
    question_meta: Optional[ControllerPlan] = None,
    llm: Optional[ReasoningCall] = None,
    settings: Optional[Settings] = None,
) -> AnalyzerResult:
    """Analyze one answer; falls back to lexical heuristics on any failure."""

    cfg = settings or default_settings
    intent = question_meta.question_intent if question_meta else "technical_validation"
    fallback = fallback_analysis(answer, context_pack.must_haves, intent)
    try:
        call = resolve_llm(llm, ANALYZER_KEY)
        chain = ANALYZER_PROMPT | reasoning_runnable(
            call,
            model=cfg.model_for(cfg.ANALYZER_MODEL),
            temperature=cfg.ANALYZER_TEMPERATURE,
        )
        raw = chain.invoke(
            {
                "context_pack": to_json(context_pack),
                "section": state.section,
                "question_meta": to_json(question_meta or {}),
                "question": question,
                "answer": answer,
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Analyzer call failed, using lexical fallback: %s", exc)
        return fallback
    return sanitize_analyzer_output(raw, fallback)


__all__ = [
    "ANALYZER_PROMPT",
    "STAR_L_PATTERNS",
    "fallback_analysis",
    "run_analyzer",
    "sanitize_analyzer_output",
]
