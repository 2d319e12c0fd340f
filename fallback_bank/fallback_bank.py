"""Static question bank used whenever the controller cannot produce a question.

Lookups are keyed by a normalised role family and a section-derived intent.
The table is read-only and built once at import.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Sequence, Tuple

from interview_state.schemas import ControllerPlan

GENERIC_QUESTION = (
    "Please share a concrete STAR-L example from your recent work with technical decisions and outcomes."
)
STANDARD_PROBES: Tuple[str, ...] = (
    "Can you quantify impact and outcome?",
    "What tradeoffs did you consider?",
    "What would you improve next time?",
)
FALLBACK_RATIONALE = "deterministic_fallback"
END_AFTER_QUESTIONS = 12

_INTENT_FORMATS = {
    "behavioral": "STAR-L",
    "technical_validation": "steps+tradeoffs",
    "wrapup": "short_fact",
    "deep_dive": "walkthrough",
}
_CONTROLLER_INTENTS = {
    "behavioral": "behavioral_star_l",
    "technical_validation": "technical_validation",
    "wrapup": "wrapup",
    "deep_dive": "deep_dive",
}


def _freeze(table: Mapping[str, Mapping[str, Sequence[str]]]) -> Mapping[str, Mapping[str, Tuple[str, ...]]]:
    return MappingProxyType(
        {family: MappingProxyType({intent: tuple(items) for intent, items in intents.items()}) for family, intents in table.items()}
    )


BANK = _freeze(
    {
        "full_stack": {
            "behavioral": [
                "Tell me about a project where you had to align frontend and backend teams under tight deadlines. What did you do and what did you learn?",
                "Describe a time when a production issue required you to coordinate across services. What was your STAR-L breakdown?",
            ],
            "technical_validation": [
                "Walk me through how you would design and implement a resilient API endpoint with validation, observability, and rollback strategy.",
                "Describe a real feature you shipped end-to-end and explain key architecture and tradeoff decisions.",
            ],
            "deep_dive": [
                "Pick one high-impact production incident you handled. Explain root cause analysis, mitigation, and long-term fixes with metrics.",
                "How would you redesign one bottleneck in your recent stack for scale and reliability?",
            ],
            "wrapup": [
                "Before we close, what would you improve first in your current architecture and why?",
            ],
        },
        "backend": {
            "behavioral": [
                "Tell me about a time you improved reliability of a backend service under pressure. What did you learn?",
            ],
            "technical_validation": [
                "Explain how you would build an idempotent, observable backend workflow with retries and dead-letter handling.",
                "Describe how you optimize a slow query path in production while minimizing risk.",
            ],
            "deep_dive": [
                "Walk through a service design you built: storage choice, consistency tradeoffs, and failure handling.",
            ],
            "wrapup": ["Any backend design decision you would revisit now and why?"],
        },
        "frontend": {
            "behavioral": [
                "Tell me about a time you handled conflicting UX and engineering constraints. What did you do?",
            ],
            "technical_validation": [
                "Explain how you would structure a large React feature for maintainability, performance, and testability.",
                "Describe your approach to frontend observability and production debugging.",
            ],
            "deep_dive": [
                "Walk through a performance optimization you shipped and how you validated impact.",
            ],
            "wrapup": ["What frontend quality or architecture improvement would you prioritize next?"],
        },
        "ml": {
            "behavioral": [
                "Tell me about an ML project where outcomes did not match expectations. What did you change and what did you learn?",
            ],
            "technical_validation": [
                "Walk through an end-to-end ML system you built, from data preparation to deployment and monitoring, including tradeoffs.",
                "How do you evaluate and productionize an LLM or agentic workflow while managing risk and cost?",
            ],
            "deep_dive": [
                "Describe a production ML failure you handled and the long-term guardrails you implemented.",
                "How would you design model drift detection and retraining strategy for a business-critical model?",
            ],
            "wrapup": ["What would you improve first in your current MLOps lifecycle and why?"],
        },
    }
)


def role_family_alias(role_family: str) -> str:
    key = str(role_family or "").strip().lower()
    if "machine" in key or "ml" in key or "ai" in key:
        return "ml"
    if "backend" in key:
        return "backend"
    if "frontend" in key or "front_end" in key:
        return "frontend"
    return "full_stack"


def section_intent(section: str) -> str:
    if section == "intro":
        return "behavioral"
    if section == "wrap_up":
        return "wrapup"
    if section == "deep_dive":
        return "deep_dive"
    return "technical_validation"


def pick_question(items: Sequence[str], seed: int) -> str:
    if not items:
        return ""
    return items[abs(int(seed or 0)) % len(items)]


def anchor_question(question: str, targets: Sequence[str]) -> str:
    """Name ``targets`` inside the question so trimming after the first ``?`` keeps them."""

    names = " and ".join(targets)
    mark = question.find("?")
    if mark < 0:
        return f"{question} Please anchor your answer around {names}."
    return f"{question[:mark]}, anchoring your answer around {names}{question[mark:]}"


def build_fallback_question(
    role_family: str,
    section: str,
    asked_questions: int,
    uncovered_must_haves: Sequence[str] = (),
) -> ControllerPlan:
    """Pick a deterministic question for the role family and section.

    Technical and deep-dive questions get an anchoring clause naming up to two
    uncovered must-haves. A wrap-up pick after twelve asked questions carries
    ``end_interview``.
    """

    bank = BANK[role_family_alias(role_family)]
    intent = section_intent(section)
    question = pick_question(bank.get(intent, ()), asked_questions) or GENERIC_QUESTION

    targets = [str(item) for item in uncovered_must_haves if str(item or "").strip()][:2]
    if targets and intent in ("technical_validation", "deep_dive"):
        question = anchor_question(question, targets)

    plan_section = section if section in ("intro", "core", "deep_dive", "wrap_up", "completed") else "core"
    return ControllerPlan(
        section=plan_section,
        question=question,
        question_intent=_CONTROLLER_INTENTS[intent],
        expected_answer_format=_INTENT_FORMATS[intent],
        probes=list(STANDARD_PROBES),
        must_haves_targeted=targets,
        timebox_seconds=45 if intent == "wrapup" else 120,
        rationale=FALLBACK_RATIONALE,
        end_interview=intent == "wrapup" and asked_questions >= END_AFTER_QUESTIONS,
    )


__all__ = [
    "BANK",
    "anchor_question",
    "GENERIC_QUESTION",
    "STANDARD_PROBES",
    "build_fallback_question",
    "pick_question",
    "role_family_alias",
    "section_intent",
]
