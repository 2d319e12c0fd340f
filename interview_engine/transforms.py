"""Question transforms applied after the controller has proposed a plan.

The transforms run as an ordered pipeline: forced follow-up, then the
must-have sweep, then the single-question sanitizer. Each step checks its own
precondition and returns a new plan; later steps win over earlier ones.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from context_pack import ContextPack
from fallback_bank import build_fallback_question
from interview_state import coverage_status, elapsed_ratio, get_topic_probe_count, increment_topic_probe_count
from interview_state.models import SessionState
from interview_state.schemas import AnalyzerResult, AnswerFormat, ControllerPlan

FollowupReason = Literal["vagueness", "contradiction", "star_l"]

STAR_L_NAMES = {"S": "Situation", "T": "Task", "A": "Action", "R": "Result", "L": "Learning"}
SWEEP_TARGETS = 2


class ForcedFollowup(BaseModel):  # Deterministic follow-up that overrides the controller
    reason: FollowupReason
    question: str
    topic: str
    expected_answer_format: AnswerFormat
    missing_letters: List[str] = Field(default_factory=list)


def question_topic(plan: Optional[ControllerPlan]) -> str:  # Probe-counter key for a question
    if plan is None:
        return ""
    for item in plan.must_haves_targeted:
        if item.strip():
            return item.strip().lower()
    return plan.question_intent


def _join_names(names: Sequence[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + f" and {names[-1]}"


def derive_forced_followup(
    analysis: AnalyzerResult,
    last_plan: Optional[ControllerPlan],
    state: SessionState,
    *,
    max_probes: int,
) -> Optional[ForcedFollowup]:
    """Vagueness beats contradictions, which beat missing STAR-L letters.

    Nothing is forced once the answered question's topic has been probed
    ``max_probes`` times.
    """

    topic = question_topic(last_plan)
    if topic and get_topic_probe_count(state, topic) >= max_probes:
        return None

    if analysis.vagueness_flags:
        return ForcedFollowup(
            reason="vagueness",
            question="Could you walk me through one concrete example with the specific tools, numbers and decisions involved?",
            topic=topic,
            expected_answer_format="walkthrough",
        )
    if analysis.contradictions:
        detail = " ".join(analysis.contradictions[0].description.split())[:160].rstrip(" .")
        prefix = f"I want to reconcile something you said ({detail})." if detail else "Some of your details seem to conflict."
        return ForcedFollowup(
            reason="contradiction",
            question=f"{prefix} Which version is accurate?",
            topic=topic,
            expected_answer_format="short_fact",
        )
    if last_plan is not None and last_plan.expected_answer_format == "STAR-L":
        missing = analysis.missing_star_l()
        if missing:
            names = [STAR_L_NAMES[letter] for letter in missing]
            return ForcedFollowup(
                reason="star_l",
                question=f"To round out that example, can you describe the {_join_names(names)}?",
                topic=topic,
                expected_answer_format="STAR-L",
                missing_letters=missing,
            )
    return None


@dataclass
class TransformContext:  # Inputs shared by every question transform
    state: SessionState
    context_pack: ContextPack
    forced: Optional[ForcedFollowup] = None
    sweep_ratio: float = 0.8
    max_probes: int = 2
    max_chars: int = 420
    applied: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class QuestionTransform:
    name: str
    applies: Callable[[ControllerPlan, TransformContext], bool]
    apply: Callable[[ControllerPlan, TransformContext], ControllerPlan]


def _forced_applies(plan: ControllerPlan, ctx: TransformContext) -> bool:
    return ctx.forced is not None


def _apply_forced(plan: ControllerPlan, ctx: TransformContext) -> ControllerPlan:
    forced = ctx.forced
    if forced is None:
        return plan
    if forced.topic:
        increment_topic_probe_count(ctx.state, forced.topic)
    return plan.model_copy(
        update={
            "question": forced.question,
            "question_intent": "clarification",
            "expected_answer_format": forced.expected_answer_format,
            "rationale": f"forced_followup:{forced.reason}",
        }
    )


def sweep_targets(ctx: TransformContext) -> List[str]:
    """Up to two uncovered must-haves, preferring those not yet at the follow-up cap."""

    uncovered = coverage_status(ctx.state).uncovered
    fresh = [name for name in uncovered if get_topic_probe_count(ctx.state, name) < ctx.max_probes]
    probed = [name for name in uncovered if name not in fresh]
    return (fresh + probed)[:SWEEP_TARGETS]


def _sweep_applies(plan: ControllerPlan, ctx: TransformContext) -> bool:
    if elapsed_ratio(ctx.state) <= ctx.sweep_ratio:
        return False
    return coverage_status(ctx.state).pct < 1


def _apply_sweep(plan: ControllerPlan, ctx: TransformContext) -> ControllerPlan:
    targets = sweep_targets(ctx)
    for name in targets:
        increment_topic_probe_count(ctx.state, name)
    return plan.model_copy(
        update={
            "question": (
                "Before we run out of time, can you give a concrete example of your hands-on work with "
                f"{' and '.join(targets)}?"
            ),
            "question_intent": "technical_validation",
            "expected_answer_format": "steps+tradeoffs",
            "must_haves_targeted": targets,
            "rationale": "must_have_sweep",
        }
    )


def single_question(text: str, max_chars: int = 420) -> str:
    """Collapse whitespace, keep text up to the first question mark and cap the length."""

    compact = re.sub(r"\s+", " ", str(text or "")).strip()
    mark = compact.find("?")
    if mark >= 0:
        compact = compact[: mark + 1]
    if len(compact) > max_chars:
        compact = compact[: max_chars - 1].rstrip() + "…"
    return compact


def _single_applies(plan: ControllerPlan, ctx: TransformContext) -> bool:
    return True


def _apply_single(plan: ControllerPlan, ctx: TransformContext) -> ControllerPlan:
    text = single_question(plan.question, ctx.max_chars)
    if text:
        return plan.model_copy(update={"question": text})
    uncovered = coverage_status(ctx.state).uncovered
    fallback = build_fallback_question(
        ctx.context_pack.role_family, ctx.state.section, ctx.state.asked_questions, uncovered
    )
    return fallback.model_copy(update={"question": single_question(fallback.question, ctx.max_chars)})


QUESTION_TRANSFORMS: Tuple[QuestionTransform, ...] = (
    QuestionTransform("forced_followup", _forced_applies, _apply_forced),
    QuestionTransform("must_have_sweep", _sweep_applies, _apply_sweep),
    QuestionTransform("single_question", _single_applies, _apply_single),
)


def apply_question_transforms(
    plan: ControllerPlan,
    ctx: TransformContext,
    transforms: Sequence[QuestionTransform] = QUESTION_TRANSFORMS,
) -> ControllerPlan:
    for transform in transforms:
        if transform.applies(plan, ctx):
            plan = transform.apply(plan, ctx)
            ctx.applied.append(transform.name)
    return plan


__all__ = [
    "ForcedFollowup",
    "QUESTION_TRANSFORMS",
    "QuestionTransform",
    "TransformContext",
    "apply_question_transforms",
    "derive_forced_followup",
    "question_topic",
    "single_question",
    "sweep_targets",
]
