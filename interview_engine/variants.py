"""Agent variants: classic interview and the time-boxed realtime screening call.

The set of variants is closed. ``create_agent_variant`` selects one by its
``AgentType`` tag and unknown tags resolve to the classic variant.
"""
from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent
from typing import Dict, Literal, Optional, Protocol

from pydantic import BaseModel

from config.settings import Settings
from context_pack import ContextPack

AgentType = Literal["classic", "realtime_screening"]
AGENT_TYPES: tuple[str, ...] = ("classic", "realtime_screening")
BOT_IDENTITY_PREFIX = "interview-agent"

CLASSIC_INSTRUCTION = " ".join(
    dedent(
        """
        You are a human-like technical interviewer in a live voice call.
        Do not behave like a rigid state machine.
        Run a soft interview flow naturally:
        1) Start with a warm intro, set expectations, and ask for consent to begin.
        2) Ask about candidate background and experience relevant to role.
        3) Deep dive into one or two concrete projects from the candidate CV/background.
        4) Ask strong theoretical and practical follow-up questions tied to technologies from those projects.
        5) End with a brief wrap-up and invite candidate questions.
        Guidelines:
        - Keep it conversational and adaptive.
        - Ask one primary question at a time; short acknowledgement is fine.
        - If candidate says they do not know, acknowledge and move forward gracefully.
        - Avoid repeating the exact same question.
        - Keep spoken responses concise and natural.
        - Stay focused on interview content; do not drift to unrelated chit-chat.
        """
    ).strip().splitlines()
)

SCREENING_INSTRUCTION = " ".join(
    dedent(
        """
        You are a conversational screening interviewer for a strict 10-minute live call.
        Keep the tone natural and human, but be efficient and focused.
        Flow:
        1) 30-45s intro and consent.
        2) 2-3 concise background and relevance questions.
        3) One practical project probe for depth and ownership.
        4) A few short technical theory checks for coverage.
        5) Brief close and next-step summary.
        Rules:
        - Ask one question at a time.
        - Do not repeat the same question more than once.
        - If candidate says skip or does not know, acknowledge and move on.
        - Keep responses short and spoken-friendly.
        """
    ).strip().splitlines()
)


class ModelSelection(BaseModel):  # Primary and fallback conversational model
    primary: str
    fallback: str = ""


class JoinActions(BaseModel):  # What the engine should do when someone joins
    kickoff: bool = False
    hard_stop_after_seconds: Optional[int] = None


class JoinState(BaseModel):  # Per-session join bookkeeping owned by the caller
    kickoff_sent: bool = False
    candidate_joined: bool = False
    hard_stop_armed: bool = False


class AgentVariant(Protocol):
    agent_type: AgentType

    def bot_name(self, settings: Settings) -> str: ...

    def build_runtime_instruction(self, context_pack: ContextPack, candidate_context: str = "") -> str: ...

    def select_models(self, settings: Settings) -> ModelSelection: ...

    def on_participant_joined(self, identity: str, join_state: JoinState) -> JoinActions: ...


def is_bot_identity(identity: str) -> bool:
    return str(identity or "").strip().lower().startswith(BOT_IDENTITY_PREFIX)


def role_context(context_pack: ContextPack) -> str:  # One-line role summary for runtime instructions
    parts = [f"{context_pack.role_title} ({context_pack.level}, {context_pack.interview_round_type} round)"]
    if context_pack.must_haves:
        parts.append("must-haves: " + ", ".join(context_pack.must_haves))
    if context_pack.focus_areas:
        parts.append("focus areas: " + ", ".join(context_pack.focus_areas))
    return "; ".join(parts)


def _with_context(base: str, context_pack: ContextPack, candidate_context: str) -> str:
    lines = []
    if candidate_context.strip():
        lines.append(f"Candidate context: {candidate_context.strip()}")
    lines.append(f"Role context: {role_context(context_pack)}")
    return base + "\n\nKnown context:\n" + "\n".join(lines)


def _join_candidate(identity: str, join_state: JoinState) -> bool:
    if is_bot_identity(identity):
        return False
    join_state.candidate_joined = True
    if join_state.kickoff_sent:
        return False
    join_state.kickoff_sent = True
    return True


@dataclass(frozen=True)
class ClassicAgent:
    base_instruction: str = CLASSIC_INSTRUCTION
    agent_type: AgentType = "classic"

    def bot_name(self, settings: Settings) -> str:
        return settings.BOT_NAME

    def build_runtime_instruction(self, context_pack: ContextPack, candidate_context: str = "") -> str:
        return _with_context(self.base_instruction, context_pack, candidate_context)

    def select_models(self, settings: Settings) -> ModelSelection:
        return ModelSelection(primary=settings.REASONING_MODEL)

    def on_participant_joined(self, identity: str, join_state: JoinState) -> JoinActions:
        return JoinActions(kickoff=_join_candidate(identity, join_state))


@dataclass(frozen=True)
class RealtimeScreeningAgent:
    max_minutes: int = 10
    base_instruction: str = SCREENING_INSTRUCTION
    agent_type: AgentType = "realtime_screening"

    def bot_name(self, settings: Settings) -> str:
        return settings.REALTIME_SCREENING_BOT_NAME

    def build_runtime_instruction(self, context_pack: ContextPack, candidate_context: str = "") -> str:
        return _with_context(self.base_instruction, context_pack, candidate_context)

    def select_models(self, settings: Settings) -> ModelSelection:
        return ModelSelection(
            primary=settings.REALTIME_SCREENING_MODEL,
            fallback=settings.REALTIME_SCREENING_FALLBACK_MODEL,
        )

    def on_participant_joined(self, identity: str, join_state: JoinState) -> JoinActions:
        kickoff = _join_candidate(identity, join_state)
        hard_stop = None
        if not is_bot_identity(identity) and not join_state.hard_stop_armed:
            join_state.hard_stop_armed = True
            hard_stop = self.max_minutes * 60
        return JoinActions(kickoff=kickoff, hard_stop_after_seconds=hard_stop)


def normalize_agent_type(value: Optional[str]) -> AgentType:
    key = str(value or "").strip().lower().replace("-", "_")
    return "realtime_screening" if key == "realtime_screening" else "classic"


def create_agent_variant(agent_type: Optional[str], settings: Settings) -> AgentVariant:
    variants: Dict[str, AgentVariant] = {
        "classic": ClassicAgent(),
        "realtime_screening": RealtimeScreeningAgent(max_minutes=settings.SCREENING_MAX_MINUTES),
    }
    return variants[normalize_agent_type(agent_type)]


__all__ = [
    "AGENT_TYPES",
    "AgentType",
    "AgentVariant",
    "ClassicAgent",
    "JoinActions",
    "JoinState",
    "ModelSelection",
    "RealtimeScreeningAgent",
    "create_agent_variant",
    "is_bot_identity",
    "normalize_agent_type",
    "role_context",
]
