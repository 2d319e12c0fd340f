"""Turn orchestrator for one interview session.

``InterviewEngine`` owns the session state, the transcript and the snapshot
writer for a single session. Each candidate turn runs as a compiled langgraph
``StateGraph``; the graph only carries per-turn scratch values while the nodes
mutate the engine's session state directly. One turn is in flight at a time.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from config.settings import Settings, settings as default_settings
from context_pack import ContextPack, InterviewRecord, build_context_pack
from fallback_bank import build_fallback_question
from interview_state import (
    apply_analyzer_result,
    apply_deterministic_gates,
    complete_session,
    consume_defer,
    consume_followup,
    coverage_status,
    create_initial_state,
    get_topic_probe_count,
    increment_topic_probe_count,
    register_question_asked,
    utc_now,
)
from interview_state.models import QueueItem, SessionState
from interview_state.schemas import AnalyzerResult, ControllerPlan, FinalEvaluation
from llm_gateway import ReasoningCall
from observability import log_event, span
from pipelines import run_analyzer, run_controller, run_final_evaluator
from storage.interviews import InterviewStore
from .consent import classify_consent, consent_reprompt, kickoff_text
from .models import EngineSnapshot, EngineStateError, EngineStatus, FinalRecord, TranscriptTurn
from .persistence import SnapshotWriter
from .transforms import ForcedFollowup, TransformContext, apply_question_transforms, derive_forced_followup
from .variants import AgentVariant, JoinActions, JoinState, ModelSelection, create_agent_variant

ADVANCE_RECOMMENDATIONS = ("strong_hire", "hire")
NEXT_STEPS_ADVANCE = "Proceed to next stage with focused system design and production depth checks."
NEXT_STEPS_PROBE = "Consider follow-up probing round before final decision."


class TurnState(TypedDict, total=False):
    text: str
    speaker: str
    route: str
    reply: str
    analysis: Optional[AnalyzerResult]
    forced: Optional[ForcedFollowup]
    queued: Optional[QueueItem]
    hint: Optional[str]
    plan: Optional[ControllerPlan]
    source: str
    applied: List[str]
    events: List[Dict[str, Any]]


def closing_statement(candidate_name: str) -> str:
    return (
        f"Thank you, {candidate_name}. That concludes our interview today. "
        "We appreciate your time, and the team will follow up with next steps."
    )


def display_scores(score: float) -> tuple[int, float]:  # 0..4 score mapped to the 0..100 and 0..10 scales
    bounded = max(0.0, min(4.0, score))
    return int(round(bounded / 4 * 100)), round(bounded / 4 * 10, 1)


class InterviewEngine:
    """Conducts one interview session: consent, question turns and finalization."""

    def __init__(
        self,
        session_id: str,
        *,
        store: InterviewStore,
        reasoning: Optional[ReasoningCall] = None,
        settings: Optional[Settings] = None,
        agent_type: Optional[str] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session_id = session_id
        self.settings = settings or default_settings
        self._store = store
        self._reasoning = reasoning
        self._now = now
        self._agent_type = agent_type or self.settings.AGENT_TYPE
        self.variant: AgentVariant = create_agent_variant(self._agent_type, self.settings)
        self.writer = SnapshotWriter(session_id, store)
        self.join_state = JoinState()
        self.status: EngineStatus = "awaiting_consent"
        self.context_pack: Optional[ContextPack] = None
        self.state: Optional[SessionState] = None
        self.transcript: List[TranscriptTurn] = []
        self.last_plan: Optional[ControllerPlan] = None
        self.last_question = ""
        self.final_record: Optional[FinalRecord] = None
        self._lock = threading.RLock()
        self._graph = self._build_graph()

    # lifecycle -------------------------------------------------------------

    def init(self) -> None:
        """Load the interview record and seed the session; raises ``InterviewNotFoundError``."""

        record = InterviewRecord.model_validate(self._store.get(self.session_id))
        self.context_pack = build_context_pack(record, now=self._now())
        minutes = record.resolved_duration(self.settings.DEFAULT_DURATION_MINUTES)
        self.state = create_initial_state(
            minutes,
            self.context_pack.must_haves,
            self.context_pack.focus_areas,
            now=self._now(),
        )
        log_event(
            "session_init",
            self.session_id,
            section=self.state.section,
            state=self.status,
            source=self.variant.agent_type,
        )
        self.writer.submit(self._progress_patch())

    @classmethod
    def resume(
        cls,
        snapshot: EngineSnapshot | Dict[str, Any],
        *,
        store: InterviewStore,
        reasoning: Optional[ReasoningCall] = None,
        settings: Optional[Settings] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> "InterviewEngine":
        """Rebuild an engine from a persisted snapshot without recomputing anything."""

        snap = snapshot if isinstance(snapshot, EngineSnapshot) else EngineSnapshot.model_validate(snapshot)
        engine = cls(
            snap.session_id,
            store=store,
            reasoning=reasoning,
            settings=settings,
            agent_type=snap.agent_type,
            now=now,
        )
        engine.status = snap.status
        engine.context_pack = snap.context_pack
        engine.state = snap.state
        engine.transcript = list(snap.transcript)
        engine.last_plan = snap.last_plan
        engine.last_question = snap.last_question
        engine.final_record = snap.final_record
        log_event("session_resume", engine.session_id, section=snap.state.section, state=snap.status)
        return engine

    def snapshot(self) -> EngineSnapshot:
        state, pack = self._require_session()
        return EngineSnapshot(
            session_id=self.session_id,
            status=self.status,
            agent_type=self.variant.agent_type,
            context_pack=pack,
            state=state,
            transcript=list(self.transcript),
            last_plan=self.last_plan,
            last_question=self.last_question,
            final_record=self.final_record,
        )

    # collaborator surface --------------------------------------------------

    def get_kickoff_question(self) -> str:
        """Greeting plus consent request; recorded in the transcript without touching counters."""

        with self._lock:
            state, pack = self._require_session()
            if self.status == "finalized":
                return closing_statement(pack.candidate_name)
            text = kickoff_text(
                pack.candidate_name,
                self.variant.bot_name(self.settings),
                pack.role_title,
                state.total_time_budget_seconds // 60,
            )
            self._say(text)
            return text

    def handle_candidate_turn(self, text: str, speaker_identity: str = "participant") -> str:
        """Process one finalized candidate utterance and return the next thing to say."""

        with self._lock:
            state, pack = self._require_session()
            if self.status == "finalized":
                return closing_statement(pack.candidate_name)
            cleaned = " ".join(str(text or "").split())
            if not cleaned:
                return self.last_question
            self.writer.wait_idle(self.settings.PERSIST_WAIT_SECONDS)
            started = time.perf_counter()
            log_event("turn_start", self.session_id, section=state.section, state=self.status)
            result = self._graph.invoke({"text": cleaned, "speaker": speaker_identity or "participant", "events": []})
            plan = result.get("plan")
            log_event(
                "turn_end",
                self.session_id,
                section=state.section,
                state=self.status,
                source=result.get("source", ""),
                intent=plan.question_intent if plan else "",
                transform=",".join(result.get("applied", [])),
                asked=state.asked_questions,
                ms=int((time.perf_counter() - started) * 1000),
                spans=result.get("events", []),
            )
            return result.get("reply", "")

    def finalize(self) -> FinalRecord:
        """Run the final evaluation once and persist the terminal record synchronously."""

        with self._lock:
            return self._finalize()

    def _finalize(self) -> FinalRecord:
        if self.final_record is not None:
            return self.final_record
        state, pack = self._require_session()
        self.writer.wait_idle(self.settings.PERSIST_WAIT_SECONDS)
        complete_session(state, self._now())
        evaluation = run_final_evaluator(
            pack,
            state,
            transcript=self.transcript,
            llm=self._reasoning,
            settings=self.settings,
        )
        record = self._compose_final_record(evaluation)
        self.final_record = record
        self.status = "finalized"
        payload = record.model_dump(mode="json", by_alias=True)
        payload.update(self._progress_patch())
        if self.writer.write_now(payload, self.settings.PERSIST_WAIT_SECONDS):
            log_event("session_finalized", self.session_id, section=state.section, outcome=record.recommendation)
        else:
            log_event(
                "session_finalized",
                self.session_id,
                level=logging.WARNING,
                section=state.section,
                outcome=record.recommendation,
                error=self.writer.last_error,
            )
        return record

    def runtime_instruction(self, candidate_context: str = "") -> str:
        _, pack = self._require_session()
        return self.variant.build_runtime_instruction(pack, candidate_context)

    def model_selection(self) -> ModelSelection:
        return self.variant.select_models(self.settings)

    def participant_joined(self, identity: str) -> JoinActions:
        actions = self.variant.on_participant_joined(identity, self.join_state)
        log_event("participant_joined", self.session_id, source=identity, outcome=actions.kickoff)
        return actions

    @property
    def last_persist_error(self) -> Optional[str]:
        return self.writer.last_error

    def close(self) -> None:
        self.writer.wait_idle(self.settings.PERSIST_WAIT_SECONDS)
        self.writer.close()

    # graph -----------------------------------------------------------------

    def _build_graph(self):
        graph = StateGraph(TurnState)
        graph.add_node("record", self._node_record)
        graph.add_node("consent", self._node_consent)
        graph.add_node("reprompt", self._node_reprompt)
        graph.add_node("analyze", self._node_analyze)
        graph.add_node("gate", self._node_gate)
        graph.add_node("followups", self._node_followups)
        graph.add_node("controller", self._node_controller)
        graph.add_node("transforms", self._node_transforms)
        graph.add_node("emit", self._node_emit)
        graph.add_node("persist", self._node_persist)
        graph.add_node("close", self._node_close)

        graph.set_entry_point("record")
        graph.add_edge("record", "consent")
        graph.add_conditional_edges(
            "consent",
            lambda turn: turn["route"],
            {"reprompt": "reprompt", "opening": "gate", "analyze": "analyze"},
        )
        graph.add_edge("reprompt", "persist")
        graph.add_edge("analyze", "gate")
        graph.add_conditional_edges(
            "gate",
            lambda turn: turn["route"],
            {"close": "close", "followups": "followups"},
        )
        graph.add_conditional_edges(
            "followups",
            lambda turn: turn["route"],
            {"controller": "controller", "transforms": "transforms"},
        )
        graph.add_edge("controller", "transforms")
        graph.add_edge("transforms", "emit")
        graph.add_edge("emit", "persist")
        graph.add_edge("persist", END)
        graph.add_edge("close", END)
        return graph.compile()

    def _node_record(self, turn: TurnState) -> Dict[str, Any]:
        state, _ = self._require_session()
        self.transcript.append(
            TranscriptTurn(
                role="candidate",
                by=turn.get("speaker", "participant"),
                text=turn["text"],
                ts=self._now(),
                section=state.section,
            )
        )
        return {"route": "consent"}

    def _node_consent(self, turn: TurnState) -> Dict[str, Any]:
        if self.status != "awaiting_consent":
            return {"route": "analyze"}
        decision = classify_consent(turn["text"])
        log_event("consent", self.session_id, state=self.status, outcome=decision)
        if decision != "affirmative":
            return {"route": "reprompt", "reply": consent_reprompt(decision)}
        self.status = "interviewing"
        return {"route": "opening", "analysis": None}

    def _node_reprompt(self, turn: TurnState) -> Dict[str, Any]:
        reply = turn.get("reply") or consent_reprompt("unclear")
        self._say(reply)
        return {"reply": reply, "source": "consent"}

    def _node_analyze(self, turn: TurnState) -> Dict[str, Any]:
        state, pack = self._require_session()
        events = turn.get("events", [])
        with span(events, "analyze"):
            analysis = run_analyzer(
                pack,
                state,
                question=self.last_question,
                answer=turn["text"],
                question_meta=self.last_plan,
                llm=self._reasoning,
                settings=self.settings,
            )
            apply_analyzer_result(state, analysis, self._now())
            forced = derive_forced_followup(
                analysis,
                self.last_plan,
                state,
                max_probes=self.settings.MAX_PROBES_PER_TOPIC,
            )
        return {"analysis": analysis, "forced": forced, "events": events}

    def _node_gate(self, turn: TurnState) -> Dict[str, Any]:
        state, _ = self._require_session()
        section = apply_deterministic_gates(state, self._now())
        answered_closer = (
            turn.get("analysis") is not None
            and self.last_plan is not None
            and self.last_plan.end_interview
            and section == "wrap_up"
        )
        if answered_closer:
            complete_session(state, self._now())
            section = state.section
        return {"route": "close" if section == "completed" else "followups"}

    def _node_followups(self, turn: TurnState) -> Dict[str, Any]:
        state, pack = self._require_session()
        if turn.get("forced") is not None:
            return {"route": "controller", "hint": None, "queued": None}
        item = consume_followup(state) or consume_defer(state)
        if item is None:
            return {"route": "controller", "hint": None, "queued": None}
        topic = item.skill
        if get_topic_probe_count(state, topic) >= self.settings.MAX_PROBES_PER_TOPIC:
            plan = build_fallback_question(
                pack.role_family,
                state.section,
                state.asked_questions,
                coverage_status(state).uncovered,
            )
            return {"route": "transforms", "plan": plan, "queued": item, "source": "fallback_bank"}
        increment_topic_probe_count(state, topic)
        return {"route": "controller", "hint": f"{item.skill}: {item.reason}", "queued": item}

    def _node_controller(self, turn: TurnState) -> Dict[str, Any]:
        state, pack = self._require_session()
        events = turn.get("events", [])
        with span(events, "controller"):
            plan = run_controller(
                pack,
                state,
                transcript=self.transcript,
                open_followups=state.followup_queue,
                followup_hint=turn.get("hint"),
                llm=self._reasoning,
                settings=self.settings,
            )
        source = "fallback_bank" if plan.rationale == "deterministic_fallback" else "controller"
        return {"plan": plan, "source": source, "events": events}

    def _node_transforms(self, turn: TurnState) -> Dict[str, Any]:
        state, pack = self._require_session()
        ctx = TransformContext(
            state=state,
            context_pack=pack,
            forced=turn.get("forced"),
            sweep_ratio=self.settings.MUST_HAVE_SWEEP_RATIO,
            max_probes=self.settings.MAX_PROBES_PER_TOPIC,
            max_chars=self.settings.QUESTION_MAX_CHARS,
        )
        plan = apply_question_transforms(turn["plan"], ctx)
        return {"plan": plan, "applied": list(ctx.applied)}

    def _node_emit(self, turn: TurnState) -> Dict[str, Any]:
        state, _ = self._require_session()
        plan = turn["plan"]
        register_question_asked(state, self._now())
        self.last_plan = plan
        self._say(plan.question)
        apply_deterministic_gates(state, self._now())
        return {"reply": plan.question}

    def _node_persist(self, turn: TurnState) -> Dict[str, Any]:
        self.writer.submit(self._progress_patch())
        return {"route": "done"}

    def _node_close(self, turn: TurnState) -> Dict[str, Any]:
        _, pack = self._require_session()
        reply = closing_statement(pack.candidate_name)
        self._say(reply)
        self._finalize()
        return {"reply": reply, "source": "closing"}

    # helpers ---------------------------------------------------------------

    def _require_session(self) -> tuple[SessionState, ContextPack]:
        if self.state is None or self.context_pack is None:
            raise EngineStateError("engine is not initialised; call init() first")
        return self.state, self.context_pack

    def _say(self, text: str) -> None:
        state, _ = self._require_session()
        self.transcript.append(
            TranscriptTurn(
                role="assistant",
                by=self.variant.bot_name(self.settings),
                text=text,
                ts=self._now(),
                section=state.section,
            )
        )
        self.last_question = text

    def _progress_patch(self) -> Dict[str, Any]:
        tail = self.transcript[-self.settings.PERSIST_TRANSCRIPT_TAIL :] if self.settings.PERSIST_TRANSCRIPT_TAIL > 0 else []
        return {
            "engineStatus": self.status,
            "engineState": self.state.model_dump(mode="json") if self.state else None,
            "engineTranscript": [item.model_dump(mode="json") for item in tail],
            "engineSnapshot": self.snapshot().model_dump(mode="json"),
        }

    def _compose_final_record(self, evaluation: FinalEvaluation) -> FinalRecord:
        state, pack = self._require_session()
        interview_score, rubric_score = display_scores(evaluation.overall_weighted_score)
        coverage = coverage_status(state)
        detailed = [
            evaluation.summary,
            "Strengths: " + ("; ".join(evaluation.strengths) if evaluation.strengths else "none recorded."),
            "Risks: " + ("; ".join(evaluation.risks) if evaluation.risks else "no critical gaps observed."),
            f"Must-have coverage: {coverage.covered}/{coverage.total}.",
            f"Answered turns: {state.answered_turns}.",
        ]
        return FinalRecord(
            meeting_actual_end=self._now(),
            summary_feedback=(
                f"Interview completed for {pack.candidate_name} on {pack.role_title}. "
                f"Overall score {interview_score}/100 with recommendation {evaluation.recommendation}."
            ),
            detailed_feedback=" ".join(part for part in detailed if part),
            rubric_score=rubric_score,
            interview_score=interview_score,
            recommendation=evaluation.recommendation,
            next_steps=NEXT_STEPS_ADVANCE if evaluation.recommendation in ADVANCE_RECOMMENDATIONS else NEXT_STEPS_PROBE,
            evaluation=evaluation,
        )


__all__ = ["InterviewEngine", "TurnState", "closing_statement", "display_scores"]
