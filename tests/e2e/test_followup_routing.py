import pytest

from interview_engine import InterviewEngine
from storage.interviews import SqliteInterviewStore

ANSWER = "I put an LRU cache in front of the Node.js payments service and sized it from the hit-rate metrics."

CLEAN_ANALYSIS = {
    "followup_queue": [],
    "defer_queue": [],
    "vagueness_flags": [],
    "contradictions": [],
    "star_l_completeness": {letter: True for letter in "STARL"},
    "answer_quality": "partial",
}
CONTROLLER_PLAN = {
    "section": "core",
    "question": "How did you size the cache for the payments API?",
    "question_intent": "technical_validation",
    "expected_answer_format": "steps+tradeoffs",
    "must_haves_targeted": ["node.js"],
    "rationale": "cache sizing depth",
}


class ScriptedReasoning:
    """Answers each pipeline by its system prompt and records controller prompts."""

    def __init__(self):
        self.analyses = []
        self.controller_prompts = []

    def __call__(self, messages, *, model, temperature):
        system = messages[0]["content"]
        if system.startswith("You are the Answer Analyzer"):
            return self.analyses.pop(0) if self.analyses else dict(CLEAN_ANALYSIS)
        if system.startswith("You are the Interview Controller"):
            self.controller_prompts.append(messages[-1]["content"])
            return dict(CONTROLLER_PLAN)
        return {}


@pytest.fixture
def reasoning():
    return ScriptedReasoning()


@pytest.fixture
def engine(interview_record, reasoning, clock):
    SqliteInterviewStore().create(interview_record)
    engine = InterviewEngine("room-1", store=SqliteInterviewStore(), reasoning=reasoning, now=clock)
    engine.init()
    engine.get_kickoff_question()
    clock.advance(15)
    assert engine.handle_candidate_turn("Yes, let's start", "dana") == CONTROLLER_PLAN["question"]
    yield engine
    engine.close()


def _answer(engine, clock, text=ANSWER):
    clock.advance(60)
    return engine.handle_candidate_turn(text, "dana")


def test_blocking_followup_is_used_before_deferred(engine, reasoning, clock):
    reasoning.analyses.append(
        {
            **CLEAN_ANALYSIS,
            "followup_queue": [{"skill": "caching", "reason": "no eviction detail", "priority": 3}],
            "defer_queue": [{"skill": "kafka", "reason": "revisit partitioning", "priority": 5}],
        }
    )

    _answer(engine, clock)
    assert "Followup hint: caching: no eviction detail" in reasoning.controller_prompts[-1]
    assert [item.skill for item in engine.state.defer_queue] == ["kafka"]

    _answer(engine, clock)
    assert "Followup hint: kafka: revisit partitioning" in reasoning.controller_prompts[-1]
    assert engine.state.defer_queue == []
    assert engine.state.topic_probe_counts["caching"] == 1
    assert engine.state.topic_probe_counts["kafka"] == 1


def test_exhausted_topic_skips_the_controller(engine, reasoning, clock):
    engine.state.topic_probe_counts["caching"] = 2
    reasoning.analyses.append(
        {**CLEAN_ANALYSIS, "followup_queue": [{"skill": "caching", "reason": "still vague", "priority": 4}]}
    )
    calls_before = len(reasoning.controller_prompts)

    reply = _answer(engine, clock)

    assert len(reasoning.controller_prompts) == calls_before
    assert engine.last_plan.rationale == "deterministic_fallback"
    assert reply == engine.last_plan.question
    assert reply != CONTROLLER_PLAN["question"]
    assert engine.state.followup_queue == []
    assert engine.state.topic_probe_counts["caching"] == 2


def test_forced_followup_overrides_controller_plan(engine, reasoning, clock):
    reasoning.analyses.append(
        {
            **CLEAN_ANALYSIS,
            "vagueness_flags": [{"reason": "no concrete numbers"}],
            "followup_queue": [{"skill": "caching", "reason": "no eviction detail", "priority": 3}],
        }
    )
    calls_before = len(reasoning.controller_prompts)

    reply = _answer(engine, clock)

    assert len(reasoning.controller_prompts) == calls_before + 1
    assert "Followup hint: none" in reasoning.controller_prompts[-1]
    assert reply.startswith("Could you walk me through one concrete example")
    assert engine.last_plan.rationale == "forced_followup:vagueness"
    assert engine.last_plan.question_intent == "clarification"
    assert engine.state.topic_probe_counts["node.js"] == 1
    assert [item.skill for item in engine.state.followup_queue] == ["caching"]


def test_controller_plan_used_when_nothing_is_pending(engine, reasoning, clock):
    reply = _answer(engine, clock)
    assert reply == CONTROLLER_PLAN["question"]
    assert engine.last_plan.rationale == "cache sizing depth"
    assert "Followup hint: none" in reasoning.controller_prompts[-1]
