import pytest

from interview_engine import EngineStateError, InterviewEngine, closing_statement
from interview_engine.consent import CONSENT_REPROMPT_UNCLEAR
from storage.interviews import InterviewNotFoundError, SqliteInterviewStore

ANSWER = (
    "In my last role the situation was a payments API in Node.js that kept timing out at peak. "
    "My goal was to keep checkout under two hundred milliseconds, so I designed a queue based system design "
    "with idempotent consumers and rolled it out behind a flag. The result was latency reduced by half, "
    "and the lesson I learned was to load test before launch."
)
RECOMMENDATIONS = {"strong_hire", "hire", "hold", "no_hire"}


class BrokenStore(SqliteInterviewStore):
    def patch(self, interview_id, partial):
        raise RuntimeError("disk full")


@pytest.fixture
def store(interview_record):
    store = SqliteInterviewStore()
    store.create(interview_record)
    return store


@pytest.fixture
def engine(store, broken_llm, clock):
    engine = InterviewEngine("room-1", store=store, reasoning=broken_llm, now=clock)
    engine.init()
    yield engine
    engine.close()


def _start(engine, clock):
    kickoff = engine.get_kickoff_question()
    assert kickoff.startswith("Hi Dana")
    assert engine.handle_candidate_turn("hmm", "dana") == CONSENT_REPROMPT_UNCLEAR
    assert engine.state.asked_questions == 0
    clock.advance(20)
    first = engine.handle_candidate_turn("Yes, let's start", "dana")
    assert first.endswith("?")
    assert engine.state.asked_questions == 1
    return first


def test_full_session_reaches_final_record(engine, store, clock):
    _start(engine, clock)
    closing = closing_statement("Dana")
    reply = ""
    for _ in range(25):
        clock.advance(300)
        reply = engine.handle_candidate_turn(ANSWER, "dana")
        if reply == closing:
            break
    assert reply == closing
    assert engine.status == "finalized"
    assert engine.state.section == "completed"

    record = engine.finalize()
    assert record is engine.final_record
    assert record.recommendation in RECOMMENDATIONS
    assert 0 <= record.interview_score <= 100
    assert 0 <= record.rubric_score <= 10

    engine.writer.wait_idle(5)
    stored = store.get("room-1")
    assert stored["status"] == "completed"
    assert stored["recommendation"] == record.recommendation
    assert stored["engineStatus"] == "finalized"
    assert engine.handle_candidate_turn("one more thing", "dana") == closing


def test_finalize_mid_session(engine, store, clock):
    _start(engine, clock)
    clock.advance(120)
    engine.handle_candidate_turn(ANSWER, "dana")
    answered = engine.state.answered_turns

    record = engine.finalize()
    assert engine.state.section == "completed"
    assert engine.state.answered_turns == answered == 1
    assert engine.finalize() is record
    assert store.get("room-1")["status"] == "completed"
    assert engine.handle_candidate_turn("hello?", "dana") == closing_statement("Dana")


def test_empty_utterance_repeats_last_question(engine, clock):
    first = _start(engine, clock)
    assert engine.handle_candidate_turn("   ", "dana") == first
    assert engine.state.answered_turns == 0


def test_resume_from_persisted_snapshot(engine, store, broken_llm, clock):
    _start(engine, clock)
    clock.advance(200)
    engine.handle_candidate_turn(ANSWER, "dana")
    engine.writer.wait_idle(5)

    resumed = InterviewEngine.resume(store.get("room-1")["engineSnapshot"], store=store, reasoning=broken_llm, now=clock)
    try:
        assert resumed.status == "interviewing"
        assert resumed.state.asked_questions == engine.state.asked_questions
        assert resumed.state.section == engine.state.section
        assert resumed.last_question == engine.last_question
        assert len(resumed.transcript) == len(engine.transcript)

        clock.advance(200)
        reply = resumed.handle_candidate_turn(ANSWER, "dana")
        assert reply
        assert resumed.state.asked_questions == engine.state.asked_questions + 1
    finally:
        resumed.close()


def test_persistence_failure_does_not_block_turns(interview_record, broken_llm, clock):
    SqliteInterviewStore().create(interview_record)
    store = BrokenStore()
    engine = InterviewEngine("room-1", store=store, reasoning=broken_llm, now=clock)
    try:
        engine.init()
        _start(engine, clock)
        engine.writer.wait_idle(5)
        assert engine.last_persist_error == "RuntimeError: disk full"
        record = engine.finalize()
        assert record.recommendation in RECOMMENDATIONS
    finally:
        engine.close()


def test_engine_surface_for_screening(store, broken_llm, clock):
    engine = InterviewEngine("room-1", store=store, reasoning=broken_llm, agent_type="realtime-screening", now=clock)
    try:
        engine.init()
        assert engine.model_selection().primary == "gpt-realtime-mini"
        assert "Role context: Senior Backend Engineer" in engine.runtime_instruction()
        actions = engine.participant_joined("dana")
        assert actions.kickoff is True
        assert actions.hard_stop_after_seconds == 600
        assert engine.snapshot().agent_type == "realtime_screening"
        assert "Realtime Screening Agent" in engine.get_kickoff_question()
    finally:
        engine.close()


def test_uninitialised_engine_rejects_turns(store):
    engine = InterviewEngine("room-1", store=store)
    try:
        with pytest.raises(EngineStateError):
            engine.handle_candidate_turn("hi")
    finally:
        engine.close()


def test_missing_record_fails_init():
    engine = InterviewEngine("ghost", store=SqliteInterviewStore())
    try:
        with pytest.raises(InterviewNotFoundError):
            engine.init()
    finally:
        engine.close()
