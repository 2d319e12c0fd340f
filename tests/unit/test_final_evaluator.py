import pytest

from config.registry import FINAL_EVALUATOR_KEY, bind_model
from context_pack import build_context_pack
from interview_state import create_initial_state
from pipelines.final_evaluator import fallback_evaluation, recommend, run_final_evaluator, sanitize_final_output


def _session():
    pack = build_context_pack(
        {"id": "s1", "candidateName": "Ana", "positionSnapshot": {"role_title": "Data Engineer", "must_haves": ["sql", "spark"]}}
    )
    state = create_initial_state(45, pack.must_haves, [])
    return pack, state


@pytest.mark.parametrize(
    "score,confidence,expected",
    [
        (3.8, 0.7, "strong_hire"),
        (3.8, 0.5, "hire"),
        (3.0, 0.1, "hire"),
        (2.5, 0.9, "hold"),
        (2.19, 0.9, "no_hire"),
    ],
)
def test_recommendation_thresholds(score, confidence, expected):
    assert recommend(score, confidence) == expected


def test_fallback_averages_observed_competencies():
    pack, state = _session()
    state.competency_scores["technical_depth"].score = 4.0
    state.competency_scores["technical_depth"].confidence = 0.6
    state.competency_scores["technical_depth"].observations = 2
    state.competency_scores["communication"].score = 3.0
    state.competency_scores["communication"].confidence = 0.5
    state.competency_scores["communication"].observations = 1
    state.must_have_coverage["sql"].covered = True

    result = fallback_evaluation(pack, state)
    assert result.overall_weighted_score == 3.5
    assert result.confidence == 0.55
    assert result.recommendation == "hire"
    assert result.risks == ["Uncovered must-have: spark"]
    assert result.summary == "Final evaluation generated for Ana against Data Engineer."
    assert len(result.competency_scores) == 5


def test_fallback_without_observations_is_no_hire():
    pack, state = _session()
    result = fallback_evaluation(pack, state)
    assert result.overall_weighted_score == 0.0
    assert result.recommendation == "no_hire"


def test_fallback_score_is_clamped_to_four():
    pack, state = _session()
    state.competency_scores["ownership"].score = 5.0
    state.competency_scores["ownership"].confidence = 0.9
    state.competency_scores["ownership"].observations = 1
    result = fallback_evaluation(pack, state)
    assert result.overall_weighted_score == 4.0
    assert result.recommendation == "strong_hire"


def test_sanitize_garbage_returns_fallback():
    pack, state = _session()
    fallback = fallback_evaluation(pack, state)
    assert sanitize_final_output({}, fallback) is fallback
    assert sanitize_final_output(42, fallback) is fallback


def test_sanitize_field_level():
    pack, state = _session()
    fallback = fallback_evaluation(pack, state)
    result = sanitize_final_output(
        {
            "overall_weighted_score": 7,
            "confidence": "high",
            "competency_scores": [{"competency": "sql", "score": 3.2, "confidence": 0.8}, {"score": 1}],
            "strengths": ["clear tradeoffs", "", 3],
            "recommendation": "maybe",
            "summary": "   ",
        },
        fallback,
    )
    assert result.overall_weighted_score == 4.0
    assert result.confidence == fallback.confidence
    assert [item.competency for item in result.competency_scores] == ["sql"]
    assert result.must_have_coverage == fallback.must_have_coverage
    assert result.strengths == ["clear tradeoffs", "3"]
    assert result.risks == fallback.risks
    assert result.recommendation == fallback.recommendation
    assert result.summary == fallback.summary


def test_run_final_evaluator_falls_back_on_error(broken_llm):
    pack, state = _session()
    assert run_final_evaluator(pack, state, llm=broken_llm) == fallback_evaluation(pack, state)


def test_run_final_evaluator_accepts_model_output():
    pack, state = _session()
    bind_model(
        FINAL_EVALUATOR_KEY,
        lambda messages, *, model, temperature: {
            "overall_weighted_score": 3.1,
            "confidence": 0.7,
            "recommendation": "hire",
            "summary": "Solid SQL depth.",
        },
    )
    result = run_final_evaluator(pack, state)
    assert result.recommendation == "hire"
    assert result.summary == "Solid SQL depth."
    assert result.strengths == fallback_evaluation(pack, state).strengths


def test_non_finite_scores_fall_back():
    pack, state = _session()
    fallback = fallback_evaluation(pack, state)
    result = sanitize_final_output(
        {
            "overall_weighted_score": float("nan"),
            "confidence": "Infinity",
            "competency_scores": [{"competency": "sql", "score": float("nan"), "confidence": 0.5}],
            "recommendation": "hire",
        },
        fallback,
    )
    assert result.overall_weighted_score == fallback.overall_weighted_score == 0.0
    assert result.confidence == fallback.confidence
    assert result.competency_scores == []
