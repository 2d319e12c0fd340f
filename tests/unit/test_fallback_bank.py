import pytest

from fallback_bank import BANK, GENERIC_QUESTION, build_fallback_question, role_family_alias, section_intent
from fallback_bank.fallback_bank import pick_question
from interview_engine.transforms import single_question
from pipelines.controller import sanitize_controller_output

SECTIONS = ["intro", "core", "deep_dive", "wrap_up", "completed"]


@pytest.mark.parametrize("family", ["full_stack", "Backend Platform", "frontend", "ML Engineer", "", "mystery"])
@pytest.mark.parametrize("section", SECTIONS)
def test_question_is_never_empty(family, section):
    for asked in (-3, 0, 1, 7, 40):
        plan = build_fallback_question(family, section, asked)
        assert plan.question.strip()


def test_role_family_aliases():
    assert role_family_alias("Machine Learning") == "ml"
    assert role_family_alias("AI platform") == "ml"
    assert role_family_alias("backend") == "backend"
    assert role_family_alias("front_end web") == "frontend"
    assert role_family_alias(None) == "full_stack"


def test_section_intents():
    assert section_intent("intro") == "behavioral"
    assert section_intent("wrap_up") == "wrapup"
    assert section_intent("deep_dive") == "deep_dive"
    assert section_intent("core") == "technical_validation"


def test_selection_cycles_with_asked_questions():
    first = build_fallback_question("full_stack", "core", 0)
    second = build_fallback_question("full_stack", "core", 1)
    third = build_fallback_question("full_stack", "core", 2)
    assert first.question != second.question
    assert first.question == third.question


def test_anchoring_clause_for_technical_intents():
    plan = build_fallback_question("backend", "core", 0, ["node.js", "system_design", "sql"])
    assert plan.question.endswith("Please anchor your answer around node.js and system_design.")
    assert plan.must_haves_targeted == ["node.js", "system_design"]
    assert plan.expected_answer_format == "steps+tradeoffs"

    intro = build_fallback_question("backend", "intro", 0, ["node.js"])
    assert "anchor" not in intro.question
    assert intro.question_intent == "behavioral_star_l"
    assert intro.expected_answer_format == "STAR-L"


def test_wrap_up_plan_shape():
    early = build_fallback_question("ml", "wrap_up", 5)
    late = build_fallback_question("ml", "wrap_up", 12)
    assert early.timebox_seconds == 45
    assert early.expected_answer_format == "short_fact"
    assert early.end_interview is False
    assert late.end_interview is True
    assert late.rationale == "deterministic_fallback"
    assert len(late.probes) == 3


def test_empty_list_uses_generic_prompt():
    assert pick_question((), 3) == ""
    assert GENERIC_QUESTION.startswith("Please share a concrete STAR-L example")


def test_bank_is_read_only():
    with pytest.raises(TypeError):
        BANK["backend"] = {}  # type: ignore[index]
    with pytest.raises(TypeError):
        BANK["backend"]["wrapup"] = ()  # type: ignore[index]


@pytest.mark.parametrize("section", SECTIONS)
def test_plan_passes_controller_sanitizer(section):
    plan = build_fallback_question("frontend", section, 3, ["react"])
    assert sanitize_controller_output(plan.model_dump(), plan) == plan


def test_anchoring_survives_single_question_trim():
    plan = build_fallback_question("full_stack", "deep_dive", 1, ["kafka"])
    assert plan.question == (
        "How would you redesign one bottleneck in your recent stack for scale and reliability, "
        "anchoring your answer around kafka?"
    )
    assert single_question(plan.question) == plan.question
    assert plan.must_haves_targeted == ["kafka"]
