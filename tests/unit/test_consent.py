import pytest

from interview_engine.consent import (
    CONSENT_REPROMPT_NEGATIVE,
    CONSENT_REPROMPT_UNCLEAR,
    classify_consent,
    consent_reprompt,
    kickoff_text,
)


@pytest.mark.parametrize(
    "text",
    ["Yes", "yeah, let's go", "Sure, no problem", "I'm ready", "okay", "Sounds good to me"],
)
def test_affirmative(text):
    assert classify_consent(text) == "affirmative"


@pytest.mark.parametrize(
    "text",
    ["No", "not yet please", "Yes but can you wait a minute", "I can't right now", "let's reschedule"],
)
def test_negative_wins(text):
    assert classify_consent(text) == "negative"


@pytest.mark.parametrize("text", ["", "   ", "hmm", "what is this about"])
def test_unclear(text):
    assert classify_consent(text) == "unclear"


def test_reprompts():
    assert consent_reprompt("negative") == CONSENT_REPROMPT_NEGATIVE
    assert consent_reprompt("unclear") == CONSENT_REPROMPT_UNCLEAR


def test_kickoff_text_mentions_candidate_and_length():
    text = kickoff_text("Dana", "Interview Agent", "Backend Engineer", 45)
    assert text.startswith("Hi Dana, I'm Interview Agent.")
    assert "45 minutes" in text
    assert text.endswith("Are you ready to begin?")


@pytest.mark.parametrize(
    "text",
    ["Yes, no questions, let's start", "Sure, I have no concerns", "Okay, no rush on my side, go ahead"],
)
def test_inner_no_does_not_override_yes(text):
    assert classify_consent(text) == "affirmative"


@pytest.mark.parametrize("text", ["no thanks", "Nope.", "honestly, no!", "Nah, give me a minute"])
def test_leading_or_closing_no_is_negative(text):
    assert classify_consent(text) == "negative"
