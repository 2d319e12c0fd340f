"""Consent gate run before the first substantive question."""
from __future__ import annotations

import re
from typing import Literal

ConsentDecision = Literal["affirmative", "negative", "unclear"]

NEGATIVE_PATTERNS = [
    re.compile(r"^(no|nope|nah)\b", re.IGNORECASE),
    re.compile(r"\b(no|nope|nah)[.!]*$", re.IGNORECASE),
    re.compile(r"\bnot\s+(now|yet|ready|comfortable|today)\b", re.IGNORECASE),
    re.compile(r"\b(don't|dont|do not|can't|cannot|won't)\b", re.IGNORECASE),
    re.compile(r"\b(decline|stop|later|wait|hold on|reschedule)\b", re.IGNORECASE),
]
NEUTRAL_PHRASES = re.compile(r"\b(no problem|no worries|(?:don't|dont|do not) mind)\b", re.IGNORECASE)
AFFIRMATIVE_PATTERNS = [
    re.compile(r"\b(yes|yeah|yep|yup|sure|ok|okay|absolutely|definitely|certainly)\b", re.IGNORECASE),
    re.compile(r"\b(ready|let's go|lets go|go ahead|sounds good|of course|i agree|i consent)\b", re.IGNORECASE),
    re.compile(r"\b(let's start|lets start|let's begin|lets begin|happy to|why not|no problem|no worries)\b", re.IGNORECASE),
]

CONSENT_REPROMPT_NEGATIVE = "No problem, take your time. Let me know when you are ready. Shall we begin?"
CONSENT_REPROMPT_UNCLEAR = "Just to confirm before we start, are you comfortable beginning the interview now?"


def classify_consent(text: str) -> ConsentDecision:  # Negative phrasing wins over affirmative
    cleaned = " ".join(str(text or "").split())
    if not cleaned:
        return "unclear"
    if any(pattern.search(NEUTRAL_PHRASES.sub(" ", cleaned)) for pattern in NEGATIVE_PATTERNS):
        return "negative"
    if any(pattern.search(cleaned) for pattern in AFFIRMATIVE_PATTERNS):
        return "affirmative"
    return "unclear"


def consent_reprompt(decision: ConsentDecision) -> str:
    return CONSENT_REPROMPT_NEGATIVE if decision == "negative" else CONSENT_REPROMPT_UNCLEAR


def kickoff_text(candidate_name: str, bot_name: str, role_title: str, minutes: int) -> str:
    return (
        f"Hi {candidate_name}, I'm {bot_name}. Thanks for joining this {role_title} interview. "
        f"Over roughly {minutes} minutes we will talk through your background, go deeper into a few technical topics "
        "and close with a short wrap-up. Are you ready to begin?"
    )


__all__ = [
    "CONSENT_REPROMPT_NEGATIVE",
    "CONSENT_REPROMPT_UNCLEAR",
    "ConsentDecision",
    "classify_consent",
    "consent_reprompt",
    "kickoff_text",
]
