"""Deterministic fallback question bank."""
from .fallback_bank import (
    BANK,
    GENERIC_QUESTION,
    STANDARD_PROBES,
    anchor_question,
    build_fallback_question,
    role_family_alias,
    section_intent,
)

__all__ = [
    "BANK",
    "GENERIC_QUESTION",
    "STANDARD_PROBES",
    "anchor_question",
    "build_fallback_question",
    "role_family_alias",
    "section_intent",
]
