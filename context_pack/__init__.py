from __future__ import annotations  # Re-export context pack public API

from .context_pack import (
    ContextPack,
    CvAttachment,
    InterviewRecord,
    PositionSnapshot,
    build_context_pack,
    derive_cv_signals,
    extract_responsibilities,
    norm_tag,
)

__all__ = [
    "ContextPack",
    "CvAttachment",
    "InterviewRecord",
    "PositionSnapshot",
    "build_context_pack",
    "derive_cv_signals",
    "extract_responsibilities",
    "norm_tag",
]
