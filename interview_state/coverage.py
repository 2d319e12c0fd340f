"""Pure coverage views over the session state."""
from __future__ import annotations

from .models import (
    CompetencySummary,
    CoverageStatus,
    CoverageSummary,
    MustHaveSummary,
    SessionState,
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def coverage_status(state: SessionState) -> CoverageStatus:
    """Count covered must-haves; an empty must-have list counts as fully covered."""

    entries = list(state.must_have_coverage.items())
    covered = sum(1 for _, status in entries if status.covered)
    total = len(entries)
    pct = 1.0 if total == 0 else covered / total
    uncovered = [name for name, status in entries if not status.covered]
    return CoverageStatus(covered=covered, total=total, pct=pct, uncovered=uncovered)


def coverage_summary(state: SessionState) -> CoverageSummary:
    must_have = [
        MustHaveSummary(
            must_have=name,
            covered=status.covered,
            confidence=_clamp(status.confidence, 0.0, 1.0),
        )
        for name, status in state.must_have_coverage.items()
    ]
    competency = [
        CompetencySummary(
            competency=name,
            score=_clamp(status.score, 0.0, 5.0),
            confidence=_clamp(status.confidence, 0.0, 1.0),
        )
        for name, status in state.competency_scores.items()
    ]
    return CoverageSummary(
        must_have=must_have,
        competency=competency,
        followup_queue_count=len(state.followup_queue),
        defer_queue_count=len(state.defer_queue),
    )


__all__ = ["coverage_status", "coverage_summary"]
