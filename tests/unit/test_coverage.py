from interview_state import coverage_status, coverage_summary, create_initial_state


def test_empty_must_haves_count_as_covered():
    state = create_initial_state(30, [], [])
    status = coverage_status(state)
    assert status.total == 0
    assert status.pct == 1.0
    assert status.uncovered == []


def test_summary_lists_must_haves_and_queues():
    state = create_initial_state(30, ["python", "sql"], [])
    state.must_have_coverage["sql"].covered = True
    state.must_have_coverage["sql"].confidence = 0.8

    status = coverage_status(state)
    assert (status.covered, status.total, status.pct) == (1, 2, 0.5)
    assert status.uncovered == ["python"]

    summary = coverage_summary(state)
    assert [item.must_have for item in summary.must_have] == ["python", "sql"]
    assert summary.must_have[1].covered is True
    assert len(summary.competency) == 5
    assert summary.followup_queue_count == 0
    assert summary.defer_queue_count == 0
