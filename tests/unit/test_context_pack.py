from datetime import datetime, timezone

from context_pack import InterviewRecord, build_context_pack, derive_cv_signals, extract_responsibilities, norm_tag


def test_pack_from_full_record(interview_record):
    stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
    pack = build_context_pack(interview_record, now=stamp)
    assert pack.role_title == "Senior Backend Engineer"
    assert pack.role_family == "backend"
    assert pack.must_haves == ["node.js", "system_design"]
    assert pack.focus_areas == ["ownership", "distributed_systems"]
    assert pack.responsibilities == ["Owns payments API", "On-call rotation lead"]
    assert pack.cv_signals == ["leadership_scope", "platform_engineering"]
    assert pack.candidate_name == "Dana"
    assert pack.generated_at == stamp


def test_pack_defaults_for_sparse_record():
    pack = build_context_pack({"id": "x", "positionSnapshot": None, "candidateName": None})
    assert pack.role_title == "Software Engineer"
    assert pack.role_family == "full_stack"
    assert pack.level == "mid"
    assert pack.interview_round_type == "standard"
    assert pack.must_haves == []
    assert pack.cv_signals == []
    assert pack.candidate_name == "Candidate"
    assert pack.interviewer_name == "Interviewer"


def test_job_title_used_when_snapshot_blank():
    pack = build_context_pack({"id": "x", "jobTitle": "ML Engineer"})
    assert pack.role_title == "ML Engineer"


def test_tags_are_normalized_and_deduplicated():
    pack = build_context_pack({"id": "x", "positionSnapshot": {"must_haves": ["SQL", " sql ", "", "Data  Modeling"]}})
    assert pack.must_haves == ["sql", "data_modeling"]
    assert norm_tag("x" * 80) == "x" * 60


def test_responsibilities_capped_at_eight():
    notes = "\n".join(f"line {n}" for n in range(12))
    assert extract_responsibilities(notes) == [f"line {n}" for n in range(8)]


def test_cv_signals_from_file_name():
    record = InterviewRecord.model_validate({"id": "x", "cv": {"originalName": "AI_Researcher.pdf"}})
    assert derive_cv_signals(record) == ["ml_delivery"]


def test_resolved_duration_precedence():
    record = InterviewRecord.model_validate({"id": "x", "durationMinutes": 30, "positionSnapshot": {"duration_minutes": 20}})
    assert record.resolved_duration(45) == 20
    assert InterviewRecord.model_validate({"id": "x", "durationMinutes": 30}).resolved_duration(45) == 30
    assert InterviewRecord.model_validate({"id": "x"}).resolved_duration(45) == 45
