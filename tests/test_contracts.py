from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core import (
    EvidenceItem,
    JobRecord,
    JobStatus,
    RecencyWindow,
    TriggerPayload,
    WindowMode,
    can_transition,
    parse_trigger_topic,
)


def test_parse_trigger_topic_detects_strict_marker() -> None:
    topic, mode = parse_trigger_topic("MODE_72H:Berlin")
    assert topic == "Berlin"
    assert mode == WindowMode.STRICT_72H


def test_parse_trigger_topic_defaults_to_weekly_and_strips_region_scan() -> None:
    topic, mode = parse_trigger_topic("Region Scan: Baltic Sea ")
    assert topic == "Baltic Sea"
    assert mode == WindowMode.WEEKLY


def test_parse_trigger_topic_empty_becomes_unknown() -> None:
    topic, mode = parse_trigger_topic("MODE_72H:   ")
    assert topic == "Unknown"
    assert mode == WindowMode.STRICT_72H


def test_recency_window_parameters() -> None:
    strict = RecencyWindow.from_mode("72h")
    weekly = RecencyWindow.from_mode(WindowMode.WEEKLY)

    assert strict.strict is True
    assert strict.hours == 72
    assert strict.search_param == "qdr:h72"
    assert weekly.strict is False
    assert weekly.hours == 168
    assert weekly.search_param == "qdr:w"

    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert strict.cutoff(now) == now - timedelta(hours=72)


def test_status_machine_is_forward_only() -> None:
    assert can_transition(JobStatus.QUEUED, JobStatus.FETCHING)
    assert can_transition(JobStatus.FETCHING, JobStatus.RESOLVING)
    assert can_transition(JobStatus.RESOLVING, JobStatus.ANALYZING)
    assert can_transition(JobStatus.ANALYZING, JobStatus.COMPLETED)

    assert not can_transition(JobStatus.QUEUED, JobStatus.ANALYZING)
    assert not can_transition(JobStatus.ANALYZING, JobStatus.FETCHING)
    assert not can_transition(JobStatus.QUEUED, JobStatus.COMPLETED)


def test_failed_reachable_from_any_non_terminal_state_only() -> None:
    for status in (JobStatus.QUEUED, JobStatus.FETCHING, JobStatus.RESOLVING, JobStatus.ANALYZING):
        assert can_transition(status, JobStatus.FAILED)
    assert not can_transition(JobStatus.COMPLETED, JobStatus.FAILED)
    assert not can_transition(JobStatus.FAILED, JobStatus.FAILED)
    assert JobStatus.COMPLETED.is_terminal and JobStatus.FAILED.is_terminal


def test_evidence_item_requires_title_and_url() -> None:
    with pytest.raises(ValidationError):
        EvidenceItem(source_label="MAIN_DE", title="  ", url="https://example.com/a")
    with pytest.raises(ValidationError):
        EvidenceItem(source_label="MAIN_DE", title="Headline", url="")


def test_evidence_item_age_and_prompt_dict() -> None:
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    item = EvidenceItem(
        source_label="DEFENSE",
        publisher="Reuters",
        title="Navy vessel spotted",
        url="https://reuters.com/a",
        published_at=datetime(2026, 3, 1, 10, 0),
        category="security",
    )
    assert item.age_hours(now) == pytest.approx(2.0)

    payload = item.to_prompt_dict()
    assert payload["label"] == "DEFENSE"
    assert payload["category"] == "security"
    assert payload["published"].startswith("2026-03-01T10:00")
    assert EvidenceItem(source_label="x", title="t", url="https://e.com").to_prompt_dict()["published"] is None


def test_job_record_public_view() -> None:
    record = JobRecord(job_id="job_1", topic="Berlin", window_mode=WindowMode.STRICT_72H, message="Queued")
    assert record.window.strict is True
    assert record.to_public() == {"jobId": "job_1", "status": "QUEUED", "message": "Queued", "result": ""}


def test_trigger_payload_accepts_alias_and_rejects_blank_id() -> None:
    payload = TriggerPayload.model_validate({"jobId": "abc", "topic": "MODE_72H:Kiel"})
    assert payload.job_id == "abc"
    assert payload.parsed() == ("Kiel", WindowMode.STRICT_72H)

    with pytest.raises(ValidationError):
        TriggerPayload.model_validate({"jobId": " ", "topic": "Kiel"})
