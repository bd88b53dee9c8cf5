from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from conftest import InMemoryPrana
from src.workpulse.workpulse.core.enums import CognitiveState, ProductivityTier
from src.workpulse.workpulse.core.exceptions import ValidationError
from src.workpulse.workpulse.prana.service import PranaService

NOW = datetime(2026, 3, 2, 10, 0, 0)


def _packet(**overrides):
    payload = {"session_id": "tab-1", "cognitive_state": "on_task", "focus_score": 85}
    payload.update(overrides)
    return payload


@pytest.fixture
def repo():
    return InMemoryPrana()


@pytest.fixture
def service(repo):
    return PranaService(repo)


def test_ingest_normalizes_and_stores(service, repo):
    sample = service.ingest(1, _packet(active_seconds=25, raw_signals={"keys": 14}), now=NOW)

    assert sample.activity_id == 1
    assert sample.cognitive_state == CognitiveState.ON_TASK
    assert sample.productivity_tier == ProductivityTier.HIGH
    assert sample.is_active is True
    assert sample.idle_seconds == 0.0
    assert repo.samples[0].raw_signals == {"keys": 14}


def test_productivity_tiers():
    assert ProductivityTier.for_score(85) == ProductivityTier.HIGH
    assert ProductivityTier.for_score(60) == ProductivityTier.MEDIUM
    assert ProductivityTier.for_score(55) == ProductivityTier.LOW
    assert ProductivityTier.for_score(12) == ProductivityTier.VERY_LOW


def test_ingest_reports_missing_fields(service):
    with pytest.raises(ValidationError, match="session_id, focus_score"):
        service.ingest(1, {"cognitive_state": "IDLE", "session_id": ""}, now=NOW)


def test_ingest_zero_focus_score_is_not_missing(service):
    sample = service.ingest(1, _packet(focus_score=0, cognitive_state="AWAY"), now=NOW)

    assert sample.focus_score == 0.0
    assert sample.is_active is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"cognitive_state": "SLEEPING"},
        {"focus_score": 101},
        {"focus_score": "high"},
        {"idle_seconds": -1},
        {"raw_signals": ["not", "a", "dict"]},
    ],
)
def test_ingest_rejects_bad_packets(service, repo, overrides):
    with pytest.raises(ValidationError):
        service.ingest(1, _packet(**overrides), now=NOW)
    assert repo.samples == []


def test_live_status_window(service):
    service.ingest(1, _packet(), now=NOW)

    assert service.live_status(1, now=NOW + timedelta(seconds=30)) is not None
    assert service.live_status(1, now=NOW + timedelta(seconds=31)) is None
    assert service.live_status(2, now=NOW) is None


def test_live_status_all_keeps_latest_per_user(service):
    service.ingest(1, _packet(focus_score=40), now=NOW - timedelta(seconds=10))
    service.ingest(1, _packet(focus_score=90), now=NOW - timedelta(seconds=5))
    service.ingest(2, _packet(), now=NOW - timedelta(minutes=5))

    live = service.live_status_all(now=NOW)

    assert [(s.user_id, s.focus_score) for s in live] == [(1, 90.0)]


def test_summarize_day(service):
    for minute, (state, score) in enumerate([("ON_TASK", 80), ("IDLE", 30), ("ON_TASK", 71)]):
        service.ingest(
            1,
            _packet(cognitive_state=state, focus_score=score, active_seconds=10, idle_seconds=5),
            now=NOW + timedelta(minutes=minute),
        )
    service.ingest(1, _packet(), now=NOW - timedelta(days=1))

    summary = service.summarize(1, NOW.date())

    assert summary.total_packets == 3
    assert summary.avg_focus_score == 60.3
    assert summary.total_active_seconds == 30.0
    assert summary.total_idle_seconds == 15.0
    assert summary.state_counts == {"ON_TASK": 2, "IDLE": 1}
    assert summary.recent[0].focus_score == 71.0


def test_summarize_empty_day(service):
    summary = service.summarize(1, date(2026, 1, 1))

    assert summary.total_packets == 0
    assert summary.as_dict()["recent"] == []


def test_analytics_one_summary_per_day(service):
    service.ingest(1, _packet(), now=NOW)

    days = service.analytics(1, days=3, now=NOW)

    assert [d.day for d in days] == [date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 2)]
    assert days[-1].total_packets == 1


def test_analytics_rejects_out_of_range(service):
    with pytest.raises(ValidationError):
        service.analytics(1, days=0, now=NOW)
    with pytest.raises(ValidationError):
        service.analytics(1, days=91, now=NOW)
