from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import day_bounds
from ..common.validators import require_non_empty, require_number
from ..core.constants import (
    DEFAULT_ANALYTICS_DAYS,
    DEFAULT_LIVE_WINDOW_SECONDS,
    FOCUS_SCORE_MAX,
    FOCUS_SCORE_MIN,
    RECENT_ACTIVITY_LIMIT,
)
from ..core.enums import CognitiveState
from ..core.exceptions import ValidationError
from .model import PranaActivitySample, PranaSummary
from .repository import PranaRepository

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("session_id", "cognitive_state", "focus_score")
_COUNTERS = ("active_seconds", "idle_seconds", "away_seconds")
_MAX_ANALYTICS_DAYS = 90


class PranaService:
    """Use cases for browser activity telemetry: ingest, live status, daily summaries."""

    def __init__(self, activity: PranaRepository, *, live_window_seconds: int = DEFAULT_LIVE_WINDOW_SECONDS):
        if live_window_seconds <= 0:
            raise ValidationError("Live window must be positive")
        self._activity = activity
        self._live_window = timedelta(seconds=live_window_seconds)

    def ingest(self, user_id: int, payload: dict, *, now: datetime | None = None) -> PranaActivitySample:
        payload = payload or {}
        missing = [f for f in _REQUIRED_FIELDS if payload.get(f) is None or payload.get(f) == ""]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        session_id = require_non_empty(payload["session_id"], "session_id")
        try:
            state = CognitiveState(str(payload["cognitive_state"]).strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown cognitive_state: {payload['cognitive_state']!r}")

        focus_score = require_number(
            payload["focus_score"],
            "focus_score",
            minimum=FOCUS_SCORE_MIN,
            maximum=FOCUS_SCORE_MAX,
        )

        counters = {}
        for name in _COUNTERS:
            value = payload.get(name)
            counters[name] = 0.0 if value is None else require_number(value, name, minimum=0)

        raw_signals = payload.get("raw_signals") or {}
        if not isinstance(raw_signals, dict):
            raise ValidationError("raw_signals must be an object")

        sample = PranaActivitySample(
            activity_id=None,
            user_id=int(user_id),
            session_id=session_id,
            timestamp=now or datetime.now(),
            cognitive_state=state,
            focus_score=focus_score,
            raw_signals=raw_signals,
            **counters,
        )
        activity_id = self._activity.add(sample)
        logger.debug("PRANA sample %s stored for user %s (%s)", activity_id, user_id, state.value)

        return replace(sample, activity_id=activity_id)

    def live_status(self, user_id: int, *, now: datetime | None = None) -> Optional[PranaActivitySample]:
        now = now or datetime.now()
        latest = self._activity.latest_for_user(int(user_id))
        if latest is None or latest.timestamp < now - self._live_window:
            return None
        return latest

    def live_status_all(self, *, now: datetime | None = None) -> list[PranaActivitySample]:
        now = now or datetime.now()
        return list(self._activity.latest_per_user(since=now - self._live_window))

    def latest_signals(self, user_id: int) -> Optional[PranaActivitySample]:
        return self._activity.latest_for_user(int(user_id))

    def recent_samples(
        self,
        user_id: int,
        *,
        start: date,
        end: date,
        limit: int = 100,
    ) -> list[PranaActivitySample]:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        if limit <= 0:
            raise ValidationError("limit must be positive")
        range_start, _ = day_bounds(start)
        _, range_end = day_bounds(end)
        return list(self._activity.list_for_user(int(user_id), start=range_start, end=range_end, limit=limit))

    def summarize(self, user_id: int, day: date) -> PranaSummary:
        start, end = day_bounds(day)
        # newest first
        samples = list(self._activity.list_for_user(int(user_id), start=start, end=end))
        if not samples:
            return PranaSummary(user_id=int(user_id), day=day)

        counts = Counter(s.cognitive_state.value for s in samples)
        return PranaSummary(
            user_id=int(user_id),
            day=day,
            total_packets=len(samples),
            avg_focus_score=round(sum(s.focus_score for s in samples) / len(samples), 1),
            total_active_seconds=round(sum(s.active_seconds for s in samples), 2),
            total_idle_seconds=round(sum(s.idle_seconds for s in samples), 2),
            total_away_seconds=round(sum(s.away_seconds for s in samples), 2),
            state_counts=dict(counts),
            recent=tuple(samples[:RECENT_ACTIVITY_LIMIT]),
        )

    def analytics(
        self,
        user_id: int,
        *,
        days: int = DEFAULT_ANALYTICS_DAYS,
        now: datetime | None = None,
    ) -> list[PranaSummary]:
        if not 1 <= int(days) <= _MAX_ANALYTICS_DAYS:
            raise ValidationError(f"days must be between 1 and {_MAX_ANALYTICS_DAYS}")
        today = (now or datetime.now()).date()
        first = today - timedelta(days=int(days) - 1)
        return [self.summarize(user_id, first + timedelta(days=i)) for i in range(int(days))]
