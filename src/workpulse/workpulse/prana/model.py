from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import CognitiveState, ProductivityTier


@dataclass(frozen=True)
class PranaActivitySample:
    """One telemetry packet from a browser session. Samples are append-only."""

    activity_id: Optional[int]
    user_id: int
    session_id: str
    timestamp: datetime
    cognitive_state: CognitiveState
    focus_score: float
    active_seconds: float = 0.0
    idle_seconds: float = 0.0
    away_seconds: float = 0.0
    raw_signals: dict = field(default_factory=dict)

    @property
    def activity_date(self) -> date:
        return self.timestamp.date()

    @property
    def is_active(self) -> bool:
        return self.cognitive_state.is_active

    @property
    def productivity_tier(self) -> ProductivityTier:
        return ProductivityTier.for_score(self.focus_score)

    def as_dict(self) -> dict:
        return {
            "activity_id": self.activity_id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "cognitive_state": self.cognitive_state.value,
            "focus_score": self.focus_score,
            "active_seconds": self.active_seconds,
            "idle_seconds": self.idle_seconds,
            "away_seconds": self.away_seconds,
            "raw_signals": dict(self.raw_signals),
            "is_active": self.is_active,
            "productivity_tier": self.productivity_tier.value,
        }


@dataclass(frozen=True)
class PranaSummary:
    user_id: int
    day: date
    total_packets: int = 0
    avg_focus_score: float = 0.0
    total_active_seconds: float = 0.0
    total_idle_seconds: float = 0.0
    total_away_seconds: float = 0.0
    state_counts: dict = field(default_factory=dict)
    recent: tuple[PranaActivitySample, ...] = ()

    def as_dict(self, *, with_recent: bool = True) -> dict:
        d = {
            "user_id": self.user_id,
            "date": self.day.isoformat(),
            "total_packets": self.total_packets,
            "avg_focus_score": self.avg_focus_score,
            "total_active_seconds": self.total_active_seconds,
            "total_idle_seconds": self.total_idle_seconds,
            "total_away_seconds": self.total_away_seconds,
            "state_counts": dict(self.state_counts),
        }
        if with_recent:
            d["recent"] = [
                {
                    "cognitive_state": s.cognitive_state.value,
                    "focus_score": s.focus_score,
                    "timestamp": s.timestamp.isoformat(),
                }
                for s in self.recent
            ]
        return d
