from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import CognitiveState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_float, to_json
from .model import PranaActivitySample
from .repository import PranaRepository

_COLUMNS = """
    pa.activity_id, pa.user_id, pa.session_id, pa.recorded_at, pa.cognitive_state,
    pa.focus_score, pa.active_seconds, pa.idle_seconds, pa.away_seconds, pa.raw_signals
"""


def _to_sample(r: dict) -> PranaActivitySample:
    return PranaActivitySample(
        activity_id=int(r["activity_id"]),
        user_id=int(r["user_id"]),
        session_id=r["session_id"],
        timestamp=r["recorded_at"],
        cognitive_state=CognitiveState(r["cognitive_state"]),
        focus_score=to_float(r["focus_score"]),
        active_seconds=to_float(r.get("active_seconds")) or 0.0,
        idle_seconds=to_float(r.get("idle_seconds")) or 0.0,
        away_seconds=to_float(r.get("away_seconds")) or 0.0,
        raw_signals=from_json(r.get("raw_signals")),
    )


class MySQLPranaRepository(PranaRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, sample: PranaActivitySample) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO prana_activity(
                    user_id, session_id, recorded_at, activity_date, cognitive_state,
                    focus_score, active_seconds, idle_seconds, away_seconds, raw_signals
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(sample.user_id),
                    sample.session_id,
                    sample.timestamp,
                    sample.activity_date,
                    sample.cognitive_state.value,
                    sample.focus_score,
                    sample.active_seconds,
                    sample.idle_seconds,
                    sample.away_seconds,
                    to_json(sample.raw_signals),
                ),
            )
            return int(cur.lastrowid)

    def list_for_user(
        self,
        user_id: int,
        *,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> Sequence[PranaActivitySample]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM prana_activity pa
            WHERE pa.user_id=%s AND pa.recorded_at >= %s AND pa.recorded_at < %s
            ORDER BY pa.recorded_at DESC, pa.activity_id DESC
        """
        params: list[object] = [int(user_id), start, end]
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_sample(r) for r in fetchall(cur)]

    def latest_for_user(self, user_id: int) -> Optional[PranaActivitySample]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM prana_activity pa
                WHERE pa.user_id=%s
                ORDER BY pa.recorded_at DESC, pa.activity_id DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_sample(r) if r else None

    def latest_per_user(self, *, since: datetime) -> Sequence[PranaActivitySample]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM prana_activity pa
                JOIN (
                    SELECT user_id, MAX(activity_id) AS activity_id
                    FROM prana_activity
                    WHERE recorded_at >= %s
                    GROUP BY user_id
                ) latest ON latest.activity_id = pa.activity_id
                ORDER BY pa.user_id ASC
                """,
                (since,),
            )
            return [_to_sample(r) for r in fetchall(cur)]
