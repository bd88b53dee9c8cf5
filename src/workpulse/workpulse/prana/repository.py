from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import PranaActivitySample


class PranaRepository(Protocol):
    """Append-only store of telemetry samples."""

    def add(self, sample: PranaActivitySample) -> int:
        raise NotImplementedError

    def list_for_user(
        self,
        user_id: int,
        *,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> Sequence[PranaActivitySample]:
        """Samples with ``start <= timestamp < end``, newest first."""

        raise NotImplementedError

    def latest_for_user(self, user_id: int) -> Optional[PranaActivitySample]:
        raise NotImplementedError

    def latest_per_user(self, *, since: datetime) -> Sequence[PranaActivitySample]:
        """Each user's most recent sample at or after ``since``."""

        raise NotImplementedError
