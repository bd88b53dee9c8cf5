"""Merge app punches and biometric punches into one canonical day.

Cases are evaluated in a fixed precedence order; a source is *usable* when it
has both an in and an out. When both sources are usable the tie-break source
(biometric by default) supplies the final times, and a difference beyond the
tolerance on either end flags the day for review.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.datetime_utils import hours_between, minutes_between
from ..core.constants import DEFAULT_MATCH_TOLERANCE_MINUTES
from ..core.enums import MergeCase, PunchSource
from ..core.exceptions import ValidationError
from .model import FinalTimes, MergeOutcome, PunchPair, TimeDifferences

REMARK_MATCHED = "MATCHED"
REMARK_BIO_MISSING = "BIO_MISSING"
REMARK_WF_MISSING = "WF_MISSING"
REMARK_NO_PUNCH_OUT = "NO_PUNCH_OUT"
REMARK_INCOMPLETE = "INCOMPLETE_DATA"


@dataclass(frozen=True)
class ReconciliationPolicy:
    tolerance_minutes: float = DEFAULT_MATCH_TOLERANCE_MINUTES
    tie_break: PunchSource = PunchSource.BIOMETRIC

    def __post_init__(self):
        if self.tolerance_minutes < 0:
            raise ValidationError("Match tolerance cannot be negative")

    @property
    def mismatch_remark(self) -> str:
        return f"MISMATCH_{self.tolerance_minutes:g}+"


def _final_from(pair: PunchPair) -> FinalTimes:
    return FinalTimes(
        final_in=pair.punch_in,
        final_out=pair.punch_out,
        worked_hours=hours_between(pair.punch_in, pair.punch_out),
    )


class ReconciliationEngine:
    """Pure, idempotent: the same punches always give the same outcome."""

    def __init__(self, policy: Optional[ReconciliationPolicy] = None):
        self._policy = policy or ReconciliationPolicy()

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    def time_differences(self, app: PunchPair, bio: PunchPair) -> TimeDifferences:
        tolerance = self._policy.tolerance_minutes
        in_diff = None
        out_diff = None
        if app.punch_in and bio.punch_in:
            in_diff = round(minutes_between(app.punch_in, bio.punch_in), 2)
        if app.punch_out and bio.punch_out:
            out_diff = round(minutes_between(app.punch_out, bio.punch_out), 2)

        return TimeDifferences(
            in_diff_minutes=in_diff,
            out_diff_minutes=out_diff,
            in_within_tolerance=in_diff is not None and in_diff <= tolerance,
            out_within_tolerance=out_diff is not None and out_diff <= tolerance,
        )

    def reconcile(self, app: Optional[PunchPair], bio: Optional[PunchPair]) -> MergeOutcome:
        app = app or PunchPair()
        bio = bio or PunchPair()

        if app.is_complete and bio.is_complete:
            diffs = self.time_differences(app, bio)
            preferred = bio if self._policy.tie_break == PunchSource.BIOMETRIC else app
            if diffs.in_within_tolerance and diffs.out_within_tolerance:
                return MergeOutcome(
                    final_times=_final_from(preferred),
                    merge_case=MergeCase.BOTH_MATCHED,
                    remarks=REMARK_MATCHED,
                    time_differences=diffs,
                )
            return MergeOutcome(
                final_times=_final_from(preferred),
                merge_case=MergeCase.BOTH_MISMATCH,
                remarks=self._policy.mismatch_remark,
                needs_review=True,
                time_differences=diffs,
            )

        if app.is_complete:
            return MergeOutcome(final_times=_final_from(app), merge_case=MergeCase.WF_ONLY, remarks=REMARK_BIO_MISSING)

        if bio.is_complete:
            return MergeOutcome(final_times=_final_from(bio), merge_case=MergeCase.BIO_ONLY, remarks=REMARK_WF_MISSING)

        ins = [p for p in (app.punch_in, bio.punch_in) if p is not None]
        outs = [p for p in (app.punch_out, bio.punch_out) if p is not None]
        known_in = min(ins) if ins else None
        if known_in is not None and not outs:
            return MergeOutcome(
                final_times=FinalTimes(final_in=known_in),
                merge_case=MergeCase.NO_OUT,
                remarks=REMARK_NO_PUNCH_OUT,
                needs_review=True,
            )

        return MergeOutcome(
            final_times=FinalTimes(final_in=known_in, final_out=max(outs) if outs else None),
            merge_case=MergeCase.INCOMPLETE,
            remarks=REMARK_INCOMPLETE,
            needs_review=True,
        )
