"""Beat interval derivation and clip-to-interval assignment.

Assignment is greedy and interval-major: intervals are filled in the order
the beats define them, and each one takes the unused clip that covers it
with the least left over. It is not an optimal packing; changing the
interval order can change total waste, and callers rely on this exact
policy.
"""

import logging
import math
import random
from collections.abc import Sequence

from beatcut.config import get_settings
from beatcut.exceptions import AssignmentError, InvalidBeatTrackError
from beatcut.models import Assignment, MediaAsset

logger = logging.getLogger(__name__)


def build_intervals(beats: Sequence[float], tail_seconds: float | None = None) -> list[float]:
    """Turn beat timestamps into the list of durations to fill.

    One interval per beat: the gaps between consecutive beats, followed by
    a fixed-length tail after the last beat.

    Args:
        beats: Strictly increasing timestamps in seconds, at least two
        tail_seconds: Tail length; defaults to settings.tail_interval_seconds

    Raises:
        InvalidBeatTrackError: If the track is too short, non-finite or not increasing
    """
    if tail_seconds is None:
        tail_seconds = get_settings().tail_interval_seconds

    if len(beats) < 2:
        raise InvalidBeatTrackError()
    for i, beat in enumerate(beats):
        if not math.isfinite(beat):
            raise InvalidBeatTrackError(f"Beat timestamps must be finite numbers (beat {i}: {beat})")

    intervals: list[float] = []
    for i in range(len(beats) - 1):
        gap = float(beats[i + 1]) - float(beats[i])
        if gap <= 0:
            raise InvalidBeatTrackError(
                f"Beat timestamps must be strictly increasing (beat {i + 1}: "
                f"{beats[i + 1]} <= {beats[i]})"
            )
        intervals.append(gap)
    intervals.append(float(tail_seconds))
    return intervals


def assign_clips(
    intervals: Sequence[float],
    pool: Sequence[MediaAsset],
    randomize: bool = False,
    rng: random.Random | None = None,
) -> list[Assignment]:
    """Bind every interval to a distinct clip from the pool.

    For each interval, in order, the unused clip with the smallest
    non-negative surplus wins; the first clip in scan order wins a tie. If
    no unused clip is long enough, the first unused clip is taken anyway
    and will be extended at render time.

    With ``randomize`` the scan order is one shuffle of the pool for the
    whole call, which only changes who wins ties and fallbacks. Without it
    the result depends only on the intervals and the pool order.

    Invalid assets are never considered.

    Raises:
        AssignmentError: When an interval is reached and no unused clip is left
    """
    candidates = [asset for asset in pool if asset.is_valid]
    if randomize:
        candidates = list(candidates)
        (rng or random.Random()).shuffle(candidates)

    used: set[int] = set()
    assignments: list[Assignment] = []

    for interval_index, needed in enumerate(intervals):
        best: int | None = None
        min_surplus = float("inf")

        for idx, asset in enumerate(candidates):
            if idx in used:
                continue
            if asset.duration_seconds >= needed:
                surplus = asset.duration_seconds - needed
                if surplus < min_surplus:
                    min_surplus = surplus
                    best = idx

        if best is None:
            best = next((idx for idx in range(len(candidates)) if idx not in used), None)
            if best is not None:
                logger.info(
                    f"[ASSIGN] Interval {interval_index} ({needed:.3f}s) has no clip long "
                    f"enough; falling back to {candidates[best].id} "
                    f"({candidates[best].duration_seconds:.3f}s)"
                )

        if best is None:
            raise AssignmentError(interval_index=interval_index)

        asset = candidates[best]
        used.add(best)
        assignments.append(
            Assignment(
                interval_index=interval_index,
                asset_id=asset.id,
                interval_duration=needed,
                asset_duration=asset.duration_seconds,
            )
        )

    return assignments


def total_surplus(assignments: Sequence[Assignment]) -> float:
    """Sum of unused clip time across assignments that did not need extension."""
    return sum(a.surplus for a in assignments if not a.needs_extension)
