"""
Trip batch merger.

Several exports of the same account usually overlap (one file per page or per
year range). Batches are concatenated and deduplicated: a trip with a settlement
id is keyed by that id, a trip with a placeholder id by its start timestamp and
bike id. The first occurrence wins.

Placeholder ids encode the row position, so they are only stable while the row
order of a re-exported file is; the composite key is the reliable path for them.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import List

import pandas as pd

from .records import TripRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    """Deduplicated trips plus the counters the caller reports to the user."""
    trips: List[TripRecord]
    input_count: int
    duplicates_removed: int
    settlement_keyed: int
    composite_keyed: int


def dedup_key(trip: TripRecord) -> str:
    """Deduplication key of a trip: its settlement id, or start timestamp + bike id."""
    if trip.id_is_placeholder:
        return f"composite:{trip.start_date.isoformat()}|{trip.bike_id}"
    return f"settlement:{trip.id}"


def merge_trip_batches(batches: Iterable) -> MergeResult:
    """
    Concatenate trip batches and drop duplicates, keeping the first occurrence

    Args:
        batches: Sequence of trip sequences, one per parsed export

    Returns:
        MergeResult with the surviving trips in input order

    Raises:
        TypeError: If the input is not a sequence of TripRecord sequences
    """
    combined = _concatenate(batches)

    if not combined:
        return MergeResult(trips=[], input_count=0, duplicates_removed=0,
                           settlement_keyed=0, composite_keyed=0)

    keys = pd.Series([dedup_key(trip) for trip in combined])
    duplicated = keys.duplicated(keep='first')
    composite = int(sum(trip.id_is_placeholder for trip in combined))

    merged = [trip for trip, is_duplicate in zip(combined, duplicated) if not is_duplicate]
    removed = len(combined) - len(merged)

    if removed:
        logger.info(f"Removed {removed:,} duplicate trips ({len(merged):,} unique of {len(combined):,})")
    else:
        logger.info(f"Merged {len(merged):,} trips, no duplicates found")

    return MergeResult(
        trips=merged,
        input_count=len(combined),
        duplicates_removed=removed,
        settlement_keyed=len(combined) - composite,
        composite_keyed=composite,
    )


def _concatenate(batches: Iterable) -> List[TripRecord]:
    if isinstance(batches, (str, bytes)) or not isinstance(batches, Iterable):
        raise TypeError(f"Expected a sequence of trip batches, got {type(batches).__name__}")

    combined = []
    for position, batch in enumerate(batches):
        if isinstance(batch, (str, bytes)) or not isinstance(batch, Iterable):
            raise TypeError(f"Batch {position} is not a sequence of trips: {type(batch).__name__}")
        for trip in batch:
            if not isinstance(trip, TripRecord):
                raise TypeError(f"Batch {position} contains a {type(trip).__name__}, expected TripRecord")
            combined.append(trip)
    return combined
