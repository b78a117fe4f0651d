"""
Derived views over trips and snapshots: date bounds, bike profiles,
fleet coverage blocks and the sortable trip table.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from components.ingestion.records import TripRecord, bike_id_digits
from components.pricing.classifier import BikeType, ReferenceFleet
from components.pricing.tariffs import TariffRules, calculate_trip_cost

from .calendar import WEEKDAY_NAMES, round_half_up
from .models import BikeUsage, StatsSnapshot

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
FLEET_CEILING_MARGIN = 100

TRIP_TABLE_SORT_KEYS = ('start_date', 'end_date', 'duration', 'cost', 'bike_id', 'type')


@dataclass(frozen=True)
class DateBounds:
    start: Optional[date]
    end: Optional[date]
    years: List[int]   # descending


@dataclass(frozen=True)
class BikeProfile:
    bike_id: str
    total_uses: int
    total_minutes: int
    day_span: int
    avg_duration: int
    diff_vs_global: int          # positive = slower than the overall average
    rank: Optional[int]          # 1-based position among the top bikes
    time_of_day: Dict[str, int]
    favourite_hour: int
    favourite_weekday: str
    generation: str


@dataclass(frozen=True)
class FleetBlock:
    start: int
    end: int
    found: int
    percent: float


@dataclass(frozen=True)
class TripTableRow:
    trip: TripRecord
    bike_type: BikeType
    cost: float


def date_bounds(trips: Iterable[TripRecord]) -> DateBounds:
    """
    Default date filter for a trip collection

    Args:
        trips: Merged trips

    Returns:
        DateBounds with the first and last start day and the distinct years,
        newest first; all empty when there are no trips
    """
    days = [trip.start_date.date() for trip in trips]
    if not days:
        return DateBounds(start=None, end=None, years=[])
    return DateBounds(
        start=min(days),
        end=max(days),
        years=sorted({day.year for day in days}, reverse=True),
    )


def _time_of_day(hour: int) -> str:
    if 6 <= hour < 13:
        return 'morning'
    if 13 <= hour < 20:
        return 'afternoon'
    if hour >= 20 or hour < 2:
        return 'night'
    return 'late'


def _generation_label(bike: BikeUsage, fleet: ReferenceFleet, new_fleet_min_id: int) -> str:
    digits = bike_id_digits(bike.id)
    number = bike.number

    if digits in fleet.mechanical_ids:
        return 'Mechanical (confirmed)'
    if digits in fleet.electric_ids:
        return 'Electric (new fleet)' if number >= new_fleet_min_id else 'Electric (confirmed)'

    if 0 < number < 3000:
        return 'Mechanical (probable)'
    if 3000 <= number < new_fleet_min_id:
        return 'Electric (classic?)'
    if number >= new_fleet_min_id:
        return 'Electric (new?)'
    return 'Unknown'


def build_bike_profile(bike: BikeUsage, snapshot: StatsSnapshot,
                       fleet: Optional[ReferenceFleet] = None,
                       new_fleet_min_id: int = 8000) -> BikeProfile:
    """
    Detail card for one bike

    Args:
        bike: Usage history from the snapshot
        snapshot: Snapshot the bike belongs to (global average and ranking)
        fleet: Reference ids used for the generation label
        new_fleet_min_id: First id of the new electric fleet

    Returns:
        BikeProfile
    """
    fleet = fleet or ReferenceFleet()

    span_days = (bike.last_used - bike.first_used).total_seconds() / SECONDS_PER_DAY
    avg_duration = round_half_up(bike.minutes / bike.count) if bike.count else 0

    rank = next((i + 1 for i, top in enumerate(snapshot.top_bikes) if top.id == bike.id), None)

    time_of_day = {'morning': 0, 'afternoon': 0, 'night': 0, 'late': 0}
    hours = Counter()
    weekdays = Counter()
    for trip in bike.trips:
        hour = trip.start_date.hour
        time_of_day[_time_of_day(hour)] += 1
        hours[hour] += 1
        weekdays[trip.start_date.weekday()] += 1

    favourite_hour = max(range(24), key=lambda h: hours[h])
    favourite_weekday = WEEKDAY_NAMES[max(range(7), key=lambda d: weekdays[d])]

    return BikeProfile(
        bike_id=bike.id,
        total_uses=bike.count,
        total_minutes=bike.minutes,
        day_span=max(1, round_half_up(span_days)),
        avg_duration=avg_duration,
        diff_vs_global=avg_duration - snapshot.average_time,
        rank=rank,
        time_of_day=time_of_day,
        favourite_hour=favourite_hour,
        favourite_weekday=favourite_weekday,
        generation=_generation_label(bike, fleet, new_fleet_min_id),
    )


def fleet_coverage(snapshot: StatsSnapshot, block_size: int = 1000) -> List[FleetBlock]:
    """
    Share of each id block that the rider has used

    Blocks run from id 0 up to ceil((max_id + 100) / block_size) * block_size.
    """
    ceiling = math.ceil((snapshot.max_bike_id + FLEET_CEILING_MARGIN) / block_size) * block_size
    ridden = {bike.number for bike in snapshot.all_bikes}

    blocks = []
    for start in range(0, ceiling, block_size):
        end = start + block_size - 1
        found = sum(1 for number in ridden if start <= number <= end)
        blocks.append(FleetBlock(
            start=start,
            end=end,
            found=found,
            percent=round(found / block_size * 100, 1),
        ))
    return blocks


def build_trip_table(trips: Iterable[TripRecord], tariff: TariffRules,
                     fleet: Optional[ReferenceFleet] = None,
                     sort_key: str = 'start_date',
                     descending: bool = True) -> List[TripTableRow]:
    """
    Trip list with type and cost recomputed under the selected tariff

    Args:
        trips: Trips to show, with their reported cost (see select_trips;
            snapshot.trips are already repriced and would classify wrongly)
        tariff: Tariff used for the cost column
        fleet: Reference ids for classification
        sort_key: One of start_date, end_date, duration, cost, bike_id, type
        descending: Sort direction

    Returns:
        Sorted rows; equal keys keep their input order

    Raises:
        ValueError: Unknown sort key
    """
    if sort_key not in TRIP_TABLE_SORT_KEYS:
        raise ValueError(f"Unknown sort key '{sort_key}', expected one of {TRIP_TABLE_SORT_KEYS}")

    fleet = fleet or ReferenceFleet()
    rows = []
    for trip in trips:
        bike_type = fleet.classify(trip)
        rows.append(TripTableRow(
            trip=trip,
            bike_type=bike_type,
            cost=calculate_trip_cost(trip.duration_minutes, bike_type, tariff),
        ))

    sort_values = {
        'start_date': lambda row: row.trip.start_date,
        'end_date': lambda row: row.trip.end_date,
        'duration': lambda row: row.trip.duration_minutes,
        'cost': lambda row: row.cost,
        'bike_id': lambda row: row.trip.bike_number,
        'type': lambda row: row.bike_type.value,
    }
    rows.sort(key=sort_values[sort_key], reverse=descending)

    logger.debug(f"Built trip table with {len(rows):,} rows sorted by {sort_key}")
    return rows
