"""
Statistics Aggregation Engine - Core computation behind the summary dashboard

Given the merged trip collection, a date range, a tariff and a bike type filter,
this module classifies and prices every trip in range, buckets them by hour,
weekday, day, week, month and year, builds per-bike usage histories, ranks bikes,
days and trips, detects streaks and long-gap reuses, and evaluates achievements.

The engine is a pure function of its inputs and keeps no cache; callers memoize
on input equality when they need to.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from components.ingestion.records import TripRecord
from components.pricing.classifier import BikeType, ReferenceFleet, TypeFilter
from components.pricing.tariffs import TariffRules, calculate_trip_cost

from .achievements import AchievementContext, evaluate_achievements
from .calendar import (
    MONTH_ABBR, MONTH_NAMES, WEEKDAY_NAMES,
    iter_days, iter_months, long_date_label, longest_streak, month_key,
    month_label, round_half_up, short_date_label, week_key,
)
from .models import (
    BikeUsage, DailyCount, DayStat, DestinyBike, GenerationCount, HistogramBin,
    MonthlyAverageId, PeriodCount, StatsParameters, StatsSnapshot,
)

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

TRIP_COLUMNS = [
    'trip', 'date_key', 'hour', 'weekday', 'year', 'month', 'month_key', 'week_key',
    'bike_id', 'bike_number', 'minutes', 'cost', 'electric',
]

COLUMN_DTYPES = {
    'hour': 'int64',
    'weekday': 'int64',
    'year': 'int64',
    'month': 'int64',
    'bike_number': 'int64',
    'minutes': 'int64',
    'cost': 'float64',
    'electric': 'bool',
}

NIGHT_HOURS = range(0, 5)
NO_BUSIEST = '-'


def aggregate_stats(trips: Iterable[TripRecord],
                    range_start: DateLike,
                    range_end: DateLike,
                    tariff: TariffRules,
                    type_filter: Union[TypeFilter, str] = TypeFilter.ALL,
                    fleet: Optional[ReferenceFleet] = None,
                    params: Optional[StatsParameters] = None) -> StatsSnapshot:
    """
    Build the statistics snapshot for one filter/tariff selection

    Args:
        trips: Merged trip collection
        range_start: First day of the range (inclusive, from 00:00)
        range_end: Last day of the range (inclusive, until 23:59:59.999)
        tariff: Pricing plan used to recompute every trip cost
        type_filter: Keep all trips, only mechanical or only electric ones
        fleet: Reference bike ids for classification (empty when omitted)
        params: Ranking limits and estimation factors

    Returns:
        StatsSnapshot; trips excluded by range or type contribute to nothing
    """
    params = params or StatsParameters()
    fleet = fleet or ReferenceFleet()
    if not isinstance(type_filter, TypeFilter):
        type_filter = TypeFilter(type_filter)

    start_day = _as_date(range_start)
    end_day = _as_date(range_end)

    frame = _trip_frame(_retain_trips(trips, start_day, end_day, tariff, type_filter, fleet))
    numbered = frame[frame['bike_number'] > 0]

    total_trips = len(frame)
    total_minutes = int(frame['minutes'].sum())
    total_cost = float(frame['cost'].sum())
    electric_count = int(frame['electric'].sum())

    hour_counts = _counts(frame, 'hour')
    weekday_counts = _counts(frame, 'weekday')
    daily_counts = _counts(frame, 'date_key')

    trips_by_hour = [
        PeriodCount(key=f"{hour:02d}", label=f"{hour:02d}h", count=hour_counts.get(hour, 0))
        for hour in range(24)
    ]
    trips_by_day = [
        PeriodCount(key=name, label=name[:3], count=weekday_counts.get(index, 0))
        for index, name in enumerate(WEEKDAY_NAMES)
    ]

    bikes = _bike_usage(numbered, params)
    top_bikes = sorted(bikes, key=lambda bike: -bike.count)[:params.top_bikes_limit]
    all_bikes = sorted(bikes, key=lambda bike: bike.number)
    repeated_bikes = sum(1 for bike in bikes if bike.count > 1)

    priced_trips = list(frame['trip'])
    longest_trips = sorted(priced_trips, key=lambda trip: -trip.duration_minutes)[:params.longest_trips_limit]

    generations = _generation_counts(numbered, params)
    max_bike_id = int(numbered['bike_number'].max()) if not numbered.empty else 0
    min_bike_id = int(numbered['bike_number'].min()) if not numbered.empty else 0

    years_paid = int(frame['year'].nunique()) or 1
    subscription_cost = tariff.price * years_paid
    estimated_distance_km = total_minutes / params.minutes_per_km

    achievements = evaluate_achievements(AchievementContext(
        unique_bikes=len(bikes),
        repeated_bikes=repeated_bikes,
        min_bike_id=min_bike_id,
        new_fleet_trips=generations[2].count,
        longest_trip_minutes=longest_trips[0].duration_minutes if longest_trips else 0,
        has_trips=bool(longest_trips),
        night_trips=sum(hour_counts.get(hour, 0) for hour in NIGHT_HOURS),
    ))

    snapshot = StatsSnapshot(
        range_start=start_day,
        range_end=end_day,
        tariff_id=tariff.id,
        type_filter=type_filter.value,
        total_trips=total_trips,
        total_minutes=total_minutes,
        total_cost=total_cost,
        unique_bikes=len(bikes),
        repeated_bikes=repeated_bikes,
        average_time=round_half_up(total_minutes / total_trips) if total_trips else 0,
        estimated_distance_km=estimated_distance_km,
        co2_saved_kg=estimated_distance_km * params.co2_kg_per_km,
        electric_count=electric_count,
        mechanical_count=total_trips - electric_count,
        years_paid=years_paid,
        subscription_cost=subscription_cost,
        avg_cost_per_trip_including_sub=(total_cost + subscription_cost) / total_trips if total_trips else 0.0,
        longest_streak=longest_streak(date.fromisoformat(key) for key in daily_counts),
        max_bike_id=max_bike_id,
        min_bike_id=min_bike_id,
        busiest_hour=_busiest(hour_counts, lambda hour: f"{hour:02d}h"),
        busiest_weekday=_busiest(weekday_counts, lambda index: WEEKDAY_NAMES[index]),
        top_bikes=top_bikes,
        all_bikes=all_bikes,
        top_days=_top_days(daily_counts, params),
        longest_trips=longest_trips,
        destiny_bikes=_destiny_bikes(bikes, params),
        trips_by_hour=trips_by_hour,
        trips_by_day=trips_by_day,
        trips_by_date=_daily_series(daily_counts, start_day, end_day),
        trips_by_week=_sorted_series(frame, 'week_key'),
        trips_by_month=_monthly_series(frame, start_day, end_day),
        trips_by_month_name=_month_name_series(frame),
        trips_by_year=_sorted_series(frame, 'year'),
        avg_id_by_month=_average_id_by_month(numbered, start_day, end_day),
        heatmap=_weekday_hour_matrix(frame),
        id_histogram=_id_histogram(numbered, params),
        generation_stats=generations,
        achievements=achievements,
        trips=priced_trips,
    )

    logger.info(
        f"Aggregated {total_trips:,} trips from {start_day} to {end_day} "
        f"(tariff '{tariff.id}', filter '{type_filter.value}'): "
        f"{snapshot.unique_bikes:,} bikes, {total_minutes:,} minutes, {total_cost:.2f} cost"
    )
    return snapshot


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    return pd.Timestamp(value).date()


def select_trips(trips: Iterable[TripRecord],
                 range_start: DateLike,
                 range_end: DateLike,
                 type_filter: Union[TypeFilter, str] = TypeFilter.ALL,
                 fleet: Optional[ReferenceFleet] = None) -> List[TripRecord]:
    """
    Trips in range that pass the type filter, as read from the exports

    Reported costs are left untouched; this is the input build_trip_table expects.
    """
    fleet = fleet or ReferenceFleet()
    if not isinstance(type_filter, TypeFilter):
        type_filter = TypeFilter(type_filter)
    selected = _select_trips(trips, _as_date(range_start), _as_date(range_end), type_filter, fleet)
    return [trip for trip, _ in selected]


def _select_trips(trips: Iterable[TripRecord], start_day: date, end_day: date,
                  type_filter: TypeFilter,
                  fleet: ReferenceFleet) -> List[Tuple[TripRecord, BikeType]]:
    """Range filter on the start timestamp, classification and type filter."""
    window_start = datetime.combine(start_day, time.min)
    window_end = datetime.combine(end_day, time.max)

    selected = []
    outside_range = 0
    filtered_type = 0

    for trip in trips:
        if not window_start <= trip.start_date <= window_end:
            outside_range += 1
            continue

        bike_type = fleet.classify(trip)
        if not type_filter.allows(bike_type):
            filtered_type += 1
            continue

        selected.append((trip, bike_type))

    logger.debug(
        f"Retained {len(selected):,} trips ({outside_range:,} outside range, "
        f"{filtered_type:,} excluded by type filter)"
    )
    return selected


def _retain_trips(trips: Iterable[TripRecord], start_day: date, end_day: date,
                  tariff: TariffRules, type_filter: TypeFilter,
                  fleet: ReferenceFleet) -> List[Tuple[TripRecord, BikeType]]:
    """Selected trips with their cost recomputed under the tariff."""
    return [
        (replace(trip, cost=calculate_trip_cost(trip.duration_minutes, bike_type, tariff)), bike_type)
        for trip, bike_type in _select_trips(trips, start_day, end_day, type_filter, fleet)
    ]


def _trip_frame(retained: List[Tuple[TripRecord, BikeType]]) -> pd.DataFrame:
    """One row per retained trip with its calendar keys precomputed."""
    rows = []
    for trip, bike_type in retained:
        start = trip.start_date
        day = start.date()
        rows.append({
            'trip': trip,
            'date_key': day.isoformat(),
            'hour': start.hour,
            'weekday': start.weekday(),
            'year': start.year,
            'month': start.month,
            'month_key': month_key(day),
            'week_key': week_key(day),
            'bike_id': trip.bike_id,
            'bike_number': trip.bike_number,
            'minutes': trip.duration_minutes,
            'cost': trip.cost,
            'electric': bike_type is BikeType.ELECTRIC,
        })

    return pd.DataFrame(rows, columns=TRIP_COLUMNS).astype(COLUMN_DTYPES)


def _counts(frame: pd.DataFrame, column: str) -> Dict:
    """Group sizes keyed by value, in order of first appearance."""
    sizes = frame.groupby(column, sort=False).size()
    return {
        (key.item() if isinstance(key, np.generic) else key): int(count)
        for key, count in sizes.items()
    }


def _busiest(counts: Dict, label) -> str:
    """First bucket (in order of appearance) holding the maximal count."""
    if not counts:
        return NO_BUSIEST
    best_key = max(counts, key=counts.get)
    return label(best_key)


def _daily_series(daily_counts: Dict[str, int], start_day: date, end_day: date) -> List[DailyCount]:
    return [
        DailyCount(date=day, label=short_date_label(day), count=daily_counts.get(day.isoformat(), 0))
        for day in iter_days(start_day, end_day)
    ]


def _monthly_series(frame: pd.DataFrame, start_day: date, end_day: date) -> List[PeriodCount]:
    monthly = _counts(frame, 'month_key')
    series = []
    for first in iter_months(start_day, end_day):
        key = month_key(first)
        series.append(PeriodCount(key=key, label=month_label(first.year, first.month),
                                  count=monthly.get(key, 0)))
    return series


def _sorted_series(frame: pd.DataFrame, column: str) -> List[PeriodCount]:
    counts = frame.groupby(column).size()
    return [PeriodCount(key=str(key), label=str(key), count=int(count)) for key, count in counts.items()]


def _month_name_series(frame: pd.DataFrame) -> List[PeriodCount]:
    counts = _counts(frame, 'month')
    return [
        PeriodCount(key=MONTH_NAMES[i], label=MONTH_ABBR[i], count=counts.get(i + 1, 0))
        for i in range(12)
    ]


def _average_id_by_month(numbered: pd.DataFrame, start_day: date, end_day: date) -> List[MonthlyAverageId]:
    """Mean bike id per month in range; months without numbered bikes are left out."""
    sums = numbered.groupby('month_key')['bike_number'].agg(['sum', 'count'])
    series = []
    for first in iter_months(start_day, end_day):
        key = month_key(first)
        if key not in sums.index:
            continue
        total, count = int(sums.at[key, 'sum']), int(sums.at[key, 'count'])
        if count == 0:
            continue
        series.append(MonthlyAverageId(
            month=key,
            label=month_label(first.year, first.month),
            avg_id=round_half_up(total / count),
            count=count,
        ))
    return series


def _weekday_hour_matrix(frame: pd.DataFrame) -> List[List[int]]:
    """7x24 occurrence matrix, row 0 = Monday."""
    matrix = np.zeros((7, 24), dtype=int)
    np.add.at(matrix, (frame['weekday'].to_numpy(dtype=int), frame['hour'].to_numpy(dtype=int)), 1)
    return matrix.tolist()


def _id_histogram(numbered: pd.DataFrame, params: StatsParameters) -> List[HistogramBin]:
    size = params.histogram_bin_size
    bins = (numbered['bike_number'] // size) * size
    counts = bins.value_counts().sort_index()
    return [
        HistogramBin(
            bin_start=int(start),
            label=f"{start / 1000:.1f}k",
            full_range=f"{start} - {start + size - 1}",
            count=int(count),
        )
        for start, count in counts.items()
    ]


def _generation_counts(numbered: pd.DataFrame, params: StatsParameters) -> List[GenerationCount]:
    electric = numbered['electric']
    new_fleet = numbered['bike_number'] >= params.new_fleet_min_id
    return [
        GenerationCount(key='mechanical', name='Mechanical (original)',
                        count=int((~electric).sum())),
        GenerationCount(key='electric_classic', name='Electric (classic)',
                        count=int((electric & ~new_fleet).sum())),
        GenerationCount(key='electric_new', name='Electric (new fleet)',
                        count=int((electric & new_fleet).sum())),
    ]


def _bike_usage(numbered: pd.DataFrame, params: StatsParameters) -> List[BikeUsage]:
    """Per-bike histories in order of first appearance."""
    bikes = []
    for bike_id, group in numbered.groupby('bike_id', sort=False):
        bike_trips = list(group['trip'])
        usage_dates = sorted(trip.start_date for trip in bike_trips)
        number = bike_trips[0].bike_number

        if number < params.old_fleet_max_id:
            fleet_range = 'old'
        elif number >= params.new_fleet_min_id:
            fleet_range = 'new'
        else:
            fleet_range = 'mid'

        bikes.append(BikeUsage(
            id=bike_id,
            count=len(bike_trips),
            minutes=int(group['minutes'].sum()),
            usage_dates=usage_dates,
            trips=sorted(bike_trips, key=lambda trip: trip.start_date, reverse=True),
            first_used=usage_dates[0],
            last_used=usage_dates[-1],
            range=fleet_range,
        ))
    return bikes


def _destiny_bikes(bikes: List[BikeUsage], params: StatsParameters) -> List[DestinyBike]:
    """Bikes reused after a gap longer than the threshold, largest gap first."""
    found = []
    for bike in bikes:
        if bike.count < 2:
            continue

        max_gap = 0.0
        date_a, date_b = bike.usage_dates[0], bike.usage_dates[1]
        for earlier, later in zip(bike.usage_dates, bike.usage_dates[1:]):
            gap = (later - earlier).total_seconds() / 86400
            if gap > max_gap:
                max_gap, date_a, date_b = gap, earlier, later

        if max_gap > params.destiny_min_gap_days:
            found.append((max_gap, DestinyBike(
                id=bike.id,
                gap_days=round_half_up(max_gap),
                date_a=date_a,
                date_b=date_b,
                total_uses=bike.count,
            )))

    found.sort(key=lambda item: -item[0])
    return [bike for _, bike in found[:params.destiny_bikes_limit]]


def _top_days(daily_counts: Dict[str, int], params: StatsParameters) -> List[DayStat]:
    ranked = sorted(daily_counts.items(), key=lambda item: -item[1])[:params.top_days_limit]
    days = []
    for key, count in ranked:
        day = date.fromisoformat(key)
        days.append(DayStat(date=day, label=long_date_label(day), count=count))
    return days
