"""
Result types of the statistics engine.

Every snapshot is built from scratch; none of these objects is updated after
construction. Trip lists inside a snapshot are shared between rankings.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from components.ingestion.records import TripRecord


@dataclass(frozen=True)
class StatsParameters:
    """Tunables of the aggregation (ranking limits and estimation factors)."""
    top_bikes_limit: int = 50
    top_days_limit: int = 50
    longest_trips_limit: int = 50
    destiny_bikes_limit: int = 20
    destiny_min_gap_days: float = 30.0
    histogram_bin_size: int = 500
    new_fleet_min_id: int = 8000
    old_fleet_max_id: int = 3000
    minutes_per_km: float = 5.0
    co2_kg_per_km: float = 0.12


@dataclass(frozen=True)
class BikeUsage:
    id: str
    count: int
    minutes: int
    usage_dates: List[datetime]   # ascending
    trips: List[TripRecord]       # newest first, cost recomputed under the tariff
    first_used: datetime
    last_used: datetime
    range: str                    # 'old' | 'mid' | 'new'

    @property
    def number(self) -> int:
        return self.trips[0].bike_number if self.trips else 0


@dataclass(frozen=True)
class DayStat:
    date: date
    label: str
    count: int


@dataclass(frozen=True)
class DailyCount:
    date: date
    label: str
    count: int


@dataclass(frozen=True)
class PeriodCount:
    """Count for a labelled bucket (hour, weekday, week, month, year)."""
    key: str
    label: str
    count: int


@dataclass(frozen=True)
class MonthlyAverageId:
    month: str
    label: str
    avg_id: int
    count: int


@dataclass(frozen=True)
class DestinyBike:
    id: str
    gap_days: int
    date_a: datetime
    date_b: datetime
    total_uses: int


@dataclass(frozen=True)
class HistogramBin:
    bin_start: int
    label: str
    full_range: str
    count: int


@dataclass(frozen=True)
class GenerationCount:
    key: str
    name: str
    count: int


@dataclass(frozen=True)
class Achievement:
    id: str
    icon: str
    title: str
    description: str
    unlocked: bool
    progress: str


@dataclass(frozen=True)
class StatsSnapshot:
    """Everything the dashboard shows for one (trips, range, tariff, type) input."""
    range_start: date
    range_end: date
    tariff_id: str
    type_filter: str

    # Totals
    total_trips: int
    total_minutes: int
    total_cost: float
    unique_bikes: int
    repeated_bikes: int
    average_time: int
    estimated_distance_km: float
    co2_saved_kg: float
    electric_count: int
    mechanical_count: int
    years_paid: int
    subscription_cost: float
    avg_cost_per_trip_including_sub: float
    longest_streak: int
    max_bike_id: int
    min_bike_id: int
    busiest_hour: str
    busiest_weekday: str

    # Rankings
    top_bikes: List[BikeUsage]
    all_bikes: List[BikeUsage]
    top_days: List[DayStat]
    longest_trips: List[TripRecord]
    destiny_bikes: List[DestinyBike]

    # Series
    trips_by_hour: List[PeriodCount]
    trips_by_day: List[PeriodCount]
    trips_by_date: List[DailyCount]
    trips_by_week: List[PeriodCount]
    trips_by_month: List[PeriodCount]
    trips_by_month_name: List[PeriodCount]
    trips_by_year: List[PeriodCount]
    avg_id_by_month: List[MonthlyAverageId]
    heatmap: List[List[int]]       # 7 rows (Monday first) x 24 hours
    id_histogram: List[HistogramBin]
    generation_stats: List[GenerationCount]
    achievements: List[Achievement]

    # Retained trips with recomputed cost, in input order
    trips: List[TripRecord]

    def find_bike(self, bike_id: str) -> Optional[BikeUsage]:
        return next((bike for bike in self.all_bikes if bike.id == bike_id), None)
