"""
Stats Component - Aggregation of trips into dashboard statistics.

This component classifies and prices trips for a date range, tariff and type
filter, and derives the rankings, time series and achievements of a snapshot.
"""

from .models import StatsParameters, StatsSnapshot, BikeUsage
from .engine import aggregate_stats, select_trips
from .calendar import longest_streak, year_calendar_grid
from .profiles import date_bounds, build_bike_profile, fleet_coverage, build_trip_table
from .export import snapshot_to_dict, write_snapshot_json, export_trip_table

__all__ = [
    'StatsParameters',
    'StatsSnapshot',
    'BikeUsage',
    'aggregate_stats',
    'select_trips',
    'longest_streak',
    'year_calendar_grid',
    'date_bounds',
    'build_bike_profile',
    'fleet_coverage',
    'build_trip_table',
    'snapshot_to_dict',
    'write_snapshot_json',
    'export_trip_table'
]
