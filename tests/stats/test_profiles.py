"""
Tests for derived views: date bounds, bike profiles, fleet coverage and trip table.
"""

import pytest
from datetime import date

from components.pricing.classifier import BikeType, ReferenceFleet
from components.pricing.tariffs import DEFAULT_TARIFFS
from components.stats.engine import aggregate_stats, select_trips
from components.stats.profiles import build_bike_profile, build_trip_table, date_bounds, fleet_coverage


class TestDateBounds:
    def test_bounds_and_years(self, make_trip):
        trips = [
            make_trip(start='2024-03-05 08:00'),
            make_trip(start='2022-11-30 22:00'),
            make_trip(start='2023-01-15 12:00'),
        ]
        bounds = date_bounds(trips)
        assert bounds.start == date(2022, 11, 30)
        assert bounds.end == date(2024, 3, 5)
        assert bounds.years == [2024, 2023, 2022]

    def test_no_trips(self):
        bounds = date_bounds([])
        assert bounds.start is None
        assert bounds.end is None
        assert bounds.years == []


class TestBuildBikeProfile:
    """Per-bike detail card."""

    @pytest.fixture
    def snapshot(self, make_trip, free_tariff):
        trips = [
            make_trip(start='2024-01-01 07:00', bike_id='1500', duration=10),   # Monday morning
            make_trip(start='2024-01-08 07:30', bike_id='1500', duration=20),   # Monday morning
            make_trip(start='2024-01-20 21:00', bike_id='1500', duration=30),   # Saturday night
            make_trip(start='2024-01-03 15:00', bike_id='8800', duration=4),
            make_trip(start='2024-01-04 03:00', bike_id='8800', duration=4),
        ]
        return aggregate_stats(trips, '2024-01-01', '2024-01-31', free_tariff)

    def test_profile_figures(self, snapshot):
        bike = snapshot.find_bike('1500')
        profile = build_bike_profile(bike, snapshot)

        assert profile.total_uses == 3
        assert profile.total_minutes == 60
        assert profile.day_span == 20
        assert profile.avg_duration == 20
        # Global average is round(68 / 5) = 14
        assert profile.diff_vs_global == 6
        assert profile.rank == 1
        assert profile.time_of_day == {'morning': 2, 'afternoon': 0, 'night': 1, 'late': 0}
        assert profile.favourite_hour == 7
        assert profile.favourite_weekday == 'Monday'
        assert profile.generation == 'Mechanical (probable)'

    def test_time_of_day_late_and_afternoon(self, snapshot):
        profile = build_bike_profile(snapshot.find_bike('8800'), snapshot)
        assert profile.time_of_day == {'morning': 0, 'afternoon': 1, 'night': 0, 'late': 1}
        assert profile.day_span == 1
        assert profile.rank == 2
        assert profile.generation == 'Electric (new?)'

    def test_generation_from_reference_fleet(self, snapshot):
        bike = snapshot.find_bike('8800')
        electric = ReferenceFleet(electric_ids=frozenset({'8800'}))
        mechanical = ReferenceFleet(mechanical_ids=frozenset({'8800'}))

        assert build_bike_profile(bike, snapshot, electric).generation == 'Electric (new fleet)'
        assert build_bike_profile(bike, snapshot, mechanical).generation == 'Mechanical (confirmed)'


class TestFleetCoverage:
    def test_blocks(self, make_trip, free_tariff):
        trips = [make_trip(bike_id=b) for b in ('5', '999', '1000', '2950')]
        snapshot = aggregate_stats(trips, '2024-01-01', '2024-01-01', free_tariff)

        blocks = fleet_coverage(snapshot)
        # ceil((2950 + 100) / 1000) * 1000 = 4000
        assert [(b.start, b.end, b.found) for b in blocks] == [
            (0, 999, 2), (1000, 1999, 1), (2000, 2999, 1), (3000, 3999, 0)
        ]
        assert blocks[0].percent == pytest.approx(0.2)


class TestBuildTripTable:
    """Sortable trip list with recomputed cost."""

    @pytest.fixture
    def trips(self, make_trip):
        return [
            make_trip(start='2024-01-02 08:00', bike_id='900', duration=75),
            make_trip(start='2024-01-01 08:00', bike_id='8500', duration=20),
            make_trip(start='2024-01-03 08:00', bike_id='40', duration=10),
        ]

    def test_default_sort_newest_first(self, trips, sample_tariff):
        rows = build_trip_table(trips, sample_tariff)
        assert [row.trip.start_date.day for row in rows] == [3, 2, 1]

    def test_cost_and_type(self, trips, sample_tariff):
        rows = build_trip_table(trips, sample_tariff, sort_key='cost', descending=True)
        assert [row.trip.bike_id for row in rows] == ['900', '8500', '40']
        assert rows[0].cost == pytest.approx(1.9)
        assert rows[1].bike_type is BikeType.ELECTRIC
        assert rows[1].cost == pytest.approx(0.8)

    def test_numeric_bike_sort(self, trips, sample_tariff):
        rows = build_trip_table(trips, sample_tariff, sort_key='bike_id', descending=False)
        assert [row.trip.bike_id for row in rows] == ['40', '900', '8500']

    def test_type_sort(self, trips, sample_tariff):
        rows = build_trip_table(trips, sample_tariff, sort_key='type', descending=False)
        assert rows[0].bike_type is BikeType.ELECTRIC

    def test_unknown_sort_key(self, trips, sample_tariff):
        with pytest.raises(ValueError):
            build_trip_table(trips, sample_tariff, sort_key='colour')

    def test_types_match_snapshot_under_paid_mechanical_tariff(self, make_trip):
        tariff = DEFAULT_TARIFFS['us']
        trips = [
            make_trip(start='2024-01-01 08:00', bike_id='500', duration=10, cost=0.0),
            make_trip(start='2024-01-01 09:00', bike_id='1200', duration=10, cost=0.55),
        ]
        snapshot = aggregate_stats(trips, '2024-01-01', '2024-01-31', tariff)

        rows = build_trip_table(select_trips(trips, '2024-01-01', '2024-01-31'), tariff,
                                sort_key='start_date', descending=False)
        assert [row.bike_type for row in rows] == [BikeType.MECHANICAL, BikeType.ELECTRIC]
        assert [row.cost for row in rows] == pytest.approx([trip.cost for trip in snapshot.trips])
        assert rows[0].cost == pytest.approx(0.35)
        assert rows[0].trip.cost == 0.0
