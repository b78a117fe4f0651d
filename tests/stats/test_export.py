"""
Tests for snapshot JSON export and trip table files.
"""

import json
import pytest
import pandas as pd
from pathlib import Path

from components.stats.engine import aggregate_stats
from components.stats.export import export_trip_table, snapshot_to_dict, write_snapshot_json
from components.stats.profiles import build_trip_table


@pytest.fixture
def snapshot(make_trip, sample_tariff):
    trips = [
        make_trip(start='2024-01-01 08:00', bike_id='1500', duration=75),
        make_trip(start='2024-01-15 18:30', bike_id='8200', duration=12),
    ]
    return aggregate_stats(trips, '2024-01-01', '2024-01-31', sample_tariff)


class TestSnapshotToDict:
    def test_json_ready(self, snapshot):
        data = snapshot_to_dict(snapshot)

        json.dumps(data)
        assert data['range_start'] == '2024-01-01'
        assert data['total_trips'] == 2
        assert data['type_filter'] == 'all'
        assert data['trips'][0]['start_date'] == '2024-01-01T08:00:00'
        assert data['top_bikes'][0]['usage_dates'] == ['2024-01-01T08:00:00']
        assert len(data['heatmap']) == 7

    def test_rejects_other_objects(self):
        with pytest.raises(TypeError):
            snapshot_to_dict({'total_trips': 1})


class TestWriteSnapshotJson:
    def test_written_file(self, snapshot, temp_directory):
        path = Path(temp_directory) / "out" / "snapshot.json"
        written = write_snapshot_json(snapshot, path)

        assert written == str(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        assert data['total_minutes'] == 87
        assert [a['id'] for a in data['achievements']][0] == 'explorer'


class TestExportTripTable:
    """Trip table files follow the suffix."""

    def test_csv(self, snapshot, sample_tariff, temp_directory):
        rows = build_trip_table(snapshot.trips, sample_tariff, sort_key='start_date', descending=False)
        path = export_trip_table(rows, Path(temp_directory) / "trips.csv")

        df = pd.read_csv(path, encoding='utf-8-sig', dtype={'bike_id': str})
        assert list(df.columns) == [
            'start_date', 'end_date', 'duration_minutes', 'bike_id', 'type', 'cost', 'reported_cost', 'id'
        ]
        assert df['bike_id'].tolist() == ['1500', '8200']
        assert df['type'].tolist() == ['mechanical', 'electric']
        assert df['cost'].tolist() == pytest.approx([1.9, 0.8])
        assert df['start_date'].iloc[0] == '01/01/2024 08:00'

    @pytest.mark.integration
    def test_xlsx(self, snapshot, sample_tariff, temp_directory):
        rows = build_trip_table(snapshot.trips, sample_tariff)
        path = export_trip_table(rows, Path(temp_directory) / "trips.xlsx")

        df = pd.read_excel(path, sheet_name='trips')
        assert len(df) == 2

    def test_unsupported_suffix(self, snapshot, sample_tariff, temp_directory):
        rows = build_trip_table(snapshot.trips, sample_tariff)
        with pytest.raises(ValueError):
            export_trip_table(rows, Path(temp_directory) / "trips.parquet")
