"""
Integration tests for the command line runner.
"""

import json
import pytest
import pandas as pd
from pathlib import Path

import run_wrapped_stats


@pytest.mark.integration
class TestRunWrappedStats:
    """Exports on disk -> snapshot JSON and trip table."""

    def test_full_run(self, temp_directory, sample_export_text):
        export_path = Path(temp_directory) / "march.csv"
        export_path.write_text(sample_export_text, encoding='utf-8')
        output = Path(temp_directory) / "out" / "snapshot.json"
        table = Path(temp_directory) / "out" / "trips.csv"

        exit_code = run_wrapped_stats.main([
            str(export_path), "--tariff", "us", "--output", str(output), "--trips-table", str(table),
        ])

        assert exit_code == 0
        data = json.loads(output.read_text(encoding='utf-8'))
        assert data['total_trips'] == 3
        assert data['tariff_id'] == 'us'
        assert data['range_start'] == '2024-03-01'
        assert data['range_end'] == '2024-03-03'
        assert table.exists()

    def test_trips_table_keeps_reported_costs(self, temp_directory):
        export_path = Path(temp_directory) / "short.csv"
        export_path.write_text("\n".join([
            "Número liquidació;Data inici;Data fi;Matrícula;Unitats;Import;Servei",
            "2001;05/03/2024 09:00;05/03/2024 09:10;500;10;0,00;Bicing",
            "2002;05/03/2024 18:00;05/03/2024 18:10;1200;10;0,55;Bicing",
        ]), encoding='utf-8')
        output = Path(temp_directory) / "snapshot.json"
        table = Path(temp_directory) / "trips.csv"

        exit_code = run_wrapped_stats.main([
            str(export_path), "--tariff", "us", "--output", str(output), "--trips-table", str(table),
        ])

        assert exit_code == 0
        data = json.loads(output.read_text(encoding='utf-8'))
        assert data['mechanical_count'] == 1
        df = pd.read_csv(table, encoding='utf-8-sig', dtype={'bike_id': str, 'id': str})
        by_id = df.set_index('id')
        assert by_id.loc['2001', 'type'] == 'mechanical'
        assert by_id.loc['2001', 'cost'] == pytest.approx(0.35)
        assert by_id.loc['2001', 'reported_cost'] == pytest.approx(0.0)
        assert by_id.loc['2002', 'type'] == 'electric'
        assert by_id.loc['2002', 'reported_cost'] == pytest.approx(0.55)

    def test_year_and_type_filter(self, temp_directory, sample_export_text):
        export_path = Path(temp_directory) / "march.csv"
        export_path.write_text(sample_export_text, encoding='utf-8')
        output = Path(temp_directory) / "snapshot.json"

        exit_code = run_wrapped_stats.main([
            str(export_path), "--year", "2024", "--type", "electric", "--output", str(output),
        ])

        assert exit_code == 0
        data = json.loads(output.read_text(encoding='utf-8'))
        assert data['range_end'] == '2024-12-31'
        assert data['type_filter'] == 'electric'
        assert len(data['trips_by_date']) == 366

    def test_bad_export_returns_error(self, temp_directory):
        export_path = Path(temp_directory) / "notes.txt"
        export_path.write_text("nothing useful here", encoding='utf-8')

        assert run_wrapped_stats.main([str(export_path), "--output", str(Path(temp_directory) / "s.json")]) == 1

    def test_unknown_tariff_returns_error(self, temp_directory, sample_export_text):
        export_path = Path(temp_directory) / "march.csv"
        export_path.write_text(sample_export_text, encoding='utf-8')

        assert run_wrapped_stats.main([str(export_path), "--tariff", "gold",
                                       "--output", str(Path(temp_directory) / "s.json")]) == 1
