"""
Snapshot and trip table export.

Snapshots are written as JSON; the priced trip table as CSV or XLSX through pandas.
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Union

import pandas as pd

from .models import StatsSnapshot
from .profiles import TripTableRow

logger = logging.getLogger(__name__)

TRIP_TABLE_COLUMNS = ['start_date', 'end_date', 'duration_minutes', 'bike_id', 'type', 'cost', 'reported_cost', 'id']


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def snapshot_to_dict(snapshot: StatsSnapshot) -> Dict[str, Any]:
    """JSON-ready dictionary of a snapshot (dates as ISO strings)."""
    if not is_dataclass(snapshot):
        raise TypeError(f"Expected a StatsSnapshot, got {type(snapshot).__name__}")
    return _to_jsonable(asdict(snapshot))


def write_snapshot_json(snapshot: StatsSnapshot, path: Union[str, Path]) -> str:
    """
    Write a snapshot to a JSON file

    Args:
        snapshot: Aggregation result
        path: Output file; parent directories are created

    Returns:
        Path written, as a string
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2, ensure_ascii=False)

    logger.info(f"Saved snapshot with {snapshot.total_trips:,} trips to: {output_path}")
    return str(output_path)


def trip_table_frame(rows: Iterable[TripTableRow]) -> pd.DataFrame:
    records = [
        {
            'start_date': row.trip.start_date,
            'end_date': row.trip.end_date,
            'duration_minutes': row.trip.duration_minutes,
            'bike_id': row.trip.bike_id,
            'type': row.bike_type.value,
            'cost': round(row.cost, 2),
            'reported_cost': row.trip.cost,
            'id': row.trip.id,
        }
        for row in rows
    ]
    return pd.DataFrame(records, columns=TRIP_TABLE_COLUMNS)


def export_trip_table(rows: Iterable[TripTableRow], path: Union[str, Path]) -> str:
    """
    Write the priced trip table; the format follows the suffix (.csv or .xlsx)

    Raises:
        ValueError: Unsupported suffix
    """
    output_path = Path(path)
    suffix = output_path.suffix.lower()
    if suffix not in ('.csv', '.xlsx'):
        raise ValueError(f"Unsupported trip table format '{suffix}', use .csv or .xlsx")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = trip_table_frame(rows)

    if suffix == '.csv':
        df.to_csv(output_path, index=False, encoding='utf-8-sig', date_format='%d/%m/%Y %H:%M')
    else:
        df.to_excel(output_path, index=False, sheet_name='trips', engine='openpyxl')

    logger.info(f"Saved trip table with {len(df):,} rows to: {output_path}")
    return str(output_path)
