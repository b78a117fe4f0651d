"""
Ingestion Component - Export parsing and trip merging.

This component turns exported trip logs into canonical trip records and merges
overlapping exports into one deduplicated collection.
"""

from .records import TripRecord
from .errors import IngestionError, HeaderNotFoundError, NoTripsFoundError
from .parser import ParserSettings, parse_trips
from .merger import MergeResult, merge_trip_batches
from .sources import IngestionResult, ingest_texts, load_trip_exports, read_export_text

__all__ = [
    'TripRecord',
    'IngestionError',
    'HeaderNotFoundError',
    'NoTripsFoundError',
    'ParserSettings',
    'parse_trips',
    'MergeResult',
    'merge_trip_batches',
    'IngestionResult',
    'ingest_texts',
    'load_trip_exports',
    'read_export_text'
]
