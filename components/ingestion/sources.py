"""
Export Sources - File acquisition and batch ingestion

Turns export files on disk (delimited text or spreadsheets) into decoded text,
runs the parser over every batch and merges the result. The parser itself never
touches the filesystem.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

import chardet
import pandas as pd

from .errors import HeaderNotFoundError, NoTripsFoundError
from .merger import merge_trip_batches
from .parser import ParserSettings, parse_trips
from .records import TripRecord

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {'.csv', '.txt', '.tsv'}
SPREADSHEET_SUFFIXES = {'.xlsx', '.xls'}
SPREADSHEET_DELIMITER = ';'

# Tried in order when chardet is not confident
FALLBACK_ENCODINGS = [
    'utf-8',
    'utf-8-sig',
    'cp1252',
    'latin1',
]


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of loading several exports."""
    trips: List[TripRecord]
    duplicates_removed: int
    batch_sizes: List[int]


def detect_file_encoding(file_path: Union[str, Path], sample_size: int = 8192) -> str:
    """
    Detect file encoding with chardet, falling back to common encodings

    Args:
        file_path: Path to file
        sample_size: Number of bytes to read for detection

    Returns:
        Detected encoding string
    """
    with open(file_path, 'rb') as f:
        raw_data = f.read(sample_size)

    detected = chardet.detect(raw_data)
    if detected and detected.get('encoding'):
        confidence = detected.get('confidence') or 0.0
        if confidence > 0.7:
            logger.info(f"Detected encoding: {detected['encoding']} (confidence: {confidence:.2f})")
            return detected['encoding']

    for encoding in FALLBACK_ENCODINGS:
        try:
            raw_data.decode(encoding)
        except UnicodeDecodeError:
            continue
        logger.info(f"Using encoding: {encoding}")
        return encoding

    logger.warning("Could not detect encoding reliably, using latin1 as fallback")
    return 'latin1'


def read_export_text(file_path: Union[str, Path]) -> str:
    """
    Read an export file as delimited text

    Args:
        file_path: CSV/TXT/TSV export or XLSX/XLS spreadsheet

    Returns:
        Decoded text ready for the parser

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file type is not supported
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Export file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        encoding = detect_file_encoding(path)
        return path.read_bytes().decode(encoding, errors='replace')
    if suffix in SPREADSHEET_SUFFIXES:
        return spreadsheet_to_text(path)

    raise ValueError(f"Unsupported export file type '{suffix}': {path.name}")


def spreadsheet_to_text(file_path: Union[str, Path]) -> str:
    """Render the first sheet of a spreadsheet as semicolon-delimited text."""
    sheet = pd.read_excel(file_path, sheet_name=0, header=None)
    logger.info(f"Read spreadsheet {Path(file_path).name}: {len(sheet):,} rows x {len(sheet.columns)} columns")

    lines = [
        SPREADSHEET_DELIMITER.join(_cell_to_text(value) for value in row)
        for row in sheet.itertuples(index=False)
    ]
    return '\n'.join(lines)


def _cell_to_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)) or value is pd.NaT:
        return ''
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y %H:%M:%S')
    if isinstance(value, date):
        return value.strftime('%d/%m/%Y')
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).replace(SPREADSHEET_DELIMITER, ' ')


def ingest_texts(texts: Sequence[str], settings: Optional[ParserSettings] = None,
                 source_names: Optional[Sequence[str]] = None) -> IngestionResult:
    """
    Parse and merge several export texts

    Args:
        texts: Decoded export texts, one per file
        settings: Parser tunables
        source_names: Optional names used in error messages and logs

    Returns:
        IngestionResult with the deduplicated trips

    Raises:
        HeaderNotFoundError: If any export has no recognizable header
        NoTripsFoundError: If the exports contain no bike-share trips at all
    """
    names = list(source_names) if source_names else [f"export #{i + 1}" for i in range(len(texts))]

    batches = []
    for name, text in zip(names, texts):
        try:
            batch = parse_trips(text, settings)
        except HeaderNotFoundError as e:
            raise HeaderNotFoundError(e.scanned_lines, source=name) from e

        if not batch:
            logger.warning(f"{name}: no bike-share trips found")
        else:
            logger.info(f"{name}: {len(batch):,} trips")
        batches.append(batch)

    merged = merge_trip_batches(batches)
    if not merged.trips:
        raise NoTripsFoundError(len(batches))

    return IngestionResult(
        trips=merged.trips,
        duplicates_removed=merged.duplicates_removed,
        batch_sizes=[len(batch) for batch in batches],
    )


def load_trip_exports(file_paths: Sequence[Union[str, Path]],
                      settings: Optional[ParserSettings] = None) -> IngestionResult:
    """Read, parse and merge export files from disk."""
    paths = [Path(p) for p in file_paths]
    texts = [read_export_text(path) for path in paths]
    return ingest_texts(texts, settings, source_names=[path.name for path in paths])
