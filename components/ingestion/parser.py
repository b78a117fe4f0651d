"""
Trip Export Parser - Tolerant reader for exported bike-share trip logs

Exports come from different tools and years of the provider's user area: the
header row may be preceded by titles and filter summaries, the delimiter may be a
comma, a semicolon or a tab, column names are localized, and amounts use
European number formatting. This module locates the header heuristically,
infers the column semantics and turns every usable row into a TripRecord.

Rows that cannot be used (no start date, another service) are dropped without
being reported; only a missing header is fatal.
"""

import logging
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import HeaderNotFoundError
from .records import PLACEHOLDER_ID_PREFIX, TripRecord

logger = logging.getLogger(__name__)

HEADER_SCAN_LINES = 50
DEFAULT_SERVICE_TOKEN = 'bicing'
DEFAULT_SERVICE_NAME = 'Bicing'
UNKNOWN_BIKE_ID = '?'

# Day-first formats used by the exports, most specific first
EXPORT_DATE_FORMATS = [
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d/%m/%Y',
]


@dataclass(frozen=True)
class HeaderRule:
    """A line is accepted as the header when it contains every signal."""
    name: str
    signals: Tuple[str, ...]

    def matches(self, normalized_line: str) -> bool:
        return all(signal in normalized_line for signal in self.signals)


# Evaluated top to bottom; new export layouts get a new rule at the end
HEADER_RULES: List[HeaderRule] = [
    HeaderRule('bike_and_start', ('matricula', 'inici')),
    HeaderRule('settlement_and_start', ('liquidacio', 'inici')),
    HeaderRule('bike_and_amount', ('matricula', 'import')),
]

# Field -> header substrings, in priority order
COLUMN_PATTERNS: Dict[str, Tuple[str, ...]] = {
    'start': ('inici', 'start'),
    'end': ('fi', 'end'),
    'bike': ('matricula', 'bike'),
    'duration': ('unitats', 'durada', 'tiempo', 'time'),
    'cost': ('import', 'cost'),
    'service': ('servei', 'service'),
    'settlement': ('liquidacio', 'id'),
}

FIELDS = list(COLUMN_PATTERNS)


@dataclass(frozen=True)
class ParserSettings:
    """Tunables of the export parser."""
    header_scan_lines: int = HEADER_SCAN_LINES
    service_token: str = DEFAULT_SERVICE_TOKEN
    service_name: str = DEFAULT_SERVICE_NAME


def normalize_text(value: str) -> str:
    """
    Normalize a header or cell for matching: strip diacritics, lowercase, trim

    Args:
        value: Raw text (e.g. "Número liquidació")

    Returns:
        Normalized text (e.g. "numero liquidacio")
    """
    if not value:
        return ''
    decomposed = unicodedata.normalize('NFD', value)
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    return stripped.lower().strip()


def detect_header(lines: Sequence[str], scan_lines: int = HEADER_SCAN_LINES) -> Optional[Tuple[int, HeaderRule]]:
    """
    Find the header row among the first lines of an export

    Args:
        lines: All lines of the export
        scan_lines: How many leading lines may hold the header

    Returns:
        Tuple of (line index, matching rule) or None when no line qualifies
    """
    for index, line in enumerate(lines[:scan_lines]):
        normalized = normalize_text(line)
        for rule in HEADER_RULES:
            if rule.matches(normalized):
                return index, rule
    return None


def infer_delimiter(header_line: str) -> str:
    """
    Pick the delimiter occurring strictly most often in the header line

    Ties (including no delimiter at all) resolve to a comma.
    """
    tabs = header_line.count('\t')
    semicolons = header_line.count(';')
    commas = header_line.count(',')

    if tabs > commas and tabs > semicolons:
        return '\t'
    if semicolons > commas and semicolons > tabs:
        return ';'
    return ','


def split_cells(line: str, delimiter: str) -> List[str]:
    """Split a line and trim whitespace and one pair of surrounding quotes per cell."""
    cells = []
    for cell in line.split(delimiter):
        cell = cell.strip()
        if cell.startswith('"'):
            cell = cell[1:]
        if cell.endswith('"'):
            cell = cell[:-1]
        cells.append(cell)
    return cells


def resolve_columns(header_cells: Sequence[str]) -> Dict[str, int]:
    """
    Map every known field to the index of its header cell

    Each field tries its patterns in priority order and takes the first header
    cell containing the pattern that no earlier field has claimed already.

    Args:
        header_cells: Raw header cells

    Returns:
        Dictionary field -> column index, -1 for absent fields
    """
    normalized = [normalize_text(cell) for cell in header_cells]
    claimed = set()
    columns = {}

    for field, patterns in COLUMN_PATTERNS.items():
        found = -1
        for pattern in patterns:
            found = next(
                (i for i, header in enumerate(normalized)
                 if i not in claimed and header and pattern in header),
                -1
            )
            if found != -1:
                break
        if found != -1:
            claimed.add(found)
        columns[field] = found

    return columns


def parse_export_dates(values: pd.Series) -> pd.Series:
    """
    Parse DD/MM/YYYY[ HH:MM[:SS]] strings; a missing time means midnight

    Args:
        values: Series of raw date strings (None allowed)

    Returns:
        datetime64 Series, NaT where the value is absent or unparseable
    """
    cleaned = values.fillna('').astype(str).str.strip().str.replace(r'\s+', ' ', regex=True)
    parsed = pd.Series(pd.NaT, index=values.index, dtype='datetime64[ns]')

    for fmt in EXPORT_DATE_FORMATS:
        attempt = pd.to_datetime(cleaned, format=fmt, errors='coerce')
        parsed = parsed.fillna(attempt)

    return parsed


def parse_durations(values: pd.Series) -> pd.Series:
    """Take the first run of digits as whole minutes ('13 min' -> 13), 0 otherwise."""
    digits = values.fillna('').astype(str).str.extract(r'(\d+)', expand=False)
    return pd.to_numeric(digits, errors='coerce').fillna(0).astype(int)


def parse_costs(values: pd.Series) -> pd.Series:
    """
    Parse localized amounts

    Currency symbols and spaces are removed. When a comma is present the dot is
    a thousands separator and the comma the decimal point ('1.234,50 €' ->
    1234.5); otherwise the string is read as dot-decimal ('0.35' -> 0.35).
    Only the leading number is read, so trailing text is ignored ('0,35 EUR' -> 0.35).

    Args:
        values: Series of raw amount strings

    Returns:
        Float Series, 0.0 where unparseable, never negative
    """
    cleaned = values.fillna('').astype(str).str.replace(r'[€$£\s]', '', regex=True)
    has_comma = cleaned.str.contains(',', regex=False)
    european = cleaned.str.replace('.', '', regex=False).str.replace(',', '.', regex=False)
    cleaned = cleaned.where(~has_comma, european)

    leading = cleaned.str.extract(r'^([+-]?(?:\d+\.?\d*|\.\d+))', expand=False)
    amounts = pd.to_numeric(leading, errors='coerce').fillna(0.0)
    return amounts.clip(lower=0.0).astype(float)


def parse_trips(raw_text: str, settings: Optional[ParserSettings] = None) -> List[TripRecord]:
    """
    Turn the raw text of one export into trip records

    Args:
        raw_text: Decoded export text
        settings: Parser tunables (defaults when omitted)

    Returns:
        Trips in export row order

    Raises:
        HeaderNotFoundError: If no header row is found in the scanned lines
    """
    settings = settings or ParserSettings()
    lines = _split_lines(raw_text or '')

    match = detect_header(lines, settings.header_scan_lines)
    if match is None:
        raise HeaderNotFoundError(min(len(lines), settings.header_scan_lines))

    header_index, rule = match
    delimiter = infer_delimiter(lines[header_index])
    columns = resolve_columns(split_cells(lines[header_index], delimiter))

    logger.info(
        f"Header found at line {header_index} (rule '{rule.name}', delimiter {delimiter!r})"
    )
    logger.debug(f"Resolved columns: {columns}")

    if columns['start'] == -1:
        logger.warning("Header has no start-date column; no trips can be read")
        return []

    rows = []
    for line_number in range(header_index + 1, len(lines)):
        line = lines[line_number]
        if not line.strip():
            continue
        cells = split_cells(line, delimiter)
        rows.append([line_number] + [_cell(cells, columns[field]) for field in FIELDS])

    if not rows:
        logger.info("Export has a header but no data rows")
        return []

    frame = pd.DataFrame(rows, columns=['line_number'] + FIELDS)
    trips = _build_trips(frame, columns, settings)

    logger.info(f"Parsed {len(trips):,} trips from {len(frame):,} data rows")
    return trips


def _split_lines(raw_text: str) -> List[str]:
    text = raw_text.lstrip('\ufeff')
    return text.replace('\r\n', '\n').replace('\r', '\n').split('\n')


def _cell(cells: List[str], index: int) -> Optional[str]:
    if index < 0 or index >= len(cells):
        return None
    return cells[index]


def _build_trips(frame: pd.DataFrame, columns: Dict[str, int],
                 settings: ParserSettings) -> List[TripRecord]:
    """Vectorized conversion of the raw cell frame into trip records."""
    starts = parse_export_dates(frame['start'])
    keep = starts.notna()

    if columns['service'] != -1:
        services = frame['service'].fillna('').astype(str).map(normalize_text)
        # A blank service cell is kept; only rows naming another service are dropped
        keep &= (services == '') | services.str.contains(settings.service_token, regex=False)

    skipped = int((~keep).sum())
    if skipped:
        logger.debug(f"Skipped {skipped} rows without a start date or from another service")

    frame = frame[keep]
    starts = starts[keep]
    if frame.empty:
        return []

    if columns['end'] != -1:
        ends = parse_export_dates(frame['end']).fillna(starts)
    else:
        ends = starts

    if columns['duration'] != -1:
        durations = parse_durations(frame['duration'])
    else:
        durations = pd.Series(0, index=frame.index)

    if columns['cost'] != -1:
        costs = parse_costs(frame['cost'])
    else:
        costs = pd.Series(0.0, index=frame.index)

    bike_ids = frame['bike'].fillna('').astype(str).str.strip().replace('', UNKNOWN_BIKE_ID)

    settlement = frame['settlement'].fillna('').astype(str).str.strip()
    placeholders = settlement == ''
    synthetic = PLACEHOLDER_ID_PREFIX + frame['line_number'].astype(str)
    ids = settlement.where(~placeholders, synthetic)

    return [
        TripRecord(
            id=trip_id,
            start_date=start.to_pydatetime(),
            end_date=end.to_pydatetime(),
            bike_id=bike_id,
            duration_minutes=int(duration),
            cost=float(cost),
            service=settings.service_name,
            id_is_placeholder=bool(placeholder),
        )
        for trip_id, placeholder, start, end, bike_id, duration, cost in zip(
            ids, placeholders, starts, ends, bike_ids, durations, costs
        )
    ]
