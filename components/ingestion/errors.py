"""
Ingestion error taxonomy.

Only two conditions ever reach the caller: an export whose header row cannot be
located, and a load that produced no trips at all. Row-level problems are
dropped silently by the parser.
"""


class IngestionError(Exception):
    """Base class for errors raised while turning exports into trips."""


class HeaderNotFoundError(IngestionError):
    """No header row was found within the scanned lines of an export."""

    def __init__(self, scanned_lines: int, source: str = None):
        self.scanned_lines = scanned_lines
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(
            f"Header row not found{where}: no bike-id/start-date/settlement/amount "
            f"columns in the first {scanned_lines} lines"
        )


class NoTripsFoundError(IngestionError):
    """Exports were well formed but did not contain any bike-share trip."""

    def __init__(self, batch_count: int):
        self.batch_count = batch_count
        super().__init__(
            f"Read {batch_count} export(s) but no bike-share trips were found"
        )
