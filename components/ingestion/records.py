"""
Canonical trip record shared by every component.

A TripRecord is created once by the parser and never mutated afterwards;
components that need a different cost build a copy with dataclasses.replace.
"""

import re
from dataclasses import dataclass
from datetime import datetime

PLACEHOLDER_ID_PREFIX = 'row-'

_NON_DIGITS = re.compile(r'\D')


def bike_id_digits(bike_id: str) -> str:
    """Strip every non-digit character from a bike identifier."""
    return _NON_DIGITS.sub('', bike_id or '')


def bike_id_number(bike_id: str) -> int:
    """
    Numeric value of a bike identifier

    Args:
        bike_id: Raw identifier as exported (e.g. '  B-03412')

    Returns:
        Integer value of its digits, 0 when there are none
    """
    digits = bike_id_digits(bike_id)
    return int(digits) if digits else 0


@dataclass(frozen=True)
class TripRecord:
    """One completed rental."""
    id: str
    start_date: datetime
    end_date: datetime
    bike_id: str
    duration_minutes: int
    cost: float
    service: str = 'Bicing'
    # True when `id` is a synthetic row position rather than a settlement id
    id_is_placeholder: bool = False

    @property
    def bike_number(self) -> int:
        return bike_id_number(self.bike_id)
