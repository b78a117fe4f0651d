"""
Bike type classification.

Exports do not say whether a trip was made on a mechanical or an electric bike.
The type is decided from reference lists of known bike ids first, then from
heuristics on the reported cost, the duration and the id range.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import AbstractSet, FrozenSet, Union

from components.ingestion.records import TripRecord, bike_id_digits, bike_id_number

logger = logging.getLogger(__name__)

# Short paid trips are assumed electric: the mechanical base block is often free
SHORT_TRIP_MAX_MINUTES = 30
LEGACY_ELECTRIC_RANGE = (3000, 4000)
NEW_FLEET_MIN_ID = 8000


class BikeType(Enum):
    MECHANICAL = 'mechanical'
    ELECTRIC = 'electric'


class TypeFilter(Enum):
    """Which bike types a statistics run keeps."""
    ALL = 'all'
    MECHANICAL = 'mechanical'
    ELECTRIC = 'electric'

    def allows(self, bike_type: BikeType) -> bool:
        if self is TypeFilter.ALL:
            return True
        return self.value == bike_type.value


@dataclass(frozen=True)
class ReferenceFleet:
    """Known bike ids by type, as digit-only strings."""
    mechanical_ids: FrozenSet[str] = field(default_factory=frozenset)
    electric_ids: FrozenSet[str] = field(default_factory=frozenset)

    def classify(self, trip: TripRecord) -> BikeType:
        return classify_bike(trip, self.mechanical_ids, self.electric_ids)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'ReferenceFleet':
        """
        Load reference ids from a JSON file

        Accepted layouts: {"mecaniques": [...], "electriques": [...]} or
        {"mechanical": [...], "electric": [...]}; ids may be numbers or strings.
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        mechanical = data.get('mechanical', data.get('mecaniques', []))
        electric = data.get('electric', data.get('electriques', []))
        fleet = cls(
            mechanical_ids=frozenset(str(bike_id) for bike_id in mechanical),
            electric_ids=frozenset(str(bike_id) for bike_id in electric),
        )
        logger.info(
            f"Loaded reference fleet from {path}: {len(fleet.mechanical_ids):,} mechanical, "
            f"{len(fleet.electric_ids):,} electric ids"
        )
        return fleet


def classify_bike(trip: TripRecord, mechanical_ids: AbstractSet[str],
                  electric_ids: AbstractSet[str]) -> BikeType:
    """
    Decide the vehicle type of a trip; first matching rule wins

    1. Reference lists (electric list checked first)
    2. Paid trip of at most 30 minutes -> electric
    3. Id in [3000, 4000) or >= 8000 -> electric
    4. Mechanical

    Args:
        trip: Trip to classify
        mechanical_ids: Confirmed mechanical bike ids (digits only)
        electric_ids: Confirmed electric bike ids (digits only)

    Returns:
        BikeType, never raises
    """
    digits = bike_id_digits(trip.bike_id)
    if digits in electric_ids:
        return BikeType.ELECTRIC
    if digits in mechanical_ids:
        return BikeType.MECHANICAL

    if trip.cost > 0 and trip.duration_minutes <= SHORT_TRIP_MAX_MINUTES:
        return BikeType.ELECTRIC

    number = bike_id_number(trip.bike_id)
    low, high = LEGACY_ELECTRIC_RANGE
    if low <= number < high or number >= NEW_FLEET_MIN_ID:
        return BikeType.ELECTRIC

    return BikeType.MECHANICAL
