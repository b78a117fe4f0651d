"""
Tariff definitions and banded trip pricing.

A trip is charged a flat base for its first 30 minutes, one mid-band block per
started 30 minutes up to minute 120, and one overage block per started hour
beyond minute 120. Base and mid rates depend on the bike type; the overage rate
does not.
"""

import math
from dataclasses import dataclass, fields
from typing import Dict

from .classifier import BikeType

BASE_BLOCK_MINUTES = 30
MID_BAND_END_MINUTES = 120
MID_BLOCK_MINUTES = 30
OVERAGE_BLOCK_MINUTES = 60

PRICE_FIELDS = ('price', 'base_mec', 'base_elec', 'mid_mec', 'mid_elec', 'max_price')


@dataclass(frozen=True)
class TariffRules:
    """A named pricing plan: periodic fee plus per-trip bands."""
    id: str
    name: str
    price: float
    base_mec: float
    base_elec: float
    mid_mec: float
    mid_elec: float
    max_price: float

    def __post_init__(self):
        negative = [name for name in PRICE_FIELDS if getattr(self, name) < 0]
        if negative:
            raise ValueError(f"Tariff '{self.id}' has negative values for: {', '.join(negative)}")

    @classmethod
    def from_dict(cls, data: Dict) -> 'TariffRules':
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        for name in PRICE_FIELDS:
            values[name] = float(values.get(name, 0.0))
        return cls(**values)

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def calculate_trip_cost(duration_minutes: int, bike_type: BikeType, tariff: TariffRules) -> float:
    """
    Cost of one trip under a tariff

    Args:
        duration_minutes: Trip duration; negative values count as 0
        bike_type: Vehicle type deciding the base and mid rates
        tariff: Pricing plan

    Returns:
        Non-negative amount

    Example:
        150 minutes on a mechanical bike = base_mec + 3 * mid_mec + 1 * max_price
    """
    duration = max(0, duration_minutes)
    electric = bike_type is BikeType.ELECTRIC

    cost = tariff.base_elec if electric else tariff.base_mec

    mid_excess = min(duration, MID_BAND_END_MINUTES) - BASE_BLOCK_MINUTES
    if mid_excess > 0:
        mid_rate = tariff.mid_elec if electric else tariff.mid_mec
        cost += math.ceil(mid_excess / MID_BLOCK_MINUTES) * mid_rate

    overage = duration - MID_BAND_END_MINUTES
    if overage > 0:
        cost += math.ceil(overage / OVERAGE_BLOCK_MINUTES) * tariff.max_price

    return cost


# Annual plans of the Barcelona service; band rates are the published per-trip
# prices and can be overridden through the configuration file
DEFAULT_TARIFFS: Dict[str, TariffRules] = {
    'plana': TariffRules(
        id='plana', name='Tarifa Plana', price=50.0,
        base_mec=0.0, base_elec=0.35, mid_mec=0.70, mid_elec=0.90, max_price=5.0,
    ),
    'us': TariffRules(
        id='us', name="Tarifa d'ús", price=35.0,
        base_mec=0.35, base_elec=0.55, mid_mec=0.70, mid_elec=0.90, max_price=5.0,
    ),
    'metro_plana': TariffRules(
        id='metro_plana', name='Abonament Metro. (Plana)', price=65.0,
        base_mec=0.0, base_elec=0.35, mid_mec=0.70, mid_elec=0.90, max_price=5.0,
    ),
    'metro_us': TariffRules(
        id='metro_us', name='Abonament Metro. (Ús)', price=53.0,
        base_mec=0.35, base_elec=0.55, mid_mec=0.70, mid_elec=0.90, max_price=5.0,
    ),
}
