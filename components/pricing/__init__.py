"""
Pricing Component - Bike type classification and tariff cost model.
"""

from .classifier import BikeType, TypeFilter, ReferenceFleet, classify_bike
from .tariffs import TariffRules, DEFAULT_TARIFFS, calculate_trip_cost

__all__ = [
    'BikeType',
    'TypeFilter',
    'ReferenceFleet',
    'classify_bike',
    'TariffRules',
    'DEFAULT_TARIFFS',
    'calculate_trip_cost'
]
