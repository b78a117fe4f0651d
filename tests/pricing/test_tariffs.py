"""
Tests for tariff definitions and banded trip pricing.
"""

import pytest

from components.pricing.classifier import BikeType
from components.pricing.tariffs import DEFAULT_TARIFFS, TariffRules, calculate_trip_cost


class TestCalculateTripCost:
    """base + ceil((min(d,120)-30)/30) * mid + ceil((d-120)/60) * max"""

    @pytest.mark.parametrize("duration,expected", [
        (0, 0.5),
        (20, 0.5),
        (30, 0.5),
        (31, 0.5 + 0.7),
        (75, 0.5 + 2 * 0.7),
        (120, 0.5 + 3 * 0.7),
        (150, 0.5 + 3 * 0.7 + 5.0),
        (180, 0.5 + 3 * 0.7 + 5.0),
        (181, 0.5 + 3 * 0.7 + 2 * 5.0),
    ])
    def test_mechanical_bands(self, sample_tariff, duration, expected):
        assert calculate_trip_cost(duration, BikeType.MECHANICAL, sample_tariff) == pytest.approx(expected)

    def test_electric_rates(self, sample_tariff):
        assert calculate_trip_cost(20, BikeType.ELECTRIC, sample_tariff) == pytest.approx(0.8)
        assert calculate_trip_cost(75, BikeType.ELECTRIC, sample_tariff) == pytest.approx(0.8 + 2 * 0.9)

    def test_overage_rate_does_not_depend_on_type(self, sample_tariff):
        mechanical = calculate_trip_cost(200, BikeType.MECHANICAL, sample_tariff)
        electric = calculate_trip_cost(200, BikeType.ELECTRIC, sample_tariff)
        assert electric - mechanical == pytest.approx((0.8 - 0.5) + 3 * (0.9 - 0.7))

    def test_negative_duration_costs_base(self, sample_tariff):
        assert calculate_trip_cost(-5, BikeType.MECHANICAL, sample_tariff) == pytest.approx(0.5)

    def test_never_negative(self):
        for tariff in DEFAULT_TARIFFS.values():
            for duration in (0, 15, 45, 200):
                for bike_type in BikeType:
                    assert calculate_trip_cost(duration, bike_type, tariff) >= 0


class TestTariffRules:
    """Test tariff validation and serialization."""

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError, match="base_mec"):
            TariffRules(id='bad', name='Bad', price=10, base_mec=-0.1, base_elec=0,
                        mid_mec=0, mid_elec=0, max_price=0)

    def test_from_dict_converts_numbers(self):
        tariff = TariffRules.from_dict({
            'id': 'x', 'name': 'X', 'price': '20', 'base_mec': 0, 'base_elec': '0.3',
            'mid_mec': 1, 'mid_elec': 1, 'max_price': 4, 'unused': True,
        })
        assert tariff.price == 20.0
        assert tariff.base_elec == pytest.approx(0.3)

    def test_dict_round_trip(self, sample_tariff):
        assert TariffRules.from_dict(sample_tariff.to_dict()) == sample_tariff

    def test_default_catalog(self):
        assert set(DEFAULT_TARIFFS) == {'plana', 'us', 'metro_plana', 'metro_us'}
        assert DEFAULT_TARIFFS['plana'].price == 50.0
        assert DEFAULT_TARIFFS['us'].price == 35.0
        assert DEFAULT_TARIFFS['metro_plana'].price == 65.0
        assert DEFAULT_TARIFFS['metro_us'].price == 53.0
        assert DEFAULT_TARIFFS['plana'].base_mec == 0.0
