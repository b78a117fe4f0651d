"""
Pytest configuration and fixtures for trip ingestion and statistics tests.
"""

import pytest
from datetime import datetime, timedelta
import tempfile
import itertools

from components.ingestion.records import TripRecord
from components.pricing.classifier import ReferenceFleet
from components.pricing.tariffs import TariffRules


SAMPLE_EXPORT_TEXT = "\n".join([
    "Informe de viatges",
    "Usuari: 0012345;Període: 01/03/2024 - 31/03/2024",
    "",
    "Número liquidació;Data inici;Data fi;Matrícula;Unitats;Import;Servei",
    "1001;01/03/2024 08:15:00;01/03/2024 08:32:00;B-03412;17 min;0,35 €;Bicing",
    "1002;02/03/2024 19:05;02/03/2024 19:50;5120;45 min;1,05 €;Bicing",
    "1003;03/03/2024;03/03/2024;8123;12;0,00;Bicing",
    "1004;04/03/2024 10:00;04/03/2024 10:20;777;20;1,50;Cotxe compartit",
    "1005;sense data;;1200;10;0,00;Bicing",
    "",
])

PLACEHOLDER_EXPORT_TEXT = "\n".join([
    "Data inici\tMatrícula\tDurada\tImport",
    "05/03/2024 09:00\t1500\t12\t0,00",
    "06/03/2024 18:30\t8200\t25\t0,35",
])


@pytest.fixture
def sample_export_text():
    """Semicolon export with a preamble, a foreign-service row and a row without date."""
    return SAMPLE_EXPORT_TEXT


@pytest.fixture
def placeholder_export_text():
    """Tab export without settlement column, so every trip gets a placeholder id."""
    return PLACEHOLDER_EXPORT_TEXT


@pytest.fixture
def make_trip():
    """Factory for trip records with sensible defaults."""
    counter = itertools.count(1)

    def _make_trip(start='2024-01-01 08:00', bike_id='1234', duration=10, cost=0.0,
                   trip_id=None, end=None, placeholder=False):
        start_date = datetime.strptime(start, '%Y-%m-%d %H:%M')
        end_date = datetime.strptime(end, '%Y-%m-%d %H:%M') if end else start_date + timedelta(minutes=duration)
        return TripRecord(
            id=trip_id or f"T{next(counter):05d}",
            start_date=start_date,
            end_date=end_date,
            bike_id=bike_id,
            duration_minutes=duration,
            cost=cost,
            id_is_placeholder=placeholder,
        )

    return _make_trip


@pytest.fixture
def sample_tariff():
    """Tariff with distinct rates per band and type."""
    return TariffRules(
        id='test', name='Test tariff', price=50.0,
        base_mec=0.5, base_elec=0.8, mid_mec=0.7, mid_elec=0.9, max_price=5.0,
    )


@pytest.fixture
def free_tariff():
    """Tariff where every trip is free, for count-only assertions."""
    return TariffRules(
        id='free', name='Free', price=0.0,
        base_mec=0.0, base_elec=0.0, mid_mec=0.0, mid_elec=0.0, max_price=0.0,
    )


@pytest.fixture
def sample_fleet():
    """Reference fleet with a few known ids of each type."""
    return ReferenceFleet(
        mechanical_ids=frozenset({'8123', '1500'}),
        electric_ids=frozenset({'1200', '5000'}),
    )


@pytest.fixture
def temp_directory():
    """Create temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
