"""
Configuration management for trip ingestion and statistics.

Built-in defaults can be overridden by a JSON file; the file only needs the keys
that differ, everything else is merged from the defaults.
"""

import copy
import json
import os
from dataclasses import fields
from typing import Dict, Any, Optional
from pathlib import Path
import logging

from components.ingestion.parser import ParserSettings
from components.pricing.classifier import ReferenceFleet
from components.pricing.tariffs import DEFAULT_TARIFFS, TariffRules
from components.stats.models import StatsParameters

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "wrapped_config.json"


class WrappedConfig:
    """Manages parser, tariff and statistics settings."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.default_config = self._get_default_config()
        self.config = self._load_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "parser": {
                "header_scan_lines": 50,
                "service_token": "bicing",
                "service_name": "Bicing"
            },
            "tariffs": {
                tariff_id: tariff.to_dict() for tariff_id, tariff in DEFAULT_TARIFFS.items()
            },
            "default_tariff": "plana",
            "reference_fleet": {
                "path": None
            },
            "stats": {
                "top_bikes_limit": 50,
                "top_days_limit": 50,
                "longest_trips_limit": 50,
                "destiny_bikes_limit": 20,
                "destiny_min_gap_days": 30.0,
                "histogram_bin_size": 500,
                "new_fleet_min_id": 8000,
                "old_fleet_max_id": 3000,
                "minutes_per_km": 5.0,
                "co2_kg_per_km": 0.12
            }
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config = json.load(f)
                logger.info(f"Loaded configuration from {self.config_path}")

                return self._merge_configs(self.default_config, config)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to load config from {self.config_path}: {e}")
                logger.info("Using default configuration")
                return copy.deepcopy(self.default_config)
        else:
            logger.info(f"Config file {self.config_path} not found, using defaults")
            return copy.deepcopy(self.default_config)

    def _merge_configs(self, default: Dict, user: Dict) -> Dict:
        """Recursively merge user config with defaults."""
        merged = copy.deepcopy(default)

        for key, value in user.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def save_config(self) -> None:
        """Save current configuration to file."""
        config_dir = Path(self.config_path).parent
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved configuration to {self.config_path}")

    def parser_settings(self) -> ParserSettings:
        """Get export parser settings."""
        parser = self.config["parser"]
        return ParserSettings(
            header_scan_lines=int(parser["header_scan_lines"]),
            service_token=str(parser["service_token"]).lower(),
            service_name=str(parser["service_name"]),
        )

    def tariffs(self) -> Dict[str, TariffRules]:
        """
        Get the tariff catalog

        Raises:
            ValueError: A tariff has negative price values
        """
        catalog = {}
        for tariff_id, values in self.config["tariffs"].items():
            catalog[tariff_id] = TariffRules.from_dict({"id": tariff_id, "name": tariff_id, **values})
        return catalog

    def get_tariff(self, tariff_id: Optional[str] = None) -> TariffRules:
        """
        Get one tariff, the configured default when no id is given

        Raises:
            KeyError: Unknown tariff id
        """
        tariff_id = tariff_id or self.config["default_tariff"]
        catalog = self.tariffs()
        if tariff_id not in catalog:
            raise KeyError(f"Unknown tariff '{tariff_id}', available: {', '.join(catalog)}")
        return catalog[tariff_id]

    def stats_parameters(self) -> StatsParameters:
        """Get statistics engine tunables."""
        known = {f.name for f in fields(StatsParameters)}
        values = {key: value for key, value in self.config["stats"].items() if key in known}
        return StatsParameters(**values)

    def reference_fleet(self) -> ReferenceFleet:
        """Get reference bike ids; empty when no file is configured or it cannot be read."""
        path = self.config["reference_fleet"].get("path")
        if not path:
            return ReferenceFleet()

        try:
            return ReferenceFleet.from_json(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read reference fleet from {path}: {e}")
            return ReferenceFleet()

    def update_stats(self, updates: Dict[str, Any]) -> None:
        """Update statistics configuration."""
        self.config["stats"].update(updates)
        logger.info("Updated statistics configuration")

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self.config = copy.deepcopy(self.default_config)
        logger.info("Reset configuration to defaults")
