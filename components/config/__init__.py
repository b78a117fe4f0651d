"""
Config Component - JSON configuration for parsing, pricing and statistics.
"""

from .wrapped_config import WrappedConfig

__all__ = [
    'WrappedConfig'
]
