"""Configuration package for TimeNode settings."""
from .settings import (
    DEFAULT_ECONOMIC_STRATEGY,
    EconomicStrategy,
    TimeNodeSettings,
    load_settings,
)
from .logging_setup import configure_logging

__all__ = [
    "DEFAULT_ECONOMIC_STRATEGY",
    "EconomicStrategy",
    "TimeNodeSettings",
    "load_settings",
    "configure_logging",
]
