"""
Pricing Engine Configuration

Centralizes the tunable parameters for demand-based pricing and
status-change dispatch. Defaults reproduce the reference tiering;
environment overrides are read through python-dotenv.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


@dataclass
class DemandTierConfig:
    """Supply thresholds and the price adjustment applied in each tier."""

    very_high_max_supply: int = 1  # supply <= 1 is "Very High Demand"
    high_max_supply: int = 3  # 2..3 is "High Demand", above is normal
    very_high_adjustment: float = 0.50
    high_adjustment: float = 0.25
    normal_adjustment: float = 0.0


@dataclass
class DispatchConfig:
    """How status changes are published and routed."""

    status_property: str = "Status"
    region_attribute: str = "RegionId"

    # Same-value assignments (Idle -> Idle) still notify unless disabled
    notify_on_unchanged_status: bool = True

    # False: first listener error aborts the rest of the fan-out
    isolate_listener_failures: bool = False


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def validate_log_level(level: str) -> str:
    """Normalize a logging level name, rejecting unknown names."""
    normalized = level.strip().upper()
    if normalized not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {LOG_LEVELS}, got {level!r}")
    return normalized


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class SimulationConfig:
    """Master configuration for the pricing engine."""

    tiers: DemandTierConfig = field(default_factory=DemandTierConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        """Validation of tier boundaries and adjustments."""
        if self.tiers.very_high_max_supply < 0:
            raise ValueError("very_high_max_supply cannot be negative")
        if self.tiers.high_max_supply <= self.tiers.very_high_max_supply:
            raise ValueError("high_max_supply must be greater than very_high_max_supply")

        for name in ("very_high_adjustment", "high_adjustment", "normal_adjustment"):
            if getattr(self.tiers, name) <= -1.0:
                raise ValueError(f"{name} must be greater than -1")

        if not self.dispatch.status_property:
            raise ValueError("status_property cannot be empty")

        self.logging.level = validate_log_level(self.logging.level)


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_config(env_file: Optional[str] = None) -> SimulationConfig:
    """
    Build a configuration from defaults plus environment overrides.

    Recognized variables:
        SURGESIM_NOTIFY_ON_UNCHANGED_STATUS
        SURGESIM_ISOLATE_LISTENER_FAILURES
        SURGESIM_LOG_LEVEL

    Args:
        env_file: Optional path to a .env file (defaults to ./.env lookup)

    Returns:
        A validated SimulationConfig
    """
    load_dotenv(dotenv_path=env_file)

    config = SimulationConfig()
    config.dispatch.notify_on_unchanged_status = _env_flag(
        "SURGESIM_NOTIFY_ON_UNCHANGED_STATUS", config.dispatch.notify_on_unchanged_status
    )
    config.dispatch.isolate_listener_failures = _env_flag(
        "SURGESIM_ISOLATE_LISTENER_FAILURES", config.dispatch.isolate_listener_failures
    )
    config.logging.level = validate_log_level(
        os.getenv("SURGESIM_LOG_LEVEL", config.logging.level)
    )
    return config


# Global configuration instance
CONFIG = SimulationConfig()
