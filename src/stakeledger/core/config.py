"""
Staking Ledger Configuration

Supports the fee-charging and the no-fee payout variants with separate
configurations. All values can be overridden through ``STAKELEDGER_*``
environment variables; invalid values fail at import time.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class FeeVariant(Enum):
    FEE = "fee"
    NO_FEE = "no_fee"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc


def _get_variant(env_var: str, default: FeeVariant) -> FeeVariant:
    raw = os.getenv(env_var, "").strip().lower()
    if not raw:
        return default
    try:
        return FeeVariant(raw)
    except ValueError as exc:
        choices = ", ".join(v.value for v in FeeVariant)
        raise ConfigurationError(f"{env_var} must be one of: {choices}; got {raw!r}") from exc


SECONDS_PER_YEAR = _get_int("STAKELEDGER_SECONDS_PER_YEAR", 365 * 24 * 3600)
DEFAULT_RATE = _get_int("STAKELEDGER_DEFAULT_RATE", 10)
FEE_VARIANT = _get_variant("STAKELEDGER_FEE_VARIANT", FeeVariant.FEE)
FEE_PERCENT = _get_int("STAKELEDGER_FEE_PERCENT", 2)

LOG_LEVEL = os.getenv("STAKELEDGER_LOG_LEVEL", "INFO").strip().upper() or "INFO"
LOG_FILE = os.getenv("STAKELEDGER_LOG_FILE", "").strip()
ENVIRONMENT = os.getenv("STAKELEDGER_ENVIRONMENT", "development").strip() or "development"

if SECONDS_PER_YEAR <= 0:
    raise ConfigurationError("STAKELEDGER_SECONDS_PER_YEAR must be positive")
if DEFAULT_RATE < 0:
    raise ConfigurationError("STAKELEDGER_DEFAULT_RATE cannot be negative")
if not 0 <= FEE_PERCENT <= 100:
    raise ConfigurationError("STAKELEDGER_FEE_PERCENT must be between 0 and 100")
if LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
    raise ConfigurationError(f"STAKELEDGER_LOG_LEVEL is not a logging level: {LOG_LEVEL}")


class FeeChargingConfig:
    """Payout variant that charges a fee on every claim and withdrawal."""

    FEE_VARIANT = FeeVariant.FEE
    FEE_PERCENT = FEE_PERCENT
    SECONDS_PER_YEAR = SECONDS_PER_YEAR
    DEFAULT_RATE = DEFAULT_RATE
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    ENVIRONMENT = ENVIRONMENT


class NoFeeConfig:
    """Payout variant that pays claims and withdrawals in full."""

    FEE_VARIANT = FeeVariant.NO_FEE
    FEE_PERCENT = 0
    SECONDS_PER_YEAR = SECONDS_PER_YEAR
    DEFAULT_RATE = DEFAULT_RATE
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    ENVIRONMENT = ENVIRONMENT


# Select config based on fee variant
if FEE_VARIANT is FeeVariant.NO_FEE:
    Config = NoFeeConfig
else:
    Config = FeeChargingConfig

logger.debug(
    "Staking ledger configuration loaded",
    extra={
        "event": "config.loaded",
        "fee_variant": Config.FEE_VARIANT.value,
        "fee_percent": Config.FEE_PERCENT,
        "default_rate": Config.DEFAULT_RATE,
    },
)

# Export config
__all__ = [
    "Config",
    "ConfigurationError",
    "FeeVariant",
    "FeeChargingConfig",
    "NoFeeConfig",
    "SECONDS_PER_YEAR",
    "DEFAULT_RATE",
    "FEE_PERCENT",
]
