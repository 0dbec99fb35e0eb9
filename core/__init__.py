"""
core - Core utilities and models for the peg keeper.

This package contains:
- models.py: Data models (KeeperConfig, Token, PriceSample, TradePlan, CheckResult)
- constants.py: Enums and fixed-point constants
- exceptions.py: Typed exceptions with error codes
- math.py: Fixed-point conversions (no float money)
- time.py: Clock and deadline helpers
- logging.py: Structured JSON logging
"""

from core.constants import WAD, PegAction, SimulationStatus
from core.exceptions import (
    ConfigurationError,
    ErrorCode,
    ExecutionFailure,
    InfraError,
    OracleFailure,
    PegKeeperError,
    SimulationFailure,
)
from core.logging import get_logger, setup_logging
from core.models import CheckResult, KeeperConfig, PriceSample, Token, TradePlan

__all__ = [
    # Constants
    "WAD",
    "PegAction",
    "SimulationStatus",
    # Exceptions
    "ConfigurationError",
    "ErrorCode",
    "ExecutionFailure",
    "InfraError",
    "OracleFailure",
    "PegKeeperError",
    "SimulationFailure",
    # Models
    "CheckResult",
    "KeeperConfig",
    "PriceSample",
    "Token",
    "TradePlan",
    # Logging
    "get_logger",
    "setup_logging",
]
