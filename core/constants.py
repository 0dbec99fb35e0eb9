"""
core/constants.py - Enums, defaults, and constants.

Only truly constant values here. Config values go to config/keeper.yaml
"""

from decimal import Decimal
from enum import Enum
from typing import Final


# =============================================================================
# PEG DECISIONS
# =============================================================================

class PegAction(str, Enum):
    """Outcome of comparing the observed price with the peg band."""
    NO_ACTION = "NO_ACTION"
    RAISE_SUPPLY = "RAISE_SUPPLY"    # price above peg: mint via PSM, sell on DEX
    REDUCE_SUPPLY = "REDUCE_SUPPLY"  # price below peg: buy on DEX, redeem via PSM


class SimulationStatus(str, Enum):
    """Outcome of a trade simulation."""
    PLANNED = "PLANNED"
    NO_BALANCE = "NO_BALANCE"


# =============================================================================
# FIXED-POINT CONSTANTS (TRUST ANCHORS)
# =============================================================================

# Maker-style fixed point base used by PSM fees
WAD: Final[int] = 10**18

# Peg reference price
PEG_PRICE: Final[Decimal] = Decimal("1")

# Percent scale
PERCENT: Final[Decimal] = Decimal("100")

# Precision used when normalizing quoted stablecoin amounts
PRICE_NORMALIZATION_DECIMALS: Final[int] = 18


# =============================================================================
# DEFAULTS (can be overridden in keeper.yaml)
# =============================================================================

# Swap validity window enforced by the router
DEFAULT_SWAP_DEADLINE_SECONDS = 60

# External bound on the wait for a transaction receipt
DEFAULT_CONFIRMATION_TIMEOUT_SECONDS = 300
DEFAULT_RECEIPT_POLL_INTERVAL_SECONDS = 2.0

# Minimum time between two executed trades
DEFAULT_COOLDOWN_SECONDS = 300

# Trading defaults
DEFAULT_MIN_PROFIT_PERCENTAGE = Decimal("0.5")
DEFAULT_SLIPPAGE_TOLERANCE = Decimal("0.005")
DEFAULT_PEG_UPPER_LIMIT = Decimal("1.01")
DEFAULT_PEG_LOWER_LIMIT = Decimal("0.99")


# =============================================================================
# INFRASTRUCTURE DEFAULTS
# =============================================================================

DEFAULT_RPC_TIMEOUT_SECONDS = 10
DEFAULT_CHECK_INTERVAL_SECONDS = 30
