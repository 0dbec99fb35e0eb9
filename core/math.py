"""
core/math.py - Fixed-point utilities.

CRITICAL: No float in amounts that move funds.
Token amounts are int base units. Prices and percentages are Decimal and
only ever feed threshold comparisons.
"""

from decimal import Decimal, InvalidOperation

from core.constants import PEG_PRICE, PERCENT, PRICE_NORMALIZATION_DECIMALS, WAD


# =============================================================================
# SAFE CONVERSIONS
# =============================================================================

def safe_decimal(value: int | str | Decimal) -> Decimal:
    """
    Convert to Decimal, rejecting float.

    Floats carry binary rounding error into thresholds, so config values
    must arrive as str, int or Decimal.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Float values are not allowed: {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Cannot convert {value!r} to Decimal") from e


def wei_to_human(amount: int, decimals: int) -> Decimal:
    """Convert base units to token units (1_000_000 @ 6 -> 1)."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def human_to_wei(amount: Decimal | str | int, decimals: int) -> int:
    """
    Convert token units to base units, truncating sub-unit dust.

    Example: "100.5" @ 6 -> 100_500_000
    """
    value = safe_decimal(amount) * (Decimal(10) ** decimals)
    return int(value)


# =============================================================================
# PSM CONVERSIONS
# =============================================================================

def conversion_factor(collateral_decimals: int, stablecoin_decimals: int) -> int:
    """
    Scale between collateral and stablecoin base units.

    USDC (6) -> stablecoin (18) gives 10**12.
    """
    if stablecoin_decimals < collateral_decimals:
        raise ValueError(
            f"Stablecoin decimals ({stablecoin_decimals}) below "
            f"collateral decimals ({collateral_decimals})"
        )
    return 10 ** (stablecoin_decimals - collateral_decimals)


def mint_output(collateral_amount: int, factor: int) -> int:
    """Stablecoin minted by the PSM for a collateral amount (no fee on this leg)."""
    return collateral_amount * factor


def redeemable_collateral(stablecoin_amount: int, factor: int, tout: int) -> int:
    """
    Collateral the PSM releases for a stablecoin amount after the tout fee.

    gem_out = stablecoin * WAD / (factor * (WAD + tout)), rounded down so the
    PSM never pulls more stablecoin than the wallet holds.
    """
    return (stablecoin_amount * WAD) // (factor * (WAD + tout))


# =============================================================================
# TRADE SIZING & SLIPPAGE
# =============================================================================

def cap_trade_amount(balance: int, max_amount: int, pool_cap: int | None = None) -> int:
    """Trade size: min(balance, max_amount[, pool_cap])."""
    amount = min(balance, max_amount)
    if pool_cap is not None:
        amount = min(amount, pool_cap)
    return max(amount, 0)


def pool_share_cap(reserve: int, share_percentage: Decimal) -> int:
    """Largest input allowed as a percentage of a pool reserve, rounded down."""
    num, den = safe_decimal(share_percentage).as_integer_ratio()
    return (reserve * num) // (den * 100)


def min_out_after_slippage(expected_out: int, tolerance: Decimal) -> int:
    """
    Minimum acceptable output: floor(expected_out * (1 - tolerance)).

    Computed on the exact rational value of the tolerance.
    Example: 100_000_000 @ 0.005 -> 99_500_000
    """
    tol = safe_decimal(tolerance)
    if not (Decimal("0") <= tol < Decimal("1")):
        raise ValueError(f"Slippage tolerance must be in [0, 1): {tol}")
    num, den = (Decimal("1") - tol).as_integer_ratio()
    return (expected_out * num) // den


# =============================================================================
# PRICES & PERCENTAGES
# =============================================================================

def profit_percentage(profit: int, amount_in: int) -> Decimal:
    """Profit relative to input, in percent. Zero input yields 0."""
    if amount_in <= 0:
        return Decimal("0")
    return Decimal(profit) * PERCENT / Decimal(amount_in)


def deviation_percentage(price: Decimal) -> Decimal:
    """Absolute distance from the peg, in percent."""
    return abs(price - PEG_PRICE) * PERCENT


def price_from_quote(
    stablecoin_out: int,
    stablecoin_decimals: int = PRICE_NORMALIZATION_DECIMALS,
) -> Decimal:
    """
    Stablecoin price in collateral units from a one-collateral-unit quote.

    If 1 USDC buys 1.02 stablecoin, the stablecoin trades at ~0.9804.
    """
    if stablecoin_out <= 0:
        raise ValueError("Quoted stablecoin output must be positive")
    return Decimal("1") / wei_to_human(stablecoin_out, stablecoin_decimals)


def price_from_reserves(
    collateral_reserve: int,
    stablecoin_reserve: int,
    collateral_decimals: int,
    stablecoin_decimals: int,
) -> Decimal:
    """
    Spot price of the stablecoin from constant-product pool reserves.

    price = collateral * 10**(sd - cd) / stablecoin
    """
    if stablecoin_reserve <= 0:
        raise ValueError("Stablecoin reserve must be positive")
    factor = conversion_factor(collateral_decimals, stablecoin_decimals)
    return Decimal(collateral_reserve * factor) / Decimal(stablecoin_reserve)
