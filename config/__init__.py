"""
Configuration loading for the peg keeper.

keeper.yaml holds the trading parameters; venue addresses, RPC endpoints
and the operator account may be overridden from the environment (.env):

    PEG_KEEPER_PSM_ADDRESS, PEG_KEEPER_ROUTER_ADDRESS, PEG_KEEPER_PAIR_ADDRESS,
    PEG_KEEPER_COLLATERAL_TOKEN_ADDRESS, PEG_KEEPER_STABLECOIN_TOKEN_ADDRESS,
    RPC_URL (comma-separated), OPERATOR_ADDRESS
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_CHECK_INTERVAL_SECONDS,
    DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_MIN_PROFIT_PERCENTAGE,
    DEFAULT_PEG_LOWER_LIMIT,
    DEFAULT_PEG_UPPER_LIMIT,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_SLIPPAGE_TOLERANCE,
    DEFAULT_SWAP_DEADLINE_SECONDS,
)
from core.exceptions import ConfigurationError, ErrorCode
from core.math import human_to_wei, safe_decimal
from core.models import KeeperConfig
from venues.psm import DEFAULT_SELECTOR_STABLECOIN


CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = CONFIG_DIR / "keeper.yaml"

# env var -> (section, key)
ENV_OVERRIDES = {
    "PEG_KEEPER_PSM_ADDRESS": ("venues", "psm_address"),
    "PEG_KEEPER_ROUTER_ADDRESS": ("venues", "router_address"),
    "PEG_KEEPER_PAIR_ADDRESS": ("venues", "pair_address"),
    "PEG_KEEPER_COLLATERAL_TOKEN_ADDRESS": ("venues", "collateral_token_address"),
    "PEG_KEEPER_STABLECOIN_TOKEN_ADDRESS": ("venues", "stablecoin_token_address"),
    "OPERATOR_ADDRESS": ("operator", "address"),
}


@dataclass(frozen=True)
class RuntimeSettings:
    """Host settings that are not part of the trading configuration."""
    rpc_urls: List[str] = field(default_factory=list)
    rpc_timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS
    operator_address: str = ""
    check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS
    stablecoin_selector: str = DEFAULT_SELECTOR_STABLECOIN


def load_yaml(path: Path | str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Relative names are resolved against the config directory.
    """
    filepath = Path(path)
    if not filepath.is_absolute() and not filepath.exists():
        filepath = CONFIG_DIR / filepath
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_raw_config(
    path: Optional[Path | str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """keeper.yaml contents with environment overrides applied."""
    if env is None:
        load_dotenv()
        env = os.environ

    raw = load_yaml(path or DEFAULT_CONFIG_FILE)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            raw.setdefault(section, {})[key] = value

    rpc_url = env.get("RPC_URL")
    if rpc_url:
        raw.setdefault("rpc", {})["urls"] = [u.strip() for u in rpc_url.split(",") if u.strip()]

    return raw


def _decimal(section: Dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = section.get(key)
    if value is None:
        return default
    try:
        return safe_decimal(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{key} must be a quoted decimal string, got {value!r}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
            details={"key": key},
        ) from e


def _seconds(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool):
        value = None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{key} must be a number of seconds, got {value!r}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
            details={"key": key},
        ) from e


def build_keeper_config(raw: Dict[str, Any]) -> KeeperConfig:
    """
    Build a validated KeeperConfig from a raw config dict.

    max_trade_amount is given in collateral token units and converted
    with trading.collateral_decimals.
    """
    venues = raw.get("venues") or {}
    trading = raw.get("trading") or {}
    timing = raw.get("timing") or {}

    collateral_decimals = int(trading.get("collateral_decimals", 6))
    if trading.get("max_trade_amount") is None:
        raise ConfigurationError(
            "trading.max_trade_amount is required",
            details={"key": "max_trade_amount"},
        )
    max_trade_human = _decimal(trading, "max_trade_amount", Decimal("0"))
    pool_share = trading.get("max_pool_share_percentage")

    return KeeperConfig(
        psm_address=venues.get("psm_address") or "",
        router_address=venues.get("router_address") or "",
        pair_address=venues.get("pair_address") or "",
        max_trade_amount=human_to_wei(max_trade_human, collateral_decimals),
        min_profit_percentage=_decimal(trading, "min_profit_percentage", DEFAULT_MIN_PROFIT_PERCENTAGE),
        slippage_tolerance=_decimal(trading, "slippage_tolerance", DEFAULT_SLIPPAGE_TOLERANCE),
        cooldown_seconds=_seconds(timing, "cooldown_seconds", DEFAULT_COOLDOWN_SECONDS),
        peg_upper_limit=_decimal(trading, "peg_upper_limit", DEFAULT_PEG_UPPER_LIMIT),
        peg_lower_limit=_decimal(trading, "peg_lower_limit", DEFAULT_PEG_LOWER_LIMIT),
        swap_deadline_seconds=int(_seconds(timing, "swap_deadline_seconds", DEFAULT_SWAP_DEADLINE_SECONDS)),
        confirmation_timeout_seconds=_seconds(
            timing, "confirmation_timeout_seconds", DEFAULT_CONFIRMATION_TIMEOUT_SECONDS
        ),
        max_pool_share_percentage=(
            _decimal(trading, "max_pool_share_percentage", Decimal("0")) if pool_share is not None else None
        ),
        collateral_token_address=venues.get("collateral_token_address") or None,
        stablecoin_token_address=venues.get("stablecoin_token_address") or None,
    )


def build_runtime_settings(raw: Dict[str, Any]) -> RuntimeSettings:
    """Build host settings (RPC, operator, interval) from a raw config dict."""
    rpc = raw.get("rpc") or {}
    operator = raw.get("operator") or {}
    venues = raw.get("venues") or {}
    timing = raw.get("timing") or {}

    return RuntimeSettings(
        rpc_urls=list(rpc.get("urls") or []),
        rpc_timeout_seconds=rpc.get("timeout_seconds", DEFAULT_RPC_TIMEOUT_SECONDS),
        operator_address=operator.get("address") or "",
        check_interval_seconds=timing.get("check_interval_seconds", DEFAULT_CHECK_INTERVAL_SECONDS),
        stablecoin_selector=venues.get("stablecoin_selector") or DEFAULT_SELECTOR_STABLECOIN,
    )


def load_keeper_config(
    path: Optional[Path | str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> KeeperConfig:
    """
    Load and validate the keeper configuration.

    Raises:
        ConfigurationError: missing addresses, invalid band or values
        FileNotFoundError: config file does not exist
    """
    return build_keeper_config(load_raw_config(path, env))
