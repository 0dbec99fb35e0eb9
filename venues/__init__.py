"""
venues/ - Trading venue bindings.

Modules:
- interfaces: Capability protocols the keeper depends on
- abi: Minimal calldata encoding / return decoding
- erc20: Token binding (TokenAccount)
- psm: Peg-stability module binding (PegConverter)
- router: V2 router binding (QuoteProvider + SwapExecutor)
- pair: V2 pair reserves (ReserveSource)
"""

from venues.erc20 import ERC20Token
from venues.interfaces import (
    PegConverter,
    QuoteProvider,
    ReceiptSource,
    ReserveSource,
    SwapExecutor,
    TokenAccount,
)
from venues.pair import V2Pair
from venues.psm import PegStabilityModule
from venues.router import V2Router

__all__ = [
    # Interfaces
    "PegConverter",
    "QuoteProvider",
    "ReceiptSource",
    "ReserveSource",
    "SwapExecutor",
    "TokenAccount",
    # Bindings
    "ERC20Token",
    "PegStabilityModule",
    "V2Pair",
    "V2Router",
]
