"""
venues/interfaces.py - Capability interfaces for the trading venues.

The keeper depends only on these protocols, so simulation and execution
run against in-memory fakes in tests and against on-chain bindings in
production. State-changing calls return a transaction hash; confirmation
is awaited separately through a ReceiptSource.
"""

from typing import Protocol, runtime_checkable

from chains.providers import TransactionReceipt


@runtime_checkable
class QuoteProvider(Protocol):
    """Market exchange quoting (read-only)."""

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        """Amounts along `path` for an exact input; last item is the output."""
        ...


@runtime_checkable
class SwapExecutor(Protocol):
    """Market exchange swaps."""

    @property
    def address(self) -> str: ...

    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> str: ...


@runtime_checkable
class PegConverter(Protocol):
    """Fixed-rate peg-stability module."""

    @property
    def address(self) -> str: ...

    async def sell_gem(self, recipient: str, gem_amount: int) -> str:
        """Deposit collateral, mint stablecoin to recipient."""
        ...

    async def buy_gem(self, recipient: str, gem_amount: int) -> str:
        """Burn stablecoin, release `gem_amount` collateral to recipient."""
        ...

    async def tout(self) -> int:
        """Redemption fee in WAD."""
        ...

    async def gem(self) -> str:
        """Collateral token address."""
        ...

    async def stablecoin(self) -> str:
        """Stablecoin token address."""
        ...


@runtime_checkable
class TokenAccount(Protocol):
    """ERC20 token as seen from the operator account."""

    @property
    def address(self) -> str: ...

    async def approve(self, spender: str, amount: int) -> str: ...

    async def balance_of(self, owner: str) -> int: ...

    async def decimals(self) -> int: ...


@runtime_checkable
class ReserveSource(Protocol):
    """Liquidity pair reserves."""

    async def reserve_of(self, token_address: str) -> int: ...


@runtime_checkable
class ReceiptSource(Protocol):
    """Waits for durable confirmation of a submitted transaction."""

    async def wait_for_receipt(
        self, tx_hash: str, timeout_seconds: float
    ) -> TransactionReceipt: ...
