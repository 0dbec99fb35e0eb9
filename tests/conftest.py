"""
Pytest configuration and fixtures for peg keeper tests.

In-memory venues implement the capability protocols so the keeper can run
full cycles without a network: swaps and PSM calls move balances on a
shared FakeChain and produce receipts.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.providers import TransactionReceipt  # noqa: E402
from core.constants import WAD  # noqa: E402
from core.exceptions import ErrorCode, InfraError  # noqa: E402
from core.models import KeeperConfig  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# ADDRESSES
# =============================================================================

USDC = "0x" + "a" * 40
STABLE = "0x" + "b" * 40
OPERATOR = "0x" + "c" * 40
PSM = "0x" + "d" * 40
ROUTER = "0x" + "e" * 40
PAIR = "0x" + "f" * 40


# =============================================================================
# FAKE CHAIN
# =============================================================================

class FakeChain:
    """Balances, submitted calls and receipts shared by the fake venues."""

    def __init__(self):
        self.balances: dict[tuple[str, str], int] = {}
        self.receipts: dict[str, TransactionReceipt] = {}
        self.calls: list[tuple] = []
        self._tx_count = 0

    def balance(self, token: str, owner: str) -> int:
        return self.balances.get((token, owner), 0)

    def mint(self, token: str, owner: str, amount: int) -> None:
        self.balances[(token, owner)] = self.balance(token, owner) + amount

    def burn(self, token: str, owner: str, amount: int) -> None:
        self.balances[(token, owner)] = self.balance(token, owner) - amount

    def submit(self, call: tuple, succeeded: bool = True) -> str:
        self._tx_count += 1
        tx_hash = "0x" + format(self._tx_count, "064x")
        self.calls.append(call)
        self.receipts[tx_hash] = TransactionReceipt(
            tx_hash=tx_hash,
            succeeded=succeeded,
            block_number=100 + self._tx_count,
            gas_used=50_000,
        )
        return tx_hash

    @property
    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeToken:
    """TokenAccount over FakeChain balances."""

    def __init__(self, chain: FakeChain, address: str, decimals: int, owner: str = OPERATOR):
        self.chain = chain
        self._address = address
        self._decimals = decimals
        self.owner = owner
        self.allowances: dict[str, int] = {}

    @property
    def address(self) -> str:
        return self._address

    async def approve(self, spender: str, amount: int) -> str:
        self.allowances[spender] = amount
        return self.chain.submit(("approve", self._address, spender, amount))

    async def balance_of(self, owner: str) -> int:
        return self.chain.balance(self._address, owner)

    async def decimals(self) -> int:
        return self._decimals


class FakeRouter:
    """
    QuoteProvider + SwapExecutor pricing the stablecoin at `price` collateral.

    No pool fee: collateral -> stable = amount * factor / price.
    A swap below its floor produces a reverted receipt and moves nothing.
    """

    def __init__(
        self,
        chain: FakeChain,
        price: Decimal,
        collateral: str = USDC,
        stablecoin: str = STABLE,
        factor: int = 10**12,
        address: str = ROUTER,
    ):
        self.chain = chain
        self.price = price
        self.collateral = collateral
        self.stablecoin = stablecoin
        self.factor = factor
        self._address = address
        self.quote_error: Exception | None = None

    @property
    def address(self) -> str:
        return self._address

    def _out(self, amount_in: int, path: list[str]) -> int:
        if path[0] == self.collateral:
            return int(Decimal(amount_in) * self.factor / self.price)
        return int(Decimal(amount_in) * self.price / self.factor)

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        if self.quote_error is not None:
            raise self.quote_error
        return [amount_in, self._out(amount_in, path)]

    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> str:
        out = self._out(amount_in, path)
        call = ("swap", amount_in, min_amount_out, tuple(path), recipient, deadline)
        if out < min_amount_out or self.chain.balance(path[0], recipient) < amount_in:
            return self.chain.submit(call, succeeded=False)
        self.chain.burn(path[0], recipient, amount_in)
        self.chain.mint(path[-1], recipient, out)
        return self.chain.submit(call)


class FakePSM:
    """PegConverter with a 1:1 mint and a `tout` redemption fee."""

    def __init__(
        self,
        chain: FakeChain,
        tout: int = 0,
        collateral: str = USDC,
        stablecoin: str = STABLE,
        factor: int = 10**12,
        address: str = PSM,
    ):
        self.chain = chain
        self._tout = tout
        self.collateral = collateral
        self.stable = stablecoin
        self.factor = factor
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def sell_gem(self, recipient: str, gem_amount: int) -> str:
        call = ("sell_gem", recipient, gem_amount)
        if self.chain.balance(self.collateral, recipient) < gem_amount:
            return self.chain.submit(call, succeeded=False)
        self.chain.burn(self.collateral, recipient, gem_amount)
        self.chain.mint(self.stable, recipient, gem_amount * self.factor)
        return self.chain.submit(call)

    async def buy_gem(self, recipient: str, gem_amount: int) -> str:
        call = ("buy_gem", recipient, gem_amount)
        cost = gem_amount * self.factor * (WAD + self._tout) // WAD
        if self.chain.balance(self.stable, recipient) < cost:
            return self.chain.submit(call, succeeded=False)
        self.chain.burn(self.stable, recipient, cost)
        self.chain.mint(self.collateral, recipient, gem_amount)
        return self.chain.submit(call)

    async def tout(self) -> int:
        return self._tout

    async def gem(self) -> str:
        return self.collateral

    async def stablecoin(self) -> str:
        return self.stable


class FakeReceipts:
    """ReceiptSource; `timeout_on` lists call names whose receipt never arrives."""

    def __init__(self, chain: FakeChain, timeout_on: tuple[str, ...] = ()):
        self.chain = chain
        self.timeout_on = timeout_on
        self.waited: list[tuple[str, float]] = []

    async def wait_for_receipt(self, tx_hash: str, timeout_seconds: float) -> TransactionReceipt:
        self.waited.append((tx_hash, timeout_seconds))
        receipt = self.chain.receipts[tx_hash]
        index = int(tx_hash, 16) - 1
        if self.chain.calls[index][0] in self.timeout_on:
            raise InfraError(
                f"Transaction {tx_hash} not mined within {timeout_seconds}s",
                code=ErrorCode.INFRA_RPC_TIMEOUT,
            )
        return receipt


class FakeReserves:
    """ReserveSource returning fixed reserves."""

    def __init__(self, reserves: dict[str, int]):
        self.reserves = reserves

    async def reserve_of(self, token_address: str) -> int:
        return self.reserves[token_address]


class FakeClock:
    """Settable clock for cooldown tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# FIXTURES
# =============================================================================

def make_config(**overrides) -> KeeperConfig:
    params = dict(
        psm_address=PSM,
        router_address=ROUTER,
        pair_address=PAIR,
        max_trade_amount=100 * 10**6,
        min_profit_percentage=Decimal("0.5"),
        slippage_tolerance=Decimal("0.005"),
        cooldown_seconds=300,
        peg_upper_limit=Decimal("1.01"),
        peg_lower_limit=Decimal("0.99"),
    )
    params.update(overrides)
    return KeeperConfig(**params)


@pytest.fixture
def config() -> KeeperConfig:
    return make_config()


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fakes():
    """Namespace of fake venue classes and addresses."""
    class Fakes:
        psm = PSM  # bound before the class attribute PSM shadows the address
        Chain = FakeChain
        Token = FakeToken
        Router = FakeRouter
        PSM = FakePSM
        Receipts = FakeReceipts
        Reserves = FakeReserves
        Clock = FakeClock

        usdc = USDC
        stable = STABLE
        operator = OPERATOR
        router = ROUTER
        pair = PAIR

    return Fakes
