"""
Peg trade execution engine.

EXECUTION CONTRACT:
===================

RAISE_SUPPLY (price above peg):
  1. approve PSM for amount_in collateral
  2. sellGem(operator, amount_in)
  3. read stablecoin actually received (balance delta)
  4. approve router for that amount
  5. swap stablecoin -> collateral, floor = plan.min_out, deadline now+window

REDUCE_SUPPLY (price below peg):
  1. approve router for amount_in collateral
  2. swap collateral -> stablecoin, floor = plan.min_intermediate_out
  3. read stablecoin actually received (balance delta)
  4. approve PSM for that amount
  5. re-read tout, recompute redeemable collateral from the actual amount
  6. buyGem(operator, redeemable)

Every submitted step waits for its receipt before the next one starts.
Any failure aborts the remaining steps; nothing is rolled back.
Realized profit = collateral balance after - collateral balance before.
===================
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.constants import PegAction
from core.exceptions import ErrorCode, ExecutionFailure, PegKeeperError
from core.logging import get_logger, log_error, log_step
from core.math import conversion_factor, redeemable_collateral
from core.models import KeeperConfig, Token, TradePlan
from core.time import Clock, now_s, swap_deadline
from execution.state_machine import ExecutionState, ExecutionStateMachine
from venues.interfaces import PegConverter, ReceiptSource, SwapExecutor, TokenAccount

logger = get_logger(__name__)


@dataclass
class ExecutionResult:
    """Result of a completed trade sequence."""
    trade_id: str
    direction: PegAction
    state: ExecutionState
    amount_in: int
    realized_profit: int
    expected_profit: int
    balance_before: int
    balance_after: int
    tx_hashes: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "direction": self.direction.value,
            "state": self.state.value,
            "is_success": self.is_success,
            "amount_in": self.amount_in,
            "realized_profit": self.realized_profit,
            "expected_profit": self.expected_profit,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
            "tx_hashes": self.tx_hashes,
            "metadata": self.metadata,
        }


class ExecutionEngine:
    """
    Runs the ordered approval / conversion / swap sequence for a TradePlan.

    Balances are read from the operator account only. Amounts between legs
    come from balance deltas, never from the plan's estimates.
    """

    def __init__(
        self,
        config: KeeperConfig,
        operator: str,
        psm: PegConverter,
        swapper: SwapExecutor,
        collateral_account: TokenAccount,
        stablecoin_account: TokenAccount,
        collateral: Token,
        stablecoin: Token,
        receipts: ReceiptSource,
        clock: Clock = now_s,
    ):
        self.config = config
        self.operator = operator
        self.psm = psm
        self.swapper = swapper
        self.collateral_account = collateral_account
        self.stablecoin_account = stablecoin_account
        self.collateral = collateral
        self.stablecoin = stablecoin
        self.receipts = receipts
        self._clock = clock
        self.factor = conversion_factor(collateral.decimals, stablecoin.decimals)

    async def execute(self, plan: TradePlan) -> ExecutionResult:
        """
        Execute `plan` to completion.

        Raises:
            ExecutionFailure: invalid plan, or any step failed / reverted / timed out
        """
        if plan.direction == PegAction.NO_ACTION or plan.amount_in <= 0:
            raise ExecutionFailure(
                f"Refusing to execute plan: {plan.direction.value} amount_in={plan.amount_in}",
                code=ErrorCode.EXEC_INVALID_PLAN,
                details=plan.to_dict(),
            )

        sm = ExecutionStateMachine(
            trade_id=uuid.uuid4().hex[:12],
            metadata={"direction": plan.direction.value, "amount_in": plan.amount_in},
        )
        tx_hashes: List[str] = []

        try:
            balance_before = await self.collateral_account.balance_of(self.operator)

            if plan.direction == PegAction.RAISE_SUPPLY:
                await self._raise_supply(plan, sm, tx_hashes)
            else:
                await self._reduce_supply(plan, sm, tx_hashes)

            balance_after = await self.collateral_account.balance_of(self.operator)
        except PegKeeperError as e:
            failure = e if isinstance(e, ExecutionFailure) else ExecutionFailure(
                f"Execution aborted: {e.message}",
                code=ErrorCode.EXEC_SUBMIT_FAILED,
                details={"cause": e.code.value, **e.details},
            )
            sm.fail(reason=failure.code.value, metadata={"message": failure.message})
            log_error(
                logger,
                failure.code.value,
                failure.message,
                trade_id=sm.trade_id,
                state_history=[t.to_state.value for t in sm.history],
                tx_hashes=tx_hashes,
            )
            if failure is e:
                raise
            raise failure from e

        sm.transition_to(ExecutionState.COMPLETED)
        realized_profit = balance_after - balance_before

        result = ExecutionResult(
            trade_id=sm.trade_id,
            direction=plan.direction,
            state=sm.state,
            amount_in=plan.amount_in,
            realized_profit=realized_profit,
            expected_profit=plan.expected_profit,
            balance_before=balance_before,
            balance_after=balance_after,
            tx_hashes=tx_hashes,
            metadata={"steps": sm.steps},
        )

        logger.info(
            f"Trade completed: {plan.direction.value} realized={realized_profit} "
            f"expected={plan.expected_profit}",
            extra={"context": result.to_dict()},
        )
        return result

    # =========================================================================
    # SEQUENCES
    # =========================================================================

    async def _raise_supply(
        self, plan: TradePlan, sm: ExecutionStateMachine, tx_hashes: List[str]
    ) -> None:
        await self._step(
            sm, ExecutionState.APPROVING, "approve_collateral_psm", tx_hashes,
            lambda: self.collateral_account.approve(self.psm.address, plan.amount_in),
        )

        stable_before = await self.stablecoin_account.balance_of(self.operator)
        await self._step(
            sm, ExecutionState.CONVERTING, "sell_gem", tx_hashes,
            lambda: self.psm.sell_gem(self.operator, plan.amount_in),
        )
        minted = await self._received_stablecoin(stable_before, "sell_gem")

        await self._step(
            sm, ExecutionState.APPROVING, "approve_stablecoin_router", tx_hashes,
            lambda: self.stablecoin_account.approve(self.swapper.address, minted),
        )
        await self._step(
            sm, ExecutionState.SWAPPING, "swap_stablecoin_for_collateral", tx_hashes,
            lambda: self.swapper.swap_exact_tokens_for_tokens(
                minted,
                plan.swap_min_out,
                [self.stablecoin.address, self.collateral.address],
                self.operator,
                swap_deadline(self.config.swap_deadline_seconds, self._clock()),
            ),
        )

    async def _reduce_supply(
        self, plan: TradePlan, sm: ExecutionStateMachine, tx_hashes: List[str]
    ) -> None:
        await self._step(
            sm, ExecutionState.APPROVING, "approve_collateral_router", tx_hashes,
            lambda: self.collateral_account.approve(self.swapper.address, plan.amount_in),
        )

        stable_before = await self.stablecoin_account.balance_of(self.operator)
        await self._step(
            sm, ExecutionState.SWAPPING, "swap_collateral_for_stablecoin", tx_hashes,
            lambda: self.swapper.swap_exact_tokens_for_tokens(
                plan.amount_in,
                plan.swap_min_out,
                [self.collateral.address, self.stablecoin.address],
                self.operator,
                swap_deadline(self.config.swap_deadline_seconds, self._clock()),
            ),
        )
        bought = await self._received_stablecoin(stable_before, "swap")

        await self._step(
            sm, ExecutionState.APPROVING, "approve_stablecoin_psm", tx_hashes,
            lambda: self.stablecoin_account.approve(self.psm.address, bought),
        )

        tout = await self.psm.tout()
        redeemable = redeemable_collateral(bought, self.factor, tout)
        if redeemable <= 0:
            raise ExecutionFailure(
                "Received stablecoin too small to redeem any collateral",
                code=ErrorCode.EXEC_INVALID_PLAN,
                details={"bought": bought, "tout": tout},
            )

        await self._step(
            sm, ExecutionState.CONVERTING, "buy_gem", tx_hashes,
            lambda: self.psm.buy_gem(self.operator, redeemable),
        )

    # =========================================================================
    # STEP HELPERS
    # =========================================================================

    async def _step(
        self,
        sm: ExecutionStateMachine,
        state: ExecutionState,
        step: str,
        tx_hashes: List[str],
        submit: Callable[[], Awaitable[str]],
    ) -> str:
        """Submit one state-changing call and wait for its receipt."""
        sm.transition_to(state, reason=step)

        try:
            tx_hash = await submit()
        except PegKeeperError as e:
            raise ExecutionFailure(
                f"{step} submission failed: {e.message}",
                code=ErrorCode.EXEC_SUBMIT_FAILED,
                details={"step": step, **e.details},
            ) from e
        tx_hashes.append(tx_hash)

        try:
            receipt = await self.receipts.wait_for_receipt(
                tx_hash, self.config.confirmation_timeout_seconds
            )
        except PegKeeperError as e:
            code = (
                ErrorCode.EXEC_TIMEOUT
                if e.code == ErrorCode.INFRA_RPC_TIMEOUT
                else ErrorCode.EXEC_SUBMIT_FAILED
            )
            raise ExecutionFailure(
                f"{step} not confirmed: {e.message}",
                code=code,
                details={"step": step, "tx_hash": tx_hash},
            ) from e

        if not receipt.succeeded:
            raise ExecutionFailure(
                f"{step} reverted",
                code=ErrorCode.EXEC_REVERT,
                details={"step": step, "tx_hash": tx_hash, "block_number": receipt.block_number},
            )

        log_step(logger, step, tx_hash, trade_id=sm.trade_id, gas_used=receipt.gas_used)
        return tx_hash

    async def _received_stablecoin(self, balance_before: int, step: str) -> int:
        """Stablecoin received by the last step, from the operator's balance delta."""
        balance_after = await self.stablecoin_account.balance_of(self.operator)
        received = balance_after - balance_before
        if received <= 0:
            raise ExecutionFailure(
                f"{step} produced no stablecoin",
                code=ErrorCode.EXEC_REVERT,
                details={"step": step, "balance_before": balance_before, "balance_after": balance_after},
            )
        return received
