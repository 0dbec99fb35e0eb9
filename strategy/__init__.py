"""Strategy package for the peg keeper."""

from strategy.cooldown import CooldownTracker
from strategy.evaluator import PegDecision, PegReason, evaluate_peg
from strategy.gates import GateResult, apply_profitability_gates
from strategy.oracle import PriceOracle
from strategy.peg_keeper import PegKeeper, SkipReason, VenueSet, create_peg_keeper
from strategy.simulator import SimulationOutcome, TradeSimulator

__all__ = [
    "CooldownTracker",
    "GateResult",
    "PegDecision",
    "PegKeeper",
    "PegReason",
    "PriceOracle",
    "SimulationOutcome",
    "SkipReason",
    "TradeSimulator",
    "VenueSet",
    "apply_profitability_gates",
    "create_peg_keeper",
    "evaluate_peg",
]
