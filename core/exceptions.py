"""
core/exceptions.py - Typed exceptions with error codes.

Every failure inside a check cycle is one of these. The top-level check
catches PegKeeperError and reports the cycle as not executed.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes shared by logs, gate results and exceptions."""

    # Configuration
    CONFIG_MISSING_ADDRESS = "CONFIG_MISSING_ADDRESS"
    CONFIG_INVALID_BAND = "CONFIG_INVALID_BAND"
    CONFIG_INVALID_VALUE = "CONFIG_INVALID_VALUE"

    # Price discovery
    ORACLE_ZERO_OUTPUT = "ORACLE_ZERO_OUTPUT"
    ORACLE_QUOTE_REVERT = "ORACLE_QUOTE_REVERT"

    # Simulation
    SIM_QUOTE_REVERT = "SIM_QUOTE_REVERT"

    # Profitability
    PNL_BELOW_THRESHOLD = "PNL_BELOW_THRESHOLD"
    PNL_NOT_POSITIVE = "PNL_NOT_POSITIVE"

    # Execution
    EXEC_REVERT = "EXEC_REVERT"
    EXEC_TIMEOUT = "EXEC_TIMEOUT"
    EXEC_SUBMIT_FAILED = "EXEC_SUBMIT_FAILED"
    EXEC_INVALID_PLAN = "EXEC_INVALID_PLAN"

    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_RPC_TIMEOUT = "INFRA_RPC_TIMEOUT"
    INFRA_BAD_RESPONSE = "INFRA_BAD_RESPONSE"

    UNKNOWN = "UNKNOWN"


class PegKeeperError(Exception):
    """Base exception for the peg keeper."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str = "",
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(PegKeeperError):
    """Missing or inconsistent configuration. Fatal at construction."""
    default_code = ErrorCode.CONFIG_INVALID_VALUE


class InfraError(PegKeeperError):
    """Infrastructure-related errors (RPC, timeouts, malformed responses)."""
    default_code = ErrorCode.INFRA_RPC_ERROR


class OracleFailure(PegKeeperError):
    """Price query was degenerate or reverted."""
    default_code = ErrorCode.ORACLE_QUOTE_REVERT


class SimulationFailure(PegKeeperError):
    """Quote call made during simulation reverted."""
    default_code = ErrorCode.SIM_QUOTE_REVERT


class ExecutionFailure(PegKeeperError):
    """A transaction failed, reverted or never confirmed."""
    default_code = ErrorCode.EXEC_REVERT
