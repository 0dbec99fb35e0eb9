"""
tests/unit/test_error_contract.py - Exception hierarchy and serialization.
"""

import pytest

from core.exceptions import (
    ConfigurationError,
    ErrorCode,
    ExecutionFailure,
    InfraError,
    OracleFailure,
    PegKeeperError,
    SimulationFailure,
)


class TestErrorHierarchy:

    @pytest.mark.parametrize(
        "exc_class,default_code",
        [
            (ConfigurationError, ErrorCode.CONFIG_INVALID_VALUE),
            (InfraError, ErrorCode.INFRA_RPC_ERROR),
            (OracleFailure, ErrorCode.ORACLE_QUOTE_REVERT),
            (SimulationFailure, ErrorCode.SIM_QUOTE_REVERT),
            (ExecutionFailure, ErrorCode.EXEC_REVERT),
        ],
    )
    def test_default_codes(self, exc_class, default_code):
        error = exc_class("boom")
        assert isinstance(error, PegKeeperError)
        assert error.code == default_code

    def test_explicit_code_wins(self):
        error = ExecutionFailure("late", code=ErrorCode.EXEC_TIMEOUT)
        assert error.code == ErrorCode.EXEC_TIMEOUT

    def test_str_includes_code(self):
        assert str(OracleFailure("zero", code=ErrorCode.ORACLE_ZERO_OUTPUT)) == "[ORACLE_ZERO_OUTPUT] zero"

    def test_to_dict(self):
        error = InfraError("timeout", details={"endpoint": "http://rpc"})
        assert error.to_dict() == {
            "error_type": "InfraError",
            "error_code": "INFRA_RPC_ERROR",
            "message": "timeout",
            "details": {"endpoint": "http://rpc"},
        }

    def test_error_codes_are_strings(self):
        for code in ErrorCode:
            assert code.value == code.name
            assert isinstance(code, str)
