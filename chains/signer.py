"""
chains/signer.py - Signing capability handed to the keeper.

The keeper never sees key material. It receives a Signer at construction
and only asks it to submit calls from the operator account.
"""

from typing import Protocol, runtime_checkable

from chains.providers import RPCProvider


@runtime_checkable
class Signer(Protocol):
    """Opaque signing capability for the operator account."""

    @property
    def address(self) -> str: ...

    async def send_transaction(self, to: str, data: str) -> str:
        """Sign and broadcast a contract call. Returns the tx hash."""
        ...


class NodeSigner:
    """
    Signer backed by an account the RPC node (or an external signer
    behind it, e.g. Clef) manages. Submits via eth_sendTransaction.
    """

    def __init__(self, provider: RPCProvider, address: str):
        self._provider = provider
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def send_transaction(self, to: str, data: str) -> str:
        return await self._provider.send_transaction(
            {"from": self._address, "to": to, "data": data}
        )
