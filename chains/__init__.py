"""
chains/ - Blockchain interaction layer.

Modules:
- providers: JSON-RPC provider with failover and receipt polling
- signer: Opaque signing capability for the operator account
"""

from chains.providers import (
    RPCProvider,
    RPCResponse,
    RPCStats,
    TransactionReceipt,
)
from chains.signer import NodeSigner, Signer

__all__ = [
    # Providers
    "RPCProvider",
    "RPCResponse",
    "RPCStats",
    "TransactionReceipt",
    # Signer
    "NodeSigner",
    "Signer",
]
