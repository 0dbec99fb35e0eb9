"""
chains/providers.py - JSON-RPC transport for the keeper.

Reads fail over across the configured endpoints; writes are sent to the
first endpoint only, so a retried submission can never broadcast twice.
Receipts are polled until mined or until the caller's timeout expires.
"""

import asyncio
import os
import time
from dataclasses import dataclass
from typing import Any

import httpx
from dotenv import load_dotenv

from core.constants import DEFAULT_RECEIPT_POLL_INTERVAL_SECONDS, DEFAULT_RPC_TIMEOUT_SECONDS
from core.exceptions import ErrorCode, InfraError
from core.logging import get_logger

logger = get_logger(__name__)

load_dotenv()


class _EndpointError(Exception):
    """One endpoint failed; the caller may try the next."""


@dataclass
class RPCStats:
    """Per-endpoint request counters."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    def record_success(self, latency_ms: int) -> None:
        self.total_requests += 1
        self.successful_requests += 1
        self.total_latency_ms += latency_ms
        self.last_success_ts = int(time.time() * 1000)

    def record_failure(self, error: str) -> None:
        self.total_requests += 1
        self.failed_requests += 1
        self.last_error = error

    @property
    def avg_latency_ms(self) -> int:
        if not self.successful_requests:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Decoded JSON-RPC result and the endpoint that served it."""
    result: Any
    latency_ms: int
    endpoint_used: str


@dataclass(frozen=True)
class TransactionReceipt:
    """Mined transaction outcome."""
    tx_hash: str
    succeeded: bool
    block_number: int
    gas_used: int

    @classmethod
    def from_rpc(cls, raw: dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=raw["transactionHash"],
            succeeded=int(raw.get("status", "0x0"), 16) == 1,
            block_number=int(raw.get("blockNumber") or "0x0", 16),
            gas_used=int(raw.get("gasUsed") or "0x0", 16),
        )


class RPCProvider:
    """
    JSON-RPC client over httpx with ordered endpoint failover.

    Usage:
        provider = RPCProvider(["https://node-a", "https://node-b"])
        response = await provider.eth_call(to=token, data=calldata)
        await provider.close()
    """

    def __init__(
        self,
        rpc_urls: list[str],
        timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0
        self.rpc_urls = self._resolve_urls(rpc_urls)
        self.stats = {url: RPCStats(url=url) for url in self.rpc_urls}

    def _resolve_urls(self, urls: list[str]) -> list[str]:
        """Substitute ${RPC_API_KEY}; endpoints needing a missing key are dropped."""
        api_key = os.getenv("RPC_API_KEY", "")
        resolved = []
        for url in urls:
            if "${RPC_API_KEY}" in url and not api_key:
                logger.warning(
                    "Skipping RPC endpoint without API key",
                    extra={"context": {"url": url}},
                )
                continue
            resolved.append(url.replace("${RPC_API_KEY}", api_key))
        return resolved

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, client: httpx.AsyncClient, url: str, method: str, params: list) -> RPCResponse:
        """Single attempt against one endpoint."""
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id}

        started = time.monotonic()
        try:
            resp = await client.post(url, json=payload)
            body = resp.json()
        except httpx.TimeoutException as e:
            raise _EndpointError(f"Timeout after {int((time.monotonic() - started) * 1000)}ms") from e
        except (httpx.HTTPError, ValueError) as e:
            raise _EndpointError(str(e)) from e
        latency_ms = int((time.monotonic() - started) * 1000)

        if "error" in body:
            error = body["error"]
            raise _EndpointError(error.get("message", str(error)) if isinstance(error, dict) else str(error))

        return RPCResponse(result=body.get("result"), latency_ms=latency_ms, endpoint_used=url)

    async def call(
        self,
        method: str,
        params: list | None = None,
        failover: bool = True,
    ) -> RPCResponse:
        """
        Send a JSON-RPC request.

        Args:
            method: RPC method name
            params: Method parameters
            failover: Try remaining endpoints when one fails

        Raises:
            InfraError: every tried endpoint failed
        """
        if not self.rpc_urls:
            raise InfraError("No RPC endpoints configured", code=ErrorCode.INFRA_RPC_ERROR)

        client = await self._get_client()
        urls = self.rpc_urls if failover else self.rpc_urls[:1]
        errors: list[str] = []

        for url in urls:
            try:
                response = await self._request(client, url, method, params or [])
            except _EndpointError as e:
                self.stats[url].record_failure(str(e))
                errors.append(str(e))
                logger.debug(
                    f"RPC {method} failed on {url}: {e}",
                    extra={"context": {"method": method}},
                )
                continue
            self.stats[url].record_success(response.latency_ms)
            return response

        raise InfraError(
            f"RPC {method} failed: {errors[-1]}",
            code=ErrorCode.INFRA_RPC_ERROR,
            details={
                "method": method,
                "endpoints_tried": len(urls),
                "last_error": errors[-1],
            },
        )

    async def eth_call(self, to: str, data: str, block: str = "latest") -> RPCResponse:
        """Read-only contract call."""
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    async def get_block_number(self) -> int:
        response = await self.call("eth_blockNumber")
        return int(response.result, 16)

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """
        Submit a transaction to be signed by the node's account.

        Returns:
            Transaction hash
        """
        response = await self.call("eth_sendTransaction", [tx], failover=False)
        if not response.result:
            raise InfraError(
                "eth_sendTransaction returned no hash",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"to": tx.get("to")},
            )
        return response.result

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """Receipt for a mined transaction, or None while pending."""
        response = await self.call("eth_getTransactionReceipt", [tx_hash])
        if response.result is None:
            return None
        return TransactionReceipt.from_rpc(response.result)

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout_seconds: float,
        poll_interval_seconds: float = DEFAULT_RECEIPT_POLL_INTERVAL_SECONDS,
    ) -> TransactionReceipt:
        """
        Poll until the transaction is mined.

        A failed poll is retried; only the deadline ends the wait.

        Raises:
            InfraError(INFRA_RPC_TIMEOUT): not mined within timeout_seconds
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_seconds
        last_error: str | None = None

        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
            except InfraError as e:
                receipt = None
                last_error = e.message
                logger.debug(
                    f"Receipt poll failed for {tx_hash}: {e.message}",
                    extra={"context": {"tx_hash": tx_hash, "error_code": e.code.value}},
                )
            if receipt is not None:
                return receipt
            if loop.time() >= deadline:
                raise InfraError(
                    f"Transaction {tx_hash} not mined within {timeout_seconds}s",
                    code=ErrorCode.INFRA_RPC_TIMEOUT,
                    details={
                        "tx_hash": tx_hash,
                        "timeout_seconds": timeout_seconds,
                        "last_error": last_error,
                    },
                )
            await asyncio.sleep(poll_interval_seconds)

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
