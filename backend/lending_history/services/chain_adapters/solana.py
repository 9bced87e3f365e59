"""Solana ledger client."""
from typing import List, Optional, Dict, Any
import logging

import base58
import httpx

from lending_history.config import settings
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.utils.errors import LedgerError, RateLimitedError

logger = logging.getLogger(__name__)

# JSON-RPC error codes some providers use for throttling
_RATE_LIMIT_RPC_CODES = {429, -32429, -32005}


def is_valid_address(address: str) -> bool:
    """
    Validate Solana address format.

    Solana addresses are base58 encoded, typically 32-44 characters.
    """
    if not address or len(address) < 32 or len(address) > 44:
        return False

    try:
        decoded = base58.b58decode(address)
    except ValueError:
        return False
    # Solana addresses are 32 bytes
    return len(decoded) == 32


class SolanaLedgerClient(LedgerClient):
    """JSON-RPC client for a Solana cluster."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        commitment: str = "confirmed",
    ):
        self.rpc_url = rpc_url or settings.rpc_url_for()
        self.commitment = commitment
        self.client = client or httpx.AsyncClient(timeout=settings.rpc_timeout_seconds)
        self._request_id = 0

    @classmethod
    def for_cluster(cls, cluster: Optional[str] = None, **kwargs) -> "SolanaLedgerClient":
        return cls(settings.rpc_url_for(cluster), **kwargs)

    async def close(self) -> None:
        await self.client.aclose()

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make RPC call to Solana."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise LedgerError(f"HTTP error calling Solana RPC: {str(e)}") from e

        if response.status_code == 429:
            raise RateLimitedError(f"{method} rate limited (HTTP 429)", status_code=429)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LedgerError(f"HTTP {e.response.status_code} calling {method}") from e

        data = response.json()
        if "error" in data:
            error = data["error"] or {}
            message = error.get("message", "Unknown error")
            if error.get("code") in _RATE_LIMIT_RPC_CODES or "too many requests" in message.lower():
                raise RateLimitedError(f"{method} rate limited: {message}", status_code=error.get("code"))
            raise LedgerError(f"RPC error: {message}")

        return data.get("result")

    async def get_signatures_for_address(self, address: str, limit: int) -> List[Dict[str, Any]]:
        result = await self._rpc_call(
            "getSignaturesForAddress",
            [
                address,
                {
                    "limit": min(limit, 1000),  # Solana RPC limit
                    "commitment": self.commitment
                }
            ]
        )
        logger.debug("[RPC] getSignaturesForAddress %s -> %d records", address, len(result or []))
        return result or []

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        return await self._rpc_call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0
                }
            ]
        )

    def validate_address(self, address: str) -> bool:
        return is_valid_address(address)
