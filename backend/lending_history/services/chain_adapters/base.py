"""Abstract base class for ledger clients."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class LedgerClient(ABC):
    """Abstract base class for ledger RPC clients."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Release transport resources."""
        pass

    @abstractmethod
    async def get_signatures_for_address(self, address: str, limit: int) -> List[Dict[str, Any]]:
        """
        Fetch recent signatures for an account, newest first.

        Args:
            address: Account address
            limit: Maximum number of signatures to return

        Returns:
            Records with ``signature``, ``blockTime``, ``err`` and
            ``confirmationStatus`` keys
        """
        pass

    @abstractmethod
    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one parsed transaction.

        Args:
            signature: Transaction signature

        Returns:
            Parsed transaction, or None if the ledger has no such transaction
        """
        pass

    @abstractmethod
    def validate_address(self, address: str) -> bool:
        """
        Validate an account address format.

        Args:
            address: Account address to validate

        Returns:
            True if address is valid
        """
        pass
