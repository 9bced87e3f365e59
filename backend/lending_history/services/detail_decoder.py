"""Decoding of single transactions into lending activity."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
import logging

from lending_history.config import settings
from lending_history.models.transaction import (
    TokenMetadata,
    TransactionDetail,
    TransactionStatus,
)
from lending_history.services.amount_extractor import extract_amount
from lending_history.services.backoff import BackoffScheduler
from lending_history.services.cache_service import CacheService
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.services.classifier import classify_instruction, find_program_instruction
from lending_history.utils.errors import LedgerError, RetriesExceededError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = Decimal("1000000000")


class DetailDecoder:
    """Resolves a signature into a TransactionDetail."""

    def __init__(
        self,
        ledger: LedgerClient,
        cache: CacheService,
        backoff: BackoffScheduler,
        program_id: Optional[str] = None,
        catalog: Optional[Mapping[str, TokenMetadata]] = None,
        cluster: str = "",
    ):
        self.ledger = ledger
        self.cache = cache
        self.backoff = backoff
        self.program_id = program_id or settings.lending_program_id
        self.catalog = catalog if catalog is not None else {}
        self.cluster = cluster

    def detail_key(self, signature: str) -> str:
        return f"detail:{self.cluster}:{signature}"

    async def fetch_detail(self, signature: str) -> Optional[TransactionDetail]:
        """
        Fetch and decode one transaction.

        Returns None when the ledger has no such transaction or when the
        fetch failed; failures are not cached so the caller may retry.
        """
        key = self.detail_key(signature)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            tx = await self.backoff.run(lambda: self.ledger.get_transaction(signature))
        except (LedgerError, RetriesExceededError) as e:
            logger.warning("[DETAIL] Failed to fetch %s: %s", signature, e)
            return None

        if tx is None:
            logger.info("[DETAIL] Transaction %s not found", signature)
            return None

        detail = self.decode(signature, tx)
        self.cache.set(key, detail)
        return detail

    def decode(self, signature: str, tx: Dict[str, Any]) -> TransactionDetail:
        """Build a TransactionDetail from a parsed transaction."""
        meta = tx.get("meta") or {}
        message = (tx.get("transaction") or {}).get("message") or {}

        instruction = find_program_instruction(message.get("instructions") or [], self.program_id)
        operation_type = classify_instruction(instruction)
        extracted = extract_amount(tx, operation_type, self.catalog)

        block_time = tx.get("blockTime")
        fee = meta.get("fee")
        logger.debug("[DETAIL] %s classified as %s", signature, operation_type.value)

        return TransactionDetail(
            id=signature,
            timestamp=datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time is not None else None,
            status=TransactionStatus.ERROR if meta.get("err") is not None else TransactionStatus.SUCCESS,
            block_time=block_time,
            operation_type=operation_type,
            amount=extracted.amount,
            token=extracted.token,
            token_mint=extracted.token_mint,
            fee=Decimal(str(fee)) / LAMPORTS_PER_SOL if fee is not None else None,
            slot=tx.get("slot"),
            raw_instruction=instruction,
            raw_payload=tx,
        )
