"""Signature listing for an account."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from lending_history.config import settings
from lending_history.models.transaction import TransactionStatus, TransactionSummary
from lending_history.services.backoff import BackoffScheduler
from lending_history.services.cache_service import CacheService
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.services.throttle import RequestThrottle
from lending_history.utils.errors import LedgerError, RetriesExceededError

logger = logging.getLogger(__name__)


def to_unix(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def summary_from_record(record: Dict[str, Any]) -> TransactionSummary:
    """Build a summary from one ``getSignaturesForAddress`` record."""
    block_time = record.get("blockTime")
    if record.get("err") is not None:
        status = TransactionStatus.ERROR
    elif block_time is None or record.get("confirmationStatus") == "processed":
        status = TransactionStatus.PENDING
    else:
        status = TransactionStatus.SUCCESS

    return TransactionSummary(
        id=record["signature"],
        timestamp=datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time is not None else None,
        status=status,
        block_time=block_time,
    )


def within_window(block_time: Optional[int], start: Optional[int], end: Optional[int]) -> bool:
    """Inclusive window check; unbounded when neither bound is set."""
    if start is None and end is None:
        return True
    if block_time is None:
        return False
    if start is not None and block_time < start:
        return False
    if end is not None and block_time > end:
        return False
    return True


class SignatureSummaryFetcher:
    """Fetches the most recent signatures of an account as summaries."""

    def __init__(
        self,
        ledger: LedgerClient,
        cache: CacheService,
        throttle: RequestThrottle,
        backoff: BackoffScheduler,
        cluster: str = "",
        page_size: Optional[int] = None,
    ):
        self.ledger = ledger
        self.cache = cache
        self.throttle = throttle
        self.backoff = backoff
        self.cluster = cluster
        self.page_size = settings.summary_page_size if page_size is None else page_size

    def query_key(self, account: str, start: Optional[int], end: Optional[int]) -> str:
        return self.cache.make_key("summaries", self.cluster, account, start, end, self.page_size)

    async def fetch(
        self,
        account: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Optional[List[TransactionSummary]]:
        """
        Fetch summaries for ``account``, newest first.

        Args:
            account: Account address
            start_date: Inclusive lower bound on block time
            end_date: Inclusive upper bound on block time

        Returns:
            Summaries in ledger order, or None when the call was throttled

        Raises:
            LedgerError, RetriesExceededError: when the ledger fails and no
                earlier result for the same query is cached
        """
        start, end = to_unix(start_date), to_unix(end_date)
        key = self.query_key(account, start, end)

        if not self.throttle.try_acquire(key):
            logger.info("[SUMMARY] Throttled summary query for %s", account)
            return None

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("[SUMMARY] Cache hit for %s", account)
            return list(cached)

        try:
            records = await self.backoff.run(
                lambda: self.ledger.get_signatures_for_address(account, self.page_size)
            )
        except (LedgerError, RetriesExceededError) as e:
            stale = self.cache.get_stale(key)
            if stale is None:
                logger.error("[SUMMARY] Failed to fetch signatures for %s: %s", account, e)
                raise
            logger.warning("[SUMMARY] Serving stale summaries for %s after error: %s", account, e)
            return list(stale)

        summaries = [
            summary_from_record(record)
            for record in records[:self.page_size]
            if within_window(record.get("blockTime"), start, end)
        ]
        logger.info(
            "[SUMMARY] %s: %d signatures, %d within window", account, len(records), len(summaries)
        )
        self.cache.set(key, tuple(summaries))
        return summaries
