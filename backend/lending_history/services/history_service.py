"""Transaction history facade."""
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional
import logging
import time

from lending_history.config import settings
from lending_history.models.history import HistoryFilters, HistoryRecord
from lending_history.models.transaction import (
    OperationType,
    TokenMetadata,
    TransactionDetail,
    TransactionSummary,
)
from lending_history.services.backoff import BackoffScheduler
from lending_history.services.cache_service import CacheService
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.services.detail_decoder import DetailDecoder
from lending_history.services.drip_feed import CancellationToken, DripFeed
from lending_history.services.summary_fetcher import SignatureSummaryFetcher, to_unix, within_window
from lending_history.services.throttle import RequestThrottle
from lending_history.utils.errors import InvalidAddressError

logger = logging.getLogger(__name__)


class TransactionHistoryService:
    """Two-phase activity history for one account.

    Summaries come from a single signature listing and are returned right
    away. Details are resolved per signature, on demand or through
    ``enrich_pending``, and merged into the summary list by id.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        account: str,
        catalog: Optional[Mapping[str, TokenMetadata]] = None,
        cluster: Optional[str] = None,
        program_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        cache: Optional[CacheService] = None,
        throttle: Optional[RequestThrottle] = None,
        backoff: Optional[BackoffScheduler] = None,
        page_size: Optional[int] = None,
        detail_delay: Optional[float] = None,
    ):
        if not ledger.validate_address(account):
            raise InvalidAddressError(f"Invalid Solana address: {account}")

        self.ledger = ledger
        self.account = account
        self.cluster = cluster or settings.solana_cluster
        self.cache = cache if cache is not None else CacheService(clock=clock)
        self.throttle = throttle if throttle is not None else RequestThrottle(clock=clock)
        self.backoff = backoff if backoff is not None else BackoffScheduler()
        self.detail_delay = settings.detail_fetch_delay_seconds if detail_delay is None else detail_delay

        self.summary_fetcher = SignatureSummaryFetcher(
            ledger, self.cache, self.throttle, self.backoff,
            cluster=self.cluster, page_size=page_size
        )
        self.detail_decoder = DetailDecoder(
            ledger, self.cache, self.backoff,
            program_id=program_id, catalog=catalog, cluster=self.cluster
        )

        self.filters = HistoryFilters()
        self.summaries: List[TransactionSummary] = []
        self.details: Dict[str, TransactionDetail] = {}
        self.loading_signature: Optional[str] = None

    # Filters

    def set_date_range(self, start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
        self.filters = self.filters.model_copy(update={"start_date": start_date, "end_date": end_date})

    def set_token_filter(self, token: Optional[str]) -> None:
        self.filters = self.filters.model_copy(update={"token": token})

    def set_type_filter(self, operation_type: Optional[OperationType]) -> None:
        self.filters = self.filters.model_copy(update={"operation_type": operation_type})

    def set_search_query(self, search: Optional[str]) -> None:
        self.filters = self.filters.model_copy(update={"search": search})

    def reset_filters(self) -> None:
        self.filters = HistoryFilters()

    # Queries

    async def fetch_summaries(self, filters: Optional[HistoryFilters] = None) -> List[TransactionSummary]:
        """Fetch summaries for the date range of ``filters`` (default: the held filters).

        A throttled call returns an empty list and leaves the held
        summaries untouched.
        """
        filters = filters if filters is not None else self.filters
        result = await self.summary_fetcher.fetch(
            self.account, filters.start_date, filters.end_date
        )
        if result is None:
            return []
        self.summaries = result
        return list(result)

    async def fetch_detail(self, signature: str) -> Optional[TransactionDetail]:
        """Resolve one signature and merge it into the history."""
        detail = await self.detail_decoder.fetch_detail(signature)
        if detail is not None:
            self.details[signature] = detail
        return detail

    def pending_signatures(self) -> List[str]:
        return [s.id for s in self.summaries if s.id not in self.details]

    async def enrich_pending(self, token: Optional[CancellationToken] = None) -> int:
        """Resolve every summary-only row serially; returns how many resolved."""
        pending = self.pending_signatures()
        if not pending:
            return 0

        logger.info("[ENRICH] Resolving %d pending transactions for %s", len(pending), self.account)
        resolved = 0
        feed = DripFeed(pending, self._fetch_tracked, delay=self.detail_delay, token=token)
        try:
            async for _, detail in feed:
                if detail is not None:
                    resolved += 1
        finally:
            self.loading_signature = None
        return resolved

    async def _fetch_tracked(self, signature: str) -> Optional[TransactionDetail]:
        self.loading_signature = signature
        return await self.fetch_detail(signature)

    # Views

    @property
    def records(self) -> List[HistoryRecord]:
        """Summaries with resolved details merged in, ledger order kept."""
        return [self.details.get(s.id, s) for s in self.summaries]

    def visible_records(self, filters: Optional[HistoryFilters] = None) -> List[HistoryRecord]:
        """Records narrowed by date window, token, operation type and search."""
        filters = filters if filters is not None else self.filters
        return [r for r in self.records if self._matches(r, filters)]

    def available_tokens(self) -> List[str]:
        symbols = {
            r.token.symbol for r in self.records
            if isinstance(r, TransactionDetail) and r.token is not None
        }
        return sorted(symbols)

    def _matches(self, record: HistoryRecord, filters: HistoryFilters) -> bool:
        if not within_window(record.block_time, to_unix(filters.start_date), to_unix(filters.end_date)):
            return False

        detail = record if isinstance(record, TransactionDetail) else None
        operation_type = detail.operation_type if detail else OperationType.UNKNOWN

        if filters.operation_type is not None and operation_type != filters.operation_type:
            return False

        if filters.token:
            wanted = filters.token.lower()
            candidates = []
            if detail is not None and detail.token is not None:
                candidates.append(detail.token.symbol.lower())
            if detail is not None and detail.token_mint:
                candidates.append(detail.token_mint.lower())
            if wanted not in candidates:
                return False

        if filters.search:
            query = filters.search.lower()
            haystack = [record.id.lower(), operation_type.value.lower()]
            if detail is not None and detail.token is not None:
                haystack.extend([detail.token.symbol.lower(), detail.token.name.lower()])
            if not any(query in text for text in haystack):
                return False

        return True

    # Lifecycle

    def cleanup(self) -> int:
        """Drop expired cache entries."""
        return self.cache.sweep()

    async def close(self) -> None:
        self.cleanup()
        await self.ledger.close()
