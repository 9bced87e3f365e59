"""Transaction history endpoints."""
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Mapping, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from lending_history.config import CLUSTER_URLS, settings
from lending_history.models.history import AddressValidationResponse, HistoryFilters, HistoryResponse
from lending_history.models.transaction import OperationType, TokenMetadata, TransactionDetail
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.services.chain_adapters.solana import SolanaLedgerClient, is_valid_address
from lending_history.services.history_service import TransactionHistoryService
from lending_history.utils.errors import InvalidAddressError, LendingHistoryError

logger = logging.getLogger(__name__)

router = APIRouter()

# One service per (cluster, account) so cache and throttle survive across
# requests; least recently used services are dropped past the pool size.
_services: "OrderedDict[tuple, TransactionHistoryService]" = OrderedDict()
# One ledger client per cluster, shared by every service of that cluster
_ledgers: Dict[str, LedgerClient] = {}
_catalog: Dict[str, TokenMetadata] = {}


def get_ledger(cluster: str) -> LedgerClient:
    if cluster == settings.solana_cluster:
        return SolanaLedgerClient.for_cluster()
    return SolanaLedgerClient.for_cluster(cluster)


def shared_ledger(cluster: str) -> LedgerClient:
    if cluster not in _ledgers:
        _ledgers[cluster] = get_ledger(cluster)
    return _ledgers[cluster]


def get_catalog() -> Mapping[str, TokenMetadata]:
    return _catalog


def register_catalog(entries: Mapping[str, TokenMetadata]) -> None:
    """Install the token metadata catalog loaded by the caller."""
    _catalog.clear()
    _catalog.update(entries)


def get_history_service(
    account: str,
    cluster: Optional[str] = Query(None, description="One of: " + ", ".join(CLUSTER_URLS)),
    catalog: Mapping[str, TokenMetadata] = Depends(get_catalog),
) -> TransactionHistoryService:
    # Only named clusters are reachable from a request; custom RPC URLs come from settings
    if cluster is not None and cluster not in CLUSTER_URLS:
        raise HTTPException(status_code=400, detail=f"Unknown Solana cluster: {cluster}")
    cluster = cluster or settings.solana_cluster
    key = (cluster, account)

    if key in _services:
        _services.move_to_end(key)
        return _services[key]

    if not is_valid_address(account):
        raise HTTPException(status_code=400, detail=f"Invalid Solana address: {account}")
    try:
        service = TransactionHistoryService(
            shared_ledger(cluster), account, catalog=catalog, cluster=cluster
        )
    except InvalidAddressError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _services[key] = service
    while len(_services) > settings.max_history_services:
        (evicted_cluster, evicted_account), evicted = _services.popitem(last=False)
        evicted.cleanup()
        logger.info("[POOL] Evicted history service for %s on %s", evicted_account, evicted_cluster)
    return service


async def close_services() -> None:
    for service in _services.values():
        service.cleanup()
    _services.clear()
    for ledger in _ledgers.values():
        await ledger.close()
    _ledgers.clear()


@router.get("/validate/{address}", response_model=AddressValidationResponse)
async def validate_address(address: str):
    """Validate a Solana account address."""
    is_valid = is_valid_address(address)

    return AddressValidationResponse(
        address=address,
        valid=is_valid,
        message="Address is valid" if is_valid else "Invalid Solana address format"
    )


@router.get("/{account}", response_model=HistoryResponse)
async def get_history(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    token: Optional[str] = None,
    operation_type: Optional[OperationType] = None,
    search: Optional[str] = None,
    enrich: bool = Query(False, description="Resolve details for every listed signature"),
    service: TransactionHistoryService = Depends(get_history_service),
):
    """
    List recent lending activity for an account.

    Summaries are returned as soon as the signature listing is in. With
    ``enrich`` set, pending rows are resolved serially before responding.
    """
    filters = HistoryFilters(
        start_date=start_date,
        end_date=end_date,
        token=token,
        operation_type=operation_type,
        search=search,
    )

    try:
        await service.fetch_summaries(filters)
        if enrich:
            await service.enrich_pending()
    except LendingHistoryError as e:
        raise HTTPException(
            status_code=502,
            detail=f"Error fetching history for {service.account}: {str(e)}"
        )

    return HistoryResponse(
        account=service.account,
        cluster=service.cluster,
        records=service.visible_records(filters),
        resolved=sum(1 for r in service.records if isinstance(r, TransactionDetail)),
        available_tokens=service.available_tokens(),
    )


@router.get("/{account}/transactions/{signature}", response_model=TransactionDetail)
async def get_transaction_detail(
    signature: str,
    service: TransactionHistoryService = Depends(get_history_service),
):
    """Resolve one signature into its lending operation."""
    detail = await service.fetch_detail(signature)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Transaction {signature} not available")
    return detail
