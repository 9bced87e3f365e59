"""Token amount extraction from balance snapshots."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterator, Mapping, Optional
import logging

from lending_history.models.transaction import OperationType, TokenMetadata, TokenRef
from lending_history.services.ledger_amount import parse_ledger_amount, scale_amount
from lending_history.utils.errors import LedgerAmountError

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_IDS = {
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
    "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb",  # Token-2022
}
DEFAULT_DECIMALS = 9

_INFLOW_TYPES = {OperationType.DEPOSIT, OperationType.BORROW}
_OUTFLOW_TYPES = {OperationType.WITHDRAW, OperationType.REPAY}


@dataclass(frozen=True)
class ExtractedAmount:
    """Amount and token resolved for one transaction."""
    amount: Optional[Decimal] = None
    token: Optional[TokenRef] = None
    token_mint: Optional[str] = None


def apply_sign_rule(operation_type: OperationType, pre: Decimal, post: Decimal) -> Decimal:
    """Direction-aware delta for known operations, absolute delta otherwise."""
    if operation_type in _INFLOW_TYPES:
        return max(Decimal(0), post - pre)
    if operation_type in _OUTFLOW_TYPES:
        return max(Decimal(0), pre - post)
    # Unknown and init operations report the magnitude only
    return abs(post - pre)


def _iter_instructions(tx: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    message = (tx.get("transaction") or {}).get("message") or {}
    yield from message.get("instructions") or []
    for inner in (tx.get("meta") or {}).get("innerInstructions") or []:
        yield from inner.get("instructions") or []


def has_token_instruction(tx: Dict[str, Any]) -> bool:
    return any(str(ix.get("programId", "")) in TOKEN_PROGRAM_IDS for ix in _iter_instructions(tx))


def resolve_decimals(balance: Dict[str, Any], metadata: Optional[TokenMetadata]) -> int:
    """Catalog decimals first, then the snapshot's own, then the default."""
    if metadata is not None:
        return metadata.decimals
    decimals = (balance.get("uiTokenAmount") or {}).get("decimals")
    if isinstance(decimals, int) and not isinstance(decimals, bool):
        return decimals
    return DEFAULT_DECIMALS


def extract_amount(
    tx: Dict[str, Any],
    operation_type: OperationType,
    catalog: Optional[Mapping[str, TokenMetadata]] = None,
) -> ExtractedAmount:
    """
    Compute the token amount moved by a lending transaction.

    The affected account is taken to be the first post-balance entry of a
    transaction that contains a token program instruction. A missing pre
    balance counts as zero (the token account was created by this
    transaction).

    Args:
        tx: Parsed transaction as returned by the ledger
        operation_type: Classified lending operation
        catalog: Token metadata keyed by mint address

    Returns:
        ExtractedAmount; fields are None when nothing could be resolved
    """
    meta = tx.get("meta") or {}
    post_balances = meta.get("postTokenBalances") or []
    if not post_balances or not has_token_instruction(tx):
        return ExtractedAmount()

    post_balance = post_balances[0]
    mint = post_balance.get("mint")
    pre_balance = next(
        (b for b in meta.get("preTokenBalances") or [] if b.get("accountIndex") == post_balance.get("accountIndex")),
        None
    )

    metadata = (catalog or {}).get(mint) if mint else None
    decimals = resolve_decimals(post_balance, metadata)
    token = TokenRef.from_metadata(metadata) if metadata is not None else None

    try:
        post_raw = parse_ledger_amount(post_balance.get("uiTokenAmount"))
        pre_raw = parse_ledger_amount(pre_balance.get("uiTokenAmount")) if pre_balance else 0
    except LedgerAmountError as e:
        logger.warning("[AMOUNT] Could not parse token balance for mint %s: %s", mint, e)
        return ExtractedAmount(token=token, token_mint=mint)

    amount = apply_sign_rule(
        operation_type,
        scale_amount(pre_raw, decimals),
        scale_amount(post_raw, decimals),
    )
    return ExtractedAmount(amount=amount, token=token, token_mint=mint)
