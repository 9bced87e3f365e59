"""
Pytest fixtures for lending history tests.

The ledger is replaced by an in-memory fake and time by a manual clock, so
cache expiry and throttling are driven explicitly by each test.
"""

from __future__ import annotations

from typing import Any, Optional

import base58
import pytest

from lending_history.services.backoff import BackoffScheduler
from lending_history.services.chain_adapters.base import LedgerClient
from lending_history.services.chain_adapters.solana import is_valid_address
from lending_history.services.history_service import TransactionHistoryService

ACCOUNT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
PROGRAM_ID = "EZqPMxDtbaQbCGMaxvXS6vGKzMTJvt7p8xCPaBT6155G"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

DEPOSIT = bytes([242, 35, 198, 137, 82, 225, 242, 182])
WITHDRAW = bytes([183, 18, 70, 156, 148, 109, 161, 34])
BORROW = bytes([228, 253, 131, 202, 207, 116, 89, 18])
REPAY = bytes([234, 103, 67, 82, 208, 234, 219, 166])


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLedger(LedgerClient):
    """In-memory ledger that counts calls and can be told to fail."""

    def __init__(self, signatures=None, transactions=None):
        self.signatures: list[dict[str, Any]] = list(signatures or [])
        self.transactions: dict[str, dict[str, Any]] = dict(transactions or {})
        self.signature_calls = 0
        self.transaction_calls: list[str] = []
        self.signature_errors: list[Exception] = []
        self.transaction_errors: dict[str, list[Exception]] = {}
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    async def get_signatures_for_address(self, address: str, limit: int):
        self.signature_calls += 1
        if self.signature_errors:
            raise self.signature_errors.pop(0)
        return self.signatures[:limit]

    async def get_transaction(self, signature: str):
        self.transaction_calls.append(signature)
        errors = self.transaction_errors.get(signature)
        if errors:
            raise errors.pop(0)
        return self.transactions.get(signature)

    def validate_address(self, address: str) -> bool:
        return is_valid_address(address)


def signature_record(signature: str, block_time: Optional[int], err: Any = None) -> dict[str, Any]:
    return {
        "signature": signature,
        "blockTime": block_time,
        "err": err,
        "confirmationStatus": "finalized",
        "slot": 1,
    }


def token_balance(raw: int, mint: str = USDC_MINT, decimals: int = 6, account_index: int = 1) -> dict[str, Any]:
    return {
        "accountIndex": account_index,
        "mint": mint,
        "owner": ACCOUNT,
        "uiTokenAmount": {"amount": str(raw), "decimals": decimals},
    }


def build_tx(
    program_data: Optional[bytes] = DEPOSIT,
    pre: Optional[int] = None,
    post: Optional[int] = None,
    mint: str = USDC_MINT,
    decimals: int = 6,
    fee: int = 5000,
    err: Any = None,
    token_instruction: bool = True,
    block_time: int = 100,
    slot: int = 42,
) -> dict[str, Any]:
    """Shape of a ``getTransaction`` jsonParsed result."""
    instructions = []
    if program_data is not None:
        instructions.append({
            "programId": PROGRAM_ID,
            "accounts": [ACCOUNT],
            "data": base58.b58encode(program_data + b"\x01\x00\x00\x00").decode(),
        })
    if token_instruction:
        instructions.append({
            "programId": TOKEN_PROGRAM_ID,
            "program": "spl-token",
            "parsed": {"type": "transferChecked", "info": {}},
        })
    return {
        "slot": slot,
        "blockTime": block_time,
        "transaction": {"message": {"instructions": instructions}},
        "meta": {
            "fee": fee,
            "err": err,
            "innerInstructions": [],
            "preTokenBalances": [token_balance(pre, mint, decimals)] if pre is not None else [],
            "postTokenBalances": [token_balance(post, mint, decimals)] if post is not None else [],
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def backoff(sleeps):
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return BackoffScheduler(max_retries=3, base_delay=1.0, sleep=fake_sleep, jitter=lambda: 0.5)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def history(ledger, clock, backoff):
    """History service for ACCOUNT with manual clock and no real sleeping."""
    return TransactionHistoryService(
        ledger,
        ACCOUNT,
        cluster="devnet",
        program_id=PROGRAM_ID,
        clock=clock,
        backoff=backoff,
        detail_delay=0.0,
    )
