"""Tests for token amount extraction and the per-operation sign rule."""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import TOKEN_PROGRAM_ID, USDC_MINT, build_tx, token_balance
from lending_history.models.transaction import OperationType, TokenMetadata
from lending_history.services.amount_extractor import apply_sign_rule, extract_amount

CATALOG = {
    USDC_MINT: TokenMetadata(
        address=USDC_MINT, symbol="USDC", name="USD Coin", logo_uri="https://example.com/usdc.png", decimals=2
    )
}


@pytest.mark.parametrize("operation_type", [OperationType.DEPOSIT, OperationType.BORROW])
def test_inflow_operations_use_post_minus_pre(operation_type):
    tx = build_tx(pre=1000, post=1500)
    assert extract_amount(tx, operation_type, CATALOG).amount == Decimal("5.00")


@pytest.mark.parametrize("operation_type", [OperationType.WITHDRAW, OperationType.REPAY])
def test_outflow_operations_use_pre_minus_post(operation_type):
    tx = build_tx(pre=1500, post=1000)
    assert extract_amount(tx, operation_type, CATALOG).amount == Decimal("5.00")


def test_unknown_operation_uses_absolute_delta():
    assert extract_amount(build_tx(pre=1000, post=1500), OperationType.UNKNOWN, CATALOG).amount == Decimal("5")
    assert extract_amount(build_tx(pre=1500, post=1000), OperationType.UNKNOWN, CATALOG).amount == Decimal("5")


def test_wrong_direction_clamps_to_zero():
    assert apply_sign_rule(OperationType.DEPOSIT, Decimal(15), Decimal(10)) == Decimal(0)
    assert apply_sign_rule(OperationType.REPAY, Decimal(10), Decimal(15)) == Decimal(0)


def test_missing_pre_balance_counts_as_zero():
    tx = build_tx(pre=None, post=2500)
    assert extract_amount(tx, OperationType.DEPOSIT, CATALOG).amount == Decimal("25")


def test_pre_balance_is_matched_by_account_index():
    tx = build_tx(pre=None, post=1500)
    tx["meta"]["preTokenBalances"] = [
        token_balance(9999, account_index=4),
        token_balance(1000, account_index=1),
    ]
    assert extract_amount(tx, OperationType.DEPOSIT, CATALOG).amount == Decimal("5")


def test_catalog_decimals_win_over_snapshot():
    tx = build_tx(pre=1000, post=1500, decimals=6)
    result = extract_amount(tx, OperationType.DEPOSIT, CATALOG)
    assert result.amount == Decimal("5")
    assert result.token.symbol == "USDC"
    assert result.token.mint == USDC_MINT
    assert result.token.decimals == 2
    assert result.token_mint == USDC_MINT


def test_snapshot_decimals_without_catalog():
    tx = build_tx(pre=0, post=1_500_000, decimals=6)
    result = extract_amount(tx, OperationType.BORROW)
    assert result.amount == Decimal("1.5")
    assert result.token is None
    assert result.token_mint == USDC_MINT


def test_default_decimals_when_neither_source_has_them():
    tx = build_tx(pre=0, post=2_000_000_000)
    del tx["meta"]["postTokenBalances"][0]["uiTokenAmount"]["decimals"]
    assert extract_amount(tx, OperationType.DEPOSIT).amount == Decimal("2")


def test_no_token_instruction_means_no_amount():
    tx = build_tx(pre=1000, post=1500, token_instruction=False)
    result = extract_amount(tx, OperationType.DEPOSIT, CATALOG)
    assert result.amount is None
    assert result.token is None


def test_inner_token_instruction_counts():
    tx = build_tx(pre=1000, post=1500, token_instruction=False)
    tx["meta"]["innerInstructions"] = [
        {"index": 0, "instructions": [{"programId": TOKEN_PROGRAM_ID, "parsed": {"type": "transfer"}}]}
    ]
    assert extract_amount(tx, OperationType.DEPOSIT, CATALOG).amount == Decimal("5")


def test_unparseable_balance_keeps_token_but_drops_amount():
    tx = build_tx(pre=1000, post=1500)
    tx["meta"]["postTokenBalances"][0]["uiTokenAmount"]["amount"] = "1.5e3"
    result = extract_amount(tx, OperationType.DEPOSIT, CATALOG)
    assert result.amount is None
    assert result.token.symbol == "USDC"


def test_non_ascii_digits_drop_amount():
    tx = build_tx(pre=1000, post=1500)
    tx["meta"]["postTokenBalances"][0]["uiTokenAmount"]["amount"] = "²"
    result = extract_amount(tx, OperationType.DEPOSIT, CATALOG)
    assert result.amount is None
    assert result.token_mint == USDC_MINT


def test_amount_is_never_negative():
    for operation_type in OperationType:
        for pre, post in [(0, 10), (10, 0), (7, 7)]:
            amount = extract_amount(build_tx(pre=pre, post=post), operation_type, CATALOG).amount
            assert amount >= 0
