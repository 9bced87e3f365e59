"""Parsing of raw ledger amounts."""
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from lending_history.utils.errors import LedgerAmountError


def parse_ledger_amount(value: Any) -> int:
    """
    Turn a raw token amount reported by the ledger into an integer.

    Accepts ints, integral Decimals and floats, base-10 digit strings, and
    ``uiTokenAmount`` mappings (their ``amount`` field is used).

    Raises:
        LedgerAmountError: for anything else, including negative values
    """
    if isinstance(value, Mapping):
        if "amount" not in value:
            raise LedgerAmountError(value, "mapping has no 'amount' field")
        return parse_ledger_amount(value["amount"])

    if isinstance(value, bool) or value is None:
        raise LedgerAmountError(value, f"unsupported type {type(value).__name__}")

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise LedgerAmountError(value, "not a base-10 integer string")
        parsed = int(text)
    elif isinstance(value, (Decimal, float)):
        try:
            as_decimal = Decimal(value)
        except InvalidOperation as e:
            raise LedgerAmountError(value, "not a number") from e
        if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
            raise LedgerAmountError(value, "not an integral amount")
        parsed = int(as_decimal)
    else:
        raise LedgerAmountError(value, f"unsupported type {type(value).__name__}")

    if parsed < 0:
        raise LedgerAmountError(value, "negative amount")
    return parsed


def scale_amount(raw: int, decimals: int) -> Decimal:
    """Convert a raw integer amount to token units."""
    return Decimal(raw) / (Decimal(10) ** decimals)
