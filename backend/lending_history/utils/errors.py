"""Custom error classes."""
from typing import Optional


class LendingHistoryError(Exception):
    """Base exception for the lending history application."""
    pass


class LedgerError(LendingHistoryError):
    """Error talking to the ledger RPC (transport or RPC-level failure)."""
    pass


class RateLimitedError(LedgerError):
    """The ledger endpoint asked us to slow down."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RetriesExceededError(LendingHistoryError):
    """Backoff gave up after repeated rate-limit signals."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Retries exceeded after {attempts} rate-limited attempts")
        self.attempts = attempts
        self.last_error = last_error


class LedgerAmountError(LendingHistoryError):
    """A raw ledger amount could not be parsed into an integer."""

    def __init__(self, value: object, reason: str):
        super().__init__(f"Invalid ledger amount {value!r}: {reason}")
        self.value = value
        self.reason = reason


class InvalidAddressError(LendingHistoryError):
    """Account address is not a valid base58 public key."""
    pass
