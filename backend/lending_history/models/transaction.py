"""Lending activity models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class OperationType(str, Enum):
    """Lending operation enumeration."""
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    BORROW = "Borrow"
    REPAY = "Repay"
    INIT_ACCOUNT = "InitAccount"
    INIT_ACCOUNT_STATE = "InitAccountState"
    UNKNOWN = "Unknown"


class TransactionStatus(str, Enum):
    """Settlement status of a ledger transaction."""
    SUCCESS = "success"
    ERROR = "error"
    PENDING = "pending"


class TokenMetadata(BaseModel):
    """Entry of the externally supplied token metadata catalog."""
    address: str
    symbol: str
    name: str
    logo_uri: str = ""
    decimals: int


class TokenRef(BaseModel):
    """Token information attached to a resolved transaction."""
    symbol: str
    name: str
    logo_uri: str = ""
    mint: str
    decimals: int

    class Config:
        frozen = True

    @classmethod
    def from_metadata(cls, metadata: TokenMetadata) -> "TokenRef":
        return cls(
            symbol=metadata.symbol or "Unknown",
            name=metadata.name or "Unknown Token",
            logo_uri=metadata.logo_uri or "",
            mint=metadata.address,
            decimals=metadata.decimals,
        )


class TransactionSummary(BaseModel):
    """Lightweight row built from a signature listing."""
    id: str = Field(..., description="Transaction signature")
    timestamp: Optional[datetime] = Field(None, description="Block time as a datetime")
    status: TransactionStatus = Field(..., description="Settlement status")
    block_time: Optional[int] = Field(None, description="Unix block time in seconds")

    class Config:
        frozen = True
        json_encoders = {
            Decimal: str,
            datetime: lambda v: v.isoformat()
        }


class TransactionDetail(TransactionSummary):
    """Summary enriched with the decoded lending operation."""
    operation_type: OperationType = Field(OperationType.UNKNOWN, description="Classified lending operation")
    amount: Optional[Decimal] = Field(None, description="Token amount moved, never negative")
    token: Optional[TokenRef] = Field(None, description="Token resolved from the catalog")
    token_mint: Optional[str] = Field(None, description="Mint of the balance entry used for the amount")
    fee: Optional[Decimal] = Field(None, description="Transaction fee in SOL")
    slot: Optional[int] = Field(None, description="Slot the transaction landed in")
    raw_instruction: Optional[dict[str, Any]] = Field(None, description="Lending program instruction as returned by the ledger")
    raw_payload: Optional[dict[str, Any]] = Field(None, description="Full parsed transaction")
