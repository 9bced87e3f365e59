"""History query models."""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field
from lending_history.models.transaction import OperationType, TransactionDetail, TransactionSummary

HistoryRecord = Union[TransactionDetail, TransactionSummary]


class HistoryFilters(BaseModel):
    """Filter state narrowing the fetched history."""
    start_date: Optional[datetime] = Field(None, description="Inclusive lower bound on block time")
    end_date: Optional[datetime] = Field(None, description="Inclusive upper bound on block time")
    token: Optional[str] = Field(None, description="Token symbol or mint")
    operation_type: Optional[OperationType] = Field(None, description="Lending operation")
    search: Optional[str] = Field(None, description="Free text matched against id, type and token")


class HistoryResponse(BaseModel):
    """Response model for an account history listing."""
    account: str
    cluster: str
    records: List[HistoryRecord]
    resolved: int = Field(0, description="Number of rows with a decoded detail")
    available_tokens: List[str] = Field(default_factory=list)


class AddressValidationResponse(BaseModel):
    """Response model for address validation."""
    address: str
    valid: bool
    message: Optional[str] = None
